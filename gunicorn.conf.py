"""
Gunicorn configuration for the LastMove notification API.

Run with:  gunicorn -c gunicorn.conf.py lastmove.main:app

Env vars that override defaults:
  PORT     - TCP port to bind (default: 8000)
  WORKERS  - number of worker processes (default: 2)
  TIMEOUT  - worker timeout in seconds (default: 120)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Traffic is one cron caller per hour plus occasional admin calls, so two
# workers suffice. A second worker keeps /health answering while the other is
# inside a dispatch; row claims stop two workers sending the same notification.
workers = int(os.environ.get("WORKERS", "2"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# smart-check runs the analyzer and then a synchronous dispatch of up to
# DISPATCH_BATCH_LIMIT (50) rows, one push request each. At a few seconds per
# slow push endpoint the default 30s would kill a worker mid-batch and leave
# its claims to expire; 120s covers a full batch. Raise it together with
# DISPATCH_BATCH_LIMIT, and keep it under CLAIM_TIMEOUT_MINUTES so a live
# worker's claims are never taken over by the next run.
timeout = int(os.environ.get("TIMEOUT", "120"))

# Logs go to stdout/stderr for the container runtime to collect.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

# Let an in-flight dispatch finish on restart instead of abandoning claimed rows.
graceful_timeout = 60
