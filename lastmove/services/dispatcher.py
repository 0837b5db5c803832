"""
Delivery dispatcher: sends due notifications through the push transport.

Public API
----------
dispatch_pending(db, transport, now, ...)             -> DispatchResult
send_immediate(db, transport, user_id, message, now)  -> PushResponse
parse_subscription(raw, user_id)                      -> dict

Selection
---------
Up to `limit` rows that are unsent, pending/retrying, due (scheduled_at <=
now), below the retry cap and not held by another run; urgent first, then
oldest first.

Claiming
--------
Each selected row is claimed with a conditional UPDATE on claimed_at before
anything is sent. A row another dispatcher holds (claim younger than
CLAIM_TIMEOUT_MINUTES) is left alone, so overlapping runs never send the same
row twice. Claims are released when the row is settled.

Per-record outcome
------------------
  no subscription     → skipped, released, no retry consumed
  2xx from transport  → sent
  anything else       → retry_count + 1, error_message stored;
                        failed_permanent once retry_count >= max_retries
One record's failure never aborts the rest of the batch.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import case, or_, update
from sqlalchemy.orm import Session

from lastmove.core.config import settings
from lastmove.core.errors import (
    InvalidSubscriptionError,
    PushNotConfiguredError,
    SubscriptionNotFoundError,
)
from lastmove.models.notification import (
    Notification,
    NotificationPriority,
    NotificationStatus,
)
from lastmove.models.user import UserNotificationSettings
from lastmove.services.push import PushResponse, PushTransport
from lastmove.services.urgency import as_utc, utcnow

logger = logging.getLogger(__name__)

NOTIFICATION_TAG = "lastmove-notification"
_ERROR_MESSAGE_MAX = 1000

_PRIORITY_RANK = case(
    (Notification.priority == NotificationPriority.urgent, 4),
    (Notification.priority == NotificationPriority.high, 3),
    (Notification.priority == NotificationPriority.normal, 2),
    (Notification.priority == NotificationPriority.low, 1),
    else_=0,
)

_TRANSPORT_URGENCY = {
    NotificationPriority.urgent.value: "high",
    NotificationPriority.high.value: "high",
    NotificationPriority.low.value: "low",
}


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class DispatchResult:
    claimed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0     # no subscription on file
    exhausted: int = 0   # moved to failed_permanent during this run

    @property
    def message(self) -> str:
        return f"{self.sent} sent, {self.failed} failed, {self.skipped} skipped"


@dataclass
class PushMessage:
    """A one-off message for send_immediate()."""
    title: str
    body: str
    priority: NotificationPriority = NotificationPriority.normal
    data: Optional[dict[str, Any]] = None
    icon: Optional[str] = None
    badge: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def transport_urgency(priority) -> str:
    return _TRANSPORT_URGENCY.get(_ev(priority), "normal")


def _ensure_configured(transport: PushTransport) -> None:
    missing = transport.missing_config()
    if missing:
        logger.error("Push delivery refused: missing configuration %s", ", ".join(missing))
        raise PushNotConfiguredError(missing=missing)


def parse_subscription(raw: str, user_id: int) -> dict[str, Any]:
    """Decode a stored subscription blob; raise InvalidSubscriptionError if unusable."""
    try:
        subscription = json.loads(raw)
    except (ValueError, TypeError) as exc:
        raise InvalidSubscriptionError(user_id, f"not valid JSON ({exc})") from exc

    if not isinstance(subscription, dict) or not subscription.get("endpoint"):
        raise InvalidSubscriptionError(user_id, "missing endpoint")
    keys = subscription.get("keys")
    if not isinstance(keys, dict) or not keys.get("p256dh") or not keys.get("auth"):
        raise InvalidSubscriptionError(user_id, "missing p256dh/auth keys")
    return {
        "endpoint": subscription["endpoint"],
        "keys": {"p256dh": keys["p256dh"], "auth": keys["auth"]},
    }


def _parse_data(raw: Optional[str]) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (ValueError, TypeError):
        return {}
    return data if isinstance(data, dict) else {}


def _payload(
    title: str,
    body: str,
    priority,
    now: datetime,
    data: Optional[dict[str, Any]] = None,
    icon: Optional[str] = None,
    badge: Optional[str] = None,
    notification_id: Optional[int] = None,
) -> str:
    return json.dumps({
        "title": title,
        "body": body,
        "icon": icon or settings.NOTIFICATION_ICON,
        "badge": badge or settings.NOTIFICATION_BADGE,
        "data": data or {},
        "notification_id": notification_id,
        "priority": _ev(priority),
        "timestamp": int(now.timestamp() * 1000),
        "tag": NOTIFICATION_TAG,
    })


def build_payload(notification: Notification, now: datetime) -> str:
    return _payload(
        title=notification.title,
        body=notification.body,
        priority=notification.priority,
        now=now,
        data=_parse_data(notification.data),
        icon=notification.icon,
        badge=notification.badge,
        notification_id=notification.id,
    )


def _subscriptions_for(db: Session, user_ids: set[int]) -> dict[int, str]:
    if not user_ids:
        return {}
    rows = (
        db.query(UserNotificationSettings.user_id, UserNotificationSettings.push_subscription)
        .filter(
            UserNotificationSettings.user_id.in_(user_ids),
            UserNotificationSettings.push_subscription.isnot(None),
            UserNotificationSettings.push_subscription != "",
        )
        .all()
    )
    return {r.user_id: r.push_subscription for r in rows}


# ---------------------------------------------------------------------------
# Selection and claiming
# ---------------------------------------------------------------------------

def _claim_cutoff(now: datetime) -> datetime:
    return now - timedelta(minutes=settings.CLAIM_TIMEOUT_MINUTES)


def _dispatchable(now: datetime, max_retries: int) -> list:
    """Row conditions shared by selection and claiming."""
    return [
        Notification.is_sent == False,  # noqa: E712
        Notification.status.in_([NotificationStatus.pending, NotificationStatus.retrying]),
        Notification.retry_count < max_retries,
        or_(
            Notification.claimed_at.is_(None),
            Notification.claimed_at < _claim_cutoff(now),
        ),
    ]


def fetch_pending(
    db: Session,
    now: datetime,
    limit: int,
    max_retries: int,
) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.scheduled_at <= now, *_dispatchable(now, max_retries))
        .order_by(_PRIORITY_RANK.desc(), Notification.scheduled_at.asc(), Notification.id.asc())
        .limit(limit)
        .all()
    )


def claim(
    db: Session,
    notification_id: int,
    now: datetime,
    max_retries: Optional[int] = None,
) -> bool:
    """
    Atomically take ownership of one row. False if another run holds it, or
    settled it (sent, or out of retries) after it was selected.
    """
    max_retries = max_retries if max_retries is not None else settings.MAX_RETRY_COUNT
    stmt = (
        update(Notification)
        .where(Notification.id == notification_id, *_dispatchable(now, max_retries))
        .values(claimed_at=now)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount == 1


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------

def _mark_sent(notification: Notification, now: datetime) -> None:
    notification.status = NotificationStatus.sent
    notification.is_sent = True
    notification.sent_at = now
    notification.error_message = None
    notification.claimed_at = None


def _mark_failed(notification: Notification, error: str, max_retries: int) -> bool:
    """Record a failed attempt. Returns True if the row is now exhausted."""
    notification.retry_count = (notification.retry_count or 0) + 1
    notification.error_message = error[:_ERROR_MESSAGE_MAX]
    notification.claimed_at = None
    if notification.retry_count >= max_retries:
        notification.status = NotificationStatus.failed_permanent
        return True
    notification.status = NotificationStatus.retrying
    return False


# ---------------------------------------------------------------------------
# Public: batch dispatch
# ---------------------------------------------------------------------------

def dispatch_pending(
    db: Session,
    transport: PushTransport,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
    max_retries: Optional[int] = None,
) -> DispatchResult:
    """
    Send every due notification (bounded batch). Raises PushNotConfiguredError
    before touching any row if the transport lacks credentials; per-record
    failures are recorded on the row and never raised.
    """
    _ensure_configured(transport)

    now = as_utc(now) if now else utcnow()
    limit = limit if limit is not None else settings.DISPATCH_BATCH_LIMIT
    max_retries = max_retries if max_retries is not None else settings.MAX_RETRY_COUNT
    result = DispatchResult()

    candidates = fetch_pending(db, now, limit, max_retries)
    claimed = [n for n in candidates if claim(db, n.id, now, max_retries)]
    db.commit()
    result.claimed = len(claimed)

    if not claimed:
        logger.info("No pending notifications to dispatch")
        return result

    subscriptions = _subscriptions_for(db, {n.user_id for n in claimed})

    for notification in claimed:
        try:
            raw = subscriptions.get(notification.user_id)
            if not raw:
                logger.info(
                    "No push subscription for user %s; notification %s left pending",
                    notification.user_id, notification.id,
                )
                notification.claimed_at = None
                result.skipped += 1
                db.commit()
                continue

            subscription = parse_subscription(raw, notification.user_id)
            response = transport.send(
                subscription,
                build_payload(notification, now),
                ttl_seconds=settings.PUSH_TTL_SECONDS,
                urgency=transport_urgency(notification.priority),
            )
            if response.ok:
                _mark_sent(notification, now)
                result.sent += 1
            else:
                error = f"Push service returned status {response.status_code}"
                logger.warning("Notification %s not delivered: %s", notification.id, error)
                result.failed += 1
                if _mark_failed(notification, error, max_retries):
                    result.exhausted += 1
        except Exception as exc:  # recorded on the row, never raised
            db.rollback()
            error = str(exc) or exc.__class__.__name__
            logger.warning("Notification %s failed: %s", notification.id, error)
            result.failed += 1
            if _mark_failed(notification, error, max_retries):
                result.exhausted += 1
        db.commit()

    logger.info(
        "Dispatch finished: %d claimed, %s, %d exhausted",
        result.claimed, result.message, result.exhausted,
    )
    return result


# ---------------------------------------------------------------------------
# Public: immediate send
# ---------------------------------------------------------------------------

def send_immediate(
    db: Session,
    transport: PushTransport,
    user_id: int,
    message: PushMessage,
    now: Optional[datetime] = None,
) -> PushResponse:
    """Push a one-off message straight to a user, without a Notification row."""
    _ensure_configured(transport)
    now = as_utc(now) if now else utcnow()

    raw = _subscriptions_for(db, {user_id}).get(user_id)
    if not raw:
        raise SubscriptionNotFoundError(user_id)
    subscription = parse_subscription(raw, user_id)

    response = transport.send(
        subscription,
        _payload(
            title=message.title,
            body=message.body,
            priority=message.priority,
            now=now,
            data=message.data,
            icon=message.icon,
            badge=message.badge,
        ),
        ttl_seconds=settings.PUSH_TTL_SECONDS,
        urgency=transport_urgency(message.priority),
    )
    if response.ok:
        logger.info("Immediate notification sent to user %s", user_id)
    else:
        logger.warning(
            "Immediate notification to user %s rejected with status %s",
            user_id, response.status_code,
        )
    return response
