from datetime import time
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://lastmove:lastmove@db:5432/lastmove"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    # Wall-clock timezone for regular check times and the day-end reminder.
    TIMEZONE: str = "Asia/Seoul"

    # Comma-separated HH:MM local times at which the hourly check may analyze.
    REGULAR_NOTIFICATION_TIMES: str = "19:00,21:00,23:00"
    REGULAR_TIME_TOLERANCE_MINUTES: int = 5

    DISPATCH_BATCH_LIMIT: int = 50
    MAX_RETRY_COUNT: int = 3
    PUSH_TTL_SECONDS: int = 60 * 60 * 24
    CLAIM_TIMEOUT_MINUTES: int = 10

    # 0 keeps the gate-bounded behaviour: no de-duplication of reminders.
    NOTIFICATION_DEDUPE_WINDOW_MINUTES: int = 0

    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_SUBJECT: str = "mailto:notifications@lastmove.app"

    NOTIFICATION_ICON: str = "/icon-192x192.png"
    NOTIFICATION_BADGE: str = "/badge-72x72.png"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)

    @property
    def regular_times(self) -> list[time]:
        return [
            time.fromisoformat(t.strip())
            for t in self.REGULAR_NOTIFICATION_TIMES.split(",")
            if t.strip()
        ]

    @property
    def vapid_configured(self) -> bool:
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)


settings = Settings()
