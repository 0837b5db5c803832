"""
Push transport: the only place that talks to the Web Push service.

Contract used by the dispatcher:
  send(subscription, payload, ttl_seconds, urgency) -> PushResponse(status_code)

A push-service answer (any HTTP status) is returned, never raised; network
and encryption errors propagate as exceptions and are handled per record by
the caller.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from pywebpush import WebPushException, webpush

from lastmove.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class PushResponse:
    status_code: int
    body: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class PushTransport(ABC):
    """Base transport. Subclasses implement send()."""

    def missing_config(self) -> list[str]:
        return []

    @abstractmethod
    def send(
        self,
        subscription: dict[str, Any],
        payload: str,
        ttl_seconds: int,
        urgency: str,
    ) -> PushResponse:
        ...


class WebPushTransport(PushTransport):
    """VAPID-signed Web Push via pywebpush."""

    def __init__(self, public_key: str, private_key: str, subject: str):
        self.public_key = public_key
        self.private_key = private_key
        self.subject = subject

    def missing_config(self) -> list[str]:
        missing = []
        if not self.public_key:
            missing.append("VAPID_PUBLIC_KEY")
        if not self.private_key:
            missing.append("VAPID_PRIVATE_KEY")
        return missing

    def send(
        self,
        subscription: dict[str, Any],
        payload: str,
        ttl_seconds: int,
        urgency: str,
    ) -> PushResponse:
        try:
            response = webpush(
                subscription_info=subscription,
                data=payload,
                vapid_private_key=self.private_key,
                # pywebpush adds "aud"/"exp" to the claims dict it is given
                vapid_claims={"sub": self.subject},
                ttl=ttl_seconds,
                headers={"Urgency": urgency},
            )
        except WebPushException as exc:
            if exc.response is None:
                raise
            logger.debug("Push service rejected message: %s", exc)
            return PushResponse(status_code=exc.response.status_code, body=exc.response.text)
        return PushResponse(status_code=response.status_code, body=response.text)


def get_push_transport() -> PushTransport:
    """FastAPI dependency; overridden with a fake transport in tests."""
    return WebPushTransport(
        public_key=settings.VAPID_PUBLIC_KEY,
        private_key=settings.VAPID_PRIVATE_KEY,
        subject=settings.VAPID_SUBJECT,
    )
