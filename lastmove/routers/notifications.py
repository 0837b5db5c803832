"""
Notification engine router: the trigger surface for cron callers and ops.

POST /notifications/smart-check   - check (gated) | trigger (ungated) | stats
GET  /notifications/stats/{id}    - per-user notification stats
POST /notifications/send          - dispatch pending | send immediate
GET  /notifications/send          - push configuration status
POST /notifications/generate      - run one generator: daily | inactive | streak
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lastmove.core.config import settings
from lastmove.core.errors import (
    MissingUserIdError,
    PushNotConfiguredError,
    UnknownActionError,
)
from lastmove.db.base import get_db
from lastmove.models.notification import Notification
from lastmove.schemas.common import ErrorResponse
from lastmove.schemas.notification import (
    AnalysisResponse,
    CheckResponse,
    DispatchResponse,
    GenerateRequest,
    GenerateResponse,
    NotificationOut,
    NotificationStatsResponse,
    PushStatusResponse,
    SendRequest,
    SendResponse,
    SmartCheckAction,
    SmartCheckRequest,
    SmartCheckResponse,
)
from lastmove.services.analyzer import AnalysisResult
from lastmove.services.dispatcher import (
    DispatchResult,
    PushMessage,
    dispatch_pending,
    send_immediate,
)
from lastmove.services.engagement import (
    create_long_inactive_reminders,
    create_streak_celebrations,
)
from lastmove.services.notification_check import (
    CheckResult,
    NotificationStats,
    check_scheduled_notifications,
    get_user_notification_stats,
    trigger_manual_check,
)
from lastmove.services.push import PushTransport, get_push_transport

router = APIRouter(prefix="/notifications", tags=["notifications"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    """Extract bare string value from a str-enum or plain str."""
    return v.value if hasattr(v, "value") else str(v)


def _analysis_to_response(a: AnalysisResult) -> AnalysisResponse:
    return AnalysisResponse(
        analyzed_activities=a.analyzed_activities,
        notification_targets=a.notification_targets,
        created=len(a.created_ids),
        skipped_duplicates=a.skipped_duplicates,
        anomalies=a.anomalies,
        message=a.message,
    )


def _dispatch_to_response(d: DispatchResult) -> DispatchResponse:
    return DispatchResponse(
        claimed=d.claimed,
        sent=d.sent,
        failed=d.failed,
        skipped=d.skipped,
        exhausted=d.exhausted,
        message=d.message,
    )


def _check_to_response(c: CheckResult) -> CheckResponse:
    return CheckResponse(
        is_regular_time=c.is_regular_time,
        current_time=c.current_time.isoformat(),
        next_regular_time=c.next_regular_time.isoformat(),
        message=c.message,
        analysis=_analysis_to_response(c.analysis) if c.analysis else None,
    )


def _notification_to_out(n: Notification) -> NotificationOut:
    return NotificationOut(
        id=n.id,
        activity_id=n.activity_id,
        type=_ev(n.type),
        priority=_ev(n.priority),
        status=_ev(n.status),
        title=n.title,
        body=n.body,
        scheduled_at=n.scheduled_at.isoformat(),
        sent_at=n.sent_at.isoformat() if n.sent_at else None,
        retry_count=n.retry_count,
        error_message=n.error_message,
        created_at=n.created_at.isoformat() if n.created_at else "",
    )


def _stats_to_response(user_id: int, s: NotificationStats) -> NotificationStatsResponse:
    return NotificationStatsResponse(
        user_id=user_id,
        total=s.total,
        sent=s.sent,
        pending=s.pending,
        failed=s.failed,
        recent=[_notification_to_out(n) for n in s.recent],
    )


def _dispatch_or_error(
    db: Session, transport: PushTransport
) -> tuple[Optional[DispatchResponse], Optional[ErrorResponse]]:
    """Dispatch, turning a configuration refusal into a reportable error."""
    try:
        return _dispatch_to_response(dispatch_pending(db, transport)), None
    except PushNotConfiguredError as exc:
        return None, ErrorResponse(**exc.to_dict())


# ---------------------------------------------------------------------------
# POST /notifications/smart-check
# ---------------------------------------------------------------------------

@router.post(
    "/smart-check",
    response_model=SmartCheckResponse,
    summary="Hourly notification check, manual trigger, or user stats",
    responses={
        200: {"description": "Action completed."},
        400: {"description": "Unknown action, or stats without user_id."},
    },
)
def smart_check(
    payload: SmartCheckRequest,
    db: Session = Depends(get_db),
    transport: PushTransport = Depends(get_push_transport),
):
    """
    ### Actions
    | Action | Behaviour |
    |---|---|
    | `check`   | Analyze only at a regular time (19:00 / 21:00 / 23:00 local, ±5 min), then dispatch pending |
    | `trigger` | Analyze unconditionally, then dispatch pending |
    | `stats`   | Notification stats for `user_id` |

    A push configuration error does not discard the analysis: it is returned
    in `send_error`.
    """
    action = payload.action
    allowed = [a.value for a in SmartCheckAction]

    if action == SmartCheckAction.check.value:
        check = check_scheduled_notifications(db)
        send_result, send_error = (None, None)
        if check.is_regular_time:
            send_result, send_error = _dispatch_or_error(db, transport)
        return SmartCheckResponse(
            success=True,
            action=action,
            message=check.message,
            check_result=_check_to_response(check),
            send_result=send_result,
            send_error=send_error,
        )

    if action == SmartCheckAction.trigger.value:
        analysis = trigger_manual_check(db)
        send_result, send_error = _dispatch_or_error(db, transport)
        return SmartCheckResponse(
            success=True,
            action=action,
            message=f"Manual check: {analysis.message}",
            trigger_result=_analysis_to_response(analysis),
            send_result=send_result,
            send_error=send_error,
        )

    if action == SmartCheckAction.stats.value:
        if payload.user_id is None:
            raise MissingUserIdError(action)
        stats = get_user_notification_stats(db, payload.user_id)
        return SmartCheckResponse(
            success=True,
            action=action,
            message="Notification stats loaded",
            stats=_stats_to_response(payload.user_id, stats),
        )

    raise UnknownActionError(action, allowed)


# ---------------------------------------------------------------------------
# GET /notifications/stats/{user_id}
# ---------------------------------------------------------------------------

@router.get(
    "/stats/{user_id}",
    response_model=NotificationStatsResponse,
    summary="Notification stats for one user (last 30 days)",
)
def user_stats(user_id: int, db: Session = Depends(get_db)):
    return _stats_to_response(user_id, get_user_notification_stats(db, user_id))


# ---------------------------------------------------------------------------
# /notifications/send
# ---------------------------------------------------------------------------

@router.post(
    "/send",
    response_model=SendResponse,
    summary="Dispatch pending notifications, or push one message immediately",
    responses={
        200: {"description": "Dispatch ran (per-record failures are in the counts)."},
        404: {"description": "Immediate send: user has no push subscription."},
        422: {"description": "Invalid request or unusable stored subscription."},
        503: {"description": "Push delivery is not configured."},
    },
)
def send(
    payload: SendRequest,
    db: Session = Depends(get_db),
    transport: PushTransport = Depends(get_push_transport),
):
    if payload.type == "pending":
        result = dispatch_pending(db, transport)
        return SendResponse(
            success=True,
            message=result.message,
            result=_dispatch_to_response(result),
        )

    n = payload.notification
    response = send_immediate(
        db,
        transport,
        payload.user_id,
        PushMessage(title=n.title, body=n.body, priority=n.priority, data=n.data),
    )
    return SendResponse(
        success=response.ok,
        message=(
            "Notification sent"
            if response.ok
            else f"Push service returned status {response.status_code}"
        ),
        user_id=payload.user_id,
        status_code=response.status_code,
    )


@router.get(
    "/send",
    response_model=PushStatusResponse,
    summary="Push delivery configuration status",
)
def send_status():
    return PushStatusResponse(
        vapid_configured=settings.vapid_configured,
        vapid_public_key=settings.VAPID_PUBLIC_KEY or None,
    )


# ---------------------------------------------------------------------------
# POST /notifications/generate
# ---------------------------------------------------------------------------

@router.post(
    "/generate",
    response_model=GenerateResponse,
    summary="Create notifications of one kind now, without dispatching",
    responses={422: {"description": "Unknown notification type."}},
)
def generate(payload: GenerateRequest, db: Session = Depends(get_db)):
    """
    | Type | Generator |
    |---|---|
    | `daily`    | Urgency analyzer, scheduler gate bypassed |
    | `inactive` | Long-inactive reminders |
    | `streak`   | Streak celebrations |

    Created rows are pending; the next dispatch sends them.
    """
    if payload.type == "daily":
        analysis = trigger_manual_check(db)
        return GenerateResponse(
            success=True,
            type=payload.type,
            candidates=analysis.notification_targets,
            created=len(analysis.created_ids),
            skipped_duplicates=analysis.skipped_duplicates,
            message=analysis.message,
        )

    if payload.type == "inactive":
        result = create_long_inactive_reminders(db)
    else:
        result = create_streak_celebrations(db)
    return GenerateResponse(
        success=True,
        type=payload.type,
        candidates=result.candidates,
        created=len(result.created_ids),
        skipped_duplicates=result.skipped_duplicates,
        message=result.message,
    )
