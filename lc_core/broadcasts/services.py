# lc_core/broadcasts/services.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Iterable, Optional, Sequence

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from lc_core.audit.services import AuditService
from lc_core.broadcasts.audience import AudienceMember, resolve_targets
from lc_core.broadcasts.conditions import parse_filter_rules
from lc_core.broadcasts.exceptions import AudienceResolutionError, InvalidFilterRules
from lc_core.broadcasts.fetch import fetch_all_qs
from lc_core.broadcasts.line_push import push_message, text_message
from lc_core.broadcasts.models import Broadcast, BroadcastStatus, MessageLog, MessageLogStatus
from lc_core.broadcasts.selectors import BroadcastSelector
from lc_core.common.scope import Scope
from lc_core.reservations.selectors import upcoming_reservation_rows_qs
from lc_core.tenants.selectors import get_line_channel_token

logger = logging.getLogger(__name__)

DEFAULT_PUSH_BATCH_SIZE = 10
PREVIEW_SAMPLE_SIZE = 20
MESSAGE_TYPE_BROADCAST = "broadcast"


@dataclass(frozen=True)
class NextReservation:
    date: date
    time: Optional[time] = None

    @property
    def date_text(self) -> str:
        return self.date.isoformat()

    @property
    def time_text(self) -> str:
        return self.time.strftime("%H:%M") if self.time else ""


@dataclass(frozen=True)
class DeliverySummary:
    sent: int = 0
    failed: int = 0
    no_uid: int = 0


@dataclass(frozen=True)
class BroadcastResult:
    broadcast: Broadcast
    total: int
    delivery: Optional[DeliverySummary] = None

    def as_response(self) -> dict[str, Any]:
        if self.delivery is None:
            return {
                "ok": True,
                "broadcast_id": str(self.broadcast.id),
                "total": self.total,
                "status": self.broadcast.status,
            }
        return {
            "ok": True,
            "broadcast_id": str(self.broadcast.id),
            "total": self.total,
            "sent": self.delivery.sent,
            "failed": self.delivery.failed,
            "no_uid": self.delivery.no_uid,
        }


def format_send_date(d: date) -> str:
    # Japanese short date, no zero padding (2026/4/1)
    return f"{d.year}/{d.month}/{d.day}"


def render_message(
    template: str,
    member: AudienceMember,
    next_reservation: Optional[NextReservation],
    send_date: str,
) -> str:
    replacements = {
        "{name}": member.patient_name or "",
        "{patient_id}": member.patient_id,
        "{send_date}": send_date,
        "{next_reservation_date}": next_reservation.date_text if next_reservation else "",
        "{next_reservation_time}": next_reservation.time_text if next_reservation else "",
    }
    text = template
    for placeholder, value in replacements.items():
        text = text.replace(placeholder, value)
    return text


def get_next_reservations(
    patient_ids: Iterable[str],
    *,
    scope: Scope,
    today: Optional[date] = None,
) -> dict[str, NextReservation]:
    """
    Earliest non-canceled reservation on or after today, per patient.
    Patients without one are absent from the result.
    """
    ids = list(dict.fromkeys(pid for pid in patient_ids if pid))
    if not ids:
        return {}

    today = today or timezone.localdate()
    result = fetch_all_qs(
        lambda: upcoming_reservation_rows_qs(scope=scope, patient_ids=ids, today=today),
        name="reservations",
    )
    if result.error is not None:
        # Template variables render empty; the send itself goes ahead.
        logger.warning("next reservations unavailable, rendering without them: %s", result.error)

    upcoming: dict[str, NextReservation] = {}
    for row in result.rows:
        pid = row["patient_id"]
        if pid not in upcoming:
            upcoming[pid] = NextReservation(date=row["reserved_date"], time=row.get("reserved_time"))
    return upcoming


def _batch_size() -> int:
    size = int(getattr(settings, "BROADCAST_PUSH_BATCH_SIZE", DEFAULT_PUSH_BATCH_SIZE) or DEFAULT_PUSH_BATCH_SIZE)
    return max(size, 1)


def _default_name() -> str:
    return f"配信 {format_send_date(timezone.localdate())}"


class BroadcastService:
    """
    Broadcast write-model operations.

    Notes:
    - The audience is recomputed at send time and never stored; only counters are.
    - Pushes run on a thread pool in fixed-size batches; DB writes stay on the caller's thread.
    - A failed push is counted and logged, never raised.
    """

    # -------------------------
    # Preview (no writes)
    # -------------------------
    @staticmethod
    def preview(*, scope: Scope, filter_rules: Optional[dict]) -> tuple[int, list[AudienceMember]]:
        targets = resolve_targets(parse_filter_rules(filter_rules), scope=scope)
        return len(targets), targets[:PREVIEW_SAMPLE_SIZE]

    # -------------------------
    # Create (+ immediate send)
    # -------------------------
    @staticmethod
    def create_broadcast(
        *,
        scope: Scope,
        message: str,
        name: Optional[str] = None,
        filter_rules: Optional[dict] = None,
        scheduled_at: Optional[datetime] = None,
        created_by_id: Optional[int] = None,
        today: Optional[date] = None,
    ) -> BroadcastResult:
        if not (message or "").strip():
            raise ValidationError("message is required.")

        rules = parse_filter_rules(filter_rules)
        targets = resolve_targets(rules, scope=scope)

        broadcast = BroadcastService._persist(
            scope=scope,
            name=name or _default_name(),
            filter_rules=filter_rules or {},
            message=message,
            scheduled_at=scheduled_at,
            total=len(targets),
            created_by_id=created_by_id,
        )

        if scheduled_at is not None:
            logger.info("broadcast %s scheduled for %s (%s targets)", broadcast.id, scheduled_at, len(targets))
            return BroadcastResult(broadcast=broadcast, total=len(targets))

        summary = BroadcastService.deliver(broadcast, targets, scope=scope, today=today)
        return BroadcastResult(broadcast=broadcast, total=len(targets), delivery=summary)

    @staticmethod
    @transaction.atomic
    def _persist(
        *,
        scope: Scope,
        name: str,
        filter_rules: dict,
        message: str,
        scheduled_at: Optional[datetime],
        total: int,
        created_by_id: Optional[int],
    ) -> Broadcast:
        broadcast = Broadcast.objects.create(
            tenant_id=scope.tenant_id,
            name=name,
            filter_rules=filter_rules,
            message_content=message,
            status=BroadcastStatus.SCHEDULED if scheduled_at else BroadcastStatus.SENDING,
            scheduled_at=scheduled_at,
            total_targets=total,
            created_by_id=created_by_id,
        )
        AuditService.log(
            scope=scope,
            event_code="broadcast.created",
            entity_type="broadcast",
            entity_id=broadcast.id,
            actor_user_id=created_by_id,
            metadata={
                "name": name,
                "total_targets": total,
                "scheduled_at": scheduled_at.isoformat() if scheduled_at else None,
            },
        )
        return broadcast

    # -------------------------
    # Delivery
    # -------------------------
    @staticmethod
    def deliver(
        broadcast: Broadcast,
        targets: Sequence[AudienceMember],
        *,
        scope: Scope,
        today: Optional[date] = None,
    ) -> DeliverySummary:
        """
        Pushes the rendered message to every target with a LINE id and writes one
        MessageLog per target. Batches run one after another; inside a batch every
        push is awaited before the next batch starts.
        """
        today = today or timezone.localdate()
        send_date = format_send_date(today)
        template = broadcast.message_content

        token = get_line_channel_token(tenant_id=scope.tenant_id)
        upcoming = get_next_reservations(
            [t.patient_id for t in targets if t.line_id],
            scope=scope,
            today=today,
        )

        sent = failed = no_uid = 0
        size = _batch_size()

        with ThreadPoolExecutor(max_workers=size) as pool:
            for start in range(0, len(targets), size):
                batch = targets[start : start + size]

                pending = []
                for member in batch:
                    if not member.line_id:
                        pending.append((member, template, None))
                        continue
                    content = render_message(template, member, upcoming.get(member.patient_id), send_date)
                    future = pool.submit(
                        push_message,
                        member.line_id,
                        [text_message(content)],
                        scope=scope,
                        channel_token=token,
                    )
                    pending.append((member, content, future))

                logs = []
                for member, content, future in pending:
                    if future is None:
                        no_uid += 1
                        status = MessageLogStatus.NO_UID
                    else:
                        try:
                            ok = bool(future.result().ok)
                        except Exception:
                            logger.exception("LINE push raised for patient %s", member.patient_id)
                            ok = False
                        if ok:
                            sent += 1
                            status = MessageLogStatus.SENT
                        else:
                            failed += 1
                            status = MessageLogStatus.FAILED
                            logger.warning("broadcast %s: push failed for patient %s", broadcast.id, member.patient_id)

                    logs.append(
                        MessageLog(
                            tenant_id=scope.tenant_id,
                            patient_id=member.patient_id,
                            line_uid=member.line_id,
                            message_type=MESSAGE_TYPE_BROADCAST,
                            content=content,
                            status=status,
                            campaign=broadcast,
                        )
                    )
                MessageLog.objects.bulk_create(logs)

        summary = DeliverySummary(sent=sent, failed=failed, no_uid=no_uid)
        BroadcastService._mark_sent(broadcast, summary, scope=scope)
        logger.info(
            "broadcast %s delivered: total=%s sent=%s failed=%s no_uid=%s",
            broadcast.id,
            len(targets),
            sent,
            failed,
            no_uid,
        )
        return summary

    @staticmethod
    @transaction.atomic
    def _mark_sent(broadcast: Broadcast, summary: DeliverySummary, *, scope: Scope) -> None:
        broadcast.status = BroadcastStatus.SENT
        broadcast.sent_at = timezone.now()
        broadcast.sent_count = summary.sent
        broadcast.failed_count = summary.failed
        broadcast.no_uid_count = summary.no_uid
        broadcast.save(
            update_fields=["status", "sent_at", "sent_count", "failed_count", "no_uid_count", "updated_at"]
        )
        AuditService.log(
            scope=scope,
            event_code="broadcast.sent",
            entity_type="broadcast",
            entity_id=broadcast.id,
            actor_user_id=broadcast.created_by_id,
            metadata={"sent": summary.sent, "failed": summary.failed, "no_uid": summary.no_uid},
        )

    # -------------------------
    # Scheduled sends
    # -------------------------
    @staticmethod
    def send_due_scheduled(*, now: Optional[datetime] = None, scope: Optional[Scope] = None) -> list[BroadcastResult]:
        """
        Sends every scheduled broadcast whose time has come, re-resolving its audience.

        Each broadcast is claimed (scheduled -> sending) with a conditional update so
        two concurrent runners never send the same one. A broadcast whose audience
        cannot be resolved, or whose delivery raises, is marked failed and the run
        moves on.
        """
        results: list[BroadcastResult] = []

        for broadcast in list(BroadcastSelector.due_scheduled(now=now, scope=scope)):
            claimed = Broadcast.objects.filter(id=broadcast.id, status=BroadcastStatus.SCHEDULED).update(
                status=BroadcastStatus.SENDING,
                updated_at=timezone.now(),
            )
            if not claimed:
                continue
            broadcast.status = BroadcastStatus.SENDING

            b_scope = Scope(tenant_id=broadcast.tenant_id)
            try:
                targets = resolve_targets(broadcast.filter_rules, scope=b_scope)

                broadcast.total_targets = len(targets)
                broadcast.save(update_fields=["total_targets", "updated_at"])

                summary = BroadcastService.deliver(broadcast, targets, scope=b_scope)
            except (AudienceResolutionError, InvalidFilterRules) as exc:
                logger.error("scheduled broadcast %s failed to resolve audience: %s", broadcast.id, exc)
                BroadcastService._mark_failed(broadcast)
                continue
            except Exception:
                logger.exception("scheduled broadcast %s failed", broadcast.id)
                BroadcastService._mark_failed(broadcast)
                continue

            results.append(BroadcastResult(broadcast=broadcast, total=len(targets), delivery=summary))

        return results

    @staticmethod
    def _mark_failed(broadcast: Broadcast) -> None:
        # Only a broadcast still in flight is moved; a completed send keeps its status.
        Broadcast.objects.filter(id=broadcast.id, status=BroadcastStatus.SENDING).update(
            status=BroadcastStatus.FAILED,
            updated_at=timezone.now(),
        )
        broadcast.refresh_from_db(fields=["status", "updated_at"])
