import copy
import logging

from services import dates, statuses
from services.errors import InvalidTransition

logger = logging.getLogger(__name__)


def _check_transition(current, target):
    if not statuses.is_valid_status(target):
        raise InvalidTransition(f"Unknown status '{target}'.")
    if statuses.is_adjacent(current, target):
        return
    if current == target:
        raise InvalidTransition(f"Load is already in '{target}'.")
    if current == statuses.ARRIVED and statuses.status_index(target) > statuses.status_index(current):
        raise InvalidTransition("Load has arrived; there is no next stage.")
    allowed = ", ".join(statuses.allowed_transitions(current)) or "none"
    raise InvalidTransition(
        f"Cannot move from '{current}' to '{target}'. Allowed: {allowed}."
    )


def _record_milestone(load, target, effective):
    field = statuses.MILESTONE_FIELDS.get(target)
    if not field:
        return
    actual_dates = load.setdefault("actual_dates", {})
    if (
        target == statuses.IN_TRANSIT_TO_DESTINATION
        and actual_dates.get("warehouse_dispatch")
    ):
        # dispatch was already stamped by loading
        return
    actual_dates[field] = effective
    if target == statuses.ARRIVED:
        load["actual_delivery_date"] = effective


def transition(load, target_status, effective_date=None, notes=None, now=None):
    """Move a load to an adjacent stage and return the updated copy.

    The input load is left untouched. The new timeline entry records the
    system time in ``timestamp`` and the caller's effective date (or the
    system time) in ``user_entered_date``; the same effective date is written
    to ``status_dates`` and to the milestone field mapped to the target stage.
    """
    current = (load or {}).get("status")
    _check_transition(current, target_status)

    stamp = dates.to_iso(now or dates.now())
    effective = dates.to_iso(effective_date) or stamp

    updated = copy.deepcopy(load)
    updated["status"] = target_status
    updated.setdefault("timeline", []).append(
        {
            "status": target_status,
            "timestamp": stamp,
            "user_entered_date": effective,
            "notes": notes,
        }
    )
    updated.setdefault("status_dates", {})[target_status] = effective
    _record_milestone(updated, target_status, effective)
    updated["updated_at"] = stamp

    logger.info(
        "Load %s moved %s -> %s (effective %s)",
        updated.get("id"),
        current,
        target_status,
        effective,
    )
    return updated
