import logging
import uuid

from services import bucketing, dates, file_intake, state_machine, statuses, validation
from services.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

DELIVERED_NOTE = "Load delivered to final destination"
ORDER_RECEIVED_NOTE = "Order received"

PARTY_KEYS = ("company", "address", "contact")
WAREHOUSE_KEYS = ("pallet_location", "incoming_date", "notes")
TRANSPORT_KEYS = ("truck_id", "driver_id", "carrier", "dispatch_date")


def _clean_value(value):
    if value is None:
        return ""
    return str(value).strip()


def _clean_optional(value):
    text = _clean_value(value)
    return text or None


def _clean_party(party):
    party = party if isinstance(party, dict) else {}
    return {key: _clean_value(party.get(key)) for key in PARTY_KEYS}


def _clean_items(items):
    cleaned = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        quantity = item.get("quantity")
        cleaned.append(
            {
                "description": _clean_value(item.get("description")),
                "quantity": int(float(quantity)) if quantity not in (None, "") else 0,
            }
        )
    return cleaned


def _clean_dates(values, keys):
    values = values if isinstance(values, dict) else {}
    return {key: dates.to_iso(values.get(key)) for key in keys}


def validate_draft(draft, strict=True):
    errors = {}
    if strict:
        validation.validate_party(draft.get("sender"), "sender", errors)
        validation.validate_party(draft.get("receiver"), "receiver", errors)
    validation.validate_items(draft.get("items"), errors)
    planned = draft.get("planned_dates")
    if planned is not None and not isinstance(planned, dict):
        errors["planned_dates"] = "Planned dates must be an object."
        planned = {}
    for key in statuses.MILESTONE_KEYS:
        validation.validate_optional_date(
            (planned or {}).get(key), f"planned_dates.{key}", errors
        )
    for key in ("incoming_date", "expected_delivery_date"):
        validation.validate_optional_date(draft.get(key), key, errors)
    warehouse = draft.get("warehouse") if isinstance(draft.get("warehouse"), dict) else {}
    validation.validate_optional_date(
        warehouse.get("incoming_date"), "warehouse.incoming_date", errors
    )
    transport = draft.get("transport") if isinstance(draft.get("transport"), dict) else {}
    validation.validate_optional_date(
        transport.get("dispatch_date"), "transport.dispatch_date", errors
    )
    return errors


def _build_barcode(load_id, generated_at):
    return {
        "barcode_id": f"LD-{load_id[:8].upper()}",
        "qr_code_data": f"LOAD:{load_id}",
        "generated_at": generated_at,
    }


def build_load(draft, created_at, load_id=None):
    """Assemble a new ``order_received`` load document from a validated draft."""
    load_id = load_id or uuid.uuid4().hex
    warehouse = draft.get("warehouse") if isinstance(draft.get("warehouse"), dict) else {}
    transport = draft.get("transport") if isinstance(draft.get("transport"), dict) else {}
    load = {
        "id": load_id,
        "status": statuses.ORDER_RECEIVED,
        "sender": _clean_party(draft.get("sender")),
        "receiver": _clean_party(draft.get("receiver")),
        "items": _clean_items(draft.get("items")),
        "created_at": created_at,
        "updated_at": created_at,
        "planned_dates": _clean_dates(draft.get("planned_dates"), statuses.MILESTONE_KEYS),
        "actual_dates": {key: None for key in statuses.MILESTONE_KEYS},
        "actual_delivery_date": None,
        "status_dates": {key: None for key in statuses.STATUS_KEYS},
        "incoming_date": dates.to_iso(draft.get("incoming_date")),
        "expected_delivery_date": dates.to_iso(draft.get("expected_delivery_date")),
        "warehouse": {
            "pallet_location": _clean_optional(warehouse.get("pallet_location")),
            "incoming_date": dates.to_iso(warehouse.get("incoming_date")),
            "notes": _clean_optional(warehouse.get("notes")),
        },
        "transport": {
            "truck_id": _clean_optional(transport.get("truck_id")),
            "driver_id": _clean_optional(transport.get("driver_id")),
            "carrier": _clean_optional(transport.get("carrier")),
            "dispatch_date": dates.to_iso(transport.get("dispatch_date")),
        },
        "barcode": _build_barcode(load_id, created_at),
        "timeline": [
            {
                "status": statuses.ORDER_RECEIVED,
                "timestamp": created_at,
                "user_entered_date": created_at,
                "notes": _clean_optional(draft.get("notes")) or ORDER_RECEIVED_NOTE,
            }
        ],
    }
    load["status_dates"][statuses.ORDER_RECEIVED] = created_at
    if draft.get("attachment"):
        load["attachment"] = dict(draft["attachment"])
    return load


class LoadRepository:
    """Load lifecycle operations over an injected store.

    ``store`` is any object exposing ``add``, ``get``, ``save`` and ``all``
    (see ``services.load_store``). ``clock`` returns the current aware
    datetime and exists so tests can pin time.
    """

    def __init__(self, store, clock=None):
        self.store = store
        self.clock = clock or dates.now

    def _now_iso(self):
        return dates.to_iso(self.clock())

    def create(self, draft, strict=True):
        draft = draft or {}
        errors = validate_draft(draft, strict=strict)
        if errors:
            logger.warning("Rejected load draft: %s", errors)
            raise ValidationError("Load is missing required fields.", errors=errors)
        load = build_load(draft, self._now_iso())
        stored = self.store.add(load)
        logger.info("Created load %s", load["id"])
        return stored

    def create_from_file(self, upload):
        draft = file_intake.build_file_draft(upload or {})
        return self.create(draft, strict=False)

    def get_by_id(self, load_id):
        load = self.store.get(load_id) if load_id else None
        if not load:
            raise NotFound(f"Load {load_id} not found")
        return load

    def list(self, status=None, on_date=None):
        if status is not None and not statuses.is_valid_status(status):
            raise ValidationError(
                f"Unknown status '{status}'.", errors={"status": "Unknown status."}
            )
        loads = self.store.all(status=status)
        if on_date is not None:
            loads = [load for load in loads if bucketing.matches_date(load, on_date)]
        return loads

    def _save(self, load):
        if not self.store.save(load):
            raise NotFound(f"Load {load.get('id')} not found")
        return load

    def apply_transition(self, load_id, target_status, effective_date=None, notes=None):
        errors = {}
        validation.validate_optional_date(effective_date, "effective_date", errors)
        if errors:
            raise ValidationError("Effective date is not a valid date.", errors=errors)
        load = self.get_by_id(load_id)
        updated = state_machine.transition(
            load,
            target_status,
            effective_date=dates.to_iso(effective_date),
            notes=_clean_optional(notes),
            now=self.clock(),
        )
        return self._save(updated)

    def mark_delivered(self, load_id, effective_date=None):
        return self.apply_transition(
            load_id, statuses.ARRIVED, effective_date=effective_date, notes=DELIVERED_NOTE
        )

    def update_warehouse(self, load_id, pallet_location=None, notes=None, incoming_date=None):
        errors = {}
        validation.validate_optional_date(incoming_date, "incoming_date", errors)
        if errors:
            raise ValidationError("Warehouse update is invalid.", errors=errors)
        load = self.get_by_id(load_id)
        now_iso = self._now_iso()
        warehouse = dict(load.get("warehouse") or {})
        warehouse.update(
            {
                "pallet_location": _clean_optional(pallet_location),
                "notes": _clean_optional(notes),
                "incoming_date": dates.to_iso(incoming_date) or now_iso,
            }
        )
        load["warehouse"] = warehouse
        load["updated_at"] = now_iso
        return self._save(load)

    def update_transport(
        self, load_id, truck_id=None, driver_id=None, carrier=None, dispatch_date=None
    ):
        errors = {}
        validation.validate_optional_date(dispatch_date, "dispatch_date", errors)
        if errors:
            raise ValidationError("Transport update is invalid.", errors=errors)
        load = self.get_by_id(load_id)
        load["transport"] = {
            "truck_id": _clean_optional(truck_id),
            "driver_id": _clean_optional(driver_id),
            "carrier": _clean_optional(carrier),
            "dispatch_date": dates.to_iso(dispatch_date),
        }
        load["updated_at"] = self._now_iso()
        return self._save(load)
