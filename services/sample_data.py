import logging
from datetime import timedelta

from services import dates, state_machine, statuses
from services.loads import build_load

logger = logging.getLogger(__name__)


def _walk_to(load, target, effective_dates, now_value):
    for stage in statuses.STATUS_KEYS[1 : statuses.status_index(target) + 1]:
        load = state_machine.transition(
            load,
            stage,
            effective_date=effective_dates.get(stage),
            notes=f"Moved to {stage}",
            now=now_value,
        )
    return load


def sample_loads(now_value=None):
    """Three demo loads spread around today, mirroring the development seed."""
    now_value = now_value or dates.now()
    today = now_value.date()
    yesterday = today - timedelta(days=1)
    tomorrow = today + timedelta(days=1)
    next_day = today + timedelta(days=2)
    created_at = dates.to_iso(now_value - timedelta(days=2))

    demo_loads = [
        {
            "draft": {
                "sender": {"company": "Alpha Corp", "address": "123 Main St", "contact": "John"},
                "receiver": {"company": "Beta Inc", "address": "456 Oak Ave", "contact": "Jane"},
                "items": [{"description": "Electronics", "quantity": 50}],
                "warehouse": {"incoming_date": today, "pallet_location": "A-12"},
                "transport": {"dispatch_date": tomorrow},
                "expected_delivery_date": next_day,
            },
            "status": statuses.IN_WAREHOUSE,
            "effective": {statuses.IN_WAREHOUSE: today, statuses.UNLOADING: today},
        },
        {
            "draft": {
                "sender": {"company": "Gamma Ltd", "address": "789 Elm Rd", "contact": "Bob"},
                "receiver": {"company": "Delta Co", "address": "321 Pine St", "contact": "Alice"},
                "items": [{"description": "Textiles", "quantity": 100}],
                "warehouse": {"incoming_date": today, "pallet_location": "B-5"},
                "transport": {"dispatch_date": tomorrow, "truck_id": "TRK-001"},
                "expected_delivery_date": next_day,
            },
            "status": statuses.LOADING,
            "effective": {statuses.IN_WAREHOUSE: today, statuses.LOADING: today},
        },
        {
            "draft": {
                "sender": {"company": "Epsilon Sp", "address": "555 Ash Ln", "contact": "Charlie"},
                "receiver": {"company": "Zeta Group", "address": "777 Birch Dr", "contact": "Diana"},
                "items": [{"description": "Machinery", "quantity": 10}],
                "warehouse": {"incoming_date": yesterday, "pallet_location": "C-8"},
                "transport": {"dispatch_date": today, "truck_id": "TRK-002", "driver_id": "DRV-001"},
                "expected_delivery_date": tomorrow,
            },
            "status": statuses.IN_TRANSIT_TO_DESTINATION,
            "effective": {
                statuses.IN_WAREHOUSE: yesterday,
                statuses.LOADING: today,
                statuses.IN_TRANSIT_TO_DESTINATION: today,
            },
        },
    ]

    loads = []
    for demo in demo_loads:
        load = build_load(demo["draft"], created_at)
        loads.append(_walk_to(load, demo["status"], demo["effective"], now_value))
    return loads


def seed_sample_loads(store, now_value=None):
    loads = sample_loads(now_value)
    for load in loads:
        store.add(load)
    logger.info("Seeded %s sample loads", len(loads))
    return loads
