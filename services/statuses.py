STATUSES = [
    {"key": "order_received", "label": "Order Received"},
    {"key": "in_transit_to_warehouse", "label": "In Transit to Warehouse"},
    {"key": "unloading", "label": "Unloading"},
    {"key": "in_warehouse", "label": "In Warehouse", "highlight": True, "color": "#4CAF50"},
    {"key": "transport_issued", "label": "Transport Issued"},
    {"key": "loading", "label": "Loading", "highlight": True, "color": "#FFC107"},
    {"key": "in_transit_to_destination", "label": "In Transit to Destination"},
    {"key": "arrived", "label": "Arrived"},
]

STATUS_KEYS = [status["key"] for status in STATUSES]

ORDER_RECEIVED = "order_received"
IN_TRANSIT_TO_WAREHOUSE = "in_transit_to_warehouse"
UNLOADING = "unloading"
IN_WAREHOUSE = "in_warehouse"
TRANSPORT_ISSUED = "transport_issued"
LOADING = "loading"
IN_TRANSIT_TO_DESTINATION = "in_transit_to_destination"
ARRIVED = "arrived"

DEFAULT_PROGRESS_COLOR = "#2196F3"
MIN_PROGRESS_PCT = 5

# status -> actual_dates field recorded when the status is entered
MILESTONE_FIELDS = {
    IN_WAREHOUSE: "warehouse_arrival",
    LOADING: "warehouse_dispatch",
    IN_TRANSIT_TO_DESTINATION: "warehouse_dispatch",
    ARRIVED: "client_delivery",
}

MILESTONE_KEYS = ("warehouse_arrival", "warehouse_dispatch", "client_delivery")


def is_valid_status(status):
    return status in STATUS_KEYS


def status_index(status):
    try:
        return STATUS_KEYS.index(status)
    except ValueError:
        return -1


def status_label(status):
    for entry in STATUSES:
        if entry["key"] == status:
            return entry["label"]
    return status


def next_status(status):
    idx = status_index(status)
    if idx < 0 or idx >= len(STATUS_KEYS) - 1:
        return None
    return STATUS_KEYS[idx + 1]


def previous_status(status):
    idx = status_index(status)
    if idx <= 0:
        return None
    return STATUS_KEYS[idx - 1]


def allowed_transitions(status):
    return [key for key in (previous_status(status), next_status(status)) if key]


def is_adjacent(current, target):
    current_idx = status_index(current)
    target_idx = status_index(target)
    if current_idx < 0 or target_idx < 0:
        return False
    return abs(current_idx - target_idx) == 1


def load_progress(load):
    status = (load or {}).get("status")
    idx = status_index(status)
    width = (idx + 1) / len(STATUS_KEYS) * 100
    info = next((entry for entry in STATUSES if entry["key"] == status), {})
    return {
        "status": status,
        "current_label": status_label(status),
        "width_pct": round(max(width, MIN_PROGRESS_PCT), 2),
        "color": info.get("color") if info.get("highlight") else DEFAULT_PROGRESS_COLOR,
    }


def stage_timeline(load):
    """For each stage, the first timeline entry recorded for it (if any)."""
    timeline = (load or {}).get("timeline") or []
    stages = []
    for entry in STATUSES:
        first = next((event for event in timeline if event.get("status") == entry["key"]), None)
        stages.append(
            {
                "status": entry["key"],
                "label": entry["label"],
                "date": first.get("timestamp") if first else None,
                "has_entry": first is not None,
            }
        )
    return stages
