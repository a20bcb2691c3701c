"""Read-only classification of loads against calendar days and status columns.

Every rule here is a pure function of the load dict and the reference day.
Missing or unparseable dates never raise; they simply fail to match, which
keeps a load out of the bucket instead of breaking the whole board.
"""

import calendar
from datetime import timedelta

from services import statuses
from services.dates import is_between, normalize_to_day, same_day


def _section(load, key):
    value = load.get(key) if load else None
    return value if isinstance(value, dict) else {}


def _first_day(*values):
    for value in values:
        day = normalize_to_day(value)
        if day is not None:
            return day
    return None


def stage_date(load, status):
    """Effective day a load entered ``status``.

    ``status_dates`` wins; otherwise the latest timeline entry for the stage,
    preferring the user-entered date over the system timestamp.
    """
    day = normalize_to_day(_section(load, "status_dates").get(status))
    if day is not None:
        return day
    for entry in reversed((load or {}).get("timeline") or []):
        if not isinstance(entry, dict) or entry.get("status") != status:
            continue
        day = _first_day(entry.get("user_entered_date"), entry.get("timestamp"))
        if day is not None:
            return day
    return None


def _last_entry_index(load, status):
    timeline = (load or {}).get("timeline") or []
    for idx in range(len(timeline) - 1, -1, -1):
        entry = timeline[idx]
        if isinstance(entry, dict) and entry.get("status") == status:
            return idx
    return None


def _closing_day(load, current, closing, day):
    """``day`` closes the ``current`` window only if ``closing`` was entered
    after the latest ``current`` entry; after an undo the window stays open."""
    current_idx = _last_entry_index(load, current)
    if current_idx is None:
        return day
    closing_idx = _last_entry_index(load, closing)
    if closing_idx is None or closing_idx < current_idx:
        return None
    return day


def warehouse_arrival_date(load):
    return _first_day(
        stage_date(load, statuses.IN_WAREHOUSE),
        _section(load, "actual_dates").get("warehouse_arrival"),
        _section(load, "warehouse").get("incoming_date"),
    )


def loading_date(load):
    return _first_day(
        stage_date(load, statuses.LOADING),
        _section(load, "transport").get("dispatch_date"),
        _section(load, "planned_dates").get("warehouse_dispatch"),
    )


def arrival_date(load):
    return _first_day(
        stage_date(load, statuses.ARRIVED),
        _section(load, "actual_dates").get("client_delivery"),
        load.get("actual_delivery_date") if load else None,
    )


def _order_received(load, day):
    return same_day(load.get("created_at"), day)


def _in_transit_to_warehouse(load, day):
    start = stage_date(load, statuses.IN_TRANSIT_TO_WAREHOUSE) or normalize_to_day(
        load.get("created_at")
    )
    end = _closing_day(
        load,
        statuses.IN_TRANSIT_TO_WAREHOUSE,
        statuses.UNLOADING,
        stage_date(load, statuses.UNLOADING),
    )
    return is_between(day, start, end)


def _unloading(load, day):
    unloaded = stage_date(load, statuses.UNLOADING)
    return unloaded is not None and unloaded == day


def _in_warehouse(load, day):
    end = _closing_day(
        load,
        statuses.IN_WAREHOUSE,
        statuses.TRANSPORT_ISSUED,
        stage_date(load, statuses.TRANSPORT_ISSUED),
    )
    return is_between(day, warehouse_arrival_date(load), end)


def _transport_issued(load, day):
    end = _closing_day(
        load, statuses.TRANSPORT_ISSUED, statuses.LOADING, stage_date(load, statuses.LOADING)
    )
    return is_between(day, stage_date(load, statuses.TRANSPORT_ISSUED), end)


def _loading(load, day):
    loaded = loading_date(load)
    return loaded is not None and loaded == day


def _in_transit_to_destination(load, day):
    arrived = _closing_day(
        load, statuses.IN_TRANSIT_TO_DESTINATION, statuses.ARRIVED, arrival_date(load)
    )
    if arrived is not None and day is not None and day >= arrived:
        # the arrival day belongs to the arrived column
        return False
    start = stage_date(load, statuses.IN_TRANSIT_TO_DESTINATION) or loading_date(load)
    return is_between(day, start, arrived)


def _arrived(load, day):
    arrived = arrival_date(load)
    return arrived is not None and arrived == day


STATUS_RULES = {
    statuses.ORDER_RECEIVED: _order_received,
    statuses.IN_TRANSIT_TO_WAREHOUSE: _in_transit_to_warehouse,
    statuses.UNLOADING: _unloading,
    statuses.IN_WAREHOUSE: _in_warehouse,
    statuses.TRANSPORT_ISSUED: _transport_issued,
    statuses.LOADING: _loading,
    statuses.IN_TRANSIT_TO_DESTINATION: _in_transit_to_destination,
    statuses.ARRIVED: _arrived,
}


def in_status_column(load, status, day):
    if not load or load.get("status") != status:
        return False
    rule = STATUS_RULES.get(status)
    if rule is None:
        return False
    return bool(rule(load, day))


def status_columns(loads, day):
    columns = {key: [] for key in statuses.STATUS_KEYS}
    for load in loads or []:
        status = load.get("status")
        if status in columns and in_status_column(load, status, day):
            columns[status].append(load)
    return columns


def week_board(loads, start_day, days=7):
    board = []
    for offset in range(max(int(days), 0)):
        day = start_day + timedelta(days=offset)
        board.append({"date": day, "columns": status_columns(loads, day)})
    return board


def is_in(load, day):
    return (
        same_day(_section(load, "warehouse").get("incoming_date"), day)
        or same_day(load.get("incoming_date"), day)
        or same_day(load.get("expected_delivery_date"), day)
    )


def is_out(load, day):
    if same_day(_section(load, "transport").get("dispatch_date"), day):
        return True
    return load.get("status") == statuses.LOADING and same_day(load.get("created_at"), day)


def in_out_for_day(loads, day):
    result = {"in": [], "out": []}
    for load in loads or []:
        if not load:
            continue
        if is_in(load, day):
            result["in"].append(load)
        if is_out(load, day):
            result["out"].append(load)
    return result


def matches_date(load, day):
    if not load:
        return False
    return (
        is_in(load, day)
        or same_day(_section(load, "transport").get("dispatch_date"), day)
        or same_day(load.get("created_at"), day)
    )


def categorize_day(loads, day):
    result = {"incoming": [], "outgoing": [], "other": []}
    for load in loads or []:
        if not load:
            continue
        if same_day(_section(load, "warehouse").get("incoming_date"), day):
            result["incoming"].append(load)
        elif same_day(_section(load, "transport").get("dispatch_date"), day):
            result["outgoing"].append(load)
        else:
            result["other"].append(load)
    return result


def calendar_month(loads, year, month):
    """Sunday-first month grid; padding cells are None."""
    weeks = []
    for week in calendar.Calendar(firstweekday=6).monthdatescalendar(year, month):
        cells = []
        for day in week:
            if day.month != month:
                cells.append(None)
                continue
            buckets = in_out_for_day(loads, day)
            cells.append(
                {
                    "date": day,
                    "in": [load.get("id") for load in buckets["in"]],
                    "out": [load.get("id") for load in buckets["out"]],
                }
            )
        weeks.append(cells)
    return weeks
