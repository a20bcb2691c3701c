from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from services import bucketing, statuses

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

LOAD_HEADERS = [
    "Load ID",
    "Barcode",
    "Status",
    "Sender",
    "Receiver",
    "Items",
    "Created",
    "Planned Warehouse Arrival",
    "Planned Dispatch",
    "Planned Delivery",
    "Actual Warehouse Arrival",
    "Actual Dispatch",
    "Actual Delivery",
    "Pallet Location",
    "Truck",
]


def _style_header(row_cells, fill, font, border):
    for cell in row_cells:
        cell.fill = fill
        cell.font = font
        cell.border = border
        cell.alignment = Alignment(horizontal="center", vertical="center")


def _items_text(load):
    return "; ".join(
        f"{item.get('quantity', 0)}x {item.get('description') or ''}".strip()
        for item in load.get("items") or []
    )


def _load_row(load):
    planned = load.get("planned_dates") or {}
    actual = load.get("actual_dates") or {}
    return [
        load.get("id") or "",
        (load.get("barcode") or {}).get("barcode_id") or "",
        statuses.status_label(load.get("status")),
        (load.get("sender") or {}).get("company") or "",
        (load.get("receiver") or {}).get("company") or "",
        _items_text(load),
        load.get("created_at") or "",
        planned.get("warehouse_arrival") or "",
        planned.get("warehouse_dispatch") or "",
        planned.get("client_delivery") or "",
        actual.get("warehouse_arrival") or "",
        actual.get("warehouse_dispatch") or "",
        actual.get("client_delivery") or "",
        (load.get("warehouse") or {}).get("pallet_location") or "",
        (load.get("transport") or {}).get("truck_id") or "",
    ]


def build_loads_workbook(loads, day=None):
    """Workbook with a Loads sheet, a Timeline sheet and, when ``day`` is
    given, a Board sheet of that day's status columns and IN/OUT lists."""
    workbook = Workbook()
    header_fill = PatternFill(fill_type="solid", fgColor="FFE5E7EB")
    header_font = Font(bold=True, color="FF1F2937")
    thin_side = Side(style="thin", color="FFCBD5E1")
    all_border = Border(left=thin_side, right=thin_side, top=thin_side, bottom=thin_side)

    summary = workbook.active
    summary.title = "Loads"
    summary.append(LOAD_HEADERS)
    _style_header(summary[1], header_fill, header_font, all_border)
    for load in loads or []:
        summary.append(_load_row(load))
    for idx in range(len(LOAD_HEADERS)):
        summary.column_dimensions[get_column_letter(idx + 1)].width = 22

    timeline_sheet = workbook.create_sheet("Timeline")
    timeline_sheet.append(["Load ID", "Status", "Timestamp", "Effective Date", "Notes"])
    _style_header(timeline_sheet[1], header_fill, header_font, all_border)
    for load in loads or []:
        for entry in load.get("timeline") or []:
            timeline_sheet.append(
                [
                    load.get("id") or "",
                    statuses.status_label(entry.get("status")),
                    entry.get("timestamp") or "",
                    entry.get("user_entered_date") or "",
                    entry.get("notes") or "",
                ]
            )

    if day is not None:
        board = workbook.create_sheet("Board")
        board.append([f"Board for {day.isoformat()}"])
        board["A1"].font = Font(bold=True, size=13)
        board.append([entry["label"] for entry in statuses.STATUSES])
        _style_header(board[2], header_fill, header_font, all_border)
        columns = bucketing.status_columns(loads, day)
        depth = max((len(items) for items in columns.values()), default=0)
        for row_idx in range(depth):
            board.append(
                [
                    (columns[key][row_idx].get("id") if row_idx < len(columns[key]) else "")
                    for key in statuses.STATUS_KEYS
                ]
            )
        buckets = bucketing.in_out_for_day(loads, day)
        board.append([])
        board.append(["IN", len(buckets["in"])] + [load.get("id") for load in buckets["in"]])
        board.append(["OUT", len(buckets["out"])] + [load.get("id") for load in buckets["out"]])

    return workbook
