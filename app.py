import io
import logging
import os

from flask import Flask, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

import db
from services import bucketing, dates, errors, export, sample_data, serializers, statuses
from services.dates import parse_day_param
from services.file_intake import decode_file_buffer
from services.load_store import InMemoryLoadStore, SqliteLoadStore
from services.loads import LoadRepository

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
REPOSITORY_CONFIG_KEY = "LOAD_REPOSITORY"


def _is_local_dev_mode():
    env_hint = (os.environ.get("APP_ENV") or os.environ.get("FLASK_ENV") or "").strip().lower()
    if env_hint in {"dev", "development", "local"}:
        return True
    return os.environ.get("FLASK_DEBUG", "").strip() == "1"


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return bool(default)
    normalized = str(raw).strip().lower()
    if normalized in {"1", "true", "yes", "on", "y"}:
        return True
    if normalized in {"0", "false", "no", "off", "n"}:
        return False
    return bool(default)


def build_repository():
    store_kind = (os.environ.get("LOAD_STORE") or "sqlite").strip().lower()
    seed_default = store_kind == "memory"
    if store_kind == "memory":
        store = InMemoryLoadStore()
    elif store_kind == "sqlite":
        try:
            store = SqliteLoadStore(db.DB_PATH)
        except (errors.InternalError, OSError) as exc:
            logger.warning(
                "Load storage unavailable (%s); using in-memory store with sample data.",
                exc,
            )
            store = InMemoryLoadStore()
            seed_default = True
    else:
        raise RuntimeError(f"Unknown LOAD_STORE '{store_kind}'; use 'sqlite' or 'memory'.")

    if _env_bool("SEED_SAMPLE_DATA", default=seed_default) and store.count() == 0:
        sample_data.seed_sample_loads(store)
    return LoadRepository(store)


app = Flask(__name__)
app.config.update(
    CORS_ALLOW_ORIGIN=(os.environ.get("CORS_ALLOW_ORIGIN") or "*").strip(),
)
app.json.sort_keys = False
app.config[REPOSITORY_CONFIG_KEY] = build_repository()


def _repository():
    return current_app.config[REPOSITORY_CONFIG_KEY]


def _json_body():
    raw = request.get_json(silent=True)
    if raw is None:
        raw = request.form.to_dict() if request.form else {}
    if not isinstance(raw, dict):
        raise errors.ValidationError("Request body must be a JSON object.")
    return serializers.from_wire(raw)


def _parse_day(raw, field_name="date"):
    day = parse_day_param(raw)
    if day is None:
        raise errors.ValidationError(
            f"Invalid date '{raw}'. Use YYYY-MM-DD.",
            errors={field_name: "Use YYYY-MM-DD."},
        )
    return day


def _status_column_payload(columns, include_loads=True):
    payload = []
    for entry in statuses.STATUSES:
        column_loads = columns.get(entry["key"]) or []
        column = {
            "status": entry["key"],
            "label": entry["label"],
            "count": len(column_loads),
        }
        if include_loads:
            column["loads"] = serializers.loads_to_json(column_loads)
        else:
            column["loadIds"] = [load.get("id") for load in column_loads]
        payload.append(column)
    return payload


def _with_progress(load):
    payload = serializers.load_to_json(load)
    payload["progress"] = serializers.to_wire(statuses.load_progress(load))
    payload["stages"] = serializers.to_wire(statuses.stage_timeline(load))
    return payload


@app.after_request
def _add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = current_app.config["CORS_ALLOW_ORIGIN"]
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    return response


@app.errorhandler(errors.LoadError)
def _handle_load_error(exc):
    if exc.status_code >= 500:
        logger.error("Load operation failed on %s %s: %s", request.method, request.path, exc)
    return jsonify(exc.to_payload()), exc.status_code


@app.errorhandler(HTTPException)
def _handle_http_error(exc):
    return jsonify({"error": exc.description}), exc.code


@app.errorhandler(Exception)
def _handle_unexpected_error(exc):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": str(exc) or "Something went wrong!"}), 500


@app.route(f"{API_PREFIX}/health")
def health():
    return jsonify({"status": "API is running"})


@app.route(f"{API_PREFIX}/loads", methods=["GET"])
def list_loads():
    return jsonify(serializers.loads_to_json(_repository().list()))


@app.route(f"{API_PREFIX}/loads/status/<status>", methods=["GET"])
def list_loads_by_status(status):
    return jsonify(serializers.loads_to_json(_repository().list(status=status)))


@app.route(f"{API_PREFIX}/loads/date/<day>", methods=["GET"])
def list_loads_by_date(day):
    on_date = _parse_day(day)
    return jsonify(serializers.loads_to_json(_repository().list(on_date=on_date)))


@app.route(f"{API_PREFIX}/loads/date/<day>/in-out", methods=["GET"])
def loads_in_out(day):
    on_date = _parse_day(day)
    buckets = bucketing.in_out_for_day(_repository().list(), on_date)
    return jsonify(
        {
            "date": on_date.isoformat(),
            "in": serializers.loads_to_json(buckets["in"]),
            "out": serializers.loads_to_json(buckets["out"]),
        }
    )


@app.route(f"{API_PREFIX}/loads/date/<day>/board", methods=["GET"])
def loads_board(day):
    on_date = _parse_day(day)
    columns = bucketing.status_columns(_repository().list(), on_date)
    return jsonify({"date": on_date.isoformat(), "columns": _status_column_payload(columns)})


@app.route(f"{API_PREFIX}/loads/date/<day>/day-view", methods=["GET"])
def loads_day_view(day):
    on_date = _parse_day(day)
    grouped = bucketing.categorize_day(_repository().list(), on_date)
    return jsonify(
        {
            "date": on_date.isoformat(),
            "incoming": [_with_progress(load) for load in grouped["incoming"]],
            "outgoing": [_with_progress(load) for load in grouped["outgoing"]],
            "other": [_with_progress(load) for load in grouped["other"]],
        }
    )


@app.route(f"{API_PREFIX}/loads/week/<day>", methods=["GET"])
def loads_week(day):
    start_day = _parse_day(day)
    days_raw = (request.args.get("days") or "7").strip()
    if not days_raw.isdigit() or not 1 <= int(days_raw) <= 31:
        raise errors.ValidationError(
            "Days must be between 1 and 31.", errors={"days": "Use 1-31."}
        )
    board = bucketing.week_board(_repository().list(), start_day, days=int(days_raw))
    return jsonify(
        {
            "start": start_day.isoformat(),
            "days": [
                {
                    "date": entry["date"].isoformat(),
                    "columns": _status_column_payload(entry["columns"], include_loads=False),
                }
                for entry in board
            ],
        }
    )


@app.route(f"{API_PREFIX}/loads/calendar/<int:year>/<int:month>", methods=["GET"])
def loads_calendar(year, month):
    if not 1 <= month <= 12 or not 1900 <= year <= 2999:
        raise errors.ValidationError(
            "Use a month between 1 and 12 and a year between 1900 and 2999.",
            errors={"month": "Use 1-12.", "year": "Use 1900-2999."},
        )
    weeks = bucketing.calendar_month(_repository().list(), year, month)
    payload = []
    for week in weeks:
        row = []
        for cell in week:
            if cell is None:
                row.append(None)
                continue
            row.append(
                {
                    "date": cell["date"].isoformat(),
                    "in": cell["in"],
                    "out": cell["out"],
                    "inCount": len(cell["in"]),
                    "outCount": len(cell["out"]),
                }
            )
        payload.append(row)
    return jsonify({"year": year, "month": month, "weeks": payload})


@app.route(f"{API_PREFIX}/loads/export.xlsx", methods=["GET"])
def export_loads():
    status = (request.args.get("status") or "").strip() or None
    raw_day = (request.args.get("date") or "").strip()
    on_date = _parse_day(raw_day) if raw_day else None
    workbook = export.build_loads_workbook(_repository().list(status=status), day=on_date)
    output = io.BytesIO()
    workbook.save(output)
    output.seek(0)
    filename = f"loads_{(on_date or dates.now().date()).isoformat()}.xlsx"
    return Response(
        output.getvalue(),
        mimetype=export.XLSX_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.route(f"{API_PREFIX}/loads/<load_id>", methods=["GET"])
def get_load(load_id):
    return jsonify(serializers.load_to_json(_repository().get_by_id(load_id)))


@app.route(f"{API_PREFIX}/loads", methods=["POST"])
def create_load():
    load = _repository().create(_json_body())
    return jsonify(serializers.load_to_json(load)), 201


@app.route(f"{API_PREFIX}/loads/upload/file", methods=["POST"])
def create_load_from_file():
    file = request.files.get("file")
    if file is not None and getattr(file, "filename", ""):
        form = serializers.from_wire(request.form.to_dict())
        upload = {
            "file_name": file.filename,
            "content": file.read(),
            "sender_company": form.get("sender_company"),
            "receiver_company": form.get("receiver_company"),
        }
    else:
        body = _json_body()
        upload = {
            "file_name": body.get("file_name"),
            "content": decode_file_buffer(body.get("file_buffer")),
            "sender_company": body.get("sender_company"),
            "receiver_company": body.get("receiver_company"),
        }
    load = _repository().create_from_file(upload)
    return jsonify(serializers.load_to_json(load)), 201


@app.route(f"{API_PREFIX}/loads/<load_id>/status", methods=["PATCH"])
def update_load_status(load_id):
    body = _json_body()
    target = str(body.get("status") or "").strip()
    if not target:
        raise errors.ValidationError("Status is required.", errors={"status": "Status is required."})
    effective_date = (
        body.get("user_entered_date") or body.get("actual_date") or body.get("effective_date")
    )
    load = _repository().apply_transition(
        load_id, target, effective_date=effective_date, notes=body.get("notes")
    )
    return jsonify(serializers.load_to_json(load))


@app.route(f"{API_PREFIX}/loads/<load_id>/warehouse", methods=["PATCH"])
def update_load_warehouse(load_id):
    body = _json_body()
    load = _repository().update_warehouse(
        load_id,
        pallet_location=body.get("pallet_location"),
        notes=body.get("notes") or body.get("warehouse_notes"),
        incoming_date=body.get("incoming_date"),
    )
    return jsonify(serializers.load_to_json(load))


@app.route(f"{API_PREFIX}/loads/<load_id>/transport", methods=["PATCH"])
def update_load_transport(load_id):
    body = _json_body()
    load = _repository().update_transport(
        load_id,
        truck_id=body.get("truck_id"),
        driver_id=body.get("driver_id"),
        carrier=body.get("carrier"),
        dispatch_date=body.get("dispatch_date"),
    )
    return jsonify(serializers.load_to_json(load))


@app.route(f"{API_PREFIX}/loads/<load_id>/deliver", methods=["PATCH"])
def mark_load_delivered(load_id):
    body = _json_body()
    load = _repository().mark_delivered(
        load_id, effective_date=body.get("actual_date") or body.get("user_entered_date")
    )
    return jsonify(serializers.load_to_json(load))


if __name__ == "__main__":
    logging.basicConfig(
        level=(os.environ.get("LOG_LEVEL") or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.run(
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "5000")),
        debug=_is_local_dev_mode(),
    )
