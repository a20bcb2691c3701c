import base64
import binascii
import io
import logging
import math
import zipfile
from pathlib import PurePath

import pandas as pd

from services.errors import ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_FILE_TYPES = [
    "email",
    "pdf",
    "gif",
    "png",
    "jpg",
    "jpeg",
    "txt",
    "eml",
    "msg",
    "doc",
    "docx",
    "xlsx",
    "xls",
    "csv",
]

TABULAR_FILE_TYPES = {"csv", "xlsx"}

COLUMN_ALIASES = {
    "description": "description",
    "desc": "description",
    "item": "description",
    "item description": "description",
    "item_desc": "description",
    "quantity": "quantity",
    "qty": "quantity",
    "ordqty": "quantity",
    "units": "quantity",
}

DEFAULT_RECEIVER_COMPANY = "Pending"


def file_type_for(file_name):
    suffix = PurePath(file_name or "").suffix
    return suffix[1:].lower() if suffix else ""


def decode_file_buffer(encoded):
    if not encoded:
        return b""
    text = str(encoded).strip()
    if text.startswith("data:") and "," in text:
        text = text.split(",", 1)[1]
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(
            "File buffer is not valid base64.",
            errors={"file_buffer": "File buffer is not valid base64."},
        ) from exc


def _normalize_columns(columns):
    column_map = {}
    for column in columns:
        key = str(column or "").strip().lower()
        alias = COLUMN_ALIASES.get(key)
        if alias and alias not in column_map.values():
            column_map[column] = alias
    return column_map


def _coerce_quantity(value):
    if value is None:
        return 0
    if isinstance(value, float) and math.isnan(value):
        return 0
    text = str(value).strip().replace(",", "")
    if not text:
        return 0
    try:
        parsed = int(float(text))
    except (TypeError, ValueError):
        return 0
    return max(parsed, 0)


def _read_frame(raw, file_type):
    stream = io.BytesIO(raw)
    if file_type == "csv":
        return pd.read_csv(stream, dtype=str, keep_default_na=False)
    return pd.read_excel(stream, dtype=str, keep_default_na=False, engine="openpyxl")


def parse_items(raw, file_type):
    """Pull ``{description, quantity}`` rows out of a CSV or XLSX upload."""
    if file_type not in TABULAR_FILE_TYPES or not raw:
        return []
    try:
        df = _read_frame(raw, file_type)
    except (ValueError, OSError, zipfile.BadZipFile) as exc:
        raise ValidationError(
            f"Could not read {file_type.upper()} file: {exc}",
            errors={"file": "File could not be parsed."},
        ) from exc

    column_map = _normalize_columns(df.columns)
    if "description" not in column_map.values():
        logger.warning("Upload has no description column; columns=%s", list(df.columns))
        return []
    df = df.rename(columns=column_map)

    items = []
    for row in df.to_dict(orient="records"):
        description = str(row.get("description") or "").strip()
        if not description:
            continue
        items.append(
            {
                "description": description,
                "quantity": _coerce_quantity(row.get("quantity")),
            }
        )
    return items


def build_file_draft(upload):
    """Turn upload metadata into a load draft plus attachment details.

    ``upload`` carries ``file_name``, raw ``content`` bytes and optional
    ``sender_company`` / ``receiver_company`` overrides.
    """
    file_name = str(upload.get("file_name") or "").strip()
    if not file_name:
        raise ValidationError(
            "File name is required.", errors={"file_name": "File name is required."}
        )
    file_type = file_type_for(file_name)
    if file_type not in SUPPORTED_FILE_TYPES:
        supported = ", ".join(SUPPORTED_FILE_TYPES)
        raise ValidationError(
            f"File type .{file_type or '?'} not supported. Supported: {supported}",
            errors={"file_name": "Unsupported file type."},
        )

    content = upload.get("content") or b""
    items = parse_items(content, file_type)
    if not items:
        items = [{"description": f"File: {file_name}", "quantity": 1}]

    sender_company = str(upload.get("sender_company") or "").strip() or f"File: {file_name}"
    receiver_company = (
        str(upload.get("receiver_company") or "").strip() or DEFAULT_RECEIVER_COMPANY
    )
    return {
        "sender": {"company": sender_company, "address": "", "contact": ""},
        "receiver": {"company": receiver_company, "address": "", "contact": ""},
        "items": items,
        "attachment": {
            "file_name": file_name,
            "file_type": file_type,
            "size_bytes": len(content),
        },
    }
