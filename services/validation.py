from services.dates import parse_datetime


def _label(field_name):
    return field_name.replace("_", " ").replace(".", " ").title()


def validate_required(value, field_name, errors):
    if value is None or not str(value).strip():
        errors[field_name] = f"{_label(field_name)} is required."


def validate_party(party, field_name, errors):
    if not isinstance(party, dict):
        errors[field_name] = f"{_label(field_name)} is required."
        return
    for key in ("company", "address", "contact"):
        validate_required(party.get(key), f"{field_name}.{key}", errors)


def validate_non_negative_int(value, field_name, errors):
    if value is None or value == "":
        errors[field_name] = f"{_label(field_name)} is required."
        return
    if isinstance(value, bool):
        errors[field_name] = f"{_label(field_name)} must be a whole number."
        return
    if isinstance(value, float) and not value.is_integer():
        errors[field_name] = f"{_label(field_name)} must be a whole number."
        return
    text = str(int(value)) if isinstance(value, float) else str(value).strip()
    if not text.isdigit():
        errors[field_name] = (
            f"{_label(field_name)} must be a non-negative whole number."
        )


def validate_items(items, errors, field_name="items"):
    if not isinstance(items, list) or not items:
        errors[field_name] = "At least one item is required."
        return
    for idx, item in enumerate(items):
        prefix = f"{field_name}.{idx}"
        if not isinstance(item, dict):
            errors[prefix] = "Item must be an object."
            continue
        validate_required(item.get("description"), f"{prefix}.description", errors)
        validate_non_negative_int(item.get("quantity"), f"{prefix}.quantity", errors)


def validate_optional_date(value, field_name, errors):
    if value is None or value == "":
        return
    if parse_datetime(value) is None:
        errors[field_name] = f"{_label(field_name)} must be an ISO date (YYYY-MM-DD)."
