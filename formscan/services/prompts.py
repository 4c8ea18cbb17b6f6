# formscan/services/prompts.py
import json
from pathlib import Path
from typing import Optional, Union

from ..errors import SchemaFileError

SYSTEM_PROMPT = (
    "You are an AI assistant that extracts data from documents and returns them as structured JSON objects. "
    "Do not return as a code block."
)

# Example target shape shown to the model. Callers can replace it with their
# own JSON file (see load_schema_text).
DEFAULT_SCHEMA_EXAMPLE = {
    "form_title": "",
    "form_number": "",
    "date_submitted": "",
    "applicant": {
        "name": "",
        "date_of_birth": "",
        "address": {"street": "", "city": "", "state": "", "postal_code": "", "country": ""},
        "phone": "",
        "email": "",
    },
    "fields": [
        {"label": "", "value": "", "checked": None}
    ],
    "line_items": [
        {"description": "", "quantity": 0, "unit_price": 0.0, "total": 0.0}
    ],
    "signatures": [
        {"name": "", "date": "", "signed": False}
    ],
    "notes": "",
}


def default_schema_text() -> str:
    return json.dumps(DEFAULT_SCHEMA_EXAMPLE, indent=2)


def load_schema_text(path: Optional[Union[str, Path]] = None) -> str:
    """
    Read an example JSON shape from disk and return it pretty-printed.
    Without a path the bundled example is used.
    """
    if path is None:
        return default_schema_text()
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaFileError(f"cannot read schema file {p}: {e}") from e
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SchemaFileError(f"schema file {p} is not valid JSON: {e}") from e
    return json.dumps(obj, indent=2, ensure_ascii=False)


def build_user_prompt(schema_text: str) -> str:
    return (
        "Extract the data from this form. "
        "Return a JSON object that follows the structure of the example below. "
        "Use null for fields that are empty or unreadable and keep the key names unchanged.\n\n"
        f"{schema_text}"
    )
