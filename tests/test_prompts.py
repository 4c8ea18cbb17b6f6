import json

import pytest

from formscan.errors import SchemaFileError
from formscan.services.prompts import (
    DEFAULT_SCHEMA_EXAMPLE, build_user_prompt, default_schema_text, load_schema_text,
)


def test_default_schema_when_no_path():
    assert json.loads(load_schema_text()) == DEFAULT_SCHEMA_EXAMPLE


def test_schema_file_is_reformatted(tmp_path):
    p = tmp_path / "schema.json"
    p.write_text('{"patient": {"name": "", "dob": ""}}')
    text = load_schema_text(p)
    assert text == json.dumps({"patient": {"name": "", "dob": ""}}, indent=2)


def test_schema_file_must_be_json(tmp_path):
    p = tmp_path / "schema.json"
    p.write_text("name: string")
    with pytest.raises(SchemaFileError):
        load_schema_text(p)


def test_schema_file_missing(tmp_path):
    with pytest.raises(SchemaFileError):
        load_schema_text(tmp_path / "missing.json")


def test_user_prompt_embeds_schema_literally():
    schema = default_schema_text()
    assert build_user_prompt(schema).endswith(schema)
