# formscan/services/config_store.py
import io
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import dotenv_values
from dotenv.parser import parse_stream
from pydantic import ValidationError

from ..errors import ConfigError
from ..models.config_models import REQUIRED_KEYS, ServiceConfig

log = logging.getLogger("formscan")

PathLike = Union[str, Path]


def format_line(key: str, value: str) -> str:
    return f"{key} = {value}\n"


def read_config(path: PathLike) -> Dict[str, str]:
    """
    Parse a KEY = VALUE settings file. Blank lines and `#` comments are skipped;
    when a key appears twice the later line wins.
    """
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"config file not found: {p}")
    values = dotenv_values(p)
    return {k: v for k, v in values.items() if v is not None}


def write_config(path: PathLike, entries: Mapping[str, Optional[str]]) -> Path:
    """
    Update `entries` in place. Existing keys keep their line position and
    every other line is left untouched; unknown keys are appended.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    pending = {k: str(v) for k, v in entries.items() if v is not None}
    source = p.read_text(encoding="utf-8") if p.is_file() else ""

    lines = []
    written = set()
    with io.StringIO(source) as stream:
        for binding in parse_stream(stream):
            if binding.key in pending:
                lines.append(format_line(binding.key, pending[binding.key]))
                written.add(binding.key)
            else:
                lines.append(binding.original.string)
    for key, value in pending.items():
        if key in written:
            continue
        if lines and not lines[-1].endswith("\n"):
            lines[-1] += "\n"
        lines.append(format_line(key, value))

    p.write_text("".join(lines), encoding="utf-8")
    for key in pending:
        log.info(f"[config] {p.name}: set {key}")
    return p


def load_service_config(path: PathLike) -> ServiceConfig:
    values = read_config(path)
    missing = [k for k in REQUIRED_KEYS if not values.get(k)]
    if missing:
        raise ConfigError(f"{Path(path)} is missing required keys: {', '.join(missing)}")
    try:
        cfg = ServiceConfig.from_mapping(values)
    except ValidationError as e:
        raise ConfigError(f"invalid settings in {path}: {e}") from e
    log.info(f"[config] loaded deployment={cfg.deployment_name!r} api_version={cfg.api_version}")
    return cfg
