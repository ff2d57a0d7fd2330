from __future__ import annotations

import datetime as dt
import json
import logging
import tomllib
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

import tomli_w
import yaml

from server_kit.config.errors import ParseError, SourceNotFound, UnsupportedFormat

logger = logging.getLogger(__name__)

Value = Union[None, bool, int, float, str, list["Value"], dict[str, "Value"]]
Document = dict[str, Value]


class ConfigFormat(str, Enum):
    DOTENV = "env"
    TOML = "toml"
    YAML = "yaml"
    JSON = "json"

    @classmethod
    def from_path(cls, path: Path | str) -> Optional[ConfigFormat]:
        """Detect the format from the file extension; `None` when it is not recognized."""
        suffix = Path(path).suffix.lower()
        return _SUFFIXES.get(suffix)

    @property
    def is_structured(self) -> bool:
        return self is not ConfigFormat.DOTENV


_SUFFIXES = {
    ".env": ConfigFormat.DOTENV,
    ".toml": ConfigFormat.TOML,
    ".yaml": ConfigFormat.YAML,
    ".yml": ConfigFormat.YAML,
    ".json": ConfigFormat.JSON,
}


def is_dotenv_path(path: Path | str) -> bool:
    """True for `settings.env`, `.env`, `.env.local` and a bare `env` file name."""
    p = Path(path)
    fmt = ConfigFormat.from_path(p)
    if fmt is not None:
        return fmt is ConfigFormat.DOTENV
    return p.name.startswith(".env") or p.name == "env"


def load_document(path: Path | str, fmt: Optional[ConfigFormat] = None) -> Document:
    path = Path(path)
    fmt = fmt or ConfigFormat.from_path(path)
    if fmt is None or not fmt.is_structured:
        raise UnsupportedFormat(path)
    if not path.exists():
        raise SourceNotFound(path)

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(path, exc) from exc

    try:
        if fmt is ConfigFormat.TOML:
            data = tomllib.loads(raw)
        elif fmt is ConfigFormat.YAML:
            data = yaml.safe_load(raw)
        else:
            data = json.loads(raw) if raw.strip() else None
    except (tomllib.TOMLDecodeError, yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ParseError(path, exc) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(path, f"top-level value must be a mapping, got {type(data).__name__}")

    document = _normalize(data)
    logger.debug("config.document_loaded path=%s format=%s keys=%d", path, fmt.value, len(document))
    return document


def dump_document(document: Mapping[str, Any], fmt: ConfigFormat) -> str:
    plain = thaw_document(document)
    if fmt is ConfigFormat.JSON:
        return json.dumps(plain, indent=2) + "\n"
    if fmt is ConfigFormat.YAML:
        return yaml.safe_dump(plain, sort_keys=False, default_flow_style=False)
    if fmt is ConfigFormat.TOML:
        return tomli_w.dumps(_strip_nulls(plain))
    raise UnsupportedFormat(f"document.{fmt.value}")


def freeze_document(document: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return a read-only view: mappings become proxies and lists become tuples."""
    return MappingProxyType({k: _freeze(v) for k, v in document.items()})


def thaw_document(document: Mapping[str, Any]) -> Document:
    return {k: _thaw(v) for k, v in document.items()}


def thaw_value(value: Any) -> Value:
    return _thaw(value)


def _normalize(value: Any) -> Value:
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    return value


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Value:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(v) for v in value]
    return value


def _strip_nulls(value: Any) -> Any:
    # TOML has no null.
    if isinstance(value, dict):
        return {k: _strip_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_strip_nulls(v) for v in value if v is not None]
    return value
