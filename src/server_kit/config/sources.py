from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from server_kit.config.errors import UnsupportedFormat
from server_kit.config.loader import ConfigFormat, is_dotenv_path


@dataclass(frozen=True, slots=True)
class EnvironmentFile:
    path: Path

    @property
    def kind(self) -> str:
        return "env"


@dataclass(frozen=True, slots=True)
class StructuredFile:
    path: Path
    format: ConfigFormat

    @property
    def kind(self) -> str:
        return self.format.value


ConfigSource = Union[EnvironmentFile, StructuredFile]


def environment_file(path: Path | str) -> EnvironmentFile:
    return EnvironmentFile(path=Path(path))


def structured_file(path: Path | str) -> StructuredFile:
    """Declare a structured source; the format must be knowable from the extension."""
    p = Path(path)
    fmt = ConfigFormat.from_path(p)
    if fmt is None or not fmt.is_structured:
        raise UnsupportedFormat(p)
    return StructuredFile(path=p, format=fmt)


def source_from_path(path: Path | str) -> ConfigSource:
    fmt = ConfigFormat.from_path(path)
    if fmt is not None and fmt.is_structured:
        return StructuredFile(path=Path(path), format=fmt)
    if is_dotenv_path(path):
        return environment_file(path)
    raise UnsupportedFormat(path)
