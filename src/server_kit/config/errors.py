from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class ConfigError(Exception):
    """Base class for every failure raised while declaring or resolving configuration."""


class UnsupportedFormat(ConfigError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        suffix = self.path.suffix or "<none>"
        super().__init__(
            f"Unsupported config file format: {self.path} (extension {suffix}). "
            "Expected one of .toml, .yaml, .yml, .json."
        )


class SourceNotFound(ConfigError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Config file not found: {self.path}")


class ParseError(ConfigError):
    def __init__(self, source: Path | str, cause: BaseException | str) -> None:
        self.source = Path(source)
        self.cause = cause
        super().__init__(f"Failed to parse config file {self.source}: {cause}")


class MissingRequiredField(ConfigError):
    def __init__(self, field: str, sources: Sequence[str] = ()) -> None:
        self.field = field
        self.sources = tuple(sources)
        where = f" Looked in: {', '.join(self.sources)}." if self.sources else ""
        super().__init__(f"Missing required config field '{field}'.{where}")


class TypeMismatch(ConfigError):
    def __init__(self, field: str, expected: str, origin: str, value: object = None) -> None:
        self.field = field
        self.expected = expected
        self.origin = origin
        self.value = value
        super().__init__(
            f"Invalid type for config field '{field}' from {origin}: {expected} (got {value!r})"
        )


class InvalidValue(ConfigError):
    def __init__(self, field: str, variable: str, value: str, reason: str) -> None:
        self.field = field
        self.variable = variable
        self.value = value
        self.reason = reason
        super().__init__(
            f"Invalid value for config field '{field}' from environment variable {variable}: "
            f"{reason} (got {value!r})"
        )


class CapabilityNotProvided(ConfigError):
    def __init__(self, target: type, capability: type, reason: Optional[str] = None) -> None:
        self.target = target
        self.capability = capability
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"{target.__qualname__} does not provide {capability.__qualname__}{detail}"
        )


class BuilderAlreadyBuilt(ConfigError):
    def __init__(self) -> None:
        super().__init__(
            "ConfigBuilder.build() was already called; create a new builder to resolve configuration again."
        )
