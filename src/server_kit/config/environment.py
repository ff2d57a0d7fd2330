from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from dotenv import dotenv_values

from server_kit.config.interfaces import EnvironmentProvider

logger = logging.getLogger(__name__)

# Priority order: the first variable that is set decides the mode.
ENVIRONMENT_VARIABLES = ("ENVIRONMENT", "APP_ENV", "SERVER_ENV")

# Values environment files have written into os.environ during this process.
_PROCESS_FILE_VALUES: Dict[str, str] = {}


def _carried_over(written: Dict[str, str], current: Mapping[str, str]) -> frozenset[str]:
    # A name changed or removed since a file wrote it belongs to someone else now.
    for name in [n for n, value in written.items() if current.get(n) != value]:
        del written[name]
    return frozenset(written)


class Environment(str, Enum):
    """
    Application environment mode.

    Parsing is case-insensitive and total: `production` and `prod` select
    PRODUCTION, every other value falls back to DEVELOPMENT.
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def _missing_(cls, value: object) -> Environment:
        if isinstance(value, str) and value.strip().lower() in ("production", "prod"):
            return cls.PRODUCTION
        return cls.DEVELOPMENT

    @classmethod
    def parse(cls, value: Optional[str]) -> Environment:
        if value is None:
            return cls.DEVELOPMENT
        return cls(value)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Environment:
        source = os.environ if env is None else env
        for name in ENVIRONMENT_VARIABLES:
            value = source.get(name)
            if value is not None:
                return cls.parse(value)
        return cls.DEVELOPMENT

    def is_production(self) -> bool:
        return self is Environment.PRODUCTION

    def is_development(self) -> bool:
        return self is Environment.DEVELOPMENT


class ProcessEnvironment:
    """
    Provider backed by `os.environ`.

    Writes are visible process-wide and unsynchronized: run at most one build at a
    time, before other threads that read the environment are started.
    """

    def get(self, name: str) -> Optional[str]:
        return os.environ.get(name)

    def set(self, name: str, value: str) -> None:
        os.environ[name] = value
        _PROCESS_FILE_VALUES[name] = value

    def names(self) -> Iterator[str]:
        return iter(list(os.environ))

    def carried_over(self) -> frozenset[str]:
        return _carried_over(_PROCESS_FILE_VALUES, os.environ)


class ScopedEnvironment:
    """Build-local provider; nothing outside the build observes its writes."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})
        self._file_values: Dict[str, str] = {}

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    def set(self, name: str, value: str) -> None:
        self._values[name] = value
        self._file_values[name] = value

    def names(self) -> Iterator[str]:
        return iter(list(self._values))

    def carried_over(self) -> frozenset[str]:
        return _carried_over(self._file_values, self._values)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)


@dataclass
class EnvironmentSnapshot:
    """
    Ordered view over a provider for the duration of one build.

    Variables present when the snapshot is taken are external and are never
    overwritten by environment files. Values an earlier build copied in from a
    file are not external: they stay hidden unless a file of this build sets
    them again. Keys set by files follow last-file-wins; each remembers the file
    and the source position that set it.
    """

    provider: EnvironmentProvider
    _external: frozenset[str] = field(init=False)
    _from_files: Dict[str, Tuple[Path, int]] = field(init=False, default_factory=dict)
    _stale: set[str] = field(init=False, default_factory=set)

    def __post_init__(self) -> None:
        carried = self.provider.carried_over()
        if carried:
            logger.debug("config.env_carried_over_ignored keys=%s", sorted(carried))
        self._stale = set(carried)
        self._external = frozenset(name for name in self.provider.names() if name not in carried)

    def apply_file(self, path: Path, position: int = 0) -> int:
        """Apply an environment file; returns the number of keys written, 0 if absent."""
        if not path.is_file():
            logger.debug("config.env_file_absent path=%s", path)
            return 0

        written = 0
        for name, value in dotenv_values(path).items():
            if value is None:
                continue
            if self.is_external(name):
                logger.debug("config.env_file_key_shadowed path=%s key=%s", path, name)
                continue
            previous = self._from_files.get(name)
            if previous is not None and previous[0] != path:
                logger.debug("config.env_file_key_overwritten key=%s previous=%s path=%s", name, previous[0], path)
            self.provider.set(name, value)
            self._stale.discard(name)
            self._from_files[name] = (path, position)
            written += 1
        logger.info("config.source_applied kind=env path=%s keys=%d", path, written)
        return written

    def get(self, name: str) -> Optional[str]:
        if name in self._stale:
            return None
        return self.provider.get(name)

    def is_external(self, name: str) -> bool:
        return name in self._external

    def file_origins(self) -> Mapping[str, Path]:
        return MappingProxyType({name: path for name, (path, _) in self._from_files.items()})

    def set_before(self, position: int) -> frozenset[str]:
        """Names whose value came from an environment file declared before `position`."""
        return frozenset(name for name, (_, pos) in self._from_files.items() if pos < position)

    def freeze(self) -> Mapping[str, str]:
        values = {}
        for name in self.provider.names():
            value = self.get(name)
            if value is not None:
                values[name] = value
        return MappingProxyType(values)
