from __future__ import annotations

import logging
from pathlib import Path
from typing import Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

from server_kit.config.binder import bind
from server_kit.config.environment import EnvironmentSnapshot, ProcessEnvironment
from server_kit.config.errors import BuilderAlreadyBuilt
from server_kit.config.interfaces import EnvironmentProvider
from server_kit.config.merger import MergedResult, merge_sources
from server_kit.config.sources import ConfigSource, environment_file, source_from_path, structured_file

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_DOTENV_PATH = ".env"


class ConfigBuilder(Generic[T]):
    """
    Declares configuration sources and resolves them into `target` exactly once.

        config = (
            ConfigBuilder(AppConfig)
            .with_dotenv()
            .add_structured_file("config/default.toml")
            .add_structured_file("config/production.yaml")
            .build()
        )

    Sources are recorded in order and only read by `build()`. Environment files
    are optional; structured files must exist. The last structured file is the
    whole document. Variables set outside the build, or by environment files
    declared after that document, override it.

    Without an explicit provider the build reads and writes `os.environ`.
    """

    def __init__(
        self,
        target: type[T],
        *,
        environment: Optional[EnvironmentProvider] = None,
        env_prefix: str = "",
    ) -> None:
        self._target = target
        self._environment: EnvironmentProvider = environment if environment is not None else ProcessEnvironment()
        self._env_prefix = env_prefix
        self._sources: List[ConfigSource] = []
        self._init_logging = False
        self._built = False

    @property
    def sources(self) -> Sequence[ConfigSource]:
        return tuple(self._sources)

    def with_dotenv(self, path: Path | str = DEFAULT_DOTENV_PATH) -> ConfigBuilder[T]:
        return self.add_environment_file(path)

    def add_environment_file(self, path: Path | str) -> ConfigBuilder[T]:
        self._ensure_open()
        self._sources.append(environment_file(path))
        return self

    def add_structured_file(self, path: Path | str) -> ConfigBuilder[T]:
        self._ensure_open()
        self._sources.append(structured_file(path))
        return self

    def with_config_file(self, path: Path | str) -> ConfigBuilder[T]:
        """Declare a source whose kind is detected from its name (`.env*` or a structured extension)."""
        self._ensure_open()
        self._sources.append(source_from_path(path))
        return self

    def with_logging_from_env(self) -> ConfigBuilder[T]:
        """Initialize logging from LOG_FORMAT / LOG_LEVEL once environment files are applied."""
        self._ensure_open()
        self._init_logging = True
        return self

    def merge(self) -> MergedResult:
        """Replay the declared sources without binding; consumes the builder."""
        self._ensure_open()
        self._built = True

        merged = merge_sources(self._sources, EnvironmentSnapshot(self._environment))
        if self._init_logging:
            from server_kit.logging import init_logging_from_env

            init_logging_from_env(merged.environment)
        return merged

    def build(self) -> T:
        logger.info(
            "config.build_start target=%s sources=%d",
            self._target.__qualname__,
            len(self._sources),
        )
        merged = self.merge()
        return bind(merged, self._target, env_prefix=self._env_prefix)

    def _ensure_open(self) -> None:
        if self._built:
            raise BuilderAlreadyBuilt()
