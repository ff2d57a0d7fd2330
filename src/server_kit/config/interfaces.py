from __future__ import annotations

from typing import Iterator, Optional, Protocol


class EnvironmentProvider(Protocol):
    """
    Key/value store backing the environment snapshot of a build.

    Implementations may wrap the real process environment or a build-local mapping.
    Only environment-file application writes to a provider during a build.
    """

    def get(self, name: str) -> Optional[str]:
        ...

    def set(self, name: str, value: str) -> None:
        ...

    def names(self) -> Iterator[str]:
        ...

    def carried_over(self) -> frozenset[str]:
        """Names still holding a value an earlier build copied in from an environment file."""
        ...
