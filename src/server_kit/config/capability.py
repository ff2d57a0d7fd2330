"""
Capability projection.

A composite configuration type declares, once, that it carries a narrower
configuration (a capability) in one of its fields. Generic subsystems then ask
for that capability without knowing the composite type:

    @provides(ServerConfig)
    class AppConfig(BaseModel):
        server: Annotated[ServerConfig, Flatten()] = Field(default_factory=ServerConfig)
        database_url: str

    server = project(app_config, ServerConfig)

Declaration errors surface when the class is decorated, not when a subsystem
projects the value.
"""

from __future__ import annotations

import logging
from operator import attrgetter
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

from pydantic import BaseModel

from server_kit.config.errors import CapabilityNotProvided
from server_kit.config.schema import is_model_type, unwrap_optional

logger = logging.getLogger(__name__)

C = TypeVar("C")
M = TypeVar("M", bound=type)

Accessor = Callable[[Any], Any]

_REGISTRY: Dict[Tuple[type, type], Accessor] = {}


def _identity(value: Any) -> Any:
    return value


def register_capability(target: type, capability: type, accessor: Optional[Accessor] = None) -> None:
    """
    Register that `target` provides `capability`.

    Without an accessor the relation is derived from `target`'s fields: exactly
    one field must be annotated with `capability`. A type always may provide
    itself.
    """
    if accessor is None:
        if target is capability:
            accessor = _identity
        else:
            accessor = attrgetter(_find_capability_field(target, capability))

    existing = _REGISTRY.get((target, capability))
    if existing is not None and existing is not accessor:
        logger.debug(
            "config.capability_reregistered target=%s capability=%s",
            target.__qualname__,
            capability.__qualname__,
        )
    _REGISTRY[(target, capability)] = accessor


def provides(*capabilities: type) -> Callable[[M], M]:
    """Class decorator declaring the capabilities a configuration type carries."""
    if not capabilities:
        raise ValueError("provides() requires at least one capability type")

    def decorate(cls: M) -> M:
        for capability in capabilities:
            register_capability(cls, capability)
        return cls

    return decorate


def project(value: Any, capability: type[C]) -> C:
    """Return the `capability` carried by `value`."""
    accessor = _REGISTRY.get((type(value), capability))
    if accessor is None:
        raise CapabilityNotProvided(type(value), capability, "relation was never declared")
    return accessor(value)


def provided_capabilities(target: type) -> tuple[type, ...]:
    return tuple(cap for (owner, cap) in _REGISTRY if owner is target)


def _find_capability_field(target: type, capability: type) -> str:
    if not is_model_type(target):
        raise CapabilityNotProvided(target, capability, "only pydantic models can declare capabilities")

    model: type[BaseModel] = target
    matches = [
        name
        for name, info in model.model_fields.items()
        if unwrap_optional(info.annotation) is capability
    ]
    if not matches:
        raise CapabilityNotProvided(target, capability, f"no field of type {capability.__qualname__}")
    if len(matches) > 1:
        raise CapabilityNotProvided(
            target,
            capability,
            f"ambiguous, fields {', '.join(matches)} all have type {capability.__qualname__}",
        )
    name = matches[0]
    if model.model_fields[name].annotation is not capability:
        # Projection must not be able to yield None.
        raise CapabilityNotProvided(target, capability, f"field {name} is optional")
    return name
