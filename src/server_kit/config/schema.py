from __future__ import annotations

import collections.abc
import types
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Literal, Optional, Union, get_args, get_origin

from pydantic import BaseModel

Shape = Literal["scalar", "sequence", "mapping", "model"]

# Separator between a nested section and its field in derived variable names.
NESTED_DELIMITER = "__"


class Env:
    """
    Field metadata naming the environment variables that may set a field.

    Names are tried in the given order; the first one present wins. Without
    this marker a field answers to its upper-snake name.

        environment: Annotated[Environment, Env("ENVIRONMENT", "APP_ENV")] = ...
    """

    __slots__ = ("names",)

    def __init__(self, *names: str) -> None:
        if not names:
            raise ValueError("Env() requires at least one variable name")
        self.names = tuple(names)

    def __repr__(self) -> str:
        return f"Env({', '.join(repr(n) for n in self.names)})"


class Flatten:
    """
    Field metadata embedding a model's fields at the parent's level.

    The embedded model reads the same document keys and the same environment
    names as its parent, like a base schema extended with custom fields.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return "Flatten()"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    annotation: Any
    shape: Shape
    env_names: tuple[str, ...]
    flatten: bool
    required: bool

    @property
    def model(self) -> type[BaseModel]:
        return self.annotation

    @property
    def enum_type(self) -> Optional[type[Enum]]:
        if isinstance(self.annotation, type) and issubclass(self.annotation, Enum):
            return self.annotation
        return None


def unwrap_optional(annotation: Any) -> Any:
    if get_origin(annotation) in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def is_model_type(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


def _shape_of(annotation: Any) -> Shape:
    if is_model_type(annotation):
        return "model"
    origin = get_origin(annotation) or annotation
    if not isinstance(origin, type) or issubclass(origin, (str, bytes)):
        return "scalar"
    if issubclass(origin, collections.abc.Mapping):
        return "mapping"
    if issubclass(origin, (collections.abc.Sequence, collections.abc.Set)):
        return "sequence"
    return "scalar"


@lru_cache(maxsize=None)
def model_field_specs(model: type[BaseModel], env_prefix: str = "") -> tuple[FieldSpec, ...]:
    specs = []
    for name, info in model.model_fields.items():
        annotation = unwrap_optional(info.annotation)
        flatten = any(isinstance(m, Flatten) for m in info.metadata)
        if flatten and not is_model_type(annotation):
            raise TypeError(f"{model.__qualname__}.{name}: Flatten() requires a pydantic model field")

        explicit = next((m for m in info.metadata if isinstance(m, Env)), None)
        if explicit is not None:
            env_names = explicit.names
        else:
            env_names = (f"{env_prefix}{name.upper()}",)

        specs.append(
            FieldSpec(
                name=name,
                annotation=annotation,
                shape=_shape_of(annotation),
                env_names=env_names,
                flatten=flatten,
                required=info.is_required(),
            )
        )
    return tuple(specs)
