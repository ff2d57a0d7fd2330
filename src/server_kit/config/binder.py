from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, TypeVar

from pydantic import BaseModel, ValidationError

from server_kit.config.errors import InvalidValue, MissingRequiredField, TypeMismatch
from server_kit.config.loader import Document, thaw_value
from server_kit.config.merger import MergedResult
from server_kit.config.schema import NESTED_DELIMITER, FieldSpec, is_model_type, model_field_specs

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

Loc = Tuple[str, ...]


@dataclass
class _BindContext:
    merged: MergedResult
    origins: Dict[Loc, Tuple[str, str]] = field(default_factory=dict)
    missing: Dict[Loc, Tuple[str, Tuple[str, ...]]] = field(default_factory=dict)
    env_overrides: int = 0

    def lookup_env(
        self, names: Tuple[str, ...], skip: frozenset[str] = frozenset()
    ) -> Tuple[Optional[str], Optional[str]]:
        for name in names:
            if name in skip:
                continue
            value = self.merged.environment.get(name)
            if value is not None:
                return name, value
        return None, None

    def document_origin(self, dotted: str) -> str:
        return f"{self.merged.describe_document()} key '{dotted}'"

    def env_origin(self, name: str) -> str:
        path = self.merged.environment_files.get(name)
        if path is not None:
            return f"environment variable {name} (set by {path})"
        return f"environment variable {name}"


def bind(merged: MergedResult, target: type[T], *, env_prefix: str = "") -> T:
    """
    Bind the merged document, overlaid by recognized environment variables, into `target`.

    A recognized variable overrides the document value for its field unless an
    environment file declared before the active document set it, in which case
    it only fills a field the document leaves unset. The first validation
    failure is raised as a typed ConfigError naming the field and where its
    value came from.
    """
    if not is_model_type(target):
        raise TypeError(f"Config target must be a pydantic BaseModel subclass, got {target!r}")

    ctx = _BindContext(merged=merged)
    payload = _build_payload(target, merged.document, (), (), env_prefix, ctx)
    try:
        config = target.model_validate(payload)
    except ValidationError as exc:
        raise _translate(exc, ctx) from exc

    logger.info(
        "config.bound target=%s source=%s env_overrides=%d",
        target.__qualname__,
        merged.describe_document(),
        ctx.env_overrides,
    )
    return config


def to_document(config: BaseModel) -> Document:
    """Inverse of `bind`: flattened sections are lifted back to their parent's level."""
    return _lift(type(config), config.model_dump(mode="json"))


def document_keys(model: type[BaseModel]) -> frozenset[str]:
    keys = set()
    for spec in model_field_specs(model):
        if spec.flatten:
            keys |= document_keys(spec.model)
        else:
            keys.add(spec.name)
    return frozenset(keys)


def _build_payload(
    model: type[BaseModel],
    document: Mapping[str, Any],
    loc: Loc,
    display: Loc,
    env_prefix: str,
    ctx: _BindContext,
    *,
    report_unknown: bool = True,
) -> Dict[str, Any]:
    if report_unknown:
        unknown = set(document) - document_keys(model)
        if unknown:
            logger.debug(
                "config.unknown_keys target=%s section=%s keys=%s",
                model.__qualname__,
                ".".join(display) or "<root>",
                sorted(unknown),
            )

    payload: Dict[str, Any] = {}
    for spec in model_field_specs(model, env_prefix):
        field_loc = loc + (spec.name,)
        if spec.flatten:
            # Same document level and env namespace; the parent already reported unknown keys.
            payload[spec.name] = _build_payload(
                spec.model, document, field_loc, display, env_prefix, ctx, report_unknown=False
            )
            continue

        field_display = display + (spec.name,)
        dotted = ".".join(field_display)
        present = spec.name in document
        value = document.get(spec.name)

        if spec.shape == "model":
            if present and value is not None and not isinstance(value, Mapping):
                raise TypeMismatch(dotted, "expected a mapping section", ctx.document_origin(dotted), thaw_value(value))
            section_prefix = spec.env_names[0] + NESTED_DELIMITER
            sub = _build_payload(
                spec.model,
                value if isinstance(value, Mapping) else {},
                field_loc,
                field_display,
                section_prefix,
                ctx,
            )
            if sub or (present and value is not None):
                payload[spec.name] = sub
            elif present:
                payload[spec.name] = None
            else:
                ctx.missing[field_loc] = (dotted, (ctx.merged.describe_document(), f"{section_prefix}*"))
            ctx.origins[field_loc] = (dotted, ctx.document_origin(dotted))
            continue

        origin = ctx.document_origin(dotted)
        # Names set by env files declared before the document yield to it; later candidates still apply.
        shadowed = ctx.merged.document_shadowed.intersection(spec.env_names) if present else frozenset()
        if shadowed:
            logger.debug("config.env_shadowed_by_document field=%s variables=%s", dotted, sorted(shadowed))
        env_name, env_value = ctx.lookup_env(spec.env_names, shadowed)
        if env_name is not None:
            value = _parse_env_value(spec, dotted, env_name, env_value)
            origin = ctx.env_origin(env_name)
            present = True
            ctx.env_overrides += 1

        if not present:
            ctx.missing[field_loc] = (dotted, (ctx.merged.describe_document(), *spec.env_names))
            continue

        value = thaw_value(value)
        if spec.enum_type is not None:
            value = _coerce_enum(spec.enum_type, value)
        payload[spec.name] = value
        ctx.origins[field_loc] = (dotted, origin)

    return payload


def _parse_env_value(spec: FieldSpec, dotted: str, name: str, raw: str) -> Any:
    if spec.shape == "sequence":
        expected, kind = "a JSON array", list
    elif spec.shape == "mapping":
        expected, kind = "a JSON object", dict
    else:
        return raw

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidValue(dotted, name, raw, f"expected {expected}: {exc.msg}") from exc
    if not isinstance(parsed, kind):
        raise InvalidValue(dotted, name, raw, f"expected {expected}, got {type(parsed).__name__}")
    return parsed


def _coerce_enum(enum_type: type[Enum], value: Any) -> Any:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        return value


def _translate(exc: ValidationError, ctx: _BindContext) -> Exception:
    errors = exc.errors()
    first = errors[0]
    loc: Loc = tuple(str(p) for p in first["loc"])
    more = len(errors) - 1
    for extra in errors[1:]:
        logger.debug("config.validation_error loc=%s msg=%s", extra["loc"], extra["msg"])

    if first["type"] == "missing":
        dotted, sources = ctx.missing.get(loc, (".".join(loc), (ctx.merged.describe_document(),)))
        return MissingRequiredField(dotted, sources)

    dotted, origin = ".".join(loc) or "<root>", ctx.merged.describe_document()
    for size in range(len(loc), 0, -1):
        known = ctx.origins.get(loc[:size])
        if known is not None:
            dotted, origin = known
            break

    expected = first["msg"]
    if more:
        expected = f"{expected}; {more} more validation error(s)"
    return TypeMismatch(dotted, expected, origin, first.get("input"))


def _lift(model: type[BaseModel], data: Mapping[str, Any]) -> Document:
    out: Document = {}
    for spec in model_field_specs(model):
        value = data.get(spec.name)
        if spec.flatten:
            out.update(_lift(spec.model, value or {}))
            continue
        if spec.shape == "model" and isinstance(value, Mapping):
            value = _lift(spec.model, value)
        out[spec.name] = value
    return out
