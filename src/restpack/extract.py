# SPDX-FileCopyrightText: 2025 Lucas S
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Derive request parameters from annotated records.

A record is a pydantic model or a dataclass whose fields declare where their
value goes through `typing.Annotated` markers::

    class ListUsers(BaseModel):
        page: Annotated[int, Query("page")] = 0
        tags: Annotated[list[str], Query("tag")] = []
        token: Annotated[str, Header("X-Token", required=True)] = ""
        user_id: Annotated[str, Tag('path:"id"')] = ""

The field layout of each record type is read once and cached as a
`RecordSchema`; schemas can also be declared explicitly with
`RecordSchema.builder()` for types that carry no annotations.
"""

import dataclasses
import inspect
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Self, get_type_hints

from pydantic import BaseModel

from restpack.params import (
    CookieParam,
    HeaderParam,
    Param,
    PathSegmentParam,
    QueryParam,
)

logger = logging.getLogger(__name__)

LocationKind = Literal["query", "path", "header", "cookie"]

LOCATION_KINDS: tuple[LocationKind, ...] = ("query", "path", "header", "cookie")
OPTION_REQUIRED = "required"


class FieldLocation:
    """Marker placing a record field in a specific part of the request."""

    location: LocationKind

    def __init__(self, name: str, required: bool = False) -> None:
        self.name = name
        self.required = required

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, required={self.required})"


class Query(FieldLocation):
    location: LocationKind = "query"


class Path(FieldLocation):
    location: LocationKind = "path"


class Header(FieldLocation):
    location: LocationKind = "header"


class Cookie(FieldLocation):
    location: LocationKind = "cookie"


class Tag:
    """
    Raw tag string marker, e.g. ``Tag('query:"list,required" header:"X-List"')``.

    Keys other than query, path, header and cookie are ignored. A tag that
    cannot be parsed causes the whole field to be skipped.
    """

    def __init__(self, raw: str) -> None:
        self.raw = raw

    def __repr__(self) -> str:
        return f"Tag({self.raw!r})"


class Embedded:
    """Marks a field holding another record whose parameters are inlined."""

    def __repr__(self) -> str:
        return "Embedded()"


class MalformedTagError(ValueError):
    pass


_TAG_ENTRY = re.compile(r'\s*([A-Za-z_][A-Za-z0-9_.-]*):"((?:[^"\\]|\\.)*)"')


def parse_tag(raw: str) -> list["FieldBinding"]:
    """
    Parse a ``key:"name,option"`` tag string into bindings.

    Raises `MalformedTagError` on syntax errors or when a known key has no
    target name.
    """
    bindings: list[FieldBinding] = []
    position = 0
    while position < len(raw):
        if raw[position:].strip() == "":
            break
        match = _TAG_ENTRY.match(raw, position)
        if match is None:
            raise MalformedTagError(f"Bad tag syntax at {position}: {raw!r}")
        position = match.end()
        if position < len(raw) and not raw[position].isspace():
            raise MalformedTagError(f"Missing separator at {position}: {raw!r}")

        key, value = match.group(1), match.group(2).replace('\\"', '"')
        if key not in LOCATION_KINDS:
            continue

        name, *options = [part.strip() for part in value.split(",")]
        if not name:
            raise MalformedTagError(f"Tag key {key!r} has no target name: {raw!r}")
        bindings.append(
            FieldBinding(
                location=key,  # type: ignore[arg-type]
                target=name,
                required=OPTION_REQUIRED in options,
            )
        )
    return bindings


@dataclass(frozen=True)
class FieldBinding:
    location: LocationKind
    target: str
    required: bool = False


@dataclass(frozen=True)
class FieldSpec:
    attribute: str
    bindings: tuple[FieldBinding, ...] = ()
    embedded: bool = False


@dataclass(frozen=True)
class RecordSchema:
    """Ordered description of which record fields go where."""

    fields: tuple[FieldSpec, ...]

    @classmethod
    def of(cls, record_type: type) -> "RecordSchema":
        schema = _SCHEMA_CACHE.get(record_type)
        if schema is None:
            schema = _inspect_record_type(record_type)
            # Racing threads compute equal schemas, the first one stays.
            schema = _SCHEMA_CACHE.setdefault(record_type, schema)
        return schema

    @classmethod
    def register(cls, record_type: type, schema: "RecordSchema") -> None:
        """Use `schema` for `record_type` instead of reading its annotations."""
        if _SCHEMA_CACHE.setdefault(record_type, schema) is not schema:
            raise ValueError(f"A schema is already known for {record_type!r}")

    @classmethod
    def builder(cls) -> "RecordSchemaBuilder":
        return RecordSchemaBuilder()


class RecordSchemaBuilder:

    def __init__(self) -> None:
        self._fields: list[FieldSpec] = []

    def _bind(
        self,
        location: LocationKind,
        attribute: str,
        target: str | None,
        required: bool,
    ) -> Self:
        self._fields.append(
            FieldSpec(
                attribute=attribute,
                bindings=(
                    FieldBinding(
                        location=location,
                        target=target or attribute,
                        required=required,
                    ),
                ),
            )
        )
        return self

    def query(
        self, attribute: str, target: str | None = None, required: bool = False
    ) -> Self:
        return self._bind("query", attribute, target, required)

    def path(
        self, attribute: str, target: str | None = None, required: bool = False
    ) -> Self:
        return self._bind("path", attribute, target, required)

    def header(
        self, attribute: str, target: str | None = None, required: bool = False
    ) -> Self:
        return self._bind("header", attribute, target, required)

    def cookie(
        self, attribute: str, target: str | None = None, required: bool = False
    ) -> Self:
        return self._bind("cookie", attribute, target, required)

    def embedded(self, attribute: str) -> Self:
        self._fields.append(FieldSpec(attribute=attribute, embedded=True))
        return self

    def build(self) -> RecordSchema:
        return RecordSchema(fields=tuple(self._fields))


# Append-only, keyed by record type.
_SCHEMA_CACHE: dict[type, RecordSchema] = {}


def is_record(obj: Any) -> bool:
    record_type = obj if isinstance(obj, type) else type(obj)
    return (
        isinstance(record_type, type) and issubclass(record_type, BaseModel)
    ) or dataclasses.is_dataclass(record_type)


def _field_names(record_type: type) -> list[str]:
    if issubclass(record_type, BaseModel):
        return [*record_type.model_fields, *record_type.__private_attributes__]
    if dataclasses.is_dataclass(record_type):
        return [field.name for field in dataclasses.fields(record_type)]
    return []


def _field_markers(record_type: type, attribute: str, hints: dict[str, Any]) -> list[Any]:
    if issubclass(record_type, BaseModel) and attribute in record_type.model_fields:
        return list(record_type.model_fields[attribute].metadata)
    hint = hints.get(attribute)
    if hint is not None and hasattr(hint, "__metadata__"):
        return list(hint.__metadata__)
    return []


def _private_attribute_hints(model_type: type[BaseModel]) -> dict[str, Any]:
    # pydantic keeps private attributes out of model_fields, their markers
    # only live in the class annotations.
    private = model_type.__private_attributes__
    hints: dict[str, Any] = {}
    if not private:
        return hints
    for base in reversed(model_type.__mro__):
        own = {
            name: hint
            for name, hint in inspect.get_annotations(base).items()
            if name in private
        }
        if own:
            holder = type(
                base.__name__, (), {"__annotations__": own, "__module__": base.__module__}
            )
            hints.update(get_type_hints(holder, include_extras=True))
    return hints


def _inspect_record_type(record_type: type) -> RecordSchema:
    if not is_record(record_type):
        return RecordSchema(fields=())

    hints: dict[str, Any] = {}
    if issubclass(record_type, BaseModel):
        try:
            hints = _private_attribute_hints(record_type)
        except (NameError, TypeError) as err:
            logger.warning(
                "Could not resolve private annotations of %s, they will be skipped: %s",
                record_type.__qualname__,
                err,
            )
    else:
        try:
            hints = get_type_hints(record_type, include_extras=True)
        except (NameError, TypeError) as err:
            logger.warning(
                "Could not resolve annotations of %s, no parameters will be extracted: %s",
                record_type.__qualname__,
                err,
            )
            return RecordSchema(fields=())

    specs: list[FieldSpec] = []
    for attribute in _field_names(record_type):
        markers = _field_markers(record_type, attribute, hints)
        embedded = any(isinstance(marker, Embedded) for marker in markers)

        if attribute.startswith("_") and not embedded:
            continue

        try:
            bindings = _bindings_from_markers(markers)
        except MalformedTagError as err:
            logger.warning(
                "Skipping field %s.%s with malformed tag: %s",
                record_type.__qualname__,
                attribute,
                err,
            )
            continue

        if bindings or embedded:
            specs.append(
                FieldSpec(
                    attribute=attribute, bindings=tuple(bindings), embedded=embedded
                )
            )

    return RecordSchema(fields=tuple(specs))


def _bindings_from_markers(markers: list[Any]) -> list[FieldBinding]:
    bindings: list[FieldBinding] = []
    for marker in markers:
        if isinstance(marker, FieldLocation):
            if not marker.name:
                raise MalformedTagError(f"{marker!r} has no target name")
            bindings.append(
                FieldBinding(
                    location=marker.location,
                    target=marker.name,
                    required=marker.required,
                )
            )
        elif isinstance(marker, Tag):
            bindings.extend(parse_tag(marker.raw))
    return bindings


_ZERO_CHECKED = (
    str,
    bytes,
    bytearray,
    int,
    float,
    complex,
    Decimal,
    list,
    tuple,
    set,
    frozenset,
    dict,
)
_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, Enum):
        return is_zero(value.value)
    if isinstance(value, _ZERO_CHECKED):
        return not value
    return False


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return format_value(value.value)
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def make_param(location: LocationKind, name: str, value: str) -> Param:
    if location == "query":
        return QueryParam(name=name, value=value)
    if location == "path":
        return PathSegmentParam(name=name, value=value)
    if location == "header":
        return HeaderParam(name=name, value=value)
    if location == "cookie":
        return CookieParam(name=name, value=value)
    raise ValueError(f"Unknown parameter location: {location}")


def params_from_object(obj: Any, schema: RecordSchema | None = None) -> list[Param]:
    """
    Build the parameters described by the annotations of `obj`.

    Fields without markers are ignored, and so are zero values unless their
    marker is `required`. Sequence values yield one parameter per element.
    A field carrying several markers yields one parameter per marker, in
    marker order. Never raises on malformed annotations: objects that are not
    records produce no parameters.
    """
    if schema is None:
        if obj is None or isinstance(obj, type):
            return []
        schema = RecordSchema.of(type(obj))

    params: list[Param] = []
    for spec in schema.fields:
        value = getattr(obj, spec.attribute, None)

        if spec.embedded:
            params.extend(params_from_object(value))

        for binding in spec.bindings:
            params.extend(_binding_params(binding, value))

    return params


def _binding_params(binding: FieldBinding, value: Any) -> list[Param]:
    if not binding.required and is_zero(value):
        return []

    if isinstance(value, _SEQUENCE_TYPES):
        return [
            make_param(binding.location, binding.target, format_value(item))
            for item in value
            if item is not None
        ]

    return [make_param(binding.location, binding.target, format_value(value))]


__all__ = [
    "FieldLocation",
    "Query",
    "Path",
    "Header",
    "Cookie",
    "Tag",
    "Embedded",
    "FieldBinding",
    "FieldSpec",
    "RecordSchema",
    "RecordSchemaBuilder",
    "MalformedTagError",
    "parse_tag",
    "params_from_object",
    "is_record",
    "is_zero",
    "format_value",
]
