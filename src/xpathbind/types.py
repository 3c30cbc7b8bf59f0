# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass
from enum import Enum
from types import GenericAlias, NoneType, UnionType
from typing import Any, NewType, Self, TypeAliasType, Union, get_args, get_origin

__all__ = (  # noqa: RUF022
    'Byte',
    'Short',
    'Long',
    'Float',
    'Char',

    'MarkerEnum',
    'Marker',
    'FieldType',

    'null_values',
    'scalar_types',
    'type_repr',
)


# Scalar kinds that have no builtin python counterpart. They are only
# markers for annotations, the values themselves are plain int/float/str.

Byte = NewType('Byte', int)
Short = NewType('Short', int)
Long = NewType('Long', int)
Float = NewType('Float', float)
Char = NewType('Char', str)


class MarkerEnum(Enum):
    """Base class for defining markers"""

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}.{self.name}'


class Marker(MarkerEnum):
    MissingArgument = 'Argument is not provided'
    NoNullValue = 'The scalar kind has no null value defined'


# The value a non-optional scalar field gets when the query has no match.
# Byte is a scalar kind as well, but it has no null value defined yet.

null_values: dict[object, object] = {
    int: 0,
    Long: 0,
    Short: 0,
    float: 0.0,
    Float: 0.0,
    bool: False,  # noqa: FBT003
    Char: '\0',
}

scalar_types: frozenset[object] = frozenset(null_values) | {Byte}


def type_repr(annotation: object) -> str:
    """Represent a type the way it is written in code, to make error messages more readable"""
    match annotation:
        case TypeAliasType():
            return annotation.__name__
        case NewType():
            return annotation.__name__
        case GenericAlias():
            return f'{type_repr(get_origin(annotation))}[{", ".join(type_repr(arg) for arg in get_args(annotation))}]'
        case UnionType():
            return ' | '.join('None' if arg is NoneType else type_repr(arg) for arg in get_args(annotation))
        case type():
            return annotation.__qualname__
        case _:
            return '...' if annotation is Ellipsis else repr(annotation)


def _runtime_types(annotation: object) -> tuple[type, ...]:
    match annotation:
        case NewType():
            return _runtime_types(annotation.__supertype__)
        case TypeAliasType():
            return _runtime_types(annotation.__value__)
        case UnionType():
            return tuple(t for arg in get_args(annotation) if arg is not NoneType for t in _runtime_types(arg))
        case _ if annotation is Any:
            return (object,)
        case _ if get_origin(annotation) is Union:
            return tuple(t for arg in get_args(annotation) if arg is not NoneType for t in _runtime_types(arg))
        case _ if isinstance(get_origin(annotation), type):
            return (get_origin(annotation),)  # type: ignore[return-value]
        case type():
            return (annotation,)
        case _:
            return (object,)  # TypeVars and other constructs that cannot be checked at runtime


def _unwrap_optional(annotation: object) -> tuple[object, bool]:
    if isinstance(annotation, UnionType) or get_origin(annotation) is Union:
        args = get_args(annotation)
        members = tuple(arg for arg in args if arg is not NoneType)
        optional = len(members) < len(args)
        if len(members) == 1:
            return members[0], optional
        return Union[members], optional  # noqa: UP007
    return annotation, False


@dataclass(frozen=True, slots=True)
class FieldType:
    """The declared type of a field, with the details needed to assign values to it"""

    annotation: object
    base: object
    optional: bool
    runtime_types: tuple[type, ...]
    accepts_text: bool

    @classmethod
    def from_annotation(cls, annotation: object) -> Self:
        base, optional = _unwrap_optional(annotation)
        runtime_types = _runtime_types(base)
        # A raw string is only directly assignable to plain str (or anything wider). Annotations like Char
        # are str at runtime, but a text value must go through their default converter first.
        if isinstance(base, NewType):
            accepts_text = False
        else:
            accepts_text = str in runtime_types or object in runtime_types
        return cls(annotation=annotation, base=base, optional=optional, runtime_types=runtime_types, accepts_text=accepts_text)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({type_repr(self.annotation)})'

    @property
    def scalar(self) -> bool:
        return self.base in scalar_types

    @property
    def primitive(self) -> bool:
        """True for non-optional scalar kinds, which never hold None"""
        return self.scalar and not self.optional

    @property
    def null_value(self) -> object:
        if not self.primitive:
            return None
        return null_values.get(self.base, Marker.NoNullValue)

    @property
    def is_enum(self) -> bool:
        return isinstance(self.base, type) and issubclass(self.base, Enum)

    @property
    def collection_type(self) -> type | None:
        origin = get_origin(self.base) or self.base
        return origin if isinstance(origin, type) else None

    def accepts(self, value: object, *, converted: bool = False) -> bool:
        if isinstance(value, str) and not (self.accepts_text or converted):
            return False
        if isinstance(value, self.runtime_types):
            return True
        # int is acceptable where a float is expected (but bool is not, even if it is an int)
        return float in self.runtime_types and isinstance(value, int) and not isinstance(value, bool)
