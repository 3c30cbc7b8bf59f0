# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass
from functools import cache
from inspect import get_annotations
from typing import TYPE_CHECKING, get_type_hints

from .types import FieldType

if TYPE_CHECKING:
    from .bindings import Binding, XPathObject

__all__ = 'FieldSchema', 'TypeSchema', 'clear_schema_cache', 'type_schema'


@dataclass(frozen=True, slots=True)
class FieldSchema:
    name: str
    binding: 'Binding'
    type: FieldType


@dataclass(frozen=True, slots=True)
class TypeSchema:
    type: type['XPathObject']
    fields: tuple[FieldSchema, ...]

    def __iter__(self):  # noqa: ANN204
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)


@cache
def type_schema(cls: type['XPathObject']) -> TypeSchema:
    """
    Discover the bound fields of an XPathObject class and their declared types.

    The fields are listed with the ones defined by the class first, followed
    by the inherited ones. This is done once per class, when it is first
    unmarshalled, so that annotations can reference types defined later.
    """
    try:
        hints = get_type_hints(cls, localns={cls.__name__: cls})
    except NameError as exc:
        raise TypeError(f'cannot resolve the type annotation of {_unresolved_field(cls, exc.name)}: {exc!s}') from exc
    fields = tuple(FieldSchema(name=name, binding=binding, type=FieldType.from_annotation(hints.get(name, object))) for name, binding in cls._bindings_.items())
    return TypeSchema(type=cls, fields=fields)


def _unresolved_field(cls: type, name: str | None) -> str:
    if name is not None:
        for base in cls.__mro__:
            for field, annotation in get_annotations(base).items():
                if isinstance(annotation, str) and name in annotation:
                    return f'{base.__qualname__}.{field}'
    return cls.__qualname__


def clear_schema_cache() -> None:
    type_schema.cache_clear()
