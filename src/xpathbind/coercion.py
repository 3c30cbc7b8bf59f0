# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Decide how a value resolved by a query is placed into a field.

A value is assigned as is if it matches the declared type of the field.
Missing values become None, or the null value of the scalar kind for
non-optional scalar fields. Text values that do not match are converted
with the default converter registered for the declared type. Scalar
bindings additionally parse text into enum members.
"""

import logging
from typing import Protocol

from .converters import ConverterFunction, ConverterRegistry
from .exceptions import FieldAssignmentError
from .query import ETreeElement, parse_enum
from .schema import FieldSchema
from .types import Marker, type_repr

__all__ = 'UnmarshalContext', 'assign', 'assign_extended', 'convert'


log = logging.getLogger(__name__)


class UnmarshalContext(Protocol):
    registry: ConverterRegistry

    def from_root[T](self, root: ETreeElement, target_type: type[T]) -> T: ...


def convert(field: FieldSchema, target: object, converter: ConverterFunction, value: str | None) -> object:
    """Apply converter to value, reporting conversion errors as FieldAssignmentError"""
    try:
        return converter(value)
    except (ValueError, ArithmeticError) as exc:
        raise FieldAssignmentError(field.name, value, target, reason=f'{converter!r} failed: {exc!s}') from exc


def assign(context: UnmarshalContext, field: FieldSchema, target: object, value: object, *, strict: bool = True, converted: bool = False) -> bool:
    """
    Assign value to the field if it matches the field type, or can be made to match it.

    Returns True if the value was assigned. Otherwise it raises
    FieldAssignmentError in strict mode, or returns False. A converted value
    is not converted again, and when it is a string it is accepted by the
    str based scalar kinds (like Char) which otherwise refuse raw text.
    """
    field_type = field.type
    if value is None:
        null_value = field_type.null_value
        if null_value is Marker.NoNullValue:
            log.warning('There is no null value for %s, leaving field %s.%s unchanged', type_repr(field_type.base), type(target).__qualname__, field.name)
        else:
            setattr(target, field.name, null_value)
        return True
    if field_type.accepts(value, converted=converted):
        setattr(target, field.name, value)
        return True
    if isinstance(value, str) and not converted:
        converter = context.registry.get_default(field_type.base)
        if converter is not None:
            result = convert(field, target, converter, value)
            return assign(context, field, target, result, strict=strict, converted=True)
    if strict:
        raise FieldAssignmentError(field.name, value, target, reason=f'field type {type_repr(field_type.annotation)} does not match')
    return False


def assign_extended(context: UnmarshalContext, field: FieldSchema, target: object, value: object) -> None:
    """Like assign() in strict mode, but it also parses text into enum members for enum fields"""
    if assign(context, field, target, value, strict=False):
        return
    if field.type.is_enum and isinstance(value, str):
        setattr(target, field.name, parse_enum(field.type.base, value) if value else None)  # type: ignore[arg-type]
        return
    raise FieldAssignmentError(field.name, value, target, reason=f'field type {type_repr(field.type.annotation)} does not match')

