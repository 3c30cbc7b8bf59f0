# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later


__all__ = (  # noqa: RUF022
    'XPathBindError',
    'DocumentParseError',
    'QuerySyntaxError',
    'InstantiationError',
    'ConverterInstantiationError',
    'EnumConstantError',
    'FieldAssignmentError',
)


class XPathBindError(Exception):
    """Base class for all the errors raised while binding XML to objects."""


class DocumentParseError(XPathBindError, ValueError):
    """Raised when the input cannot be parsed into an XML document."""


class QuerySyntaxError(XPathBindError, ValueError):
    """
    Raised when an XPath expression is malformed.

    This is a programming error. Expressions used by bindings are compiled
    when the class that declares them is created, so they are reported at
    class definition time.

    """


class InstantiationError(XPathBindError, TypeError):
    """Raised when the target type cannot be instantiated with no arguments."""


class ConverterInstantiationError(XPathBindError, TypeError):
    """Raised when a converter type cannot be instantiated with no arguments."""


class EnumConstantError(XPathBindError, ValueError):
    """Raised when a text value does not name any member of the target enumeration."""


class FieldAssignmentError(XPathBindError, TypeError):
    """
    Raised when a value resolved for a field cannot be assigned to it.

    This happens when the value does not match the declared type of the field
    and there is no converter or subtype that can turn it into one that does,
    or when the converter itself fails. The ``__cause__`` attribute holds the
    original error when there is one.
    """

    def __init__(self, field: str, value: object, target: object, reason: str | None = None) -> None:
        self.field = field
        self.value = value
        self.target = target
        self.reason = reason
        message = f'could not set value {value!r} for field {type(target).__qualname__}.{field} on target {target!r}'
        super().__init__(f'{message} ({reason})' if reason else message)
