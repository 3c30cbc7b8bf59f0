# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .__info__ import __version__
from .bindings import Binding, XPathFirst, XPathList, XPathMap, XPathObject
from .converters import (
    Converter,
    ConverterRegistry,
    NoneConverter,
    ToBooleanConverter,
    ToByteConverter,
    ToCharacterConverter,
    ToDateConverter,
    ToDateTimeConverter,
    ToDecimalConverter,
    ToDoubleConverter,
    ToFloatConverter,
    ToIntegerConverter,
    ToLongConverter,
    ToShortConverter,
    ToTimeConverter,
    ToZonedDateTimeConverter,
)
from .exceptions import (
    ConverterInstantiationError,
    DocumentParseError,
    EnumConstantError,
    FieldAssignmentError,
    InstantiationError,
    QuerySyntaxError,
    XPathBindError,
)
from .schema import clear_schema_cache
from .types import Byte, Char, Float, Long, Short
from .unmarshaller import (
    Unmarshaller,
    clear_converters,
    from_bytes,
    from_file,
    from_root,
    from_stream,
    from_xml,
    register_converter,
    register_default_converter,
    reset_default_converters,
    unmarshal,
    unmarshaller,
    unregister_converter,
    unregister_default_converter,
)

__all__ = (  # noqa: RUF022
    '__version__',

    'XPathObject',
    'Binding',
    'XPathFirst',
    'XPathList',
    'XPathMap',

    'Byte',
    'Short',
    'Long',
    'Float',
    'Char',

    'Converter',
    'ConverterRegistry',
    'NoneConverter',
    'ToIntegerConverter',
    'ToLongConverter',
    'ToShortConverter',
    'ToByteConverter',
    'ToDoubleConverter',
    'ToFloatConverter',
    'ToDecimalConverter',
    'ToBooleanConverter',
    'ToCharacterConverter',
    'ToDateConverter',
    'ToDateTimeConverter',
    'ToTimeConverter',
    'ToZonedDateTimeConverter',

    'XPathBindError',
    'DocumentParseError',
    'QuerySyntaxError',
    'InstantiationError',
    'ConverterInstantiationError',
    'EnumConstantError',
    'FieldAssignmentError',

    'Unmarshaller',
    'unmarshaller',
    'from_xml',
    'from_bytes',
    'from_stream',
    'from_file',
    'from_root',
    'unmarshal',
    'register_converter',
    'unregister_converter',
    'clear_converters',
    'register_default_converter',
    'unregister_default_converter',
    'reset_default_converters',
    'clear_schema_cache',
)
