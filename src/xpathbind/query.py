# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Query XML documents with XPath.

This is a thin layer over the lxml XPath evaluator. Queries can be given
as strings (which are compiled and cached) or as pre-compiled etree.XPath
objects. Results are lists of nodes, where a node is either an element or
a string (for attributes and text nodes). Expressions that do not produce
a node set, like count() or string(), give a single item list.
"""

from collections.abc import Callable, Iterator, Mapping, Sequence
from datetime import date, datetime, time
from enum import Enum
from functools import lru_cache
from math import isinf, isnan
from os import PathLike, fspath
from typing import IO, overload

from lxml import etree

from .converters import (
    ToBooleanConverter,
    ToCharacterConverter,
    ToDateConverter,
    ToDateTimeConverter,
    ToDoubleConverter,
    ToFloatConverter,
    ToIntegerConverter,
    ToLongConverter,
    ToShortConverter,
    ToTimeConverter,
    ToZonedDateTimeConverter,
)
from .exceptions import DocumentParseError, EnumConstantError, QuerySyntaxError
from .types import Marker

__all__ = (  # noqa: RUF022
    'ETreeElement',
    'Node',
    'NodeSequence',
    'Query',
    'Namespaces',
    'XMLSource',

    'compile_query',
    'node_value',
    'parse_enum',

    'query_all',
    'query_first',
    'query_first_element',
    'query_first_value',
    'query_element_list',
    'each',
    'has_node',
    'query_list',
    'query_map',

    'query_integer',
    'query_long',
    'query_short',
    'query_double',
    'query_float',
    'query_boolean',
    'query_character',
    'query_date',
    'query_datetime',
    'query_time',
    'query_zoned_datetime',
    'query_enum',

    'parse_string',
    'parse_bytes',
    'parse_stream',
    'parse_file',
    'parse_root',
)


# noinspection PyProtectedMember
type ETreeElement = etree._Element  # noqa: SLF001
type Node = ETreeElement | str | float | bool
type Query = str | etree.XPath
type Namespaces = Mapping[str, str]
type XMLSource = ETreeElement | str | bytes | PathLike | IO


class NodeSequence(Sequence[Node]):
    """A read-only view over the nodes matched by a query, that can be iterated multiple times"""

    __slots__ = ('_nodes',)

    def __init__(self, nodes: list[Node]) -> None:
        self._nodes = nodes

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self._nodes!r})'

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    @overload
    def __getitem__(self, key: int) -> Node: ...

    @overload
    def __getitem__(self, key: slice) -> list[Node]: ...

    def __getitem__(self, key: int | slice) -> Node | list[Node]:
        return self._nodes[key]


@lru_cache(maxsize=1024)
def _compile(path: str, namespaces: tuple[tuple[str, str], ...]) -> etree.XPath:
    try:
        return etree.XPath(path, namespaces=dict(namespaces) or None)
    except etree.XPathSyntaxError as exc:
        raise QuerySyntaxError(f'invalid XPath expression {path!r}: {exc!s}') from exc


def compile_query(path: Query, namespaces: Namespaces | None = None) -> etree.XPath:
    if isinstance(path, etree.XPath):
        return path
    return _compile(path, tuple(sorted(namespaces.items())) if namespaces else ())


def _evaluate(node: ETreeElement, path: Query, namespaces: Namespaces | None) -> list[Node]:
    xpath = compile_query(path, namespaces)
    try:
        result = xpath(node)
    except etree.XPathEvalError as exc:
        raise QuerySyntaxError(f'cannot evaluate XPath expression {xpath.path!r}: {exc!s}') from exc
    if isinstance(result, list):
        return result
    return [result]


_string_value = etree.XPath('string()')


def node_value(node: Node) -> str:
    """Return the XPath string value of a node"""
    match node:
        case etree._Element():  # noqa: SLF001
            return str(_string_value(node))
        case bool():
            return 'true' if node else 'false'
        case float() if isnan(node):
            return 'NaN'
        case float() if isinf(node):
            return 'Infinity' if node > 0 else '-Infinity'
        case float() if node.is_integer():
            return str(int(node))
        case _:
            return str(node)


def parse_enum[E: Enum](enum_type: type[E], value: str) -> E:
    """Find the enum member named by value, or failing that, the member with that value"""
    try:
        return enum_type[value]
    except KeyError:
        pass
    try:
        return enum_type(value)
    except ValueError:
        raise EnumConstantError(f'{value!r} is not a valid {enum_type.__qualname__} member') from None


# Queries

def query_all(node: ETreeElement, path: Query, namespaces: Namespaces | None = None) -> list[Node]:
    return _evaluate(node, path, namespaces)


def each(node: ETreeElement, path: Query, namespaces: Namespaces | None = None) -> NodeSequence:
    return NodeSequence(_evaluate(node, path, namespaces))


def query_first(node: ETreeElement, path: Query, namespaces: Namespaces | None = None) -> Node | None:
    nodes = _evaluate(node, path, namespaces)
    return nodes[0] if nodes else None


def query_first_element(node: ETreeElement, path: Query, namespaces: Namespaces | None = None) -> ETreeElement | None:
    first = query_first(node, path, namespaces)
    if first is not None and not isinstance(first, etree._Element):  # noqa: SLF001
        raise TypeError(f'the XPath expression {compile_query(path, namespaces).path!r} did not select an element')
    return first


def query_element_list(node: ETreeElement, path: Query, namespaces: Namespaces | None = None) -> list[ETreeElement]:
    return [item for item in _evaluate(node, path, namespaces) if isinstance(item, etree._Element)]  # noqa: SLF001


def query_first_value[T](node: ETreeElement, path: Query, converter: Callable[[str | None], T] | None = None, namespaces: Namespaces | None = None) -> str | T | None:
    first = query_first(node, path, namespaces)
    value = node_value(first) if first is not None else None
    return converter(value) if converter is not None else value


def has_node(node: ETreeElement, path: Query, namespaces: Namespaces | None = None) -> bool:
    return query_first(node, path, namespaces) is not None


def query_list[T](node: ETreeElement, path: Query, converter: Callable[[str | None], T] | Marker | None = Marker.MissingArgument, namespaces: Namespaces | None = None) -> list[str] | list[T | None]:
    """
    Return the string values of all the matching nodes, in document order.

    When a converter is given, it is applied to each value. An explicit None
    converter gives a list of None values, one for each matching node.
    """
    values = [node_value(item) for item in _evaluate(node, path, namespaces)]
    if converter is Marker.MissingArgument:
        return values
    if converter is None:
        return [None for _ in values]
    return [converter(value) for value in values]  # type: ignore[operator]


def query_map[K, V](
    node: ETreeElement,
    entry_path: Query,
    key_path: Query,
    value_path: Query,
    key_converter: Callable[[str | None], K] | None = None,
    value_converter: Callable[[str | None], V] | None = None,
    namespaces: Namespaces | None = None,
) -> dict[str | K | None, str | V | None]:
    """
    Return a mapping built from the key and value sub-queries of each matching entry.

    The sub-queries are relative to the entry nodes. An entry without a key
    or value match gets None for it. For duplicate keys the last entry wins.
    """
    result: dict[str | K | None, str | V | None] = {}
    for entry in each(node, entry_path, namespaces):
        key = query_first_value(entry, key_path, key_converter, namespaces)  # type: ignore[arg-type]
        result[key] = query_first_value(entry, value_path, value_converter, namespaces)  # type: ignore[arg-type]
    return result


# Typed queries. They return the default when there is no matching node.

_integer = ToIntegerConverter()
_long = ToLongConverter()
_short = ToShortConverter()
_double = ToDoubleConverter()
_float = ToFloatConverter()
_boolean = ToBooleanConverter()
_character = ToCharacterConverter()
_date = ToDateConverter()
_datetime = ToDateTimeConverter()
_time = ToTimeConverter()
_zoned_datetime = ToZonedDateTimeConverter()


def _typed_query[T, D](node: ETreeElement, path: Query, converter: Callable[[str | None], T | None], default: D, namespaces: Namespaces | None) -> T | D:
    value = query_first_value(node, path, converter, namespaces)
    return default if value is None else value


def query_integer[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> int | D:
    return _typed_query(node, path, _integer, default, namespaces)


def query_long[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> int | D:
    return _typed_query(node, path, _long, default, namespaces)


def query_short[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> int | D:
    return _typed_query(node, path, _short, default, namespaces)


def query_double[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> float | D:
    return _typed_query(node, path, _double, default, namespaces)


def query_float[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> float | D:
    return _typed_query(node, path, _float, default, namespaces)


def query_boolean[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> bool | D:
    return _typed_query(node, path, _boolean, default, namespaces)


def query_character[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> str | D:
    return _typed_query(node, path, _character, default, namespaces)


def query_date[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> date | D:
    return _typed_query(node, path, _date, default, namespaces)


def query_datetime[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> datetime | D:
    return _typed_query(node, path, _datetime, default, namespaces)


def query_time[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> time | D:
    return _typed_query(node, path, _time, default, namespaces)


def query_zoned_datetime[D](node: ETreeElement, path: Query, default: D = None, namespaces: Namespaces | None = None) -> datetime | D:
    return _typed_query(node, path, _zoned_datetime, default, namespaces)


def query_enum[E: Enum](node: ETreeElement, path: Query, enum_type: type[E], namespaces: Namespaces | None = None) -> E | None:
    """Return the enum member named by the first matching node, or None if there is no match or its text is empty"""
    value = query_first_value(node, path, namespaces=namespaces)
    return parse_enum(enum_type, value) if value else None


# Documents

def parse_string(xml: str) -> ETreeElement:
    """
    Parse XML text.

    The text is already decoded, so any encoding declaration in the document
    is ignored (lxml refuses unicode strings that carry one).
    """
    try:
        return etree.fromstring(xml.encode('utf-8'), etree.XMLParser(encoding='utf-8'))
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise DocumentParseError(f'the XML document cannot be parsed: {exc!s}') from exc


def parse_bytes(xml: bytes) -> ETreeElement:
    try:
        return etree.fromstring(bytes(xml))
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise DocumentParseError(f'the XML document cannot be parsed: {exc!s}') from exc


def parse_stream(stream: IO) -> ETreeElement:
    """Parse a binary or text stream. The stream is read, but not closed."""
    content = stream.read()
    if isinstance(content, str):
        return parse_string(content)
    return parse_bytes(content)


def parse_file(path: str | PathLike) -> ETreeElement:
    """Parse an XML file. Errors reading the file are raised as OSError."""
    path = fspath(path)
    with open(path, 'rb') as file:  # noqa: PTH123
        try:
            return etree.parse(file).getroot()
        except etree.XMLSyntaxError as exc:
            raise DocumentParseError(f'the XML document in {path!r} cannot be parsed: {exc!s}') from exc


def parse_root(source: XMLSource) -> ETreeElement:
    """
    Get the root element for the given source.

    The source can be XML text (str), encoded XML (bytes), a file path
    (os.PathLike), a binary or text stream, a parsed element tree, or an
    element, which is returned as is.
    """
    match source:
        case etree._Element():  # noqa: SLF001
            return source
        case etree._ElementTree():  # noqa: SLF001
            return source.getroot()
        case str():
            return parse_string(source)
        case bytes() | bytearray() | memoryview():
            return parse_bytes(bytes(source))
        case PathLike():
            return parse_file(source)
        case _ if hasattr(source, 'read'):
            return parse_stream(source)
        case _:
            raise TypeError(f'cannot parse XML from {type(source).__qualname__!r} objects')
