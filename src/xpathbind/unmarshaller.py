# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
from os import PathLike
from typing import IO

from .bindings import XPathObject
from .converters import Converter, ConverterFunction, ConverterRegistry
from .exceptions import InstantiationError
from .query import ETreeElement, XMLSource, parse_bytes, parse_file, parse_root, parse_stream, parse_string
from .schema import type_schema

__all__ = (  # noqa: RUF022
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
)


log = logging.getLogger(__name__)


class Unmarshaller:
    """
    Create XPathObject instances from XML documents.

    The unmarshaller owns the converter registry used while populating the
    fields. Applications that need a differently configured registry can
    create their own unmarshaller. Otherwise the module level functions use
    a shared one.
    """

    def __init__(self, registry: ConverterRegistry | None = None) -> None:
        self.registry = registry if registry is not None else ConverterRegistry()

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(registry={self.registry!r})'

    def from_xml[T: XPathObject](self, xml: str, target_type: type[T]) -> T:
        return self.from_root(parse_string(xml), target_type)

    def from_bytes[T: XPathObject](self, xml: bytes, target_type: type[T]) -> T:
        return self.from_root(parse_bytes(xml), target_type)

    def from_stream[T: XPathObject](self, stream: IO, target_type: type[T]) -> T:
        return self.from_root(parse_stream(stream), target_type)

    def from_file[T: XPathObject](self, path: str | PathLike, target_type: type[T]) -> T:
        return self.from_root(parse_file(path), target_type)

    def unmarshal[T: XPathObject](self, source: XMLSource, target_type: type[T]) -> T:
        """Unmarshal from any source accepted by parse_root(), with str being XML text, not a file name"""
        return self.from_root(parse_root(source), target_type)

    def from_root[T: XPathObject](self, root: ETreeElement, target_type: type[T]) -> T:
        if not isinstance(target_type, type) or not issubclass(target_type, XPathObject):
            log.error('Cannot unmarshal %r, which is not an XPathObject subclass', target_type)
            raise InstantiationError(f'{target_type!r} is not an XPathObject subclass')
        try:
            target = target_type()
        except Exception as exc:
            log.error('Could not instantiate %s: %s', target_type.__qualname__, exc)  # noqa: TRY400
            raise InstantiationError(f'could not create a new instance of {target_type.__qualname__}: {exc!s}') from exc
        for field in type_schema(target_type):
            field.binding.from_xml(self, root, target, field)
        return target


unmarshaller = Unmarshaller()


def from_xml[T: XPathObject](xml: str, target_type: type[T]) -> T:
    return unmarshaller.from_xml(xml, target_type)


def from_bytes[T: XPathObject](xml: bytes, target_type: type[T]) -> T:
    return unmarshaller.from_bytes(xml, target_type)


def from_stream[T: XPathObject](stream: IO, target_type: type[T]) -> T:
    return unmarshaller.from_stream(stream, target_type)


def from_file[T: XPathObject](path: str | PathLike, target_type: type[T]) -> T:
    return unmarshaller.from_file(path, target_type)


def from_root[T: XPathObject](root: ETreeElement, target_type: type[T]) -> T:
    return unmarshaller.from_root(root, target_type)


def unmarshal[T: XPathObject](source: XMLSource, target_type: type[T]) -> T:
    return unmarshaller.unmarshal(source, target_type)


# Configuration of the shared converter registry

def register_converter(converter: ConverterFunction) -> None:
    unmarshaller.registry.register(converter)


def unregister_converter(converter_type: type[Converter]) -> None:
    unmarshaller.registry.unregister(converter_type)


def clear_converters() -> None:
    unmarshaller.registry.clear()


def register_default_converter(data_type: object, converter: ConverterFunction) -> None:
    unmarshaller.registry.register_default(data_type, converter)


def unregister_default_converter(data_type: object) -> None:
    unmarshaller.registry.unregister_default(data_type)


def reset_default_converters() -> None:
    unmarshaller.registry.reset_defaults()
