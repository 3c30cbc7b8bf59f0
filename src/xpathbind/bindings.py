# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import sys
from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from reprlib import recursive_repr
from typing import ClassVar, Self, dataclass_transform, overload

from lxml import etree

from .coercion import UnmarshalContext, assign, assign_extended, convert
from .converters import Converter, ConverterFunction, NoneConverter
from .exceptions import FieldAssignmentError
from .query import ETreeElement, Namespaces, Node, compile_query, each, node_value, parse_enum, query_first, query_first_value
from .schema import FieldSchema
from .types import type_repr

__all__ = 'Binding', 'XPathFirst', 'XPathList', 'XPathMap', 'XPathObject', 'convert_node'


type Subtype = type | str


class Binding[T](ABC):
    """
    Associate a field of an XPathObject with an XPath query.

    Bindings are descriptors. The value of a field lives in the instance
    dictionary and reads back as the binding default until it is set.
    """

    name: str | None
    owner: type['XPathObject'] | None
    default: T | None

    def __init__(self, *, default: T | None = None) -> None:
        self.name = None
        self.owner = None
        self.default = default

    def __set_name__(self, owner: type['XPathObject'], name: str) -> None:
        if not issubclass(owner, XPathObject):  # static type analysis does not catch this
            raise TypeError(f'Can only use {self.__class__.__qualname__} descriptors on XPathObject classes')
        if self.name is None:
            self.name = name
            self.owner = owner
        elif name != self.name:
            raise TypeError(f'cannot assign the same {self.__class__.__name__} descriptor to two different names: {self.name} and {name}')
        elif owner is not self.owner:
            raise TypeError(f'cannot use the same {self.__class__.__name__} descriptor in two different classes: {self.owner.__qualname__} and {owner.__qualname__}')  # type: ignore[union-attr]

    @overload
    def __get__(self, instance: None, owner: type['XPathObject']) -> Self: ...

    @overload
    def __get__(self, instance: 'XPathObject', owner: type['XPathObject'] | None = None) -> T | None: ...

    def __get__(self, instance: 'XPathObject | None', owner: type['XPathObject'] | None = None) -> Self | T | None:
        if instance is None:
            return self
        return instance.__dict__.get(self.name, self.default)

    def __set__(self, instance: 'XPathObject', value: T | None) -> None:
        instance.__dict__[self.name] = value

    def __delete__(self, instance: 'XPathObject') -> None:
        instance.__dict__.pop(self.name, None)

    def _resolve(self, subtype: Subtype) -> type:
        """Resolve subtypes given by name in the module of the class that declares the binding"""
        if not isinstance(subtype, str):
            return subtype
        owner = self.owner
        assert owner is not None  # noqa: S101 (used by type checkers)
        if subtype == owner.__name__:
            return owner
        try:
            return getattr(sys.modules[owner.__module__], subtype)
        except (KeyError, AttributeError):
            raise TypeError(f'cannot resolve the {subtype!r} subtype of {owner.__qualname__}.{self.name}') from None

    @abstractmethod
    def compile(self, namespaces: Namespaces) -> None:
        """Compile the XPath expressions of the binding, using the namespace prefixes of the declaring class"""
        raise NotImplementedError

    @abstractmethod
    def from_xml(self, context: UnmarshalContext, root: ETreeElement, target: 'XPathObject', field: FieldSchema) -> None:
        """Fill in the target's field value from the document rooted at root"""
        raise NotImplementedError


class XPathFirst[T](Binding[T]):
    """
    Bind a field to the first node matched by an XPath query.

    The text of the node is transformed by the converter and assigned to the
    field, with text that does not match the field type being converted by
    the default converter for that type (or parsed as a member name for enum
    fields). With nested=True the node is unmarshalled into the declared type
    of the field instead and the converter is not used.
    """

    def __init__(self, path: str, converter: type[Converter] = NoneConverter, *, nested: bool = False, default: T | None = None) -> None:
        super().__init__(default=default)
        self.path = path
        self.converter = converter
        self.nested = nested
        self.query: etree.XPath | None = None

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.path!r}, converter={self.converter.__qualname__}, nested={self.nested!r})'

    def compile(self, namespaces: Namespaces) -> None:
        self.query = compile_query(self.path, namespaces)

    def from_xml(self, context: UnmarshalContext, root: ETreeElement, target: 'XPathObject', field: FieldSchema) -> None:
        assert self.query is not None  # noqa: S101 (used by type checkers)
        if self.nested:
            value = convert_node(context, field, target, query_first(root, self.query), field.type.base)  # type: ignore[arg-type]
            assign(context, field, target, value)
        else:
            converter = context.registry.get(self.converter)
            value = convert(field, target, converter, query_first_value(root, self.query))
            assign_extended(context, field, target, value)


class XPathList[T](Binding[T]):
    """
    Bind a field to all the nodes matched by an XPath query, in document order.

    For the default str subtype the text of each node is transformed by the
    converter (None as a converter gives a None item for each node). Any
    other subtype ignores the converter and turns each node into a subtype
    instance. Fields annotated as tuple, set or frozenset get a collection
    of that type, everything else gets a list.
    """

    def __init__(self, path: str, converter: type[Converter] | None = NoneConverter, *, subtype: Subtype = str, default: T | None = None) -> None:
        super().__init__(default=default)
        self.path = path
        self.converter = converter
        self.subtype = subtype
        self.query: etree.XPath | None = None

    def __repr__(self) -> str:
        converter = self.converter.__qualname__ if self.converter is not None else None
        return f'{self.__class__.__name__}({self.path!r}, converter={converter}, subtype={type_repr(self.subtype)})'

    def compile(self, namespaces: Namespaces) -> None:
        self.query = compile_query(self.path, namespaces)

    def from_xml(self, context: UnmarshalContext, root: ETreeElement, target: 'XPathObject', field: FieldSchema) -> None:
        assert self.query is not None  # noqa: S101 (used by type checkers)
        nodes = each(root, self.query)
        subtype = self._resolve(self.subtype)
        if subtype is not str:
            values = [convert_node(context, field, target, node, subtype) for node in nodes]
        elif self.converter is None:
            values = [None for _ in nodes]
        else:
            converter = context.registry.get(self.converter)
            values = [convert(field, target, converter, node_value(node)) for node in nodes]
        collection_type = field.type.collection_type
        if collection_type in (tuple, set, frozenset):
            assign(context, field, target, collection_type(values))  # type: ignore[misc]
        else:
            assign(context, field, target, values)


class XPathMap[T](Binding[T]):
    """
    Bind a field to a mapping built from the entries matched by an XPath query.

    The key and value queries are relative to each entry. The key and value
    are produced independently: a subtype other than str turns the matched
    node into a subtype instance, otherwise the text of the node is used,
    after being transformed by the converter if one is given. Entries with
    no key or value match get None for it. For duplicate keys the last entry
    wins.
    """

    def __init__(
        self,
        entry_path: str,
        key_path: str,
        value_path: str,
        *,
        key_converter: type[Converter] | None = NoneConverter,
        value_converter: type[Converter] | None = NoneConverter,
        key_subtype: Subtype = str,
        value_subtype: Subtype = str,
        default: T | None = None,
    ) -> None:
        super().__init__(default=default)
        self.entry_path = entry_path
        self.key_path = key_path
        self.value_path = value_path
        self.key_converter = key_converter
        self.value_converter = value_converter
        self.key_subtype = key_subtype
        self.value_subtype = value_subtype
        self.entry_query: etree.XPath | None = None
        self.key_query: etree.XPath | None = None
        self.value_query: etree.XPath | None = None

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.entry_path!r}, {self.key_path!r}, {self.value_path!r}, key_subtype={type_repr(self.key_subtype)}, value_subtype={type_repr(self.value_subtype)})'

    def compile(self, namespaces: Namespaces) -> None:
        self.entry_query = compile_query(self.entry_path, namespaces)
        self.key_query = compile_query(self.key_path, namespaces)
        self.value_query = compile_query(self.value_path, namespaces)

    def from_xml(self, context: UnmarshalContext, root: ETreeElement, target: 'XPathObject', field: FieldSchema) -> None:
        assert self.entry_query is not None  # noqa: S101 (used by type checkers)
        key_subtype = self._resolve(self.key_subtype)
        value_subtype = self._resolve(self.value_subtype)
        key_converter = self._converter(context, self.key_converter)
        value_converter = self._converter(context, self.value_converter)
        mapping = {}
        for entry in each(root, self.entry_query):
            if not isinstance(entry, etree._Element):  # noqa: SLF001
                raise FieldAssignmentError(field.name, entry, target, reason=f'the entry query {self.entry_path!r} must select elements')
            key = self._entry_value(context, field, target, entry, self.key_query, key_subtype, key_converter)  # type: ignore[arg-type]
            mapping[key] = self._entry_value(context, field, target, entry, self.value_query, value_subtype, value_converter)  # type: ignore[arg-type]
        assign(context, field, target, mapping)

    @staticmethod
    def _converter(context: UnmarshalContext, converter_type: type[Converter] | None) -> ConverterFunction | None:
        if converter_type is None or converter_type is NoneConverter:
            return None
        return context.registry.get(converter_type)

    @staticmethod
    def _entry_value(context: UnmarshalContext, field: FieldSchema, target: 'XPathObject', entry: ETreeElement, query: etree.XPath, subtype: type, converter: ConverterFunction | None) -> object:
        if subtype is not str:
            return convert_node(context, field, target, query_first(entry, query), subtype)
        value = query_first_value(entry, query)
        return convert(field, target, converter, value) if converter is not None else value


def convert_node(context: UnmarshalContext, field: FieldSchema, target: 'XPathObject', node: Node | None, subtype: type) -> object:
    """
    Turn a node into an instance of subtype.

    XPathObject subtypes are unmarshalled recursively from the node. Enum
    subtypes parse the node text as a member name. Other subtypes need a
    default converter (like the ones for int or date) for the node text.
    """
    if node is None:
        return None
    if isinstance(subtype, type) and issubclass(subtype, XPathObject):
        if not isinstance(node, etree._Element):  # noqa: SLF001
            raise FieldAssignmentError(field.name, node, target, reason=f'{subtype.__qualname__} can only be unmarshalled from an element')
        return context.from_root(node, subtype)
    if isinstance(subtype, type) and issubclass(subtype, Enum):
        return parse_enum(subtype, node_value(node))
    converter = context.registry.get_default(subtype)
    if converter is None:
        raise FieldAssignmentError(field.name, node_value(node), target, reason=f'there is no way to unmarshal {type_repr(subtype)} values')
    return convert(field, target, converter, node_value(node))


field_specifiers = (XPathFirst, XPathList, XPathMap)


@dataclass_transform(kw_only_default=True, field_specifiers=field_specifiers)  # type: ignore[misc]
class XPathObject:
    """
    Base class for the objects that are unmarshalled from XML documents.

    The fields are declared with an annotation for their type and a binding
    that selects their value from the document:

      class Order(XPathObject, namespaces={'o': 'urn:example:order'}):
          id: int = XPathFirst('@id')
          customer: Customer | None = XPathFirst('o:customer', nested=True)
          items: list[Item] = XPathList('o:items/o:item', subtype=Item)

    The namespaces class parameter gives the prefixes available to the
    queries of the class and its subclasses. Instances are created without
    arguments by the unmarshaller. They can also be created directly, with
    keyword arguments for the fields.
    """

    # Class parameters use normal names, while class attributes use sunder names to avoid conflicts with field names.

    _namespaces_: ClassVar[Mapping[str, str]] = {}
    _bindings_: ClassVar[dict[str, Binding]] = {}

    def __init__(self, **kw: object) -> None:
        for name, value in kw.items():
            if name not in self._bindings_:
                raise TypeError(f'{self.__class__.__qualname__}() got an unexpected keyword argument {name!r}')
            setattr(self, name, value)

    def __init_subclass__(cls, namespaces: Mapping[str, str] | None = None, **kw: object) -> None:
        super().__init_subclass__(**kw)

        if namespaces is not None:
            cls._namespaces_ = {**cls._namespaces_, **namespaces}

        for binding in (value for value in cls.__dict__.values() if isinstance(value, Binding)):
            binding.compile(cls._namespaces_)

        # the bindings defined by the class come first, followed by the inherited ones that are not overridden
        bindings: dict[str, Binding] = {}
        seen: set[str] = set()
        for base in cls.__mro__:
            for name, value in base.__dict__.items():
                if name not in seen:
                    seen.add(name)
                    if isinstance(value, Binding):
                        bindings[name] = value
        cls._bindings_ = bindings

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, XPathObject):
            return NotImplemented
        return type(self) is type(other) and all(getattr(self, name) == getattr(other, name) for name in self._bindings_)

    def __hash__(self) -> int:
        values = []
        for name in self._bindings_:
            try:
                values.append(hash(getattr(self, name)))
            except TypeError:  # unhashable values (like lists and dicts) do not take part in the hash
                continue
        return hash((type(self), *values))

    @recursive_repr()
    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({", ".join(f"{name}={getattr(self, name)!r}" for name in self._bindings_)})'


del field_specifiers
