# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from enum import Enum

import pytest

from xpathbind import (
    Byte,
    Char,
    FieldAssignmentError,
    QuerySyntaxError,
    ToIntegerConverter,
    XPathFirst,
    XPathList,
    XPathMap,
    XPathObject,
    clear_schema_cache,
    from_xml,
)
from xpathbind.schema import type_schema
from xpathbind.types import FieldType, Float, Long, Marker


class Color(Enum):
    RED = 'red'
    GREEN = 'green'


class Item(XPathObject):
    id: int = XPathFirst('@id')
    name: str | None = XPathFirst('name')
    tags: list[str] = XPathList('tag')


class Base(XPathObject):
    first: str | None = XPathFirst('a')
    second: str | None = XPathFirst('b')


class Derived(Base):
    third: str | None = XPathFirst('c')


class Overriding(Derived):
    first: str | None = XPathFirst('c')


class Shadowing(Derived):
    second = None


class TreeNode(XPathObject):
    name: str | None = XPathFirst('@name')
    children: list['TreeNode'] = XPathList('node', subtype='TreeNode')
    leaves: list['Leaf'] = XPathList('leaf', subtype='Leaf')


class Leaf(XPathObject):
    value: int | None = XPathFirst('.')


class TestFieldTypes:

    def test_scalar_kinds(self) -> None:
        assert FieldType.from_annotation(int).null_value == 0
        assert FieldType.from_annotation(Long).null_value == 0
        assert FieldType.from_annotation(float).null_value == 0.0
        assert FieldType.from_annotation(Float).null_value == 0.0
        assert FieldType.from_annotation(bool).null_value is False
        assert FieldType.from_annotation(Char).null_value == '\0'
        assert FieldType.from_annotation(Byte).null_value is Marker.NoNullValue
        assert FieldType.from_annotation(int | None).null_value is None
        assert FieldType.from_annotation(str).null_value is None
        assert FieldType.from_annotation(list[int]).null_value is None

    def test_optional_annotations(self) -> None:
        field_type = FieldType.from_annotation(int | None)
        assert field_type.base is int
        assert field_type.optional
        assert field_type.scalar
        assert not field_type.primitive
        assert FieldType.from_annotation(int).primitive

    def test_accepts(self) -> None:
        assert FieldType.from_annotation(int).accepts(1)
        assert not FieldType.from_annotation(int).accepts('1')
        assert FieldType.from_annotation(float).accepts(1)
        assert not FieldType.from_annotation(float).accepts(True)  # noqa: FBT003
        assert FieldType.from_annotation(str | None).accepts('text')
        assert FieldType.from_annotation(object).accepts('text')
        assert not FieldType.from_annotation(Char).accepts('x')
        assert FieldType.from_annotation(Char).accepts('x', converted=True)
        assert FieldType.from_annotation(list[int]).accepts([1, 2])
        assert not FieldType.from_annotation(list[int]).accepts((1, 2))
        assert FieldType.from_annotation(Color | None).accepts(Color.RED)

    def test_collection_type(self) -> None:
        assert FieldType.from_annotation(list[int]).collection_type is list
        assert FieldType.from_annotation(tuple[int, ...] | None).collection_type is tuple
        assert FieldType.from_annotation(Long).collection_type is None


class TestXPathObject:

    def test_instances(self) -> None:
        item = Item(id=1, name='first')
        assert item.id == 1
        assert item.name == 'first'
        assert item.tags is None
        item.tags = ['a']
        assert item.tags == ['a']
        del item.tags
        assert item.tags is None

        with pytest.raises(TypeError, match=r"Item\(\) got an unexpected keyword argument 'color'"):
            Item(color=Color.RED)  # type: ignore[call-arg]

    def test_defaults(self) -> None:
        class WithDefault(XPathObject):
            value: str = XPathFirst('value', default='unknown')

        instance = WithDefault()
        assert instance.value == 'unknown'
        assert from_xml('<root/>', WithDefault).value is None
        assert from_xml('<root><value>known</value></root>', WithDefault).value == 'known'

    def test_equality_and_hashing(self) -> None:
        assert Item(id=1, name='first') == Item(id=1, name='first')
        assert Item(id=1, name='first') != Item(id=2, name='first')
        assert Item(id=1) != Leaf()
        assert Item(id=1, tags=['a']) == Item(id=1, tags=['a'])
        assert hash(Item(id=1, tags=['a'])) == hash(Item(id=1, tags=['b']))
        assert len({Item(id=1, name='x'), Item(id=1, name='x'), Item(id=2, name='x')}) == 2

    def test_repr(self) -> None:
        assert repr(Item(id=1, name='first')) == "Item(id=1, name='first', tags=None)"
        node = TreeNode(name='root')
        node.children = [node]
        assert repr(node) == "TreeNode(name='root', children=[...], leaves=None)"

    def test_field_order(self) -> None:
        assert list(Derived._bindings_) == ['third', 'first', 'second']
        assert list(Overriding._bindings_) == ['first', 'third', 'second']
        assert Overriding._bindings_['first'] is Overriding.__dict__['first']
        assert list(Shadowing._bindings_) == ['third', 'first']
        assert [field.name for field in type_schema(Derived)] == ['third', 'first', 'second']

    def test_schema(self) -> None:
        schema = type_schema(Item)
        assert schema.type is Item
        assert len(schema) == 3
        assert [(field.name, field.type.annotation) for field in schema] == [('id', int), ('name', str | None), ('tags', list[str])]
        assert type_schema(Item) is schema
        clear_schema_cache()
        assert type_schema(Item) is not schema
        assert type_schema(Item) == schema

    def test_unresolved_annotations(self) -> None:
        class LocalLabel(XPathObject):
            text: str | None = XPathFirst('.')

        class Holder(XPathObject):
            label: 'LocalLabel | None' = XPathFirst('label', nested=True)

        with pytest.raises(TypeError, match=r"cannot resolve the type annotation of .*Holder\.label: name 'LocalLabel' is not defined"):
            from_xml('<root><label>text</label></root>', Holder)

    def test_binding_reuse(self) -> None:
        binding = XPathFirst('a')
        with pytest.raises(TypeError, match=r'cannot assign the same XPathFirst descriptor to two different names'):
            class TwoNames(XPathObject):
                a = binding
                b = binding

        shared = XPathFirst('a')

        class First(XPathObject):
            a = shared

        with pytest.raises(TypeError, match=r'cannot use the same XPathFirst descriptor in two different classes'):
            class Second(XPathObject):
                a = shared

    def test_binding_owner(self) -> None:
        with pytest.raises(TypeError, match=r'Can only use XPathList descriptors on XPathObject classes'):
            class NotAnXPathObject:
                values = XPathList('value')

    def test_query_syntax_errors(self) -> None:
        with pytest.raises(QuerySyntaxError, match=r"invalid XPath expression 'value\['"):
            class BadQuery(XPathObject):
                value: str | None = XPathFirst('value[')

        with pytest.raises(QuerySyntaxError):
            class BadMapQuery(XPathObject):
                value: dict[str, str] = XPathMap('entry', '@key', 'value[')

    def test_namespaces(self) -> None:
        class Main(XPathObject, namespaces={'m': 'urn:example:main'}):
            value: str | None = XPathFirst('m:value')

        class Extended(Main, namespaces={'x': 'urn:example:extra'}):
            extra: str | None = XPathFirst('x:value')
            main: str | None = XPathFirst('m:value')

        assert Main._namespaces_ == {'m': 'urn:example:main'}
        assert Extended._namespaces_ == {'m': 'urn:example:main', 'x': 'urn:example:extra'}
        assert XPathObject._namespaces_ == {}

        instance = from_xml('<root xmlns="urn:example:main" xmlns:x="urn:example:extra"><value>1</value><x:value>2</x:value></root>', Extended)
        assert instance == Extended(value='1', extra='2', main='1')


class TestBindings:

    def test_scalar_coercion(self) -> None:
        class Scalars(XPathObject):
            text: str | None = XPathFirst('int')
            number: int = XPathFirst('int')
            long: Long = XPathFirst('int')
            double: float = XPathFirst('int')
            single: Float | None = XPathFirst('double')
            flag: bool = XPathFirst('flag')
            char: Char = XPathFirst('text')
            converted: int | None = XPathFirst('int', ToIntegerConverter)
            anything: object = XPathFirst('int')

        instance = from_xml('<root><int>42</int><double>0.5</double><flag>yes</flag><text>xyz</text></root>', Scalars)
        assert instance == Scalars(text='42', number=42, long=42, double=42.0, single=0.5, flag=True, char='x', converted=42, anything='42')
        assert isinstance(instance.double, float)

    def test_missing_values(self, caplog: pytest.LogCaptureFixture) -> None:
        class Missing(XPathObject):
            text: str | None = XPathFirst('missing')
            optional_number: int | None = XPathFirst('missing')
            number: int = XPathFirst('missing')
            double: float = XPathFirst('missing')
            flag: bool = XPathFirst('missing')
            char: Char = XPathFirst('empty')
            byte: Byte = XPathFirst('missing', default=Byte(-1))
            nested: Item = XPathFirst('missing', nested=True)
            items: list[Item] = XPathList('missing', subtype=Item)
            mapping: dict[str, str] = XPathMap('missing', '@key', '.')

        with caplog.at_level('WARNING', logger='xpathbind.coercion'):
            instance = from_xml('<root><empty/></root>', Missing)
        assert instance == Missing(text=None, optional_number=None, number=0, double=0.0, flag=False, char='\0', byte=-1, nested=None, items=[], mapping={})
        assert 'There is no null value for Byte' in caplog.text
        assert '<locals>.Missing.byte unchanged' in caplog.text

    def test_enum_scalars(self) -> None:
        class Enums(XPathObject):
            by_name: Color | None = XPathFirst('name')
            by_value: Color | None = XPathFirst('value')
            empty: Color | None = XPathFirst('empty')
            missing: Color | None = XPathFirst('missing')

        instance = from_xml('<root><name>GREEN</name><value>red</value><empty/></root>', Enums)
        assert instance == Enums(by_name=Color.GREEN, by_value=Color.RED, empty=None, missing=None)

    def test_collections(self) -> None:
        class Collections(XPathObject):
            strings: list[str] = XPathList('value')
            numbers: list[int] = XPathList('value', ToIntegerConverter)
            nulls: list[None] = XPathList('value', None)
            known: tuple[int, ...] = XPathList('value', subtype=int)
            unique: frozenset[int] = XPathList('value | value', subtype=int)
            colors: set[Color] = XPathList('color', subtype=Color)

        instance = from_xml('<root><value>3</value><value>1</value><value>3</value><color>RED</color><color>green</color></root>', Collections)
        assert instance.strings == ['3', '1', '3']
        assert instance.numbers == [3, 1, 3]
        assert instance.nulls == [None, None, None]
        assert instance.known == (3, 1, 3)
        assert instance.unique == frozenset({1, 3})
        assert instance.colors == {Color.RED, Color.GREEN}

    def test_maps(self) -> None:
        class Maps(XPathObject):
            strings: dict[str, str | None] = XPathMap('entry', '@key', '.')
            numbers: dict[str, int | None] = XPathMap('entry', '@key', 'text()', value_converter=ToIntegerConverter)
            known: dict[int, Color] = XPathMap('color', '@id', '.', key_subtype=int, value_subtype=Color)
            items: dict[Color, Item] = XPathMap('item', 'color', '.', key_subtype=Color, value_subtype=Item)

        document = """
        <root>
          <entry key="a">1</entry>
          <entry key="b"/>
          <entry key="a">2</entry>
          <color id="1">RED</color>
          <color id="2">GREEN</color>
          <item id="1"><color>RED</color><name>first</name></item>
          <item id="2"><color>RED</color><name>second</name></item>
        </root>
        """
        instance = from_xml(document, Maps)
        assert instance.strings == {'a': '2', 'b': ''}
        assert instance.numbers == {'a': 2, 'b': None}
        assert instance.known == {1: Color.RED, 2: Color.GREEN}
        assert instance.items == {Color.RED: Item(id=2, name='second', tags=[])}

    def test_nested_objects(self) -> None:
        class Container(XPathObject):
            item: Item | None = XPathFirst('item', nested=True)
            items: list[Item] = XPathList('item', subtype=Item)
            by_name: dict[str, Item] = XPathMap('item', 'name', '.', value_subtype=Item)

        instance = from_xml('<root><item id="1"><name>a</name><tag>x</tag><tag>y</tag></item><item id="2"><name>b</name></item></root>', Container)
        first = Item(id=1, name='a', tags=['x', 'y'])
        second = Item(id=2, name='b', tags=[])
        assert instance.item == first
        assert instance.items == [first, second]
        assert instance.by_name == {'a': first, 'b': second}
        assert instance.item is not instance.items[0]
        assert instance.items[0].tags is not instance.by_name['a'].tags

    def test_self_referencing_subtypes(self) -> None:
        tree = from_xml('<node name="root"><node name="left"><leaf>1</leaf></node><node name="right"/><leaf>2</leaf></node>', TreeNode)
        left = TreeNode(name='left', children=[], leaves=[Leaf(value=1)])
        right = TreeNode(name='right', children=[], leaves=[])
        assert tree == TreeNode(name='root', children=[left, right], leaves=[Leaf(value=2)])

    def test_unresolved_subtype(self) -> None:
        class Unresolved(XPathObject):
            values: list[object] = XPathList('value', subtype='NoSuchType')

        with pytest.raises(TypeError, match=r"cannot resolve the 'NoSuchType' subtype of .*Unresolved.values"):
            from_xml('<root><value/></root>', Unresolved)

    def test_assignment_errors(self) -> None:
        class WrongScalar(XPathObject):
            value: int | None = XPathFirst('text')

        class FailedConversion(XPathObject):
            value: str | None = XPathFirst('text', ToIntegerConverter)

        class WrongList(XPathObject):
            value: int = XPathList('value')

        class UnknownSubtype(XPathObject):
            value: list[complex] = XPathList('value', subtype=complex)

        class NestedAttribute(XPathObject):
            value: Item | None = XPathFirst('@id', nested=True)

        class NoConverter(XPathObject):
            value: complex | None = XPathFirst('value')

        document = '<root id="1"><text>abc</text><value>1</value></root>'
        with pytest.raises(FieldAssignmentError, match=r"could not set value 'abc' for field .*WrongScalar\.value") as exc_info:
            from_xml(document, WrongScalar)
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert exc_info.value.field == 'value'
        assert exc_info.value.value == 'abc'
        assert isinstance(exc_info.value.target, WrongScalar)

        with pytest.raises(FieldAssignmentError, match=r'ToIntegerConverter\(\) failed'):
            from_xml(document, FailedConversion)
        with pytest.raises(FieldAssignmentError, match=r"field type int does not match"):
            from_xml(document, WrongList)
        with pytest.raises(FieldAssignmentError, match=r'there is no way to unmarshal complex values'):
            from_xml(document, UnknownSubtype)
        with pytest.raises(FieldAssignmentError, match=r'Item can only be unmarshalled from an element'):
            from_xml(document, NestedAttribute)
        with pytest.raises(FieldAssignmentError, match=r'field type complex \| None does not match'):
            from_xml(document, NoConverter)
