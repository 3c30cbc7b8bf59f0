# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
import re
import struct
from abc import ABC, abstractmethod
from collections.abc import Callable, MutableMapping
from datetime import date, datetime, time
from decimal import Decimal
from math import inf
from typing import ClassVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ConverterInstantiationError
from .types import Char, Float, Long, Short, type_repr

__all__ = (  # noqa: RUF022
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
)


log = logging.getLogger(__name__)


type ConverterFunction[T] = Callable[[str | None], T | None]


# Plain ASCII numerals only. Digit group underscores and other unicode digits are rejected.
integer_literal = re.compile(r'[+-]?[0-9]+', re.ASCII)
decimal_literal = re.compile(r'[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?', re.ASCII)
float_literal = re.compile(rf'{decimal_literal.pattern}|[+-]?(?:NaN|Infinity)', re.ASCII)


def parse_number[N](value: str, pattern: re.Pattern[str], number_type: Callable[[str], N], name: str, *, decimal_comma: bool = True) -> N:
    text = value.strip().replace(',', '.') if decimal_comma else value.strip()
    if pattern.fullmatch(text) is None:
        raise ValueError(f"invalid value '{value}' for {name}")
    return number_type(text)


class Converter[T](ABC):
    """
    Convert the text value of an XML node into a typed value.

    Converters are stateless, apart from the arguments they are created
    with. They map None (no matching node) to None and call convert() for
    everything else. Invalid input is reported with ValueError.
    """

    def __call__(self, value: str | None, /) -> T | None:
        if value is None:
            return None
        return self.convert(value)

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}()'

    @abstractmethod
    def convert(self, value: str, /) -> T:
        raise NotImplementedError


class NoneConverter(Converter[str]):
    def convert(self, value: str, /) -> str:
        return value


class ToIntegerConverter(Converter[int]):
    name: ClassVar[str] = 'integer'
    lower_bound: ClassVar[int | float] = -inf
    upper_bound: ClassVar[int | float] = +inf

    def __init_subclass__(cls, *, bits: int | None = None, **kw: object) -> None:
        super().__init_subclass__(**kw)
        if bits is not None:
            if bits <= 0:
                raise ValueError('when specified, bits must be a positive integer')
            cls.name = f'signed {bits}-bit integer'
            cls.lower_bound = -2 ** (bits - 1)
            cls.upper_bound = 2 ** (bits - 1) - 1

    def convert(self, value: str, /) -> int:
        number = parse_number(value, integer_literal, int, self.name, decimal_comma=False)
        if self.lower_bound <= number <= self.upper_bound:
            return number
        raise ValueError(f"invalid value '{value}' for {self.name}")


class ToLongConverter(ToIntegerConverter, bits=64):
    pass


class ToShortConverter(ToIntegerConverter, bits=16):
    pass


class ToByteConverter(ToIntegerConverter, bits=8):
    pass


class ToDoubleConverter(Converter[float]):
    def convert(self, value: str, /) -> float:
        return parse_number(value, float_literal, float, 'double precision float')


class ToFloatConverter(Converter[float]):
    """Convert to a float that is representable with single precision"""

    def convert(self, value: str, /) -> float:
        number = parse_number(value, float_literal, float, 'single precision float')
        try:
            return struct.unpack('f', struct.pack('f', number))[0]
        except OverflowError:
            raise ValueError(f"invalid value '{value}' for single precision float") from None


class ToDecimalConverter(Converter[Decimal]):
    def convert(self, value: str, /) -> Decimal:
        return parse_number(value, decimal_literal, Decimal, 'decimal')


class ToBooleanConverter(Converter[bool]):
    """
    Convert to True if the value is one of the known true values and to False otherwise.

    The comparison ignores case and surrounding whitespace. The true values
    can be customized by passing them as arguments.
    """

    default_true_values: ClassVar[frozenset[str]] = frozenset({'true', 'yes', 'on', '1', 'positive', 'correct', 'ja', 'oui', 'si', 'sì'})

    def __init__(self, *true_values: str) -> None:
        self.true_values = frozenset(value.strip().lower() for value in true_values) if true_values else self.default_true_values

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({", ".join(repr(value) for value in sorted(self.true_values))})'

    def convert(self, value: str, /) -> bool:
        return value.strip().lower() in self.true_values


class ToCharacterConverter(Converter[str]):
    def __call__(self, value: str | None, /) -> str | None:
        if not value:
            return None
        return self.convert(value)

    def convert(self, value: str, /) -> str:
        return value[0]


class TemporalConverter[T](Converter[T], ABC):
    """Base class for date and time converters, which parse ISO 8601 unless given a strptime pattern"""

    def __init__(self, pattern: str | None = None) -> None:
        self.pattern = pattern

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({self.pattern!r})' if self.pattern else f'{self.__class__.__qualname__}()'


class ToDateConverter(TemporalConverter[date]):
    def convert(self, value: str, /) -> date:
        if self.pattern is not None:
            return datetime.strptime(value.strip(), self.pattern).date()  # noqa: DTZ007
        return date.fromisoformat(value.strip())


class ToTimeConverter(TemporalConverter[time]):
    def convert(self, value: str, /) -> time:
        if self.pattern is not None:
            return datetime.strptime(value.strip(), self.pattern).time()  # noqa: DTZ007
        return time.fromisoformat(value.strip())


class ToDateTimeConverter(TemporalConverter[datetime]):
    def convert(self, value: str, /) -> datetime:
        if self.pattern is not None:
            return datetime.strptime(value.strip(), self.pattern)  # noqa: DTZ007
        return datetime.fromisoformat(value.strip())


class ToZonedDateTimeConverter(TemporalConverter[datetime]):
    """
    Convert to a time zone aware datetime.

    Besides ISO 8601 values with an offset, this also accepts a trailing
    region based zone identifier in square brackets, for example:

      2017-11-08T15:55:32+01:00[Europe/Berlin]
    """

    zone_suffix: ClassVar[re.Pattern[str]] = re.compile(r'^(?P<datetime>.+?)\[(?P<zone>[^\]]+)\]$')

    def convert(self, value: str, /) -> datetime:
        value = value.strip()
        zone = None
        if (match := self.zone_suffix.match(value)) is not None:
            value = match.group('datetime')
            try:
                zone = ZoneInfo(match.group('zone'))
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"unknown time zone '{match.group('zone')}'") from None
        if self.pattern is not None:
            result = datetime.strptime(value, self.pattern)  # noqa: DTZ007
        else:
            result = datetime.fromisoformat(value)
        if zone is not None:
            result = result.replace(tzinfo=zone) if result.tzinfo is None else result.astimezone(zone)
        if result.tzinfo is None:
            raise ValueError(f"missing time zone in '{value}'")
        return result


class ConverterRegistry:
    """
    A cache of converter instances and of the default converters for data types.

    The instance cache holds at most one converter per converter type. On a
    cache miss the converter type is instantiated with no arguments. Use
    register() to provide pre-configured instances instead (for example a
    date converter with a custom pattern).

    The default converters are used as a last resort, when a text value is
    about to be assigned to a field whose type is not a string type. They
    are looked up by the exact declared type of the field.

    Registering and removing converters is meant to happen at configuration
    time, not while documents are being unmarshalled.
    """

    def __init__(self) -> None:
        self._converters: MutableMapping[type, ConverterFunction] = {}
        self._defaults: MutableMapping[object, ConverterFunction] = {}
        self.reset_defaults()

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: converters={len(self._converters)} defaults={len(self._defaults)}>'

    def __contains__(self, converter_type: type) -> bool:
        return converter_type in self._converters

    def get[T](self, converter_type: type[Converter[T]]) -> ConverterFunction[T]:
        try:
            return self._converters[converter_type]
        except KeyError:
            pass
        try:
            converter = converter_type()
        except Exception as exc:
            log.error('Could not instantiate converter %s: %s', converter_type.__qualname__, exc)  # noqa: TRY400
            raise ConverterInstantiationError(f'could not create a new instance of converter {converter_type.__qualname__}: {exc!s}') from exc
        if not callable(converter):
            raise ConverterInstantiationError(f'converter {converter_type.__qualname__} instances are not callable')
        log.debug('Created converter %r', converter)
        return self._converters.setdefault(converter_type, converter)

    def register(self, converter: ConverterFunction) -> None:
        """Use the given instance for its type, instead of one created with no arguments"""
        log.debug('Registering converter %r', converter)
        self._converters[type(converter)] = converter

    def unregister(self, converter_type: type) -> None:
        self._converters.pop(converter_type, None)

    def clear(self) -> None:
        self._converters.clear()

    def get_default(self, data_type: object) -> ConverterFunction | None:
        try:
            return self._defaults.get(data_type)
        except TypeError:  # unhashable annotation
            return None

    def register_default(self, data_type: object, converter: ConverterFunction) -> None:
        log.debug('Registering default converter %r for %s', converter, type_repr(data_type))
        self._defaults[data_type] = converter

    def unregister_default(self, data_type: object) -> None:
        self._defaults.pop(data_type, None)

    def reset_defaults(self) -> None:
        """Drop all the default converters and restore the builtin ones"""
        self._defaults.clear()
        self._defaults.update({
            int: self.get(ToIntegerConverter),
            Long: self.get(ToLongConverter),
            Short: self.get(ToShortConverter),
            float: self.get(ToDoubleConverter),
            Float: self.get(ToFloatConverter),
            Decimal: self.get(ToDecimalConverter),
            bool: self.get(ToBooleanConverter),
            Char: self.get(ToCharacterConverter),
            date: self.get(ToDateConverter),
            datetime: self.get(ToDateTimeConverter),
            time: self.get(ToTimeConverter),
        })
