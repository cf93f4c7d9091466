# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import enum
from collections.abc import Buffer, Iterable
from io import BytesIO
from types import GenericAlias, NotImplementedType, new_class
from typing import ClassVar, Protocol, Self, SupportsIndex, TypeVar, runtime_checkable

__all__ = (  # noqa: RUF022
    # Protocols and types

    'WireData',
    'DataWireProtocol',
    'DataWireAdapter',

    # Adapters for builtin types

    'PrefixedAdapter',
    'OpaqueAdapter',
    'Opaque16Adapter',
    'Opaque32Adapter',
    'StringAdapter',
    'String16Adapter',

    # Wire types

    'UnsignedInteger',
    'UInt32',
    'Enum',
    'Opaque',
    'Opaque32',
    'String',
    'String16',
    'List',
    'make_list_type',

    # Administrative enumerations

    'AuthorizationType',
    'PersistenceType',
    'RouteType',
    'ManagementAction',
)


type WireData = bytes | bytearray | memoryview | BytesIO


# Protocols

@runtime_checkable
class DataWireProtocol(Protocol):
    """The wire protocol for admin message data elements"""

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self: ...

    def to_wire(self) -> bytes: ...

    def wire_length(self) -> int: ...


@runtime_checkable
class DataWireAdapter[T](Protocol):
    """Wire protocol adapter for an admin message data element of type T"""

    _abstract_: ClassVar[bool] = True

    @staticmethod
    def from_wire(buffer: WireData) -> T: ...

    @staticmethod
    def to_wire(value: T, /) -> bytes: ...

    @staticmethod
    def wire_length(value: T, /) -> int: ...

    @staticmethod
    def validate(value: T, /) -> T: ...


# Helpers

def byte_length(number: int) -> int:
    """Return the number of bytes needed to represent the number"""
    return (number.bit_length() + 7) // 8


def read_exactly(buffer: WireData, size: int) -> bytes | bytearray | memoryview:
    """Read up to size bytes from the buffer, advancing it if it is a stream"""
    if isinstance(buffer, BytesIO):
        return buffer.read(size)
    return buffer[:size]


def read_prefixed(buffer: WireData, sizelen: int, maxsize: int, what: str) -> bytes:
    """Read a chunk of at most maxsize bytes, preceded by its sizelen bytes long length"""
    if not isinstance(buffer, BytesIO):
        buffer = BytesIO(buffer)
    length_data = buffer.read(sizelen)
    if len(length_data) < sizelen:
        raise ValueError(f'Insufficient data in buffer to extract the length of {what}')
    data_length = int.from_bytes(length_data, byteorder='big')
    if data_length > maxsize:
        raise ValueError(f'Data length is too big for {what} ({data_length} > {maxsize})')
    data = buffer.read(data_length)
    if len(data) < data_length:
        raise ValueError(f'Insufficient data in buffer to extract {what}')
    return data


def length_prefix(length: int, sizelen: int) -> bytes:
    return length.to_bytes(sizelen, byteorder='big')


# Adapters
#
# Elements of builtin types (bytes, str) are described by an adapter, as
# the value stored on the structure is the builtin value itself.

class PrefixedAdapter[T]:
    """Base adapter for values encoded as up to maxsize bytes preceded by their length"""

    _abstract_: ClassVar[bool] = True
    _maxsize_: ClassVar[int] = NotImplemented
    _sizelen_: ClassVar[int] = NotImplemented
    _what_: ClassVar[str] = 'the value'

    def __init_subclass__(cls, *, maxsize: int = NotImplemented, **kw: object) -> None:
        if maxsize is not NotImplemented:
            cls._maxsize_ = maxsize
            cls._sizelen_ = byte_length(maxsize)
            cls._abstract_ = False
        super().__init_subclass__(**kw)

    @classmethod
    def encode(cls, value: T, /) -> bytes:
        raise NotImplementedError

    @classmethod
    def decode(cls, data: bytes, /) -> T:
        raise NotImplementedError

    @classmethod
    def from_wire(cls, buffer: WireData) -> T:
        return cls.decode(read_prefixed(buffer, cls._sizelen_, cls._maxsize_, cls._what_))

    @classmethod
    def to_wire(cls, value: T, /) -> bytes:
        data = cls.encode(value)
        return length_prefix(len(data), cls._sizelen_) + data

    @classmethod
    def wire_length(cls, value: T, /) -> int:
        return cls._sizelen_ + len(cls.encode(value))

    @classmethod
    def validate(cls, value: T, /) -> T:
        size = len(cls.encode(value))
        if size > cls._maxsize_:
            raise ValueError(f'Value is too long for {cls._what_} (max length is {cls._maxsize_}, value has {size} bytes)')
        return value


class OpaqueAdapter(PrefixedAdapter[bytes]):
    _what_ = 'opaque bytes'

    @classmethod
    def encode(cls, value: bytes, /) -> bytes:
        return value

    @classmethod
    def decode(cls, data: bytes, /) -> bytes:
        return data

    @classmethod
    def validate(cls, value: bytes, /) -> bytes:
        if not isinstance(value, bytes):
            raise TypeError(f'Opaque values must be bytes, not {value.__class__.__qualname__!r}')
        return super().validate(value)


class StringAdapter(PrefixedAdapter[str]):
    """Represent strings as their UTF-8 encoding"""

    _what_ = 'string'

    @classmethod
    def encode(cls, value: str, /) -> bytes:
        return value.encode()

    @classmethod
    def decode(cls, data: bytes, /) -> str:
        try:
            return data.decode()
        except UnicodeDecodeError as exc:
            raise ValueError(f'Cannot decode bytes to string: {exc}') from exc

    @classmethod
    def validate(cls, value: str, /) -> str:
        if not isinstance(value, str):
            raise TypeError(f'String values must be str, not {value.__class__.__qualname__!r}')
        return super().validate(value)


class Opaque16Adapter(OpaqueAdapter, maxsize=2**16 - 1):
    pass


class Opaque32Adapter(OpaqueAdapter, maxsize=2**32 - 1):
    pass


class String16Adapter(StringAdapter, maxsize=2**16 - 1):
    pass


# Integer types

class UnsignedInteger(int):
    """An unsigned integer encoded as bits // 8 bytes in network byte order"""

    _bits_: ClassVar[int] = NotImplemented
    _size_: ClassVar[int] = NotImplemented

    def __init_subclass__(cls, *, bits: int = NotImplemented, **kw: object) -> None:
        if bits is not NotImplemented:
            cls._bits_ = bits
            cls._size_ = bits // 8
        super().__init_subclass__(**kw)

    def __new__(cls, value: SupportsIndex = 0, /) -> Self:
        if cls._bits_ is NotImplemented:
            raise TypeError(f'Cannot instantiate abstract unsigned integer type {cls.__qualname__!r} that does not define its bit length')
        instance = super().__new__(cls, value)
        if instance < 0 or instance.bit_length() > cls._bits_:
            raise ValueError(f'Value is out of range for unsigned {cls._bits_}-bits integer: {int(instance)!r}')
        return instance

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({int(self)})'

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        data = read_exactly(buffer, cls._size_)
        if len(data) < cls._size_:
            raise ValueError(f'Insufficient data in buffer to extract {cls.__qualname__!r}')
        return cls(int.from_bytes(data, byteorder='big'))

    def to_wire(self) -> bytes:
        return self.to_bytes(self._size_, byteorder='big')

    def wire_length(self) -> int:
        return self._size_


class UInt32(UnsignedInteger, bits=32):
    pass


# Enumeration types

class Enum(enum.IntEnum):
    """
    An enumeration that is encoded on the wire as a big-endian unsigned
    integer of size bytes.

    Decoding a code that is not a member of the enumeration is an error.
    Enumerations used by the admin messages reserve code 0 for their
    unset member, which decodes successfully and must be rejected by
    whoever interprets the value.
    """

    _size_: ClassVar[int]

    def __init_subclass__(cls, *, size: int = 1, **kw: object) -> None:
        cls._size_ = size
        super().__init_subclass__(**kw)

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        data = read_exactly(buffer, cls._size_)
        if len(data) < cls._size_:
            raise ValueError(f'Insufficient data in buffer to extract {cls.__qualname__!r}')
        return cls(int.from_bytes(data, byteorder='big'))

    def to_wire(self) -> bytes:
        return self.to_bytes(self._size_, byteorder='big')

    def wire_length(self) -> int:
        return self._size_


class AuthorizationType(Enum):
    unset = 0
    trust = 1


class PersistenceType(Enum):
    unset = 0
    any = 1


class RouteType(Enum):
    unset = 0
    any = 1


class ManagementAction(Enum):
    unset = 0
    circuit_create_request = 1


# Length prefixed types

class Opaque(bytes):
    """A bytes buffer of up to maxsize bytes, prefixed with its length"""

    _maxsize_: ClassVar[int] = NotImplemented
    _sizelen_: ClassVar[int] = NotImplemented

    def __init_subclass__(cls, *, maxsize: int = NotImplemented, **kw: object) -> None:
        if maxsize is not NotImplemented:
            cls._maxsize_ = maxsize
            cls._sizelen_ = byte_length(maxsize)
        super().__init_subclass__(**kw)

    def __new__(cls, value: Buffer = b'', /) -> Self:
        if cls._maxsize_ is NotImplemented:
            raise TypeError(f'Cannot instantiate abstract variable length bytes type {cls.__qualname__!r} that does not define its max size')
        instance = super().__new__(cls, value)
        if len(instance) > cls._maxsize_:
            raise ValueError(f'{cls.__qualname__!r} objects can have at most {cls._maxsize_} bytes')
        return instance

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({bytes(self)!r})'

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        return cls(read_prefixed(buffer, cls._sizelen_, cls._maxsize_, repr(cls.__qualname__)))

    def to_wire(self) -> bytes:
        return length_prefix(len(self), self._sizelen_) + self

    def wire_length(self) -> int:
        return self._sizelen_ + len(self)


class Opaque32(Opaque, maxsize=2**32 - 1):
    pass


class String(str):
    """A string whose UTF-8 encoding has up to maxsize bytes, prefixed with its length"""

    _maxsize_: ClassVar[int] = NotImplemented
    _sizelen_: ClassVar[int] = NotImplemented

    def __init_subclass__(cls, *, maxsize: int = NotImplemented, **kw: object) -> None:
        if maxsize is not NotImplemented:
            cls._maxsize_ = maxsize
            cls._sizelen_ = byte_length(maxsize)
        super().__init_subclass__(**kw)

    def __new__(cls, value: object = '', /) -> Self:
        if cls._maxsize_ is NotImplemented:
            raise TypeError(f'Cannot instantiate abstract string type {cls.__qualname__!r} that does not define its max size')
        instance = super().__new__(cls, value)
        if len(instance.encode()) > cls._maxsize_:
            raise ValueError(f'{cls.__qualname__!r} objects can have at most {cls._maxsize_} bytes when encoded')
        return instance

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({super().__repr__()})'

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        data = read_prefixed(buffer, cls._sizelen_, cls._maxsize_, repr(cls.__qualname__))
        try:
            return cls(data.decode())
        except UnicodeDecodeError as exc:
            raise ValueError(f'Cannot decode bytes to {cls.__qualname__!r}: {exc}') from exc

    def to_wire(self) -> bytes:
        data = self.encode()
        return length_prefix(len(data), self._sizelen_) + data

    def wire_length(self) -> int:
        return self._sizelen_ + len(self.encode())


class String16(String, maxsize=2**16 - 1):
    pass


# List types

class List[T: DataWireProtocol](list[T]):
    """
    A list of wire elements of the same type, prefixed with the byte length
    of its encoded items. The length prefix is wide enough for maxsize.
    """

    _type_: type[T] = NotImplementedType
    _maxsize_: ClassVar[int] = NotImplemented
    _sizelen_: ClassVar[int] = NotImplemented

    def __init_subclass__(cls, *, maxsize: int = NotImplemented, custom_repr: bool = True, **kw: object) -> None:
        if maxsize is not NotImplemented:
            cls._maxsize_ = maxsize
            cls._sizelen_ = byte_length(maxsize)
        if not custom_repr:
            cls.__repr__ = list.__repr__  # type: ignore[method-assign]
        for base in getattr(cls, '__orig_bases__', ()):
            if isinstance(base, GenericAlias) and isinstance(base.__origin__, type) and issubclass(base.__origin__, List):
                match base.__args__[0]:
                    case TypeVar():
                        pass  # new type is still generic
                    case type() as list_type:
                        cls._type_ = list_type
                    case _:
                        raise TypeError(f'The {cls.__qualname__!r} type can only be parameterized with a single base type or a type variable')
        super().__init_subclass__(**kw)

    def __init__(self, iterable: Iterable[T] = (), /) -> None:
        if self._type_ is NotImplementedType or self._sizelen_ is NotImplemented:
            raise TypeError(f'Cannot instantiate abstract list {self.__class__.__qualname__!r} that does not define its item type and max size')
        super().__init__(iterable)
        for item in self:
            if not isinstance(item, self._type_):
                raise TypeError(f'{self.__class__.__qualname__!r} items must be of type {self._type_.__qualname__!r}, not {item.__class__.__qualname__!r}')

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({super().__repr__()})'

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        if cls._type_ is NotImplementedType or cls._sizelen_ is NotImplemented:
            raise TypeError(f'Cannot instantiate abstract list {cls.__qualname__!r} that does not define its item type and max size')
        list_data = read_prefixed(buffer, cls._sizelen_, cls._maxsize_, f'the values of {cls.__qualname__!r}')
        items_buffer = BytesIO(list_data)
        items = []
        while items_buffer.tell() < len(list_data):
            items.append(cls._type_.from_wire(items_buffer))
        return cls(items)

    def _items_length(self) -> int:
        return sum(item.wire_length() for item in self)

    def to_wire(self) -> bytes:
        return length_prefix(self._items_length(), self._sizelen_) + b''.join(item.to_wire() for item in self)

    def wire_length(self) -> int:
        return self._sizelen_ + self._items_length()


def make_list_type[T: DataWireProtocol](item_type: type[T], /, *, maxsize: int, custom_repr: bool = True) -> type[List[T]]:
    return new_class(f'{item_type.__name__}List', (List[item_type],), kwds={'maxsize': maxsize, 'custom_repr': custom_repr})  # type: ignore[valid-type]
