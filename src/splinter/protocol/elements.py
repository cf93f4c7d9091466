# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import reduce
from inspect import Parameter, Signature
from io import BytesIO
from itertools import chain
from operator import or_
from types import UnionType, new_class
from typing import ClassVar, Self, cast, dataclass_transform, overload

from splinter.python import reprproxy

from .datamodel import DataWireAdapter, DataWireProtocol, List, Opaque, UnsignedInteger, WireData, make_list_type

__all__ = (  # noqa: RUF022
    'Structure',
    'AnnotatedStructure',

    'DependentElementSpec',

    'Element',
    'FieldDependentElement',
    'ListElement',
)


class Structure:  # noqa: PLW1641
    """
    A sequence of named wire elements, encoded back to back in the order
    in which they were declared on the class.
    """

    __signature__: ClassVar[Signature] = Signature()

    _fields_: ClassVar[dict[str, 'FieldDescriptor']] = {}

    _all_arguments: ClassVar[frozenset[str]]
    _mandatory_arguments: ClassVar[frozenset[str]]
    _default_arguments: ClassVar[dict[str, object]]

    def __new__(cls, **kw: object) -> Self:
        if not cls._all_arguments.issuperset(kw):
            raise TypeError(f'Got an unexpected keyword argument {next(iter(set(kw) - cls._all_arguments))!r}')
        if not cls._mandatory_arguments.issubset(kw):
            raise TypeError(f'Missing a required keyword argument {next(iter(cls._mandatory_arguments - set(kw)))!r}')
        return super().__new__(cls)

    def __init__(self, **kw: object) -> None:
        # Dependent elements need their control element to be set first,
        # so fields are set in definition order regardless of the order of **kw.
        kw = self._default_arguments | kw
        for name in self._fields_:
            setattr(self, name, kw[name])

    def __init_subclass__(cls, **kw: object) -> None:
        super().__init_subclass__(**kw)

        # all the fields on this structure (both inherited and locally defined)
        fields = cls._fields_ | {name: value for name, value in cls.__dict__.items() if isinstance(value, FieldDescriptor)}

        cls._fields_ = fields

        cls.__signature__ = Signature(parameters=[descriptor.signature_parameter for descriptor in fields.values()])
        cls._all_arguments = frozenset(cls.__signature__.parameters)
        cls._mandatory_arguments = frozenset(p.name for p in cls.__signature__.parameters.values() if p.default is Parameter.empty)
        cls._default_arguments = {p.name: p.default for p in cls.__signature__.parameters.values() if p.default is not Parameter.empty}

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({', '.join(f'{name}={reprproxy(getattr(self, name))!r}' for name in self._fields_)})'

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Structure):
            return self._fields_.keys() == other._fields_.keys() and all(getattr(self, name) == getattr(other, name) for name in self._fields_)
        return NotImplemented

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        if not isinstance(buffer, BytesIO):
            buffer = BytesIO(buffer)
        instance = super().__new__(cls)
        for field in cls._fields_.values():
            field.from_wire(instance, buffer)
        return instance

    def to_wire(self) -> bytes:
        return b''.join(field.to_wire(self) for field in self._fields_.values())

    def wire_length(self) -> int:
        return sum(field.wire_length(self) for field in self._fields_.values())


# Helpers

def _protocol2adapter[T: DataWireProtocol](proto: type[T]) -> type[DataWireAdapter[T]]:
    # Turn a DataWireProtocol into a DataWireAdapter by creating a stand-in adapter on the fly.
    #
    # Field descriptors treat DataWireProtocol types and DataWireAdapters interchangeably,
    # but adapters have an extra validate() method. The stand-in adapter checks the type
    # of the value instead, as protocol types validate their content on construction.

    def validate(value: T, /) -> T:
        if not isinstance(value, proto):
            raise TypeError(f'Expected a value of type {proto.__qualname__!r}, got {value.__class__.__qualname__!r}')
        return value

    def prepare(ns: dict) -> None:
        ns['_abstract_'] = False
        ns['from_wire'] = staticmethod(proto.from_wire)
        ns['to_wire'] = staticmethod(proto.to_wire)
        ns['wire_length'] = staticmethod(proto.wire_length)
        ns['validate'] = staticmethod(validate)

    adapter = new_class(f'{proto.__name__}AdapterStandIn', (DataWireAdapter[T],), exec_body=prepare)
    adapter.__module__ = __name__
    adapter.__qualname__ = f'_protocol2adapter.<generated>.{adapter.__name__}'

    return adapter


type DataWireAdapterType[T] = type[DataWireAdapter[T]]


# Field descriptor specifications

class FieldDescriptor(ABC):
    name: str | None
    default: object

    @property
    @abstractmethod
    def signature_parameter(self) -> Parameter: ...

    @abstractmethod
    def from_wire(self, instance: Structure, buffer: WireData) -> None: ...

    @abstractmethod
    def to_wire(self, instance: Structure) -> bytes: ...

    @abstractmethod
    def wire_length(self, instance: Structure) -> int: ...

    def __set_name__(self, owner: type[Structure], name: str) -> None:
        if self.name is None:
            self.name = name
        elif name != self.name:
            raise TypeError(f'Cannot assign the same {self.__class__.__qualname__!r} to two different names: {self.name!r} and {name!r}')

    def __delete__(self, instance: Structure) -> None:
        raise AttributeError(f'Attribute {self.name!r} of {instance.__class__.__qualname__!r} object cannot be deleted')

    def _stored_value(self, instance: Structure) -> object:
        if self.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on it.')
        try:
            return instance.__dict__[self.name]
        except KeyError as exc:
            raise AttributeError(f'Attribute {self.name!r} of object {instance.__class__.__qualname__!r} is not set') from exc

    def _parameter(self, annotation: object) -> Parameter:
        assert self.name is not None  # noqa: S101 (used by type checkers)
        kwds = {} if self.default is NotImplemented else {'default': self.default}
        return Parameter(name=self.name, kind=Parameter.KEYWORD_ONLY, annotation=annotation, **kwds)


# Field descriptor implementations

class Element[T](FieldDescriptor):
    type: type[T] | UnionType
    default: T
    adapter: DataWireAdapterType[T]

    def __init__(self, element_type: type[T], /, *, default: T = NotImplemented, adapter: DataWireAdapterType[T] | None = None) -> None:
        self.name = None
        self.type = element_type
        self.default = default
        self.provided_adapter = adapter
        if adapter is None:
            if not issubclass(element_type, DataWireProtocol):
                raise TypeError('Either the element type must implement the DataWireProtocol or an adapter must be provided')
            adapter = cast(DataWireAdapterType[T], _protocol2adapter(element_type))
        if adapter._abstract_:
            raise TypeError(f'Cannot use abstract adapter {adapter.__qualname__!r} (need to select a concrete implementation of it, usually one that defines its size)')
        self.adapter = adapter

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({reprproxy(self.type)!r}, default={self.default!r}, adapter={reprproxy(self.provided_adapter)!r})'

    @property
    def signature_parameter(self) -> Parameter:
        return self._parameter(self.type)

    @overload
    def __get__(self, instance: None, owner: type[Structure]) -> Self: ...

    @overload
    def __get__(self, instance: Structure, owner: type[Structure] | None = None) -> T: ...

    def __get__(self, instance: Structure | None, owner: type[Structure] | None = None) -> Self | T:
        if instance is None:
            return self
        return cast(T, self._stored_value(instance))

    def __set__(self, instance: Structure, value: T) -> None:
        if self.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on it.')
        instance.__dict__[self.name] = self.adapter.validate(value)

    def from_wire(self, instance: Structure, buffer: WireData) -> None:
        if self.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on it.')
        try:
            instance.__dict__[self.name] = self.adapter.from_wire(buffer)
        except ValueError as exc:
            raise ValueError(f'Failed to read the {instance.__class__.__qualname__}.{self.name} element from wire: {exc}') from exc

    def to_wire(self, instance: Structure) -> bytes:
        return self.adapter.to_wire(self.__get__(instance))

    def wire_length(self, instance: Structure) -> int:
        return self.adapter.wire_length(self.__get__(instance))


@dataclass(kw_only=True, slots=True)
class DependentElementSpec[T: DataWireProtocol, U]:
    """
    Describes an element whose type is selected by the value of another element.

    The element is always prefixed by its byte length encoded as length_type.
    Control values missing from type_map select the fallback_type, which must
    be an Opaque type that reads the length prefix itself, so that unknown
    content can still be skipped over and carried along.
    """

    type_map: Mapping[U, type[T]]
    fallback_type: type[T] | None = None
    length_type: type[UnsignedInteger]

    def __post_init__(self) -> None:
        if self.length_type._size_ is NotImplemented:
            raise TypeError('The length type cannot be an abstract UnsignedInteger type that does not define its size')
        if not self.type_map and self.fallback_type is None:
            raise TypeError(f'A {self.__class__.__qualname__!r} with an empty type_map must specify a fallback type')
        if self.fallback_type is not None:
            if not issubclass(self.fallback_type, Opaque) or self.fallback_type._sizelen_ is NotImplemented:
                raise TypeError('The fallback type should either be None or an Opaque type which defines its size')
            if self.fallback_type._sizelen_ != self.length_type._size_:
                raise TypeError(f'The fallback type size length does not match the length type size ({self.fallback_type._sizelen_} != {self.length_type._size_})')

    def __repr__(self) -> str:
        type_map = {reprproxy(name): reprproxy(value) for name, value in self.type_map.items()}
        fallback_type = reprproxy(self.fallback_type)
        length_type = reprproxy(self.length_type)
        return f'{self.__class__.__qualname__}({type_map=}, {fallback_type=}, {length_type=})'


@dataclass(slots=True)
class DependentValueContext[T, U]:
    value: T
    control_value: U
    uses_fallback_type: bool


class FieldDependentElement[T: DataWireProtocol, U](FieldDescriptor):
    control_field: Element[U]
    specification: DependentElementSpec[T, U]
    default: T

    def __init__(self, *, control_field: Element[U], specification: DependentElementSpec[T, U], default: T = NotImplemented) -> None:
        self.name = None
        self.control_field = control_field
        self.specification = specification
        self.default = default

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(control_field={self.control_field.name!s}, specification={self.specification!r}, default={self.default!r})'

    @property
    def signature_parameter(self) -> Parameter:
        spec = self.specification
        annotation = reduce(or_, chain(spec.type_map.values(), [spec.fallback_type] if spec.fallback_type is not None else []))
        return self._parameter(annotation)

    def _get_control_value(self, instance: Structure, /) -> U:
        if self.control_field.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on its control field.')
        try:
            return instance.__dict__[self.control_field.name]
        except KeyError as exc:
            raise ValueError(f'Control element {instance.__class__.__qualname__}.{self.control_field.name} is not set') from exc

    def _select_type(self, instance: Structure, control_value: U) -> tuple[type[T], bool]:
        element_type = self.specification.type_map.get(control_value, None)
        if element_type is not None:
            return element_type, False
        if self.specification.fallback_type is None:
            raise ValueError(f'Cannot find associated type for dependent element {instance.__class__.__qualname__}.{self.name} with control value {control_value!r}')
        return self.specification.fallback_type, True

    @overload
    def __get__(self, instance: None, owner: type[Structure]) -> Self: ...

    @overload
    def __get__(self, instance: Structure, owner: type[Structure] | None = None) -> T: ...

    def __get__(self, instance: Structure | None, owner: type[Structure] | None = None) -> Self | T:
        if instance is None:
            return self
        return self._get_value_context(instance).value

    def __set__(self, instance: Structure, value: T) -> None:
        if self.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on it.')
        control_value = self._get_control_value(instance)
        element_type, uses_fallback_type = self._select_type(instance, control_value)
        if not isinstance(value, element_type):
            raise TypeError(f'The value for the {self.name!r} field should be of type {element_type.__qualname__!r}')
        instance.__dict__[self.name] = DependentValueContext(value, control_value, uses_fallback_type)

    def _get_value_context(self, instance: Structure, /) -> DependentValueContext[T, U]:
        return cast(DependentValueContext[T, U], self._stored_value(instance))

    def from_wire(self, instance: Structure, buffer: WireData) -> None:
        if self.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on it.')
        if not isinstance(buffer, BytesIO):
            buffer = BytesIO(buffer)

        control_value = self._get_control_value(instance)
        element_type, uses_fallback_type = self._select_type(instance, control_value)

        if uses_fallback_type:
            element_data = buffer  # The fallback type handles the length field internally
        else:
            length_type = self.specification.length_type
            length_data = buffer.read(length_type._size_)
            if len(length_data) < length_type._size_:
                raise ValueError(f'Insufficient data in buffer to get the length for the {instance.__class__.__qualname__}.{self.name} element')
            length = length_type.from_wire(length_data)
            element_data = buffer.read(length)
            if len(element_data) < length:
                raise ValueError(f'Insufficient data in buffer to get the {instance.__class__.__qualname__}.{self.name} element')
        try:
            value = element_type.from_wire(element_data)
        except ValueError as exc:
            raise ValueError(f'Failed to read the {instance.__class__.__qualname__}.{self.name} element from wire: {exc}') from exc
        instance.__dict__[self.name] = DependentValueContext(value, control_value, uses_fallback_type)

    def to_wire(self, instance: Structure) -> bytes:
        context = self._get_value_context(instance)
        if context.uses_fallback_type:
            return context.value.to_wire()
        return self.specification.length_type(context.value.wire_length()).to_wire() + context.value.to_wire()

    def wire_length(self, instance: Structure) -> int:
        context = self._get_value_context(instance)
        if context.uses_fallback_type:
            return context.value.wire_length()
        return self.specification.length_type._size_ + context.value.wire_length()


class ListElement[T: DataWireProtocol](FieldDescriptor):
    """A list of items of the same type, prefixed by the byte length of the encoded items (at most maxsize)"""

    maxsize: int
    default: Sequence[T]
    item_type: type[T]
    list_type: type[List[T]]

    def __init__(self, item_type: type[T], /, *, maxsize: int, default: Sequence[T] = NotImplemented) -> None:
        self.name = None
        self.default = default
        self.maxsize = maxsize
        self.item_type = item_type
        self.list_type = make_list_type(item_type, maxsize=maxsize, custom_repr=False)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.item_type.__qualname__}, default={self.default!r}, maxsize={self.maxsize!r})'

    @property
    def signature_parameter(self) -> Parameter:
        return self._parameter(list[self.item_type])  # type: ignore[name-defined]

    @overload
    def __get__(self, instance: None, owner: type[Structure]) -> Self: ...

    @overload
    def __get__(self, instance: Structure, owner: type[Structure] | None = None) -> List[T]: ...

    def __get__(self, instance: Structure | None, owner: type[Structure] | None = None) -> Self | List[T]:
        if instance is None:
            return self
        return cast(List[T], self._stored_value(instance))

    def __set__(self, instance: Structure, value: Sequence[T]) -> None:
        if self.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on it.')
        instance.__dict__[self.name] = self.list_type(value)

    def from_wire(self, instance: Structure, buffer: WireData) -> None:
        if self.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on it.')
        try:
            instance.__dict__[self.name] = self.list_type.from_wire(buffer)
        except ValueError as exc:
            raise ValueError(f'Failed to read the {instance.__class__.__qualname__}.{self.name} element from wire: {exc}') from exc

    def to_wire(self, instance: Structure) -> bytes:
        return self.__get__(instance).to_wire()

    def wire_length(self, instance: Structure) -> int:
        return self.__get__(instance).wire_length()


@dataclass_transform(kw_only_default=True, field_specifiers=(Element, FieldDependentElement, ListElement))
class AnnotatedStructure(Structure):
    pass
