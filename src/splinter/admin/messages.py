# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Circuit creation proposals.

A proposal has three representations: the JSON body submitted by a client,
the domain objects defined here, and the binary admin protocol messages that
are exchanged between nodes (see :mod:`splinter.protocol`). The domain objects
are the canonical form. They are immutable and every conversion produces new
values.

Enumerated fields must resolve to a known value. The unset value of a wire
enumeration is never mapped to a default, it is rejected with UnsetFieldError.
"""

import enum
from collections.abc import Buffer
from dataclasses import dataclass
from typing import Annotated, Self, assert_never

import structlog
from pydantic import PlainSerializer, PlainValidator, TypeAdapter, ValidationError

from splinter import protocol
from splinter.protocol.datamodel import String16
from splinter.python import reprproxy

from .exceptions import MalformedMessageError, MarshallingError, PayloadDecodeError, UnsetFieldError

__all__ = (  # noqa: RUF022
    'AuthorizationType',
    'PersistenceType',
    'RouteType',

    'SplinterNode',
    'SplinterService',
    'CreateCircuit',
    'ProposalEnvelope',

    'authorization_type_from_proto',
    'authorization_type_to_proto',
    'persistence_type_from_proto',
    'persistence_type_to_proto',
    'route_type_from_proto',
    'route_type_to_proto',

    'encode_proposal',
    'decode_proposal',
)


log = structlog.get_logger(__name__)


# Enumerations

class AuthorizationType(enum.StrEnum):
    Trust = 'Trust'


class PersistenceType(enum.StrEnum):
    Any = 'Any'


class RouteType(enum.StrEnum):
    Any = 'Any'


# Enumerated field codec
#
# Converting to the wire is total. Converting from the wire fails only for
# the unset value. Every match ends with assert_never, so that a type checker
# reports an enumeration member that is not handled.

def authorization_type_to_proto(value: AuthorizationType) -> protocol.AuthorizationType:
    match value:
        case AuthorizationType.Trust:
            return protocol.AuthorizationType.trust
        case _:
            assert_never(value)


def authorization_type_from_proto(value: protocol.AuthorizationType) -> AuthorizationType:
    match value:
        case protocol.AuthorizationType.trust:
            return AuthorizationType.Trust
        case protocol.AuthorizationType.unset:
            raise UnsetFieldError('authorization_type')
        case _:
            assert_never(value)


def persistence_type_to_proto(value: PersistenceType) -> protocol.PersistenceType:
    match value:
        case PersistenceType.Any:
            return protocol.PersistenceType.any
        case _:
            assert_never(value)


def persistence_type_from_proto(value: protocol.PersistenceType) -> PersistenceType:
    match value:
        case protocol.PersistenceType.any:
            return PersistenceType.Any
        case protocol.PersistenceType.unset:
            raise UnsetFieldError('persistence')
        case _:
            assert_never(value)


def route_type_to_proto(value: RouteType) -> protocol.RouteType:
    match value:
        case RouteType.Any:
            return protocol.RouteType.any
        case _:
            assert_never(value)


def route_type_from_proto(value: protocol.RouteType) -> RouteType:
    match value:
        case protocol.RouteType.any:
            return RouteType.Any
        case protocol.RouteType.unset:
            raise UnsetFieldError('routes')
        case _:
            assert_never(value)


# JSON representation of the application metadata (an array of byte values)

def _metadata_from_json(value: object) -> bytes:
    match value:
        case bytes():
            return value
        case bytearray() | memoryview():
            return bytes(value)
        case list() | tuple():
            # bool is an int subclass, but JSON true and false are not byte values
            for item in value:
                if type(item) is not int or not 0 <= item < 256:
                    raise ValueError(f'application metadata must be an array of integers in range(0, 256), found {item!r}')
            return bytes(value)
        case _:
            raise ValueError(f'application metadata must be an array of integers in range(0, 256), not {value.__class__.__qualname__}')


ApplicationMetadata = Annotated[bytes, PlainValidator(_metadata_from_json), PlainSerializer(list, return_type=list[int])]


# Domain model

@dataclass(frozen=True, slots=True)
class SplinterNode:
    node_id: str
    endpoint: str

    @classmethod
    def from_proto(cls, proto: protocol.SplinterNode) -> Self:
        return cls(node_id=proto.node_id, endpoint=proto.endpoint)

    def into_proto(self) -> protocol.SplinterNode:
        return protocol.SplinterNode(node_id=self.node_id, endpoint=self.endpoint)


@dataclass(frozen=True, slots=True)
class SplinterService:
    service_id: str
    service_type: str
    allowed_nodes: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, 'allowed_nodes', tuple(self.allowed_nodes))

    @classmethod
    def from_proto(cls, proto: protocol.SplinterService) -> Self:
        return cls(
            service_id=proto.service_id,
            service_type=proto.service_type,
            allowed_nodes=tuple(str(node_id) for node_id in proto.allowed_nodes),
        )

    def into_proto(self) -> protocol.SplinterService:
        return protocol.SplinterService(
            service_id=self.service_id,
            service_type=self.service_type,
            allowed_nodes=[String16(node_id) for node_id in self.allowed_nodes],
        )


@dataclass(frozen=True, slots=True)
class CreateCircuit:
    """
    A proposal to create a circuit.

    The roster, members and the allowed nodes of each service keep the
    order in which they were given. Duplicate ids are not rejected here.
    """

    circuit_id: str
    roster: tuple[SplinterService, ...]
    members: tuple[SplinterNode, ...]
    authorization_type: AuthorizationType
    persistence: PersistenceType
    routes: RouteType
    circuit_management_type: str
    application_metadata: ApplicationMetadata

    def __post_init__(self) -> None:
        object.__setattr__(self, 'roster', tuple(self.roster))
        object.__setattr__(self, 'members', tuple(self.members))

    def __repr__(self) -> str:
        fields = ('circuit_id', 'roster', 'members', 'authorization_type', 'persistence', 'routes', 'circuit_management_type', 'application_metadata')
        return f'{self.__class__.__qualname__}({', '.join(f'{name}={reprproxy(getattr(self, name))!r}' for name in fields)})'

    @classmethod
    def from_proto(cls, proto: protocol.Circuit) -> Self:
        """
        Build a proposal from a wire circuit.

        Raises UnsetFieldError if any of the enumerated fields is unset.
        Nothing is returned in that case, not even the fields that could
        be converted.
        """
        try:
            authorization_type = authorization_type_from_proto(proto.authorization_type)
            persistence = persistence_type_from_proto(proto.persistence)
            routes = route_type_from_proto(proto.routes)
        except UnsetFieldError as exc:
            log.warning('Rejected circuit proposal', circuit_id=proto.circuit_id, reason=exc.reason)
            raise
        return cls(
            circuit_id=proto.circuit_id,
            roster=tuple(SplinterService.from_proto(service) for service in proto.roster),
            members=tuple(SplinterNode.from_proto(node) for node in proto.members),
            authorization_type=authorization_type,
            persistence=persistence,
            routes=routes,
            circuit_management_type=proto.circuit_management_type,
            application_metadata=proto.application_metadata,
        )

    def into_proto(self) -> protocol.CircuitCreateRequest:
        """
        Build the wire request that relays this proposal to other nodes.

        Raises MarshallingError if a value does not fit in its wire
        representation (for example an identifier longer than 65535 bytes).
        """
        try:
            circuit = protocol.Circuit(
                circuit_id=self.circuit_id,
                roster=[service.into_proto() for service in self.roster],
                members=[node.into_proto() for node in self.members],
                authorization_type=authorization_type_to_proto(self.authorization_type),
                persistence=persistence_type_to_proto(self.persistence),
                routes=route_type_to_proto(self.routes),
                circuit_management_type=self.circuit_management_type,
                application_metadata=self.application_metadata,
            )
        except (TypeError, ValueError) as exc:
            raise MarshallingError(f'Cannot encode circuit {self.circuit_id!r}: {exc}') from exc
        return protocol.CircuitCreateRequest(circuit=circuit)

    @classmethod
    def from_wire(cls, data: bytes | bytearray | memoryview) -> Self:
        """Decode a proposal from an encoded circuit create request"""
        try:
            request = protocol.CircuitCreateRequest.from_wire(data)
        except ValueError as exc:
            raise MalformedMessageError(f'Cannot decode circuit create request: {exc}') from exc
        if request.wire_length() != len(data):
            raise MalformedMessageError(f'Found {len(data) - request.wire_length()} bytes of trailing data after the circuit create request')
        return cls.from_proto(request.circuit)

    def to_wire(self) -> bytes:
        """Encode the proposal as a circuit create request"""
        return self.into_proto().to_wire()

    @classmethod
    def from_json(cls, data: str | Buffer) -> Self:
        """
        Decode a proposal from its JSON representation.

        Raises PayloadDecodeError if the data is not valid JSON or does not
        describe a valid proposal.
        """
        if not isinstance(data, str | bytes | bytearray):
            data = bytes(data)
        try:
            return _create_circuit_adapter.validate_json(data)
        except ValidationError as exc:
            raise PayloadDecodeError(f'Invalid circuit proposal ({exc.error_count()} errors): {exc}') from exc

    def to_json(self) -> bytes:
        return _create_circuit_adapter.dump_json(self)


_create_circuit_adapter = TypeAdapter(CreateCircuit)


# Circuit management payloads

@dataclass(frozen=True, slots=True)
class ProposalEnvelope:
    """A proposal together with the identity of the node that submitted it"""

    proposal: CreateCircuit
    requester: bytes
    requester_node_id: str


def encode_proposal(proposal: CreateCircuit, *, requester: bytes, requester_node_id: str) -> bytes:
    try:
        payload = protocol.CircuitManagementPayload(
            action=protocol.ManagementAction.circuit_create_request,
            requester=requester,
            requester_node_id=requester_node_id,
            request=proposal.into_proto(),
        )
    except (TypeError, ValueError) as exc:
        raise MarshallingError(f'Cannot encode circuit management payload: {exc}') from exc
    return payload.to_wire()


def decode_proposal(data: bytes | bytearray | memoryview) -> ProposalEnvelope:
    try:
        payload = protocol.CircuitManagementPayload.from_wire(data)
    except ValueError as exc:
        raise MalformedMessageError(f'Cannot decode circuit management payload: {exc}') from exc
    if payload.wire_length() != len(data):
        raise MalformedMessageError(f'Found {len(data) - payload.wire_length()} bytes of unaccounted data in the circuit management payload')
    match payload.action:
        case protocol.ManagementAction.circuit_create_request:
            proposal = CreateCircuit.from_proto(payload.request.circuit)
        case protocol.ManagementAction.unset:
            log.warning('Rejected circuit management payload', requester_node_id=payload.requester_node_id, reason='action unset')
            raise UnsetFieldError('action')
        case _:
            assert_never(payload.action)
    return ProposalEnvelope(proposal=proposal, requester=payload.requester, requester_node_id=payload.requester_node_id)
