# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Admin protocol messages exchanged between splinter nodes.

   Circuit management requests travel between the nodes of a network as
   binary messages.  All integers are represented in network byte order.
   Strings are UTF-8 encoded and prefixed with their 16 bit length, and
   repeated elements are prefixed with the 32 bit length of their encoded
   content.

     +-------------------------------+
     |  Action / Requester Identity  |
     +-------------------------------+
     |      Management Request       |
     +-------------------------------+

   Enumerated fields are encoded as a single byte.  The value 0 is reserved
   in every enumeration to mean that no value was chosen.  Decoding such a
   value succeeds at this layer; interpreting it is left to the consumer of
   the message, which must reject it.

"""

from typing import ClassVar

from .datamodel import (
    AuthorizationType,
    ManagementAction,
    Opaque32,
    Opaque16Adapter,
    Opaque32Adapter,
    PersistenceType,
    RouteType,
    String16,
    String16Adapter,
    UInt32,
)
from .elements import AnnotatedStructure, DependentElementSpec, Element, FieldDependentElement, ListElement

__all__ = (  # noqa: RUF022
    # Enumerations
    'AuthorizationType',
    'PersistenceType',
    'RouteType',
    'ManagementAction',

    # Circuit elements
    'SplinterNode',
    'SplinterService',
    'Circuit',

    # Requests
    'CircuitCreateRequest',
    'CircuitManagementPayload',
)


MAX_LIST_SIZE = 2**32 - 1


# Circuit elements

class SplinterNode(AnnotatedStructure):
    node_id: Element[str] = Element(str, adapter=String16Adapter)
    endpoint: Element[str] = Element(str, adapter=String16Adapter)


class SplinterService(AnnotatedStructure):
    service_id: Element[str] = Element(str, adapter=String16Adapter)
    service_type: Element[str] = Element(str, adapter=String16Adapter)
    allowed_nodes: ListElement[String16] = ListElement(String16, default=(), maxsize=MAX_LIST_SIZE)


class Circuit(AnnotatedStructure):
    circuit_id: Element[str] = Element(str, adapter=String16Adapter)
    roster: ListElement[SplinterService] = ListElement(SplinterService, default=(), maxsize=MAX_LIST_SIZE)
    members: ListElement[SplinterNode] = ListElement(SplinterNode, default=(), maxsize=MAX_LIST_SIZE)
    authorization_type: Element[AuthorizationType] = Element(AuthorizationType, default=AuthorizationType.unset)
    persistence: Element[PersistenceType] = Element(PersistenceType, default=PersistenceType.unset)
    routes: Element[RouteType] = Element(RouteType, default=RouteType.unset)
    circuit_management_type: Element[str] = Element(str, default='', adapter=String16Adapter)
    application_metadata: Element[bytes] = Element(bytes, default=b'', adapter=Opaque32Adapter)


# Requests

class CircuitCreateRequest(AnnotatedStructure):
    circuit: Element[Circuit] = Element(Circuit)


class CircuitManagementPayload(AnnotatedStructure):
    # ManagementAction action             // selects the type of request
    # opaque           requester<0..2^16-1>   // public key of the requester
    # String16         requester_node_id
    # uint32           length             // length of request (not exposed)
    # select (action)  request            // CircuitCreateRequest for circuit_create_request

    # Unknown actions (including unset) are carried as opaque bytes, so the
    # envelope can still be parsed and the action rejected by the consumer.
    _request_specification: ClassVar = DependentElementSpec[CircuitCreateRequest | Opaque32, ManagementAction](
        type_map={
            ManagementAction.circuit_create_request: CircuitCreateRequest,
        },
        fallback_type=Opaque32,
        length_type=UInt32,
    )

    action: Element[ManagementAction] = Element(ManagementAction)
    requester: Element[bytes] = Element(bytes, default=b'', adapter=Opaque16Adapter)
    requester_node_id: Element[str] = Element(str, default='', adapter=String16Adapter)
    request: FieldDependentElement[CircuitCreateRequest | Opaque32, ManagementAction] = FieldDependentElement(control_field=action, specification=_request_specification)
