# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .exceptions import MalformedMessageError, MarshallingError, PayloadDecodeError, UnsetFieldError
from .messages import AuthorizationType, CreateCircuit, PersistenceType, ProposalEnvelope, RouteType, SplinterNode, SplinterService, decode_proposal, encode_proposal
from .payload import create_circuit_from_payload

__all__ = (  # noqa: RUF022
    'AuthorizationType',
    'PersistenceType',
    'RouteType',
    'SplinterNode',
    'SplinterService',
    'CreateCircuit',
    'ProposalEnvelope',

    'create_circuit_from_payload',
    'decode_proposal',
    'encode_proposal',

    'MarshallingError',
    'UnsetFieldError',
    'MalformedMessageError',
    'PayloadDecodeError',
)
