# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from http import HTTPStatus

import pytest
from splinter.admin import MalformedMessageError, MarshallingError, PayloadDecodeError, UnsetFieldError
from splinter.admin.rest_api import (
    CircuitNotFoundError,
    CircuitRouteError,
    CircuitStoreFailure,
    ProposalInternalError,
    ProposalNotFoundError,
    ProposalRouteError,
)
from splinter.circuit import CircuitStoreError


class TestMarshallingErrors:

    def test_hierarchy(self) -> None:
        assert issubclass(UnsetFieldError, MarshallingError)
        assert issubclass(MalformedMessageError, MarshallingError)
        assert issubclass(PayloadDecodeError, ValueError)
        assert not issubclass(PayloadDecodeError, MarshallingError)

    def test_unset_field(self) -> None:
        error = UnsetFieldError('routes')
        assert str(error) == 'routes unset'
        assert error.reason == 'routes unset'
        assert error.field == 'routes'
        assert error.source is None
        assert error.http_status is HTTPStatus.BAD_REQUEST

    def test_chaining(self) -> None:
        cause = ValueError('Insufficient data in buffer')
        with pytest.raises(MalformedMessageError) as exc_info:
            raise MalformedMessageError('Cannot decode message') from cause
        assert exc_info.value.source is cause
        assert str(exc_info.value) == 'Cannot decode message'


class TestProposalRouteErrors:

    def test_not_found(self) -> None:
        error = ProposalNotFoundError('c1')
        assert isinstance(error, ProposalRouteError)
        assert error.proposal_id == 'c1'
        assert str(error) == 'Proposal not found: c1'
        assert error.http_status is HTTPStatus.NOT_FOUND

    def test_internal_error(self) -> None:
        cause = OSError('disk failure')
        with pytest.raises(ProposalRouteError, match='^Ran into internal error: cannot load proposals$') as exc_info:
            raise ProposalInternalError('cannot load proposals') from cause
        assert exc_info.value.source is cause
        assert exc_info.value.http_status is HTTPStatus.INTERNAL_SERVER_ERROR


class TestCircuitRouteErrors:

    def test_not_found(self) -> None:
        error = CircuitNotFoundError('c1')
        assert isinstance(error, CircuitRouteError)
        assert error.circuit_id == 'c1'
        assert str(error) == 'Circuit not found: c1'
        assert error.http_status is HTTPStatus.NOT_FOUND
        assert error.source is None

    def test_store_error(self) -> None:
        error = CircuitStoreError('failed to fetch circuit c1')
        assert str(error) == 'failed to fetch circuit c1'
        assert error.source is None

        cause = TimeoutError('database timeout')
        error = CircuitStoreError('failed to fetch circuit c1', cause)
        assert str(error) == 'failed to fetch circuit c1: database timeout'
        assert error.source is cause
        assert error.__cause__ is cause

    def test_from_store_error(self) -> None:
        cause = TimeoutError('database timeout')
        store_error = CircuitStoreError('failed to list circuits', cause)
        error = CircuitRouteError.from_store_error(store_error)
        assert isinstance(error, CircuitStoreFailure)
        assert isinstance(error, CircuitRouteError)
        assert error.source is store_error
        assert error.error is store_error
        assert error.source.source is cause
        assert str(error) == 'failed to list circuits: database timeout'
        assert error.http_status is HTTPStatus.INTERNAL_SERVER_ERROR

        with pytest.raises(CircuitRouteError) as exc_info:
            raise error
        assert exc_info.value.__cause__ is store_error
