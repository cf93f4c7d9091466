# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from http import HTTPStatus
from typing import ClassVar

from splinter.circuit.store import CircuitStoreError

__all__ = (  # noqa: RUF022
    'ProposalRouteError',
    'ProposalNotFoundError',
    'ProposalInternalError',

    'CircuitRouteError',
    'CircuitNotFoundError',
    'CircuitStoreFailure',
)


class RouteError(Exception):
    http_status: ClassVar[HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR

    @property
    def source(self) -> BaseException | None:
        """The error that caused this one, if any"""
        return self.__cause__


# Proposal routes

class ProposalRouteError(RouteError):
    """Base class for the errors raised while looking up circuit proposals."""


class ProposalNotFoundError(ProposalRouteError):
    http_status = HTTPStatus.NOT_FOUND

    def __init__(self, proposal_id: str) -> None:
        super().__init__(proposal_id)
        self.proposal_id = proposal_id

    def __str__(self) -> str:
        return f'Proposal not found: {self.proposal_id}'


class ProposalInternalError(ProposalRouteError):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f'Ran into internal error: {self.message}'


# Circuit routes

class CircuitRouteError(RouteError):
    """Base class for the errors raised while looking up circuits."""

    @classmethod
    def from_store_error(cls, error: CircuitStoreError) -> 'CircuitStoreFailure':
        """Convert an error raised by the circuit store into a route error"""
        return CircuitStoreFailure(error)


class CircuitNotFoundError(CircuitRouteError):
    http_status = HTTPStatus.NOT_FOUND

    def __init__(self, circuit_id: str) -> None:
        super().__init__(circuit_id)
        self.circuit_id = circuit_id

    def __str__(self) -> str:
        return f'Circuit not found: {self.circuit_id}'


class CircuitStoreFailure(CircuitRouteError):
    """
    A circuit store error surfaced by a circuit route.

    The store error is chained as the exception ``__cause__``, so the full
    diagnostic is preserved, and the message is the one of the store error.
    """

    def __init__(self, error: CircuitStoreError) -> None:
        super().__init__(error)
        self.error = error
        self.__cause__ = error

    def __str__(self) -> str:
        return str(self.error)
