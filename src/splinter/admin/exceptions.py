# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from http import HTTPStatus
from typing import ClassVar

__all__ = 'MarshallingError', 'UnsetFieldError', 'MalformedMessageError', 'PayloadDecodeError'


class MarshallingError(Exception):
    """
    Raised when a circuit proposal cannot be converted between its wire and
    domain representations.

    These are always faults in the data provided by a client or a peer.
    They are final for the conversion attempt and must not be retried.
    """

    http_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return self.reason

    @property
    def source(self) -> BaseException | None:
        """The error that caused this one, if any"""
        return self.__cause__


class UnsetFieldError(MarshallingError):
    """Raised when an enumerated field of a wire message has no value chosen."""

    def __init__(self, field: str) -> None:
        super().__init__(f'{field} unset')
        self.field = field


class MalformedMessageError(MarshallingError):
    """
    Raised when the binary representation of a message cannot be decoded.

    The decoding error that was encountered is available as the exception
    ``__cause__`` (and ``source``).
    """


class PayloadDecodeError(ValueError):
    """
    Raised when a request body does not hold a valid JSON circuit proposal.

    The validation error describing what was wrong with the body is
    available as the exception ``__cause__`` (and ``source``).
    """

    http_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST

    @property
    def source(self) -> BaseException | None:
        """The error that caused this one, if any"""
        return self.__cause__
