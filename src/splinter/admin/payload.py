# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from asyncio import CancelledError
from collections.abc import AsyncIterable, Buffer

import structlog

from .exceptions import PayloadDecodeError
from .messages import CreateCircuit

__all__ = 'PayloadBuffer', 'create_circuit_from_payload'


log = structlog.get_logger(__name__)


class PayloadBuffer:
    """Accumulates the chunks of a request body into a contiguous buffer"""

    def __init__(self, initial_data: Buffer = b'', /) -> None:
        self._buffer = bytearray(initial_data)

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({bytes(self._buffer)!r})'

    def __len__(self) -> int:
        return len(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def write(self, data: Buffer) -> None:
        self._buffer.extend(data)


async def create_circuit_from_payload(payload: AsyncIterable[Buffer]) -> CreateCircuit:
    """
    Read a request body from payload and decode it as a JSON circuit proposal.

    The body is decoded once the stream is exhausted, so the result does not
    depend on how the body was split into chunks. If the task is cancelled
    while waiting for the body, the data received so far is discarded.

    Raises PayloadDecodeError if the body does not hold a valid proposal.
    Errors raised by the payload stream itself are propagated unchanged.
    """
    body = PayloadBuffer()
    try:
        async for chunk in payload:
            body.write(chunk)
    except CancelledError:
        log.debug('Circuit proposal reception was cancelled', received=len(body))
        body.clear()
        raise
    log.debug('Received circuit proposal payload', size=len(body))
    try:
        return CreateCircuit.from_json(body.getvalue())
    except PayloadDecodeError as exc:
        log.warning('Rejected circuit proposal payload', size=len(body), error=str(exc.source))
        raise
