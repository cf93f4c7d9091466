# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
import unittest
from collections.abc import AsyncIterator

import pytest
from pydantic import ValidationError
from splinter.admin import AuthorizationType, CreateCircuit, PayloadDecodeError, PersistenceType, RouteType, create_circuit_from_payload
from splinter.admin.payload import PayloadBuffer

BODY = b'{"circuit_id":"c1","roster":[],"members":[],"authorization_type":"Trust","persistence":"Any","routes":"Any","circuit_management_type":"mgmt","application_metadata":[]}'


async def _stream(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        await asyncio.sleep(0)
        yield chunk


class TestPayloadBuffer:

    def test_buffer(self) -> None:
        buffer = PayloadBuffer()
        assert len(buffer) == 0
        assert buffer.getvalue() == b''
        buffer.write(b'abc')
        buffer.write(memoryview(b'def'))
        buffer.write(bytearray(b'g'))
        assert len(buffer) == 7
        assert buffer.getvalue() == b'abcdefg'
        assert repr(buffer) == "PayloadBuffer(b'abcdefg')"
        buffer.clear()
        assert len(buffer) == 0
        assert PayloadBuffer(b'xyz').getvalue() == b'xyz'


class TestPayloadIngestor(unittest.IsolatedAsyncioTestCase):

    def setUp(self) -> None:
        self.expected = CreateCircuit(
            circuit_id='c1',
            roster=(),
            members=(),
            authorization_type=AuthorizationType.Trust,
            persistence=PersistenceType.Any,
            routes=RouteType.Any,
            circuit_management_type='mgmt',
            application_metadata=b'',
        )

    async def test_single_chunk(self) -> None:
        proposal = await create_circuit_from_payload(_stream(BODY))
        assert proposal == self.expected

    async def test_chunk_boundaries(self) -> None:
        for split in range(len(BODY) + 1):
            proposal = await create_circuit_from_payload(_stream(BODY[:split], BODY[split:]))
            assert proposal == self.expected, f'split at {split}'

    async def test_many_chunks(self) -> None:
        chunks = [memoryview(BODY)[offset:offset + 7] for offset in range(0, len(BODY), 7)]
        proposal = await create_circuit_from_payload(_stream(*chunks))  # type: ignore[arg-type]
        assert proposal == self.expected

    async def test_empty_body(self) -> None:
        with pytest.raises(PayloadDecodeError):
            await create_circuit_from_payload(_stream())

    async def test_invalid_body(self) -> None:
        with pytest.raises(PayloadDecodeError) as exc_info:
            await create_circuit_from_payload(_stream(BODY[:40], b'}'))
        assert isinstance(exc_info.value.__cause__, ValidationError)

    async def test_stream_error(self) -> None:
        async def broken_stream() -> AsyncIterator[bytes]:
            yield BODY[:10]
            raise ConnectionResetError('connection reset by peer')

        with pytest.raises(ConnectionResetError, match='connection reset by peer'):
            await create_circuit_from_payload(broken_stream())

    async def test_cancellation(self) -> None:
        started = asyncio.Event()

        async def stalled_stream() -> AsyncIterator[bytes]:
            yield BODY[:10]
            started.set()
            await asyncio.get_running_loop().create_future()
            yield BODY[10:]

        task = asyncio.create_task(create_circuit_from_payload(stalled_stream()))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()

    async def test_concurrent_requests(self) -> None:
        other_body = BODY.replace(b'"c1"', b'"c2"')
        first, second = await asyncio.gather(
            create_circuit_from_payload(_stream(BODY[:20], BODY[20:])),
            create_circuit_from_payload(_stream(other_body[:5], other_body[5:50], other_body[50:])),
        )
        assert first == self.expected
        assert second.circuit_id == 'c2'
