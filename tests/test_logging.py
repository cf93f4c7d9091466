# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import json
import logging
from collections.abc import Generator

import pytest
import structlog
from splinter import protocol
from splinter.admin import CreateCircuit, UnsetFieldError
from splinter.configuration.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    splinter_logger = logging.getLogger('splinter')
    splinter_level = splinter_logger.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    splinter_logger.setLevel(splinter_level)
    structlog.reset_defaults()


class TestConfigureLogging:

    def test_levels(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger('splinter').level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING
        configure_logging(verbose=False)
        assert logging.getLogger('splinter').level == logging.WARNING

    def test_single_handler(self) -> None:
        configure_logging(log_json=False)
        configure_logging(log_json=True)
        assert len(logging.getLogger().handlers) == 1

    def test_json_output(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger('splinter.test').info('circuit proposed', circuit_id='c1')
        record = json.loads(capfd.readouterr().err.strip())
        assert record['event'] == 'circuit proposed'
        assert record['circuit_id'] == 'c1'
        assert record['level'] == 'info'
        assert record['logger'] == 'splinter.test'
        assert 'timestamp' in record

    def test_debug_is_filtered(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=False, log_json=True)
        structlog.get_logger('splinter.test').debug('hidden')
        logging.getLogger('other').info('hidden as well')
        assert capfd.readouterr().err == ''

    def test_rejection_is_logged(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        with pytest.raises(UnsetFieldError):
            CreateCircuit.from_proto(protocol.Circuit(circuit_id='c1'))
        record = json.loads(capfd.readouterr().err.strip())
        assert record['event'] == 'Rejected circuit proposal'
        assert record['circuit_id'] == 'c1'
        assert record['reason'] == 'authorization_type unset'
        assert record['logger'] == 'splinter.admin.messages'
        assert record['level'] == 'warning'
