# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Logging setup for the splinter daemon.

The admin modules log proposal rejections (unset enumerated fields, invalid
request bodies) at warning level and payload reception at debug level,
through loggers named after their modules (splinter.admin.messages,
splinter.admin.payload). Events from both structlog and the standard
logging module end up on a single stderr handler.
"""

import logging
import sys

import structlog

__all__ = 'configure_logging',  # noqa: COM818


SPLINTER_LOGGER = 'splinter'


def _renderer(log_json: bool) -> structlog.types.Processor:  # noqa: FBT001
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """
    Route the splinter log events to stderr.

    With verbose the splinter loggers also emit the debug events that trace
    payload reception. With log_json every event is written as one JSON
    object per line, which is what log collectors expect; otherwise the
    events are rendered for a terminal. Other libraries only get their
    warnings through. Calling this again replaces the previous setup.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(log_json)],
    ))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger(SPLINTER_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)
