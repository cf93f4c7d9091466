# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

__all__ = 'CircuitStoreError',  # noqa: COM818


class CircuitStoreError(Exception):
    """
    Raised by a circuit store when it cannot complete a query.

    The optional source is the lower level error that made the store fail
    and is chained as the exception ``__cause__``.
    """

    def __init__(self, context: str, source: BaseException | None = None) -> None:
        super().__init__(context)
        self.context = context
        self.__cause__ = source

    def __str__(self) -> str:
        if self.__cause__ is not None:
            return f'{self.context}: {self.__cause__}'
        return self.context

    @property
    def source(self) -> BaseException | None:
        return self.__cause__
