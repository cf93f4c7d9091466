# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .store import CircuitStoreError

__all__ = 'CircuitStoreError',  # noqa: COM818
