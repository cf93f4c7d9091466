# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .errors import CircuitNotFoundError, CircuitRouteError, CircuitStoreFailure, ProposalInternalError, ProposalNotFoundError, ProposalRouteError

__all__ = 'ProposalRouteError', 'ProposalNotFoundError', 'ProposalInternalError', 'CircuitRouteError', 'CircuitNotFoundError', 'CircuitStoreFailure'  # noqa: RUF022
