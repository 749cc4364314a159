"""Error taxonomy shared by the indexer loops and chain/store adapters."""

from __future__ import annotations


class PredIndexError(Exception):
    """Base class for all predindex errors."""


class TransientChainError(PredIndexError):
    """Network or RPC failure talking to the chain node. Retried on the next tick."""


class MalformedSnapshot(PredIndexError):
    """Chain object or event is missing an expected field or has the wrong shape."""


class StoreError(PredIndexError):
    """Read or write failure against the local store."""


class ConfigurationError(PredIndexError):
    """Required setting missing at startup. Fatal: the loop does not start."""


class CancellationError(PredIndexError):
    """The external cancellation action failed for a market."""
