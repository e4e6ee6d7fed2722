"""Gateway error taxonomy."""

from __future__ import annotations


class GatewayError(RuntimeError):
    """Base class for time-series gateway failures."""


class WriteError(GatewayError):
    """The store rejected or failed to acknowledge a point write."""


class WriteBufferFullError(WriteError):
    """Enqueueing would exceed the configured buffer capacity."""


class QueryError(GatewayError):
    """The store rejected a query or failed while collecting rows."""


class EmptyResultError(QueryError):
    """A lookup that needs at least one row got an empty result set."""


class ConnectionClosedError(GatewayError):
    """The shared connection was already released."""
