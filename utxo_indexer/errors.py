"""
Indexer Error Types

One exception class per failure domain. Library exceptions are mapped to
these at each external-call boundary so the poller only ever has to handle
IndexerError.
"""


class IndexerError(Exception):
    """Base class for all indexer failures."""


class ProviderError(IndexerError):
    """Chain-data query failed (transport, RPC error, or malformed payload)."""


class TransportError(IndexerError):
    """Webhook delivery failed (non-success status or transport error)."""


class TimestampError(IndexerError):
    """Block header time is outside the representable range."""


class AddressResolutionError(IndexerError):
    """Locking script does not encode a standard address."""


class ConfigurationError(IndexerError):
    """Invalid configuration detected at startup. Fatal."""
