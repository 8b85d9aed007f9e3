"""
Bitcoin UTXO Indexer

Polls Bitcoin Core for new blocks and mirrors the unspent-output-set
transitions of each block to a webhook consumer.

Components:
- classify_script: Locking script -> ScriptType tag
- address_from_script: Locking script -> network address
- BlockTransformer: Block -> ordered spend/create UtxoUpdates
- BlockPoller: Height cursor, batch processing, delivery
- BitcoinRpcClient: Chain data via JSON-RPC (aiohttp)
- WebhookSink: Block update delivery via HTTP POST (aiohttp)
"""

__version__ = "0.1.0"

from .address import NETWORKS, NetworkParams, address_from_script, extract_public_key, get_network
from .config import IndexerConfig
from .errors import (
    AddressResolutionError,
    ConfigurationError,
    IndexerError,
    ProviderError,
    TimestampError,
    TransportError,
)
from .poller import BlockPoller, PollerConfig
from .rpc_client import BitcoinRpcClient
from .script import classify_script
from .transformer import BlockTransformer
from .types import Block, BlockUpdate, OutPoint, ScriptType, Transaction, TxInput, TxOutput, UtxoUpdate
from .webhook import WebhookSink

__all__ = [
    "NETWORKS",
    "NetworkParams",
    "address_from_script",
    "extract_public_key",
    "get_network",
    "IndexerConfig",
    "IndexerError",
    "ProviderError",
    "TransportError",
    "TimestampError",
    "AddressResolutionError",
    "ConfigurationError",
    "BlockPoller",
    "PollerConfig",
    "BitcoinRpcClient",
    "classify_script",
    "BlockTransformer",
    "Block",
    "BlockUpdate",
    "OutPoint",
    "ScriptType",
    "Transaction",
    "TxInput",
    "TxOutput",
    "UtxoUpdate",
    "WebhookSink",
]
