"""
UTXO Indexer Data Types

Chain input structures (decoded from the chain-data provider) and the
per-block change records delivered to the webhook consumer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ScriptType(Enum):
    """Locking script classification tags (wire values)."""
    P2PKH = "P2PKH"
    P2SH = "P2SH"
    P2WPKH = "P2WPKH"
    P2WSH = "P2WSH"
    OP_RETURN = "OP_RETURN"
    WITNESS = "WITNESS"
    UNKNOWN = "UNKNOWN"
    COINBASE = "COINBASE"  # Sentinel for issuance transaction outputs


# Address sentinel for issuance transaction outputs
COINBASE_ADDRESS = "coinbase"


# =============================================================================
# Chain Input Types
# =============================================================================

@dataclass(frozen=True)
class OutPoint:
    """Reference to a previous transaction output."""
    txid: str
    vout: int

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass(frozen=True)
class TxInput:
    """
    Transaction input.

    previous_output is None for a null reference (coinbase input).
    witness holds the auxiliary signature stack as hex strings.
    """
    previous_output: Optional[OutPoint]
    witness: List[str] = field(default_factory=list)

    @property
    def is_null(self) -> bool:
        return self.previous_output is None


@dataclass(frozen=True)
class TxOutput:
    """Transaction output. Value in satoshis."""
    value: int
    script_pubkey: bytes


@dataclass(frozen=True)
class Transaction:
    """Decoded transaction."""
    txid: str
    inputs: List[TxInput]
    outputs: List[TxOutput]


@dataclass(frozen=True)
class Block:
    """Decoded block. time is the raw header timestamp (unix seconds)."""
    hash: str
    height: int
    time: int
    transactions: List[Transaction]

    @property
    def tx_count(self) -> int:
        return len(self.transactions)


# =============================================================================
# Change Records
# =============================================================================

def format_timestamp(value: datetime) -> str:
    """Render a UTC instant as ISO-8601 with a Z suffix."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class UtxoUpdate:
    """
    A single unspent-output transition.

    Creation events leave the spent_* fields as None. Spend events carry the
    original output's address/amount/script plus the spending transaction
    and block.
    """
    txid: str
    vout: int
    address: str
    amount: int  # Satoshis
    script_pub_key: str  # Hex
    script_type: ScriptType
    created_at: datetime
    block_height: int
    public_key: Optional[str] = None  # Hex, best-effort
    spent_txid: Optional[str] = None
    spent_at: Optional[datetime] = None
    spent_block: Optional[int] = None

    @property
    def id(self) -> str:
        """Composite key txid:vout."""
        return f"{self.txid}:{self.vout}"

    @property
    def is_spend(self) -> bool:
        return self.spent_txid is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "address": self.address,
            "public_key": self.public_key,
            "txid": self.txid,
            "vout": self.vout,
            "amount": self.amount,
            "script_pub_key": self.script_pub_key,
            "script_type": self.script_type.value,
            "created_at": format_timestamp(self.created_at),
            "block_height": self.block_height,
            "spent_txid": self.spent_txid,
            "spent_at": format_timestamp(self.spent_at) if self.spent_at else None,
            "spent_block": self.spent_block,
        }


@dataclass(frozen=True)
class BlockUpdate:
    """All UTXO transitions of one block, in processing order."""
    height: int
    hash: str
    timestamp: datetime
    utxo_updates: List[UtxoUpdate]

    @property
    def spend_count(self) -> int:
        return sum(1 for u in self.utxo_updates if u.is_spend)

    @property
    def create_count(self) -> int:
        return len(self.utxo_updates) - self.spend_count

    def to_dict(self) -> Dict[str, Any]:
        """Webhook payload."""
        return {
            "height": self.height,
            "hash": self.hash,
            "timestamp": format_timestamp(self.timestamp),
            "utxo_updates": [u.to_dict() for u in self.utxo_updates],
        }
