"""
Mock Collaborators for the UTXO Indexer

In-memory chain-data provider and webhook sink for offline development and
testing. Blocks and transactions use the same decoded types the RPC client
produces, so the poller and transformer run unchanged against them.

Use cases:
- Unit testing without a Bitcoin Core node
- Failure injection (provider errors, webhook rejections) at chosen heights
"""

import hashlib
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .errors import ProviderError, TransportError
from .types import Block, BlockUpdate, OutPoint, Transaction, TxInput, TxOutput


# =============================================================================
# Script Builders
# =============================================================================

def p2pkh_script(pubkey_hash: bytes) -> bytes:
    return b"\x76\xa9\x14" + pubkey_hash + b"\x88\xac"


def p2sh_script(script_hash: bytes) -> bytes:
    return b"\xa9\x14" + script_hash + b"\x87"


def p2wpkh_script(pubkey_hash: bytes) -> bytes:
    return b"\x00\x14" + pubkey_hash


def p2wsh_script(script_hash: bytes) -> bytes:
    return b"\x00\x20" + script_hash


def p2tr_script(output_key: bytes) -> bytes:
    return b"\x51\x20" + output_key


def op_return_script(data: bytes) -> bytes:
    return b"\x6a" + bytes([len(data)]) + data


def fake_hash(seed: str) -> str:
    """Deterministic 32-byte hex identifier."""
    return hashlib.sha256(seed.encode()).hexdigest()


def fake_hash160(seed: str) -> bytes:
    return hashlib.sha256(seed.encode()).digest()[:20]


# =============================================================================
# Chain Provider
# =============================================================================

@dataclass
class MockChainConfig:
    """Configuration for the mock chain."""
    genesis_time: int = 1_700_000_000
    block_interval: int = 600
    coinbase_value: int = 5_000_000_000  # 50 BTC


class MockChainProvider:
    """
    In-memory chain-data provider.

    Usage:
        chain = MockChainProvider()
        chain.add_block()  # height 0, coinbase only
        tx = chain.make_transaction("spend", [OutPoint(cb_txid, 0)], [TxOutput(...)])
        chain.add_block([tx])
    """

    def __init__(self, config: Optional[MockChainConfig] = None):
        self._config = config or MockChainConfig()

        self._blocks: List[Block] = []
        self._blocks_by_hash: Dict[str, Block] = {}
        self._transactions: Dict[str, Transaction] = {}

        # Failure injection
        self.fail_tip = False
        self.fail_heights: Set[int] = set()
        self.missing_transactions: Set[str] = set()

        # Call counters
        self.calls: Dict[str, int] = {
            "get_block_count": 0,
            "get_block_hash": 0,
            "get_block": 0,
            "get_transaction_outputs": 0,
        }

    @property
    def blocks(self) -> List[Block]:
        return list(self._blocks)

    @property
    def tip_height(self) -> int:
        return len(self._blocks) - 1

    # =========================================================================
    # Chain Building
    # =========================================================================

    def make_coinbase(
        self,
        height: int,
        outputs: Optional[List[TxOutput]] = None
    ) -> Transaction:
        """Coinbase transaction with a single null input."""
        if outputs is None:
            outputs = [TxOutput(
                value=self._config.coinbase_value,
                script_pubkey=p2wpkh_script(fake_hash160(f"miner-{height}"))
            )]
        return Transaction(
            txid=fake_hash(f"coinbase-{height}"),
            inputs=[TxInput(previous_output=None)],
            outputs=outputs,
        )

    def make_transaction(
        self,
        seed: str,
        spends: List[OutPoint],
        outputs: List[TxOutput],
        witnesses: Optional[List[List[str]]] = None
    ) -> Transaction:
        """Regular transaction spending the given outpoints."""
        witnesses = witnesses or [[] for _ in spends]
        return Transaction(
            txid=fake_hash(f"tx-{seed}"),
            inputs=[
                TxInput(previous_output=outpoint, witness=witness)
                for outpoint, witness in zip(spends, witnesses)
            ],
            outputs=outputs,
        )

    def add_block(
        self,
        transactions: Optional[List[Transaction]] = None,
        coinbase: Optional[Transaction] = None,
        time: Optional[int] = None
    ) -> Block:
        """Append a block. A coinbase is generated unless one is given."""
        height = len(self._blocks)
        txs = [coinbase or self.make_coinbase(height)] + list(transactions or [])

        block = Block(
            hash=fake_hash(f"block-{height}"),
            height=height,
            time=self._config.genesis_time + height * self._config.block_interval if time is None else time,
            transactions=txs,
        )

        self._blocks.append(block)
        self._blocks_by_hash[block.hash] = block
        for tx in txs:
            self._transactions[tx.txid] = tx

        return block

    def add_empty_blocks(self, count: int) -> List[Block]:
        return [self.add_block() for _ in range(count)]

    # =========================================================================
    # Provider Interface
    # =========================================================================

    async def get_block_count(self) -> int:
        self.calls["get_block_count"] += 1
        if self.fail_tip:
            raise ProviderError("getblockcount unavailable")
        return self.tip_height

    async def get_block_hash(self, height: int) -> str:
        self.calls["get_block_hash"] += 1
        if height in self.fail_heights:
            raise ProviderError(f"getblockhash failed at height {height}")
        if not 0 <= height < len(self._blocks):
            raise ProviderError(f"Block height out of range: {height}")
        return self._blocks[height].hash

    async def get_block(self, block_hash: str) -> Block:
        self.calls["get_block"] += 1
        block = self._blocks_by_hash.get(block_hash)
        if block is None:
            raise ProviderError(f"Block not found: {block_hash}")
        return block

    async def get_transaction_outputs(self, txid: str) -> List[TxOutput]:
        self.calls["get_transaction_outputs"] += 1
        tx = self._transactions.get(txid)
        if tx is None or txid in self.missing_transactions:
            raise ProviderError(f"No such mempool or blockchain transaction: {txid}")
        return list(tx.outputs)


# =============================================================================
# Webhook Sink
# =============================================================================

class MockWebhookSink:
    """
    Recording webhook sink.

    Deliveries for heights in fail_heights raise TransportError, as a
    rejected webhook would.
    """

    def __init__(self):
        self.delivered: List[BlockUpdate] = []
        self.attempts: List[int] = []
        self.fail_heights: Set[int] = set()

    @property
    def delivered_heights(self) -> List[int]:
        return [update.height for update in self.delivered]

    async def deliver(self, update: BlockUpdate) -> None:
        self.attempts.append(update.height)
        if update.height in self.fail_heights:
            raise TransportError(f"Webhook failed: Status code: 500 (height {update.height})")
        self.delivered.append(update)
