"""
Block Transformer

Turns a decoded block into the ordered UTXO transitions it causes:
- Inputs -> spend events for the outputs they consume (resolved by lookup)
- Outputs -> creation events

Ordering:
- Transactions in block order
- Within a transaction, all spend events before its creation events
- Transaction 0 is always the issuance (coinbase) transaction

Given identical lookup responses the transformation is deterministic, so
re-processing a height reproduces the same event sequence.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from .address import NetworkParams, address_from_script, extract_public_key
from .errors import ProviderError, TimestampError
from .script import classify_script
from .types import (
    COINBASE_ADDRESS,
    Block,
    BlockUpdate,
    OutPoint,
    ScriptType,
    Transaction,
    TxInput,
    TxOutput,
    UtxoUpdate,
)


class OutputLookup(Protocol):
    """Previous-output lookup capability."""

    async def get_transaction_outputs(self, txid: str) -> List[TxOutput]:
        ...


def block_timestamp(header_time: int) -> datetime:
    """
    Convert a block header time to a UTC instant.

    Raises:
        TimestampError: time is negative or outside the datetime range
    """
    if header_time < 0:
        raise TimestampError(f"Invalid timestamp: {header_time}")
    try:
        return datetime.fromtimestamp(header_time, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise TimestampError(f"Invalid timestamp: {header_time}") from e


class BlockTransformer:
    """
    Block -> BlockUpdate transformation.

    Usage:
        transformer = BlockTransformer(provider, REGTEST)
        update = await transformer.transform_block(block)
    """

    def __init__(self, lookup: OutputLookup, network: NetworkParams):
        self._lookup = lookup
        self._network = network
        self._logger = logging.getLogger("BlockTransformer")

        # Stats
        self._blocks_transformed = 0
        self._spends_emitted = 0
        self._creations_emitted = 0
        self._null_input_anomalies = 0

    @property
    def network(self) -> NetworkParams:
        return self._network

    async def transform_block(self, block: Block) -> BlockUpdate:
        """
        Build the BlockUpdate for a block.

        Raises:
            TimestampError: header time not representable
            AddressResolutionError: an output script has no address
            ProviderError: a referenced previous output cannot be resolved
        """
        timestamp = block_timestamp(block.time)
        updates = await self.process_transactions(block, timestamp)

        # Counted only once the whole block succeeded
        spends = sum(1 for u in updates if u.is_spend)
        self._blocks_transformed += 1
        self._spends_emitted += spends
        self._creations_emitted += len(updates) - spends

        return BlockUpdate(
            height=block.height,
            hash=block.hash,
            timestamp=timestamp,
            utxo_updates=updates,
        )

    async def process_transactions(
        self,
        block: Block,
        block_time: datetime
    ) -> List[UtxoUpdate]:
        """Produce the ordered event sequence for all transactions in a block."""
        updates: List[UtxoUpdate] = []

        for tx_index, tx in enumerate(block.transactions):
            is_coinbase = tx_index == 0

            for tx_input in tx.inputs:
                spent = await self._process_input(tx, tx_input, is_coinbase, block.height, block_time)
                if spent is not None:
                    updates.append(spent)

            updates.extend(self._process_outputs(tx, is_coinbase, block.height, block_time))

        return updates

    # =========================================================================
    # Inputs
    # =========================================================================

    async def _process_input(
        self,
        tx: Transaction,
        tx_input: TxInput,
        is_coinbase: bool,
        height: int,
        block_time: datetime
    ) -> Optional[UtxoUpdate]:
        if tx_input.is_null:
            if is_coinbase:
                self._logger.info(f"Skipping coinbase transaction input in {tx.txid}")
            else:
                self._null_input_anomalies += 1
                self._logger.error(
                    f"Found null previous output in non-coinbase transaction {tx.txid} "
                    f"at height {height}"
                )
            return None

        outpoint = tx_input.previous_output
        prev_output = await self._resolve_output(outpoint)

        spent = UtxoUpdate(
            txid=outpoint.txid,
            vout=outpoint.vout,
            address=address_from_script(prev_output.script_pubkey, self._network),
            public_key=extract_public_key(tx_input.witness),
            amount=prev_output.value,
            script_pub_key=prev_output.script_pubkey.hex(),
            script_type=classify_script(prev_output.script_pubkey),
            created_at=block_time,
            block_height=height,
            spent_txid=tx.txid,
            spent_at=block_time,
            spent_block=height,
        )

        return spent

    async def _resolve_output(self, outpoint: OutPoint) -> TxOutput:
        """Look up the output an input consumes."""
        outputs = await self._lookup.get_transaction_outputs(outpoint.txid)

        if not 0 <= outpoint.vout < len(outputs):
            raise ProviderError(
                f"Previous output {outpoint} not found "
                f"(transaction has {len(outputs)} outputs)"
            )

        return outputs[outpoint.vout]

    # =========================================================================
    # Outputs
    # =========================================================================

    def _process_outputs(
        self,
        tx: Transaction,
        is_coinbase: bool,
        height: int,
        block_time: datetime
    ) -> List[UtxoUpdate]:
        created = []

        for vout, output in enumerate(tx.outputs):
            if is_coinbase:
                address = COINBASE_ADDRESS
                script_type = ScriptType.COINBASE
            else:
                address = address_from_script(output.script_pubkey, self._network)
                script_type = classify_script(output.script_pubkey)

            created.append(UtxoUpdate(
                txid=tx.txid,
                vout=vout,
                address=address,
                public_key=None,  # Revealed only when spent
                amount=output.value,
                script_pub_key=output.script_pubkey.hex(),
                script_type=script_type,
                created_at=block_time,
                block_height=height,
            ))

        return created

    # =========================================================================
    # Stats
    # =========================================================================

    def get_stats(self) -> Dict:
        """Get transformer statistics."""
        return {
            "network": self._network.name,
            "blocks_transformed": self._blocks_transformed,
            "spends_emitted": self._spends_emitted,
            "creations_emitted": self._creations_emitted,
            "null_input_anomalies": self._null_input_anomalies,
        }
