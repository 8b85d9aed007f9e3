"""
Block Poller

Height-cursor state machine that mirrors new blocks to the webhook sink.

Each tick:
1. Read the chain tip
2. Process up to max_blocks_per_tick heights after the cursor, in order
3. For each height: block hash -> block -> BlockUpdate -> deliver
4. Advance the cursor only once the whole batch was delivered

A failure anywhere in the batch aborts the rest of it and leaves the cursor
where it was, so the next tick retries from the same height. Delivery is
at-least-once: a block may be sent again after a partial batch.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from .address import NetworkParams
from .errors import ConfigurationError, IndexerError, ProviderError
from .transformer import BlockTransformer
from .types import Block, BlockUpdate, TxOutput


class ChainDataProvider(Protocol):
    """Chain-data query capability."""

    async def get_block_count(self) -> int:
        ...

    async def get_block_hash(self, height: int) -> str:
        ...

    async def get_block(self, block_hash: str) -> Block:
        ...

    async def get_transaction_outputs(self, txid: str) -> List[TxOutput]:
        ...


class NotificationSink(Protocol):
    """Block update delivery capability. Raises TransportError on failure."""

    async def deliver(self, update: BlockUpdate) -> None:
        ...


@dataclass
class PollerConfig:
    """Configuration for the block poller."""
    # Upper bound on heights processed per tick (bounds catch-up latency)
    max_blocks_per_tick: int = 200

    # Fixed sleep between ticks (seconds)
    poll_interval: float = 10.0


class BlockPoller:
    """
    Polls the chain tip and delivers one BlockUpdate per new height.

    Build with create(), which validates the start height against the
    current tip before any polling happens.

    Usage:
        poller = await BlockPoller.create(provider, sink, REGTEST, start_height=0)
        await poller.run()
    """

    def __init__(
        self,
        provider: ChainDataProvider,
        sink: NotificationSink,
        network: NetworkParams,
        start_height: int,
        tip_height: int,
        config: Optional[PollerConfig] = None
    ):
        if start_height < 0 or start_height > tip_height:
            raise ConfigurationError(
                f"Start block {start_height} is invalid. Chain height is {tip_height}"
            )

        self.config = config or PollerConfig()
        self._provider = provider
        self._sink = sink
        self._transformer = BlockTransformer(provider, network)
        self._logger = logging.getLogger("BlockPoller")

        # Height cursor: last height transformed and delivered
        self._start_height = start_height
        self._last_processed_height = start_height - 1

        # Stats
        self._ticks = 0
        self._failed_ticks = 0
        self._blocks_processed = 0
        self._updates_delivered = 0
        self._last_error: Optional[str] = None
        self._start_time = 0.0

    @classmethod
    async def create(
        cls,
        provider: ChainDataProvider,
        sink: NotificationSink,
        network: NetworkParams,
        start_height: int,
        config: Optional[PollerConfig] = None
    ) -> "BlockPoller":
        """
        Validate the start height against the chain tip and build a poller.

        Raises:
            ConfigurationError: start_height outside [0, tip]
            ProviderError: tip query failed
        """
        tip_height = await provider.get_block_count()
        return cls(provider, sink, network, start_height, tip_height, config)

    @property
    def start_height(self) -> int:
        return self._start_height

    @property
    def last_processed_height(self) -> int:
        return self._last_processed_height

    @property
    def transformer(self) -> BlockTransformer:
        return self._transformer

    # =========================================================================
    # Tick
    # =========================================================================

    async def process_new_blocks(self, max_blocks: Optional[int] = None) -> int:
        """
        Run one tick.

        Returns:
            Number of heights processed (0 if already at the tip)

        Raises:
            IndexerError: the batch failed; the cursor is unchanged
        """
        if max_blocks is None:
            max_blocks = self.config.max_blocks_per_tick

        current_height = await self._provider.get_block_count()
        if current_height <= self._last_processed_height:
            return 0

        blocks_to_process = min(current_height - self._last_processed_height, max_blocks)
        if blocks_to_process <= 0:
            return 0

        first_height = self._last_processed_height + 1
        self._logger.info(
            f"Processing {blocks_to_process} new blocks from height {first_height}"
        )

        delivered_updates = 0
        for height in range(first_height, first_height + blocks_to_process):
            update = await self.build_block_update(height)
            await self._sink.deliver(update)
            delivered_updates += len(update.utxo_updates)

        # Batch complete
        self._last_processed_height += blocks_to_process
        self._blocks_processed += blocks_to_process
        self._updates_delivered += delivered_updates

        self._logger.info(
            f"Successfully processed blocks up to height {self._last_processed_height}"
        )

        return blocks_to_process

    async def build_block_update(self, height: int) -> BlockUpdate:
        """Fetch and transform the block at a height."""
        block_hash = await self._provider.get_block_hash(height)
        block = await self._provider.get_block(block_hash)
        if block.height != height:
            raise ProviderError(
                f"Provider returned block {block.hash} at height {block.height}, expected {height}"
            )
        return await self._transformer.transform_block(block)

    # =========================================================================
    # Loop
    # =========================================================================

    async def run(self, poll_interval: Optional[float] = None):
        """
        Poll forever.

        Batch failures are logged and retried on the next tick; the fixed
        interval doubles as the retry backoff. Stops only when cancelled.
        """
        interval = self.config.poll_interval if poll_interval is None else poll_interval
        self._start_time = time.time()

        self._logger.info(f"Starting Bitcoin UTXO indexer from block {self._start_height}")

        while True:
            await self.tick()
            await asyncio.sleep(interval)

    async def tick(self) -> int:
        """Run one tick, logging instead of raising on batch failure."""
        self._ticks += 1
        try:
            return await self.process_new_blocks()
        except IndexerError as e:
            self._failed_ticks += 1
            self._last_error = str(e)
            self._logger.error(
                f"Error in indexer loop at height {self._last_processed_height + 1}: {e}"
            )
            return 0

    # =========================================================================
    # Stats
    # =========================================================================

    def get_stats(self) -> Dict:
        """Get poller statistics."""
        runtime = time.time() - self._start_time if self._start_time > 0 else 0

        return {
            "start_height": self._start_height,
            "last_processed_height": self._last_processed_height,
            "ticks": self._ticks,
            "failed_ticks": self._failed_ticks,
            "blocks_processed": self._blocks_processed,
            "updates_delivered": self._updates_delivered,
            "last_error": self._last_error,
            "runtime_seconds": runtime,
            "transformer": self._transformer.get_stats(),
        }
