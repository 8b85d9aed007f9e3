"""
UTXO Indexer entry point.

Usage:
    python -m utxo_indexer --webhook-url http://network-utxos:5557/hook \\
        --rpc-host bitcoin --rpc-port 18443 --start-height 0
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import IndexerConfig
from .errors import ConfigurationError, IndexerError
from .poller import BlockPoller
from .rpc_client import BitcoinRpcClient
from .webhook import WebhookSink

logger = logging.getLogger("utxo_indexer")


def parse_args(argv: Optional[List[str]] = None) -> IndexerConfig:
    """Parse flags on top of the environment-derived config."""
    base = IndexerConfig.from_env()

    parser = argparse.ArgumentParser(description='Bitcoin UTXO indexer')
    parser.add_argument('--webhook-url', default=base.webhook_url, help='Webhook endpoint for block updates')
    parser.add_argument('--rpc-user', default=base.rpc_user, help='Bitcoin Core RPC user')
    parser.add_argument('--rpc-password', default=base.rpc_password, help='Bitcoin Core RPC password')
    parser.add_argument('--rpc-host', default=base.rpc_host, help='Bitcoin Core RPC host')
    parser.add_argument('--rpc-port', type=int, default=base.rpc_port, help='Bitcoin Core RPC port')
    parser.add_argument('--start-height', type=int, default=base.start_height, help='First block height to index')
    parser.add_argument(
        '--network',
        default=base.network,
        choices=['mainnet', 'testnet', 'signet', 'regtest'],
        help='Network for address encoding'
    )
    parser.add_argument('--poll-interval', type=float, default=base.poll_interval, help='Seconds between polls')
    parser.add_argument('--max-blocks', type=int, default=base.max_blocks_per_tick, help='Max blocks per poll')
    parser.add_argument('--request-timeout', type=float, default=base.request_timeout, help='HTTP timeout (seconds)')
    parser.add_argument('--log-level', default=base.log_level, help='Logging level')

    args = parser.parse_args(argv)

    return IndexerConfig(
        webhook_url=args.webhook_url,
        rpc_user=args.rpc_user,
        rpc_password=args.rpc_password,
        rpc_host=args.rpc_host,
        rpc_port=args.rpc_port,
        network=args.network,
        start_height=args.start_height,
        poll_interval=args.poll_interval,
        max_blocks_per_tick=args.max_blocks,
        request_timeout=args.request_timeout,
        log_level=args.log_level,
    )


async def serve(config: IndexerConfig):
    """Open collaborators, validate the start height, and poll forever."""
    config.validate()

    client = BitcoinRpcClient(
        config.rpc_url,
        config.rpc_user,
        config.rpc_password,
        request_timeout=config.request_timeout
    )
    sink = WebhookSink(config.webhook_url, request_timeout=config.request_timeout)

    await client.start()
    await sink.start()

    try:
        poller = await BlockPoller.create(
            client,
            sink,
            config.network_params,
            config.start_height,
            config.poller_config()
        )
        await poller.run()
    finally:
        await sink.stop()
        await client.stop()


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point."""
    try:
        config = parse_args(argv)
        config.validate()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=config.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        asyncio.run(serve(config))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except IndexerError as e:
        logger.error(f"Startup failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Shutdown requested")

    return 0


if __name__ == "__main__":
    sys.exit(main())
