"""
Bitcoin Core RPC Client

Chain-data provider backed by Bitcoin Core's JSON-RPC interface.

Methods used:
- getblockcount: chain tip height
- getblockhash: block hash at height
- getblock (verbosity 2): block with fully decoded transactions
- getrawtransaction (verbose): previous output lookup, requires txindex=1

Amounts are BTC decimals on the wire; they are parsed as Decimal and
converted to integer satoshis. Every failure surfaces as ProviderError.
"""

import asyncio
import itertools
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import aiohttp

from .errors import ProviderError
from .types import Block, OutPoint, Transaction, TxInput, TxOutput


SATS_PER_BTC = Decimal(100_000_000)

# Outpoint used by coinbase inputs
NULL_TXID = "0" * 64
NULL_VOUT = 0xFFFFFFFF


# =============================================================================
# Payload Decoding
# =============================================================================

def btc_to_sats(value: Any) -> int:
    """Convert a BTC amount to satoshis without float rounding."""
    try:
        sats = Decimal(str(value)) * SATS_PER_BTC
    except InvalidOperation as e:
        raise ProviderError(f"Invalid amount: {value!r}") from e
    if sats != sats.to_integral_value():
        raise ProviderError(f"Amount has sub-satoshi precision: {value!r}")
    return int(sats)


def decode_input(data: Dict[str, Any]) -> TxInput:
    witness = [str(item) for item in data.get("txinwitness", [])]

    if "coinbase" in data:
        return TxInput(previous_output=None, witness=witness)

    txid = data["txid"]
    vout = int(data["vout"])
    if txid == NULL_TXID and vout == NULL_VOUT:
        return TxInput(previous_output=None, witness=witness)

    return TxInput(previous_output=OutPoint(txid=txid, vout=vout), witness=witness)


def decode_output(data: Dict[str, Any]) -> TxOutput:
    return TxOutput(
        value=btc_to_sats(data["value"]),
        script_pubkey=bytes.fromhex(data["scriptPubKey"]["hex"]),
    )


def decode_transaction(data: Dict[str, Any]) -> Transaction:
    """Decode a verbose transaction object."""
    try:
        return Transaction(
            txid=data["txid"],
            inputs=[decode_input(vin) for vin in data["vin"]],
            outputs=[decode_output(vout) for vout in data["vout"]],
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ProviderError(f"Malformed transaction payload: {e!r}") from e


def decode_block(data: Dict[str, Any]) -> Block:
    """Decode a getblock verbosity-2 object."""
    try:
        return Block(
            hash=data["hash"],
            height=int(data["height"]),
            time=int(data["time"]),
            transactions=[decode_transaction(tx) for tx in data["tx"]],
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ProviderError(f"Malformed block payload: {e!r}") from e


# =============================================================================
# Client
# =============================================================================

class BitcoinRpcClient:
    """
    Async Bitcoin Core JSON-RPC client.

    Usage:
        client = BitcoinRpcClient("http://localhost:18443", "user", "password")
        await client.start()

        tip = await client.get_block_count()
        block = await client.get_block(await client.get_block_hash(tip))

        await client.stop()
    """

    def __init__(
        self,
        url: str,
        user: str,
        password: str,
        request_timeout: float = 30.0
    ):
        self._url = url
        self._auth = aiohttp.BasicAuth(user, password)
        self._request_timeout = request_timeout
        self._logger = logging.getLogger("BitcoinRpcClient")

        self._session: Optional[aiohttp.ClientSession] = None
        self._request_ids = itertools.count(1)

        # Stats
        self._total_calls = 0
        self._failed_calls = 0

    async def start(self):
        """Open the HTTP session."""
        self._session = aiohttp.ClientSession(
            headers={"Authorization": self._auth.encode()},
            timeout=aiohttp.ClientTimeout(total=self._request_timeout)
        )
        self._logger.info(f"RPC client ready for {self._url}")

    async def stop(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    # =========================================================================
    # JSON-RPC Transport
    # =========================================================================

    async def call(self, method: str, *params: Any) -> Any:
        """
        Execute a JSON-RPC call and return its result.

        Raises:
            ProviderError: transport failure, timeout, RPC error, or bad payload
        """
        if self._session is None:
            raise ProviderError("RPC client not started")

        payload = {
            "jsonrpc": "1.0",
            "id": next(self._request_ids),
            "method": method,
            "params": list(params),
        }
        self._total_calls += 1

        try:
            async with self._session.post(self._url, json=payload) as response:
                status = response.status
                body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._failed_calls += 1
            raise ProviderError(f"{method} request failed: {e!r}") from e

        # Non-UTF-8 bodies (proxy error pages) raise UnicodeDecodeError, a ValueError
        try:
            data = json.loads(body, parse_float=Decimal)
        except ValueError:
            data = None

        # bitcoind reports RPC errors with a JSON body and a non-200 status
        if isinstance(data, dict) and data.get("error"):
            self._failed_calls += 1
            error = data["error"]
            if not isinstance(error, dict):
                raise ProviderError(f"{method} RPC error: {error!r}")
            raise ProviderError(
                f"{method} RPC error {error.get('code')}: {error.get('message')}"
            )

        if status != 200 or not isinstance(data, dict):
            self._failed_calls += 1
            raise ProviderError(f"{method} failed with HTTP status {status}")

        return data.get("result")

    # =========================================================================
    # Chain Queries
    # =========================================================================

    async def get_block_count(self) -> int:
        """Current chain tip height."""
        result = await self.call("getblockcount")
        try:
            return int(result)
        except (TypeError, ValueError) as e:
            raise ProviderError(f"Unexpected getblockcount result: {result!r}") from e

    async def get_block_hash(self, height: int) -> str:
        result = await self.call("getblockhash", height)
        if not isinstance(result, str):
            raise ProviderError(f"Unexpected getblockhash result: {result!r}")
        return result

    async def get_block(self, block_hash: str) -> Block:
        """Fetch a block with decoded transactions."""
        result = await self.call("getblock", block_hash, 2)
        if not isinstance(result, dict):
            raise ProviderError(f"Unexpected getblock result for {block_hash}")
        return decode_block(result)

    async def get_transaction(self, txid: str) -> Transaction:
        result = await self.call("getrawtransaction", txid, True)
        if not isinstance(result, dict):
            raise ProviderError(f"Unexpected getrawtransaction result for {txid}")
        return decode_transaction(result)

    async def get_transaction_outputs(self, txid: str) -> List[TxOutput]:
        """Outputs of a transaction, for previous-output lookup."""
        return (await self.get_transaction(txid)).outputs

    def get_stats(self) -> Dict:
        """Get client statistics."""
        return {
            "url": self._url,
            "total_calls": self._total_calls,
            "failed_calls": self._failed_calls,
        }
