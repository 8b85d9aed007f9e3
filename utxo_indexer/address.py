"""
Address Resolver

Derives network-encoded addresses from locking scripts:
- P2PKH / P2SH -> Base58Check with the network's version bytes
- Witness programs -> bech32 (v0) or bech32m (v1-16) with the network's HRP

Also hosts the best-effort public key recovery used for spend events.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import base58
from embit import bech32

from .errors import AddressResolutionError, ConfigurationError
from .script import is_p2pkh, is_p2sh, witness_program


@dataclass(frozen=True)
class NetworkParams:
    """Address encoding rules for one network."""
    name: str
    p2pkh_prefix: int
    p2sh_prefix: int
    bech32_hrp: str


MAINNET = NetworkParams(name="mainnet", p2pkh_prefix=0x00, p2sh_prefix=0x05, bech32_hrp="bc")
TESTNET = NetworkParams(name="testnet", p2pkh_prefix=0x6f, p2sh_prefix=0xc4, bech32_hrp="tb")
SIGNET = NetworkParams(name="signet", p2pkh_prefix=0x6f, p2sh_prefix=0xc4, bech32_hrp="tb")
REGTEST = NetworkParams(name="regtest", p2pkh_prefix=0x6f, p2sh_prefix=0xc4, bech32_hrp="bcrt")

NETWORKS: Dict[str, NetworkParams] = {
    params.name: params for params in (MAINNET, TESTNET, SIGNET, REGTEST)
}


def get_network(name: str) -> NetworkParams:
    """Look up network parameters by name (case-insensitive)."""
    params = NETWORKS.get(name.strip().lower())
    if params is None:
        raise ConfigurationError(
            f"Unknown network '{name}'. Expected one of: {', '.join(NETWORKS)}"
        )
    return params


def _base58check(prefix: int, payload: bytes) -> str:
    return base58.b58encode_check(bytes([prefix]) + payload).decode("ascii")


def address_from_script(script: bytes, network: NetworkParams) -> str:
    """
    Derive the address a locking script pays to.

    Raises:
        AddressResolutionError: script encodes no standard address
            (OP_RETURN data, bare multisig, bare pubkey, unknown forms)
    """
    if is_p2pkh(script):
        return _base58check(network.p2pkh_prefix, bytes(script[3:23]))

    if is_p2sh(script):
        return _base58check(network.p2sh_prefix, bytes(script[2:22]))

    program = witness_program(script)
    if program is not None:
        version, data = program
        # v0 only defines 20-byte (P2WPKH) and 32-byte (P2WSH) programs
        if version == 0 and len(data) not in (20, 32):
            raise AddressResolutionError(
                f"Invalid v0 witness program length {len(data)}: {bytes(script).hex()}"
            )

        address = bech32.encode(network.bech32_hrp, version, data)
        if address is None:
            raise AddressResolutionError(
                f"Failed to encode witness program: {bytes(script).hex()}"
            )
        return address

    raise AddressResolutionError(
        f"Failed to parse address from script: {bytes(script).hex()}"
    )


def extract_public_key(witness: List[str]) -> Optional[str]:
    """
    Best-effort public key recovery from a spending input's witness.

    Lossy and specific to P2WPKH-style spends, where the witness stack is
    [signature, pubkey]. Legacy scriptSig spends have an empty witness and
    never yield a key. Other witness layouts may return a non-key item.

    Returns:
        The second witness item as lowercase hex, or None
    """
    if len(witness) < 2:
        return None
    return witness[1].lower()
