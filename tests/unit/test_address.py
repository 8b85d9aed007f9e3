"""
Unit tests for address resolution and public key recovery.

Tests:
- Base58Check encoding for P2PKH/P2SH per network
- bech32 (v0) and bech32m (v1+) encoding against published vectors
- Scripts without an address raise AddressResolutionError
- Witness-based public key recovery heuristic
"""

import base58
import pytest

from utxo_indexer.address import (
    MAINNET,
    REGTEST,
    SIGNET,
    TESTNET,
    address_from_script,
    extract_public_key,
    get_network,
)
from utxo_indexer.errors import AddressResolutionError, ConfigurationError
from utxo_indexer.mock_data import (
    fake_hash160,
    op_return_script,
    p2pkh_script,
    p2sh_script,
    p2tr_script,
    p2wpkh_script,
    p2wsh_script,
)


HASH20 = fake_hash160("address")

# Published reference vectors (BIP-173, BIP-350, genesis coinbase payee)
GENESIS_HASH160 = bytes.fromhex("62e907b15cbf27d5425399ebf6f0fb50ebb88f18")
G_HASH160 = bytes.fromhex("751e76e8199196d454941c45d1b3a323f1433bd6")
P2SH_HASH160 = bytes.fromhex("cd7b44d0b03f2d026d1e586d7ae18903b0d385f6")
P2WSH_PROGRAM = bytes.fromhex("1863143c14c5166804bd19203356da136c985678cd4d27a1b8c6329604903262")
TAPROOT_KEY = bytes.fromhex("79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798")


class TestBase58Addresses:
    """Legacy address encoding."""

    def test_zero_hash_mainnet_p2pkh(self):
        """Well-known all-zero hash160 address."""
        address = address_from_script(p2pkh_script(bytes(20)), MAINNET)
        assert address == "1111111111111111111114oLvT2"

    def test_genesis_payee_p2pkh(self):
        address = address_from_script(p2pkh_script(GENESIS_HASH160), MAINNET)
        assert address == "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"

    def test_mainnet_p2pkh_vector(self):
        address = address_from_script(p2pkh_script(G_HASH160), MAINNET)
        assert address == "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"

    def test_mainnet_p2sh_vector(self):
        address = address_from_script(p2sh_script(P2SH_HASH160), MAINNET)
        assert address == "3LRW7jeCvQCRdPF8S3yUCfRAx4eqXFmdcr"

    def test_regtest_p2pkh_prefix(self):
        address = address_from_script(p2pkh_script(HASH20), REGTEST)
        assert address[0] in ("m", "n")
        assert base58.b58decode_check(address) == b"\x6f" + HASH20

    def test_testnet_p2sh_prefix(self):
        address = address_from_script(p2sh_script(HASH20), TESTNET)
        assert address.startswith("2")
        assert base58.b58decode_check(address) == b"\xc4" + HASH20


class TestSegwitAddresses:
    """bech32 / bech32m encoding."""

    def test_mainnet_p2wpkh_vector(self):
        address = address_from_script(p2wpkh_script(G_HASH160), MAINNET)
        assert address == "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"

    def test_testnet_p2wsh_vector(self):
        address = address_from_script(p2wsh_script(P2WSH_PROGRAM), TESTNET)
        assert address == "tb1qrp33g0q5c5txsp9arysrx4k6zdkfs4nce4xj0gdcccefvpysxf3q0sl5k7"

    def test_mainnet_taproot_vector(self):
        """Version 1 programs use the bech32m checksum."""
        address = address_from_script(p2tr_script(TAPROOT_KEY), MAINNET)
        assert address == "bc1p0xlxvlhemja6c4dqv22uapctqupfhlxm9h8z3k2e72q4k9hcz7vqzk5jj0"

    def test_regtest_hrp(self):
        address = address_from_script(p2wpkh_script(HASH20), REGTEST)
        assert address.startswith("bcrt1q")

    def test_signet_shares_testnet_hrp(self):
        assert address_from_script(p2wpkh_script(HASH20), SIGNET) == \
            address_from_script(p2wpkh_script(HASH20), TESTNET)

    def test_networks_produce_distinct_addresses(self):
        addresses = {
            address_from_script(p2wpkh_script(HASH20), network)
            for network in (MAINNET, TESTNET, REGTEST)
        }
        assert len(addresses) == 3


class TestUnresolvableScripts:
    """Scripts that encode no standard address."""

    def test_op_return(self):
        with pytest.raises(AddressResolutionError):
            address_from_script(op_return_script(b"data"), MAINNET)

    def test_bare_pubkey(self):
        with pytest.raises(AddressResolutionError):
            address_from_script(b"\x21" + bytes(33) + b"\xac", MAINNET)

    def test_bare_multisig(self):
        script = b"\x51\x21" + bytes(33) + b"\x21" + bytes(33) + b"\x52\xae"
        with pytest.raises(AddressResolutionError):
            address_from_script(script, MAINNET)

    def test_v0_invalid_program_length(self):
        with pytest.raises(AddressResolutionError):
            address_from_script(b"\x00\x18" + bytes(24), MAINNET)

    def test_empty_script(self):
        with pytest.raises(AddressResolutionError):
            address_from_script(b"", REGTEST)


class TestNetworkLookup:

    def test_case_insensitive(self):
        assert get_network("Regtest") is REGTEST
        assert get_network(" mainnet ") is MAINNET

    def test_unknown_network(self):
        with pytest.raises(ConfigurationError):
            get_network("litecoin")


class TestPublicKeyRecovery:
    """Best-effort witness heuristic."""

    PUBKEY = "02" + "ab" * 32

    def test_two_item_witness(self):
        assert extract_public_key(["30440220" + "00" * 8, self.PUBKEY]) == self.PUBKEY

    def test_empty_witness(self):
        assert extract_public_key([]) is None

    def test_single_item_witness(self):
        """Taproot key-path spends carry only a signature."""
        assert extract_public_key(["aa" * 64]) is None

    def test_second_item_taken_from_longer_stack(self):
        assert extract_public_key(["", "BEEF", "cafe"]) == "beef"
