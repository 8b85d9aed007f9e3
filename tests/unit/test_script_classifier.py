"""
Unit tests for the script classifier.

Tests:
- Each standard pattern maps to its tag
- Priority order (v0 forms win over the generic witness program)
- Near-miss scripts fall through to the next pattern or UNKNOWN
- Unknown scripts are logged with their hex
"""

import logging

import pytest

from utxo_indexer.mock_data import (
    fake_hash160,
    op_return_script,
    p2pkh_script,
    p2sh_script,
    p2tr_script,
    p2wpkh_script,
    p2wsh_script,
)
from utxo_indexer.script import classify_script, witness_program
from utxo_indexer.types import ScriptType


HASH20 = fake_hash160("classifier")
HASH32 = bytes(range(32))


class TestStandardPatterns:
    """Each standard script form gets its tag."""

    def test_p2pkh(self):
        assert classify_script(p2pkh_script(HASH20)) == ScriptType.P2PKH

    def test_p2sh(self):
        assert classify_script(p2sh_script(HASH20)) == ScriptType.P2SH

    def test_p2wpkh(self):
        assert classify_script(p2wpkh_script(HASH20)) == ScriptType.P2WPKH

    def test_p2wsh(self):
        assert classify_script(p2wsh_script(HASH32)) == ScriptType.P2WSH

    def test_op_return(self):
        assert classify_script(op_return_script(b"hello")) == ScriptType.OP_RETURN

    def test_bare_op_return(self):
        assert classify_script(b"\x6a") == ScriptType.OP_RETURN

    def test_taproot_is_generic_witness(self):
        """v1 programs have no dedicated tag."""
        assert classify_script(p2tr_script(HASH32)) == ScriptType.WITNESS


class TestPriorityAndNearMisses:
    """Fixed priority order, first match wins."""

    def test_v0_forms_are_also_witness_programs(self):
        """P2WPKH/P2WSH would match the generic check but win on priority."""
        assert witness_program(p2wpkh_script(HASH20)) == (0, HASH20)
        assert witness_program(p2wsh_script(HASH32)) == (0, HASH32)

    def test_v0_odd_length_is_generic_witness(self):
        """v0 program that is neither 20 nor 32 bytes."""
        script = b"\x00\x18" + bytes(24)
        assert classify_script(script) == ScriptType.WITNESS

    def test_p2pkh_wrong_trailer_is_unknown(self):
        script = p2pkh_script(HASH20)[:-1] + b"\xad"
        assert classify_script(script) == ScriptType.UNKNOWN

    def test_p2sh_truncated_is_unknown(self):
        assert classify_script(p2sh_script(HASH20)[:-1]) == ScriptType.UNKNOWN

    def test_witness_push_length_mismatch_is_unknown(self):
        script = b"\x51\x20" + bytes(31)
        assert classify_script(script) == ScriptType.UNKNOWN

    def test_witness_program_too_long_is_unknown(self):
        script = b"\x51\x29" + bytes(41)
        assert classify_script(script) == ScriptType.UNKNOWN

    def test_witness_version_decoding(self):
        assert witness_program(b"\x60\x02\xab\xcd") == (16, b"\xab\xcd")
        assert witness_program(b"\x50\x02\xab\xcd") is None


class TestUnknownScripts:
    """Unmatched scripts default to UNKNOWN and are logged."""

    @pytest.mark.parametrize("script", [
        b"",
        b"\x00",
        b"\xac",
        # Bare pubkey
        b"\x21" + bytes(33) + b"\xac",
        # Bare 1-of-1 multisig
        b"\x51\x21" + bytes(33) + b"\x51\xae",
    ])
    def test_unknown(self, script):
        assert classify_script(script) == ScriptType.UNKNOWN

    def test_unknown_script_hex_is_logged(self, caplog):
        with caplog.at_level(logging.ERROR, logger="utxo_indexer.script"):
            classify_script(b"\xde\xad\xbe\xef")

        assert "deadbeef" in caplog.text

    def test_known_script_not_logged(self, caplog):
        with caplog.at_level(logging.ERROR, logger="utxo_indexer.script"):
            classify_script(p2wpkh_script(HASH20))

        assert caplog.text == ""
