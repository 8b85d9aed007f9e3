"""
Script Classifier

Maps a raw locking script (scriptPubKey) to a ScriptType tag.

Patterns are tested in a fixed priority order and the first match wins.
Classification is total: any byte sequence yields exactly one tag, with
UNKNOWN as the fallback.
"""

import logging
from typing import Optional, Tuple

from .types import ScriptType

logger = logging.getLogger(__name__)


# Opcodes
OP_0 = 0x00
OP_PUSHBYTES_20 = 0x14
OP_PUSHBYTES_32 = 0x20
OP_1 = 0x51
OP_16 = 0x60
OP_RETURN = 0x6a
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xa9
OP_CHECKSIG = 0xac


def is_p2pkh(script: bytes) -> bool:
    """OP_DUP OP_HASH160 <20 bytes> OP_EQUALVERIFY OP_CHECKSIG"""
    return (
        len(script) == 25
        and script[0] == OP_DUP
        and script[1] == OP_HASH160
        and script[2] == OP_PUSHBYTES_20
        and script[23] == OP_EQUALVERIFY
        and script[24] == OP_CHECKSIG
    )


def is_p2sh(script: bytes) -> bool:
    """OP_HASH160 <20 bytes> OP_EQUAL"""
    return (
        len(script) == 23
        and script[0] == OP_HASH160
        and script[1] == OP_PUSHBYTES_20
        and script[22] == OP_EQUAL
    )


def is_v0_p2wpkh(script: bytes) -> bool:
    """OP_0 <20 bytes>"""
    return len(script) == 22 and script[0] == OP_0 and script[1] == OP_PUSHBYTES_20


def is_v0_p2wsh(script: bytes) -> bool:
    """OP_0 <32 bytes>"""
    return len(script) == 34 and script[0] == OP_0 and script[1] == OP_PUSHBYTES_32


def is_op_return(script: bytes) -> bool:
    return len(script) > 0 and script[0] == OP_RETURN


def witness_program(script: bytes) -> Optional[Tuple[int, bytes]]:
    """
    Decode a witness program.

    A witness program is a version opcode (OP_0 or OP_1..OP_16) followed by a
    single direct push of 2-40 bytes that covers the rest of the script.

    Returns:
        (version, program) or None if the script is not a witness program
    """
    if not 4 <= len(script) <= 42:
        return None

    version_op = script[0]
    push_len = script[1]

    if version_op == OP_0:
        version = 0
    elif OP_1 <= version_op <= OP_16:
        version = version_op - OP_1 + 1
    else:
        return None

    if not 2 <= push_len <= 40 or push_len != len(script) - 2:
        return None

    return version, bytes(script[2:])


def is_witness_program(script: bytes) -> bool:
    return witness_program(script) is not None


# Priority order matters: the v0 forms are also witness programs
_CLASSIFIERS = (
    (is_p2pkh, ScriptType.P2PKH),
    (is_p2sh, ScriptType.P2SH),
    (is_v0_p2wpkh, ScriptType.P2WPKH),
    (is_v0_p2wsh, ScriptType.P2WSH),
    (is_op_return, ScriptType.OP_RETURN),
    (is_witness_program, ScriptType.WITNESS),
)


def classify_script(script: bytes) -> ScriptType:
    """
    Classify a locking script.

    Never raises. Unmatched scripts are logged with their hex so they can be
    analysed offline, and tagged UNKNOWN.
    """
    for matches, script_type in _CLASSIFIERS:
        if matches(script):
            return script_type

    logger.error(f"Unknown script type: {bytes(script).hex()}")
    return ScriptType.UNKNOWN
