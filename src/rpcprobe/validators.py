"""Format checks for fixture values.

Every validator either returns the canonical value or raises FormatError with a
message naming the input and the rule it broke. No I/O.
"""

import re
import string

from rpcprobe.errors import FormatError

HEX_DIGITS = frozenset(string.hexdigits)
HASH_HEX_LEN = 64  # 32 bytes
ADDRESS_HEX_LEN = 40  # 20 bytes
NUMBER_RE = re.compile(r"0[xX][0-9a-fA-F]+|[0-9]+")


def validate_block_number(raw) -> str:
    """Return `raw` as 0x-prefixed lowercase hex.

    Accepts a non-negative int, a decimal string, or a 0x-prefixed hex string.
    """
    if raw is None or raw == "":
        raise FormatError("Block number is required")

    if isinstance(raw, bool):
        raise FormatError(f"Invalid block number format: {raw!r}. Must be a number.")

    if isinstance(raw, int):
        num = raw
    else:
        text = str(raw).strip()
        if text.startswith("-") and NUMBER_RE.fullmatch(text[1:]):
            raise FormatError(f"Invalid block number: {text}. Must be a non-negative integer.")
        if not NUMBER_RE.fullmatch(text):
            raise FormatError(f'Invalid block number format: "{raw}". Must be a number.')
        num = int(text, 16) if text[:2].lower() == "0x" else int(text, 10)

    if num < 0:
        raise FormatError(f"Invalid block number: {num}. Must be a non-negative integer.")
    return hex(num)


def _validate_hex(raw, *, label: str, length: int) -> str:
    if not raw:
        raise FormatError(f"{label.capitalize()} is required")
    if not isinstance(raw, str):
        raise FormatError(f"Invalid {label} type: {type(raw).__name__}. Must be a string.")
    if not raw.startswith("0x"):
        raise FormatError(f'Invalid {label} format: "{raw}". Must start with "0x".')

    body = raw[2:]
    if len(body) != length:
        raise FormatError(
            f"Invalid {label} length: {len(body)} characters. "
            f'Must be {length} characters ({length // 2} bytes) after "0x" prefix.'
        )
    if not set(body) <= HEX_DIGITS:
        raise FormatError(f'Invalid {label} characters: "{raw}". Must contain only hexadecimal characters.')
    return raw


def validate_block_hash(raw) -> str:
    return _validate_hex(raw, label="block hash", length=HASH_HEX_LEN)


def validate_tx_hash(raw) -> str:
    return _validate_hex(raw, label="transaction hash", length=HASH_HEX_LEN)


def validate_address(raw) -> str:
    return _validate_hex(raw, label="address", length=ADDRESS_HEX_LEN)


def parse_quantity(value) -> int:
    """Decode a JSON-RPC quantity, which nodes send either as int or 0x-hex string."""
    if isinstance(value, bool):
        raise FormatError(f"Invalid quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and NUMBER_RE.fullmatch(value):
        return int(value, 16) if value[:2].lower() == "0x" else int(value, 10)
    raise FormatError(f"Invalid quantity: {value!r}")
