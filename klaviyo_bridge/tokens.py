"""Push token decoding.

APNs hands the token over as a hex string, sometimes in its description form
(``<abcd 0123 ...>``). Non-hex characters are ignored, nibbles are paired left
to right and an odd trailing nibble is dropped. A token that yields no whole
byte is rejected.
"""

from __future__ import annotations

from typing import List

from .errors import InvalidArguments

_HEX_PREFIXES = ("0x", "0X")


def _nibbles(text: str) -> List[int]:
    values: List[int] = []
    for ch in text:
        if ch in "0123456789abcdefABCDEF":
            values.append(int(ch, 16))
    return values


def decode_hex_token(token: str) -> bytes:
    if token.startswith(_HEX_PREFIXES):
        token = token[2:]

    nibbles = _nibbles(token)
    if not nibbles:
        raise InvalidArguments(
            "Token must contain hexadecimal digits",
            field="token",
        )

    data = bytearray()
    high = None
    for nibble in nibbles:
        if high is None:
            high = nibble << 4
        else:
            data.append(high + nibble)
            high = None
    if not data:
        raise InvalidArguments(
            "Token must contain at least one full byte",
            field="token",
        )
    return bytes(data)
