"""Reversible masking for answers kept in local storage.

This is NOT encryption. Every byte is XOR-ed with a fixed key and the result
is base64 encoded, which only keeps answers from being read at a glance when
someone opens the storage file. Anyone with this module can undo it.
"""
from __future__ import annotations

import base64
import binascii

from .config import XOR_KEY


def _xor(data: bytes, key: int) -> bytes:
    return bytes(b ^ key for b in data)


def xor_encode(plaintext: str, key: int = XOR_KEY) -> str:
    if not plaintext:
        return ""
    return base64.b64encode(_xor(plaintext.encode("utf-8", "surrogatepass"), key)).decode("ascii")


def xor_decode(encoded: str | None, key: int = XOR_KEY) -> str:
    """Reverse ``xor_encode``; anything undecodable comes back as ``""``."""
    if not encoded or not isinstance(encoded, str):
        return ""
    try:
        raw = _xor(base64.b64decode(encoded, validate=True), key)
    except (binascii.Error, ValueError):
        return ""
    try:
        return raw.decode("utf-8", "surrogatepass")
    except UnicodeDecodeError:
        # values written by the browser build mask UTF-16 code units < 256
        return raw.decode("latin-1")
