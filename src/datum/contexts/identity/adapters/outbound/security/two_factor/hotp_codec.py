from __future__ import annotations

import base64
import hashlib
import hmac

_BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_BASE32_VALUES: dict[str, int] = {char: index for index, char in enumerate(_BASE32_ALPHABET)}
_COUNTER_LIMIT = 2**64
_MIN_DIGEST_LENGTH = 20
_MAX_DIGITS = 10


def base32_decode(text: str) -> bytes:
    """
    Decode base32 text leniently into raw key bytes.

    Args:
        text: Base32 text in any letter case, optionally padded or spaced.
    Returns:
        bytes: Decoded bytes; trailing bits that do not fill a byte are dropped.
    Assumptions:
        Characters outside `A-Z2-7` (padding, spaces, dashes) are skipped, so malformed input
        produces shorter output instead of an error.
    Raises:
        None.
    Side Effects:
        None.
    """
    buffer = 0
    bits = 0
    output = bytearray()
    for char in text.upper():
        value = _BASE32_VALUES.get(char)
        if value is None:
            continue
        buffer = (buffer << 5) | value
        bits += 5
        if bits >= 8:
            bits -= 8
            output.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1
    return bytes(output)


def base32_encode(raw: bytes) -> str:
    """Encode bytes as RFC 4648 base32 without `=` padding."""
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def encode_counter(counter: int) -> bytes:
    """
    Encode moving factor as 8-byte big-endian unsigned integer.

    Args:
        counter: HOTP counter value.
    Returns:
        bytes: Eight-byte counter representation.
    Assumptions:
        Counter fits unsigned 64-bit range.
    Raises:
        ValueError: If counter is negative or does not fit 64 bits.
    Side Effects:
        None.
    """
    if counter < 0 or counter >= _COUNTER_LIMIT:
        raise ValueError(f"HOTP counter must be in [0, 2**64), got {counter}")
    return counter.to_bytes(8, byteorder="big", signed=False)


def truncate(digest: bytes, digits: int = 6) -> str:
    """
    Apply RFC 4226 dynamic truncation and reduce to zero-padded decimal code.

    Args:
        digest: HMAC digest (20 bytes for SHA1).
        digits: Number of output digits.
    Returns:
        str: Code with exactly `digits` characters.
    Assumptions:
        Offset is the low nibble of the last byte; first selected byte drops its top bit.
    Raises:
        ValueError: If digest is shorter than a SHA1 digest or digits is out of range.
    Side Effects:
        None.
    """
    if len(digest) < _MIN_DIGEST_LENGTH:
        raise ValueError("HOTP digest must contain at least 20 bytes")
    if digits <= 0 or digits > _MAX_DIGITS:
        raise ValueError(f"HOTP digits must be in [1, {_MAX_DIGITS}], got {digits}")
    offset = digest[-1] & 0x0F
    binary_code = (
        ((digest[offset] & 0x7F) << 24)
        | ((digest[offset + 1] & 0xFF) << 16)
        | ((digest[offset + 2] & 0xFF) << 8)
        | (digest[offset + 3] & 0xFF)
    )
    return f"{binary_code % (10**digits):0{digits}d}"


def hotp(key: bytes, counter: int, digits: int = 6) -> str:
    """
    Compute HOTP value (HMAC-SHA1) for key and counter.

    Args:
        key: Raw shared secret bytes.
        counter: Moving factor.
        digits: Number of output digits.
    Returns:
        str: Zero-padded one-time password.
    Assumptions:
        SHA1 is used for compatibility with common authenticator apps.
    Raises:
        ValueError: If counter or digits are out of range.
    Side Effects:
        None.
    """
    digest = hmac.new(key, encode_counter(counter), hashlib.sha1).digest()
    return truncate(digest, digits)
