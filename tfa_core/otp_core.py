"""
otp_core.py - HOTP primitives (RFC 4226) used by the validator and the CLI.

Goals:
- Pure functions only: no storage, no config lookups.
- The validator decodes the base32 seed once and then calls hotp() for
  every counter in the resync window, so hotp() takes raw key bytes.

Security notes:
- HMAC-SHA1 as required by RFC 4226 (Google Authenticator compatible).
- Never log seeds or generated codes.
"""

import base64
import binascii
import hmac
import hashlib
import struct

import pyotp

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # standard: 6 digits
MIN_DIGITS = 6
MAX_DIGITS = 10
DEFAULT_ISSUER = "tfa-hotp"


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Convert the counter to the 8-byte big-endian message RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\x00\x00\x00\x00\x00\x00\x00\x01'
    """
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    Apply RFC 4226 dynamic truncation.

    - offset = last_byte & 0x0F
    - take 4 bytes from offset, clear the MSB of the first one
    - return the resulting 31-bit unsigned integer
    """
    offset = hmac_digest[-1] & 0x0F
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def hotp(key: bytes, counter: int, digits: int = DEFAULT_DIGITS) -> str:
    """
    Compute an HOTP code per RFC 4226.

    Steps:
    1. Message = 8-byte counter (big-endian)
    2. HMAC-SHA1(key, message)
    3. Dynamic truncate -> dbc
    4. otp = dbc % 10^digits, zero-padded to "digits"

    Arguments:
        key: raw shared secret (already base32-decoded, see decode_seed)
        counter: non-negative integer counter
        digits: code length

    Raises:
        ValueError: if counter is negative
    """
    if counter < 0:
        raise ValueError("HOTP counter must be non-negative")

    digest = hmac.new(key, int_to_bytes(counter), hashlib.sha1).digest()
    otp_val = dynamic_truncate(digest) % (10 ** digits)
    return str(otp_val).zfill(digits)


def decode_seed(seed: str) -> bytes:
    """
    Base32-decode a seed into raw key bytes.

    Case-insensitive; spaces and missing '=' padding are tolerated because
    authenticator apps usually display seeds in groups without padding.

    Raises:
        ValueError: if the seed is empty or not valid base32
    """
    cleaned = "".join(seed.split()).upper().rstrip("=")
    if not cleaned:
        raise ValueError("Empty base32 seed")
    padded = cleaned + "=" * (-len(cleaned) % 8)
    try:
        return base64.b32decode(padded, casefold=True)
    except binascii.Error as e:
        raise ValueError("Invalid base32 seed") from e


# --- Enrollment helpers ----------------------------------------------------
def generate_base32_secret() -> str:
    """Generate a random 160-bit base32 seed suitable for authenticator apps."""
    return pyotp.random_base32()


def format_otpauth_uri(
    seed: str,
    account: str,
    issuer: str = DEFAULT_ISSUER,
    digits: int = DEFAULT_DIGITS,
    counter: int = 0,
) -> str:
    """
    Build the otpauth://hotp/ provisioning URI for a QR code.

    The initial counter in the URI must match the first counter the
    validator will try (stored counter + 1), so a fresh enrollment uses 0.
    """
    return pyotp.HOTP(seed, digits=digits).provisioning_uri(
        name=account, initial_count=counter, issuer_name=issuer
    )
