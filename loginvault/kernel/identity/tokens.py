"""
Random token generation for login links and password reset codes.

Login tokens are 4 random bytes rendered as a proquint (two pronounceable
five-letter words such as ``lusab-babad``) so they can be read aloud or typed
from a phone. Reset codes carry far more entropy and are plain hex.
"""

import math
import re
import secrets

from loginvault.kernel.errors import EntropySourceError

LOGIN_TOKEN_BYTES = 4
RESET_CODE_BIT_LENGTH = 256

# Proquint alphabet: 16 consonants encode 4 bits, 4 vowels encode 2 bits
CONSONANTS = "bdfghjklmnprstvz"
VOWELS = "aiou"
SEPARATOR = "-"

_CONSONANT_VALUES = {c: i for i, c in enumerate(CONSONANTS)}
_VOWEL_VALUES = {v: i for i, v in enumerate(VOWELS)}

_QUINT = f"[{CONSONANTS}][{VOWELS}][{CONSONANTS}][{VOWELS}][{CONSONANTS}]"
LOGIN_TOKEN_PATTERN = re.compile(rf"{_QUINT}{SEPARATOR}{_QUINT}")


def _encode_word(word: int) -> str:
    """Encode a 16-bit integer as one five-letter quint (c v c v c)."""
    return "".join((
        CONSONANTS[(word >> 12) & 0x0F],
        VOWELS[(word >> 10) & 0x03],
        CONSONANTS[(word >> 6) & 0x0F],
        VOWELS[(word >> 4) & 0x03],
        CONSONANTS[word & 0x0F],
    ))


def _decode_word(quint: str) -> int:
    if len(quint) != 5:
        raise ValueError(f"Invalid proquint word: {quint!r}")
    try:
        return (
            (_CONSONANT_VALUES[quint[0]] << 12)
            | (_VOWEL_VALUES[quint[1]] << 10)
            | (_CONSONANT_VALUES[quint[2]] << 6)
            | (_VOWEL_VALUES[quint[3]] << 4)
            | _CONSONANT_VALUES[quint[4]]
        )
    except KeyError as exc:
        raise ValueError(f"Invalid proquint word: {quint!r}") from exc


def encode_proquint(data: bytes) -> str:
    """
    Encode bytes as dash-separated proquint words, big-endian, 16 bits per word.

    Args:
        data: Input bytes; length must be even

    Returns:
        Proquint string, e.g. ``b"\\x7f\\x00\\x00\\x01"`` -> ``"lusab-babad"``
    """
    if len(data) % 2:
        raise ValueError("Proquint input must be an even number of bytes")
    words = (int.from_bytes(data[i:i + 2], "big") for i in range(0, len(data), 2))
    return SEPARATOR.join(_encode_word(w) for w in words)


def decode_proquint(value: str) -> bytes:
    """Inverse of encode_proquint. Raises ValueError on malformed input."""
    if not value:
        raise ValueError("Empty proquint")
    return b"".join(
        _decode_word(quint).to_bytes(2, "big")
        for quint in value.split(SEPARATOR)
    )


def _random_bytes(n: int) -> bytes:
    try:
        return secrets.token_bytes(n)
    except (OSError, NotImplementedError) as exc:
        raise EntropySourceError() from exc


def _random_bits(k: int) -> int:
    try:
        return secrets.randbits(k)
    except (OSError, NotImplementedError) as exc:
        raise EntropySourceError() from exc


def generate_login_token() -> str:
    """Generate a pronounceable login token from 4 random bytes."""
    return encode_proquint(_random_bytes(LOGIN_TOKEN_BYTES))


def reset_code_length(bit_length: int = RESET_CODE_BIT_LENGTH) -> int:
    """Number of hex digits needed to hold bit_length bits."""
    return math.ceil(bit_length / 4)


def generate_reset_code(bit_length: int = RESET_CODE_BIT_LENGTH) -> str:
    """
    Generate a reset code of bit_length random bits as zero-padded hex.

    256 bits yields a 64-character code.
    """
    return format(_random_bits(bit_length), f"0{reset_code_length(bit_length)}x")


def is_login_token(value: str) -> bool:
    """Check a string has the shape of a generated login token."""
    return bool(LOGIN_TOKEN_PATTERN.fullmatch(value))


def is_reset_code(value: str, bit_length: int = RESET_CODE_BIT_LENGTH) -> bool:
    """Check a string has the shape of a generated reset code."""
    return (
        len(value) == reset_code_length(bit_length)
        and all(c in "0123456789abcdef" for c in value)
    )
