"""Decoder for Junos ``$9$`` obfuscated secrets.

The device stores authentication keys and passwords as ``$9$`` strings:
a salt character, a salt-dependent number of filler characters, then each
plaintext character as a run of gaps between positions in a fixed
alphabet. Decoding walks the gaps back to the character codes.
"""
from ..errors import MalformedDeviceOutput

MAGIC = "$9$"

FAMILY = ("QzF3n6/9CAtpu0O", "B1IREhcSyrleKvMW8LXx", "7N-dVbwsY2g4oaJZGUDj", "iHkq.mPf5T")
ALPHABET = "".join(FAMILY)
POSITION = {char: index for index, char in enumerate(ALPHABET)}
# Filler characters following the salt, by salt family
EXTRA = {char: 3 - index for index, family in enumerate(FAMILY) for char in family}
# Gap weights of each plaintext character, cycled
ENCODING = (
    (1, 4, 32),
    (1, 16, 32),
    (1, 8, 32),
    (1, 64),
    (1, 32),
    (1, 4, 16, 128),
    (1, 32, 64),
)


def is_encoded(value: str) -> bool:
    return value.startswith(MAGIC)


def _take(chars: str, length: int, secret: str) -> tuple[str, str]:
    if len(chars) < length:
        raise MalformedDeviceOutput(f"failed to decode secret '{secret}': truncated")
    return chars[:length], chars[length:]


def _gap(previous: str, current: str, secret: str) -> int:
    try:
        return (POSITION[current] - POSITION[previous]) % len(ALPHABET) - 1
    except KeyError as e:
        raise MalformedDeviceOutput(
            f"failed to decode secret '{secret}': unexpected character {e}"
        ) from None


def decode_secret(secret: str) -> str:
    """
    Plaintext of a ``$9$`` secret.

    Raises:
        MalformedDeviceOutput: ``secret`` is not a well-formed ``$9$`` string
    """
    if not is_encoded(secret):
        raise MalformedDeviceOutput(f"failed to decode secret '{secret}': missing {MAGIC} prefix")
    chars = secret[len(MAGIC):]
    salt, chars = _take(chars, 1, secret)
    if salt not in EXTRA:
        raise MalformedDeviceOutput(f"failed to decode secret '{secret}': unexpected character '{salt}'")
    _, chars = _take(chars, EXTRA[salt], secret)
    previous = salt
    plain = []
    while chars:
        weights = ENCODING[len(plain) % len(ENCODING)]
        run, chars = _take(chars, len(weights), secret)
        code = 0
        for char, weight in zip(run, weights):
            code += _gap(previous, char, secret) * weight
            previous = char
        plain.append(chr(code % 256))
    return "".join(plain)


def reveal(value: str) -> str:
    """``value`` decoded when it is a ``$9$`` secret, unchanged otherwise."""
    return decode_secret(value) if is_encoded(value) else value
