import hmac
from typing import Any, Optional

from . import utils
from .config import DEFAULT_ALGORITHM, DEFAULT_DIGITS, Algorithm, validate_digits
from .exceptions import EmptySecret, InvalidDigitCount

MAX_COUNTER = 2**64 - 1


def int_to_bytestring(i: int, padding: int = 8) -> bytes:
    """
    Turns an integer to the OATH specified bytestring, which is fed to the
    HMAC along with the secret.

    12345 (0x3039) -> b"\\x00\\x00\\x00\\x00\\x00\\x00\\x30\\x39"
    """
    if not 0 <= i <= MAX_COUNTER:
        raise ValueError("counter must be an integer between 0 and 2**64 - 1")
    result = bytearray()
    while i != 0:
        result.append(i & 0xFF)
        i >>= 8
    # bytes come out least significant first
    return bytes(bytearray(reversed(result)).rjust(padding, b"\0"))


def hotp(secret: bytes, counter: int, digits: int = DEFAULT_DIGITS, algorithm: Any = DEFAULT_ALGORITHM) -> str:
    """
    Computes an HMAC-based one-time password (RFC 4226).

    :param secret: the raw secret bytes
    :param counter: the HMAC counter value, 0 to 2**64 - 1
    :param digits: length of the returned code; anything above 10 still
        works, the code is just zero padded on the left
    :param algorithm: SHA1, SHA256 or SHA512 (member, name or hashlib function)
    :returns: the code as a zero padded decimal string
    :raises InvalidDigitCount: digits is below 1
    :raises UnsupportedAlgorithm: the hash is not SHA1, SHA256 or SHA512
    """
    if not secret:
        raise EmptySecret("secret is empty")
    if isinstance(digits, bool) or not isinstance(digits, int) or digits < 1:
        raise InvalidDigitCount("digits must be a positive integer")
    digest = Algorithm.resolve(algorithm).digest

    hmac_hash = bytearray(hmac.new(secret, int_to_bytestring(counter), digest).digest())

    # Dynamic truncation: the low nibble of the last byte picks where four
    # bytes are read from, the top bit is dropped to get 31 bits.
    offset = hmac_hash[-1] & 0xF
    code = (
        (hmac_hash[offset] & 0x7F) << 24
        | (hmac_hash[offset + 1] & 0xFF) << 16
        | (hmac_hash[offset + 2] & 0xFF) << 8
        | (hmac_hash[offset + 3] & 0xFF)
    )
    return str(code % 10**digits).zfill(digits)


class OTP(object):
    """
    Base class for OTP handlers.
    """

    def __init__(
        self,
        s: str,
        digits: int = DEFAULT_DIGITS,
        algorithm: Any = DEFAULT_ALGORITHM,
        name: Optional[str] = None,
        issuer: Optional[str] = None,
    ) -> None:
        self.digits = validate_digits(digits).unwrap()
        self.algorithm = Algorithm.resolve(algorithm)
        self.secret = s
        self.name = name or "Secret"
        self.issuer = issuer
        self._byte_secret: Optional[bytes] = None

    def generate_otp(self, input: int) -> str:
        """
        :param input: the HMAC counter value to use as the OTP input.
            Usually either the counter, or the computed integer based on the Unix timestamp
        """
        return hotp(self.byte_secret(), input, self.digits, self.algorithm)

    def byte_secret(self) -> bytes:
        # decoded once, the secret string never changes on an instance
        if self._byte_secret is None:
            self._byte_secret = utils.decode(self.secret)
        return self._byte_secret
