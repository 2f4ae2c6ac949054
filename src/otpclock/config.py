import dataclasses
import enum
import hashlib
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from . import utils
from .exceptions import EmptySecret, InvalidDigitCount, InvalidPeriod, OtpError, UnsupportedAlgorithm

DEFAULT_DIGITS = 6
DEFAULT_PERIOD = 30

MIN_DIGITS = 1
MAX_DIGITS = 10
MIN_PERIOD = 1
MAX_PERIOD = 3600

T = TypeVar("T")


class Algorithm(str, enum.Enum):
    """
    The HMAC hash functions an OTP can be computed with.
    """

    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @property
    def digest(self) -> Callable[..., Any]:
        return _DIGESTS[self]

    @classmethod
    def resolve(cls, value: Any) -> "Algorithm":
        """
        Looks up an algorithm by member, name or hashlib constructor.

        Names are matched loosely: "sha1", "SHA-256" and "sha_512" all work.

        :raises UnsupportedAlgorithm: for anything outside SHA1/SHA256/SHA512
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.replace("-", "").replace("_", "").replace(" ", "").upper()
            try:
                return cls(name)
            except ValueError:
                raise UnsupportedAlgorithm("Invalid value for algorithm, must be SHA1, SHA256 or SHA512") from None
        for member, digest in _DIGESTS.items():
            if value is digest:
                return member
        raise UnsupportedAlgorithm("Invalid value for algorithm, must be SHA1, SHA256 or SHA512")


_DIGESTS = {
    Algorithm.SHA1: hashlib.sha1,
    Algorithm.SHA256: hashlib.sha256,
    Algorithm.SHA512: hashlib.sha512,
}

DEFAULT_ALGORITHM = Algorithm.SHA1


@dataclasses.dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of validating one input: either a value or the error explaining
    why there is none.
    """

    value: Optional[T] = None
    error: Optional[OtpError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: OtpError) -> "Result[T]":
        return cls(error=error)


def _is_int(value: Any) -> bool:
    # bool is an int subclass, but True is not a digit count
    return isinstance(value, int) and not isinstance(value, bool)


def validate_secret(secret: str) -> Result[bytes]:
    if not isinstance(secret, str):
        return Result.failure(EmptySecret("secret must be a string"))
    try:
        return Result.success(utils.decode(secret))
    except OtpError as e:
        return Result.failure(e)


def validate_digits(digits: Any) -> Result[int]:
    if not _is_int(digits) or not MIN_DIGITS <= digits <= MAX_DIGITS:
        return Result.failure(
            InvalidDigitCount("digits must be an integer between {} and {}".format(MIN_DIGITS, MAX_DIGITS))
        )
    return Result.success(digits)


def validate_period(period: Any) -> Result[int]:
    if not _is_int(period) or not MIN_PERIOD <= period <= MAX_PERIOD:
        return Result.failure(
            InvalidPeriod("period must be an integer between {} and {} seconds".format(MIN_PERIOD, MAX_PERIOD))
        )
    return Result.success(period)


def validate_algorithm(algorithm: Any) -> Result[Algorithm]:
    try:
        return Result.success(Algorithm.resolve(algorithm))
    except UnsupportedAlgorithm as e:
        return Result.failure(e)


@dataclasses.dataclass(frozen=True)
class TotpConfig:
    """
    Everything needed to compute a TOTP code, apart from the time.

    A config is a value: it is never changed in place. Use :meth:`replace`
    (or build a new one) whenever a field changes. Construction validates
    every field, so an instance with ``digits == 0`` or ``period == 0``
    cannot exist.

    :param secret: the decoded secret bytes
    :param digits: code length, 1 to 10
    :param period: seconds each code stays valid, 1 to 3600
    :param algorithm: the HMAC hash function
    """

    secret: bytes
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD
    algorithm: Algorithm = DEFAULT_ALGORITHM

    def __post_init__(self) -> None:
        if not isinstance(self.secret, (bytes, bytearray)) or not self.secret:
            raise EmptySecret("secret must be non-empty bytes")
        if isinstance(self.secret, bytearray):
            object.__setattr__(self, "secret", bytes(self.secret))
        validate_digits(self.digits).unwrap()
        validate_period(self.period).unwrap()
        object.__setattr__(self, "algorithm", Algorithm.resolve(self.algorithm))

    def __repr__(self) -> str:
        # keep the key out of logs and tracebacks
        return "TotpConfig(secret=<{} bytes>, digits={}, period={}, algorithm={})".format(
            len(self.secret), self.digits, self.period, self.algorithm.value
        )

    @classmethod
    def from_base32(
        cls,
        secret: str,
        digits: int = DEFAULT_DIGITS,
        period: int = DEFAULT_PERIOD,
        algorithm: Union[Algorithm, str] = DEFAULT_ALGORITHM,
    ) -> "TotpConfig":
        """
        Builds a config from user input, raising the first validation error.
        """
        return build_config(secret, digits, period, algorithm).unwrap()

    def replace(self, **changes: Any) -> "TotpConfig":
        return dataclasses.replace(self, **changes)

    def provisioning_uri(self, name: str, issuer: Optional[str] = None, **kwargs) -> str:
        """
        Returns the otpauth:// URI for this config, suitable for a QR code.

        :param name: name of the user account
        :param issuer: the name of the OTP issuer
        """
        return utils.build_uri(
            utils.encode(self.secret),
            name,
            issuer=issuer,
            algorithm=self.algorithm.value,
            digits=self.digits,
            period=self.period,
            **kwargs,
        )


def build_config(
    secret: str,
    digits: Any = DEFAULT_DIGITS,
    period: Any = DEFAULT_PERIOD,
    algorithm: Any = DEFAULT_ALGORITHM,
) -> Result[TotpConfig]:
    """
    Validates raw form input and composes it into a :class:`TotpConfig`.

    Fields are checked in the order secret, digits, period, algorithm and the
    first failure is returned.
    """
    secret_result = validate_secret(secret)
    if not secret_result.ok:
        return Result.failure(secret_result.error)  # type: ignore
    return config_from_bytes(secret_result.unwrap(), digits, period, algorithm)


def config_from_bytes(secret: bytes, digits: Any, period: Any, algorithm: Any) -> Result[TotpConfig]:
    """
    Same as :func:`build_config` for a secret that is already decoded.
    """
    for result in (validate_digits(digits), validate_period(period), validate_algorithm(algorithm)):
        if not result.ok:
            return Result.failure(result.error)  # type: ignore
    return Result.success(TotpConfig(secret, digits, period, Algorithm.resolve(algorithm)))
