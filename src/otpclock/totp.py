import calendar
import datetime
import math
import time
from typing import Any, Optional, Union

from . import utils
from .config import DEFAULT_ALGORITHM, DEFAULT_DIGITS, DEFAULT_PERIOD, TotpConfig, validate_period
from .exceptions import InvalidPeriod
from .otp import OTP, hotp

Timestamp = Union[int, float, datetime.datetime]


def to_unix_seconds(at: Timestamp) -> int:
    """
    Whole Unix seconds for an int, float or datetime.

    Naive datetimes are taken as local time, aware ones are converted to UTC.
    """
    if isinstance(at, datetime.datetime):
        if at.tzinfo:
            return calendar.timegm(at.utctimetuple())
        return int(time.mktime(at.timetuple()))
    return math.floor(at)


def _check_period(period: int) -> None:
    if isinstance(period, bool) or not isinstance(period, int) or period < 1:
        raise InvalidPeriod("period must be a positive number of seconds")


def timecode(period: int, at: Timestamp) -> int:
    """
    The HOTP counter for a moment in time: floor(t / period).
    """
    _check_period(period)
    return to_unix_seconds(at) // period


def remaining_seconds(period: int, at: Timestamp) -> int:
    """
    Seconds until the code valid at ``at`` expires.

    Always in [1, period]: on a window boundary the full period is returned,
    never 0.
    """
    _check_period(period)
    return period - to_unix_seconds(at) % period


def totp(config: TotpConfig, at: Timestamp) -> str:
    """
    Computes the time-based one-time password (RFC 6238) valid at ``at``.

    The clock is never read here: pass ``time.time()`` for the current code.

    :param config: secret, digits, period and algorithm
    :param at: the moment to compute the code for, in Unix seconds or as a datetime
    :returns: the code as a zero padded decimal string
    """
    return hotp(config.secret, timecode(config.period, at), config.digits, config.algorithm)


class TOTP(OTP):
    """
    Handler for time-based OTP counters.
    """

    def __init__(
        self,
        s: str,
        digits: int = DEFAULT_DIGITS,
        algorithm: Any = DEFAULT_ALGORITHM,
        name: Optional[str] = None,
        issuer: Optional[str] = None,
        interval: int = DEFAULT_PERIOD,
    ) -> None:
        """
        :param s: secret in base32 format
        :param interval: the time interval in seconds for OTP. This defaults to 30.
        :param digits: number of integers in the OTP. Some apps expect this to be 6 digits, others support more.
        :param algorithm: hash function to use in the HMAC (SHA1, SHA256 or SHA512)
        :param name: account name
        :param issuer: issuer
        """
        self.interval = validate_period(interval).unwrap()
        super().__init__(s=s, digits=digits, algorithm=algorithm, name=name, issuer=issuer)

    @property
    def config(self) -> TotpConfig:
        return TotpConfig(self.byte_secret(), self.digits, self.interval, self.algorithm)

    def at(self, for_time: Timestamp, counter_offset: int = 0) -> str:
        """
        Accepts either a Unix timestamp integer or a datetime object.

        :param for_time: the time to generate an OTP for
        :param counter_offset: the amount of ticks to add to the time counter
        :returns: OTP value
        """
        return self.generate_otp(self.timecode(for_time) + counter_offset)

    def now(self) -> str:
        """
        Generate the current time OTP

        :returns: OTP value
        """
        return self.at(time.time())

    def remaining(self, for_time: Optional[Timestamp] = None) -> int:
        if for_time is None:
            for_time = time.time()
        return remaining_seconds(self.interval, for_time)

    def timecode(self, for_time: Timestamp) -> int:
        return timecode(self.interval, for_time)

    def provisioning_uri(self, name: Optional[str] = None, issuer_name: Optional[str] = None, **kwargs) -> str:
        """
        Returns the provisioning URI for the OTP.  This can then be
        encoded in a QR Code and used to provision an OTP app.

        :param name: name of the user account
        :param issuer_name: the name of the OTP issuer; this will be the
            organization title of the OTP entry in Authenticator
        :returns: provisioning URI
        """
        return utils.build_uri(
            self.secret,
            name if name else self.name,
            issuer=issuer_name if issuer_name else self.issuer,
            algorithm=self.algorithm.value,
            digits=self.digits,
            period=self.interval,
            **kwargs,
        )
