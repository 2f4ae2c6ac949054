import datetime
import time

import pytest

from otpclock import TOTP, TotpConfig, remaining_seconds, totp
from otpclock.config import Algorithm
from otpclock.exceptions import InvalidPeriod
from otpclock.totp import timecode, to_unix_seconds
from otpclock.utils import encode

SECRETS = {
    Algorithm.SHA1: b"12345678901234567890",
    Algorithm.SHA256: b"12345678901234567890123456789012",
    Algorithm.SHA512: b"1234567890123456789012345678901234567890123456789012345678901234",
}

# RFC 6238 appendix B
RFC_6238_VECTORS = [
    (59, Algorithm.SHA1, "94287082"),
    (59, Algorithm.SHA256, "46119246"),
    (59, Algorithm.SHA512, "90693936"),
    (1111111109, Algorithm.SHA1, "07081804"),
    (1111111109, Algorithm.SHA256, "68084774"),
    (1111111109, Algorithm.SHA512, "25091201"),
    (1111111111, Algorithm.SHA1, "14050471"),
    (1111111111, Algorithm.SHA256, "67062674"),
    (1111111111, Algorithm.SHA512, "99943326"),
    (1234567890, Algorithm.SHA1, "89005924"),
    (1234567890, Algorithm.SHA256, "91819424"),
    (1234567890, Algorithm.SHA512, "93441116"),
    (2000000000, Algorithm.SHA1, "69279037"),
    (2000000000, Algorithm.SHA256, "90698825"),
    (2000000000, Algorithm.SHA512, "38618901"),
    (20000000000, Algorithm.SHA1, "65353130"),
    (20000000000, Algorithm.SHA256, "77737706"),
    (20000000000, Algorithm.SHA512, "47863826"),
]


@pytest.fixture
def config():
    return TotpConfig(SECRETS[Algorithm.SHA1], digits=6, period=30)


@pytest.mark.parametrize("at,algorithm,expected", RFC_6238_VECTORS)
def test_rfc6238_vectors(at, algorithm, expected):
    assert totp(TotpConfig(SECRETS[algorithm], 8, 30, algorithm), at) == expected


def test_counter_boundary(config):
    assert totp(config, 59) == "287082"
    assert remaining_seconds(30, 59) == 1
    assert totp(config, 60) == "359152"
    assert remaining_seconds(30, 60) == 30


def test_deterministic(config):
    assert totp(config, 1234567890) == totp(config, 1234567890)


def test_constant_within_a_window_and_changes_across(config):
    previous = None
    for window in range(5):
        codes = {totp(config, t) for t in range(window * 30, window * 30 + 30)}
        assert len(codes) == 1
        code = codes.pop()
        assert code != previous
        previous = code


@pytest.mark.parametrize("period", [1, 2, 7, 30, 60, 3600])
def test_remaining_seconds_never_zero(period):
    for t in range(0, 3 * period + 1):
        assert 1 <= remaining_seconds(period, t) <= period
    assert remaining_seconds(period, 0) == period
    assert remaining_seconds(period, period - 1) == 1


def test_fractional_seconds_are_floored(config):
    assert timecode(30, 59.999) == 1
    assert remaining_seconds(30, 59.999) == 1
    assert totp(config, 59.999) == totp(config, 59)


def test_datetime_input():
    aware = datetime.datetime(1970, 1, 1, 0, 0, 59, tzinfo=datetime.timezone.utc)
    assert to_unix_seconds(aware) == 59
    assert totp(TotpConfig(SECRETS[Algorithm.SHA1], 8), aware) == "94287082"

    naive = datetime.datetime(2009, 2, 13, 23, 31, 30)
    assert to_unix_seconds(naive) == int(time.mktime(naive.timetuple()))


@pytest.mark.parametrize("period", [0, -30])
def test_invalid_period(period):
    with pytest.raises(InvalidPeriod):
        remaining_seconds(period, 59)
    with pytest.raises(InvalidPeriod):
        timecode(period, 59)


def test_config_rejects_zero_period():
    with pytest.raises(InvalidPeriod):
        TotpConfig(SECRETS[Algorithm.SHA1], period=0)


class TestTOTP:
    def test_at(self):
        otp = TOTP(encode(SECRETS[Algorithm.SHA256]), digits=8, algorithm="SHA256")
        assert otp.at(1111111109) == "68084774"
        assert otp.at(1111111109, counter_offset=1) == otp.at(1111111109 + 30)

    def test_now(self, monkeypatch):
        monkeypatch.setattr(time, "time", lambda: 59.5)
        otp = TOTP(encode(SECRETS[Algorithm.SHA1]), digits=8)
        assert otp.now() == "94287082"
        assert otp.remaining() == 1

    def test_config(self):
        otp = TOTP(encode(SECRETS[Algorithm.SHA1]), digits=7, interval=60)
        assert otp.config == TotpConfig(SECRETS[Algorithm.SHA1], 7, 60, Algorithm.SHA1)
        assert otp.at(125) == totp(otp.config, 125)

    def test_interval_is_validated(self):
        with pytest.raises(InvalidPeriod):
            TOTP(encode(SECRETS[Algorithm.SHA1]), interval=0)
        with pytest.raises(InvalidPeriod):
            TOTP(encode(SECRETS[Algorithm.SHA1]), interval=3601)

    def test_provisioning_uri(self):
        otp = TOTP("JBSWY3DPEHPK3PXP", interval=60)
        assert otp.provisioning_uri("alice@example.com", issuer_name="Example") == (
            "otpauth://totp/Example:alice%40example.com?secret=JBSWY3DPEHPK3PXP&issuer=Example&period=60"
        )
