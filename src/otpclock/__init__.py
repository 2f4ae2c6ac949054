import logging
from re import split
from typing import Any, Dict
from urllib.parse import parse_qsl, unquote, urlparse

from .config import Algorithm as Algorithm
from .config import Result as Result
from .config import TotpConfig as TotpConfig
from .config import build_config as build_config
from .exceptions import EmptySecret as EmptySecret
from .exceptions import InvalidDigitCount as InvalidDigitCount
from .exceptions import InvalidPeriod as InvalidPeriod
from .exceptions import InvalidSecretEncoding as InvalidSecretEncoding
from .exceptions import OtpError as OtpError
from .exceptions import UnsupportedAlgorithm as UnsupportedAlgorithm
from .hotp import HOTP as HOTP
from .otp import OTP as OTP
from .otp import hotp as hotp
from .scheduler import RefreshScheduler as RefreshScheduler
from .scheduler import State as State
from .scheduler import Update as Update
from .totp import TOTP as TOTP
from .totp import remaining_seconds as remaining_seconds
from .totp import totp as totp
from .utils import decode as decode
from .utils import encode as encode

logging.getLogger(__name__).addHandler(logging.NullHandler())


def parse_uri(uri: str) -> OTP:
    """
    Parses the provisioning URI for the OTP; works for either TOTP or HOTP.

    See also:
        https://github.com/google/google-authenticator/wiki/Key-Uri-Format

    :param uri: the hotp/totp URI to parse
    :returns: OTP object
    """
    # otpauth://totp/FooCorp:alice@example.com?secret=JBSWY3DPEHPK3PXP&issuer=FooCorp&period=30

    secret = None

    # Data we'll parse to the correct constructor
    otp_data: Dict[str, Any] = {}

    parsed_uri = urlparse(unquote(uri))

    if parsed_uri.scheme != "otpauth":
        raise ValueError("Not an otpauth URI")

    accountinfo_parts = split(":|%3A", parsed_uri.path[1:], maxsplit=1)
    if len(accountinfo_parts) == 1:
        otp_data["name"] = accountinfo_parts[0]
    else:
        otp_data["issuer"] = accountinfo_parts[0]
        otp_data["name"] = accountinfo_parts[1]

    for key, value in parse_qsl(parsed_uri.query):
        if key == "secret":
            secret = value
        elif key == "issuer":
            if "issuer" in otp_data and otp_data["issuer"] is not None and otp_data["issuer"] != value:
                raise ValueError("If issuer is specified in both label and parameters, it should be equal.")
            otp_data["issuer"] = value
        elif key == "algorithm":
            otp_data["algorithm"] = Algorithm.resolve(value)
        elif key == "digits":
            otp_data["digits"] = int(value)
        elif key == "period":
            otp_data["interval"] = int(value)
        elif key == "counter":
            otp_data["initial_count"] = int(value)

    if not secret:
        raise EmptySecret("No secret found in URI")

    if parsed_uri.netloc == "totp":
        otp_data.pop("initial_count", None)
        return TOTP(secret, **otp_data)
    elif parsed_uri.netloc == "hotp":
        otp_data.pop("interval", None)
        return HOTP(secret, **otp_data)
    raise ValueError("Not a supported OTP type")
