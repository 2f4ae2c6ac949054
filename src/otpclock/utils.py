import base64
import binascii
from typing import Dict, Optional, Union
from urllib.parse import quote, urlencode, urlparse

from .exceptions import EmptySecret, InvalidSecretEncoding

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_CASELESS_ALPHABET = frozenset(BASE32_ALPHABET + BASE32_ALPHABET.lower())

# An RFC 4648 encoder only ever emits a final group of 2, 4, 5 or 7
# characters (1, 2, 3 or 4 trailing bytes). Any other remainder cannot be
# resolved to whole bytes.
_VALID_REMAINDERS = (0, 2, 4, 5, 7)


def decode(secret: str) -> bytes:
    """
    Decodes a user-entered base32 secret into raw bytes.

    Whitespace and ``=`` padding are ignored and the alphabet is matched
    case-insensitively, so "jbsw y3dp ehpk 3pxp" and "JBSWY3DPEHPK3PXP"
    decode to the same key.

    :param secret: the base32 secret as typed or pasted by the user
    :returns: the secret bytes
    :raises EmptySecret: nothing is left once padding and whitespace are gone
    :raises InvalidSecretEncoding: the input is not RFC 4648 base32
    """
    cleaned = "".join(secret.split()).rstrip("=")
    if not cleaned:
        raise EmptySecret("secret is empty")

    # checked before upper(): Unicode case mapping turns "ı" into "I" and "ß" into "SS"
    for char in cleaned:
        if char not in _CASELESS_ALPHABET:
            raise InvalidSecretEncoding("{!r} is not a base32 character".format(char))
    cleaned = cleaned.upper()

    remainder = len(cleaned) % 8
    if remainder not in _VALID_REMAINDERS:
        raise InvalidSecretEncoding("base32 secret of length {} does not decode to whole bytes".format(len(cleaned)))

    # b32decode wants the input padded back to a multiple of 8
    if remainder:
        cleaned += "=" * (8 - remainder)
    try:
        return base64.b32decode(cleaned, casefold=True)
    except binascii.Error as e:
        raise InvalidSecretEncoding(str(e)) from e


def encode(data: bytes, padding: bool = False) -> str:
    """
    Encodes raw secret bytes as base32.

    The otpauth scheme does not use padding, so it is stripped unless asked for.
    """
    encoded = base64.b32encode(data).decode("ascii")
    if padding:
        return encoded
    return encoded.rstrip("=")


def build_uri(
    secret: str,
    name: str,
    initial_count: Optional[int] = None,
    issuer: Optional[str] = None,
    algorithm: Optional[str] = None,
    digits: Optional[int] = None,
    period: Optional[int] = None,
    **kwargs,
) -> str:
    """
    Returns the provisioning URI for the OTP; works for either TOTP or HOTP.

    This can then be encoded in a QR Code and used to provision an
    authenticator app.

    See also:
        https://github.com/google/google-authenticator/wiki/Key-Uri-Format

    :param secret: the base32 secret used to generate the URI
    :param name: name of the account
    :param initial_count: starting counter value, defaults to None.
        If none, the OTP type will be assumed as TOTP.
    :param issuer: the name of the OTP issuer
    :param algorithm: the algorithm used in the OTP generation.
    :param digits: the length of the OTP generated code.
    :param period: the number of seconds the OTP generator is set to
        expire every code.
    :param kwargs: other query string parameters to include in the URI
    :returns: provisioning uri
    """
    # initial_count may be 0 as a valid param
    is_initial_count_present = initial_count is not None

    # only non-default values go in the URI
    is_algorithm_set = algorithm is not None and algorithm.upper() != "SHA1"
    is_digits_set = digits is not None and digits != 6
    is_period_set = period is not None and period != 30

    otp_type = "hotp" if is_initial_count_present else "totp"
    base_uri = "otpauth://{0}/{1}?{2}"
    url_args: Dict[str, Union[None, int, str]] = {"secret": secret}

    label = quote(name)
    if issuer is not None:
        label = quote(issuer) + ":" + label
        url_args["issuer"] = issuer

    if is_initial_count_present:
        url_args["counter"] = initial_count
    if is_algorithm_set:
        url_args["algorithm"] = algorithm.upper()  # type: ignore
    if is_digits_set:
        url_args["digits"] = digits
    if is_period_set:
        url_args["period"] = period
    for k, v in kwargs.items():
        if not isinstance(v, str):
            raise ValueError("All otpauth uri parameters must be strings")
        if k == "image":
            image_uri = urlparse(v)
            if image_uri.scheme != "https" or not image_uri.netloc or not image_uri.path:
                raise ValueError("{} is not a valid url".format(image_uri))
        url_args[k] = v

    return base_uri.format(otp_type, label, urlencode(url_args).replace("+", "%20"))

