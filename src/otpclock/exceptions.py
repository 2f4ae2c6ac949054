class OtpError(ValueError):
    """
    Base class for every OTP input failure.

    These are validation failures, never fatal: a bad secret or a bad digit
    count just means no code can be produced for the current input.
    """


class EmptySecret(OtpError):
    """The secret was empty (or only padding/whitespace)."""


class InvalidSecretEncoding(OtpError):
    """The secret is not valid RFC 4648 base32."""


class InvalidDigitCount(OtpError):
    """The code length is outside the supported range."""


class InvalidPeriod(OtpError):
    """The period is not a supported number of seconds."""


class UnsupportedAlgorithm(OtpError):
    """The hash algorithm is not one of SHA1, SHA256 or SHA512."""
