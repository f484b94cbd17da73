"""
Time based one-time password codes (RFC 6238) on top of pyotp.
"""
import base64
import binascii
import hashlib
import time
import urllib.parse
from dataclasses import dataclass

import pyotp

from passvault.vault.entities import Totp
from passvault.vault.errors import CryptoError

DIGESTS = {
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
    "SHA512": hashlib.sha512,
}


@dataclass(frozen=True)
class TotpCode:
    code: str
    valid_for_seconds: int

    def __str__(self):
        half = len(self.code) // 2
        return f"{self.code[:half]} {self.code[half:]}"


def _digest(algorithm: str):
    name = algorithm.upper().replace("-", "")
    try:
        return DIGESTS[name]
    except KeyError:
        raise CryptoError(
            f"Unsupported TOTP algorithm '{algorithm}', use one of {', '.join(DIGESTS)}"
        ) from None


def _base32_secret(totp: Totp) -> str:
    if totp.encoding == "plain":
        return base64.b32encode(totp.secret.encode("utf-8")).decode("ascii")
    if totp.encoding != "base32":
        raise CryptoError(f"Unknown TOTP secret encoding '{totp.encoding}'")

    secret = totp.secret.replace(" ", "").upper()
    try:
        base64.b32decode(secret + "=" * (-len(secret) % 8))
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"TOTP secret for '{totp.label}' is not valid base32") from e
    return secret


def compute(totp: Totp, now: int | float | None = None) -> TotpCode:
    """
    Compute the code for `totp` at unix time `now` (defaults to the clock).

    Raises:
        CryptoError: Unsupported algorithm, malformed secret, or a
            period/digit count below one.
    """
    if totp.period_seconds < 1:
        raise CryptoError(f"Invalid TOTP period {totp.period_seconds}")
    if totp.digits < 1:
        raise CryptoError(f"Invalid TOTP digit count {totp.digits}")

    now = int(time.time() if now is None else now)
    try:
        generator = pyotp.TOTP(
            _base32_secret(totp),
            digits=totp.digits,
            digest=_digest(totp.algorithm),
            interval=totp.period_seconds,
        )
        code = generator.at(now)
    except ValueError as e:
        raise CryptoError(f"Cannot compute TOTP code for '{totp.label}': {e}") from e
    return TotpCode(
        code=code,
        valid_for_seconds=totp.period_seconds - now % totp.period_seconds,
    )


def otpauth_uri(totp: Totp) -> str:
    """Build the otpauth:// provisioning URI for an entry."""
    if not totp.secret or not totp.label:
        raise ValueError("secret and label are required")

    uri = f"otpauth://totp/{urllib.parse.quote(totp.label)}?secret={_base32_secret(totp)}"

    if totp.issuer:
        uri += f"&issuer={urllib.parse.quote(totp.issuer)}"

    uri += f"&period={totp.period_seconds}&algorithm={totp.algorithm}&digits={totp.digits}"

    return uri


def parse_otpauth_uri(uri: str) -> Totp:
    """Create a Totp entry from an otpauth:// URI."""
    try:
        otp = pyotp.parse_uri(uri)
    except ValueError as e:
        raise CryptoError(f"Invalid otpauth URI: {e}") from e
    if not isinstance(otp, pyotp.TOTP):
        raise CryptoError("Only time based (totp) URIs are supported")

    algorithm = next(
        (name for name, fn in DIGESTS.items() if otp.digest().name == fn().name),
        "SHA1",
    )
    return Totp(
        label=otp.name or "",
        issuer=otp.issuer or "",
        secret=otp.secret,
        algorithm=algorithm,
        period_seconds=otp.interval,
        digits=otp.digits,
    )
