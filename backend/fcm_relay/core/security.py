"""Signed JWT assertions for the OAuth2 service-account flow.

The assertion proves the relay's identity to Google's token endpoint: a short
claim set (issuer, scope, audience, issue/expiry times) signed RS256 with the
service account's PKCS8 private key.
"""

from __future__ import annotations

import base64
import binascii
import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from jose import JWTError, jwt
from jose.exceptions import JWKError, JWSError

if TYPE_CHECKING:
    from fcm_relay.core.service_account import ServiceAccountCredential

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
TOKEN_AUDIENCE = "https://oauth2.googleapis.com/token"
ASSERTION_ALGORITHM = "RS256"
ASSERTION_LIFETIME_SECONDS = 3600

_PEM_MARKER_RE = re.compile(r"-----(BEGIN|END) PRIVATE KEY-----")
_WHITESPACE_RE = re.compile(r"\s+")


class CredentialError(Exception):
    """The service-account private key could not be imported or used to sign."""


@dataclass(frozen=True)
class SignedAssertion:
    header: dict[str, Any]
    claims: dict[str, Any]
    token: str = field(repr=False)

    def __str__(self) -> str:
        return self.token


def load_private_key(pem: str) -> RSAPrivateKey:
    """Import a PEM-encoded PKCS8 RSA private key.

    The PEM markers and all whitespace (including escaped newlines already
    turned into real ones by the JSON decoder) are stripped, and the remaining
    base64 body is parsed as DER.
    """
    body = _WHITESPACE_RE.sub("", _PEM_MARKER_RE.sub("", pem or ""))
    if not body:
        raise CredentialError("Private key is empty")
    try:
        der = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CredentialError("Private key is not valid base64") from exc

    try:
        key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError) as exc:
        raise CredentialError("Private key is not a valid PKCS8 key") from exc

    if not isinstance(key, RSAPrivateKey):
        raise CredentialError("Private key is not an RSA key")
    return key


def build_claims(credential: ServiceAccountCredential, now: int) -> dict[str, Any]:
    return {
        "iss": credential.client_email,
        "scope": FCM_SCOPE,
        "aud": TOKEN_AUDIENCE,
        "iat": now,
        "exp": now + ASSERTION_LIFETIME_SECONDS,
    }


def sign_assertion(
    credential: ServiceAccountCredential,
    now: Optional[int] = None,
) -> SignedAssertion:
    """Build and sign a fresh assertion for ``credential``.

    Raises CredentialError when the key cannot be imported or signing fails;
    there is no fallback key.
    """
    issued_at = int(time.time()) if now is None else int(now)
    claims = build_claims(credential, issued_at)
    private_key = load_private_key(credential.private_key)

    signing_key = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")

    try:
        token = jwt.encode(claims, signing_key, algorithm=ASSERTION_ALGORITHM)
    except (JWTError, JWSError, JWKError) as exc:
        raise CredentialError(f"Failed to sign assertion: {exc}") from exc

    header = jwt.get_unverified_header(token)
    return SignedAssertion(header=header, claims=claims, token=token)
