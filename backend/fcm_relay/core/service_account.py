import base64
import binascii
import json
import logging
from dataclasses import dataclass, field

from fcm_relay.core.config import Settings
from fcm_relay.core.security import CredentialError, load_private_key

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("client_email", "private_key", "project_id")


class ConfigurationError(RuntimeError):
    pass


@dataclass(frozen=True)
class ServiceAccountCredential:
    client_email: str
    private_key: str = field(repr=False)
    project_id: str


def decode_service_account(encoded: str) -> ServiceAccountCredential:
    """Decode a base64 service-account JSON document and validate its key."""
    try:
        raw = base64.b64decode(encoded.strip(), validate=True)
        document = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError(
            "FIREBASE_SERVICE_ACCOUNT_KEY_BASE64 is not base64-encoded JSON"
        ) from exc

    if not isinstance(document, dict):
        raise ConfigurationError("Service account document must be a JSON object")

    missing = [
        name
        for name in REQUIRED_FIELDS
        if not isinstance(document.get(name), str) or not document[name].strip()
    ]
    if missing:
        raise ConfigurationError(
            f"Service account document is missing fields: {', '.join(missing)}"
        )

    try:
        load_private_key(document["private_key"])
    except CredentialError as exc:
        raise ConfigurationError(f"Service account private key is unusable: {exc}") from exc

    return ServiceAccountCredential(
        client_email=document["client_email"],
        private_key=document["private_key"],
        project_id=document["project_id"],
    )


def load_service_account(settings: Settings) -> ServiceAccountCredential:
    secret = settings.FIREBASE_SERVICE_ACCOUNT_KEY_BASE64
    if secret is None or not secret.get_secret_value().strip():
        raise ConfigurationError("FIREBASE_SERVICE_ACCOUNT_KEY_BASE64 is not set")

    credential = decode_service_account(secret.get_secret_value())
    logger.info(
        "Loaded service account %s for project %s",
        credential.client_email,
        credential.project_id,
    )
    return credential
