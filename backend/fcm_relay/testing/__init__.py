"""
Shared test utilities and factories.

Re-exports all factory functions for convenient imports:
    from fcm_relay.testing import FakeFCM, create_service_account
"""

from fcm_relay.testing.factories import (
    TEST_CLIENT_EMAIL,
    TEST_PROJECT_ID,
    FakeFCM,
    create_service_account,
    create_service_account_document,
    encode_service_account,
    generate_ec_private_key_pem,
    generate_private_key_pem,
    public_key_pem,
)

__all__ = [
    "TEST_CLIENT_EMAIL",
    "TEST_PROJECT_ID",
    "FakeFCM",
    "create_service_account",
    "create_service_account_document",
    "encode_service_account",
    "generate_ec_private_key_pem",
    "generate_private_key_pem",
    "public_key_pem",
]
