"""
Shared pytest fixtures.
"""

import json
import time
from typing import Any, Dict

import jwt
import pytest

from service_oidc.app.config import StrategyConfig

ISSUER = "https://op.example"
CLIENT_ID = "abc"
SIGNING_KEY = "test-signing-key-for-hs256-id-tokens"


def encode_id_token(claims: Dict[str, Any]) -> str:
    """HS256 compact JWS over ``claims``, serialized as given.

    Signs the JSON payload directly so claims of the wrong type survive.
    """
    return jwt.api_jws.encode(json.dumps(claims).encode(), SIGNING_KEY, algorithm="HS256")


@pytest.fixture
def id_token_claims():
    """Claims of a valid ID token for the test relying party."""
    now = int(time.time())
    return {
        "iss": ISSUER,
        "sub": "248289761001",
        "aud": CLIENT_ID,
        "exp": now + 3600,
        "iat": now,
        "name": "Jane Doe",
        "preferred_username": "j.doe",
        "email": "janedoe@example.com",
    }


@pytest.fixture
def make_id_token():
    """Factory turning a claims dict into a compact ID token."""
    return encode_id_token


@pytest.fixture
def strategy_config():
    """Strategy configuration for the reference provider."""
    return StrategyConfig(
        issuer=ISSUER,
        authorization_url=f"{ISSUER}/authorize",
        token_url=f"{ISSUER}/token",
        userinfo_url=f"{ISSUER}/userinfo",
        client_id=CLIENT_ID,
        client_secret="secret",
        callback_url="https://rp.example/cb",
    )
