from __future__ import annotations

import pytest

from .mock_utils import generate_key_pair, private_key_pem


@pytest.fixture(scope="session")
def rsa_private_key():
    return generate_key_pair(2048)


@pytest.fixture(scope="session")
def rsa_private_key_pem(rsa_private_key) -> str:
    return private_key_pem(rsa_private_key)
