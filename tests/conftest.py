"""Pytest configuration and fixtures."""

import pytest

from chain_fixtures import TOKEN, TREASURY, FakeProvider
from verify_payment import TransferVerifier


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def verifier(provider):
    return TransferVerifier(
        provider=provider,
        treasury_address=TREASURY,
        token_address=TOKEN,
        token_decimals=6,
    )
