"""Tests for treasury provisioning backends."""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from web3 import Web3
from web3.exceptions import Web3Exception

from chain_fixtures import TOKEN, TREASURY
from chain_utils import PaymentSettings
from errors import ConfigError, TreasuryError
from treasury import (
    DEFAULT_ACCOUNT_NAME,
    CdpTreasury,
    LocalTreasury,
    TokenBalance,
    build_treasury,
    resolve_treasury_address,
)

# well-known example key, never funded
PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
KEY_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"


class FakeCdpClient:
    """Async context manager standing in for cdp.CdpClient."""

    def __init__(self, evm):
        self.evm = evm

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def cdp_factory(evm):
    return lambda: FakeCdpClient(evm)


def token_w3(symbol="USDC", decimals=6, balance=1_250_000):
    w3 = MagicMock()
    functions = w3.eth.contract.return_value.functions
    functions.symbol.return_value.call.return_value = symbol
    functions.decimals.return_value.call.return_value = decimals
    functions.balanceOf.return_value.call.return_value = balance
    return w3


class TestTokenBalance:
    def test_amount_is_scaled(self):
        balance = TokenBalance(token=TOKEN, symbol="USDC", raw_amount=1_250_000, decimals=6)
        assert balance.amount == Decimal("1.25")


class TestCdpTreasury:
    def test_get_or_create_account(self):
        evm = SimpleNamespace(get_or_create_account=AsyncMock(return_value=SimpleNamespace(address=TREASURY)))

        account = CdpTreasury(cdp_factory(evm)).get_or_create_account("shop")

        assert account.address == TREASURY
        assert account.name == "shop"
        evm.get_or_create_account.assert_awaited_once_with(name="shop")

    def test_list_token_balances(self):
        listing = SimpleNamespace(
            balances=[
                SimpleNamespace(
                    token=SimpleNamespace(contract_address=TOKEN, symbol="USDC"),
                    amount=SimpleNamespace(amount=10000, decimals=6),
                )
            ]
        )
        evm = SimpleNamespace(list_token_balances=AsyncMock(return_value=listing))

        balances = CdpTreasury(cdp_factory(evm)).list_token_balances(TREASURY, "base")

        assert balances == [TokenBalance(token=TOKEN, symbol="USDC", raw_amount=10000, decimals=6)]
        evm.list_token_balances.assert_awaited_once_with(address=TREASURY, network="base")

    def test_sdk_failure_is_treasury_error(self):
        evm = SimpleNamespace(get_or_create_account=AsyncMock(side_effect=RuntimeError("401 unauthorized")))

        with pytest.raises(TreasuryError, match="unauthorized"):
            CdpTreasury(cdp_factory(evm)).get_or_create_account("shop")


class TestLocalTreasury:
    def test_requires_key_or_address(self):
        with pytest.raises(ConfigError):
            LocalTreasury(MagicMock(), [TOKEN])

    def test_account_from_private_key(self):
        treasury = LocalTreasury(MagicMock(), [TOKEN], private_key=PRIVATE_KEY)
        assert treasury.get_or_create_account("shop").address == KEY_ADDRESS

    def test_account_from_address(self):
        treasury = LocalTreasury(MagicMock(), [TOKEN], address=TREASURY.lower())
        assert treasury.get_or_create_account("shop").address == Web3.to_checksum_address(TREASURY)

    def test_list_token_balances(self):
        treasury = LocalTreasury(token_w3(), [TOKEN], address=TREASURY)

        balances = treasury.list_token_balances(TREASURY, "base")

        assert len(balances) == 1
        assert balances[0].symbol == "USDC"
        assert balances[0].amount == Decimal("1.25")

    def test_rpc_failure_is_treasury_error(self):
        w3 = token_w3()
        w3.eth.contract.return_value.functions.symbol.return_value.call.side_effect = Web3Exception("down")

        with pytest.raises(TreasuryError):
            LocalTreasury(w3, [TOKEN], address=TREASURY).list_token_balances(TREASURY, "base")


class TestResolve:
    def settings(self, **overrides):
        values = {"rpc_url": "http://localhost:8545", "network": "base", "token_address": TOKEN}
        values.update(overrides)
        return PaymentSettings(**values)

    def test_configured_address_wins(self):
        treasury = MagicMock()

        assert resolve_treasury_address(self.settings(treasury_address=TREASURY), treasury) == TREASURY
        treasury.get_or_create_account.assert_not_called()

    def test_named_account(self):
        treasury = MagicMock()
        treasury.get_or_create_account.return_value = SimpleNamespace(address=KEY_ADDRESS)

        address = resolve_treasury_address(self.settings(treasury_account_name="shop"), treasury)

        assert address == KEY_ADDRESS
        treasury.get_or_create_account.assert_called_once_with("shop")

    def test_default_account_name(self):
        treasury = MagicMock()
        treasury.get_or_create_account.return_value = SimpleNamespace(address=KEY_ADDRESS)

        resolve_treasury_address(self.settings(), treasury)

        treasury.get_or_create_account.assert_called_once_with(DEFAULT_ACCOUNT_NAME)

    def test_build_local(self):
        treasury = build_treasury(self.settings(treasury_private_key=PRIVATE_KEY), MagicMock())
        assert isinstance(treasury, LocalTreasury)
        assert treasury.token_addresses == [TOKEN]

    def test_build_cdp(self):
        treasury = build_treasury(self.settings(treasury_backend="cdp"), MagicMock())
        assert isinstance(treasury, CdpTreasury)
