# treasury.py
"""
Treasury account provisioning and holdings.

Two backends:
- CdpTreasury: a named account held by the Coinbase CDP wallet API, so the
  same name always resolves to the same address.
- LocalTreasury: an account derived from a local private key (or a fixed
  address), balances read straight from the token contracts.

Verification never calls into this module; it only tells the deployment
which address is the treasury and what it holds.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from cdp import CdpClient
from eth_account import Account
from web3 import Web3
from web3.exceptions import Web3Exception

from chain_utils import PaymentSettings
from erc20_utils import fetch_token_metadata, get_erc20_contract, token_to_human
from errors import ConfigError, TreasuryError
from log_utils import get_logger

logger = get_logger(__name__)

DEFAULT_ACCOUNT_NAME = "payments-treasury"


@dataclass(frozen=True)
class TreasuryAccount:
    address: str
    name: str | None = None


@dataclass(frozen=True)
class TokenBalance:
    token: str
    symbol: str | None
    raw_amount: int
    decimals: int

    @property
    def amount(self) -> Decimal:
        return token_to_human(self.raw_amount, self.decimals)


class TreasuryService(Protocol):
    def get_or_create_account(self, name: str) -> TreasuryAccount: ...

    def list_token_balances(self, address: str, network: str) -> list[TokenBalance]: ...


class CdpTreasury:
    """
    Named EVM account on the CDP wallet API. Credentials come from
    CDP_API_KEY_ID / CDP_API_KEY_SECRET / CDP_WALLET_SECRET, which the SDK
    reads itself.
    """

    def __init__(self, client_factory=CdpClient):
        self.client_factory = client_factory

    async def aget_or_create_account(self, name: str) -> TreasuryAccount:
        try:
            async with self.client_factory() as cdp:
                account = await cdp.evm.get_or_create_account(name=name)
        except Exception as e:
            raise TreasuryError(f"CDP account lookup for {name!r} failed: {e}") from e
        return TreasuryAccount(address=account.address, name=name)

    async def alist_token_balances(self, address: str, network: str) -> list[TokenBalance]:
        try:
            async with self.client_factory() as cdp:
                result = await cdp.evm.list_token_balances(address=address, network=network)
        except Exception as e:
            raise TreasuryError(f"CDP balance listing for {address} failed: {e}") from e

        return [
            TokenBalance(
                token=b.token.contract_address,
                symbol=getattr(b.token, "symbol", None),
                raw_amount=int(b.amount.amount),
                decimals=int(b.amount.decimals),
            )
            for b in result.balances
        ]

    def get_or_create_account(self, name: str) -> TreasuryAccount:
        return asyncio.run(self.aget_or_create_account(name))

    def list_token_balances(self, address: str, network: str) -> list[TokenBalance]:
        return asyncio.run(self.alist_token_balances(address, network))


class LocalTreasury:
    """Treasury held by a local key; holdings are read with ERC20 calls."""

    def __init__(
        self,
        w3: Web3,
        token_addresses: list[str],
        private_key: str | None = None,
        address: str | None = None,
    ):
        if not private_key and not address:
            raise ConfigError("TREASURY_PRIVATE_KEY or TREASURY_ADDRESS must be set")
        self.w3 = w3
        self.token_addresses = list(token_addresses)
        self.private_key = private_key
        self.address = address

    def get_or_create_account(self, name: str) -> TreasuryAccount:
        # a local treasury has exactly one account; the name is only a label
        if self.private_key:
            return TreasuryAccount(address=Account.from_key(self.private_key).address, name=name)
        return TreasuryAccount(address=Web3.to_checksum_address(self.address), name=name)

    def list_token_balances(self, address: str, network: str) -> list[TokenBalance]:
        owner = Web3.to_checksum_address(address)
        balances = []
        for token_addr in self.token_addresses:
            try:
                symbol, decimals = fetch_token_metadata(self.w3, token_addr)
                raw = get_erc20_contract(self.w3, token_addr).functions.balanceOf(owner).call()
            except (Web3Exception, OSError) as e:
                raise TreasuryError(f"Balance read for {token_addr} on {network} failed: {e}") from e
            balances.append(
                TokenBalance(token=token_addr, symbol=symbol, raw_amount=raw, decimals=decimals)
            )
        return balances


def build_treasury(settings: PaymentSettings, w3: Web3) -> TreasuryService:
    if settings.treasury_backend == "cdp":
        return CdpTreasury()
    return LocalTreasury(
        w3,
        token_addresses=[settings.token_address],
        private_key=settings.treasury_private_key,
        address=settings.treasury_address,
    )


def resolve_treasury_address(settings: PaymentSettings, treasury: TreasuryService) -> str:
    """Configured TREASURY_ADDRESS wins; otherwise provision the named account."""
    if settings.treasury_address:
        return settings.treasury_address
    name = settings.treasury_account_name or DEFAULT_ACCOUNT_NAME
    account = treasury.get_or_create_account(name)
    logger.info(f"Treasury account {name!r} resolved to {account.address}")
    return account.address
