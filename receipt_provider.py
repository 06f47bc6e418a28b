# receipt_provider.py
"""
Chain-data provider adapters.

The verifier only needs one read call, get_transaction_receipt. These
adapters wrap a web3 client, turn its AttributeDict receipts into
TransactionReceipt values and translate client exceptions into the
ProviderError / NotFoundError pair.
"""

import re
from typing import Protocol

import aiohttp
import requests
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from errors import NotFoundError, ProviderError
from log_utils import get_logger
from payment_models import LogEntry, TransactionReceipt

logger = get_logger(__name__)

TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


class ReceiptProvider(Protocol):
    def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt: ...


class AsyncReceiptProvider(Protocol):
    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt: ...


def normalize_tx_hash(tx_hash: str) -> str:
    """0x-prefixed lowercase hash, or NotFoundError if it cannot be one."""
    if not isinstance(tx_hash, str):
        raise NotFoundError("Transaction hash must be a string", tx_hash=None)
    candidate = tx_hash.strip()
    if not candidate.startswith(("0x", "0X")):
        candidate = "0x" + candidate
    if not TX_HASH_RE.match(candidate):
        raise NotFoundError(f"Malformed transaction hash: {tx_hash!r}", tx_hash=tx_hash)
    return "0x" + candidate[2:].lower()


def _to_hex(value) -> str:
    if isinstance(value, str):
        return value
    return Web3.to_hex(value)


def receipt_from_web3(tx_hash: str, raw) -> TransactionReceipt:
    """
    Convert a web3 receipt (AttributeDict or plain JSON-RPC dict) into a
    TransactionReceipt. Missing or mistyped fields raise ProviderError.
    """
    if raw is None:
        raise NotFoundError(f"Transaction {tx_hash} not found", tx_hash=tx_hash)

    try:
        status = raw["status"]
        if isinstance(status, str):
            status = int(status, 16)
        if status not in (0, 1):
            raise ValueError(f"status {status!r}")
        logs = tuple(
            LogEntry(
                address=_to_hex(log["address"]),
                topics=tuple(_to_hex(t) for t in log["topics"]),
                data=_to_hex(log["data"]),
            )
            for log in raw["logs"]
        )
        block_number = raw.get("blockNumber")
        if isinstance(block_number, str):
            block_number = int(block_number, 16)
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderError(f"Malformed receipt for {tx_hash}: {e}") from e

    return TransactionReceipt(
        transaction_hash=tx_hash,
        status=status == 1,
        logs=logs,
        block_number=block_number,
    )


class Web3ReceiptProvider:
    """Blocking provider over Web3(HTTPProvider). The HTTP timeout bounds each fetch."""

    def __init__(self, w3: Web3):
        self.w3 = w3

    def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt:
        try:
            raw = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound as e:
            raise NotFoundError(f"Transaction {tx_hash} not found", tx_hash=tx_hash) from e
        except requests.exceptions.Timeout as e:
            logger.error(f"Receipt fetch for {tx_hash} timed out: {e}")
            raise ProviderError(f"Timed out fetching receipt for {tx_hash}", cancelled=True) from e
        except (requests.exceptions.RequestException, Web3Exception, OSError) as e:
            logger.error(f"Receipt fetch for {tx_hash} failed: {e}")
            raise ProviderError(f"Could not fetch receipt for {tx_hash}: {e}") from e
        return receipt_from_web3(tx_hash, raw)


class AsyncWeb3ReceiptProvider:
    """Async provider over AsyncWeb3(AsyncHTTPProvider); the caller applies the deadline."""

    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt:
        try:
            raw = await self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound as e:
            raise NotFoundError(f"Transaction {tx_hash} not found", tx_hash=tx_hash) from e
        except (aiohttp.ClientError, Web3Exception, OSError) as e:
            logger.error(f"Receipt fetch for {tx_hash} failed: {e}")
            raise ProviderError(f"Could not fetch receipt for {tx_hash}: {e}") from e
        return receipt_from_web3(tx_hash, raw)
