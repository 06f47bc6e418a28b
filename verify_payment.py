# verify_payment.py
"""
Token payment verification.

Checks that a transaction sent an exact amount of the configured token to
the treasury:
1. fetch the finalized receipt from the chain-data provider
2. reject reverted transactions
3. decode Transfer logs emitted by the token contract
4. compare each transfer to the treasury against the expected amount

Amounts are compared as exact Decimals. There is no tolerance: 0.010001 is
not 0.01.
"""

import asyncio
import inspect
from decimal import Decimal

from erc20_utils import as_decimal, format_amount, token_to_human
from errors import ProviderError
from log_decoder import decode
from log_utils import get_logger
from payment_models import TransactionReceipt, VerificationRequest, VerificationResult
from receipt_provider import AsyncReceiptProvider, ReceiptProvider, normalize_tx_hash

logger = get_logger(__name__)


def match_receipt(receipt: TransactionReceipt, request: VerificationRequest) -> VerificationResult:
    """Decide match / no-match for an already fetched receipt."""
    tx_hash = request.transaction_id

    if not receipt.status:
        logger.info(f"Tx {tx_hash} failed or reverted, nothing to credit")
        return VerificationResult(transaction_id=tx_hash, verified=False, reverted=True)

    token = request.token_contract_address.lower()
    treasury = request.treasury_address.lower()
    observed: list[Decimal] = []

    for log in receipt.logs:
        # only logs emitted by the token contract
        if log.address.lower() != token:
            continue

        transfer = decode(log)
        if transfer is None:
            continue

        if transfer.to_address != treasury:
            continue

        amount = token_to_human(transfer.raw_amount, request.token_decimals)
        observed.append(amount)
        logger.info(f"Transfer found in {tx_hash}: {format_amount(amount)} -> treasury")

        if amount == request.expected_amount:
            logger.info(f"Verified {tx_hash}: amount matches {request.expected_amount}")
            return VerificationResult(
                transaction_id=tx_hash,
                verified=True,
                observed_amounts=observed,
                matched_transfer=transfer,
            )

        logger.warning(
            f"Mismatch in {tx_hash}: expected {request.expected_amount}, got {format_amount(amount)}"
        )

    if not observed:
        logger.info(f"No token transfer to treasury found in {tx_hash}")
    return VerificationResult(transaction_id=tx_hash, verified=False, observed_amounts=observed)


class TransferVerifier:
    """
    Verifies payments for one deployment.

    Treasury address, token contract and decimals are fixed at construction;
    each verify() call only carries the transaction hash and the amount.
    """

    def __init__(
        self,
        provider: ReceiptProvider | AsyncReceiptProvider,
        treasury_address: str,
        token_address: str,
        token_decimals: int,
    ):
        if token_decimals < 0:
            raise ValueError("token_decimals must not be negative")
        self.provider = provider
        self.treasury_address = treasury_address
        self.token_address = token_address
        self.token_decimals = token_decimals

    def _provider_is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.provider.get_transaction_receipt)

    def build_request(self, tx_hash: str, expected_amount) -> VerificationRequest:
        return VerificationRequest(
            transaction_id=normalize_tx_hash(tx_hash),
            expected_amount=as_decimal(expected_amount),
            treasury_address=self.treasury_address,
            token_contract_address=self.token_address,
            token_decimals=self.token_decimals,
        )

    def verify(self, tx_hash: str, expected_amount) -> VerificationResult:
        """
        Raises NotFoundError for a malformed or unknown hash and
        ProviderError when the provider cannot answer.
        """
        if self._provider_is_async():
            raise TypeError("verify() needs a blocking provider, use averify() with an async one")
        request = self.build_request(tx_hash, expected_amount)
        logger.info(f"Checking transaction {request.transaction_id}...")
        receipt = self.provider.get_transaction_receipt(request.transaction_id)
        return match_receipt(receipt, request)

    async def averify(
        self, tx_hash: str, expected_amount, timeout: float | None = None
    ) -> VerificationResult:
        """
        Async variant for an AsyncReceiptProvider. `timeout` bounds the
        receipt fetch; when it expires the call fails with ProviderError
        (cancelled=True).
        """
        if not self._provider_is_async():
            raise TypeError("averify() needs an async provider, use verify() with a blocking one")
        request = self.build_request(tx_hash, expected_amount)
        logger.info(f"Checking transaction {request.transaction_id}...")
        try:
            receipt = await asyncio.wait_for(
                self.provider.get_transaction_receipt(request.transaction_id),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Receipt fetch for {request.transaction_id} timed out after {timeout}s")
            raise ProviderError(
                f"Timed out fetching receipt for {request.transaction_id}", cancelled=True
            ) from e
        return match_receipt(receipt, request)


def verify_token_payment(
    tx_hash: str,
    expected_amount,
    provider: ReceiptProvider,
    treasury_address: str,
    token_address: str,
    token_decimals: int = 6,
) -> VerificationResult:
    """One-shot helper: build a verifier for the given deployment and run it."""
    verifier = TransferVerifier(
        provider=provider,
        treasury_address=treasury_address,
        token_address=token_address,
        token_decimals=token_decimals,
    )
    return verifier.verify(tx_hash, expected_amount)
