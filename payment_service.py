# payment_service.py
from dataclasses import dataclass

from chain_utils import PaymentSettings, get_web3
from log_utils import get_logger
from receipt_provider import Web3ReceiptProvider
from treasury import TokenBalance, TreasuryService, build_treasury, resolve_treasury_address
from verify_payment import TransferVerifier

logger = get_logger(__name__)


@dataclass
class PaymentService:
    """Wired-up verifier and treasury for one deployment."""

    settings: PaymentSettings
    verifier: TransferVerifier
    treasury: TreasuryService
    treasury_address: str

    def holdings(self) -> list[TokenBalance]:
        return self.treasury.list_token_balances(self.treasury_address, self.settings.network)


def build_payment_service(settings: PaymentSettings | None = None) -> PaymentService:
    """
    Resolve the treasury address once and build a verifier around it.
    Raises ConfigError / TreasuryError if the deployment cannot be set up.
    """
    settings = settings or PaymentSettings.from_env()
    w3 = get_web3(settings)
    treasury = build_treasury(settings, w3)
    treasury_address = resolve_treasury_address(settings, treasury)

    verifier = TransferVerifier(
        provider=Web3ReceiptProvider(w3),
        treasury_address=treasury_address,
        token_address=settings.token_address,
        token_decimals=settings.token_decimals,
    )
    logger.info(
        f"Payment service ready: network={settings.network} token={settings.token_address} "
        f"treasury={treasury_address}"
    )
    return PaymentService(
        settings=settings,
        verifier=verifier,
        treasury=treasury,
        treasury_address=treasury_address,
    )
