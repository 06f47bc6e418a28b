# payment_models.py
from dataclasses import dataclass, field
from decimal import Decimal

from erc20_utils import format_amount


@dataclass(frozen=True)
class LogEntry:
    """One raw event log, hex strings exactly as the provider rendered them."""

    address: str
    topics: tuple[str, ...]
    data: str


@dataclass(frozen=True)
class TransactionReceipt:
    transaction_hash: str
    status: bool
    logs: tuple[LogEntry, ...] = ()
    block_number: int | None = None


@dataclass(frozen=True)
class TransferRecord:
    """A decoded Transfer event. raw_amount is in token base units."""

    contract_address: str
    from_address: str
    to_address: str
    raw_amount: int


@dataclass(frozen=True)
class VerificationRequest:
    transaction_id: str
    expected_amount: Decimal
    treasury_address: str
    token_contract_address: str
    token_decimals: int


@dataclass
class VerificationResult:
    """
    Outcome of one verification call.

    observed_amounts lists every transfer to the treasury seen before the
    scan stopped, so an empty list means "nothing reached the treasury" and a
    non-empty one with verified=False means "paid, but not this amount".
    """

    transaction_id: str
    verified: bool
    observed_amounts: list[Decimal] = field(default_factory=list)
    matched_transfer: TransferRecord | None = None
    reverted: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        matched = self.matched_transfer
        return {
            "tx_hash": self.transaction_id,
            "verified": self.verified,
            "observed_amounts": [format_amount(a) for a in self.observed_amounts],
            "reverted": self.reverted,
            "matched_transfer": (
                {
                    "contract_address": matched.contract_address,
                    "from_address": matched.from_address,
                    "to_address": matched.to_address,
                    "raw_amount": str(matched.raw_amount),
                }
                if matched
                else None
            ),
        }
