# errors.py
"""
Exception hierarchy for payment verification.

Infrastructure faults (provider down, timeout, bad config) are raised to the
caller. A log that is not a transfer, or a transfer with the wrong amount, is
a normal outcome and never shows up here.
"""


class PaymentVerificationError(Exception):
    """Base class for every fault raised by the verifier."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProviderError(PaymentVerificationError):
    """
    The chain-data provider could not answer.

    Covers unreachable RPC endpoints, timeouts and malformed receipts.
    `cancelled` is set when the fetch was abandoned because of a timeout.
    """

    def __init__(self, message: str, cancelled: bool = False):
        super().__init__(message)
        self.cancelled = cancelled


class NotFoundError(PaymentVerificationError):
    """The transaction hash is malformed or unknown to the provider."""

    def __init__(self, message: str, tx_hash: str | None = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class ConfigError(PaymentVerificationError):
    """A required setting is missing or invalid."""

    pass


class TreasuryError(PaymentVerificationError):
    """The treasury provisioning service failed."""

    pass
