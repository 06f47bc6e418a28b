# log_decoder.py
"""
Decode ERC20 Transfer event logs.

Transfer(address indexed from, address indexed to, uint256 value):
- topics[0]: event signature
- topics[1]: from address, left-padded to 32 bytes
- topics[2]: to address, left-padded to 32 bytes
- data: value (uint256)

Anything that does not have this shape decodes to None. A log the decoder
does not understand is simply not a transfer; it is never an error.
"""

import string

from erc20_utils import TRANSFER_TOPIC0
from payment_models import LogEntry, TransferRecord

WORD_HEX_LEN = 64       # 32-byte word
ADDRESS_HEX_LEN = 40    # 20-byte address
_HEX_DIGITS = frozenset(string.hexdigits)


def _strip_hex(value) -> str | None:
    if not isinstance(value, str):
        return None
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    if not value or not set(value) <= _HEX_DIGITS:
        return None
    return value.lower()


def topic_to_address(topic) -> str | None:
    """Indexed address topic -> lowercase 0x address, or None if malformed."""
    word = _strip_hex(topic)
    if word is None or len(word) != WORD_HEX_LEN:
        return None
    padding, address = word[:-ADDRESS_HEX_LEN], word[-ADDRESS_HEX_LEN:]
    if padding.strip("0"):
        return None
    return "0x" + address


def data_to_uint(data) -> int | None:
    payload = _strip_hex(data)
    if payload is None or len(payload) > WORD_HEX_LEN:
        return None
    return int(payload, 16)


def is_transfer_event(log: LogEntry) -> bool:
    return bool(log.topics) and _strip_hex(log.topics[0]) == TRANSFER_TOPIC0[2:]


def decode(log: LogEntry) -> TransferRecord | None:
    if len(log.topics) < 3 or not is_transfer_event(log):
        return None

    from_address = topic_to_address(log.topics[1])
    to_address = topic_to_address(log.topics[2])
    if from_address is None or to_address is None:
        return None

    raw_amount = data_to_uint(log.data)
    if raw_amount is None:
        return None

    return TransferRecord(
        contract_address=log.address.lower(),
        from_address=from_address,
        to_address=to_address,
        raw_amount=raw_amount,
    )
