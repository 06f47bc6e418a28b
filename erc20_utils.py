# erc20_utils.py
from decimal import Decimal, InvalidOperation, localcontext

from web3 import Web3

# ERC20 subset the service reads: balanceOf / decimals / symbol and the Transfer event
ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "_from", "type": "address"},
            {"indexed": True, "name": "_to", "type": "address"},
            {"indexed": False, "name": "_value", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
]

# topic0 of Transfer(address,address,uint256), 0x-prefixed lowercase hex
TRANSFER_TOPIC0 = Web3.to_hex(Web3.keccak(text="Transfer(address,address,uint256)"))


def get_erc20_contract(w3: Web3, token_addr: str):
    token_addr = Web3.to_checksum_address(token_addr)
    return w3.eth.contract(address=token_addr, abi=ERC20_ABI)


def token_to_human(raw_amount: int, decimals: int) -> Decimal:
    """
    Scale a base-unit integer to its human-readable value, exactly.

    10000 with 6 decimals -> Decimal("0.010000"). The context precision is
    raised to fit every digit so uint256-sized values never get rounded.
    """
    if raw_amount < 0:
        raise ValueError("token amounts are unsigned")
    if decimals < 0:
        raise ValueError("decimals must not be negative")
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(raw_amount)) + 1)
        return Decimal(raw_amount).scaleb(-decimals)


def as_decimal(amount: str | int | Decimal) -> Decimal:
    """
    Human amount -> Decimal. Floats go through str() so 0.01 stays 0.01
    and never picks up binary rounding noise.
    """
    if isinstance(amount, bool):
        raise ValueError("amount must be a number, not a bool")
    if isinstance(amount, Decimal):
        value = amount
    else:
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation:
            raise ValueError(f"not a decimal amount: {amount!r}") from None
    if not value.is_finite():
        raise ValueError(f"amount must be finite: {amount!r}")
    return value


def format_amount(amount: Decimal) -> str:
    # fixed-point, never scientific notation ("0E-6" -> "0.000000")
    return format(amount, "f")


def fetch_token_metadata(w3: Web3, token_addr: str) -> tuple[str, int]:
    """(symbol, decimals) read from the token contract."""
    token = get_erc20_contract(w3, token_addr)
    symbol = token.functions.symbol().call()
    decimals = token.functions.decimals().call()
    return symbol, decimals
