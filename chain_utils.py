# chain_utils.py
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from web3 import Web3

from errors import ConfigError

BASE_DIR = Path(__file__).resolve().parent
env_path = BASE_DIR / "properties.env"

load_dotenv(env_path)

# USDC deployments the service knows about out of the box
NETWORKS = {
    "base": {
        "chain_id": 8453,
        "usdc_address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        "explorer": "https://basescan.org",
    },
    "base-sepolia": {
        "chain_id": 84532,
        "usdc_address": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
        "explorer": "https://sepolia.basescan.org",
    },
    "ethereum": {
        "chain_id": 1,
        "usdc_address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "explorer": "https://etherscan.io",
    },
    "ethereum-sepolia": {
        "chain_id": 11155111,
        "usdc_address": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
        "explorer": "https://sepolia.etherscan.io",
    },
}

DEFAULT_NETWORK = "base"
DEFAULT_TOKEN_DECIMALS = 6
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class PaymentSettings:
    """Everything a deployment fixes at startup."""

    rpc_url: str
    network: str
    token_address: str
    token_decimals: int = DEFAULT_TOKEN_DECIMALS
    treasury_address: str | None = None
    treasury_account_name: str | None = None
    treasury_private_key: str | None = None
    treasury_backend: str = "local"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def chain_id(self) -> int | None:
        return NETWORKS.get(self.network, {}).get("chain_id")

    def tx_url(self, tx_hash: str) -> str | None:
        explorer = NETWORKS.get(self.network, {}).get("explorer")
        if not explorer:
            return None
        return f"{explorer}/tx/{tx_hash}"

    @classmethod
    def from_env(cls, environ=None) -> "PaymentSettings":
        """
        Build settings from environment variables (properties.env is loaded
        at import time). Raises ConfigError naming the offending variable.
        """
        env = os.environ if environ is None else environ

        rpc_url = env.get("RPC_URL")
        if not rpc_url:
            raise ConfigError("RPC_URL not set in .env")

        network = env.get("PAYMENT_NETWORK", DEFAULT_NETWORK).strip().lower()

        token_address = env.get("TOKEN_ADDRESS")
        if not token_address:
            if network not in NETWORKS:
                raise ConfigError(
                    f"TOKEN_ADDRESS not set and no default token for network {network!r}"
                )
            token_address = NETWORKS[network]["usdc_address"]
        token_address = _checked_address("TOKEN_ADDRESS", token_address)

        treasury_address = env.get("TREASURY_ADDRESS") or None
        if treasury_address:
            treasury_address = _checked_address("TREASURY_ADDRESS", treasury_address)

        backend = env.get("TREASURY_BACKEND", "local").strip().lower()
        if backend not in ("local", "cdp"):
            raise ConfigError(f"TREASURY_BACKEND must be 'local' or 'cdp', got {backend!r}")

        return cls(
            rpc_url=rpc_url,
            network=network,
            token_address=token_address,
            token_decimals=_int_setting(env, "TOKEN_DECIMALS", DEFAULT_TOKEN_DECIMALS),
            treasury_address=treasury_address,
            treasury_account_name=env.get("TREASURY_ACCOUNT_NAME") or None,
            treasury_private_key=env.get("TREASURY_PRIVATE_KEY") or None,
            treasury_backend=backend,
            timeout_seconds=_float_setting(env, "RPC_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        )


def _checked_address(name: str, value: str) -> str:
    value = value.strip()
    if not Web3.is_address(value):
        raise ConfigError(f"{name} is not a valid address: {value!r}")
    return Web3.to_checksum_address(value)


def _int_setting(env, name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative")
    return value


def _float_setting(env, name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive")
    return value


def get_web3(settings: PaymentSettings) -> Web3:
    # no built-in retries: one request, bounded by the HTTP timeout
    return Web3(
        Web3.HTTPProvider(
            settings.rpc_url,
            request_kwargs={"timeout": settings.timeout_seconds},
            exception_retry_configuration=None,
        )
    )
