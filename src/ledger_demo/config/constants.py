"""Fixed tuning values for demo-data generation."""

from __future__ import annotations

from decimal import Decimal

DEFAULT_ASSET_CODE = "BRL"
EXTERNAL_ACCOUNT_TEMPLATE = "@external/{asset_code}"
GENERATOR_FINGERPRINT = "ledger-demo-data"

CRYPTO_ASSET_CODES = frozenset({"BTC", "ETH", "USDT", "USDC", "SOL"})
COMMODITY_ASSET_CODES = frozenset({"GOLD", "SILVER", "XAU", "XAG"})

# Asset catalogue the asset generator draws from: (code, name, type).
ASSET_CATALOGUE: tuple[tuple[str, str, str], ...] = (
    ("BRL", "Brazilian Real", "currency"),
    ("USD", "US Dollar", "currency"),
    ("EUR", "Euro", "currency"),
    ("GBP", "British Pound", "currency"),
    ("JPY", "Japanese Yen", "currency"),
    ("BTC", "Bitcoin", "crypto"),
    ("ETH", "Ethereum", "crypto"),
    ("USDT", "Tether", "crypto"),
    ("GOLD", "Gold", "commodity"),
    ("SILVER", "Silver", "commodity"),
    ("CHF", "Swiss Franc", "currency"),
    ("CAD", "Canadian Dollar", "currency"),
    ("AUD", "Australian Dollar", "currency"),
    ("MXN", "Mexican Peso", "currency"),
    ("ARS", "Argentine Peso", "currency"),
    ("USDC", "USD Coin", "crypto"),
    ("SOL", "Solana", "crypto"),
    ("XAU", "Gold Ounce", "commodity"),
    ("XAG", "Silver Ounce", "commodity"),
    ("CNY", "Chinese Yuan", "currency"),
)

AMOUNT_SCALE = 2
AMOUNT_QUANTUM = Decimal("0.01")

DEPOSIT_AMOUNTS = {
    "crypto": Decimal("100.00"),
    "commodity": Decimal("5000.00"),
    "currency": Decimal("10000.00"),
}

TRANSFER_RANGES = {
    "crypto": (Decimal("0.10"), Decimal("1.00")),
    "commodity": (Decimal("1.00"), Decimal("10.00")),
    "currency": (Decimal("100.00"), Decimal("500.00")),
}

DEPOSIT_MAX_RETRIES = 3
DEPOSIT_DELAY_SECONDS = 0.1
TRANSFER_MAX_CONCURRENCY = 5
TRANSFER_MAX_RETRIES = 2
TRANSFER_DELAY_SECONDS = 0.15
SETTLEMENT_DELAY_SECONDS = 1.0

DEFAULT_BATCH_SIZE = 10
MAX_ACCOUNT_CONCURRENCY = 10
MAX_TRACKED_ERRORS = 200

CIRCUIT_FAILURE_THRESHOLD = 3
CIRCUIT_RECOVERY_TIMEOUT = 30.0
CIRCUIT_MONITORING_PERIOD = 120.0
CIRCUIT_MINIMUM_REQUESTS = 2
CIRCUIT_SUCCESS_THRESHOLD = 0.6


def asset_class(asset_code: str) -> str:
    """Classify an asset code as ``crypto``, ``commodity`` or ``currency``."""
    code = asset_code.upper()
    if code in CRYPTO_ASSET_CODES:
        return "crypto"
    if code in COMMODITY_ASSET_CODES:
        return "commodity"
    return "currency"
