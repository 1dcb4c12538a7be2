"""Runtime settings for the ordering context, read from the environment.

Values are loaded once and cached. Tests that tweak the environment call
reset_settings() so the next get_settings() picks the changes up.
"""

import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Settings:
    vat_rate: Decimal
    shipping_fee: Decimal
    delivery_fee: Decimal
    currency: str
    cancellation_window_minutes: int
    checkout_delivery_days: int
    paid_order_delivery_days: int
    max_proof_bytes: int


_settings: Settings | None = None


def _load() -> Settings:
    return Settings(
        vat_rate=Decimal(os.environ.get("BREWDROP_VAT_RATE", "0.08")),
        shipping_fee=Decimal(os.environ.get("BREWDROP_SHIPPING_FEE", "120")),
        delivery_fee=Decimal(os.environ.get("BREWDROP_DELIVERY_FEE", "50")),
        currency=os.environ.get("BREWDROP_CURRENCY", "PHP"),
        cancellation_window_minutes=int(os.environ.get("BREWDROP_CANCELLATION_WINDOW_MINUTES", "5")),
        checkout_delivery_days=int(os.environ.get("BREWDROP_ESTIMATED_DELIVERY_DAYS", "2")),
        paid_order_delivery_days=int(os.environ.get("BREWDROP_PAID_ORDER_DELIVERY_DAYS", "1")),
        max_proof_bytes=int(os.environ.get("BREWDROP_MAX_PROOF_BYTES", str(5 * 1024 * 1024))),
    )


def get_settings() -> Settings:
    """Return the active settings, loading them from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = _load()
    return _settings


def reset_settings() -> None:
    """Drop cached settings (useful for testing)."""
    global _settings
    _settings = None
