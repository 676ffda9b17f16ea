import os
from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from app.rates import DOMESTIC_KEYWORDS, STATIC_RATES, RateTable, fetch_live_rates

BRIDGE_FEE_RATE = 0.015
TAX_ON_FEE_RATE = 0.18  # GST charged on the bridge fee
BANK_MARKUP_RATE = 0.035  # typical card/bank international markup, for the savings figure
AMOUNT_TOLERANCE = 0.01
SCAN_TIMEOUT_SECONDS = 30.0


class Settings(BaseModel):
    """Process-wide configuration. Built once at startup, never mutated."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    fee_rate: float = Field(default=BRIDGE_FEE_RATE, ge=0)
    tax_on_fee_rate: float = Field(default=TAX_ON_FEE_RATE, ge=0)
    bank_markup_rate: float = Field(default=BANK_MARKUP_RATE, ge=0)
    amount_tolerance: float = Field(default=AMOUNT_TOLERANCE, ge=0)
    default_currency: str = "USD"
    merchant_placeholder: str = "Elite Merchant"
    country_placeholder: str = "International Node"
    domestic_keywords: tuple[str, ...] = DOMESTIC_KEYWORDS
    rates: RateTable = Field(default_factory=lambda: RateTable(STATIC_RATES))
    scan_timeout_seconds: float = Field(default=SCAN_TIMEOUT_SECONDS, gt=0)
    scan_policy: Literal["supersede", "reject"] = "supersede"


def _split_keywords(raw: str) -> tuple[str, ...]:
    return tuple(k.strip() for k in raw.split(",") if k.strip())


def load_settings() -> Settings:
    """Read settings from `.env` and the process environment."""
    load_dotenv()

    default_currency = os.getenv("DEFAULT_CURRENCY", "USD").strip().upper()
    rates = STATIC_RATES
    if os.getenv("FX_RATES_SOURCE", "static") == "frankfurter":
        rates = fetch_live_rates(STATIC_RATES)

    keywords = DOMESTIC_KEYWORDS
    raw_keywords = os.getenv("DOMESTIC_KEYWORDS")
    if raw_keywords:
        keywords = _split_keywords(raw_keywords)

    return Settings(
        fee_rate=float(os.getenv("BRIDGE_FEE_RATE", BRIDGE_FEE_RATE)),
        tax_on_fee_rate=float(os.getenv("TAX_ON_FEE_RATE", TAX_ON_FEE_RATE)),
        bank_markup_rate=float(os.getenv("BANK_MARKUP_RATE", BANK_MARKUP_RATE)),
        default_currency=default_currency,
        domestic_keywords=keywords,
        rates=RateTable(rates, default_code=default_currency),
        scan_timeout_seconds=float(os.getenv("SCAN_TIMEOUT_SECONDS", SCAN_TIMEOUT_SECONDS)),
        scan_policy=os.getenv("SCAN_POLICY", "supersede"),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
