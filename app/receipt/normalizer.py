import logging
import math

from app.config import Settings
from app.errors import InvalidAmount
from app.rates import normalize_code
from app.receipt.base import PaymentQuote

logger = logging.getLogger("bridgepay")

# Absorbs binary float error so a difference of exactly the tolerance counts as agreement.
FLOAT_EPSILON = 1e-9


def coerce_amount(value) -> float | None:
    """Best-effort number from an untrusted field. Returns None when unusable."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def resolve_total(subtotal: float, tax: float, total: float | None, tolerance: float) -> float:
    """Pick the payable amount from the reported total and subtotal + tax.

    The extractor sometimes mis-totals, so a positive subtotal + tax that
    disagrees with the reported total by more than `tolerance` wins.
    """
    calculated = subtotal + tax
    if calculated > 0 and total is not None and abs(calculated - total) > tolerance + FLOAT_EPSILON:
        return calculated
    if total is not None and total > 0:
        return total
    return calculated


def is_domestic_route(country: str | None, merchant_name: str | None, keywords) -> bool:
    haystacks = [h.lower() for h in (country, merchant_name) if isinstance(h, str) and h]
    for keyword in keywords:
        needle = keyword.lower()
        if any(needle in h for h in haystacks):
            return True
    return False


def _text_field(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_receipt(data: dict, settings: Settings) -> PaymentQuote:
    """Turn a parsed extraction into a trusted PaymentQuote.

    Missing identity fields and unknown currencies are repaired silently; only
    a non-positive payable amount is rejected.
    """
    subtotal = coerce_amount(data.get("subtotal")) or 0.0
    tax = coerce_amount(data.get("tax")) or 0.0
    reported_total = coerce_amount(data.get("total"))

    total = resolve_total(subtotal, tax, reported_total, settings.amount_tolerance)
    if total <= 0:
        logger.warning(
            "Rejected receipt with non-positive total",
            extra={"extra_data": {"subtotal": subtotal, "tax": tax, "total": reported_total}},
        )
        raise InvalidAmount()
    if reported_total is not None and total != reported_total:
        logger.info(
            "Reported total replaced by subtotal + tax",
            extra={"extra_data": {"reported": reported_total, "resolved": total}},
        )

    raw_currency = data.get("currencyCode")
    if raw_currency is None:
        raw_currency = data.get("currency")
    fx = settings.rates.lookup(normalize_code(raw_currency))

    merchant_name = _text_field(data.get("merchantName"))
    country = _text_field(data.get("country"))

    return PaymentQuote(
        merchant_name=merchant_name or settings.merchant_placeholder,
        country=country or settings.country_placeholder,
        original_currency_code=fx.code,
        original_amount=total,
        subtotal=subtotal,
        tax=tax,
        inr_amount=total * fx.rate,
        is_domestic_route=is_domestic_route(country, merchant_name, settings.domestic_keywords),
    )
