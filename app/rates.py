import logging
from collections.abc import Iterable, Iterator

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger("bridgepay")

FRANKFURTER_BASE = "https://api.frankfurter.dev/v1"
LOCAL_CURRENCY = "INR"


class CurrencyRate(BaseModel):
    code: str
    symbol: str
    rate: float = Field(gt=0)  # INR per one unit of `code`

    model_config = {"frozen": True}


STATIC_RATES = (
    CurrencyRate(code="USD", symbol="$", rate=83.12),
    CurrencyRate(code="EUR", symbol="€", rate=90.45),
    CurrencyRate(code="GBP", symbol="£", rate=105.60),
    CurrencyRate(code="SGD", symbol="S$", rate=61.85),
    CurrencyRate(code="AED", symbol="د.إ", rate=22.63),
    CurrencyRate(code="JPY", symbol="¥", rate=0.56),
    CurrencyRate(code="AUD", symbol="A$", rate=54.90),
    CurrencyRate(code="CAD", symbol="C$", rate=61.30),
    CurrencyRate(code="CHF", symbol="CHF ", rate=94.10),
    CurrencyRate(code="THB", symbol="฿", rate=2.32),
    CurrencyRate(code="MYR", symbol="RM", rate=17.65),
    CurrencyRate(code="LKR", symbol="Rs", rate=0.27),
    CurrencyRate(code="NPR", symbol="रू", rate=0.625),
    CurrencyRate(code="MUR", symbol="Rs", rate=1.82),
    CurrencyRate(code="INR", symbol="₹", rate=1.0),
)

# Markets where the UPI-linked local clearing network is accepted.
DOMESTIC_KEYWORDS = (
    "India",
    "Singapore",
    "UAE",
    "United Arab Emirates",
    "Dubai",
    "Abu Dhabi",
    "France",
    "Paris",
    "Mauritius",
    "Sri Lanka",
    "Nepal",
    "Bhutan",
    "Oman",
    "Qatar",
)


def normalize_code(code) -> str:
    if not isinstance(code, str):
        return ""
    return code.strip().upper()


class RateTable:
    """Immutable currency table with a default entry for unknown codes."""

    def __init__(self, rates: Iterable[CurrencyRate], default_code: str = "USD"):
        self._rates = {normalize_code(r.code): r for r in rates}
        default_code = normalize_code(default_code)
        if default_code not in self._rates:
            raise ValueError(f"Default currency {default_code!r} is not in the rate table")
        self._default_code = default_code

    @property
    def default(self) -> CurrencyRate:
        return self._rates[self._default_code]

    def get(self, code) -> CurrencyRate | None:
        return self._rates.get(normalize_code(code))

    def lookup(self, code) -> CurrencyRate:
        """Return the rate for `code`, or the default entry when it is unknown."""
        rate = self.get(code)
        if rate is None:
            logger.debug(
                "Unknown currency, using default",
                extra={"extra_data": {"currency": code, "default": self._default_code}},
            )
            return self.default
        return rate

    def __contains__(self, code) -> bool:
        return normalize_code(code) in self._rates

    def __iter__(self) -> Iterator[CurrencyRate]:
        return iter(self._rates.values())

    def __len__(self) -> int:
        return len(self._rates)


def fetch_live_rates(
    currencies: Iterable[CurrencyRate], client: httpx.Client | None = None
) -> list[CurrencyRate]:
    """Refresh rates from frankfurter.dev, keeping the static symbols.

    One request per currency. A currency the API cannot quote keeps its static rate.
    """
    owns_client = client is None
    client = client or httpx.Client(timeout=10)
    refreshed: list[CurrencyRate] = []
    failed: list[str] = []
    try:
        for currency in currencies:
            if currency.code == LOCAL_CURRENCY:
                refreshed.append(currency)
                continue
            try:
                resp = client.get(
                    f"{FRANKFURTER_BASE}/latest",
                    params={"from": currency.code, "to": LOCAL_CURRENCY},
                )
                resp.raise_for_status()
                rate_value = float(resp.json()["rates"][LOCAL_CURRENCY])
            except (httpx.HTTPError, KeyError, ValueError) as e:
                logger.warning(f"Live rate for {currency.code} unavailable, keeping static rate: {e}")
                failed.append(currency.code)
                refreshed.append(currency)
                continue
            refreshed.append(currency.model_copy(update={"rate": rate_value}))
    finally:
        if owns_client:
            client.close()

    logger.info(
        "Live rates loaded",
        extra={"extra_data": {"count": len(refreshed) - len(failed), "failed": failed}},
    )
    return refreshed
