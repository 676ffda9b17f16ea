from app.errors import ScanError
from app.fees import FeeBreakdown
from app.rates import CurrencyRate, RateTable
from app.receipt.base import PaymentQuote


def money(value: float) -> float:
    return round(value, 2)


def serialize_rate(rate: CurrencyRate) -> dict:
    return {"code": rate.code, "symbol": rate.symbol, "rate": rate.rate}


def serialize_quote(quote: PaymentQuote, rates: RateTable) -> dict:
    fx = rates.lookup(quote.original_currency_code)
    return {
        "merchantName": quote.merchant_name,
        "country": quote.country,
        "originalCurrencyCode": quote.original_currency_code,
        "currencySymbol": fx.symbol,
        "fxRate": fx.rate,
        "originalAmount": money(quote.original_amount),
        "subtotal": money(quote.subtotal),
        "tax": money(quote.tax),
        "inrAmount": money(quote.inr_amount),
        "isDomesticRoute": quote.is_domestic_route,
        "route": "domestic" if quote.is_domestic_route else "bridge",
    }


def serialize_fees(fees: FeeBreakdown, fee_rate: float, tax_on_fee_rate: float) -> dict:
    return {
        "feeRate": fee_rate,
        "taxOnFeeRate": tax_on_fee_rate,
        "bridgeFee": money(fees.bridge_fee),
        "taxOnFee": money(fees.tax_on_fee),
        "finalDebit": money(fees.final_debit),
        "estimatedSavings": money(fees.estimated_savings),
    }


def serialize_error(error: ScanError) -> dict:
    return {"code": error.code, "detail": error.detail, "retry": True}
