from pydantic import BaseModel

from app.receipt.base import PaymentQuote


class FeeBreakdown(BaseModel):
    bridge_fee: float
    tax_on_fee: float
    final_debit: float
    estimated_savings: float

    model_config = {"frozen": True}


def calculate_fees(
    quote: PaymentQuote,
    fee_rate: float,
    tax_on_fee_rate: float,
    bank_markup_rate: float = 0.0,
) -> FeeBreakdown:
    """Derive the fee breakdown for a quote.

    Nothing is rounded here; rounding belongs to serialization so the same
    quote and rates always give the same final debit.
    """
    if fee_rate < 0 or tax_on_fee_rate < 0 or bank_markup_rate < 0:
        raise ValueError("Fee rates must be non-negative")

    bridge_fee = quote.inr_amount * fee_rate
    tax_on_fee = bridge_fee * tax_on_fee_rate
    final_debit = quote.inr_amount + bridge_fee + tax_on_fee
    return FeeBreakdown(
        bridge_fee=bridge_fee,
        tax_on_fee=tax_on_fee,
        final_debit=final_debit,
        estimated_savings=final_debit * bank_markup_rate,
    )
