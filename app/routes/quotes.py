from fastapi import APIRouter, Depends

from app.config import Settings, get_settings
from app.fees import calculate_fees
from app.receipt.base import PaymentQuote
from app.schemas import QuoteIn
from app.serializers import serialize_fees

router = APIRouter()


@router.post("/quotes/fees")
def quote_fees(body: QuoteIn, settings: Settings = Depends(get_settings)):
    """Recompute the fee breakdown for a quote the client already holds."""
    quote = PaymentQuote(**body.model_dump())
    fees = calculate_fees(quote, settings.fee_rate, settings.tax_on_fee_rate, settings.bank_markup_rate)
    return serialize_fees(fees, settings.fee_rate, settings.tax_on_fee_rate)
