from fastapi import APIRouter, Depends

from app.config import Settings, get_settings
from app.serializers import serialize_rate

router = APIRouter()


@router.get("/rates")
def list_rates(settings: Settings = Depends(get_settings)):
    return {
        "defaultCurrency": settings.rates.default.code,
        "feeRate": settings.fee_rate,
        "taxOnFeeRate": settings.tax_on_fee_rate,
        "rates": [serialize_rate(r) for r in settings.rates],
    }
