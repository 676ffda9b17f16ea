from typing import Protocol

from pydantic import BaseModel

# Target shape sent to the extraction service. Advisory only: the service may
# omit fields, mistype them or wrap the object in prose.
RECEIPT_SCHEMA = {
    "type": "object",
    "properties": {
        "merchantName": {"type": "string"},
        "country": {"type": "string"},
        "currencyCode": {"type": "string", "description": "ISO 4217 code"},
        "subtotal": {"type": "number"},
        "tax": {"type": "number"},
        "total": {"type": "number"},
    },
    "required": ["merchantName", "total"],
}


class PaymentQuote(BaseModel):
    merchant_name: str
    country: str
    original_currency_code: str
    original_amount: float  # resolved total in the foreign currency, always > 0
    subtotal: float
    tax: float
    inr_amount: float
    is_domestic_route: bool

    model_config = {"frozen": True}


class ReceiptExtractor(Protocol):
    async def extract(self, image_b64: str, content_type: str) -> str: ...
