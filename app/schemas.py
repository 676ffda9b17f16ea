from pydantic import BaseModel, Field


# --- Scan ---

class ScanBase64In(BaseModel):
    image: str  # base64, optionally a data: URL
    content_type: str = Field(default="image/jpeg", alias="contentType")

    model_config = {"populate_by_name": True}


# --- Quotes ---

class QuoteIn(BaseModel):
    merchant_name: str = Field(alias="merchantName")
    country: str
    original_currency_code: str = Field(alias="originalCurrencyCode")
    original_amount: float = Field(alias="originalAmount", gt=0)
    subtotal: float = 0
    tax: float = 0
    inr_amount: float = Field(alias="inrAmount", ge=0)
    is_domestic_route: bool = Field(alias="isDomesticRoute")

    model_config = {"populate_by_name": True}
