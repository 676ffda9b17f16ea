import os

from app.receipt.base import ReceiptExtractor
from app.receipt.openai_provider import OpenAIReceiptExtractor

PROVIDERS = {
    "openai": OpenAIReceiptExtractor,
}


def get_receipt_extractor() -> ReceiptExtractor:
    """Return the configured receipt extraction provider.

    RECEIPT_PROVIDER picks the backend, RECEIPT_MODEL optionally overrides its model.
    """
    provider = os.getenv("RECEIPT_PROVIDER", "openai").strip().lower()
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown receipt provider: {provider}")
    return PROVIDERS[provider](model=os.getenv("RECEIPT_MODEL") or None)
