import asyncio
import logging

from app.config import Settings
from app.errors import ScanError, TransportFailure
from app.receipt.base import PaymentQuote, ReceiptExtractor
from app.receipt.normalizer import normalize_receipt
from app.receipt.parsing import parse_extraction

logger = logging.getLogger("bridgepay")


async def scan_receipt(
    image_b64: str,
    content_type: str,
    extractor: ReceiptExtractor,
    settings: Settings,
) -> PaymentQuote:
    """Extract, parse and normalize one receipt image into a PaymentQuote."""
    try:
        text = await asyncio.wait_for(
            extractor.extract(image_b64, content_type),
            timeout=settings.scan_timeout_seconds,
        )
    except asyncio.TimeoutError as e:
        logger.error("Receipt extraction timed out", extra={"extra_data": {
            "timeout_s": settings.scan_timeout_seconds,
        }})
        raise TransportFailure(
            f"Receipt extraction timed out after {settings.scan_timeout_seconds:g}s"
        ) from e
    except TransportFailure as e:
        logger.error(f"Receipt extraction failed: {e}", exc_info=True)
        raise

    try:
        quote = normalize_receipt(parse_extraction(text), settings)
    except ScanError as e:
        logger.warning(f"Receipt rejected: {e.code}", extra={"extra_data": {"code": e.code}})
        raise

    logger.info(
        "Receipt scanned",
        extra={"extra_data": {
            "currency": quote.original_currency_code,
            "amount": quote.original_amount,
            "domestic": quote.is_domestic_route,
        }},
    )
    return quote
