import base64
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from app.config import Settings, get_settings
from app.deps import decode_base64_image, get_client_key, get_coordinator, get_extractor
from app.fees import calculate_fees
from app.ratelimit import SCAN_RATE_LIMIT, limiter
from app.receipt.base import ReceiptExtractor
from app.receipt.pipeline import scan_receipt
from app.scan import ScanCoordinator
from app.schemas import ScanBase64In
from app.serializers import serialize_fees, serialize_quote

logger = logging.getLogger("bridgepay")
router = APIRouter()

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}


def _check_image(image_bytes: bytes, content_type: str | None) -> None:
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Unsupported image format. Use JPEG, PNG, or WebP.")
    if len(image_bytes) == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(image_bytes) > MAX_FILE_SIZE:
        raise HTTPException(status_code=400, detail="Image too large. Maximum size is 10 MB.")


async def _run_scan(
    request: Request,
    image_b64: str,
    content_type: str,
    extractor: ReceiptExtractor,
    settings: Settings,
    coordinator: ScanCoordinator,
) -> dict:
    quote = await coordinator.run(
        get_client_key(request),
        lambda: scan_receipt(image_b64, content_type, extractor, settings),
    )
    fees = calculate_fees(quote, settings.fee_rate, settings.tax_on_fee_rate, settings.bank_markup_rate)
    return {
        "quote": serialize_quote(quote, settings.rates),
        "fees": serialize_fees(fees, settings.fee_rate, settings.tax_on_fee_rate),
    }


@router.post("/scan")
@limiter.limit(SCAN_RATE_LIMIT)
async def scan_upload(
    request: Request,
    file: UploadFile = File(...),
    extractor: ReceiptExtractor = Depends(get_extractor),
    settings: Settings = Depends(get_settings),
    coordinator: ScanCoordinator = Depends(get_coordinator),
):
    image_bytes = await file.read()
    _check_image(image_bytes, file.content_type)
    image_b64 = base64.b64encode(image_bytes).decode("utf-8")
    return await _run_scan(request, image_b64, file.content_type, extractor, settings, coordinator)


@router.post("/scan/base64")
@limiter.limit(SCAN_RATE_LIMIT)
async def scan_base64(
    request: Request,
    body: ScanBase64In,
    extractor: ReceiptExtractor = Depends(get_extractor),
    settings: Settings = Depends(get_settings),
    coordinator: ScanCoordinator = Depends(get_coordinator),
):
    image_bytes = decode_base64_image(body.image)
    _check_image(image_bytes, body.content_type)
    image_b64 = base64.b64encode(image_bytes).decode("utf-8")
    return await _run_scan(request, image_b64, body.content_type, extractor, settings, coordinator)


@router.delete("/scan")
async def cancel_scan(request: Request, coordinator: ScanCoordinator = Depends(get_coordinator)):
    """Cancel the caller's outstanding scan, e.g. when they leave the scan screen."""
    cancelled = coordinator.cancel(get_client_key(request))
    return {"cancelled": cancelled}
