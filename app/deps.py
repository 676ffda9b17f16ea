import base64
import binascii
import logging

from fastapi import HTTPException, Request

from app.config import get_settings
from app.receipt.base import ReceiptExtractor
from app.receipt.factory import get_receipt_extractor
from app.scan import ScanCoordinator

logger = logging.getLogger("bridgepay")

_coordinator: ScanCoordinator | None = None


def get_coordinator() -> ScanCoordinator:
    global _coordinator
    if _coordinator is None:
        _coordinator = ScanCoordinator(policy=get_settings().scan_policy)
    return _coordinator


def get_extractor() -> ReceiptExtractor:
    try:
        return get_receipt_extractor()
    except ValueError as e:
        logger.error(f"Receipt extraction config error: {e}")
        raise HTTPException(status_code=503, detail="Receipt scanning is not available")


def get_client_key(request: Request) -> str:
    """Key for the caller's scan slot.

    Uses the ctk cookie the client sent. A first-contact request has no cookie yet,
    so it is keyed by address until the client stores the one it is given.
    """
    ctk = getattr(request.state, "ctk", None)
    if ctk and not getattr(request.state, "ctk_is_new", False):
        return ctk
    host = request.client.host if request.client else "anonymous"
    return f"addr:{host}"


def decode_base64_image(data: str) -> bytes:
    """Decode a base64 image, accepting a data: URL prefix."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Image is not valid base64")
