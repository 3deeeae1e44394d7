"""
Presign API - signed upload/download URLs for captures
"""
from fastapi import APIRouter, Depends, Query
from typing import Optional
import logging

from dependencies import get_gateway
from exceptions import InvalidRequestError
from schemas import ErrorResponse, PresignGetResponse, PresignPutResponse
from services.delivery_links import content_type_for, download_filename
from services.key_deriver import new_capture_key
from services.storage_gateway import SignedUrlGateway, download_overrides, inline_overrides
from constants import SignedUrlTTL
from utils.error_handlers import handle_api_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/presign", tags=["presign"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("/put", response_model=PresignPutResponse, responses=ERROR_RESPONSES)
@handle_api_errors("Presign PUT", "presign put failed")
async def presign_put(
    eventId: Optional[str] = Query(None),
    ext: Optional[str] = Query(None),
    gateway: SignedUrlGateway = Depends(get_gateway),
):
    """
    Mint a fresh capture key and a signed upload URL for it.

    Query params:
        - eventId: Grouping prefix (default "default-event")
        - ext: File extension without the dot (default "webm")
    """
    key = new_capture_key(eventId, ext)
    put_url = await gateway.issue_put(key, SignedUrlTTL.UPLOAD_SECONDS)
    logger.info(f"Issued upload URL for {key}")
    return PresignPutResponse(key=key, putUrl=put_url)


@router.get("/get", response_model=PresignGetResponse, responses=ERROR_RESPONSES)
@handle_api_errors("Presign GET", "presign get failed")
async def presign_get(
    key: Optional[str] = Query(None),
    download: bool = Query(False),
    gateway: SignedUrlGateway = Depends(get_gateway),
):
    """
    Signed download URL for an existing key.

    Query params:
        - key: Storage key (required)
        - download: Serve as an attachment instead of inline
    """
    if not key or not key.strip():
        raise InvalidRequestError("key required", field="key")

    overrides = download_overrides(download_filename(key)) if download else inline_overrides(content_type_for(key))
    get_url = await gateway.issue_get(key, SignedUrlTTL.VIEW_SECONDS, overrides)
    return PresignGetResponse(getUrl=get_url)
