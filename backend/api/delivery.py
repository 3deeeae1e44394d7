"""
Delivery API - landing page behind the link sent with video-ready
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse
from typing import Optional

from dependencies import get_gateway
from exceptions import InvalidRequestError
from services.delivery_links import (
    LANDING_PATH,
    content_type_for,
    download_filename,
    render_landing_page,
)
from services.storage_gateway import SignedUrlGateway, download_overrides, inline_overrides
from constants import SignedUrlTTL
from utils.error_handlers import handle_api_errors

router = APIRouter(tags=["delivery"])


@router.get(LANDING_PATH, response_class=HTMLResponse)
@handle_api_errors("Landing page", "presign get failed")
async def landing_page(
    key: Optional[str] = Query(None),
    gateway: SignedUrlGateway = Depends(get_gateway),
):
    """Player plus download button for one delivered key."""
    if not key or not key.strip():
        raise InvalidRequestError("key required", field="key")

    view_url = await gateway.issue_get(key, SignedUrlTTL.VIEW_SECONDS, inline_overrides(content_type_for(key)))
    download_url = await gateway.issue_get(
        key, SignedUrlTTL.VIEW_SECONDS, download_overrides(download_filename(key))
    )
    return HTMLResponse(render_landing_page(key, view_url, download_url))
