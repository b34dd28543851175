"""
Paste routes.
Handles create, delivery, metadata, preview, download and delete.
"""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from pastebin.analytics import Analytics, track_safely
from pastebin.dependencies import (
    get_analytics,
    get_client_ip,
    get_creation_service,
    get_current_time,
    get_retrieval_service,
)
from pastebin.errors import StorageError, ValidationError
from pastebin.models import (
    DeleteResponse,
    PasteCreate,
    PasteDescriptor,
    PasteMetadata,
    PastePreview,
    PasteView,
)
from pastebin.services.creation import CreationService
from pastebin.services.retrieval import PasteState, Retrieval, RetrievalService
from pastebin.utils import utf8_size

router = APIRouter()
logger = logging.getLogger(__name__)

NOT_FOUND_DETAIL = {"code": "PASTE_NOT_FOUND", "message": "Paste not found or has already been viewed"}
EXPIRED_DETAIL = {"code": "PASTE_EXPIRED", "message": "Paste has expired"}


def _ensure_available(result: Retrieval) -> None:
    """Map a non-deliverable outcome to 404 or 410."""
    if result.state is PasteState.EXPIRED:
        raise HTTPException(status_code=410, detail=EXPIRED_DETAIL)
    if not result.available:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)


async def _storage_failure(e: StorageError, action: str, analytics: Analytics, client_ip: str) -> HTTPException:
    logger.error(f"Storage error during {action} [{e.code}]: {e.message}")
    await track_safely(analytics.track_error(f"paste_{action}_failed", client_ip), f"{action} error")
    return HTTPException(status_code=500, detail={"code": e.code, "message": f"Failed to {action} paste"})


@router.post("/api/pastes", response_model=PasteDescriptor, status_code=201)
async def create_paste(
    paste: PasteCreate,
    client_ip: str = Depends(get_client_ip),
    now: datetime = Depends(get_current_time),
    service: CreationService = Depends(get_creation_service),
) -> PasteDescriptor:
    """
    Create a new paste.

    Raises:
        HTTPException: 400 if input is invalid, 500 if storage fails
    """
    try:
        return await service.create(paste, client_ip=client_ip, now=now)
    except ValidationError as e:
        logger.info(f"Rejected paste [{e.code}]: {e.message}")
        raise HTTPException(status_code=400, detail=e.to_dict())
    except StorageError as e:
        # The creation service already reported the error to analytics
        logger.error(f"Failed to create paste [{e.code}]: {e.message}")
        raise HTTPException(status_code=500, detail={"code": e.code, "message": "Failed to create paste"})


@router.get("/api/pastes/{paste_id}", response_model=PasteView)
@router.get("/s/{paste_id}", response_model=PasteView)
async def view_paste(
    paste_id: str,
    client_ip: str = Depends(get_client_ip),
    now: datetime = Depends(get_current_time),
    service: RetrievalService = Depends(get_retrieval_service),
    analytics: Analytics = Depends(get_analytics),
) -> PasteView:
    """
    Deliver a paste. One-time pastes are deleted by this read.

    Raises:
        HTTPException: 404 if not found or already viewed, 410 if expired
    """
    try:
        result = await service.view(paste_id, client_ip=client_ip, now=now)
    except StorageError as e:
        raise await _storage_failure(e, "view", analytics, client_ip)
    _ensure_available(result)
    return result.data


@router.head("/api/pastes/{paste_id}")
@router.head("/s/{paste_id}")
async def probe_paste(
    paste_id: str,
    now: datetime = Depends(get_current_time),
    service: RetrievalService = Depends(get_retrieval_service),
) -> Response:
    """Existence check; metadata is returned in X-Paste-* headers."""
    try:
        result = await service.metadata(paste_id, now=now)
    except StorageError as e:
        logger.error(f"Storage error during probe [{e.code}]: {e.message}")
        return Response(status_code=500)

    if result.state is PasteState.EXPIRED:
        return Response(status_code=410)
    if not result.available:
        return Response(status_code=404)

    meta: PasteMetadata = result.data
    headers = {
        "X-Paste-Language": meta.language,
        "X-Paste-Size": str(meta.size),
        "X-Paste-Created": meta.created_at.isoformat(),
    }
    if meta.expires_at is not None:
        headers["X-Paste-Expires"] = meta.expires_at.isoformat()
        headers["X-Paste-TTL"] = str(meta.time_remaining)
    return Response(status_code=200, headers=headers)


@router.get("/api/pastes/{paste_id}/meta", response_model=PasteMetadata)
async def paste_metadata(
    paste_id: str,
    now: datetime = Depends(get_current_time),
    service: RetrievalService = Depends(get_retrieval_service),
) -> PasteMetadata:
    try:
        result = await service.metadata(paste_id, now=now)
    except StorageError as e:
        logger.error(f"Storage error during metadata probe [{e.code}]: {e.message}")
        raise HTTPException(status_code=500, detail={"code": e.code, "message": "Failed to read paste"})
    _ensure_available(result)
    return result.data


@router.get("/api/pastes/{paste_id}/preview", response_model=PastePreview)
async def preview_paste(
    paste_id: str,
    now: datetime = Depends(get_current_time),
    service: RetrievalService = Depends(get_retrieval_service),
) -> PastePreview:
    """First 500 characters of a live paste; does not spend a one-time view."""
    try:
        result = await service.preview(paste_id, now=now)
    except StorageError as e:
        logger.error(f"Storage error during preview [{e.code}]: {e.message}")
        raise HTTPException(status_code=500, detail={"code": e.code, "message": "Failed to retrieve paste preview"})
    _ensure_available(result)
    return result.data


@router.get("/api/pastes/{paste_id}/download")
async def download_paste(
    paste_id: str,
    format: str = Query("auto", description="auto, txt or md"),
    client_ip: str = Depends(get_client_ip),
    now: datetime = Depends(get_current_time),
    service: RetrievalService = Depends(get_retrieval_service),
    analytics: Analytics = Depends(get_analytics),
) -> Response:
    """Deliver a paste as an attachment. One-time pastes are deleted by this read."""
    try:
        result = await service.download(paste_id, fmt=format, client_ip=client_ip, now=now)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except StorageError as e:
        raise await _storage_failure(e, "download", analytics, client_ip)
    _ensure_available(result)

    download = result.data
    return Response(
        content=download.content,
        media_type=download.media_type,
        headers={"Content-Disposition": f'attachment; filename="{download.filename}"'},
    )


@router.head("/api/pastes/{paste_id}/download")
async def download_headers(
    paste_id: str,
    format: str = Query("auto", description="auto, txt or md"),
    now: datetime = Depends(get_current_time),
    service: RetrievalService = Depends(get_retrieval_service),
) -> Response:
    """Download headers without the body; never spends a one-time view."""
    try:
        result = await service.describe_download(paste_id, fmt=format, now=now)
    except ValidationError:
        return Response(status_code=400)
    except StorageError as e:
        logger.error(f"Storage error during download headers [{e.code}]: {e.message}")
        return Response(status_code=500)

    if result.state is PasteState.EXPIRED:
        return Response(status_code=410)
    if not result.available:
        return Response(status_code=404)

    download = result.data
    return Response(
        status_code=200,
        headers={
            "Content-Type": download.media_type,
            "Content-Disposition": f'attachment; filename="{download.filename}"',
            "Content-Length": str(utf8_size(download.content)),
        },
    )


@router.delete("/api/pastes/{paste_id}", response_model=DeleteResponse)
@router.delete("/s/{paste_id}", response_model=DeleteResponse)
async def delete_paste(
    paste_id: str,
    client_ip: str = Depends(get_client_ip),
    service: RetrievalService = Depends(get_retrieval_service),
    analytics: Analytics = Depends(get_analytics),
) -> DeleteResponse:
    """
    Delete a paste early. Possession of the ID is the only authorization.
    Always succeeds when the paste is already gone.
    """
    try:
        deleted = await service.delete(paste_id)
    except StorageError as e:
        raise await _storage_failure(e, "delete", analytics, client_ip)
    return DeleteResponse(success=True, deleted=deleted)
