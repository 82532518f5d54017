"""
Admin ingestion API endpoints.

The platform importer pushes channels and videos here. Ingesting a video
fans it out to the channel's subscribers; the fan-out can be re-run for a
stored video. All endpoints require administrator privileges.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import require_admin, UserContext
from backend.src.schemas.videos import (
    ChannelRegister,
    ChannelResponse,
    VideoIngest,
    VideoResponse,
    VideoIngestResponse,
    VideoDeleteResponse,
    FanoutResultResponse,
)
from backend.src.services.fanout_service import FanoutService
from backend.src.services.ingestion_service import VideoIngestionService
from backend.src.services.subscription_service import SubscriptionService
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(tags=["Admin - Ingestion"])


def get_ingestion_service(db: Session = Depends(get_db)) -> VideoIngestionService:
    return VideoIngestionService(db=db)


def get_fanout_service(db: Session = Depends(get_db)) -> FanoutService:
    return FanoutService(db=db)


@router.post(
    "/channels",
    response_model=ChannelResponse,
    summary="Register a channel",
)
async def register_channel(
    body: ChannelRegister,
    ctx: UserContext = Depends(require_admin),
    service: VideoIngestionService = Depends(get_ingestion_service),
):
    """
    Create a channel, or update the title of the channel with the same
    external id.
    """
    try:
        channel, created = service.register_channel(
            external_id=body.external_id,
            title=body.title,
            platform=body.platform,
        )
    except ValidationError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=err.message,
        ) from err

    return ChannelResponse(
        guid=channel.guid,
        external_id=channel.external_id,
        title=channel.title,
        platform=channel.platform,
        created=created,
    )


@router.post(
    "/videos",
    response_model=VideoIngestResponse,
    summary="Ingest a video and notify subscribers",
)
async def ingest_video(
    body: VideoIngest,
    ctx: UserContext = Depends(require_admin),
    db: Session = Depends(get_db),
    service: VideoIngestionService = Depends(get_ingestion_service),
):
    """
    Store the video (idempotent on external id) and fan it out to every
    subscriber of its channel with notifications enabled.
    """
    try:
        channel = SubscriptionService(db).resolve_channel(body.channel)
        video, created, result = service.ingest_video(
            channel,
            external_id=body.external_id,
            title=body.title,
            thumbnail_url=body.thumbnail_url,
            published_at=body.published_at,
        )
    except NotFoundError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Channel not found",
        ) from err
    except ValidationError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=err.message,
        ) from err

    logger.info(
        "Video ingested",
        extra={
            "video_guid": video.guid,
            "new_video": created,
            "fanout": result.to_dict(),
            "admin_guid": ctx.user_guid,
        },
    )
    return VideoIngestResponse(
        video=VideoResponse.model_validate(video),
        created=created,
        fanout=FanoutResultResponse(**result.to_dict()),
    )


@router.post(
    "/videos/{guid}/fanout",
    response_model=FanoutResultResponse,
    summary="Re-run fan-out for a video",
)
async def rerun_fanout(
    guid: str,
    ctx: UserContext = Depends(require_admin),
    service: FanoutService = Depends(get_fanout_service),
):
    """
    Notify subscribers that did not receive the video yet. Already notified
    subscribers are skipped.
    """
    try:
        result = service.process_video(guid)
    except NotFoundError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found",
        ) from err

    return FanoutResultResponse(**result.to_dict())


@router.delete(
    "/videos/{guid}",
    response_model=VideoDeleteResponse,
    summary="Delete a video and its notifications",
)
async def delete_video(
    guid: str,
    ctx: UserContext = Depends(require_admin),
    service: VideoIngestionService = Depends(get_ingestion_service),
):
    try:
        removed = service.delete_video(guid)
    except NotFoundError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found",
        ) from err

    return VideoDeleteResponse(notifications_removed=removed)
