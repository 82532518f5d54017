"""
Channel subscription API endpoints.

Provides endpoints for:
- Listing the caller's subscriptions and subscribed channels
- Subscription status for one channel
- Subscribing, toggling notifications and unsubscribing

Channels are addressed by GUID (chn_xxx) or by their platform external id.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import require_auth, UserContext
from backend.src.schemas.subscriptions import (
    ChannelSummary,
    SubscriptionCreate,
    SubscriptionUpdate,
    SubscriptionResponse,
    SubscriptionListResponse,
    SubscribedChannelsResponse,
    SubscriptionStatusResponse,
)
from backend.src.services.subscription_service import SubscriptionService
from backend.src.services.exceptions import ConflictError, NotFoundError
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

from backend.src.main import limiter

router = APIRouter(tags=["Subscriptions"])


def get_subscription_service(
    db: Session = Depends(get_db),
) -> SubscriptionService:
    """Create SubscriptionService instance with database session."""
    return SubscriptionService(db=db)


def _not_found(err: NotFoundError) -> HTTPException:
    detail = (
        "Channel not found" if err.resource == "Channel"
        else "Not subscribed to this channel"
    )
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


# ============================================================================
# Listing Endpoints
# ============================================================================


@router.get(
    "/subscriptions",
    response_model=SubscriptionListResponse,
    summary="List my subscriptions",
)
@limiter.limit("60/minute")
async def list_subscriptions(
    request: Request,
    ctx: UserContext = Depends(require_auth),
    service: SubscriptionService = Depends(get_subscription_service),
):
    subscriptions = service.list_subscriptions(user_id=ctx.user_id)
    return SubscriptionListResponse(
        items=[SubscriptionResponse.model_validate(s) for s in subscriptions],
        total=len(subscriptions),
    )


@router.get(
    "/subscriptions/channels",
    response_model=SubscribedChannelsResponse,
    summary="List channels I am subscribed to",
)
@limiter.limit("60/minute")
async def list_subscribed_channels(
    request: Request,
    ctx: UserContext = Depends(require_auth),
    service: SubscriptionService = Depends(get_subscription_service),
):
    channels = service.list_subscribed_channels(user_id=ctx.user_id)
    return SubscribedChannelsResponse(
        items=[ChannelSummary.model_validate(c) for c in channels],
        total=len(channels),
    )


@router.get(
    "/channels/{channel}/subscription",
    response_model=SubscriptionStatusResponse,
    summary="Get subscription status for a channel",
)
@limiter.limit("120/minute")
async def get_subscription_status(
    request: Request,
    channel: str,
    ctx: UserContext = Depends(require_auth),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Returns whether the caller follows the channel and receives its
    new-video notifications.
    """
    try:
        is_subscribed, notifications_enabled = service.get_subscription_status(
            user_id=ctx.user_id, channel_identifier=channel
        )
    except NotFoundError as err:
        raise _not_found(err) from err

    return SubscriptionStatusResponse(
        is_subscribed=is_subscribed,
        notifications_enabled=notifications_enabled,
    )


# ============================================================================
# Mutation Endpoints
# ============================================================================


@router.post(
    "/subscriptions",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Subscribe to a channel",
)
@limiter.limit("30/minute")
async def subscribe(
    request: Request,
    body: SubscriptionCreate,
    ctx: UserContext = Depends(require_auth),
    service: SubscriptionService = Depends(get_subscription_service),
):
    try:
        subscription = service.subscribe(
            user_id=ctx.user_id,
            channel_identifier=body.channel,
            notifications_enabled=body.notifications_enabled,
        )
    except NotFoundError as err:
        raise _not_found(err) from err
    except ConflictError as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Already subscribed to this channel",
        ) from err

    return SubscriptionResponse.model_validate(subscription)


@router.put(
    "/subscriptions/{channel}",
    response_model=SubscriptionResponse,
    summary="Turn channel notifications on or off",
)
@limiter.limit("30/minute")
async def update_subscription(
    request: Request,
    channel: str,
    body: SubscriptionUpdate,
    ctx: UserContext = Depends(require_auth),
    service: SubscriptionService = Depends(get_subscription_service),
):
    try:
        subscription = service.update_preference(
            user_id=ctx.user_id,
            channel_identifier=channel,
            notifications_enabled=body.notifications_enabled,
        )
    except NotFoundError as err:
        raise _not_found(err) from err

    return SubscriptionResponse.model_validate(subscription)


@router.delete(
    "/subscriptions/{channel}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unsubscribe from a channel",
)
@limiter.limit("30/minute")
async def unsubscribe(
    request: Request,
    channel: str,
    ctx: UserContext = Depends(require_auth),
    service: SubscriptionService = Depends(get_subscription_service),
):
    try:
        service.unsubscribe(user_id=ctx.user_id, channel_identifier=channel)
    except NotFoundError as err:
        raise _not_found(err) from err

    return Response(status_code=status.HTTP_204_NO_CONTENT)
