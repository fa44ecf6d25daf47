"""
Alert routes - submission, feed, votes, status changes and comment threads.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, Body, Depends, File, Form, Header, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from gasy_hub.core.errors import GasyHubError
from gasy_hub.core.settings import settings
from gasy_hub.db.database import get_db
from gasy_hub.models.alert import (
    AlertDeleteRequest,
    AlertPage,
    AlertResponse,
    AlertUpdateRequest,
    HasVotedResponse,
    StatusUpdateRequest,
    ValidateRequest,
    VoterEntry,
    VotersResponse,
)
from gasy_hub.models.base import BaseResponse
from gasy_hub.models.comment import CommentCreate, CommentResponse
from gasy_hub.models.media import merge_media, normalize_media
from gasy_hub.services.alert_service import get_alert_service
from gasy_hub.services.comment_service import get_comment_service
from gasy_hub.services.media_storage import get_media_storage
from gasy_hub.services.notification_service import ConnectionManager, get_connection_manager
from gasy_hub.services.vote_service import get_vote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/alerts", tags=["Alerts"])


@router.post("", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
async def create_alert(
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    author_id: Optional[str] = Form(None, alias="authorId"),
    reason: Optional[str] = Form(None),
    urgency: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    media_urls: Optional[str] = Form(None, alias="mediaUrls", description="Already-hosted media: a URL or a JSON list"),
    media: Optional[List[UploadFile]] = File(None, description="Photos or videos (max 5)"),
    db: Session = Depends(get_db),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """
    Submit a new SOS alert (multipart form).

    Flow:
    1. Store uploaded files
    2. Create the alert in "pending"
    3. Push NEW_ALERT to connected clients

    Steps 1-2 (disk writes, database, geocoding) run in the threadpool;
    only the push runs on the event loop.
    """

    def store_and_submit() -> AlertResponse:
        storage = get_media_storage()
        saved_paths: List[str] = []
        try:
            saved_paths = storage.save_uploads(media or [])
            all_media = merge_media(normalize_media(media_urls), normalize_media(saved_paths))

            alert = get_alert_service(db).submit(
                reason=reason,
                description=description,
                location=location,
                urgency=urgency,
                author_id=author_id,
                media=all_media,
                latitude=latitude,
                longitude=longitude,
            )
            return AlertResponse.from_alert(alert)
        except GasyHubError:
            storage.delete(saved_paths)
            raise
        except Exception as e:
            storage.delete(saved_paths)
            logger.error(f"Failed to create alert: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create alert"
            )

    response = await run_in_threadpool(store_and_submit)
    await manager.broadcast_new_alert(response.model_dump(mode="json", by_alias=True))
    return response


@router.get("", response_model=AlertPage)
def list_alerts(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status", description="pending, confirmed, fake or resolved"),
    author_id: Optional[str] = Query(None, alias="authorId"),
    db: Session = Depends(get_db),
):
    """
    Get alerts, newest first.
    """
    alerts, total = get_alert_service(db).list_alerts(
        page=page, limit=limit, status=status_filter, author_id=author_id
    )
    effective_limit = limit or settings.DEFAULT_PAGE_SIZE

    return AlertPage(
        alerts=[AlertResponse.from_alert(a) for a in alerts],
        page=page,
        limit=effective_limit,
        total=total,
        has_more=page * effective_limit < total,
    )


@router.get("/{alert_id}", response_model=AlertResponse)
def get_alert(
    alert_id: str,
    viewer_id: Optional[str] = Header(None, alias="X-User-ID", description="Counts a view for this user"),
    db: Session = Depends(get_db),
):
    alert = get_alert_service(db).view_alert(alert_id, viewer_id)
    return AlertResponse.from_alert(alert)


@router.put("/{alert_id}", response_model=AlertResponse)
def update_alert(alert_id: str, request: AlertUpdateRequest, db: Session = Depends(get_db)):
    """
    Edit an alert's descriptive fields (author or admin).
    """
    fields = request.model_dump(exclude={"updater_id"}, exclude_none=True)
    alert = get_alert_service(db).update_alert(alert_id, request.updater_id, fields)
    return AlertResponse.from_alert(alert)


@router.delete("/{alert_id}", response_model=BaseResponse)
def delete_alert(
    alert_id: str,
    author_id: Optional[str] = Query(None, alias="authorId"),
    request: Optional[AlertDeleteRequest] = Body(None),
    db: Session = Depends(get_db),
):
    """
    Delete an alert with its votes and comments (author or admin).
    The requester is read from the JSON body or the authorId query parameter.
    """
    requester_id = request.author_id if request is not None else author_id
    if not requester_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="authorId is required"
        )

    media_paths = get_alert_service(db).delete_alert(alert_id, requester_id)
    get_media_storage().delete(media_paths)
    return BaseResponse(message="Alert deleted")


@router.post("/{alert_id}/validate", response_model=AlertResponse)
def validate_alert(alert_id: str, request: ValidateRequest, db: Session = Depends(get_db)):
    """
    Confirm (isConfirmed=true) or reject (false) an alert. One vote per user.

    Reaching the confirmation or rejection threshold moves a pending alert
    to "confirmed" or "fake".
    """
    alert = get_vote_service(db).vote(
        alert_id=alert_id,
        user_id=request.user_id,
        is_confirmed=request.is_confirmed,
        comment=request.comment,
    )
    return AlertResponse.from_alert(alert)


@router.api_route("/{alert_id}/status", methods=["PUT", "PATCH"], response_model=AlertResponse)
def update_alert_status(alert_id: str, request: StatusUpdateRequest, db: Session = Depends(get_db)):
    """
    Change an alert's status.
    - resolved: the author (or an admin) closes the alert
    - confirmed / fake: admin override
    """
    alert = get_alert_service(db).change_status(alert_id, request.status, request.author_id)
    return AlertResponse.from_alert(alert)


@router.get("/{alert_id}/voters", response_model=VotersResponse)
def get_voters(alert_id: str, db: Session = Depends(get_db)):
    votes = get_vote_service(db).list_voters(alert_id)
    return VotersResponse(
        alert_id=alert_id,
        voters=[
            VoterEntry(user_id=v.user_id, is_confirmed=v.is_valid, validated_at=v.validated_at)
            for v in votes
        ],
    )


@router.get("/{alert_id}/has-voted", response_model=HasVotedResponse)
def has_voted(
    alert_id: str,
    user_id: str = Query(..., alias="userId"),
    db: Session = Depends(get_db),
):
    return HasVotedResponse(
        alert_id=alert_id,
        user_id=user_id,
        has_voted=get_vote_service(db).check_voted(alert_id, user_id),
    )


@router.get("/{alert_id}/comments", response_model=List[CommentResponse])
def list_comments(alert_id: str, db: Session = Depends(get_db)):
    """
    Get the comment thread of an alert, oldest first.
    """
    comments = get_comment_service(db).list_comments(alert_id)
    return [CommentResponse.from_comment(c) for c in comments]


@router.post("/{alert_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def add_comment(alert_id: str, comment: CommentCreate, db: Session = Depends(get_db)):
    """
    Add a comment. "green" and "red" comments need a matching confirm or reject vote.
    """
    created = get_comment_service(db).add_comment(
        alert_id=alert_id,
        user_id=comment.user_id,
        content=comment.content,
        comment_type=comment.type,
    )
    return CommentResponse.from_comment(created)
