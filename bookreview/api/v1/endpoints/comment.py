import logging
from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.core.config import settings
from bookreview.db.session import get_session
from bookreview.models.user_model import User
from bookreview.schemas.common_schema import ApiResponse, success_response
from bookreview.schemas.comment_schema import CommentResponse, CommentUpdate
from bookreview.services.comment_service import comment_service
from bookreview.utils.deps import get_current_active_user

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Comments"],
    prefix=f"{settings.API_V1_STR}/comments",
)


@router.get(
    "/{comment_id}/replies",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[List[CommentResponse]],
    summary="Get comment replies",
    description="Direct replies to a comment, oldest first",
)
async def get_comment_replies(
    *,
    request: Request,
    comment_id: int,
    db: AsyncSession = Depends(get_session),
):
    replies = await comment_service.get_comment_replies(db=db, comment_id=comment_id)
    return success_response(
        [CommentResponse.model_validate(reply) for reply in replies], request
    )


@router.put(
    "/{comment_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[CommentResponse],
    summary="Update comment",
)
async def update_comment(
    *,
    request: Request,
    comment_id: int,
    comment_data: CommentUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_active_user),
):
    comment = await comment_service.update_comment(
        db=db, comment_id=comment_id, user_id=current_user.id, comment_data=comment_data
    )
    return success_response(CommentResponse.model_validate(comment), request)


@router.delete(
    "/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete comment",
    description="Delete your own comment and every reply beneath it",
)
async def delete_comment(
    *,
    comment_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_active_user),
):
    await comment_service.delete_comment(
        db=db, comment_id=comment_id, user_id=current_user.id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
