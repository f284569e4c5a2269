import logging
import math
from typing import List

from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.core.config import settings
from bookreview.core.exception_utils import raise_for_status
from bookreview.core.exceptions import (
    ResourceNotFound,
    NotAuthorized,
    ValidationError,
    BadRequestException,
)
from bookreview.crud.comment_crud import comment_repository
from bookreview.crud.review_crud import review_repository
from bookreview.crud.user_crud import user_repository
from bookreview.db.session import unit_of_work
from bookreview.models.comment_model import Comment
from bookreview.schemas.comment_schema import (
    CommentCreate,
    CommentUpdate,
    CommentListResponse,
    CommentResponse,
)
from bookreview.services.cache_service import cache_service
from bookreview.services.rating_aggregation import rating_aggregation_service
from bookreview.services.review_service import SEARCH_CACHE_PREFIX

logger = logging.getLogger(__name__)

CONTENT_MIN, CONTENT_MAX = 1, 1000
CONTENT_ERROR = f"Comment content must be between {CONTENT_MIN} and {CONTENT_MAX} characters"


def _validated_content(content: str) -> str:
    cleaned = (content or "").strip()
    if not CONTENT_MIN <= len(cleaned) <= CONTENT_MAX:
        raise ValidationError(errors=[CONTENT_ERROR])
    return cleaned


class CommentService:
    """
    Comments and reply threads on reviews.

    Creating or deleting comments recomputes `Review.comments_count` in the
    same unit of work as the write.
    """

    def __init__(self):
        self.comment_repository = comment_repository
        self.review_repository = review_repository
        self.user_repository = user_repository
        self.rating_aggregation = rating_aggregation_service
        self.cache = cache_service
        self.max_depth = settings.MAX_COMMENT_DEPTH
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _get_comment_or_404(self, db: AsyncSession, comment_id: int) -> Comment:
        comment = await self.comment_repository.get(db=db, obj_id=comment_id)
        raise_for_status(
            condition=comment is None,
            exception=ResourceNotFound,
            detail="Comment not found",
            resource_type="Comment",
            resource_id=comment_id,
        )
        return comment

    def _check_authorization(self, user_id: int, comment: Comment, action: str) -> None:
        raise_for_status(
            condition=comment.user_id != user_id,
            exception=NotAuthorized,
            detail=f"User not authorized to {action} this comment",
        )

    async def _depth_of(self, db: AsyncSession, comment_id: int) -> int:
        """Depth of an existing comment; top-level comments have depth 1."""
        depth = 1
        seen = {comment_id}
        parent_id = await self.comment_repository.get_parent_id(db=db, comment_id=comment_id)
        while parent_id is not None:
            if parent_id in seen:
                # A cycle can only come from bad data; stop walking.
                self._logger.error(f"Comment thread cycle detected at {parent_id}")
                break
            seen.add(parent_id)
            depth += 1
            if depth > self.max_depth:
                break
            parent_id = await self.comment_repository.get_parent_id(
                db=db, comment_id=parent_id
            )
        return depth

    async def _subtree_ids(self, db: AsyncSession, comment_id: int) -> List[int]:
        """The comment and all of its descendants, breadth first."""
        collected = [comment_id]
        frontier = [comment_id]
        while frontier:
            children = await self.comment_repository.get_child_ids(
                db=db, parent_ids=frontier
            )
            frontier = [child for child in children if child not in collected]
            collected.extend(frontier)
        return collected

    # ======= READ OPERATIONS =======
    async def get_comment_by_id(self, db: AsyncSession, *, comment_id: int) -> Comment:
        comment = await self.comment_repository.get(db=db, obj_id=comment_id, refresh=True)
        raise_for_status(
            condition=comment is None,
            exception=ResourceNotFound,
            detail="Comment not found",
            resource_type="Comment",
            resource_id=comment_id,
        )
        return comment

    async def get_review_comments(
        self,
        db: AsyncSession,
        *,
        review_id: int,
        page: int = 1,
        limit: int = settings.DEFAULT_PAGE_SIZE,
    ) -> CommentListResponse:
        """Top-level comments of a review, oldest first."""
        review = await self.review_repository.get(db=db, obj_id=review_id)
        raise_for_status(
            condition=review is None,
            exception=ResourceNotFound,
            detail="Review not found",
            resource_type="Review",
            resource_id=review_id,
        )

        comments, total = await self.comment_repository.get_top_level(
            db=db, review_id=review_id, skip=(page - 1) * limit, limit=limit
        )
        total_pages = math.ceil(total / limit)
        return CommentListResponse(
            comments=[CommentResponse.model_validate(c) for c in comments],
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    async def get_comment_replies(
        self, db: AsyncSession, *, comment_id: int
    ) -> List[Comment]:
        """Direct replies to a comment, oldest first."""
        await self._get_comment_or_404(db, comment_id)
        return await self.comment_repository.get_replies(db=db, comment_id=comment_id)

    # ========CREATE======
    async def create_comment(
        self,
        db: AsyncSession,
        *,
        review_id: int,
        user_id: int,
        comment_data: CommentCreate,
    ) -> Comment:
        content = _validated_content(comment_data.content)
        parent_id = comment_data.parent_comment_id

        async with unit_of_work(db):
            review = await self.review_repository.get(db=db, obj_id=review_id)
            raise_for_status(
                condition=review is None,
                exception=ResourceNotFound,
                detail="Review not found",
                resource_type="Review",
                resource_id=review_id,
            )

            user = await self.user_repository.get(db=db, obj_id=user_id)
            raise_for_status(
                condition=user is None,
                exception=ResourceNotFound,
                detail="User not found",
                resource_type="User",
                resource_id=user_id,
            )

            if parent_id is not None:
                parent = await self._get_comment_or_404(db, parent_id)
                raise_for_status(
                    condition=parent.review_id != review_id,
                    exception=BadRequestException,
                    detail="Parent comment belongs to a different review",
                )
                raise_for_status(
                    condition=await self._depth_of(db, parent_id) + 1 > self.max_depth,
                    exception=BadRequestException,
                    detail=f"Replies cannot be nested more than {self.max_depth} levels deep",
                )

            new_comment = await self.comment_repository.create(
                db=db,
                obj_in=Comment(
                    review_id=review_id,
                    user_id=user_id,
                    parent_comment_id=parent_id,
                    content=content,
                ),
            )
            await self.rating_aggregation.recompute_review_comment_count(db, review_id)
            comment_id = new_comment.id

        await self.cache.invalidate(SEARCH_CACHE_PREFIX)
        self._logger.info(
            f"New comment created: {comment_id}",
            extra={"comment_id": comment_id, "review_id": review_id, "user_id": user_id},
        )
        return await self.get_comment_by_id(db, comment_id=comment_id)

    # ========UPDATE======
    async def update_comment(
        self,
        db: AsyncSession,
        *,
        comment_id: int,
        user_id: int,
        comment_data: CommentUpdate,
    ) -> Comment:
        content = _validated_content(comment_data.content)

        async with unit_of_work(db):
            comment = await self._get_comment_or_404(db, comment_id)
            self._check_authorization(user_id, comment, action="edit")
            await self.comment_repository.update_content(
                db=db, comment=comment, content=content
            )

        self._logger.info(f"Comment {comment_id} updated by {user_id}")
        return await self.get_comment_by_id(db, comment_id=comment_id)

    # ========DELETE=======
    async def delete_comment(
        self, db: AsyncSession, *, comment_id: int, user_id: int
    ) -> None:
        """Delete a comment together with every reply beneath it."""
        async with unit_of_work(db):
            comment = await self._get_comment_or_404(db, comment_id)
            self._check_authorization(user_id, comment, action="delete")

            review_id = comment.review_id
            subtree_ids = await self._subtree_ids(db, comment_id)
            deleted = await self.comment_repository.delete_many(
                db=db, comment_ids=subtree_ids
            )
            await self.rating_aggregation.recompute_review_comment_count(db, review_id)

        await self.cache.invalidate(SEARCH_CACHE_PREFIX)
        self._logger.warning(
            f"Comment {comment_id} permanently deleted by {user_id}",
            extra={
                "deleted_comment_id": comment_id,
                "review_id": review_id,
                "deleted_count": deleted,
            },
        )


comment_service = CommentService()
