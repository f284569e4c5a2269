import logging
from typing import Optional, List, Tuple, Iterable

from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, func, delete

from bookreview.core.exception_utils import handle_exceptions
from bookreview.core.exceptions import InternalServerError
from bookreview.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookreview.models.comment_model import Comment


class CommentRepository(BaseRepository[Comment]):
    """Repository for comments and reply threads."""

    def __init__(self):
        super().__init__(Comment)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(
        self, db: AsyncSession, *, obj_id: int, refresh: bool = False
    ) -> Optional[Comment]:
        statement = select(self.model).where(self.model.id == obj_id)
        if refresh:
            statement = statement.execution_options(populate_existing=True)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_parent_id(self, db: AsyncSession, *, comment_id: int) -> Optional[int]:
        statement = select(self.model.parent_comment_id).where(self.model.id == comment_id)
        return (await db.execute(statement)).scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_child_ids(
        self, db: AsyncSession, *, parent_ids: Iterable[int]
    ) -> List[int]:
        """IDs of the direct replies to any of `parent_ids`."""
        parent_ids = list(parent_ids)
        if not parent_ids:
            return []
        statement = select(self.model.id).where(
            self.model.parent_comment_id.in_(parent_ids)
        )
        return list((await db.execute(statement)).scalars().all())

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def count_for_review(self, db: AsyncSession, *, review_id: int) -> int:
        statement = select(func.count(self.model.id)).where(
            self.model.review_id == review_id
        )
        return (await db.execute(statement)).scalar_one()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_top_level(
        self, db: AsyncSession, *, review_id: int, skip: int = 0, limit: int = 20
    ) -> Tuple[List[Comment], int]:
        """Top-level comments of a review, oldest first."""
        query = select(self.model).where(
            self.model.review_id == review_id,
            self.model.parent_comment_id.is_(None),
        )
        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar_one()

        query = (
            query.order_by(self.model.created_at.asc(), self.model.id.asc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), total

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_replies(self, db: AsyncSession, *, comment_id: int) -> List[Comment]:
        """Direct replies to a comment, oldest first."""
        statement = (
            select(self.model)
            .where(self.model.parent_comment_id == comment_id)
            .order_by(self.model.created_at.asc(), self.model.id.asc())
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def create(self, db: AsyncSession, *, obj_in: Comment) -> Comment:
        db.add(obj_in)
        await db.flush()
        self._logger.info(f"Comment created: {obj_in.id}")
        return obj_in

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def update_content(
        self, db: AsyncSession, *, comment: Comment, content: str
    ) -> Comment:
        comment.content = content
        db.add(comment)
        await db.flush()
        return comment

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def delete_many(self, db: AsyncSession, *, comment_ids: List[int]) -> int:
        if not comment_ids:
            return 0
        statement = delete(self.model).where(self.model.id.in_(comment_ids))
        result = await db.execute(statement)
        self._logger.info(f"Comments hard deleted: {comment_ids}")
        return result.rowcount

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def delete_by_review(self, db: AsyncSession, *, review_id: int) -> int:
        """Delete every comment of a review, replies included."""
        statement = delete(self.model).where(self.model.review_id == review_id)
        result = await db.execute(statement)
        self._logger.info(
            f"Comments of review {review_id} deleted: {result.rowcount}"
        )
        return result.rowcount


comment_repository = CommentRepository()
