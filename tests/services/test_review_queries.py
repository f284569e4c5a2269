import pytest
import pytest_asyncio

from bookreview.core.exceptions import ResourceNotFound, ValidationError
from bookreview.crud.book_crud import book_repository
from bookreview.models.book_model import Book
from bookreview.schemas.review_schema import (
    ReviewCreate,
    ReviewFilterParams,
    ReviewPaginationParams,
)
from bookreview.services.review_service import review_service

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def seeded(db_session, user_factory, book, second_book):
    """Five readers review the first book; the first reader also reviews the second."""
    users = [await user_factory(f"reader_{i}") for i in range(5)]
    book_id, second_id = book.id, second_book.id
    contents = [
        "A slow start but rewarding.",
        "The twist in the middle changes everything.",
        "Solid and dependable storytelling.",
        "Gorgeous writing, weak characters.",
        "I could not put it down at all.",
    ]
    for rating, (user, content) in enumerate(zip(users, contents), start=1):
        await review_service.create_review(
            db_session,
            user_id=user.id,
            review_data=ReviewCreate(
                book_id=book_id, rating=rating, title=f"Review {rating}", content=content
            ),
        )
    await review_service.create_review(
        db_session,
        user_id=users[0].id,
        review_data=ReviewCreate(
            book_id=second_id, rating=4, title="Desert epic", content="Spice, sand and politics."
        ),
    )
    return {"users": users, "book_id": book_id, "second_book_id": second_id}


class TestListReviews:
    async def test_defaults_page_through_everything(self, db_session, seeded):
        result = await review_service.list_reviews(db_session)

        assert result.total == 6
        assert result.page == 1
        assert result.limit == 10
        assert result.total_pages == 1
        assert result.has_next is False
        assert result.has_prev is False
        created = [r.created_at for r in result.reviews]
        assert created == sorted(created, reverse=True)

    async def test_pagination_math(self, db_session, seeded):
        result = await review_service.list_reviews(
            db_session, pagination=ReviewPaginationParams(page=2, limit=4)
        )

        assert result.total == 6
        assert result.total_pages == 2
        assert len(result.reviews) == 2
        assert result.has_next is False
        assert result.has_prev is True

    async def test_page_past_the_end_is_empty(self, db_session, seeded):
        result = await review_service.list_reviews(
            db_session, pagination=ReviewPaginationParams(page=5, limit=4)
        )

        assert result.reviews == []
        assert result.total == 6

    async def test_filters_combine(self, db_session, seeded):
        result = await review_service.list_reviews(
            db_session,
            filters=ReviewFilterParams(book_id=seeded["book_id"], min_rating=2, max_rating=4),
        )

        assert sorted(r.rating for r in result.reviews) == [2, 3, 4]
        assert all(r.book_id == seeded["book_id"] for r in result.reviews)

    async def test_spoiler_filter(self, db_session, seeded):
        result = await review_service.list_reviews(
            db_session, filters=ReviewFilterParams(spoiler_warning=True)
        )

        assert [r.title for r in result.reviews] == ["Review 2"]

    async def test_sort_by_rating_ascending(self, db_session, seeded):
        result = await review_service.list_reviews(
            db_session,
            filters=ReviewFilterParams(book_id=seeded["book_id"]),
            pagination=ReviewPaginationParams(sort_by="rating", sort_order="asc"),
        )

        assert [r.rating for r in result.reviews] == [1, 2, 3, 4, 5]

    async def test_min_above_max_is_rejected(self, db_session):
        with pytest.raises(ValidationError):
            await review_service.list_reviews(
                db_session, filters=ReviewFilterParams(min_rating=4, max_rating=2)
            )

    async def test_reviews_carry_projections(self, db_session, seeded):
        result = await review_service.list_reviews(
            db_session, filters=ReviewFilterParams(book_id=seeded["second_book_id"])
        )

        review = result.reviews[0]
        assert review.user.username == "reader_0"
        assert review.book.title == "Dune"
        assert review.book.authors == ["Frank Herbert"]


class TestScopedListings:
    async def test_book_reviews(self, db_session, seeded):
        result = await review_service.get_book_reviews(db_session, book_id=seeded["book_id"])
        assert result.total == 5

    async def test_user_reviews(self, db_session, seeded):
        result = await review_service.get_user_reviews(
            db_session, user_id=seeded["users"][0].id
        )
        assert result.total == 2

    async def test_missing_book_is_not_found(self, db_session):
        with pytest.raises(ResourceNotFound):
            await review_service.get_book_reviews(db_session, book_id=999)

    async def test_missing_user_is_not_found(self, db_session):
        with pytest.raises(ResourceNotFound):
            await review_service.get_user_reviews(db_session, user_id=999)


class TestSearch:
    async def test_matches_title_or_content_case_insensitively(self, db_session, seeded):
        by_content = await review_service.search_reviews(db_session, query="TWIST")
        by_title = await review_service.search_reviews(db_session, query="desert")

        assert [r.title for r in by_content.reviews] == ["Review 2"]
        assert [r.title for r in by_title.reviews] == ["Desert epic"]

    async def test_no_match_is_empty(self, db_session, seeded):
        result = await review_service.search_reviews(db_session, query="zeppelin")

        assert result.total == 0
        assert result.total_pages == 0
        assert result.has_next is False

    async def test_wildcards_match_literally(self, db_session, seeded):
        users, second_id = seeded["users"], seeded["second_book_id"]
        await review_service.create_review(
            db_session,
            user_id=users[1].id,
            review_data=ReviewCreate(
                book_id=second_id, rating=5, title="Worth it", content="100% worth the time."
            ),
        )
        await review_service.create_review(
            db_session,
            user_id=users[2].id,
            review_data=ReviewCreate(
                book_id=second_id, rating=3, title="Fine", content="Reads like a snake_case log."
            ),
        )

        percent = await review_service.search_reviews(db_session, query="%")
        underscore = await review_service.search_reviews(db_session, query="_")
        backslash = await review_service.search_reviews(db_session, query="\\")

        assert [r.title for r in percent.reviews] == ["Worth it"]
        assert [r.title for r in underscore.reviews] == ["Fine"]
        assert backslash.total == 0

    @pytest.mark.parametrize("query", ["", "   "])
    async def test_blank_query_is_rejected(self, db_session, query):
        with pytest.raises(ValidationError):
            await review_service.search_reviews(db_session, query=query)


class TestUserStats:
    async def test_stats_for_user_with_reviews(self, db_session, seeded):
        stats = await review_service.get_user_review_stats(
            db_session, user_id=seeded["users"][0].id
        )

        assert stats.total_reviews == 2
        assert stats.average_rating == 2.5
        assert stats.rating_distribution == {1: 1, 2: 0, 3: 0, 4: 1, 5: 0}

    async def test_average_is_rounded_to_two_places(
        self, db_session, user_factory, book, second_book
    ):
        user = await user_factory("rounder")
        user_id = user.id
        third_book = await book_repository.create(
            db=db_session,
            obj_in=Book(isbn="080442957X", title="Third", authors=["Someone"]),
        )
        await db_session.commit()

        for book_id, rating in ((book.id, 5), (second_book.id, 4), (third_book.id, 4)):
            await review_service.create_review(
                db_session,
                user_id=user_id,
                review_data=ReviewCreate(
                    book_id=book_id, rating=rating, title="Fine", content="Ten+ chars of text"
                ),
            )

        stats = await review_service.get_user_review_stats(db_session, user_id=user_id)
        assert stats.average_rating == 4.33
        assert stats.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 2, 5: 1}

    async def test_stats_for_user_without_reviews(self, db_session):
        stats = await review_service.get_user_review_stats(db_session, user_id=12345)

        assert stats.total_reviews == 0
        assert stats.average_rating == 0.0
        assert stats.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
