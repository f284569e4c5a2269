import pytest
import pytest_asyncio

from bookreview.schemas.review_schema import ReviewCreate, ReviewStatsResponse
from bookreview.services.cache_service import CacheService
from bookreview.services.comment_service import comment_service
from bookreview.services.review_service import review_service
from tests.mocks.fake_redis import BrokenRedis, FakeRedis

pytestmark = pytest.mark.asyncio

STATS = ReviewStatsResponse(
    total_reviews=2, average_rating=4.5, rating_distribution={1: 0, 2: 0, 3: 0, 4: 1, 5: 1}
)


@pytest_asyncio.fixture
async def fake_redis():
    return FakeRedis()


@pytest_asyncio.fixture
async def live_cache(monkeypatch, fake_redis):
    """Route the services through an enabled cache backed by FakeRedis."""
    cache = CacheService(client=fake_redis, enabled=True, ttl=60)
    monkeypatch.setattr(review_service, "cache", cache)
    monkeypatch.setattr(comment_service, "cache", cache)
    return cache


class TestCacheService:
    async def test_round_trip_uses_ttl(self, fake_redis):
        cache = CacheService(client=fake_redis, enabled=True, ttl=60)

        await cache.set("reviews:stats:1", STATS)

        assert await cache.get("reviews:stats:1", ReviewStatsResponse) == STATS
        assert fake_redis.expiries["reviews:stats:1"] == 60

    async def test_miss_returns_none(self, fake_redis):
        cache = CacheService(client=fake_redis, enabled=True)
        assert await cache.get("nothing", ReviewStatsResponse) is None

    async def test_invalidate_drops_prefix_only(self, fake_redis):
        cache = CacheService(client=fake_redis, enabled=True)
        await cache.set("reviews:search:a", STATS)
        await cache.set("reviews:search:b", STATS)
        await cache.set("reviews:stats:1", STATS)

        await cache.invalidate("reviews:search:")

        assert set(fake_redis.store) == {"reviews:stats:1"}

    async def test_disabled_cache_never_touches_client(self):
        cache = CacheService(client=BrokenRedis(), enabled=False)

        await cache.set("k", STATS)
        await cache.invalidate("k")
        assert await cache.get("k", ReviewStatsResponse) is None

    async def test_failures_behave_as_misses(self):
        cache = CacheService(client=BrokenRedis(), enabled=True)

        await cache.set("k", STATS)
        await cache.invalidate("k")
        assert await cache.get("k", ReviewStatsResponse) is None

    async def test_corrupt_entry_is_a_miss(self, fake_redis):
        fake_redis.store["k"] = "not json"
        cache = CacheService(client=fake_redis, enabled=True)

        assert await cache.get("k", ReviewStatsResponse) is None


class TestServiceCaching:
    async def test_search_results_are_cached_and_invalidated(
        self, db_session, live_cache, fake_redis, reader, other_reader, book
    ):
        book_id, other_id = book.id, other_reader.id
        await review_service.create_review(
            db_session,
            user_id=reader.id,
            review_data=ReviewCreate(
                book_id=book_id, rating=5, title="Stellar", content="A stellar, moving read."
            ),
        )

        first = await review_service.search_reviews(db_session, query="stellar")
        assert first.total == 1
        assert any(key.startswith("reviews:search:stellar") for key in fake_redis.store)

        await review_service.create_review(
            db_session,
            user_id=other_id,
            review_data=ReviewCreate(
                book_id=book_id, rating=2, title="Not stellar", content="Overrated in my view."
            ),
        )
        assert not any(key.startswith("reviews:search:") for key in fake_redis.store)

        second = await review_service.search_reviews(db_session, query="stellar")
        assert second.total == 2

    async def test_stats_are_invalidated_for_the_author(
        self, db_session, live_cache, fake_redis, reader, book, second_book
    ):
        user_id, second_id = reader.id, second_book.id
        await review_service.create_review(
            db_session,
            user_id=user_id,
            review_data=ReviewCreate(
                book_id=book.id, rating=5, title="Loved", content="Ten+ chars of text"
            ),
        )
        stats = await review_service.get_user_review_stats(db_session, user_id=user_id)
        assert stats.total_reviews == 1
        assert f"reviews:stats:{user_id}" in fake_redis.store

        await review_service.create_review(
            db_session,
            user_id=user_id,
            review_data=ReviewCreate(
                book_id=second_id, rating=3, title="Fine", content="Ten+ chars of text"
            ),
        )

        stats = await review_service.get_user_review_stats(db_session, user_id=user_id)
        assert stats.total_reviews == 2
        assert stats.average_rating == 4.0

    async def test_unreachable_cache_does_not_change_results(
        self, db_session, monkeypatch, reader, book
    ):
        monkeypatch.setattr(
            review_service, "cache", CacheService(client=BrokenRedis(), enabled=True)
        )
        user_id = reader.id
        await review_service.create_review(
            db_session,
            user_id=user_id,
            review_data=ReviewCreate(
                book_id=book.id, rating=4, title="Good", content="Ten+ chars of text"
            ),
        )

        stats = await review_service.get_user_review_stats(db_session, user_id=user_id)
        results = await review_service.search_reviews(db_session, query="good")

        assert stats.total_reviews == 1
        assert results.total == 1
