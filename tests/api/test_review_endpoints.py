import pytest
import pytest_asyncio

from bookreview.core.exceptions import InternalServerError
from bookreview.core.security import TokenType, token_manager
from bookreview.services.review_service import review_service

pytestmark = pytest.mark.asyncio

API = "/api/v1"


def review_payload(book_id: int, **overrides):
    payload = {
        "book_id": book_id,
        "rating": 5,
        "title": "Great",
        "content": "Ten+ chars of text",
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def created_review(test_client, reader_headers, book):
    response = await test_client.post(
        f"{API}/reviews", json=review_payload(book.id), headers=reader_headers
    )
    assert response.status_code == 201
    return response.json()["data"]


def assert_error(response, status_code: int, code: str):
    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    assert body["path"] == response.request.url.path
    assert "timestamp" in body
    return body["error"]


class TestEnvelope:
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["data"]["status"] == "healthy"

    async def test_success_envelope_and_request_id(self, test_client, created_review, book):
        response = await test_client.get(
            f"{API}/reviews/{created_review['id']}", headers={"X-Request-ID": "abc-123"}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["error"] is None
        assert body["path"] == f"{API}/reviews/{created_review['id']}"
        assert body["data"]["book"]["id"] == book.id
        assert body["data"]["user"]["username"] == "reader"
        assert response.headers["X-Request-ID"] == "abc-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    async def test_unknown_review_is_404(self, test_client):
        error = assert_error(await test_client.get(f"{API}/reviews/999"), 404, "NOT_FOUND")
        assert error["message"] == "Review not found"

    async def test_storage_failure_is_500(self, test_client, monkeypatch):
        async def broken(*args, **kwargs):
            raise InternalServerError("A database error occurred.")

        monkeypatch.setattr(review_service.review_repository, "get", broken)

        error = assert_error(
            await test_client.get(f"{API}/reviews/1"), 500, "INTERNAL_SERVER_ERROR"
        )
        assert "Traceback" not in error["message"]


class TestAuthentication:
    async def test_missing_token_is_401(self, test_client, book):
        response = await test_client.post(f"{API}/reviews", json=review_payload(book.id))
        assert_error(response, 401, "UNAUTHORIZED")

    async def test_garbage_token_is_401(self, test_client, book):
        response = await test_client.post(
            f"{API}/reviews",
            json=review_payload(book.id),
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert_error(response, 401, "UNAUTHORIZED")

    async def test_refresh_token_is_rejected(self, test_client, reader, book):
        token = token_manager.create_token(subject=str(reader.id), token_type=TokenType.REFRESH)
        response = await test_client.post(
            f"{API}/reviews",
            json=review_payload(book.id),
            headers={"Authorization": f"Bearer {token}"},
        )
        assert_error(response, 401, "UNAUTHORIZED")

    async def test_unknown_subject_is_401(self, test_client, auth_headers, book):
        response = await test_client.post(
            f"{API}/reviews", json=review_payload(book.id), headers=auth_headers(4242)
        )
        assert_error(response, 401, "UNAUTHORIZED")

    async def test_inactive_user_is_401(self, test_client, user_factory, auth_headers, book):
        dormant = await user_factory("dormant", is_active=False)
        response = await test_client.post(
            f"{API}/reviews", json=review_payload(book.id), headers=auth_headers(dormant.id)
        )
        assert_error(response, 401, "UNAUTHORIZED")


class TestReviewLifecycle:
    async def test_create_returns_201_and_updates_book(
        self, test_client, reader_headers, book
    ):
        book_id = book.id
        response = await test_client.post(
            f"{API}/reviews",
            json=review_payload(book_id, content="The butler dies in the library."),
            headers=reader_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["rating"] == 5
        assert data["spoiler_warning"] is True
        assert data["comments_count"] == 0

        book_body = (await test_client.get(f"{API}/books/{book_id}")).json()["data"]
        assert book_body["average_rating"] == 5.0
        assert book_body["ratings_count"] == 1

    async def test_duplicate_is_409(self, test_client, reader_headers, created_review, book):
        response = await test_client.post(
            f"{API}/reviews", json=review_payload(book.id, rating=1), headers=reader_headers
        )

        error = assert_error(response, 409, "REVIEW_ALREADY_EXISTS")
        assert error["message"] == "User already has a review for this book"

    async def test_rule_violations_are_400(self, test_client, reader_headers, book):
        response = await test_client.post(
            f"{API}/reviews",
            json=review_payload(book.id, rating=9, content="short"),
            headers=reader_headers,
        )

        error = assert_error(response, 400, "VALIDATION_ERROR")
        assert error["message"] == (
            "Validation failed: Rating must be an integer between 1 and 5, "
            "Content must be between 10 and 5000 characters"
        )

    async def test_malformed_body_is_400(self, test_client, reader_headers):
        response = await test_client.post(
            f"{API}/reviews", json={"rating": 5}, headers=reader_headers
        )

        error = assert_error(response, 400, "VALIDATION_ERROR")
        assert {d["field"] for d in error["details"]} >= {"book_id", "title", "content"}

    async def test_update_by_author(self, test_client, reader_headers, created_review, book):
        response = await test_client.put(
            f"{API}/reviews/{created_review['id']}",
            json={"rating": 2},
            headers=reader_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["rating"] == 2
        assert response.json()["data"]["title"] == "Great"
        book_body = (await test_client.get(f"{API}/books/{book.id}")).json()["data"]
        assert book_body["average_rating"] == 2.0

    async def test_empty_update_is_400(self, test_client, reader_headers, created_review):
        response = await test_client.put(
            f"{API}/reviews/{created_review['id']}", json={}, headers=reader_headers
        )
        assert_error(response, 400, "VALIDATION_ERROR")

    async def test_update_by_other_user_is_403(
        self, test_client, other_reader_headers, created_review
    ):
        response = await test_client.put(
            f"{API}/reviews/{created_review['id']}",
            json={"rating": 1},
            headers=other_reader_headers,
        )
        assert_error(response, 403, "FORBIDDEN")

    async def test_delete_returns_204_then_404(
        self, test_client, reader_headers, created_review, book
    ):
        url = f"{API}/reviews/{created_review['id']}"
        book_id = book.id

        response = await test_client.delete(url, headers=reader_headers)
        assert response.status_code == 204
        assert response.content == b""

        assert_error(await test_client.delete(url, headers=reader_headers), 404, "NOT_FOUND")
        book_body = (await test_client.get(f"{API}/books/{book_id}")).json()["data"]
        assert book_body["ratings_count"] == 0
        assert book_body["average_rating"] == 0

    async def test_delete_by_other_user_is_403(
        self, test_client, other_reader_headers, created_review
    ):
        response = await test_client.delete(
            f"{API}/reviews/{created_review['id']}", headers=other_reader_headers
        )
        assert_error(response, 403, "FORBIDDEN")

    async def test_flag_review(self, test_client, other_reader_headers, created_review):
        url = f"{API}/reviews/{created_review['id']}/flag"

        response = await test_client.post(
            url, json={"reason": "Off topic"}, headers=other_reader_headers
        )
        assert response.status_code == 201
        assert response.json()["data"]["reason"] == "Off topic"

        again = await test_client.post(url, json={"reason": "Still"}, headers=other_reader_headers)
        assert_error(again, 409, "CONFLICT")


class TestQueries:
    async def test_list_with_filters(self, test_client, created_review, book):
        response = await test_client.get(
            f"{API}/reviews",
            params={"book_id": book.id, "min_rating": 4, "sort_by": "rating", "sort_order": "asc"},
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["total"] == 1
        assert data["page"] == 1
        assert data["limit"] == 10
        assert data["reviews"][0]["id"] == created_review["id"]

    async def test_bad_query_params_are_400(self, test_client):
        response = await test_client.get(f"{API}/reviews", params={"sort_by": "password"})
        assert_error(response, 400, "VALIDATION_ERROR")

        response = await test_client.get(f"{API}/reviews", params={"limit": 1000})
        assert_error(response, 400, "VALIDATION_ERROR")

    async def test_inverted_rating_range_is_400(self, test_client):
        response = await test_client.get(
            f"{API}/reviews", params={"min_rating": 5, "max_rating": 1}
        )
        assert_error(response, 400, "VALIDATION_ERROR")

    async def test_search(self, test_client, created_review):
        response = await test_client.get(f"{API}/reviews/search", params={"q": "great"})

        assert response.status_code == 200
        assert response.json()["data"]["total"] == 1

        blank = await test_client.get(f"{API}/reviews/search", params={"q": "  "})
        assert_error(blank, 400, "VALIDATION_ERROR")

    async def test_scoped_listings(self, test_client, reader, created_review, book):
        by_book = await test_client.get(f"{API}/books/{book.id}/reviews")
        by_user = await test_client.get(f"{API}/users/{reader.id}/reviews")

        assert by_book.json()["data"]["total"] == 1
        assert by_user.json()["data"]["total"] == 1
        assert_error(await test_client.get(f"{API}/books/999/reviews"), 404, "NOT_FOUND")
        assert_error(await test_client.get(f"{API}/users/999/reviews"), 404, "NOT_FOUND")

    async def test_user_stats(self, test_client, reader, created_review):
        response = await test_client.get(f"{API}/users/{reader.id}/reviews/stats")

        data = response.json()["data"]
        assert data["total_reviews"] == 1
        assert data["average_rating"] == 5.0
        assert data["rating_distribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 1}
