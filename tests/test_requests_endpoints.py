"""API tests for the request lifecycle."""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import select

from app.models.message import Message
from app.models.request import CATEGORIES, Request
from app.models.user import User
from conftest import API, fetch, request_payload


class TestCreateRequest:
    def test_create_success(self, client: TestClient, alice, login_headers):
        response = client.post(
            f"{API}/requests", json=request_payload(), headers=login_headers(alice)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "OPEN"
        assert data["requester_id"] == alice.id
        assert data["fulfiller_id"] is None
        assert data["requester"]["email"] == alice.email
        assert data["message_count"] == 0
        assert fetch(User, alice.id).total_requests == 1

    def test_requires_auth(self, client: TestClient):
        response = client.post(f"{API}/requests", json=request_payload())

        assert response.status_code == 401

    def test_invalid_payload(self, client: TestClient, alice, login_headers):
        response = client.post(
            f"{API}/requests",
            json=request_payload(quantity=0, category="Furniture", title=""),
            headers=login_headers(alice),
        )

        assert response.status_code == 400
        fields = {d["field"] for d in response.json()["details"]}
        assert {"quantity", "category", "title"} <= fields
        assert fetch(User, alice.id).total_requests == 0

    @pytest.mark.parametrize("category", CATEGORIES)
    def test_every_category_accepted(self, client: TestClient, alice, login_headers, category):
        response = client.post(
            f"{API}/requests",
            json=request_payload(category=category),
            headers=login_headers(alice),
        )

        assert response.status_code == 201
        assert response.json()["category"] == category

    def test_requester_cannot_be_forged(self, client: TestClient, alice, bob, login_headers):
        response = client.post(
            f"{API}/requests",
            json=request_payload(requester_id=bob.id),
            headers=login_headers(alice),
        )

        assert response.status_code == 400


class TestListRequests:
    def test_newest_first(self, client: TestClient, alice, login_headers, create_request):
        headers = login_headers(alice)
        first = create_request(headers, title="First")
        second = create_request(headers, title="Second")

        response = client.get(f"{API}/requests", headers=headers)

        assert response.status_code == 200
        ids = [r["id"] for r in response.json()["requests"]]
        assert ids == [second["id"], first["id"]]

    def test_filters(self, client: TestClient, alice, login_headers, create_request):
        headers = login_headers(alice)
        create_request(headers, category="Food", delivery_city="Pune")
        create_request(headers, category="Books", delivery_city="Navi Mumbai")
        create_request(headers, category="Books", delivery_city="Delhi")

        books = client.get(f"{API}/requests?category=Books", headers=headers).json()
        mumbai = client.get(f"{API}/requests?delivery_city=mumbai", headers=headers).json()

        assert books["pagination"]["total"] == 2
        assert [r["delivery_city"] for r in mumbai["requests"]] == ["Navi Mumbai"]

    def test_pagination(self, client: TestClient, alice, login_headers, create_request):
        headers = login_headers(alice)
        for i in range(5):
            create_request(headers, title=f"Request {i}")

        page = client.get(f"{API}/requests?limit=2&offset=2", headers=headers).json()

        assert len(page["requests"]) == 2
        assert page["pagination"] == {"total": 5, "limit": 2, "offset": 2, "has_more": True}

        last = client.get(f"{API}/requests?limit=2&offset=4", headers=headers).json()
        assert last["pagination"]["has_more"] is False

    def test_limit_above_max_rejected(self, client: TestClient, alice, login_headers):
        response = client.get(f"{API}/requests?limit=200", headers=login_headers(alice))

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "limit"

    def test_unknown_status_rejected(self, client: TestClient, alice, login_headers):
        response = client.get(f"{API}/requests?status=LOST", headers=login_headers(alice))

        assert response.status_code == 400

    def test_requires_auth(self, client: TestClient):
        assert client.get(f"{API}/requests").status_code == 401


class TestPublicListing:
    def test_unauthenticated_and_field_limited(
        self, client: TestClient, alice, login_headers, create_request
    ):
        create_request(login_headers(alice), delivery_city="Mumbai")

        response = client.get(f"{API}/requests/public?delivery_city=mumbai")

        assert response.status_code == 200
        [item] = response.json()["requests"]
        assert item["delivery_city"] == "Mumbai"
        assert item["requester"]["name"] == "Alice"
        assert item["requester"]["rating"] == 4.5
        assert "email" not in item["requester"]
        for hidden in ("source_shop", "source_address", "alternative_source", "meetup_area"):
            assert hidden not in item
        assert "fulfiller" not in item

    def test_city_filter_escapes_wildcards(
        self, client: TestClient, alice, login_headers, create_request
    ):
        create_request(login_headers(alice), delivery_city="Pune")

        response = client.get(f"{API}/requests/public?delivery_city=%25")

        assert response.json()["pagination"]["total"] == 0

    def test_city_filter_too_long(self, client: TestClient):
        response = client.get(f"{API}/requests/public?delivery_city={'x' * 101}")

        assert response.status_code == 400


class TestGetRequest:
    def test_participant_sees_messages(
        self, client: TestClient, alice, bob, login_headers, create_request
    ):
        alice_headers = login_headers(alice)
        created = create_request(alice_headers)
        client.post(
            f"{API}/requests/{created['id']}/messages",
            json={"content": "Any update?"},
            headers=alice_headers,
        )

        mine = client.get(f"{API}/requests/{created['id']}", headers=alice_headers).json()
        theirs = client.get(
            f"{API}/requests/{created['id']}", headers=login_headers(bob)
        ).json()

        assert [m["content"] for m in mine["messages"]] == ["Any update?"]
        assert mine["message_count"] == 1
        assert theirs["messages"] is None
        assert theirs["requester"]["email"] == alice.email

    def test_not_found(self, client: TestClient, alice, login_headers):
        response = client.get(f"{API}/requests/9999", headers=login_headers(alice))

        assert response.status_code == 404
        assert response.json()["error"] == "Request not found"


class TestUpdateRequest:
    def test_requester_edits_open_request(
        self, client: TestClient, alice, login_headers, create_request
    ):
        headers = login_headers(alice)
        created = create_request(headers)

        response = client.put(
            f"{API}/requests/{created['id']}",
            json={"title": "Kesar mangoes", "quantity": 3},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Kesar mangoes"
        assert response.json()["quantity"] == 3

    def test_non_requester_forbidden(
        self, client: TestClient, alice, bob, login_headers, create_request
    ):
        created = create_request(login_headers(alice))

        response = client.put(
            f"{API}/requests/{created['id']}",
            json={"title": "Mine now"},
            headers=login_headers(bob),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Not authorized to update this request"

    def test_empty_payload(self, client: TestClient, alice, login_headers, create_request):
        headers = login_headers(alice)
        created = create_request(headers)

        response = client.put(f"{API}/requests/{created['id']}", json={}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "No fields to update"

    def test_null_required_field_rejected(
        self, client: TestClient, alice, login_headers, create_request
    ):
        headers = login_headers(alice)
        created = create_request(headers)

        response = client.put(
            f"{API}/requests/{created['id']}", json={"title": None}, headers=headers
        )

        assert response.status_code == 400

    def test_field_edit_requires_open(
        self, client: TestClient, alice, bob, login_headers, create_request
    ):
        headers = login_headers(alice)
        created = create_request(headers)
        client.post(f"{API}/requests/{created['id']}/fulfill", headers=login_headers(bob))

        response = client.put(
            f"{API}/requests/{created['id']}", json={"title": "Late edit"}, headers=headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot update request that is not open"

    def test_status_override_from_any_status(
        self, client: TestClient, alice, bob, login_headers, create_request
    ):
        headers = login_headers(alice)
        created = create_request(headers)
        client.post(f"{API}/requests/{created['id']}/fulfill", headers=login_headers(bob))

        response = client.put(
            f"{API}/requests/{created['id']}", json={"status": "COMPLETED"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["fulfiller_id"] == bob.id

    def test_reopening_clears_fulfiller(
        self, client: TestClient, alice, bob, login_headers, create_request
    ):
        headers = login_headers(alice)
        created = create_request(headers)
        client.post(f"{API}/requests/{created['id']}/fulfill", headers=login_headers(bob))

        response = client.put(
            f"{API}/requests/{created['id']}", json={"status": "OPEN"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "OPEN"
        assert response.json()["fulfiller_id"] is None
        # Overrides never touch counters.
        assert fetch(User, bob.id).total_deliveries == 1

    def test_status_with_fields_is_open_gated(
        self, client: TestClient, alice, login_headers, create_request
    ):
        headers = login_headers(alice)
        created = create_request(headers)
        client.delete(f"{API}/requests/{created['id']}", headers=headers)

        response = client.put(
            f"{API}/requests/{created['id']}",
            json={"status": "OPEN", "title": "Back again"},
            headers=headers,
        )

        assert response.status_code == 400


class TestCancelRequest:
    def test_cancel(self, client: TestClient, alice, login_headers, create_request):
        headers = login_headers(alice)
        created = create_request(headers)

        response = client.delete(f"{API}/requests/{created['id']}", headers=headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Request cancelled successfully"
        assert fetch(Request, created["id"]).status == "CANCELLED"
        assert fetch(User, alice.id).total_requests == 0

    def test_cancel_twice(self, client: TestClient, alice, login_headers, create_request):
        headers = login_headers(alice)
        created = create_request(headers)
        client.delete(f"{API}/requests/{created['id']}", headers=headers)

        response = client.delete(f"{API}/requests/{created['id']}", headers=headers)

        assert response.status_code == 400
        assert fetch(User, alice.id).total_requests == 0

    def test_cancel_by_other_user(
        self, client: TestClient, alice, bob, login_headers, create_request
    ):
        created = create_request(login_headers(alice))

        response = client.delete(
            f"{API}/requests/{created['id']}", headers=login_headers(bob)
        )

        assert response.status_code == 403
        assert fetch(Request, created["id"]).status == "OPEN"


class TestHardDelete:
    def test_delete_removes_request_and_messages(
        self, client: TestClient, alice, bob, login_headers, create_request
    ):
        alice_headers = login_headers(alice)
        bob_headers = login_headers(bob)
        created = create_request(alice_headers)
        client.post(f"{API}/requests/{created['id']}/fulfill", headers=bob_headers)
        client.post(
            f"{API}/requests/{created['id']}/messages",
            json={"content": "On my way"},
            headers=bob_headers,
        )

        response = client.delete(
            f"{API}/requests/{created['id']}/delete", headers=alice_headers
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Request deleted successfully"
        assert fetch(Request, created["id"]) is None
        assert fetch(User, alice.id).total_requests == 0
        follow_up = client.get(f"{API}/requests/{created['id']}", headers=alice_headers)
        assert follow_up.status_code == 404

    def test_delete_by_other_user(
        self, client: TestClient, alice, bob, login_headers, create_request
    ):
        created = create_request(login_headers(alice))

        response = client.delete(
            f"{API}/requests/{created['id']}/delete", headers=login_headers(bob)
        )

        assert response.status_code == 403
        assert fetch(Request, created["id"]) is not None


class TestFulfill:
    def test_end_to_end(
        self, client: TestClient, alice, bob, carol, login_headers, create_request
    ):
        alice_headers = login_headers(alice)
        bob_headers = login_headers(bob)
        created = create_request(alice_headers)
        url = f"{API}/requests/{created['id']}/fulfill"

        accepted = client.post(url, headers=bob_headers)

        assert accepted.status_code == 200
        assert accepted.json()["message"] == "Request accepted successfully"
        assert accepted.json()["request"]["status"] == "IN_PROGRESS"
        assert accepted.json()["request"]["fulfiller"]["email"] == bob.email
        assert fetch(User, bob.id).total_deliveries == 1

        again = client.post(url, headers=bob_headers)
        assert again.status_code == 400

        late = client.post(url, headers=login_headers(carol))
        assert late.status_code == 400
        assert late.json()["error"] == "Request is not available for fulfillment"

        stored = fetch(Request, created["id"])
        assert stored.fulfiller_id == bob.id
        assert fetch(User, bob.id).total_deliveries == 1
        assert fetch(User, carol.id).total_deliveries == 0

    def test_cannot_fulfill_own_request(
        self, client: TestClient, alice, login_headers, create_request
    ):
        headers = login_headers(alice)
        created = create_request(headers)

        response = client.post(f"{API}/requests/{created['id']}/fulfill", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot fulfill your own request"
        assert fetch(Request, created["id"]).status == "OPEN"

    def test_cancelled_request_not_available(
        self, client: TestClient, alice, bob, login_headers, create_request
    ):
        headers = login_headers(alice)
        created = create_request(headers)
        client.delete(f"{API}/requests/{created['id']}", headers=headers)

        response = client.post(
            f"{API}/requests/{created['id']}/fulfill", headers=login_headers(bob)
        )

        assert response.status_code == 400

    def test_missing_request(self, client: TestClient, bob, login_headers):
        response = client.post(f"{API}/requests/424242/fulfill", headers=login_headers(bob))

        assert response.status_code == 404

    def test_requires_auth(self, client: TestClient, alice, login_headers, create_request):
        created = create_request(login_headers(alice))

        assert client.post(f"{API}/requests/{created['id']}/fulfill").status_code == 401


def test_hard_delete_leaves_no_orphan_messages(
    client: TestClient, session, alice, login_headers, create_request
):
    headers = login_headers(alice)
    created = create_request(headers)
    client.post(
        f"{API}/requests/{created['id']}/messages",
        json={"content": "Hello"},
        headers=headers,
    )

    client.delete(f"{API}/requests/{created['id']}/delete", headers=headers)

    stmt = select(Message).where(Message.request_id == created["id"])
    assert session.exec(stmt).all() == []
