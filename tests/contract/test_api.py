"""
Contract tests for the MyHome REST API.

Tests verify the HTTP contract of every router:
- Request validation and status codes
- Response bodies, including ``page_info`` on list endpoints
- Authentication headers
- Health, readiness and metrics endpoints

Services are replaced through ``app.dependency_overrides``; no database
is needed and the application lifespan is not run.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from myhome.dependencies import (
    get_amenity_service,
    get_auth_service,
    get_community_service,
    get_current_user,
    get_house_service,
    get_payment_service,
    get_user_service,
)
from myhome.errors import (
    AccessDeniedError,
    BookingConflictError,
    CredentialsIncorrectError,
    UserNotFoundError,
)
from myhome.main import app
from myhome.models.auth import CurrentUser, TokenResponse
from myhome.models.domain import (
    Amenity, AmenityBooking, Community, CommunityAdmin, House, HouseMember, Payment, UserDB
)
from myhome.models.pagination import Page, PageRequest
from myhome.services.auth_service import AuthService
from shared.metrics import get_http_metrics

API = "/api/v1"


# ============================================================================
# PYTEST FIXTURES
# ============================================================================


@pytest.fixture
def current_user():
    return CurrentUser(user_id="user-1", name="Jane Doe", email="jane@example.com")


@pytest.fixture
def auth_service():
    service = MagicMock()
    service.login = AsyncMock()
    return service


@pytest.fixture
def user_service():
    service = MagicMock()
    service.create_user = AsyncMock()
    service.list_all = AsyncMock()
    service.get_user_details = AsyncMock(return_value=None)
    return service


@pytest.fixture
def community_service():
    service = MagicMock()
    for name in (
        "create_community",
        "list_all",
        "get_community_details",
        "delete_community",
        "find_community_admins",
        "add_admins_to_community",
        "remove_admin_from_community",
        "find_community_houses",
        "add_houses_to_community",
        "remove_house_from_community",
    ):
        setattr(service, name, AsyncMock())
    service.get_community_details.return_value = Community(
        id=1, community_id="community-1", name="Green Park", district="North", admins={"user-1"}
    )
    return service


@pytest.fixture
def house_service():
    service = MagicMock()
    for name in (
        "list_all_houses",
        "get_house_details",
        "get_house_members",
        "add_house_members",
        "delete_member_from_house",
    ):
        setattr(service, name, AsyncMock())
    return service


@pytest.fixture
def amenity_service():
    service = MagicMock()
    for name in (
        "get_amenity_details",
        "list_community_amenities",
        "add_amenities_to_community",
        "update_amenity",
        "delete_amenity",
        "book_amenity",
        "list_bookings",
        "cancel_booking",
    ):
        setattr(service, name, AsyncMock())
    service.get_amenity_details.return_value = Amenity(
        amenity_id="amenity-1", community_id="community-1", name="Gym", price=Decimal("5.00")
    )
    return service


@pytest.fixture
def payment_service():
    service = MagicMock()
    for name in (
        "schedule_payment",
        "get_payment_details",
        "get_member_payments",
        "get_admin_payments",
    ):
        setattr(service, name, AsyncMock())
    return service


@pytest.fixture
def client(
    current_user,
    auth_service,
    user_service,
    community_service,
    house_service,
    amenity_service,
    payment_service
):
    """Test client with every service replaced and an authenticated user."""
    app.dependency_overrides[get_current_user] = lambda: current_user
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_user_service] = lambda: user_service
    app.dependency_overrides[get_community_service] = lambda: community_service
    app.dependency_overrides[get_house_service] = lambda: house_service
    app.dependency_overrides[get_amenity_service] = lambda: amenity_service
    app.dependency_overrides[get_payment_service] = lambda: payment_service

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(auth_service):
    """Test client that goes through real bearer token validation."""
    app.dependency_overrides[get_auth_service] = lambda: auth_service

    yield TestClient(app)

    app.dependency_overrides.clear()


def make_user(**overrides) -> UserDB:
    values = {
        "id": 1,
        "user_id": "user-1",
        "name": "Jane Doe",
        "email": "jane@example.com",
        "encrypted_password": "$2b$04$hash",
        "created_at": datetime(2020, 5, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return UserDB(**values)


# ============================================================================
# AUTHENTICATION
# ============================================================================


class TestLogin:
    """Tests for POST /auth/login."""

    def test_login_success(self, client, auth_service):
        auth_service.login.return_value = TokenResponse(
            access_token="header.payload.signature",
            expires_in=3600,
            user_id="user-1"
        )

        response = client.post(
            f"{API}/auth/login",
            json={"email": "jane@example.com", "password": "SecurePassword123"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["access_token"] == "header.payload.signature"
        assert body["token_type"] == "bearer"
        assert body["user_id"] == "user-1"
        assert response.headers["token"] == "header.payload.signature"
        assert response.headers["userId"] == "user-1"

    def test_login_unknown_email(self, client, auth_service):
        auth_service.login.side_effect = UserNotFoundError("nobody@example.com")

        response = client.post(
            f"{API}/auth/login",
            json={"email": "nobody@example.com", "password": "SecurePassword123"}
        )

        assert response.status_code == 404

    def test_login_wrong_password(self, client, auth_service):
        auth_service.login.side_effect = CredentialsIncorrectError("user-1")

        response = client.post(
            f"{API}/auth/login",
            json={"email": "jane@example.com", "password": "WrongPassword"}
        )

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_login_invalid_email(self, client):
        response = client.post(
            f"{API}/auth/login",
            json={"email": "not-an-email", "password": "SecurePassword123"}
        )

        assert response.status_code == 422


class TestBearerAuthentication:
    """Tests for token checks on protected endpoints."""

    def test_missing_token(self, anonymous_client):
        response = anonymous_client.get(f"{API}/communities")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, anonymous_client, auth_service):
        auth_service.get_current_user = AsyncMock(return_value=None)

        response = anonymous_client.get(
            f"{API}/houses",
            headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 401
        auth_service.get_current_user.assert_awaited_once_with("garbage")

    def test_token_issued_by_service_is_accepted(self, anonymous_client, house_service):
        user_repo = MagicMock()
        user_repo.get_by_user_id = AsyncMock(return_value=make_user())
        real_auth = AuthService(user_repo)
        app.dependency_overrides[get_auth_service] = lambda: real_auth
        app.dependency_overrides[get_house_service] = lambda: house_service
        house_service.list_all_houses.return_value = Page.of([], PageRequest(), 0)

        response = anonymous_client.get(
            f"{API}/houses",
            headers={"Authorization": f"Bearer {real_auth.create_access_token('user-1')}"}
        )

        assert response.status_code == 200
        user_repo.get_by_user_id.assert_awaited_once_with("user-1")


# ============================================================================
# USERS
# ============================================================================


class TestUsers:
    """Tests for /users."""

    def test_sign_up(self, client, user_service):
        user_service.create_user.return_value = make_user()

        response = client.post(
            f"{API}/users",
            json={"name": "Jane Doe", "email": "jane@example.com", "password": "SecurePassword123"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == "user-1"
        assert body["email"] == "jane@example.com"
        assert "encrypted_password" not in body

    def test_sign_up_taken_email(self, client, user_service):
        user_service.create_user.return_value = None

        response = client.post(
            f"{API}/users",
            json={"name": "Jane Doe", "email": "jane@example.com", "password": "SecurePassword123"}
        )

        assert response.status_code == 409

    def test_sign_up_short_password(self, client, user_service):
        response = client.post(
            f"{API}/users",
            json={"name": "Jane Doe", "email": "jane@example.com", "password": "short"}
        )

        assert response.status_code == 422
        user_service.create_user.assert_not_awaited()

    def test_sign_up_storage_failure(self, client, user_service):
        user_service.create_user.side_effect = RuntimeError("connection lost")

        response = client.post(
            f"{API}/users",
            json={"name": "Jane Doe", "email": "jane@example.com", "password": "SecurePassword123"}
        )

        assert response.status_code == 500
        assert response.json()["detail"] == "Could not create the user"

    def test_list_users_with_page_info(self, client, user_service):
        request = PageRequest(page_number=1, page_size=2)
        user_service.list_all.return_value = Page.of([make_user()], request, 3)

        response = client.get(f"{API}/users", params={"page": 1, "size": 2})

        assert response.status_code == 200
        body = response.json()
        assert [u["user_id"] for u in body["users"]] == ["user-1"]
        assert body["page_info"] == {
            "current_page": 1,
            "page_limit": 2,
            "total_pages": 2,
            "total_elements": 3
        }
        user_service.list_all.assert_awaited_once_with(request)

    def test_get_missing_user(self, client):
        response = client.get(f"{API}/users/missing")

        assert response.status_code == 404


# ============================================================================
# PAGINATION PARAMETERS
# ============================================================================


class TestPaginationParameters:
    """Tests for the page and size query parameters."""

    def test_defaults(self, client, house_service):
        house_service.list_all_houses.return_value = Page.of([], PageRequest(), 0)

        response = client.get(f"{API}/houses")

        assert response.status_code == 200
        assert response.json()["page_info"]["page_limit"] == 200
        assert response.json()["page_info"]["current_page"] == 0

    def test_size_is_capped(self, client, house_service):
        house_service.list_all_houses.return_value = Page.of([], PageRequest(page_size=1000), 0)

        client.get(f"{API}/houses", params={"size": 5000})

        house_service.list_all_houses.assert_awaited_once_with(PageRequest(page_number=0, page_size=1000))

    @pytest.mark.parametrize("params", [{"page": -1}, {"size": 0}, {"page": "abc"}])
    def test_invalid_values(self, client, house_service, params):
        response = client.get(f"{API}/houses", params=params)

        assert response.status_code == 422
        house_service.list_all_houses.assert_not_awaited()


# ============================================================================
# COMMUNITIES
# ============================================================================


class TestCommunities:
    """Tests for /communities."""

    def test_create_community(self, client, community_service, current_user):
        community_service.create_community.return_value = Community(
            id=1, community_id="community-1", name="Green Park", district="North", admins={"user-1"}
        )

        response = client.post(f"{API}/communities", json={"name": "Green Park", "district": "North"})

        assert response.status_code == 201
        assert response.json() == {"community_id": "community-1"}
        args = community_service.create_community.await_args.args
        assert args[1] == current_user.user_id

    def test_create_community_validation(self, client):
        response = client.post(f"{API}/communities", json={"name": "G"})

        assert response.status_code == 422

    def test_create_community_failure_is_generic_500(self, client, community_service):
        community_service.create_community.side_effect = RuntimeError("connection reset")

        response = TestClient(app, raise_server_exceptions=False).post(
            f"{API}/communities",
            json={"name": "Green Park", "district": "North"},
            headers={"X-Correlation-ID": "create-1"}
        )

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        assert response.headers["X-Correlation-ID"] == "create-1"

    def test_list_communities(self, client, community_service):
        community_service.list_all.return_value = Page.of(
            [Community(id=1, community_id="community-1", name="Green Park", district="North")],
            PageRequest(),
            1
        )

        response = client.get(f"{API}/communities")

        body = response.json()
        assert body["communities"] == [
            {"community_id": "community-1", "name": "Green Park", "district": "North"}
        ]
        assert body["page_info"]["total_pages"] == 1

    def test_get_missing_community(self, client, community_service):
        community_service.get_community_details.return_value = None

        assert client.get(f"{API}/communities/missing").status_code == 404

    def test_delete_community(self, client, community_service):
        community_service.delete_community.return_value = True

        response = client.delete(f"{API}/communities/community-1")

        assert response.status_code == 204
        assert response.content == b""

    def test_delete_missing_community(self, client, community_service):
        community_service.delete_community.return_value = False

        assert client.delete(f"{API}/communities/missing").status_code == 404

    def test_list_admins(self, client, community_service):
        community_service.find_community_admins.return_value = Page.of(
            [CommunityAdmin(admin_id="a"), CommunityAdmin(admin_id="b")],
            PageRequest(),
            2
        )

        response = client.get(f"{API}/communities/community-1/admins")

        assert response.status_code == 200
        assert [a["admin_id"] for a in response.json()["admins"]] == ["a", "b"]
        assert response.json()["page_info"]["total_elements"] == 2

    def test_list_admins_of_missing_community(self, client, community_service):
        community_service.find_community_admins.return_value = None

        assert client.get(f"{API}/communities/missing/admins").status_code == 404

    def test_add_admins(self, client, community_service):
        community_service.add_admins_to_community.return_value = Community(
            community_id="community-1", name="Green Park", district="North", admins={"a", "b", "user-1"}
        )

        response = client.post(f"{API}/communities/community-1/admins", json={"admins": ["b", "a"]})

        assert response.status_code == 201
        assert set(response.json()["admins"]) == {"a", "b", "user-1"}
        community_service.add_admins_to_community.assert_awaited_once_with("community-1", ["a", "b"])

    def test_add_admins_to_missing_community(self, client, community_service):
        community_service.add_admins_to_community.return_value = None

        response = client.post(f"{API}/communities/missing/admins", json={"admins": ["a"]})

        assert response.status_code == 404

    def test_add_no_admins(self, client):
        response = client.post(f"{API}/communities/community-1/admins", json={"admins": []})

        assert response.status_code == 422

    def test_add_admin_id_too_long(self, client, community_service):
        response = client.post(
            f"{API}/communities/community-1/admins", json={"admins": ["a" * 65]}
        )

        assert response.status_code == 422
        community_service.add_admins_to_community.assert_not_awaited()

    def test_add_empty_admin_id(self, client, community_service):
        response = client.post(f"{API}/communities/community-1/admins", json={"admins": [""]})

        assert response.status_code == 422
        community_service.add_admins_to_community.assert_not_awaited()

    def test_remove_admin(self, client, community_service):
        community_service.remove_admin_from_community.return_value = True

        assert client.delete(f"{API}/communities/community-1/admins/a").status_code == 204

    def test_remove_unknown_admin(self, client, community_service):
        community_service.remove_admin_from_community.return_value = False

        assert client.delete(f"{API}/communities/community-1/admins/a").status_code == 404

    def test_add_houses(self, client, community_service):
        community_service.add_houses_to_community.return_value = {"house-1", "house-2"}

        response = client.post(
            f"{API}/communities/community-1/houses",
            json={"houses": [{"name": "A1"}, {"name": "A2"}]}
        )

        assert response.status_code == 201
        assert set(response.json()["houses"]) == {"house-1", "house-2"}
        community_service.add_houses_to_community.assert_awaited_once_with("community-1", ["A1", "A2"])

    def test_add_houses_nothing_added(self, client, community_service):
        community_service.add_houses_to_community.return_value = set()

        response = client.post(
            f"{API}/communities/community-1/houses",
            json={"houses": [{"name": "A1"}]}
        )

        assert response.status_code == 400

    def test_list_houses(self, client, community_service):
        community_service.find_community_houses.return_value = Page.of(
            [House(house_id="house-1", community_id="community-1", name="A1")],
            PageRequest(page_number=0, page_size=10),
            11
        )

        response = client.get(f"{API}/communities/community-1/houses", params={"size": 10})

        assert response.json()["houses"][0]["house_id"] == "house-1"
        assert response.json()["page_info"] == {
            "current_page": 0,
            "page_limit": 10,
            "total_pages": 2,
            "total_elements": 11
        }

    def test_remove_house(self, client, community_service):
        community_service.remove_house_from_community.return_value = True

        assert client.delete(f"{API}/communities/community-1/houses/house-1").status_code == 204
        community_service.remove_house_from_community.assert_awaited_once_with("community-1", "house-1")


class TestCommunityAdminRights:
    """Changes to a community are reserved to its admins."""

    @pytest.fixture
    def outsider_community(self, community_service):
        community_service.get_community_details.return_value = Community(
            id=1, community_id="community-1", name="Green Park", district="North", admins={"someone-else"}
        )

    @pytest.mark.parametrize(
        "method, path, body",
        [
            ("DELETE", "/communities/community-1", None),
            ("POST", "/communities/community-1/admins", {"admins": ["a"]}),
            ("DELETE", "/communities/community-1/admins/a", None),
            ("POST", "/communities/community-1/houses", {"houses": [{"name": "A1"}]}),
            ("DELETE", "/communities/community-1/houses/house-1", None),
        ]
    )
    def test_non_admin_is_forbidden(self, client, community_service, outsider_community, method, path, body):
        response = client.request(method, f"{API}{path}", json=body)

        assert response.status_code == 403
        community_service.delete_community.assert_not_awaited()
        community_service.add_admins_to_community.assert_not_awaited()
        community_service.remove_admin_from_community.assert_not_awaited()
        community_service.add_houses_to_community.assert_not_awaited()
        community_service.remove_house_from_community.assert_not_awaited()

    def test_reads_stay_open_to_non_admins(self, client, community_service, outsider_community):
        assert client.get(f"{API}/communities/community-1").status_code == 200

    def test_change_to_missing_community(self, client, community_service):
        community_service.get_community_details.return_value = None

        response = client.post(f"{API}/communities/missing/admins", json={"admins": ["a"]})

        assert response.status_code == 404
        community_service.add_admins_to_community.assert_not_awaited()

    def test_anonymous_change_is_unauthorized(self, anonymous_client):
        response = anonymous_client.delete(f"{API}/communities/community-1/admins/a")

        assert response.status_code == 401


# ============================================================================
# HOUSES
# ============================================================================


class TestHouses:
    """Tests for /houses."""

    def test_get_house(self, client, house_service):
        house_service.get_house_details.return_value = House(
            house_id="house-1", community_id="community-1", name="A1"
        )

        response = client.get(f"{API}/houses/house-1")

        assert response.status_code == 200
        assert response.json() == {"house_id": "house-1", "community_id": "community-1", "name": "A1"}

    def test_get_missing_house(self, client, house_service):
        house_service.get_house_details.return_value = None

        assert client.get(f"{API}/houses/missing").status_code == 404

    def test_list_members(self, client, house_service):
        house_service.get_house_members.return_value = Page.of(
            [HouseMember(member_id="m1", name="Alice", house_id="house-1")],
            PageRequest(),
            1
        )

        response = client.get(f"{API}/houses/house-1/members")

        assert response.json()["members"] == [{"member_id": "m1", "name": "Alice"}]

    def test_list_members_of_missing_house(self, client, house_service):
        house_service.get_house_members.return_value = None

        assert client.get(f"{API}/houses/missing/members").status_code == 404

    def test_add_members(self, client, house_service):
        house_service.add_house_members.return_value = [
            HouseMember(member_id="m1", name="Alice", house_id="house-1")
        ]

        response = client.post(f"{API}/houses/house-1/members", json={"members": [{"name": "Alice"}]})

        assert response.status_code == 201
        assert response.json() == {"members": [{"member_id": "m1", "name": "Alice"}]}

    def test_add_members_to_missing_house(self, client, house_service):
        house_service.add_house_members.return_value = []

        response = client.post(f"{API}/houses/missing/members", json={"members": [{"name": "Alice"}]})

        assert response.status_code == 404

    def test_delete_member(self, client, house_service):
        house_service.delete_member_from_house.return_value = True

        assert client.delete(f"{API}/houses/house-1/members/m1").status_code == 204

    def test_delete_unknown_member(self, client, house_service):
        house_service.delete_member_from_house.return_value = False

        assert client.delete(f"{API}/houses/house-1/members/m1").status_code == 404


# ============================================================================
# AMENITIES
# ============================================================================


class TestAmenities:
    """Tests for community amenities and /amenities."""

    def test_add_amenities(self, client, amenity_service):
        amenity_service.add_amenities_to_community.return_value = [
            Amenity(amenity_id="amenity-1", community_id="community-1", name="Gym", price=Decimal("5.00"))
        ]

        response = client.post(
            f"{API}/communities/community-1/amenities",
            json={"amenities": [{"name": "Gym", "price": "5.00"}]}
        )

        assert response.status_code == 201
        assert response.json()["amenities"] == [{
            "amenity_id": "amenity-1",
            "community_id": "community-1",
            "name": "Gym",
            "description": "",
            "price": "5.00"
        }]

    def test_add_amenities_requires_admin(self, client, community_service, amenity_service):
        community_service.get_community_details.return_value = Community(
            community_id="community-1", name="Green Park", district="North", admins={"someone-else"}
        )

        response = client.post(
            f"{API}/communities/community-1/amenities",
            json={"amenities": [{"name": "Gym", "price": "5.00"}]}
        )

        assert response.status_code == 403
        amenity_service.add_amenities_to_community.assert_not_awaited()

    def test_negative_price(self, client):
        response = client.post(
            f"{API}/communities/community-1/amenities",
            json={"amenities": [{"name": "Gym", "price": "-1"}]}
        )

        assert response.status_code == 422

    def test_list_amenities_of_missing_community(self, client, amenity_service):
        amenity_service.list_community_amenities.return_value = None

        assert client.get(f"{API}/communities/missing/amenities").status_code == 404

    def test_list_amenities(self, client, amenity_service):
        amenity_service.list_community_amenities.return_value = Page.of(
            [Amenity(amenity_id="amenity-1", community_id="community-1", name="Gym", price=Decimal("5.00"))],
            PageRequest(),
            1
        )

        response = client.get(f"{API}/communities/community-1/amenities")

        assert [a["amenity_id"] for a in response.json()["amenities"]] == ["amenity-1"]
        assert response.json()["page_info"]["total_elements"] == 1

    def test_get_missing_amenity(self, client, amenity_service):
        amenity_service.get_amenity_details.return_value = None

        assert client.get(f"{API}/amenities/missing").status_code == 404

    def test_update_amenity(self, client, amenity_service):
        amenity_service.update_amenity.return_value = Amenity(
            amenity_id="amenity-1", community_id="community-1", name="Spa", price=Decimal("9.00")
        )

        response = client.put(f"{API}/amenities/amenity-1", json={"name": "Spa", "price": "9.00"})

        assert response.status_code == 204
        update = amenity_service.update_amenity.await_args.args[1]
        assert (update.name, update.price) == ("Spa", Decimal("9.00"))

    def test_update_missing_amenity(self, client, amenity_service):
        amenity_service.get_amenity_details.return_value = None

        response = client.put(f"{API}/amenities/missing", json={"name": "Spa", "price": "9.00"})

        assert response.status_code == 404
        amenity_service.update_amenity.assert_not_awaited()

    def test_delete_amenity_requires_admin_of_its_community(
        self, client, community_service, amenity_service
    ):
        community_service.get_community_details.return_value = Community(
            community_id="community-1", name="Green Park", district="North", admins={"someone-else"}
        )

        assert client.delete(f"{API}/amenities/amenity-1").status_code == 403
        amenity_service.delete_amenity.assert_not_awaited()

    def test_delete_amenity(self, client, amenity_service):
        amenity_service.delete_amenity.return_value = True

        assert client.delete(f"{API}/amenities/amenity-1").status_code == 204


class TestBookings:
    """Tests for /amenities/{amenity_id}/bookings."""

    span = {"booking_start": "2020-06-01T18:00:00Z", "booking_end": "2020-06-01T20:00:00Z"}

    def test_book(self, client, amenity_service, current_user):
        amenity_service.book_amenity.return_value = AmenityBooking(
            booking_id="booking-1",
            amenity_id="amenity-1",
            user_id=current_user.user_id,
            booking_start=datetime(2020, 6, 1, 18, tzinfo=timezone.utc),
            booking_end=datetime(2020, 6, 1, 20, tzinfo=timezone.utc)
        )

        response = client.post(f"{API}/amenities/amenity-1/bookings", json=self.span)

        assert response.status_code == 201
        assert response.json()["booking_id"] == "booking-1"
        args = amenity_service.book_amenity.await_args.args
        assert args[:2] == ("amenity-1", "user-1")

    def test_end_before_start(self, client, amenity_service):
        response = client.post(
            f"{API}/amenities/amenity-1/bookings",
            json={"booking_start": "2020-06-01T20:00:00Z", "booking_end": "2020-06-01T18:00:00Z"}
        )

        assert response.status_code == 422
        amenity_service.book_amenity.assert_not_awaited()

    def test_span_without_offset(self, client):
        response = client.post(
            f"{API}/amenities/amenity-1/bookings",
            json={"booking_start": "2020-06-01T18:00:00", "booking_end": "2020-06-01T20:00:00"}
        )

        assert response.status_code == 422

    def test_overlap(self, client, amenity_service):
        amenity_service.book_amenity.side_effect = BookingConflictError("amenity-1", "booking-0")

        response = client.post(f"{API}/amenities/amenity-1/bookings", json=self.span)

        assert response.status_code == 409

    def test_book_missing_amenity(self, client, amenity_service):
        amenity_service.book_amenity.return_value = None

        assert client.post(f"{API}/amenities/missing/bookings", json=self.span).status_code == 404

    def test_list_bookings_of_missing_amenity(self, client, amenity_service):
        amenity_service.list_bookings.return_value = None

        assert client.get(f"{API}/amenities/missing/bookings").status_code == 404

    def test_cancel(self, client, amenity_service):
        amenity_service.cancel_booking.return_value = True

        assert client.delete(f"{API}/amenities/amenity-1/bookings/booking-1").status_code == 204
        amenity_service.cancel_booking.assert_awaited_once_with("amenity-1", "booking-1", "user-1")

    def test_cancel_someone_elses_booking(self, client, amenity_service):
        amenity_service.cancel_booking.side_effect = AccessDeniedError("user-1", "community-1")

        assert client.delete(f"{API}/amenities/amenity-1/bookings/booking-1").status_code == 403

    def test_cancel_booking_of_other_amenity(self, client, amenity_service):
        amenity_service.cancel_booking.return_value = False

        assert client.delete(f"{API}/amenities/amenity-2/bookings/booking-1").status_code == 404


# ============================================================================
# PAYMENTS
# ============================================================================


def make_payment(**overrides) -> Payment:
    values = {
        "payment_id": "payment-1",
        "charge": Decimal("120.50"),
        "type": "maintenance",
        "description": "Quarterly fee",
        "recurring": True,
        "due_date": date(2020, 7, 1),
        "admin_id": "user-1",
        "member_id": "m1",
    }
    values.update(overrides)
    return Payment(**values)


class TestPayments:
    """Tests for /payments and the payment listings."""

    body = {
        "member_id": "m1",
        "charge": "120.50",
        "type": "maintenance",
        "description": "Quarterly fee",
        "recurring": True,
        "due_date": "2020-07-01"
    }

    def test_schedule(self, client, payment_service):
        payment_service.schedule_payment.return_value = make_payment()

        response = client.post(f"{API}/payments", json=self.body)

        assert response.status_code == 201
        assert response.json()["charge"] == "120.50"
        assert response.json()["due_date"] == "2020-07-01"
        request, admin_id = payment_service.schedule_payment.await_args.args
        assert request.charge == Decimal("120.50")
        assert admin_id == "user-1"

    def test_schedule_for_unknown_member(self, client, payment_service):
        payment_service.schedule_payment.return_value = None

        assert client.post(f"{API}/payments", json=self.body).status_code == 404

    def test_schedule_outside_own_community(self, client, payment_service):
        payment_service.schedule_payment.side_effect = AccessDeniedError("user-1", "community-2")

        assert client.post(f"{API}/payments", json=self.body).status_code == 403

    def test_charge_must_be_positive(self, client, payment_service):
        response = client.post(f"{API}/payments", json={**self.body, "charge": "0"})

        assert response.status_code == 422
        payment_service.schedule_payment.assert_not_awaited()

    def test_charge_has_at_most_two_decimals(self, client):
        response = client.post(f"{API}/payments", json={**self.body, "charge": "1.005"})

        assert response.status_code == 422

    def test_get_missing_payment(self, client, payment_service):
        payment_service.get_payment_details.return_value = None

        assert client.get(f"{API}/payments/missing").status_code == 404

    def test_member_payments(self, client, payment_service):
        payment_service.get_member_payments.return_value = Page.of([make_payment()], PageRequest(), 1)

        response = client.get(f"{API}/members/m1/payments")

        assert [p["payment_id"] for p in response.json()["payments"]] == ["payment-1"]
        assert response.json()["page_info"]["total_pages"] == 1

    def test_payments_of_unknown_member(self, client, payment_service):
        payment_service.get_member_payments.return_value = None

        assert client.get(f"{API}/members/missing/payments").status_code == 404

    def test_admin_payments(self, client, payment_service):
        payment_service.get_admin_payments.return_value = Page.of([make_payment()], PageRequest(), 1)

        response = client.get(f"{API}/communities/community-1/admins/user-1/payments")

        assert response.status_code == 200
        payment_service.get_admin_payments.assert_awaited_once()

    def test_admin_payments_of_admin_outside_community(self, client, payment_service):
        payment_service.get_admin_payments.return_value = None

        response = client.get(f"{API}/communities/community-1/admins/stranger/payments")

        assert response.status_code == 404

    def test_admin_payments_require_admin(self, client, community_service, payment_service):
        community_service.get_community_details.return_value = Community(
            community_id="community-1", name="Green Park", district="North", admins={"someone-else"}
        )

        response = client.get(f"{API}/communities/community-1/admins/someone-else/payments")

        assert response.status_code == 403
        payment_service.get_admin_payments.assert_not_awaited()


# ============================================================================
# OPERATIONAL ENDPOINTS
# ============================================================================


class TestOperationalEndpoints:
    """Tests for health, readiness and metrics."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_without_database(self, client):
        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["database"] == "unhealthy"

    def test_metrics(self, client):
        client.get("/health")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    def test_correlation_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_unhandled_error_is_counted_and_correlated(self, client, community_service):
        community_service.list_all.side_effect = RuntimeError("connection reset")
        failures = get_http_metrics().requests.labels(
            method="GET", endpoint="/api/v1/communities", status="500"
        )
        before = failures._value.get()

        response = TestClient(app, raise_server_exceptions=False).get(
            f"{API}/communities", headers={"X-Correlation-ID": "abc"}
        )

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        assert response.headers["X-Correlation-ID"] == "abc"
        assert failures._value.get() == before + 1

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_cors_exposes_login_headers(self, client):
        response = client.get("/health", headers={"Origin": "http://localhost:4200"})

        exposed = response.headers["access-control-expose-headers"]
        assert "token" in exposed
        assert "userId" in exposed
