import base64
import json
from types import SimpleNamespace

import httpx
import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from menuboard.api.routes import menu_health as menu_health_routes
from menuboard.main import app
from menuboard.services import restaurant_service
from menuboard.services.auth_utils import decode_access_token, get_user_id
from menuboard.services.menu_health_dao import SupabaseMenuHealthDAO


def _token(claims):
    segment = base64.urlsafe_b64encode(json.dumps(claims).encode("utf-8")).decode("ascii").rstrip("=")
    return f"header.{segment}.signature"


class FakeMenuHealthDAO(SupabaseMenuHealthDAO):
    def __init__(self):
        super().__init__("rest-1", "test-token")
        self.since = None

    async def fetch_items(self):
        return [
            {
                "id": "shawarma",
                "category_id": "cat-1",
                "name_en": "Chicken shawarma",
                "name_ar": "شاورما دجاج",
                "description_en": "Garlic sauce and pickles.",
                "description_ar": "ثوم ومخلل",
                "image_url": "https://cdn.example.com/shawarma.jpg",
                "is_visible": True,
                "is_popular": True,
            },
            {
                "id": "fattoush",
                "category_id": "cat-2",
                "name_en": "Fattoush",
                "name_ar": None,
                "description_en": None,
                "description_ar": None,
                "image_url": None,
                "is_visible": True,
            },
        ]

    async def fetch_categories(self):
        return [{"id": "cat-1", "name_en": "Mains"}, {"id": "cat-2", "name_en": "Salads"}]

    async def fetch_item_view_events(self, since):
        self.since = since
        return [{"item_id": "shawarma"}]

    async def fetch_restaurant_name(self):
        return "Zaatar House"


@pytest.fixture(name="api_client")
def client_fixture():
    dao = FakeMenuHealthDAO()

    async def override_dao():
        return dao

    app.dependency_overrides[menu_health_routes.get_menu_health_dao] = override_dao
    with TestClient(app) as client:
        client.dao = dao  # type: ignore[attr-defined]
        yield client
    app.dependency_overrides.clear()


def test_report_contains_score_breakdown_and_issues(api_client):
    response = api_client.get("/api/admin/menu/health", headers={"Authorization": "Bearer test-token"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["restaurant_id"] == "rest-1"
    assert payload["restaurant_name"] == "Zaatar House"
    assert payload["breakdown"] == {
        "photos": 50,
        "descriptions": 50,
        "translations": 50,
        "tags": 50,
        "structure": 100,
        "performance": 50,
    }
    # 12.5 + 10 + 7.5 + 5 + 15 + 7.5
    assert payload["score"] == 58
    assert payload["label"] == "Needs work"
    assert payload["coverage"]["photos"] == 50
    assert payload["metrics"]["totalItems"] == 2
    assert payload["metrics"]["categories"][1] == {"id": "cat-2", "name_en": "Salads", "itemCount": 1}
    assert [issue["id"] for issue in payload["issues"]] == [
        "missing_images",
        "missing_descriptions",
        "missing_translations",
        "missing_tags",
        "low_engagement_items",
    ]
    assert payload["issues"][0]["affectedCount"] == 1


def test_report_accepts_window_override(api_client):
    response = api_client.get("/api/admin/menu/health", params={"window_days": 7})

    assert response.status_code == 200
    assert response.json()["window_days"] == 7
    assert response.json()["issues"][-1]["description"].endswith("in the last 7 days.")


def test_report_rejects_out_of_range_window(api_client):
    response = api_client.get("/api/admin/menu/health", params={"window_days": 0})

    assert response.status_code == 422


def test_summary_returns_top_issue(api_client):
    response = api_client.get("/api/admin/menu/health/summary")

    assert response.status_code == 200
    payload = response.json()
    assert payload["score"] == 58
    assert payload["label"] == "Needs work"
    assert payload["top_issue"]["id"] == "missing_images"


def test_report_requires_bearer_token():
    with TestClient(app) as client:
        response = client.get("/api/admin/menu/health")

    assert response.status_code == 401


def test_health_endpoint():
    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok"}


def test_decode_access_token_reads_subject():
    token = _token({"sub": "user-1", "role": "authenticated"})

    assert decode_access_token(token)["role"] == "authenticated"
    assert get_user_id(token) == "user-1"


@pytest.mark.parametrize("token", ["not-a-jwt", "a.!!!.c", _token(["sub"])])
def test_decode_access_token_rejects_garbage(token):
    with pytest.raises(HTTPException) as exc_info:
        decode_access_token(token)

    assert exc_info.value.status_code == 401


def test_token_without_subject_is_rejected():
    with pytest.raises(HTTPException) as exc_info:
        get_user_id(_token({"role": "anon"}))

    assert exc_info.value.status_code == 401


class FakeSupabaseQuery:
    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.filters = []

    def select(self, _columns):
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def limit(self, _count):
        return self

    def execute(self):
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(data=outcome)


class FakeSupabaseClient:
    def __init__(self, outcomes):
        self.query = FakeSupabaseQuery(outcomes)
        self.tables = []

    def table(self, name):
        self.tables.append(name)
        return self.query


def test_restaurant_membership_lookup(monkeypatch):
    client = FakeSupabaseClient([[{"restaurant_id": "rest-9"}]])
    monkeypatch.setattr(restaurant_service, "get_supabase_client", lambda: client)

    assert restaurant_service.get_restaurant_id_for_user("user-1") == "rest-9"
    assert client.tables == ["restaurant_users"]
    assert client.query.filters == [("user_id", "user-1")]


def test_restaurant_membership_retries_transport_errors(monkeypatch):
    client = FakeSupabaseClient([httpx.ConnectError("down"), []])
    monkeypatch.setattr(restaurant_service, "get_supabase_client", lambda: client)
    monkeypatch.setattr(restaurant_service.time, "sleep", lambda _delay: None)

    assert restaurant_service.get_restaurant_id_for_user("user-1") is None


def test_restaurant_membership_gives_up_after_retries(monkeypatch):
    client = FakeSupabaseClient([httpx.ConnectError("down")] * 3)
    monkeypatch.setattr(restaurant_service, "get_supabase_client", lambda: client)
    monkeypatch.setattr(restaurant_service.time, "sleep", lambda _delay: None)

    with pytest.raises(restaurant_service.SupabaseUnavailableError):
        restaurant_service.get_restaurant_id_for_user("user-1")


def test_user_without_restaurant_gets_404(monkeypatch):
    monkeypatch.setattr(menu_health_routes, "get_restaurant_id_for_user", lambda _user_id: None)
    token = _token({"sub": "user-1"})

    with TestClient(app) as client:
        response = client.get("/api/admin/menu/health", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 404


def test_unconfigured_supabase_gives_503(monkeypatch):
    monkeypatch.setattr(restaurant_service, "get_supabase_client", lambda: None)
    token = _token({"sub": "user-1"})

    with TestClient(app) as client:
        response = client.get("/api/admin/menu/health/summary", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 503
