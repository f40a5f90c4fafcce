from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import register_routes
from app.models import Catalog
from app.services.flags import MemoryFlagStore
from app.services.sessions import SessionRegistry


def _build_app(catalog: Catalog, scheduler) -> FastAPI:
    app = FastAPI()
    register_routes(app)
    app.state.settings = Settings(_env_file=None, APP_NAME="Test Watcher")
    app.state.session_registry = SessionRegistry(
        catalog,
        MemoryFlagStore(),
        scheduler_factory=lambda: scheduler,
    )
    return app


def test_listing_page_renders_catalog_and_sets_cookie(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        response = client.get("/")

    assert response.status_code == 200
    assert "Test Watcher" in response.text
    assert "Ghost Stories" in response.text
    assert 'href="/v/series-1"' in response.text
    assert "Showing 5 of 5 movies" in response.text
    assert "mw_session" in response.cookies


def test_listing_page_escapes_the_query(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        response = client.get("/", params={"q": '"></script><b>__GRID__'})

    assert response.status_code == 200
    assert "</script><b>" not in response.text
    assert 'value="&quot;&gt;&lt;/script&gt;&lt;b&gt;__GRID__"' in response.text
    assert 'class="card"' not in response.text


def test_catalog_endpoint_filters_and_remembers_criteria(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        filtered = client.get("/api/catalog", params={"q": "fo"}).json()
        remembered = client.get("/api/catalog").json()
        empty = client.get("/api/catalog", params={"q": "zzz"}).json()

    assert [item["id"] for item in filtered["items"]] == [1, 3]
    assert filtered["summary"] == "Showing 2 of 5 movies"
    assert filtered["categories"] == ["All", "Drama", "Comedy", "Anime"]
    assert filtered["notification"]["title"] == "Filter applied"
    assert [item["id"] for item in remembered["items"]] == [1, 3]
    assert empty["items"] == []
    assert empty["message"] == "No movies found. Try a different search or category."


def test_filter_and_clear_endpoints(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        filtered = client.post(
            "/api/session/filter", json={"query": "", "category": "Anime"}
        ).json()
        cleared = client.post("/api/session/filter/clear").json()

    assert [item["id"] for item in filtered["items"]] == ["series-1", "series-2"]
    assert cleared["visible"] == 5
    assert cleared["category"] == "All"
    assert cleared["notification"]["title"] == "Filters cleared"


def test_locked_item_flow_over_http(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        selected = client.post("/api/session/select", json={"itemId": 2}).json()
        denied = client.post("/api/session/password", json={"password": "y"}).json()
        granted = client.post("/api/session/password", json={"password": "x"}).json()
        token = granted["playback"]["token"]
        ready = client.post(
            "/api/session/media", json={"token": token, "event": "ready"}
        ).json()
        stale = client.post(
            "/api/session/media", json={"token": token - 1, "event": "error"}
        ).json()

    assert selected["state"] == "selected_locked"
    assert selected["notification"]["title"] == "Password required"
    assert "password" not in selected["item"]

    assert denied["granted"] is False
    assert denied["errorMessage"] == "Incorrect password"

    assert granted["granted"] is True
    assert granted["state"] == "playing"
    assert granted["playback"] == {"source": "b.mp4", "status": "loading", "token": token}

    assert ready["applied"] is True
    assert ready["playback"]["status"] == "ready"
    assert stale["applied"] is False


def test_episode_switch_over_http(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        client.post("/api/session/select", json={"itemId": "series-2"})
        switched = client.post("/api/session/episode", json={"episodeId": "b"}).json()
        missing = client.post("/api/session/episode", json={"episodeId": "zzz"})

    assert switched["episode"]["id"] == "b"
    assert switched["playback"]["source"] == "short-b.mp4"
    assert missing.status_code == 404
    assert missing.json()["detail"]["error"] == "episode_not_found"


def test_gate_errors_map_to_http_status(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        premature = client.post("/api/session/password", json={"password": "x"})
        unknown = client.post("/api/session/select", json={"itemId": 999})
        client.post("/api/session/select", json={"itemId": 2})
        locked_play = client.post("/api/session/play")
        malformed = client.post("/api/session/select", json={"wrong": 1})
        not_json = client.post("/api/session/media", content=b"nope")

    assert premature.status_code == 409
    assert premature.json()["detail"]["error"] == "invalid_transition"
    assert unknown.status_code == 404
    assert unknown.json()["detail"]["error"] == "item_not_found"
    assert locked_play.status_code == 409
    assert malformed.status_code == 400
    assert not_json.status_code == 400


def test_undecodable_bodies_are_rejected_not_crashed(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        client.post("/api/session/select", json={"itemId": 2})
        password = client.post(
            "/api/session/password",
            content=b"\xff\xfe\xfa",
            headers={"Content-Type": "application/json"},
        )
        leave = client.post(
            "/api/session/leave",
            content=b"\xc3\x28",
            headers={"Content-Type": "application/json"},
        )
        state = client.get("/api/session").json()

    assert password.status_code == 400
    assert leave.status_code == 200
    assert leave.json() == {"ended": False}
    assert state["state"] == "selected_locked"


def test_player_page_selects_item_and_redirects_unknown(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        page = client.get("/v/1")
        state = client.get("/api/session").json()
        missing = client.get("/v/999", follow_redirects=False)

    assert page.status_code == 200
    assert "<h2>Foo</h2>" in page.text
    assert state["state"] == "playing"
    assert state["playback"]["source"] == "a.mp4"
    assert missing.status_code == 303
    assert missing.headers["location"] == "/"


def test_listing_page_closes_the_player(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        client.get("/v/1")
        client.get("/")
        state = client.get("/api/session").json()

    assert state["state"] == "idle"
    assert state["playback"] is None


def test_item_endpoint_hides_password(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        found = client.get("/api/items/2")
        missing = client.get("/api/items/nope")

    assert found.status_code == 200
    assert found.json()["locked"] is True
    assert "password" not in found.json()
    assert missing.status_code == 404


def test_welcome_popup_closes_on_backdrop_not_content(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        initial = client.get("/api/session").json()
        content = client.post(
            "/api/session/popups/welcome/close", json={"target": "content"}
        ).json()
        backdrop = client.post(
            "/api/session/popups/welcome/close", json={"target": "backdrop"}
        ).json()
        reopened = client.post("/api/session/popups/info/open").json()
        unknown = client.post("/api/session/popups/banner/open")

    assert initial["popups"]["welcome"] is True
    assert content["closed"] is False
    assert content["popups"]["welcome"] is True
    assert backdrop["closed"] is True
    assert backdrop["popups"]["welcome"] is False
    assert reopened["popups"]["info"] is True
    assert unknown.status_code == 404


def test_dismiss_and_close_player(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        client.post("/api/session/select", json={"itemId": 2})
        dismissed = client.post("/api/session/notification/dismiss").json()
        closed = client.post("/api/session/close").json()

    assert dismissed["notification"] is None
    assert closed["state"] == "idle"
    assert closed["item"] is None


def test_leave_requires_current_view(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)
    registry = app.state.session_registry

    with TestClient(app) as client:
        client.get("/")
        session_id = client.cookies.get("mw_session")
        view_id = registry.get(session_id).view_id

        stale = client.post("/api/session/leave", json={"view": "not-the-view"}).json()
        ended = client.post("/api/session/leave", json={"view": view_id}).json()

    assert stale == {"ended": False}
    assert ended == {"ended": True}
    assert registry.get(session_id) is None


def test_healthcheck(catalog: Catalog, scheduler) -> None:
    app = _build_app(catalog, scheduler)

    with TestClient(app) as client:
        response = client.get("/healthz")

    assert response.json() == {"status": "ok"}
