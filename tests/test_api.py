"""
End-to-end tests through the HTTP routes.
"""

from fastapi.testclient import TestClient

from conftest import assert_response_ok
from research_chat.main import app
from research_chat.services import auth as auth_service
from research_chat.services.research import ResearchProvider, get_research_provider


def register(client: TestClient, email="alice@example.com", password="wonderland", **extra):
    payload = {"email": email, "password": password, "display_name": "Alice"}
    payload.update(extra)
    return assert_response_ok(client.post("/auth/register", json=payload), 201)


def login(client: TestClient, email="alice@example.com", password="wonderland"):
    return assert_response_ok(client.post("/auth/login", json={"email": email, "password": password}))


def test_healthcheck(client: TestClient):
    data = assert_response_ok(client.get("/healthcheck"))
    assert data["status"] == "ok"
    assert "timestamp" in data


class TestAuthRoutes:
    def test_register_hides_password_hash(self, client: TestClient):
        user = register(client, avatar_url="https://example.com/alice.png")
        assert user["email"] == "alice@example.com"
        assert user["avatar_url"] == "https://example.com/alice.png"
        assert user["is_active"] is True
        assert "password_hash" not in user
        assert "password" not in user

    def test_register_validation(self, client: TestClient):
        short = client.post(
            "/auth/register",
            json={"email": "bob@example.com", "password": "short", "display_name": "Bob"},
        )
        assert short.status_code == 422
        bad_email = client.post(
            "/auth/register",
            json={"email": "not-an-email", "password": "long-enough", "display_name": "Bob"},
        )
        assert bad_email.status_code == 422

    def test_duplicate_registration(self, client: TestClient):
        register(client)
        response = client.post(
            "/auth/register",
            json={"email": "alice@example.com", "password": "different1", "display_name": "Alice 2"},
        )
        assert response.status_code == 409
        assert response.json()["detail"] == {
            "code": "conflict",
            "message": "User with this email already exists",
        }

    def test_login_me_logout(self, client: TestClient):
        user = register(client)
        session = login(client)
        assert session["user_id"] == user["id"]
        token = session["session_token"]

        me = assert_response_ok(client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}))
        assert me["id"] == user["id"]

        validated = assert_response_ok(client.post("/auth/session", json={"session_token": token}))
        assert validated["email"] == "alice@example.com"

        assert assert_response_ok(client.post("/auth/logout", json={"session_token": token})) is True
        assert assert_response_ok(client.post("/auth/logout", json={"session_token": token})) is False
        assert assert_response_ok(client.post("/auth/session", json={"session_token": token})) is None
        assert client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_me_requires_token(self, client: TestClient):
        assert client.get("/auth/me").status_code == 401

    def test_bad_credentials(self, client: TestClient):
        register(client)
        response = client.post("/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "invalid_credentials"

    def test_oauth_account_password_login(self, client: TestClient):
        session = assert_response_ok(
            client.post(
                "/auth/google",
                json={
                    "google_id": "g-42",
                    "email": "gina@example.com",
                    "display_name": "Gina",
                    "avatar_url": None,
                },
            )
        )
        assert len(session["session_token"]) == 64

        response = client.post("/auth/login", json={"email": "gina@example.com", "password": "whatever1"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "wrong_auth_method"

    def test_google_sign_in_without_avatar(self, client: TestClient):
        session = assert_response_ok(
            client.post(
                "/auth/google",
                json={"google_id": "g-7", "email": "noavatar@example.com", "display_name": "Nora"},
            )
        )
        profile = assert_response_ok(client.get(f"/users/{session['user_id']}"))
        assert profile["avatar_url"] is None

    def test_avatar_url_is_stored_as_sent(self, client: TestClient):
        bare_host = "https://lh3.googleusercontent.com"
        session = assert_response_ok(
            client.post(
                "/auth/google",
                json={"google_id": "g-8", "email": "host@example.com", "display_name": "Hal", "avatar_url": bare_host},
            )
        )
        profile = assert_response_ok(client.get(f"/users/{session['user_id']}"))
        assert profile["avatar_url"] == bare_host

        user = register(client, avatar_url="https://Example.com")
        assert user["avatar_url"] == "https://Example.com"
        updated = assert_response_ok(
            client.patch(f"/users/{user['id']}", json={"avatar_url": bare_host})
        )
        assert updated["avatar_url"] == bare_host

        bad = client.patch(f"/users/{user['id']}", json={"avatar_url": "not a url"})
        assert bad.status_code == 422

    def test_google_sign_in_email_race_is_conflict(self, client: TestClient, monkeypatch):
        register(client, email="taken@example.com")
        monkeypatch.setattr(auth_service, "get_user_by_email", lambda db, email: None)

        response = client.post(
            "/auth/google",
            json={"google_id": "g-9", "email": "taken@example.com", "display_name": "Late"},
        )
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "conflict"

    def test_profile_read_and_update(self, client: TestClient):
        user = register(client)

        profile = assert_response_ok(client.get(f"/users/{user['id']}"))
        assert profile["display_name"] == "Alice"
        assert "password_hash" not in profile
        assert assert_response_ok(client.get("/users/9999")) is None

        updated = assert_response_ok(
            client.patch(f"/users/{user['id']}", json={"display_name": "Alice L."})
        )
        assert updated["display_name"] == "Alice L."

        missing = client.patch("/users/9999", json={"display_name": "Ghost"})
        assert missing.status_code == 404


class TestConversationRoutes:
    def test_full_conversation_lifecycle(self, client: TestClient):
        user = register(client)
        other = register(client, email="bob@example.com")

        created = assert_response_ok(
            client.post("/conversations", json={"user_id": user["id"], "title": "Trip planning"}), 201
        )
        cid = created["id"]

        listed = assert_response_ok(client.get("/conversations", params={"user_id": user["id"]}))
        assert [c["id"] for c in listed] == [cid]
        assert assert_response_ok(client.get("/conversations", params={"user_id": other["id"]})) == []

        renamed = assert_response_ok(
            client.patch(f"/conversations/{cid}", json={"user_id": user["id"], "title": "Japan trip"})
        )
        assert renamed["title"] == "Japan trip"

        denied = client.patch(f"/conversations/{cid}", json={"user_id": other["id"], "title": "mine now"})
        missing = client.patch("/conversations/424242", json={"user_id": other["id"], "title": "mine now"})
        assert denied.status_code == missing.status_code == 404
        assert denied.json() == missing.json()

        found = assert_response_ok(
            client.get("/conversations/search", params={"user_id": user["id"], "query": "JAPAN"})
        )
        assert [c["id"] for c in found] == [cid]
        blank = client.get("/conversations/search", params={"user_id": user["id"], "query": "  "})
        assert assert_response_ok(blank) == []

        assert assert_response_ok(client.delete(f"/conversations/{cid}", params={"user_id": other["id"]})) is False
        assert assert_response_ok(client.delete(f"/conversations/{cid}", params={"user_id": user["id"]})) is True
        assert assert_response_ok(client.get("/conversations", params={"user_id": user["id"]})) == []

    def test_title_length_limits(self, client: TestClient):
        user = register(client)
        empty = client.post("/conversations", json={"user_id": user["id"], "title": ""})
        too_long = client.post("/conversations", json={"user_id": user["id"], "title": "t" * 256})
        assert empty.status_code == 422
        assert too_long.status_code == 422

    def test_create_for_unknown_user(self, client: TestClient):
        response = client.post("/conversations", json={"user_id": 999, "title": "orphan"})
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"


class TestChatRoutes:
    def test_messages_and_research(self, client: TestClient):
        user = register(client)
        cid = assert_response_ok(
            client.post("/conversations", json={"user_id": user["id"], "title": "Science"}), 201
        )["id"]

        sources = [{"title": "Tides", "url": "https://example.com/tides", "snippet": "moon"}]
        created = assert_response_ok(
            client.post(
                "/chat/messages",
                json={"conversation_id": cid, "content": "Noted", "role": "assistant", "sources": sources},
            ),
            201,
        )
        assert created["sources"] == sources

        plain = assert_response_ok(
            client.post(
                "/chat/research",
                json={"conversation_id": cid, "message": "Why is the sky blue?", "enable_research": False},
            )
        )
        assert plain["role"] == "assistant"
        assert plain["sources"] is None

        researched = assert_response_ok(
            client.post("/chat/research", json={"conversation_id": cid, "message": "And sunsets?"})
        )
        assert len(researched["sources"]) == 1
        stored = assert_response_ok(client.get(f"/chat/messages/{researched['id']}/sources"))
        assert stored[0]["relevance_score"] == 0.9

        history = assert_response_ok(client.get(f"/conversations/{cid}/messages"))
        assert [(m["role"], m["content"]) for m in history][:3] == [
            ("assistant", "Noted"),
            ("user", "Why is the sky blue?"),
            ("assistant", plain["content"]),
        ]
        assert len(history) == 5

    def test_message_validation(self, client: TestClient):
        user = register(client)
        cid = assert_response_ok(
            client.post("/conversations", json={"user_id": user["id"], "title": "Validation"}), 201
        )["id"]
        bad_role = client.post("/chat/messages", json={"conversation_id": cid, "content": "x", "role": "system"})
        empty = client.post("/chat/messages", json={"conversation_id": cid, "content": "", "role": "user"})
        assert bad_role.status_code == 422
        assert empty.status_code == 422

    def test_research_on_missing_conversation(self, client: TestClient):
        response = client.post("/chat/research", json={"conversation_id": 5150, "message": "anyone?"})
        assert response.status_code == 404

    def test_start_conversation(self, client: TestClient):
        user = register(client)
        data = assert_response_ok(
            client.post(
                "/chat/start",
                json={"user_id": user["id"], "message": "Help me learn Rust", "enable_research": False},
            ),
            201,
        )
        assert data["conversation"]["title"] == "Help me learn Rust"
        assert data["message"]["sources"] is None
        assert data["message"]["conversation_id"] == data["conversation"]["id"]

    def test_research_failure_hides_provider_error(self, client: TestClient):
        class FailingProvider(ResearchProvider):
            def fetch_sources(self, query):
                raise RuntimeError("connect to 10.0.0.5:9200 refused")

        user = register(client)
        cid = assert_response_ok(
            client.post("/conversations", json={"user_id": user["id"], "title": "Outage"}), 201
        )["id"]
        app.dependency_overrides[get_research_provider] = lambda: FailingProvider()

        response = client.post("/chat/research", json={"conversation_id": cid, "message": "still there?"})
        assert response.status_code == 502
        assert response.json()["detail"] == {
            "code": "research_failed",
            "message": "Could not produce a reply",
        }
        assert "10.0.0.5" not in response.text
        assert assert_response_ok(client.get(f"/conversations/{cid}/messages")) == []
