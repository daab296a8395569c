from fastapi.testclient import TestClient

from codeassist.main import create_app

BODY = {
    "code": "def add(a, b): return a + b",
    "action": "refactor",
    "username": "alice",
    "language": "Python",
    "description": "",
}


class TestProcess:
    def test_returns_bare_json_string(self, client):
        resp = client.post("/api/process", json=BODY)
        assert resp.status_code == 200
        assert resp.json() == '<div class="diff-view">def f():\n    return 1</div>'

    def test_unknown_action_returns_raw_answer(self, client):
        resp = client.post("/api/process", json={**BODY, "action": "something"})
        assert resp.json() == "def f():\n    return 1"

    def test_numeric_fields_are_used_as_text(self, client, model_client):
        resp = client.post("/api/process", json={**BODY, "code": 123, "language": 3})
        assert resp.status_code == 200
        assert "123" in model_client.calls[0][0].content
        entries = client.get("/api/history", params={"username": "alice"}).json()
        assert entries[0]["code"] == "123"

    def test_upstream_failure_is_generic_500(self, config, failing_client, history, users):
        app = create_app(config, model_client=failing_client, history=history, users=users)
        with TestClient(app) as c:
            resp = c.post("/api/process", json=BODY)
            assert resp.status_code == 500
            assert resp.json() == {"error": "Error processing request"}
            assert c.get("/api/history", params={"username": "alice"}).json() == []


class TestHistory:
    def test_empty_for_new_user(self, client):
        resp = client.get("/api/history", params={"username": "nobody"})
        assert resp.status_code == 200
        assert resp.json() == []

    def test_n_calls_give_n_entries_in_order(self, client):
        actions = ["generate", "debug", "comment"]
        for action in actions:
            assert client.post("/api/process", json={**BODY, "action": action}).status_code == 200

        entries = client.get("/api/history", params={"username": "alice"}).json()
        assert [e["action"] for e in entries] == actions
        assert all(e["code"] == BODY["code"] for e in entries)
        assert all("timestamp" in e for e in entries)

    def test_missing_username_is_empty(self, client):
        assert client.get("/api/history").json() == []


class TestAccounts:
    CREDS = {"username": "alice", "password": "s3cret"}

    def test_register_then_login(self, client):
        assert client.post("/api/register", json=self.CREDS).json() == {"success": True}
        resp = client.post("/api/login", json=self.CREDS)
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

    def test_long_password(self, client):
        creds = {"username": "alice", "password": "p" * 80}
        assert client.post("/api/register", json=creds).json() == {"success": True}
        assert client.post("/api/login", json=creds).status_code == 200

    def test_duplicate_register(self, client, users):
        client.post("/api/register", json=self.CREDS)
        resp = client.post("/api/register", json={**self.CREDS, "password": "other"})
        assert resp.status_code == 400
        assert resp.json() == {"message": "username exists"}
        assert len(users) == 1

    def test_bad_credentials_look_identical(self, client):
        client.post("/api/register", json=self.CREDS)
        wrong_password = client.post("/api/login", json={**self.CREDS, "password": "nope"})
        unknown_user = client.post("/api/login", json={**self.CREDS, "username": "bob"})
        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json() == unknown_user.json() == {"message": "invalid credentials"}

    def test_store_failure_is_generic_500(self, config, model_client, history):
        from codeassist.accounts import UserStore
        from codeassist.errors import PersistenceError

        class DownStore(UserStore):
            async def get(self, username):
                raise PersistenceError("connection refused")

            async def create(self, account):
                raise PersistenceError("connection refused")

        app = create_app(config, model_client=model_client, history=history, users=DownStore())
        with TestClient(app) as c:
            for path in ("/api/register", "/api/login"):
                resp = c.post(path, json=self.CREDS)
                assert resp.status_code == 500
                assert resp.json() == {"message": "server error"}


class TestStatic:
    def test_root_redirects_to_register_page(self, client):
        resp = client.get("/", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/register.html"

    def test_register_page_is_served(self, client):
        resp = client.get("/register.html")
        assert resp.status_code == 200
        assert "/api/register" in resp.text

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"
