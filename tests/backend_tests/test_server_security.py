"""
Production hardening tests.

Covers:
- GET /health returns 200 with expected JSON
- Security headers present on all responses
- Error envelope shape for 400/404/405
- Rate limiting: request past _RATE_LIMIT_MAX on /api/explain returns 429
- Response cache for /api/recommendations
"""

import pytest
import server


@pytest.fixture(scope="module")
def client():
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c


class TestHealthEndpoint:
    def test_health_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200

    def test_health_response_body(self, client):
        data = client.get("/health").get_json()
        assert data["status"] == "ok"
        assert data["version"] == server.VERSION


class TestSecurityHeaders:
    def test_security_headers_on_health(self, client):
        resp = client.get("/health")
        assert resp.headers.get("X-Frame-Options") == "DENY"
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"
        assert resp.headers.get("Referrer-Policy") == "same-origin"

    def test_security_headers_on_error(self, client):
        resp = client.get("/api/courses/NOPE%2000000")
        assert resp.status_code == 404
        assert resp.headers.get("X-Frame-Options") == "DENY"


class TestErrorEnvelope:
    def test_unknown_route(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        data = resp.get_json()
        assert data["mode"] == "error"
        assert data["error"]["error_code"] == "NOT_FOUND"

    def test_wrong_method(self, client):
        resp = client.get("/api/recommendations")
        assert resp.status_code == 405
        assert resp.get_json()["error"]["error_code"] == "INVALID_INPUT"

    def test_non_object_body(self, client):
        resp = client.post("/api/recommendations", json=["ECE 20001"])
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["error_code"] == "INVALID_INPUT"
        assert error["field"] == "body"

    def test_missing_body_treated_as_empty(self, client):
        resp = client.post("/api/next-courses", data="")
        assert resp.status_code == 200

    def test_unexpected_error_is_500(self, client, monkeypatch):
        def boom(*_args, **_kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(server, "analyze_gpa_risk", boom)
        resp = client.post("/api/gpa/risk", json={"course_codes": ["ECE 20001"]})
        assert resp.status_code == 500
        assert resp.get_json()["error"]["error_code"] == "SERVER_ERROR"
        assert "kaboom" not in resp.get_data(as_text=True)


class TestRateLimiting:
    """Rate limit: _RATE_LIMIT_MAX req/window per IP on LLM endpoints. TESTING mode bypasses it."""

    PAYLOAD = {"course_code": "ECE 20875"}

    def test_rate_limit_enforce_in_non_testing_mode(self, monkeypatch):
        monkeypatch.setattr(server, "explain_course", lambda *_args: "ok")
        server.app.config["TESTING"] = False
        try:
            with server.app.test_client() as c:
                test_ip = "10.99.88.77"
                with server._rate_limit_lock:
                    server._rate_limit_tracker[test_ip] = []

                statuses = []
                for _ in range(server._RATE_LIMIT_MAX + 1):
                    resp = c.post(
                        "/api/explain",
                        json=self.PAYLOAD,
                        environ_base={"REMOTE_ADDR": test_ip},
                    )
                    statuses.append(resp.status_code)

                assert all(s == 200 for s in statuses[:server._RATE_LIMIT_MAX]), statuses
                assert statuses[-1] == 429
                assert resp.get_json()["error"]["error_code"] == "RATE_LIMITED"
        finally:
            server.app.config["TESTING"] = True

    def test_rate_limit_bypassed_in_testing_mode(self, client, monkeypatch):
        monkeypatch.setattr(server, "explain_course", lambda *_args: "ok")
        test_ip = "10.99.00.01"
        with server._rate_limit_lock:
            server._rate_limit_tracker[test_ip] = []

        for _ in range(server._RATE_LIMIT_MAX + 2):
            resp = client.post(
                "/api/explain",
                json=self.PAYLOAD,
                environ_base={"REMOTE_ADDR": test_ip},
            )
            assert resp.status_code == 200

    def test_non_llm_routes_not_limited(self):
        server.app.config["TESTING"] = False
        try:
            with server.app.test_client() as c:
                test_ip = "10.99.88.78"
                for _ in range(server._RATE_LIMIT_MAX + 2):
                    resp = c.post("/api/next-courses", json={}, environ_base={"REMOTE_ADDR": test_ip})
                    assert resp.status_code == 200
        finally:
            server.app.config["TESTING"] = True


class TestResponseCache:
    def test_lru_evicts_oldest(self):
        cache = server._LruResponseCache(2)
        cache.set("a", {"v": 1})
        cache.set("b", {"v": 2})
        cache.get("a")
        cache.set("c", {"v": 3})
        assert cache.get("b") is None
        assert cache.get("a") == {"v": 1}

    def test_payload_hash_ignores_key_order(self):
        assert server._stable_payload_hash({"a": 1, "b": 2}) == server._stable_payload_hash({"b": 2, "a": 1})

    def test_recommendations_cached_outside_testing(self, monkeypatch):
        calls = {"count": 0}
        real_rank = server.rank_courses

        def counting_rank(*args):
            calls["count"] += 1
            return real_rank(*args)

        monkeypatch.setattr(server, "rank_courses", counting_rank)
        server._recommendation_cache.clear()
        server.app.config["TESTING"] = False
        try:
            with server.app.test_client() as c:
                body = {"preferences": {"career_goals": ["vlsi"]}}
                first = c.post("/api/recommendations", json=body).get_json()
                second = c.post("/api/recommendations", json=body).get_json()
            assert first == second
            assert calls["count"] == 1
        finally:
            server.app.config["TESTING"] = True
            server._recommendation_cache.clear()
