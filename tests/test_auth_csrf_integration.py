import unittest

from api_case import ORIGIN, ApiTestCase

PROTECTED = [
    ("get", "/api/symptom-logs"),
    ("post", "/api/symptom-logs"),
    ("put", "/api/symptom-logs/1"),
    ("delete", "/api/symptom-logs/1"),
    ("get", "/api/medical-timeline"),
    ("patch", "/api/medical-timeline/1"),
    ("get", "/api/appointments"),
    ("get", "/api/appointments/upcoming"),
    ("post", "/api/health-tasks"),
    ("delete", "/api/expenses/1"),
    ("get", "/api/insights"),
    ("post", "/api/generate-report"),
    ("get", "/api/user"),
]


class AuthCsrfIntegrationTests(ApiTestCase):
    def test_api_requires_auth(self):
        self._register(self.client)
        anonymous = self._new_client()
        for method, path in PROTECTED:
            with self.subTest(method=method, path=path):
                kwargs = {"headers": ORIGIN}
                if method in {"post", "put", "patch"}:
                    kwargs["json"] = {}
                resp = getattr(anonymous, method)(path, **kwargs)
                self.assertEqual(resp.status_code, 401)
                self.assertEqual(resp.json(), {"error": "unauthorized"})

    def test_forged_session_cookie_is_rejected(self):
        self._register(self.client)
        forger = self._new_client()
        forger.cookies.set("healthlog_session", "1:9999999999:nonce:deadbeef")
        resp = forger.get("/api/user")
        self.assertEqual(resp.status_code, 401)

    def test_api_post_requires_csrf_header(self):
        self._register(self.client)

        without_csrf = self.client.post(
            "/api/health-tasks",
            headers=ORIGIN,
            json={"title": "Refill prescription"},
        )
        self.assertEqual(without_csrf.status_code, 403)
        self.assertEqual(without_csrf.json(), {"error": "forbidden"})

        cross_origin = self.client.post(
            "/api/health-tasks",
            headers={"origin": "http://evil.example", "x-csrf-token": self.client.cookies.get("csrf_token")},
            json={"title": "Refill prescription"},
        )
        self.assertEqual(cross_origin.status_code, 403)

        with_csrf = self.client.post(
            "/api/health-tasks",
            headers=self._headers(self.client),
            json={"title": "Refill prescription"},
        )
        self.assertEqual(with_csrf.status_code, 201)
        payload = with_csrf.json()
        self.assertTrue(payload.get("ok"))
        self.assertEqual(payload["task"]["title"], "Refill prescription")
        self.assertEqual(payload["task"]["priority"], "medium")

    def test_register_rejects_duplicate_username_and_short_password(self):
        self._register(self.client)
        other = self._new_client()
        dup = other.post(
            "/api/register", headers=ORIGIN, json={"username": "alice", "password": "password123"}
        )
        self.assertEqual(dup.status_code, 400)
        self.assertEqual(dup.json()["error"], "Username already taken")

        short = other.post(
            "/api/register", headers=ORIGIN, json={"username": "bob", "password": "short"}
        )
        self.assertEqual(short.status_code, 400)
        self.assertIn("password", short.json()["fields"])

    def test_register_requires_same_origin(self):
        resp = self.client.post(
            "/api/register", json={"username": "alice", "password": "password123"}
        )
        self.assertEqual(resp.status_code, 403)

    def test_login_and_user_profile(self):
        self._register(self.client, first_name="Alice", email="Alice@Example.com")

        fresh = self._new_client()
        bad = fresh.post(
            "/api/login", headers=ORIGIN, json={"username": "alice", "password": "wrong-password"}
        )
        self.assertEqual(bad.status_code, 401)

        good = fresh.post(
            "/api/login", headers=ORIGIN, json={"username": "alice", "password": "password123"}
        )
        self.assertEqual(good.status_code, 200)

        me = fresh.get("/api/user")
        self.assertEqual(me.status_code, 200)
        user = me.json()
        self.assertEqual(user["username"], "alice")
        self.assertEqual(user["first_name"], "Alice")
        self.assertEqual(user["email"], "alice@example.com")
        self.assertFalse(user["faith_mode_enabled"])
        self.assertNotIn("password_hash", user)

    def test_profile_settings_update(self):
        self._register(self.client)
        resp = self.client.patch(
            "/api/user",
            headers=self._headers(self.client),
            json={"faith_mode_enabled": True, "anonymous_mode": True, "last_name": "Smith"},
        )
        self.assertEqual(resp.status_code, 200)
        user = resp.json()["user"]
        self.assertTrue(user["faith_mode_enabled"])
        self.assertTrue(user["anonymous_mode"])
        self.assertEqual(user["last_name"], "Smith")

        invalid = self.client.patch(
            "/api/user", headers=self._headers(self.client), json={"email": "not-an-email"}
        )
        self.assertEqual(invalid.status_code, 400)
        self.assertIn("email", invalid.json()["fields"])

    def test_login_is_rate_limited_per_client(self):
        self._register(self.client)
        fresh = self._new_client()
        for _ in range(10):
            resp = fresh.post(
                "/api/login", headers=ORIGIN, json={"username": "alice", "password": "nope-nope"}
            )
            self.assertEqual(resp.status_code, 401)
        blocked = fresh.post(
            "/api/login", headers=ORIGIN, json={"username": "alice", "password": "password123"}
        )
        self.assertEqual(blocked.status_code, 429)

    def test_session_token_is_bound_to_user_and_password(self):
        import security

        token = security._make_session_token(7, "salt:hash")
        self.assertTrue(security._verify_session_token(token, 7, "salt:hash"))
        self.assertFalse(security._verify_session_token(token, 8, "salt:hash"))
        self.assertFalse(security._verify_session_token(token, 7, "salt:other"))
        self.assertFalse(security._verify_session_token("garbage", 7, "salt:hash"))

    def test_logout_clears_session_cookie(self):
        self._register(self.client)
        resp = self.client.post("/api/logout", headers=ORIGIN)
        self.assertEqual(resp.status_code, 200)
        self.assertIn("healthlog_session", resp.headers.get("set-cookie", ""))


if __name__ == "__main__":
    unittest.main()
