"""Tests for health, auth and user endpoints (F6)."""


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"


class TestAuth:
    def test_missing_identity(self, client):
        response = client.get("/api/users/me")
        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"

    def test_blank_identity(self, client):
        response = client.get("/api/users/me", headers={"X-User-Id": "  "})
        assert response.status_code == 401

    def test_identity_with_room_separator(self, client, auth):
        response = client.get("/api/users/me", headers=auth("ana_x"))
        assert response.status_code == 400
        assert response.json()["code"] == "invalid-argument"

    def test_cannot_read_other_pair_history(self, client, auth, bruno):
        """A UID with "_" could otherwise share a room id with another pair."""
        response = client.get("/api/chat/bruno/messages", headers=auth("ana_x"))
        assert response.status_code == 400


class TestProfile:
    def test_first_sign_in_creates_profile(self, client, auth):
        response = client.get("/api/users/me", headers=auth("ana", "Ana Torres"))
        assert response.status_code == 200
        data = response.json()
        assert data["uid"] == "ana"
        assert data["full_name"] == "Ana Torres"
        assert data["email"] == "ana@example.com"
        assert data["completeness"] == 13

    def test_register(self, client, auth):
        response = client.post(
            "/api/users",
            json={"full_name": "Carla Ruiz", "age": 31, "skills": "SQL, Python"},
            headers=auth("carla"),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["skills"] == ["SQL", "Python"]
        assert data["email"] == "carla@example.com"

    def test_register_twice(self, client, ana):
        response = client.post("/api/users", json={"full_name": "Ana"}, headers=ana)
        assert response.status_code == 409
        assert response.json()["code"] == "already-exists"

    def test_register_invalid(self, client, auth):
        response = client.post(
            "/api/users",
            json={"full_name": "C", "linkedin_url": "https://example.com/me"},
            headers=auth("carla"),
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "invalid-argument"
        assert "LinkedIn" in body["detail"]

    def test_update(self, client, ana):
        response = client.patch(
            "/api/users/me",
            json={"description": "Math tutor", "github_url": "https://github.com/ana"},
            headers=ana,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["description"] == "Math tutor"
        assert data["github_url"] == "https://github.com/ana"

    def test_get_unknown_user(self, client, ana):
        response = client.get("/api/users/ghost", headers=ana)
        assert response.status_code == 404
        assert response.json()["code"] == "not-found"


class TestListUsers:
    def test_excludes_caller_and_filters(self, client, ana, bruno):
        response = client.get("/api/users", headers=ana)
        assert [u["uid"] for u in response.json()["users"]] == ["bruno"]

        response = client.get("/api/users", params={"q": "zzz"}, headers=ana)
        assert response.json()["count"] == 0


class TestFollow:
    def test_follow_and_unfollow(self, client, ana, bruno):
        response = client.post("/api/users/bruno/follow", headers=ana)
        assert response.status_code == 200
        assert response.json() == {"following": True, "changed": True, "followers_count": 1}

        again = client.post("/api/users/bruno/follow", headers=ana)
        assert again.json()["changed"] is False

        profile = client.get("/api/users/bruno", headers=ana).json()
        assert profile["is_following"] is True
        assert profile["followers_count"] == 1

        followers = client.get("/api/users/bruno/followers", headers=bruno).json()
        assert [u["uid"] for u in followers["users"]] == ["ana"]
        following = client.get("/api/users/ana/following", headers=bruno).json()
        assert [u["uid"] for u in following["users"]] == ["bruno"]

        response = client.delete("/api/users/bruno/follow", headers=ana)
        assert response.json() == {"following": False, "changed": True, "followers_count": 0}

    def test_follow_self(self, client, ana):
        response = client.post("/api/users/ana/follow", headers=ana)
        assert response.status_code == 400

    def test_follow_unknown(self, client, ana):
        response = client.post("/api/users/ghost/follow", headers=ana)
        assert response.status_code == 404
