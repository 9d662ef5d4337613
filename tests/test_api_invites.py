"""Invite HTTP endpoints, including the public rate-limited validation."""

from datetime import timedelta

import pytest

from tripshare.config import settings
from tripshare.models.invite import Invite
from tripshare.utils.security import generate_invite_code
from tripshare.utils.timeutil import utcnow

API = "/api/v1"


@pytest.fixture
def create(client, admin, auth_headers):
    def _create(trip_ids, role="viewer", email=None):
        body = {"role": role, "tripIds": trip_ids}
        if email is not None:
            body["email"] = email
        return client.post(f"{API}/invites", json=body, headers=auth_headers(admin))

    return _create


class TestCreateInvite:
    def test_created(self, create, make_trip):
        a, b = make_trip(), make_trip()
        r = create([a.id, b.id], role="editor", email="Guest@Example.com")
        assert r.status_code == 201, r.text
        data = r.json()
        assert data["tripIds"] == [a.id, b.id]
        invite = data["invite"]
        assert len(invite["code"]) == 32
        assert invite["email"] == "guest@example.com"
        assert invite["role"] == "editor"
        assert invite["usedAt"] is None
        assert invite["expiresAt"].endswith("Z")
        assert "+" not in invite["expiresAt"]

    def test_requires_authentication(self, client, make_trip):
        r = client.post(f"{API}/invites", json={"role": "viewer", "tripIds": [make_trip().id]})
        assert r.status_code == 401
        assert r.json()["error"] == "Unauthorized"

        r = client.post(
            f"{API}/invites",
            json={"role": "viewer", "tripIds": [make_trip().id]},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert r.status_code == 401

    def test_requires_admin(self, client, member, auth_headers, make_trip):
        r = client.post(
            f"{API}/invites",
            json={"role": "viewer", "tripIds": [make_trip().id]},
            headers=auth_headers(member),
        )
        assert r.status_code == 403
        assert r.json()["message"] == "Admin access required"

    def test_error_statuses(self, create, make_trip):
        trip = make_trip()
        assert create([trip.id], role="owner").status_code == 400
        assert create([]).status_code == 400
        assert create([trip.id], email="nope").status_code == 400
        assert create(["trp_0000000000000000"]).status_code == 404

        assert create([trip.id], email="dup@example.com").status_code == 201
        r = create([trip.id], email="dup@example.com")
        assert r.status_code == 409
        assert r.json() == {
            "error": "Conflict",
            "message": "An active invite already exists for this email",
        }

    def test_malformed_body_is_bad_request(self, client, admin, auth_headers):
        r = client.post(
            f"{API}/invites",
            json={"role": "viewer", "tripIds": "not-a-list"},
            headers=auth_headers(admin),
        )
        assert r.status_code == 400
        assert r.json()["error"] == "Bad Request"


class TestListAndRevoke:
    def test_list_with_status(self, client, create, admin, auth_headers, make_trip, session):
        a, b = make_trip(), make_trip()
        pending = create([a.id, b.id]).json()["invite"]
        expired = create([a.id]).json()["invite"]
        row = session.get(Invite, expired["id"])
        row.expires_at = utcnow() - timedelta(minutes=1)
        session.add(row)
        session.commit()

        r = client.get(f"{API}/invites", headers=auth_headers(admin))
        assert r.status_code == 200
        items = {i["id"]: i for i in r.json()["invites"]}
        assert items[pending["id"]]["status"] == "pending"
        assert items[pending["id"]]["tripCount"] == 2
        assert items[expired["id"]]["status"] == "expired"
        for item in items.values():
            assert "code" not in item

    def test_list_is_admin_only(self, client, member, auth_headers):
        assert client.get(f"{API}/invites", headers=auth_headers(member)).status_code == 403

    def test_revoke(self, client, create, admin, auth_headers, make_trip):
        invite = create([make_trip().id]).json()["invite"]
        headers = auth_headers(admin)

        r = client.delete(f"{API}/invites/{invite['id']}", headers=headers)
        assert r.status_code == 200
        assert r.json()["success"] is True

        assert client.delete(f"{API}/invites/{invite['id']}", headers=headers).status_code == 400
        assert client.delete(f"{API}/invites/inv_0000000000000000", headers=headers).status_code == 404

        r = client.get(f"{API}/invites/validate/{invite['code']}")
        assert r.json() == {
            "valid": False,
            "reason": "already_used",
            "message": "This invite has already been used",
        }


class TestValidate:
    def test_valid_code(self, client, create, make_trip):
        trip = make_trip("Lisbon")
        invite = create([trip.id], email="a@example.com").json()["invite"]

        r = client.get(f"{API}/invites/validate/{invite['code']}")
        assert r.status_code == 200
        data = r.json()
        assert data["valid"] is True
        assert data["invite"]["email"] == "a@example.com"
        assert data["invite"]["role"] == "viewer"
        assert data["trips"] == [{"id": trip.id, "slug": trip.slug, "title": "Lisbon"}]
        assert "code" not in data["invite"]

    def test_unknown_code(self, client):
        r = client.get(f"{API}/invites/validate/{generate_invite_code()}")
        assert r.status_code == 200
        assert r.json() == {"valid": False, "reason": "not_found", "message": "Invite not found"}

    def test_malformed_code(self, client):
        r = client.get(f"{API}/invites/validate/short")
        assert r.status_code == 400

    def test_rate_limited_after_five(self, client):
        statuses = [
            client.get(f"{API}/invites/validate/{generate_invite_code()}").status_code
            for _ in range(6)
        ]
        assert statuses == [200] * 5 + [429]

        r = client.get(f"{API}/invites/validate/{generate_invite_code()}")
        assert r.status_code == 429
        assert r.json()["reason"] == "rate_limited"
        assert int(r.headers["Retry-After"]) >= 1

    def test_forwarded_for_ignored_unless_trusted(self, client):
        for i in range(5):
            r = client.get(
                f"{API}/invites/validate/{generate_invite_code()}",
                headers={"X-Forwarded-For": f"10.0.0.{i}"},
            )
            assert r.status_code == 200
        r = client.get(
            f"{API}/invites/validate/{generate_invite_code()}",
            headers={"X-Forwarded-For": "10.0.0.99"},
        )
        assert r.status_code == 429

    def test_trusted_proxy_keys_by_forwarded_for(self, client, monkeypatch):
        monkeypatch.setattr(settings, "trust_proxy_headers", True)
        url = f"{API}/invites/validate/{generate_invite_code()}"

        for _ in range(5):
            assert client.get(url, headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"}).status_code == 200
        assert client.get(url, headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
        assert client.get(url, headers={"X-Forwarded-For": "10.0.0.2"}).status_code == 200
        assert client.get(url, headers={"X-Real-IP": "10.0.0.3"}).status_code == 200

        r = client.get(url)
        assert r.status_code == 400
        assert r.json()["message"] == "Missing required proxy headers"


class TestAccept:
    def test_accept_then_reaccept(self, client, create, member, auth_headers, make_trip):
        a, b = make_trip(), make_trip()
        invite = create([a.id, b.id], role="editor").json()["invite"]
        headers = auth_headers(member)

        r = client.post(f"{API}/invites/{invite['code']}/accept", headers=headers)
        assert r.status_code == 200, r.text
        data = r.json()
        assert data["success"] is True
        assert sorted(g["tripId"] for g in data["tripAccess"]) == sorted([a.id, b.id])
        assert {g["role"] for g in data["tripAccess"]} == {"editor"}
        assert {g["userId"] for g in data["tripAccess"]} == {member.id}

        r = client.post(f"{API}/invites/{invite['code']}/accept", headers=headers)
        assert r.status_code == 400
        assert r.json()["reason"] == "already_used"

    def test_accept_errors(self, client, member, auth_headers):
        code = generate_invite_code()
        assert client.post(f"{API}/invites/{code}/accept").status_code == 401

        r = client.post(f"{API}/invites/{code}/accept", headers=auth_headers(member))
        assert r.status_code == 404
        assert r.json()["reason"] == "not_found"

        r = client.post(f"{API}/invites/bad-code/accept", headers=auth_headers(member))
        assert r.status_code == 400

    def test_accept_is_rate_limited(self, client, member, auth_headers):
        headers = auth_headers(member)
        statuses = [
            client.post(f"{API}/invites/{generate_invite_code()}/accept", headers=headers).status_code
            for _ in range(6)
        ]
        assert statuses == [404] * 5 + [429]

    def test_accept_shares_budget_with_validate(self, client, member, auth_headers):
        for _ in range(5):
            client.get(f"{API}/invites/validate/{generate_invite_code()}")
        r = client.post(f"{API}/invites/{generate_invite_code()}/accept", headers=auth_headers(member))
        assert r.status_code == 429
        assert r.json()["reason"] == "rate_limited"


def test_viewer_invite_scenario(client, create, make_user, auth_headers, make_trip):
    """Invite a viewer to one trip, accept, and check effective access."""
    t1 = make_trip("T1")
    invite = create([t1.id], role="viewer", email="a@example.com").json()["invite"]

    r = client.get(f"{API}/invites/validate/{invite['code']}")
    assert r.json()["valid"] is True
    assert [t["id"] for t in r.json()["trips"]] == [t1.id]

    user = make_user(email="a@example.com")
    r = client.post(f"{API}/invites/{invite['code']}/accept", headers=auth_headers(user))
    assert r.status_code == 200
    [grant] = r.json()["tripAccess"]
    assert (grant["userId"], grant["tripId"], grant["role"]) == (user.id, t1.id, "viewer")

    r = client.get(f"{API}/trips/{t1.id}/my-access", headers=auth_headers(user))
    assert r.status_code == 200
    assert r.json() == {"tripId": t1.id, "role": "viewer", "isAdmin": False}
