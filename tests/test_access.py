"""Role hierarchy, admin bypass and direct grant management."""

import pytest
from sqlmodel import select

from tripshare.errors import ConflictError, NotFoundError, ValidationError
from tripshare.models.invite import InviteTripAssignment
from tripshare.models.role import Role
from tripshare.models.trip_access import TripAccess
from tripshare.services.access_service import (
    effective_role,
    grant_access,
    has_access,
    list_trip_access,
    revoke_access,
    update_access_role,
)
from tripshare.services.invite_service import create_invite


class TestRole:
    def test_ordering(self):
        assert Role.EDITOR.satisfies(Role.VIEWER)
        assert Role.EDITOR.satisfies(Role.EDITOR)
        assert Role.VIEWER.satisfies(Role.VIEWER)
        assert not Role.VIEWER.satisfies(Role.EDITOR)

    def test_parse(self):
        assert Role.parse("viewer") is Role.VIEWER
        assert Role.parse(Role.EDITOR) is Role.EDITOR
        assert Role.parse("admin") is None
        assert Role.parse(None) is None
        assert Role.parse(1) is None


@pytest.mark.parametrize(
    "stored,required,expected",
    [
        (Role.EDITOR, Role.VIEWER, True),
        (Role.VIEWER, Role.VIEWER, True),
        (Role.EDITOR, Role.EDITOR, True),
        (Role.VIEWER, Role.EDITOR, False),
    ],
)
def test_has_access_hierarchy(session, admin, member, make_trip, stored, required, expected):
    trip = make_trip()
    grant_access(session, admin, member.id, trip.id, stored.value)
    assert has_access(session, member.id, trip.id, False, required) is expected


def test_no_grant_means_no_access(session, member, make_trip):
    trip = make_trip()
    assert not has_access(session, member.id, trip.id, False, Role.VIEWER)
    assert effective_role(session, member, trip.id) is None


def test_admin_bypass_without_rows(session, admin, make_trip):
    trip = make_trip()
    for role in Role:
        assert has_access(session, admin.id, trip.id, True, role)
    assert effective_role(session, admin, trip.id) is Role.EDITOR
    assert session.exec(select(TripAccess)).all() == []


def test_grant_rejects_admin_target(session, admin, make_user, make_trip):
    other_admin = make_user(is_admin=True)
    with pytest.raises(ValidationError):
        grant_access(session, admin, other_admin.id, make_trip().id, "viewer")


def test_grant_validation_and_lookup_errors(session, admin, member, make_trip):
    trip = make_trip()
    with pytest.raises(ValidationError):
        grant_access(session, admin, "bogus", trip.id, "viewer")
    with pytest.raises(ValidationError):
        grant_access(session, admin, member.id, trip.id, "owner")
    with pytest.raises(NotFoundError):
        grant_access(session, admin, "usr_0000000000000000", trip.id, "viewer")
    with pytest.raises(NotFoundError):
        grant_access(session, admin, member.id, "trp_0000000000000000", "viewer")


def test_duplicate_grant_is_conflict(session, admin, member, make_trip):
    trip = make_trip()
    grant_access(session, admin, member.id, trip.id, "viewer")
    with pytest.raises(ConflictError):
        grant_access(session, admin, member.id, trip.id, "editor")


def test_update_and_revoke(session, admin, member, make_trip):
    trip = make_trip()
    grant = grant_access(session, admin, member.id, trip.id, "viewer")

    updated = update_access_role(session, grant.id, "editor")
    assert updated.role == "editor"
    assert has_access(session, member.id, trip.id, False, Role.EDITOR)

    rows = list_trip_access(session, trip.id)
    assert [(g.user_id, u.email) for g, u in rows] == [(member.id, member.email)]

    grant_id = grant.id
    revoke_access(session, grant_id)
    assert not has_access(session, member.id, trip.id, False, Role.VIEWER)
    with pytest.raises(NotFoundError):
        revoke_access(session, grant_id)


def test_grants_cascade_when_trip_deleted(session, admin, member, make_trip):
    trip = make_trip()
    grant_access(session, admin, member.id, trip.id, "viewer")

    session.delete(trip)
    session.commit()

    assert session.exec(select(TripAccess)).all() == []


def test_grants_cascade_when_user_deleted(session, admin, member, make_trip):
    grant_access(session, admin, member.id, make_trip().id, "viewer")

    session.delete(member)
    session.commit()

    assert session.exec(select(TripAccess)).all() == []


def test_invite_assignments_cascade_when_trip_deleted(session, admin, make_trip):
    kept, deleted = make_trip(), make_trip()
    invite, _ = create_invite(session, admin, None, "viewer", [kept.id, deleted.id])

    session.delete(deleted)
    session.commit()

    remaining = session.exec(
        select(InviteTripAssignment.trip_id).where(InviteTripAssignment.invite_id == invite.id)
    ).all()
    assert remaining == [kept.id]
