import pytest

from nimbus_admin.core.errors import ConflictError, NotFoundError, ValidationError
from nimbus_admin.core.models import User


def test_password_round_trip(credentials):
    created = credentials.create_user("alice", "s3cret")
    user = credentials.validate_user("alice", "s3cret")
    assert user is not None
    assert user.id == created.id
    assert set(user.model_dump()) == {"id", "username", "created_at"}


def test_wrong_password_and_unknown_user_collapse_to_none(credentials):
    credentials.create_user("alice", "s3cret")
    assert credentials.validate_user("alice", "nope") is None
    assert credentials.validate_user("mallory", "s3cret") is None


def test_hash_uses_stored_salt_and_explicit_rounds(credentials, app_db):
    credentials.create_user("alice", "s3cret")
    with app_db.get_session() as session:
        row = session.get(User, 1)
        assert row.password_hash.startswith("$pbkdf2-sha512$1000$")
        assert len(row.salt) == 32
        assert "s3cret" not in row.password_hash


def test_duplicate_username_conflicts(credentials):
    credentials.create_user("alice", "a")
    with pytest.raises(ConflictError):
        credentials.create_user("alice", "b")


def test_create_requires_fields(credentials):
    with pytest.raises(ValidationError):
        credentials.create_user("", "pw")
    with pytest.raises(ValidationError):
        credentials.create_user("bob", None)


def test_update_renames_and_rehashes_with_fresh_salt(credentials, app_db):
    user = credentials.create_user("alice", "old")
    with app_db.get_session() as session:
        old_salt = session.get(User, user.id).salt

    credentials.update_user(user.id, "alice2", "new")

    assert credentials.validate_user("alice", "old") is None
    assert credentials.validate_user("alice2", "old") is None
    assert credentials.validate_user("alice2", "new") is not None
    with app_db.get_session() as session:
        assert session.get(User, user.id).salt != old_salt


def test_update_without_password_keeps_hash(credentials):
    user = credentials.create_user("alice", "pw")
    credentials.update_user(user.id, "alicia")
    assert credentials.validate_user("alicia", "pw") is not None


def test_update_username_collision(credentials):
    credentials.create_user("alice", "a")
    bob = credentials.create_user("bob", "b")
    with pytest.raises(ConflictError):
        credentials.update_user(bob.id, "alice")


def test_update_unknown_user(credentials):
    with pytest.raises(NotFoundError):
        credentials.update_user(42, "ghost")


def test_list_users_newest_first_without_password_material(credentials):
    credentials.create_user("alice", "a")
    credentials.create_user("bob", "b")
    users = credentials.list_users()
    assert [u.username for u in users] == ["bob", "alice"]
    assert all(not hasattr(u, "password_hash") for u in users)


def test_deleting_last_user_is_allowed(credentials):
    user = credentials.create_user("alice", "a")
    credentials.delete_user(user.id)
    assert credentials.count_users() == 0


def test_bootstrap_only_on_empty_store(credentials):
    assert credentials.bootstrap("admin", "admin") is True
    assert credentials.bootstrap("admin", "admin") is False
    assert credentials.count_users() == 1
    assert credentials.validate_user("admin", "admin") is not None
