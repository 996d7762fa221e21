"""Tests for directory seeding, profiles and the directory endpoint."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minix.config import DirectoryContact, Settings
from minix.db.models import User
from minix.errors import ApiError, ApiErrorCode
from minix.services import directory as directory_service
from minix.services.directory import (
    build_profile,
    ensure_directory,
    ensure_user_exists,
    fetch_profiles,
    get_user_directory,
)
from tests.factories import create_test_user
from tests.helpers import BOT_ID, make_settings


def _user_count(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(User))


class TestEnsureDirectory:
    def test_seeds_every_contact_once(self, db_session: Session, settings: Settings):
        inserted = ensure_directory(db_session, settings.dm_directory_contacts)

        assert inserted == 3
        assert db_session.get(User, BOT_ID).username == "dm-bot"

    def test_is_idempotent(self, db_session: Session, settings: Settings):
        ensure_directory(db_session, settings.dm_directory_contacts)

        assert ensure_directory(db_session, settings.dm_directory_contacts) == 0
        assert _user_count(db_session) == 3

    def test_existing_username_is_left_untouched(self, db_session: Session, settings: Settings):
        create_test_user(db_session, username="dm-bot", user_id="legacy-bot")

        inserted = ensure_directory(db_session, settings.dm_directory_contacts)

        assert inserted == 2
        assert db_session.get(User, "legacy-bot") is not None
        assert db_session.get(User, BOT_ID) is None

    def test_empty_directory_is_a_no_op(self, db_session: Session):
        assert ensure_directory(db_session, []) == 0
        assert _user_count(db_session) == 0

    def test_duplicate_key_on_insert_is_absorbed(self, db_session: Session):
        """An id taken under another username looks like a concurrent seeder."""
        create_test_user(db_session, username="old-name", user_id="c1")
        db_session.expunge_all()
        contact = DirectoryContact(
            id="c1",
            username="solo",
            display_name="Solo",
            title="Only",
            avatar_url="https://avatars.test/solo",
        )

        assert ensure_directory(db_session, [contact]) == 0
        assert db_session.get(User, "c1").username == "old-name"
        assert _user_count(db_session) == 1

    def test_other_integrity_failures_propagate(self, db_session: Session):
        contact = DirectoryContact.model_construct(
            id="c2",
            username=None,
            display_name="Nameless",
            title="None",
            avatar_url="https://avatars.test/none",
        )

        with pytest.raises(IntegrityError):
            ensure_directory(db_session, [contact])

        assert _user_count(db_session) == 0


class TestProfiles:
    def test_contact_profile_uses_directory_entry(self, db_session: Session, settings: Settings):
        ensure_directory(db_session, settings.dm_directory_contacts)

        profile = build_profile(db_session.get(User, BOT_ID), settings)

        assert profile.display_name == "Direct Message Bot"
        assert profile.title == "Automation"
        assert profile.avatar_url.endswith("seed=dm-bot")

    def test_plain_user_profile_is_synthesized(self, db_session: Session, settings: Settings):
        user = create_test_user(db_session, username="ana maria")

        profile = build_profile(user, settings)

        assert profile.display_name == "ana maria"
        assert profile.title == "Beta Tester"
        assert profile.avatar_url == f"{settings.avatar_base_url}ana%20maria"

    def test_avatar_seed_keeps_uri_component_punctuation(
        self, db_session: Session, settings: Settings
    ):
        user = create_test_user(db_session, username="o'neil(x)!*~")

        profile = build_profile(user, settings)

        assert profile.avatar_url == f"{settings.avatar_base_url}o'neil(x)!*~"

    def test_fetch_profiles_skips_unknown_ids(self, db_session: Session, settings: Settings):
        user = create_test_user(db_session, username="known")

        profiles = fetch_profiles(db_session, [user.id, "ghost", user.id], settings)

        assert list(profiles) == [user.id]


class TestEnsureUserExists:
    def test_returns_existing_user(self, db_session: Session):
        user = create_test_user(db_session, username="alice", user_id="u1")

        assert ensure_user_exists(db_session, "u1").id == user.id

    def test_creates_user_from_username(self, db_session: Session):
        created = ensure_user_exists(db_session, "u2", username="bob")

        assert created.username == "bob"
        assert db_session.get(User, "u2") is not None

    def test_unknown_id_without_username_raises(self, db_session: Session):
        with pytest.raises(ApiError) as exc_info:
            ensure_user_exists(db_session, "nobody")

        assert exc_info.value.code == ApiErrorCode.E_USER_NOT_FOUND

    def test_lost_race_returns_winner(self, db_session: Session, monkeypatch):
        """The first lookup misses, as if a concurrent caller inserted right after it."""
        create_test_user(db_session, username="alice", user_id="u1")
        db_session.expunge_all()
        real_get_user = directory_service.get_user
        lookups: list[str] = []

        def get_user_after_race(db: Session, user_id: str):
            lookups.append(user_id)
            return None if len(lookups) == 1 else real_get_user(db, user_id)

        monkeypatch.setattr(directory_service, "get_user", get_user_after_race)

        user = ensure_user_exists(db_session, "u1", username="alice")

        assert user.id == "u1"
        assert lookups == ["u1", "u1"]
        assert _user_count(db_session) == 1

    def test_username_owned_by_another_id_raises(self, db_session: Session):
        create_test_user(db_session, username="alice", user_id="u1")

        with pytest.raises(ApiError) as exc_info:
            ensure_user_exists(db_session, "u2", username="alice")

        assert exc_info.value.code == ApiErrorCode.E_INVALID_REQUEST
        assert db_session.get(User, "u2") is None


class TestGetUserDirectory:
    def test_contacts_sort_first_then_by_display_name(
        self, db_session: Session, settings: Settings
    ):
        create_test_user(db_session, username="zed")
        create_test_user(db_session, username="Amy")

        profiles = get_user_directory(db_session, settings)

        assert [p.username for p in profiles] == [
            "dm-bot",
            "growth-mate",
            "launch-labs",
            "Amy",
            "zed",
        ]

    def test_exclude_id_drops_caller(self, db_session: Session, settings: Settings):
        me = create_test_user(db_session, username="me")

        profiles = get_user_directory(db_session, settings, exclude_id=me.id)

        assert me.id not in {p.id for p in profiles}

    def test_custom_directory(self, db_session: Session):
        custom = make_settings(
            DM_DIRECTORY_CONTACTS=[
                DirectoryContact(
                    id="c1",
                    username="solo",
                    display_name="Solo",
                    title="Only",
                    avatar_url="https://avatars.test/solo",
                ).model_dump()
            ]
        )

        profiles = get_user_directory(db_session, custom)

        assert [p.id for p in profiles] == ["c1"]


class TestDirectoryEndpoint:
    def test_lists_directory(self, client: TestClient):
        response = client.get("/directory")

        assert response.status_code == 200
        data = response.json()["data"]
        assert {p["username"] for p in data} == {"launch-labs", "growth-mate", "dm-bot"}
        assert set(data[0]) == {"id", "username", "display_name", "title", "avatar_url"}

    def test_exclude_id_alias(self, client: TestClient):
        response = client.get("/directory", params={"excludeId": BOT_ID})

        assert BOT_ID not in {p["id"] for p in response.json()["data"]}
