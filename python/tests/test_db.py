"""Database smoke tests.

Verifies basic connectivity, the transaction helper, and that the schema
enforces the uniqueness the services rely on.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minix.db.models import DmConversation, User
from minix.db.session import is_unique_violation, transaction
from tests.factories import create_test_user


class TestDatabaseConnectivity:
    """Tests for basic database operations."""

    def test_session_opens_and_executes_query(self, db_session: Session):
        """Database session can execute a simple query."""
        row = db_session.execute(text("SELECT 1 AS value")).fetchone()

        assert row is not None
        assert row[0] == 1


class TestTransaction:
    def test_commits_on_success(self, db_session: Session):
        with transaction(db_session):
            db_session.add(User(id="u1", username="alice"))

        db_session.expire_all()
        assert db_session.get(User, "u1") is not None

    def test_rolls_back_on_error(self, db_session: Session):
        with pytest.raises(RuntimeError):
            with transaction(db_session):
                db_session.add(User(id="u1", username="alice"))
                db_session.flush()
                raise RuntimeError("boom")

        assert db_session.get(User, "u1") is None


class TestUniqueConstraints:
    def test_duplicate_username_is_unique_violation(self, db_session: Session):
        create_test_user(db_session, username="alice")

        db_session.add(User(id="other", username="alice"))
        with pytest.raises(IntegrityError) as exc_info:
            db_session.commit()
        db_session.rollback()

        assert is_unique_violation(exc_info.value)

    def test_duplicate_pair_key_is_unique_violation(self, db_session: Session):
        db_session.add(DmConversation(id="c1", pair_key="a:b"))
        db_session.commit()

        db_session.add(DmConversation(id="c2", pair_key="a:b"))
        with pytest.raises(IntegrityError) as exc_info:
            db_session.commit()
        db_session.rollback()

        assert is_unique_violation(exc_info.value)

    def test_null_pair_keys_do_not_collide(self, db_session: Session):
        db_session.add_all([DmConversation(id="c1"), DmConversation(id="c2")])
        db_session.commit()

        assert db_session.get(DmConversation, "c2") is not None

    def test_not_null_failure_is_not_unique_violation(self, db_session: Session):
        db_session.add(User(id="u1", username=None))
        with pytest.raises(IntegrityError) as exc_info:
            db_session.commit()
        db_session.rollback()

        assert not is_unique_violation(exc_info.value)
