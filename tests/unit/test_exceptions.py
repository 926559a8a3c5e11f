"""Unit tests for exception categories."""

from sqlalchemy.exc import OperationalError

from app.utils.exceptions import (
    ConfigInactive,
    ConfigNotFound,
    LockContention,
    TransientStorageError,
    UserNotFound,
    is_fatal_for_entry,
    is_transient,
)


class TestExceptionCategories:
    """Drain failure classification."""

    def test_missing_config_and_user_are_fatal(self):
        assert is_fatal_for_entry(ConfigNotFound(3)) is True
        assert is_fatal_for_entry(UserNotFound("bob")) is True
        assert is_fatal_for_entry(ConfigInactive(4)) is True

    def test_storage_errors_are_transient(self):
        error = OperationalError("UPDATE ...", {}, Exception("server closed"))

        assert is_transient(error) is True
        assert is_transient(TransientStorageError("timeout")) is True
        assert is_fatal_for_entry(error) is False

    def test_unexpected_errors_are_neither(self):
        error = ValueError("bad data")

        assert is_fatal_for_entry(error) is False
        assert is_transient(error) is False

    def test_messages_carry_identifiers(self):
        assert "3" in str(ConfigNotFound(3))
        assert UserNotFound("bob").username == "bob"
        assert LockContention("drain").job_name == "drain"
        assert str(ConfigInactive(4)) == "Matrix config 4 is not active"
