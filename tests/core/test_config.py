from pydantic import ValidationError
import pytest

from bikerental.core.config import Settings


def test_defaults_keep_lock_wait_inside_the_deadline():
    config = Settings()
    assert config.sqlite_busy_timeout_seconds < config.request_timeout_seconds


@pytest.mark.parametrize("busy_timeout", [10.0, 30.0])
def test_lock_wait_longer_than_deadline_is_refused(busy_timeout):
    with pytest.raises(ValidationError):
        Settings(sqlite_busy_timeout_seconds=busy_timeout, request_timeout_seconds=10.0)


def test_log_level_is_normalized():
    assert Settings(log_level=" debug ").log_level == "DEBUG"
