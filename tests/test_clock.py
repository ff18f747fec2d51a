from __future__ import annotations

from datetime import timedelta

import pytest

from basekit.core.clock import SystemClock, now_in_local, today_in_local
from basekit.core.errors import ConfigurationError, NotFoundError


def test_system_clock_uses_named_zone():
    clock = SystemClock("America/Sao_Paulo")
    now = clock.now()
    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(hours=-3)
    assert clock.today() == now.date()


def test_default_zone_is_utc():
    assert SystemClock().now().utcoffset() == timedelta(0)


def test_module_helpers_agree():
    assert now_in_local("UTC").utcoffset() == timedelta(0)
    assert today_in_local("Asia/Tokyo") == now_in_local("Asia/Tokyo").date()


@pytest.mark.parametrize("name", ["Mars/Olympus", "../etc/passwd"])
def test_invalid_zone_is_a_configuration_error(name):
    with pytest.raises(ConfigurationError, match="Invalid timezone"):
        SystemClock(name)


def test_not_found_error_names_the_entity():
    err = NotFoundError("User")
    assert str(err) == "User not found"
    assert err.entity == "User"
