from datetime import datetime

import pytest

from groupbot.clock import Clock, cron_matches
from groupbot.timer import Timer, filled_cron_timer, filled_timer


@pytest.fixture
def sent():
    return []


@pytest.fixture
def sender(sent):
    def _send(self_id, group_id, segments):
        sent.append((self_id, group_id, segments))

    return _send


def test_clock_source_case(tmp_path, sender):
    db = str(tmp_path / "test.db")
    with Clock(db, sender) as clock:
        clock.add_timer_into_db(filled_timer(["", "12", "-1", "12", "0", "", "test"], 0, 0, False))
        assert clock.list_timers(0) == []
    with Clock(db, sender) as reopened:
        assert reopened.list_timers(0) == ["12月1周12:0\n"]
        loaded = reopened.get_timer(0)
        assert loaded.alert == "test"
        assert loaded.enabled is True


def test_register_cron_timer_persists(tmp_path, sender):
    db = str(tmp_path / "c.db")
    timer = filled_cron_timer("0 8 * * *", "morning", "", 1, 77)
    with Clock(db, sender) as clock:
        assert clock.register_timer(timer, True) is True
        assert timer.id == timer.timer_id()
        assert clock.get_timer(timer.id) is timer
        assert clock.list_timers(77) == ["0 8 * * *\n"]
        assert clock.list_timers(78) == []
    with Clock(db, sender) as reopened:
        assert reopened.list_timers(77) == ["0 8 * * *\n"]
        assert reopened.get_timer(timer.id).alert == "morning"


def test_register_invalid_cron(tmp_path, sender):
    timer = filled_cron_timer("not a cron", "x", "", 0, 1)
    with Clock(str(tmp_path / "i.db"), sender) as clock:
        assert clock.register_timer(timer, True) is False
        assert timer.alert != "x"
        assert clock.get_timer(timer.id) is None


def test_cancel_timer(tmp_path, sender):
    timer = filled_timer(["", "每", "每周", "8", "0", "", "hi"], 0, 5, False)
    with Clock(str(tmp_path / "k.db"), sender) as clock:
        assert clock.register_timer(timer, True) is True
        key = timer.id
        assert clock.get_timer(key) is timer
        assert clock.cancel_timer(key) is True
        assert timer.enabled is False
        assert clock.get_timer(key) is None
        assert clock.cancel_timer(key) is False


def test_cancel_is_persisted(tmp_path, sender):
    db = str(tmp_path / "p.db")
    timer = filled_cron_timer("@hourly", "tick", "", 0, 2)
    with Clock(db, sender) as clock:
        clock.register_timer(timer, True)
        clock.cancel_timer(timer.id)
    with Clock(db, sender) as reopened:
        assert reopened.list_timers(2) == []


def test_reregister_disables_previous(tmp_path, sender):
    first = filled_timer(["", "每", "每周", "8", "0", "", "a"], 0, 5, False)
    second = filled_timer(["", "每", "每周", "8", "0", "", "b"], 0, 5, False)
    with Clock(str(tmp_path / "r.db"), sender) as clock:
        clock.register_timer(first, True)
        clock.register_timer(second, True)
        assert first.id == second.id
        assert first.enabled is False
        assert clock.get_timer(second.id) is second


def test_add_timer_into_map(tmp_path, sender):
    timer = Timer(id=99, group_id=3, cron="*/5 * * * *")
    with Clock(str(tmp_path / "m.db"), sender) as clock:
        clock.add_timer_into_map(timer)
        assert clock.get_timer(99) is timer
        assert clock.list_timers(3) == ["*/5 * * * *\n"]


def test_cron_matches_basic():
    assert cron_matches("0 8 * * *", datetime(2022, 11, 2, 8, 0)) is True
    assert cron_matches("0 8 * * *", datetime(2022, 11, 2, 8, 1)) is False
    assert cron_matches("*/15 * * * *", datetime(2022, 11, 2, 8, 30)) is True
    assert cron_matches("*/15 * * * *", datetime(2022, 11, 2, 8, 31)) is False
    assert cron_matches("@hourly", datetime(2022, 11, 2, 13, 0)) is True


def test_cron_day_fields_or_when_both_restricted():
    monday = datetime(2022, 11, 7, 0, 0)
    assert cron_matches("0 0 1 * 1", monday) is True
    assert cron_matches("0 0 1 * *", monday) is False
    assert cron_matches("0 0 * * mon", monday) is True


@pytest.mark.parametrize("expression", ["61 * * * *", "* * *", "@often", "*/0 * * * *"])
def test_cron_invalid(expression):
    with pytest.raises(ValueError):
        cron_matches(expression, datetime(2022, 11, 2))