from datetime import datetime, timedelta

import pytest

from groupbot.moyu import (
    CLOSING,
    HOLIDAY_NAMES,
    Holiday,
    daily_message,
    parse_holiday,
    weekend_message,
)

RECORDS = {
    "元旦": "1_2023_1_1",
    "春节": "7_2023_1_21",
    "清明节": "1_2023_4_5",
    "劳动节": "1_2023_5_1",
    "端午节": "1_2023_6_22",
    "中秋节": "1_2023_9_29",
    "国庆节": "7_2023_10_1",
}


def test_parse_new_year():
    holiday = parse_holiday("元旦", "1_2023_1_1")
    assert holiday == Holiday("元旦", datetime(2023, 1, 1), timedelta(days=1))


def test_parse_spring_festival():
    holiday = parse_holiday("春节", "7_2023_1_21")
    assert holiday.date == datetime(2023, 1, 21)
    assert holiday.duration == timedelta(days=7)


@pytest.mark.parametrize("value", ["", "1_2023_1", "a_b_c_d", "1_2023_13_1"])
def test_parse_rejects_bad_records(value):
    with pytest.raises(ValueError):
        parse_holiday("元旦", value)


def test_describe_before():
    holiday = parse_holiday("元旦", "1_2023_1_1")
    assert holiday.describe(datetime(2022, 12, 30)) == "距离元旦还有: 2.00天！"


def test_describe_during():
    holiday = parse_holiday("春节", "7_2023_1_21")
    assert holiday.describe(datetime(2023, 1, 25, 12)) == "好好享受 春节 假期吧!"


def test_describe_after():
    holiday = parse_holiday("元旦", "1_2023_1_1")
    assert holiday.describe(datetime(2023, 1, 3)) == "今年 元旦 假期已过"


@pytest.mark.parametrize("day", [datetime(2023, 1, 7), datetime(2023, 1, 8)])
def test_weekend(day):
    assert weekend_message(day) == "好好享受周末吧！"


def test_weekday_countdown():
    assert weekend_message(datetime(2023, 1, 2)) == "距离周末还有:4天！"
    assert weekend_message(datetime(2023, 1, 6)) == "距离周末还有:0天！"


def test_daily_message_layout():
    now = datetime(2023, 1, 2, 10)
    holidays = [parse_holiday(name, RECORDS[name]) for name in HOLIDAY_NAMES]
    text = daily_message(holidays, now)
    assert text.startswith("2023-01-02上午好，摸鱼人！")
    assert text.endswith("\n" + CLOSING)
    assert weekend_message(now) + "\n" + holidays[0].describe(now) + "\n" in text
    for holiday in holidays:
        assert holiday.describe(now) in text


def test_daily_message_order_follows_input():
    now = datetime(2023, 3, 1)
    holidays = [parse_holiday(name, RECORDS[name]) for name in HOLIDAY_NAMES]
    text = daily_message(holidays, now)
    positions = [text.index(h.describe(now)) for h in holidays]
    assert positions == sorted(positions)