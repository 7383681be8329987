"""Group reminder timers whose date fields are packed into one integer."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Sequence

logger = logging.getLogger(__name__)

_FIELD_BITS = 0xFFFFFF
_ENABLED = 0x800000
_MONTH = (0x780000, 19, 4)
_DAY = (0x07C000, 14, 5)
_WEEK = (0x003800, 11, 3)
_HOUR = (0x0007C0, 6, 5)
_MINUTE = (0x00003F, 0, 6)

_CHINESE_DIGITS = "零一二三四五六七八九十"


@dataclass
class Timer:
    """A reminder for one group.

    ``packed`` holds, from the high bit down: enabled (1), month (4),
    day (5), weekday (3, Sunday is 0), hour (5) and minute (6).  A field
    whose bits are all set reads as -1, meaning "every".
    """

    id: int = 0
    packed: int = 0
    self_id: int = 0
    group_id: int = 0
    alert: str = ""
    cron: str = ""
    url: str = ""

    def _get(self, field: tuple[int, int, int]) -> int:
        mask, shift, width = field
        value = (self.packed & mask) >> shift
        return -1 if value == (1 << width) - 1 else value

    def _set(self, field: tuple[int, int, int], value: int) -> None:
        mask, shift, _ = field
        self.packed = ((value << shift) & mask) | (self.packed & (_FIELD_BITS ^ mask))

    @property
    def enabled(self) -> bool:
        return self.packed & _ENABLED != 0

    @enabled.setter
    def enabled(self, value: bool) -> None:
        if value:
            self.packed |= _ENABLED
        else:
            self.packed &= _FIELD_BITS ^ _ENABLED

    @property
    def month(self) -> int:
        return self._get(_MONTH)

    @month.setter
    def month(self, value: int) -> None:
        self._set(_MONTH, value)

    @property
    def day(self) -> int:
        return self._get(_DAY)

    @day.setter
    def day(self, value: int) -> None:
        self._set(_DAY, value)

    @property
    def week(self) -> int:
        return self._get(_WEEK)

    @week.setter
    def week(self, value: int) -> None:
        self._set(_WEEK, value)

    @property
    def hour(self) -> int:
        return self._get(_HOUR)

    @hour.setter
    def hour(self, value: int) -> None:
        self._set(_HOUR, value)

    @property
    def minute(self) -> int:
        return self._get(_MINUTE)

    @minute.setter
    def minute(self, value: int) -> None:
        self._set(_MINUTE, value)

    def timer_info(self) -> str:
        """Return the normalised description used to identify the timer."""
        if self.cron:
            return f"[{self.group_id}]{self.cron}"
        return (
            f"[{self.group_id}]{self.month}月{self.day}日{self.week}周"
            f"{self.hour}:{self.minute}"
        )

    def timer_id(self) -> int:
        """Return a stable 32-bit id derived from :meth:`timer_info`."""
        digest = hashlib.md5(self.timer_info().encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "little")


def timer_message(timer: Timer) -> list[dict[str, Any]]:
    """Build the message segments sent when ``timer`` fires."""
    segments: list[dict[str, Any]] = [
        {"type": "at", "data": {"qq": "all"}},
        {"type": "text", "data": {"text": timer.alert}},
    ]
    if timer.url:
        segments.append({"type": "image", "data": {"file": timer.url, "cache": "0"}})
    return segments


def filled_cron_timer(cron: str, alert: str, url: str, self_id: int, group_id: int) -> Timer:
    """Create a timer driven by a cron expression."""
    return Timer(self_id=self_id, group_id=group_id, alert=alert, cron=cron, url=url)


def _day_is_invalid(day: int) -> bool:
    return (day != -1 and day <= 0) or day > 31


def filled_timer(
    date_strs: Sequence[str], self_id: int, group_id: int, match_date_only: bool
) -> Timer:
    """Create a timer from the groups matched by a reminder command.

    ``date_strs`` holds the whole match followed by month, day-or-week,
    hour, minute and, unless ``match_date_only``, the "用url" part and
    the alert text.  An invalid field leaves its reason in ``alert`` and
    the timer disabled.
    """
    month_text, day_week, hour_text, minute_text = date_strs[1:5]
    timer = Timer()

    month = chinese_num_to_int(month_text)
    if (month != -1 and month <= 0) or month > 12:
        timer.alert = "月份非法！"
        return timer
    timer.month = month

    if len(day_week) == 4:
        day = chinese_num_to_int(day_week[0] + day_week[2])
        if _day_is_invalid(day):
            timer.alert = "日期非法1！"
            return timer
        timer.day = day
    elif day_week.endswith("日"):
        day = chinese_num_to_int(day_week[:-1])
        if _day_is_invalid(day):
            timer.alert = "日期非法2！"
            return timer
        timer.day = day
    elif day_week.startswith("每"):
        timer.week = -1
    else:
        week = chinese_num_to_int(day_week[1:])
        if week == 7:
            week = 0
        if not 0 <= week <= 6:
            timer.alert = "星期非法！"
            return timer
        timer.week = week

    if len(hour_text) == 3:
        hour_text = hour_text[0] + hour_text[2]
    hour = chinese_num_to_int(hour_text)
    if hour < -1 or hour > 23:
        timer.alert = "小时非法！"
        return timer
    timer.hour = hour

    if len(minute_text) == 3:
        minute_text = minute_text[0] + minute_text[2]
    minute = chinese_num_to_int(minute_text)
    if minute < -1 or minute > 59:
        timer.alert = "分钟非法！"
        return timer
    timer.minute = minute

    if not match_date_only:
        url_text = date_strs[5]
        if url_text:
            timer.url = url_text[1:]
            logger.debug("[群管]%s", timer.url)
            if not timer.url.startswith("http"):
                timer.url = "illegal"
                logger.debug("[群管]url非法！")
                return timer
        timer.alert = date_strs[6]
        timer.enabled = True

    timer.self_id = self_id
    timer.group_id = group_id
    return timer


def chinese_num_to_int(text: str) -> int:
    """Convert a one- or two-character number (digits or hanzi) to int.

    "每" alone means -1 and "每" followed by a numeral means its negative.
    """
    if not text:
        raise ValueError("empty number")
    first = text[0]
    if first.isdigit():
        return int(text) if text.isascii() and text.isdigit() else 0
    if first == "每":
        return -chinese_char_to_int(text[1]) if len(text) == 2 else -1
    if len(text) == 1:
        return chinese_char_to_int(first)
    ten = chinese_char_to_int(first)
    if ten != 10:
        ten *= 10
    unit = chinese_char_to_int(text[1])
    if unit == 10:
        unit = 0
    return ten + unit


def chinese_char_to_int(char: str) -> int:
    """Map one hanzi numeral to 0..10; "日" and "天" mean Sunday (7)."""
    if char in ("日", "天"):
        return 7
    index = _CHINESE_DIGITS.find(char)
    return index if index >= 0 else 0