"""Small pieces of group moderation logic: mute lengths, flags, roll call."""

from __future__ import annotations

import random
from typing import Any, Mapping, Optional, Sequence

MAX_MUTE_MINUTES = 43199
"""The longest mute the chat service accepts, just under thirty days."""

_MINUTE_UNITS = frozenset({"分钟", "min", "mins", "m"})
_HOUR_UNITS = frozenset({"小时", "hour", "hours", "h"})
_DAY_UNITS = frozenset({"天", "day", "days", "d"})

_ENABLE_WORDS = frozenset({"开启", "打开", "启用"})
_DISABLE_WORDS = frozenset({"关闭", "关掉", "禁用"})

_DATA_MASK = 0x7FFF_FFFF_FFFF_FFFF

_LUCKY_POOL = 10


def mute_minutes(amount: int, unit: str) -> int:
    """Convert ``amount`` of ``unit`` to minutes, capped at the service limit.

    Unknown units are taken as minutes.
    """
    minutes = int(amount)
    if unit in _HOUR_UNITS:
        minutes *= 60
    elif unit in _DAY_UNITS:
        minutes *= 60 * 24
    if minutes >= MAX_MUTE_MINUTES + 1:
        minutes = MAX_MUTE_MINUTES
    return minutes


def unescape_brackets(text: str) -> str:
    """Undo the escaping of square brackets in forwarded CQ code."""
    return text.replace("&#91;", "[").replace("&#93;", "]")


def toggle_flag(data: int, option: str, flag: int) -> int:
    """Set or clear ``flag`` in a plugin's per-group data word.

    ``option`` is one of the enabling words (开启, 打开, 启用) or the
    disabling ones (关闭, 关掉, 禁用); anything else raises ValueError.
    """
    if option in _ENABLE_WORDS:
        return data | flag
    if option in _DISABLE_WORDS:
        return data & (_DATA_MASK ^ flag)
    raise ValueError(f"unknown option: {option!r}")


def pick_lucky(
    members: Sequence[Mapping[str, Any]], rng: Optional[random.Random] = None
) -> Mapping[str, Any]:
    """Pick one of the ten members who spoke most recently.

    Members are mappings with at least ``last_sent_time``; raises
    ValueError when there is nobody to pick.
    """
    if not members:
        raise ValueError("no members to pick from")
    ordered = sorted(members, key=lambda member: int(member.get("last_sent_time", 0)))
    recent = ordered[-_LUCKY_POOL:]
    chooser = rng if rng is not None else random
    return chooser.choice(recent)