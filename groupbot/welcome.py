"""Welcome and farewell messages, and the arithmetic check for newcomers."""

from __future__ import annotations

import random
import re
import sqlite3
from typing import Optional

TABLES = ("welcome", "farewell")
"""The two kinds of message a group may set."""

AVATAR_URL = "http://q4.qlogo.cn/g?b=qq&nk={uid}&s=640"

_INTEGER = re.compile(r"[+-]?[0-9]+")

_CQ_UNESCAPES = (("&#91;", "["), ("&#93;", "]"), ("&#44;", ","), ("&amp;", "&"))


def _unescape_cq(text: str) -> str:
    for escaped, plain in _CQ_UNESCAPES:
        text = text.replace(escaped, plain)
    return text


def _check_table(table: str) -> None:
    if table not in TABLES:
        raise ValueError(f"unknown message table: {table!r}")


class WelcomeStore:
    """Per-group welcome and farewell templates kept in SQLite."""

    def __init__(self, path: str) -> None:
        self._db = sqlite3.connect(path, check_same_thread=False)
        with self._db:
            for table in TABLES:
                self._db.execute(
                    f"CREATE TABLE IF NOT EXISTS {table} (gid INTEGER PRIMARY KEY, msg TEXT)"
                )

    def __enter__(self) -> "WelcomeStore":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def set_message(self, table: str, group_id: int, message: str) -> None:
        """Store ``message`` for ``group_id``, undoing CQ-code escaping first.

        ``table`` is "welcome" or "farewell"; anything else raises ValueError.
        """
        _check_table(table)
        with self._db:
            self._db.execute(
                f"INSERT OR REPLACE INTO {table} (gid, msg) VALUES (?, ?)",
                (group_id, _unescape_cq(message)),
            )

    def get_message(self, table: str, group_id: int) -> Optional[str]:
        """Return the stored template for ``group_id``, or None if unset."""
        _check_table(table)
        row = self._db.execute(
            f"SELECT msg FROM {table} WHERE gid = ?", (group_id,)
        ).fetchone()
        return None if row is None else row[0]

    def close(self) -> None:
        self._db.close()


def welcome_to_cq(
    template: str, user_id: int, nickname: str, group_id: int, group_name: str
) -> str:
    """Fill a template's placeholders, producing CQ-code text.

    Placeholders: {at}, {nickname}, {avatar}, {uid}, {gid}, {groupname}.
    """
    uid = str(user_id)
    replacements = (
        ("{at}", f"[CQ:at,qq={uid}]"),
        ("{nickname}", nickname),
        ("{avatar}", "[CQ:image,file=" + AVATAR_URL.format(uid=uid) + "]"),
        ("{uid}", uid),
        ("{gid}", str(group_id)),
        ("{groupname}", group_name),
    )
    text = template
    for placeholder, value in replacements:
        text = text.replace(placeholder, value)
    return text


def farewell_text(nickname: str, user_id: int) -> str:
    """The default message when a member leaves."""
    return f"{nickname}({user_id})离开了我们..."


def verification_question(rng: Optional[random.Random] = None) -> tuple[int, int, int]:
    """Draw two addends below 100; return them and their sum."""
    chooser = rng if rng is not None else random
    first = chooser.randrange(100)
    second = chooser.randrange(100)
    return first, second, first + second


def check_answer(text: str, expected: int) -> Optional[bool]:
    """Judge a newcomer's reply.

    Spaces are ignored.  Returns None when the reply is not a number,
    otherwise whether it equals ``expected``.
    """
    compact = text.replace(" ", "")
    if not _INTEGER.fullmatch(compact):
        return None
    return int(compact) == expected