"""The group marriage registry: daily couples, favorability and skill cooldowns."""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

DEFAULT_CD_HOURS = 12.0
MAX_FAVOR = 100
MIN_FAVOR = 0
NAME_WIDTH = 350
ELLIPSIS = "......"

FREE_LOVE = "自由恋爱"
NTR = "牛头人"

_DATE_FORMAT = "%Y/%m/%d"
_TIME_FORMAT = "%H:%M:%S"


class Status(Enum):
    """A member's standing in today's roster."""

    SINGLE = "单"
    HUSBAND = "攻"
    WIFE = "受"


@dataclass(frozen=True)
class Couple:
    """One entry of a group's roster: ``user`` took ``target``."""

    user: int
    target: int
    username: str
    targetname: str
    updatetime: str


def _group_table(group_id: int) -> str:
    return f'"group{int(group_id)}"'


class MarriageRegistry:
    """All marriage data of every group, kept in one SQLite file.

    ``now`` is the callable used to read the current time.
    """

    def __init__(self, path: str) -> None:
        self.now: Callable[[], datetime] = datetime.now
        self._lock = threading.RLock()
        self._db = sqlite3.connect(path, check_same_thread=False)
        with self._db:
            self._create_shared_tables()

    def __enter__(self) -> "MarriageRegistry":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _create_shared_tables(self) -> None:
        self._db.execute(
            "CREATE TABLE IF NOT EXISTS updateinfo ("
            "gid INTEGER PRIMARY KEY, updatetime TEXT, canmatch INTEGER, "
            "canntr INTEGER, cdtime REAL)"
        )
        self._db.execute(
            "CREATE TABLE IF NOT EXISTS favorability ("
            "user_a INTEGER, user_b INTEGER, favor INTEGER, PRIMARY KEY (user_a, user_b))"
        )
        self._db.execute(
            "CREATE TABLE IF NOT EXISTS cdsheet ("
            "gid INTEGER, uid INTEGER, mode INTEGER, time INTEGER, "
            "PRIMARY KEY (gid, uid, mode))"
        )

    def _create_group(self, group_id: int) -> str:
        table = _group_table(group_id)
        self._db.execute(
            f"CREATE TABLE IF NOT EXISTS {table} ("
            "user INTEGER PRIMARY KEY, target INTEGER, username TEXT, "
            "targetname TEXT, updatetime TEXT)"
        )
        return table

    def _info(self, group_id: int) -> Optional[tuple[str, int, int, float]]:
        return self._db.execute(
            "SELECT updatetime, canmatch, canntr, cdtime FROM updateinfo WHERE gid = ?",
            (group_id,),
        ).fetchone()

    def _write_info(
        self, group_id: int, updatetime: str, can_match: bool, can_ntr: bool, cd_hours: float
    ) -> None:
        self._db.execute(
            "INSERT OR REPLACE INTO updateinfo (gid, updatetime, canmatch, canntr, cdtime) "
            "VALUES (?, ?, ?, ?, ?)",
            (group_id, updatetime, int(can_match), int(can_ntr), float(cd_hours)),
        )

    def _today(self) -> str:
        return self.now().strftime(_DATE_FORMAT)

    def open_for_day(self, group_id: int) -> bool:
        """Start a new day for the group if needed.

        Returns True when the roster is fresh (first use or a new day, in
        which case yesterday's couples are dropped), False otherwise.
        """
        with self._lock, self._db:
            self._create_shared_tables()
            today = self._today()
            info = self._info(group_id)
            if info is None:
                self._write_info(group_id, today, True, True, DEFAULT_CD_HOURS)
                return True
            updatetime, can_match, can_ntr, cd_hours = info
            if updatetime == today:
                return False
            self._db.execute(f"DROP TABLE IF EXISTS {_group_table(group_id)}")
            self._create_group(group_id)
            self._write_info(group_id, today, bool(can_match), bool(can_ntr), cd_hours)
            return True

    def modes(self, group_id: int) -> tuple[bool, bool]:
        """Return whether free love and NTR are allowed in the group."""
        with self._lock, self._db:
            self._create_shared_tables()
            info = self._info(group_id)
            if info is None:
                self._write_info(group_id, "", True, True, DEFAULT_CD_HOURS)
                return True, True
            return bool(info[1]), bool(info[2])

    def set_mode(self, group_id: int, mode: str, status: bool) -> None:
        """Allow or forbid ``mode`` ("自由恋爱" or "牛头人") in the group."""
        if mode not in (FREE_LOVE, NTR):
            raise ValueError("错误:修改内容不匹配！")
        with self._lock, self._db:
            self._create_shared_tables()
            info = self._info(group_id)
            if info is None:
                updatetime, can_match, can_ntr, cd_hours = "", True, True, DEFAULT_CD_HOURS
            else:
                updatetime, can_match, can_ntr, cd_hours = info
            if mode == FREE_LOVE:
                can_match = status
            else:
                can_ntr = status
            self._write_info(group_id, updatetime, bool(can_match), bool(can_ntr), cd_hours)

    def reset_rosters(self, group_id: int) -> None:
        """Clear one group's roster, or, for group 0, every group's data.

        Favorability is always kept.
        """
        with self._lock, self._db:
            if group_id == 0:
                tables = [
                    row[0]
                    for row in self._db.execute(
                        "SELECT name FROM sqlite_master WHERE type = 'table'"
                    ).fetchall()
                ]
                for table in tables:
                    if table != "favorability":
                        escaped = table.replace('"', '""')
                        self._db.execute(f'DROP TABLE IF EXISTS "{escaped}"')
                self._create_shared_tables()
                return
            self._create_shared_tables()
            self._db.execute(f"DROP TABLE IF EXISTS {_group_table(group_id)}")
            self._write_info(group_id, self._today(), True, True, DEFAULT_CD_HOURS)

    def lookup(self, group_id: int, user_id: int) -> tuple[Optional[Couple], Status]:
        """Find the couple ``user_id`` belongs to and the part they play."""
        with self._lock, self._db:
            table = self._create_group(group_id)
            columns = "user, target, username, targetname, updatetime"
            row = self._db.execute(
                f"SELECT {columns} FROM {table} WHERE user = ?", (user_id,)
            ).fetchone()
            if row is not None:
                return Couple(*row), Status.HUSBAND
            row = self._db.execute(
                f"SELECT {columns} FROM {table} WHERE target = ?", (user_id,)
            ).fetchone()
            if row is not None:
                return Couple(*row), Status.WIFE
            return None, Status.SINGLE

    def register(
        self, group_id: int, user_id: int, target: int, username: str, targetname: str
    ) -> Couple:
        """Record that ``user_id`` married ``target`` today; target 0 means alone."""
        couple = Couple(user_id, target, username, targetname, self.now().strftime(_TIME_FORMAT))
        with self._lock, self._db:
            table = self._create_group(group_id)
            self._db.execute(
                f"INSERT OR REPLACE INTO {table} "
                "(user, target, username, targetname, updatetime) VALUES (?, ?, ?, ?, ?)",
                (couple.user, couple.target, couple.username, couple.targetname, couple.updatetime),
            )
        return couple

    def divorce_wife(self, group_id: int, wife: int) -> None:
        """Dissolve the marriage in which ``wife`` was taken."""
        with self._lock, self._db:
            table = self._create_group(group_id)
            self._db.execute(f"DELETE FROM {table} WHERE target = ?", (wife,))

    def divorce_husband(self, group_id: int, husband: int) -> None:
        """Dissolve the marriage ``husband`` made."""
        with self._lock, self._db:
            table = self._create_group(group_id)
            self._db.execute(f"DELETE FROM {table} WHERE user = ?", (husband,))

    def roster(self, group_id: int) -> list[tuple[str, str, str, str]]:
        """List today's couples as (username, user, targetname, target).

        Members who stayed alone are left out.
        """
        with self._lock, self._db:
            table = self._create_group(group_id)
            rows = self._db.execute(
                f"SELECT username, user, targetname, target FROM {table} "
                "WHERE target != 0 ORDER BY user"
            ).fetchall()
        return [(name, str(user), tname, str(target)) for name, user, tname, target in rows]

    @staticmethod
    def _pair(user_id: int, target: int) -> tuple[int, int]:
        return (user_id, target) if user_id <= target else (target, user_id)

    def favorability(self, user_id: int, target: int) -> int:
        """Return the favorability between two members, creating it at 0."""
        pair = self._pair(user_id, target)
        with self._lock, self._db:
            self._create_shared_tables()
            row = self._db.execute(
                "SELECT favor FROM favorability WHERE user_a = ? AND user_b = ?", pair
            ).fetchone()
            if row is None:
                self._db.execute(
                    "INSERT INTO favorability (user_a, user_b, favor) VALUES (?, ?, 0)", pair
                )
                return 0
            return row[0]

    def add_favorability(self, user_id: int, target: int, score: int) -> int:
        """Change the favorability by ``score`` and return the new value.

        An existing value is kept within 0..100; a new pair starts at ``score``.
        """
        pair = self._pair(user_id, target)
        with self._lock, self._db:
            self._create_shared_tables()
            row = self._db.execute(
                "SELECT favor FROM favorability WHERE user_a = ? AND user_b = ?", pair
            ).fetchone()
            favor = score if row is None else min(MAX_FAVOR, max(MIN_FAVOR, row[0] + score))
            self._db.execute(
                "INSERT OR REPLACE INTO favorability (user_a, user_b, favor) VALUES (?, ?, ?)",
                (*pair, favor),
            )
            return favor

    def cd_hours(self, group_id: int) -> float:
        """Return the group's skill cooldown in hours (12 by default)."""
        with self._lock, self._db:
            self._create_shared_tables()
            info = self._info(group_id)
            if info is None:
                self._write_info(group_id, "", True, True, DEFAULT_CD_HOURS)
                return DEFAULT_CD_HOURS
            return float(info[3])

    def set_cd_hours(self, group_id: int, hours: float) -> None:
        """Set the group's skill cooldown in hours."""
        with self._lock, self._db:
            self._create_shared_tables()
            info = self._info(group_id)
            if info is None:
                self._write_info(group_id, "", True, True, hours)
            else:
                self._write_info(group_id, info[0], bool(info[1]), bool(info[2]), hours)

    def write_cd(self, group_id: int, user_id: int, mode: int) -> None:
        """Record that ``user_id`` used skill ``mode`` now."""
        stamp = int(self.now().timestamp())
        with self._lock, self._db:
            self._create_shared_tables()
            self._db.execute(
                "INSERT OR REPLACE INTO cdsheet (gid, uid, mode, time) VALUES (?, ?, ?, ?)",
                (group_id, user_id, mode, stamp),
            )

    def cd_expired(self, group_id: int, user_id: int, mode: int, hours: float) -> bool:
        """Tell whether ``user_id`` may use skill ``mode`` again.

        An expired record is removed.
        """
        key = (group_id, user_id, mode)
        with self._lock, self._db:
            self._create_shared_tables()
            row = self._db.execute(
                "SELECT time FROM cdsheet WHERE gid = ? AND uid = ? AND mode = ?", key
            ).fetchone()
            if row is None:
                return True
            elapsed = (self.now().timestamp() - row[0]) / 3600
            if elapsed > hours:
                self._db.execute(
                    "DELETE FROM cdsheet WHERE gid = ? AND uid = ? AND mode = ?", key
                )
                return True
            return False

    def close(self) -> None:
        self._db.close()


def truncate_name(name: str, measure: Callable[[str], float]) -> str:
    """Shorten ``name`` to fit 350 width units, as measured per character."""
    total = 0
    last_fit = 0
    for index, char in enumerate(name):
        total += int(measure(char))
        if total > NAME_WIDTH:
            break
        last_fit = index
    if total > NAME_WIDTH:
        return name[: max(0, last_fit - 1)] + ELLIPSIS
    return name