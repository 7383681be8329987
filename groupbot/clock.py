"""A clock that keeps, persists and fires group reminder timers."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any, Callable, Optional

from groupbot.schedule import is_due, next_wake_time
from groupbot.timer import Timer, timer_message

logger = logging.getLogger(__name__)

Sender = Callable[[int, int, list[dict[str, Any]]], Any]

_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}
_MONTH_NAMES = {
    name: number
    for number, name in enumerate("jan feb mar apr may jun jul aug sep oct nov dec".split(), 1)
}
_DAY_NAMES = {name: number for number, name in enumerate("sun mon tue wed thu fri sat".split())}


@dataclass(frozen=True)
class _CronSpec:
    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]
    day_star: bool
    weekday_star: bool


def _cron_value(text: str, names: dict[str, int]) -> int:
    lowered = text.lower()
    if lowered in names:
        return names[lowered]
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"failed to parse int from {text!r}") from None


def _parse_field(
    field: str, low: int, high: int, names: dict[str, int]
) -> tuple[frozenset[int], bool]:
    values: set[int] = set()
    starred = False
    for part in field.split(","):
        range_text, slash, step_text = part.partition("/")
        dash = ""
        if range_text in ("*", "?"):
            start, end, part_star = low, high, True
        else:
            low_text, dash, high_text = range_text.partition("-")
            start = _cron_value(low_text, names)
            end = _cron_value(high_text, names) if dash else start
            part_star = False
        step = 1
        if slash:
            step = _cron_value(step_text, {})
            if step <= 0:
                raise ValueError(f"step must be positive: {part!r}")
            if not dash and not part_star:
                end = high
            if step > 1:
                part_star = False
        if start < low or end > high or start > end:
            raise ValueError(f"value out of range ({low}-{high}): {part!r}")
        values.update(range(start, end + 1, step))
        starred = starred or part_star
    return frozenset(values), starred


@lru_cache(maxsize=256)
def _parse_cron(expression: str) -> _CronSpec:
    text = expression.strip()
    if text.startswith("@"):
        try:
            text = _DESCRIPTORS[text.lower()]
        except KeyError:
            raise ValueError(f"unrecognized descriptor: {expression}") from None
    fields = text.split()
    if len(fields) != 5:
        raise ValueError(f"expected exactly 5 fields, found {len(fields)}: {expression}")
    minutes, _ = _parse_field(fields[0], 0, 59, {})
    hours, _ = _parse_field(fields[1], 0, 23, {})
    days, day_star = _parse_field(fields[2], 1, 31, {})
    months, _ = _parse_field(fields[3], 1, 12, _MONTH_NAMES)
    weekdays, weekday_star = _parse_field(fields[4], 0, 6, _DAY_NAMES)
    return _CronSpec(minutes, hours, days, months, weekdays, day_star, weekday_star)


def cron_matches(expression: str, moment: datetime) -> bool:
    """Tell whether a five-field cron expression fires at ``moment``'s minute.

    Raises ValueError for an invalid expression.
    """
    spec = _parse_cron(expression)
    in_month = moment.day in spec.days
    in_week = (moment.weekday() + 1) % 7 in spec.weekdays
    if spec.day_star or spec.weekday_star:
        day_ok = in_month and in_week
    else:
        day_ok = in_month or in_week
    return (
        moment.minute in spec.minutes
        and moment.hour in spec.hours
        and moment.month in spec.months
        and day_ok
    )


class Clock:
    """Keeps timers in memory and in SQLite and fires them on time.

    ``sender`` is called as ``sender(self_id, group_id, segments)`` when a
    timer fires.
    """

    def __init__(self, db_path: str, sender: Sender) -> None:
        self._sender = sender
        self._db = sqlite3.connect(db_path, check_same_thread=False)
        self._db_lock = threading.Lock()
        self._lock = threading.RLock()
        self._timers: dict[int, Timer] = {}
        self._cron: dict[int, Timer] = {}
        self._stops: dict[int, threading.Event] = {}
        self._threads: list[threading.Thread] = []
        self._closed = threading.Event()
        with self._db_lock, self._db:
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS timer ("
                "id INTEGER PRIMARY KEY, emdwhm INTEGER, sid INTEGER, gid INTEGER, "
                "alert TEXT, cron TEXT, url TEXT)"
            )
        self._cron_thread = threading.Thread(target=self._run_cron, name="clock-cron", daemon=True)
        self._cron_thread.start()
        for timer in self._load():
            self.register_timer(timer, save=False)

    def __enter__(self) -> "Clock":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _load(self) -> list[Timer]:
        with self._db_lock:
            rows = self._db.execute(
                "SELECT id, emdwhm, sid, gid, alert, cron, url FROM timer"
            ).fetchall()
        return [
            Timer(id=row[0], packed=row[1], self_id=row[2], group_id=row[3],
                  alert=row[4], cron=row[5], url=row[6])
            for row in rows
        ]

    def register_timer(self, timer: Timer, save: bool) -> bool:
        """Register ``timer``, persisting it first when ``save`` is true.

        Returns False when a cron expression is invalid; the reason is then
        left in ``timer.alert``.
        """
        if save:
            timer.id = timer.timer_id()
        key = timer.id
        with self._lock:
            existing = self._timers.get(key)
            if existing is not None and existing is not timer:
                existing.enabled = False
                self._cron.pop(key, None)
                stop = self._stops.pop(key, None)
                if stop is not None:
                    stop.set()
        logger.info("[群管]注册计时器 %d", key)

        if timer.cron:
            try:
                _parse_cron(timer.cron)
            except ValueError as err:
                timer.alert = str(err)
                return False
            with self._lock:
                self._cron[key] = timer
            if save:
                self.add_timer_into_db(timer)
            self.add_timer_into_map(timer)
            return True

        if save:
            self.add_timer_into_db(timer)
        self.add_timer_into_map(timer)
        if timer.enabled and not self._closed.is_set():
            stop = threading.Event()
            with self._lock:
                self._stops[key] = stop
            thread = threading.Thread(
                target=self._run_timer, args=(timer, stop), name=f"clock-{key:08x}", daemon=True
            )
            self._threads.append(thread)
            thread.start()
        return True

    def _send(self, timer: Timer) -> None:
        try:
            self._sender(timer.self_id, timer.group_id, timer_message(timer))
        except Exception:
            logger.exception("[群管]failed to send timer %08x", timer.id)

    def _run_timer(self, timer: Timer, stop: threading.Event) -> None:
        while timer.enabled and not stop.is_set():
            now = datetime.now()
            wake = next_wake_time(timer, now)
            wait = max(0.0, (wake - now).total_seconds())
            logger.info("[群管]计时器%08x将睡眠%ds", timer.id, int(wait))
            if stop.wait(wait):
                return
            if timer.enabled and is_due(timer, datetime.now()):
                self._send(timer)

    def _run_cron(self) -> None:
        last = datetime.now().replace(second=0, microsecond=0)
        while True:
            now = datetime.now()
            target = max(now.replace(second=0, microsecond=0), last) + timedelta(minutes=1)
            if self._closed.wait(max(0.0, (target - now).total_seconds())):
                return
            last = target
            with self._lock:
                entries = list(self._cron.values())
            for timer in entries:
                try:
                    due = cron_matches(timer.cron, target)
                except ValueError:
                    continue
                if due:
                    self._send(timer)

    def cancel_timer(self, key: int) -> bool:
        """Stop and forget the timer with id ``key``; False if there is none."""
        with self._lock:
            timer = self._timers.pop(key, None)
            if timer is None:
                return False
            if timer.cron:
                self._cron.pop(key, None)
            else:
                timer.enabled = False
                stop = self._stops.pop(key, None)
                if stop is not None:
                    stop.set()
        with self._db_lock, self._db:
            self._db.execute("DELETE FROM timer WHERE id = ?", (key,))
        return True

    def list_timers(self, group_id: int) -> list[str]:
        """Describe every timer of ``group_id`` in human-readable form."""
        with self._lock:
            timers = list(self._timers.values())
        descriptions = []
        for timer in timers:
            if timer.group_id != group_id:
                continue
            info = timer.timer_info()
            text = info[info.index("]") + 1:] + "\n"
            text = text.replace("-1", "每")
            text = text.replace("月0日0周", "月周天")
            text = text.replace("月0日", "月")
            text = text.replace("日0周", "日")
            descriptions.append(text)
        return descriptions

    def get_timer(self, key: int) -> Optional[Timer]:
        """Return the registered timer with id ``key``, or None."""
        with self._lock:
            return self._timers.get(key)

    def add_timer_into_db(self, timer: Timer) -> None:
        """Store ``timer``, replacing any row with the same id."""
        with self._db_lock, self._db:
            self._db.execute(
                "INSERT OR REPLACE INTO timer (id, emdwhm, sid, gid, alert, cron, url) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (timer.id, timer.packed, timer.self_id, timer.group_id,
                 timer.alert, timer.cron, timer.url),
            )

    def add_timer_into_map(self, timer: Timer) -> None:
        """Keep ``timer`` in memory under its id."""
        with self._lock:
            self._timers[timer.id] = timer

    def close(self) -> None:
        """Stop all timers and close the database."""
        if self._closed.is_set():
            return
        self._closed.set()
        with self._lock:
            stops = list(self._stops.values())
            self._stops.clear()
        for stop in stops:
            stop.set()
        for thread in [self._cron_thread, *self._threads]:
            thread.join(timeout=2)
        with self._db_lock:
            self._db.close()