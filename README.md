# groupbot

Building blocks for a group chat bot. The package holds the logic only. You
connect it to your chat protocol yourself, for example by giving `Clock` a
callable that sends messages.

## Installation

```
pip install groupbot
pip install "groupbot[test]"   # with pytest, for running the test suite
```

`groupbot.midi.render_wav` runs the external `timidity` program. If you want WAV
output, `timidity` must be on `PATH`.

## Modules

- `groupbot.timer`: the `Timer` dataclass packs an enabled flag, month, day,
  weekday, hour and minute into one integer (`packed`). It exposes each field as
  a property, where -1 means "every". It also provides:
  - `timer_info()` and `timer_id()`, which give a normalised description and a
    stable 32-bit id;
  - `filled_timer`, which builds a timer from the groups matched by a command
    such as 在12月每周的16点30分时提醒大家…;
  - `filled_cron_timer`, which builds a timer driven by a cron expression;
  - `chinese_num_to_int` and `chinese_char_to_int`, which read Chinese numerals;
  - `timer_message`, which builds the @all message segments.
- `groupbot.schedule`: `next_wake_time(timer, now)` gives the next moment a date
  timer should be checked. `is_due(timer, now)` tells whether the timer fires at
  that moment. `first_weekday(date, weekday)` is a calendar helper, with Sunday
  as 0.
- `groupbot.clock`: `Clock(db_path, sender)` keeps timers in memory and in
  SQLite, and runs them on background threads. When a timer fires, it calls
  `sender(self_id, group_id, segments)`. It has:
  - `register_timer(timer, save)`, `cancel_timer(key)`, `list_timers(group_id)`
    and `get_timer(key)`;
  - `add_timer_into_db` and `add_timer_into_map`;
  - `close()`. It can also be used as a context manager.

  `cron_matches(expression, moment)` checks a five-field cron expression, or an
  `@daily`-style descriptor, against a moment.
- `groupbot.moderation`: `mute_minutes` works out mute durations, capped at
  43199 minutes. `unescape_brackets` undoes bracket escaping in CQ code.
  `toggle_flag` sets or clears a bit in per-group data. `pick_lucky` draws one of
  the ten most recent speakers at random.
- `groupbot.welcome`: `WelcomeStore(path)` keeps per-group `"welcome"` and
  `"farewell"` templates in SQLite. It also provides:
  - `welcome_to_cq`, which expands `{at}`, `{nickname}`, `{avatar}`, `{uid}`,
    `{gid}` and `{groupname}`;
  - `farewell_text`;
  - `verification_question` and `check_answer`, for the arithmetic entry check.
- `groupbot.moyu`: `Holiday` countdowns. `parse_holiday` builds a holiday from a
  record such as `"7_2023_1_21"` (days, year, month, day). It also provides:
  - `weekend_message`;
  - `daily_message`, which composes the whole daily reminder;
  - `HOLIDAY_NAMES`, the list of holidays.
- `groupbot.textutil`: `cut_too_long` trims program output that has more than 30
  lines or more than 1000 characters. `judge` and `auto_judge` describe
  `NsfwScores` classifier results.
- `groupbot.midi`: turns note strings such as `CCGGAAGR FFEEDDCR` into MIDI with
  `make_midi` and `write_midi`. `midi_to_text` turns a MIDI track back into text.
  It also provides:
  - `process_one`, `note_name` and `octave`, the note helpers;
  - `score_for`, which scores ear training in `PERSONAL` or `TEAM` mode;
  - `check_timbre`;
  - `render_wav`.
- `groupbot.marriage`: `MarriageRegistry(path)` is a SQLite-backed daily pairing
  game. It covers:
  - the roster: `open_for_day`, `lookup`, `register`, `divorce_wife`,
    `divorce_husband`, `roster` and `reset_rosters`;
  - per-group modes: `modes` and `set_mode`;
  - favorability: `favorability` and `add_favorability`;
  - skill cooldowns: `cd_hours`, `set_cd_hours`, `write_cd` and `cd_expired`.

  It uses the `Status` and `Couple` types. Its `now` attribute can be replaced to
  control the clock. `truncate_name` shortens a name to a given measured width.
- `groupbot.matchmaking`: the precondition checks `check_single`,
  `check_mistress`, `check_divorce` and `check_matchmaking`. Each one returns
  True or raises `Refusal` with a user-facing message.
- `groupbot.moegoe`: `speaker_id` and `moegoe_url` build the voice synthesis
  links for Japanese, Korean and Chinese speakers.

## Example

```python
from datetime import datetime
from groupbot.timer import filled_timer
from groupbot.schedule import next_wake_time

timer = filled_timer(["", "12", "每周", "16", "30", "", "开会啦"], 0, 1234, False)
print(timer.timer_info())
print(next_wake_time(timer, datetime.now()))
```

```python
from groupbot.midi import write_midi

write_midi("twinkle.mid", "CCGGAAGR FFEEDDCR", 40)
```

## What it does not do

- It has no command-line program and no bot runtime. It does not connect to a
  chat service, receive events or match commands.
- It makes no network requests. Holiday records for `groupbot.moyu` and image
  scores for `groupbot.textutil` must be fetched by the caller. `moegoe_url`
  only builds a link.
- It does not approve join requests automatically, and it has no
  weighted-random "reborn" game.