"""Writing simple melodies as MIDI, reading them back as text, ear training.

A melody is a string of notes such as ``"CCGGAAGR FFEEDDCR"``.  Each note is
a letter A-G, optionally followed by ``b`` or ``#``, an octave number
(default 5) and ``<n`` for a length of 2**n quarter notes.  ``R`` is a rest
and takes the same ``<n`` suffix.  Spaces are ignored.
"""

from __future__ import annotations

import io
import math
import os
import subprocess
from dataclasses import dataclass
from typing import Iterator, Optional, Union

import mido

TICKS_PER_QUARTER = 960
TEMPO_BPM = 72
INSTRUMENT = "Violin"
VELOCITY = 120
DEFAULT_TIMBRE = 40
DEFAULT_OCTAVE = 5

PERSONAL = 0
"""Ear-training mode for one player."""
TEAM = 1
"""Ear-training mode for the whole group."""
PERSONAL_MAX_ERRORS = 3
TEAM_MAX_ERRORS = 10

NOTE_MAP = {
    "C": 60,
    "Db": 61,
    "D": 62,
    "Eb": 63,
    "E": 64,
    "F": 65,
    "Gb": 66,
    "G": 67,
    "Ab": 68,
    "A": 69,
    "Bb": 70,
    "B": 71,
}

_NAMES_BY_PITCH_CLASS = {value % 12: name for name, value in NOTE_MAP.items()}
_DIGITS = "0123456789"
_UINT8 = 0xFF
_UINT32 = 0xFFFFFFFF

PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class _Token:
    rest: bool
    base: int
    level: int
    length: int


def _is_letter(char: str) -> bool:
    return "A" <= char <= "G"


def octave(base: int, oct: int) -> int:
    """Place pitch class ``base`` in octave ``oct`` (capped at 10) as a MIDI key.

    Arithmetic wraps like an unsigned byte; a key above 127 drops an octave.
    """
    oct = min(oct, 10)
    if oct == 0:
        return base
    key = (base + 12 * oct) & _UINT8
    if key > 127:
        key -= 12
    return key


def note_name(note: int) -> str:
    """Return the letter name (flats for black keys) of a MIDI key."""
    return _NAMES_BY_PITCH_CLASS[note % 12]


def process_one(note: str) -> int:
    """Read one answer such as ``"C#6"`` as a MIDI key; other characters are ignored."""
    base = 0
    level = 0
    for char in note.replace(" ", ""):
        if _is_letter(char):
            base = NOTE_MAP[char] % 12
        elif char == "b":
            base = (base - 1) & _UINT8
        elif char == "#":
            base = (base + 1) & _UINT8
        elif char in _DIGITS:
            level = (level * 10 + int(char)) & _UINT8
    return octave(base, level or DEFAULT_OCTAVE)


def _tokens(text: str) -> Iterator[_Token]:
    size = len(text)
    i = 0
    while i < size:
        rest = False
        base = 0
        level = 0
        digits: list[str] = []
        while True:
            char = text[i]
            if char == "R":
                rest = True
                i += 1
            elif _is_letter(char):
                base = NOTE_MAP[char] % 12
                i += 1
            elif char == "b":
                base = (base - 1) & _UINT8
                i += 1
            elif char == "#":
                base = (base + 1) & _UINT8
                i += 1
            elif char in _DIGITS:
                level = (level * 10 + int(char)) & _UINT8
                i += 1
            elif char == "<":
                i += 1
                while i < size and (text[i] == "-" or text[i] in _DIGITS):
                    digits.append(text[i])
                    i += 1
            else:
                raise ValueError(f"无法解析第{i}个位置的{char}字符")
            if i >= size or _is_letter(text[i]) or text[i] == "R":
                break
        try:
            length = int("".join(digits))
        except ValueError:
            length = 0
        yield _Token(rest, base, level, length)


def _duration(length: int) -> int:
    if length >= 0:
        return (TICKS_PER_QUARTER << length) & _UINT32
    divisor = (1 << -length) & _UINT32
    if divisor == 0:
        raise ValueError(f"note length out of range: {length}")
    return TICKS_PER_QUARTER // divisor


def check_timbre(timbre: int) -> int:
    """Return ``timbre`` if it is a valid MIDI program, else raise ValueError."""
    if not 0 <= timbre <= 127:
        raise ValueError("音色应该在0~127之间")
    return timbre


def make_midi(text: str, timbre: int = DEFAULT_TIMBRE) -> mido.MidiFile:
    """Build a one-track MIDI file playing the melody ``text``.

    Raises ValueError for a character that is not part of the notation or
    an invalid timbre.
    """
    check_timbre(timbre)
    track = mido.MidiTrack()
    track.append(mido.MetaMessage("time_signature", numerator=4, denominator=4, time=0))
    track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(TEMPO_BPM), time=0))
    track.append(mido.MetaMessage("instrument_name", name=INSTRUMENT, time=0))
    track.append(mido.Message("program_change", channel=0, program=timbre, time=0))

    delay = 0
    for token in _tokens(text.replace(" ", "")):
        if token.rest:
            delay = _duration(token.length)
            continue
        key = octave(token.base, token.level or DEFAULT_OCTAVE) & 0x7F
        track.append(mido.Message("note_on", channel=0, note=key, velocity=VELOCITY, time=delay))
        track.append(
            mido.Message("note_off", channel=0, note=key, velocity=0, time=_duration(token.length))
        )
        delay = 0
    track.append(mido.MetaMessage("end_of_track", time=0))

    midi = mido.MidiFile(type=1, ticks_per_beat=TICKS_PER_QUARTER)
    midi.tracks.append(track)
    return midi


def write_midi(path: PathLike, text: str, timbre: int = DEFAULT_TIMBRE) -> None:
    """Write the melody ``text`` to ``path`` unless that file already exists."""
    if os.path.exists(path):
        return
    make_midi(text, timbre).save(os.fspath(path))


def _power(length: float) -> Optional[int]:
    """log2 of ``length`` rounded half away from zero; None for no length."""
    if length <= 0:
        return None
    exponent = math.log2(length)
    rounded = math.floor(abs(exponent) + 0.5)
    return -rounded if exponent < 0 else rounded


def midi_to_text(data: bytes, track: int) -> str:
    """Transcribe one track of a MIDI file into the melody notation.

    Lengths are read against 960 ticks per quarter note.  A track number
    outside the file gives an empty string; unreadable data raises ValueError.
    """
    try:
        midi = mido.MidiFile(file=io.BytesIO(data))
    except (OSError, EOFError, ValueError, KeyError, IndexError) as err:
        raise ValueError(f"cannot read MIDI data: {err}") from err
    if not 0 <= track < len(midi.tracks):
        return ""

    parts: list[str] = []
    ticks = 0
    start = 0.0
    end = 0.0
    start_note = 0
    end_note = 0
    for message in midi.tracks[track]:
        ticks += message.time
        if message.is_meta:
            continue
        sounding = message.type == "note_on" and message.velocity > 0
        if sounding:
            start = float(ticks)
            start_note = message.note
        if message.type == "note_off" or (message.type == "note_on" and message.velocity == 0):
            end = float(ticks)
            end_note = message.note
            if start_note == end_note:
                parts.append(note_name(message.note))
                level = message.note // 12
                if level != DEFAULT_OCTAVE:
                    parts.append(str(level))
                power = _power((end - start) / TICKS_PER_QUARTER)
                if power is not None and power >= -4 and power != 0:
                    parts.append(f"<{power}")
                start_note = 0
                end_note = 0
        if sounding and start > end:
            power = _power((start - end) / TICKS_PER_QUARTER)
            if power == 0:
                parts.append("R")
            elif power is not None and power >= -4:
                parts.append(f"R<{power}")
    return "".join(parts)


def render_wav(midi_path: PathLike, wav_path: PathLike) -> str:
    """Render a MIDI file to WAV with timidity; return the WAV path.

    Raises CalledProcessError if timidity fails, FileNotFoundError if it
    is not installed.
    """
    wav = os.fspath(wav_path)
    subprocess.run(["timidity", os.fspath(midi_path), "-Ow", "-o", wav], check=True)
    return wav


def score_for(mode: int, errors: int, max_errors: int) -> float:
    """Points earned for a round finished after ``errors`` wrong answers.

    In personal mode fewer mistakes earn more; in team mode any solved
    round is worth one point.
    """
    if mode == PERSONAL:
        return {0: 1.0, 1: 0.5, 2: 0.2}.get(errors, 0.0)
    if mode == TEAM:
        return 1.0 if errors != max_errors else 0.0
    raise ValueError(f"unknown practice mode: {mode!r}")