import io
import subprocess
from unittest import mock

import mido
import pytest

from groupbot import midi


def _bytes(midi_file):
    buffer = io.BytesIO()
    midi_file.save(file=buffer)
    return buffer.getvalue()


def _round_trip(text):
    return midi.midi_to_text(_bytes(midi.make_midi(text)), 0)


def _messages(text, kind):
    return [m for m in midi.make_midi(text).tracks[0] if m.type == kind]


def test_octave_zero_returns_base():
    assert midi.octave(3, 0) == 3


def test_octave_is_capped_at_ten():
    for base in range(12):
        assert midi.octave(base, 11) == midi.octave(base, 10)
        assert midi.octave(base, 10) <= 127


def test_note_name_from_map():
    assert midi.note_name(60) == "C"
    assert midi.note_name(61) == "Db"
    assert midi.note_name(71) == "B"


def test_note_name_ignores_octave():
    for key in range(0, 116):
        assert midi.note_name(key) == midi.note_name(key + 12)


def test_process_one_natural_notes():
    assert midi.process_one("C") == 60
    assert midi.process_one("A") == 69


def test_process_one_default_octave_and_spaces():
    assert midi.process_one("C5") == midi.process_one("C")
    assert midi.process_one("C 6") == midi.process_one("C6")
    assert midi.process_one("C6") == midi.process_one("C") + 12


def test_process_one_enharmonics():
    assert midi.process_one("C#") == midi.process_one("Db")
    assert midi.process_one("Cb") == midi.process_one("B4")


def test_make_midi_header_events():
    mid = midi.make_midi("C")
    assert mid.ticks_per_beat == 960
    assert _messages("C", "program_change")[0].program == 40
    assert _messages("C", "set_tempo")[0].tempo == mido.bpm2tempo(72)
    assert _messages("C", "instrument_name")[0].name == "Violin"


def test_make_midi_notes():
    ons = _messages("CDE", "note_on")
    assert [m.note for m in ons] == [midi.process_one(n) for n in "CDE"]
    assert all(m.velocity == 120 for m in ons)


def test_make_midi_timbre():
    assert _messages("C", "program_change")[0].program == midi.make_midi("C", 7).tracks[0][3].program - 7 + 40
    with pytest.raises(ValueError):
        midi.make_midi("C", 128)


def test_rest_delays_next_note():
    single = _messages("RC", "note_on")[0].time
    double = _messages("R<1C", "note_on")[0].time
    assert single == 960
    assert double == 2 * single


def test_lengths_scale_by_powers_of_two():
    quarter = _messages("C", "note_off")[0].time
    assert _messages("C<1", "note_off")[0].time == 2 * quarter
    assert _messages("C<-1", "note_off")[0].time * 2 == quarter


def test_make_midi_rejects_unknown_character():
    with pytest.raises(ValueError, match="X"):
        midi.make_midi("C X")


def test_round_trip_melody():
    assert _round_trip("CCGGAAGRFFEEDDC") == "CCGGAAGRFFEEDDC"


def test_round_trip_lengths_and_octaves():
    assert _round_trip("C6<1D<-1") == "C6<1D<-1"
    assert _round_trip("Db4") == "Db4"


def test_sharps_read_back_as_flats():
    assert _round_trip("C#") == "Db"


def test_trailing_rest_is_dropped():
    assert _round_trip("CDR") == _round_trip("CD")


def test_midi_to_text_track_out_of_range():
    assert midi.midi_to_text(_bytes(midi.make_midi("C")), 5) == ""


def test_midi_to_text_bad_data():
    with pytest.raises(ValueError):
        midi.midi_to_text(b"not a midi file", 0)


def test_write_midi_keeps_existing_file(tmp_path):
    path = tmp_path / "tune.mid"
    midi.write_midi(path, "C")
    midi.write_midi(path, "D")
    assert midi.midi_to_text(path.read_bytes(), 0) == "C"


def test_render_wav_runs_timidity(tmp_path):
    midi_path = str(tmp_path / "a.mid")
    wav_path = str(tmp_path / "a.wav")
    with mock.patch("groupbot.midi.subprocess.run") as run:
        result = midi.render_wav(midi_path, wav_path)
    assert result == wav_path
    run.assert_called_once_with(["timidity", midi_path, "-Ow", "-o", wav_path], check=True)


def test_render_wav_failure_propagates(tmp_path):
    error = subprocess.CalledProcessError(1, "timidity")
    with mock.patch("groupbot.midi.subprocess.run", side_effect=error):
        with pytest.raises(subprocess.CalledProcessError):
            midi.render_wav(tmp_path / "a.mid", tmp_path / "a.wav")


def test_score_personal():
    assert midi.score_for(midi.PERSONAL, 0, 3) == 1.0
    assert midi.score_for(midi.PERSONAL, 1, 3) == 0.5
    assert midi.score_for(midi.PERSONAL, 2, 3) == 0.2
    assert midi.score_for(midi.PERSONAL, 3, 3) == 0.0


def test_score_team():
    assert midi.score_for(midi.TEAM, 4, 10) == 1.0
    assert midi.score_for(midi.TEAM, 10, 10) == 0.0


def test_score_unknown_mode():
    with pytest.raises(ValueError):
        midi.score_for(2, 0, 3)


@pytest.mark.parametrize("timbre", [-1, 128])
def test_check_timbre_rejects(timbre):
    with pytest.raises(ValueError, match="0~127"):
        midi.check_timbre(timbre)


def test_check_timbre_accepts_bounds():
    assert midi.check_timbre(0) == 0
    assert midi.check_timbre(127) == 127