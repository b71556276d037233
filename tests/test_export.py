import mido
import yaml

import backingtrack.sequencer
import backingtrack.track


SONG = """
track: {title: Export Test, key: E, tempo: 90}
chord_progression: {pattern: "E A B7 E"}
rhythm: {style: quarter}
bass: {style: root_fifth, instrument: slap_bass}
drums: {style: rock_beat}
melody: {enabled: true, style: simple, instrument: flute}
"""


def _write (tmp_path, text: str = SONG) -> mido.MidiFile:

	track = backingtrack.track.parse_track(yaml.safe_load(text))
	path = tmp_path / "song.mid"

	backingtrack.sequencer.write_midi_file(track, path, seed=1)

	return mido.MidiFile(path)


def _absolute (track: mido.MidiTrack) -> list:

	tick = 0
	events = []

	for message in track:
		tick += message.time
		events.append((tick, message))

	return events


def test_file_layout (tmp_path) -> None:

	mid = _write(tmp_path)

	assert mid.type == 1
	assert mid.ticks_per_beat == 480
	assert len(mid.tracks) == 5
	assert [t.name for t in mid.tracks[1:]] == ["chords", "bass", "melody", "drums"]


def test_tempo_track (tmp_path) -> None:

	mid = _write(tmp_path)
	tempos = [m for m in mid.tracks[0] if m.type == "set_tempo"]

	assert len(tempos) == 1
	assert tempos[0].tempo == mido.bpm2tempo(90)


def test_programs (tmp_path) -> None:

	mid = _write(tmp_path)
	programs = {m.channel: m.program for t in mid.tracks for m in t if m.type == "program_change"}

	assert programs == {0: 0, 1: 36, 2: 73}


def test_default_programs (tmp_path) -> None:

	text = "track: {}\nchord_progression: {pattern: C}\nbass: {}\nmelody: {enabled: true}"
	mid = _write(tmp_path, text)
	programs = {m.channel: m.program for t in mid.tracks for m in t if m.type == "program_change"}

	assert programs == {0: 0, 1: 33, 2: 25}


def test_drum_hits_are_short (tmp_path) -> None:

	mid = _write(tmp_path)
	drums = mid.tracks[4]

	ons = {}
	lengths = set()

	for tick, message in _absolute(drums):
		if message.type == "note_on" and message.velocity > 0:
			ons[message.note] = tick
		elif message.type == "note_off":
			lengths.add(tick - ons[message.note])

	assert lengths == {10}


def test_bass_notes_land_where_generated (tmp_path) -> None:

	mid = _write(tmp_path)
	bass = [(tick, m.note) for tick, m in _absolute(mid.tracks[2]) if m.type == "note_on"]

	assert bass[:4] == [(0, 40), (960, 47), (1920, 45), (2880, 52)]


def test_export_length_matches_the_progression (tmp_path) -> None:

	mid = _write(tmp_path)
	chords = _absolute(mid.tracks[1])

	assert max(tick for tick, _ in chords) <= 4 * 1920
