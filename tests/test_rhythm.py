import logging

import backingtrack.rhythm
import backingtrack.track


def _generate (chord_pattern: str, **config) -> list:

	chords = backingtrack.track.expand_progression(chord_pattern)
	return backingtrack.rhythm.generate(chords, backingtrack.track.RhythmConfig(**config))


def _hits (notes: list) -> dict:

	"""Start tick -> sorted pitches."""

	hits: dict = {}

	for note in notes:
		hits.setdefault(note.start_tick, []).append(note.pitch)

	return {tick: sorted(pitches) for tick, pitches in hits.items()}


def test_whole_notes_follow_the_chords () -> None:

	notes = _generate("A7 A7 D7 A7", style="whole")

	assert sorted(_hits(notes)) == [0, 1920, 3840, 5760]
	assert _hits(notes)[3840] == [50, 54, 57, 60]
	assert {n.duration_ticks for n in notes} == {1910}
	assert {n.channel for n in notes} == {0}


def test_default_config_plays_whole_notes () -> None:

	chords = backingtrack.track.expand_progression("C G")
	notes = backingtrack.rhythm.generate(chords)

	assert sorted(_hits(notes)) == [0, 1920]


def test_quarter_accents () -> None:

	notes = _generate("C", style="quarter", accent="1,3")

	velocities = {n.start_tick: n.velocity for n in notes}

	assert velocities == {0: 85, 480: 70, 960: 85, 1440: 70}


def test_empty_accent_defaults_to_beat_one () -> None:

	notes = _generate("C", style="quarter", accent="")

	velocities = {n.start_tick: n.velocity for n in notes}

	assert velocities == {0: 85, 480: 70, 960: 70, 1440: 70}


def test_half_bar_chord_plays_half_the_eighths () -> None:

	notes = _generate("C*0.5 G*0.5", style="eighth")

	assert sorted(_hits(notes)) == [0, 240, 480, 720, 960, 1200, 1440, 1680]
	assert _hits(notes)[960] == [55, 59, 62]


def test_strum_pattern_down_and_up () -> None:

	"""Down strums go low to high; up strums go high to low and start softer."""

	notes = _generate("C", pattern="D.U.")

	down = [n for n in notes if n.start_tick < 480]
	up = [n for n in notes if n.start_tick >= 960]

	assert [(n.start_tick, n.pitch, n.velocity) for n in down] == [(0, 48, 85), (12, 52, 83), (24, 55, 81)]
	assert [(n.start_tick, n.pitch, n.velocity) for n in up] == [(960, 55, 75), (972, 52, 73), (984, 48, 71)]
	assert {n.end_tick for n in down} == {470}
	assert {n.end_tick for n in up} == {1430}


def test_strum_pattern_swing_delays_off_beats () -> None:

	notes = _generate("C", pattern="DUDUDUDU", swing=0.67)

	starts = {n.start_tick for n in notes}

	assert 321 in starts
	assert 240 not in starts


def test_unknown_strum_symbols_are_rests () -> None:

	notes = _generate("C", pattern="D??-")

	assert {n.start_tick for n in notes} == {0, 12, 24}


def test_muted_scratch_is_short () -> None:

	notes = _generate("C", pattern="x...")

	assert [n.start_tick for n in notes] == [0, 6, 12]
	assert {n.end_tick for n in notes} == {110}


def test_shuffle_strum_uses_the_triplet_grid () -> None:

	notes = _generate("C", style="shuffle_strum", swing=0.5)

	assert sorted(_hits(notes))[:3] == [0, 10, 20]
	assert 320 in _hits(notes)


def test_arpeggio_up_spreads_each_beat () -> None:

	notes = _generate("C", style="arpeggio_up")
	first_beat = [(n.start_tick, n.pitch, n.velocity) for n in notes if n.start_tick < 480]

	assert first_beat == [(0, 48, 80), (160, 52, 77), (320, 55, 74)]


def test_folk_alternates_root_and_upper_voices () -> None:

	hits = _hits(_generate("C", style="folk"))

	assert hits[0] == [48]
	assert hits[480] == [52, 55]
	assert hits[960] == [48]


def test_ska_plays_off_beats_only () -> None:

	assert sorted(_hits(_generate("C", style="ska"))) == [240, 720, 1200, 1680]


def test_sixteenth_styles () -> None:

	assert len(_hits(_generate("C", style="16th"))) == 16
	assert "funk_muted" in backingtrack.rhythm.SIXTEENTH_STYLES
	assert "whole" not in backingtrack.rhythm.SIXTEENTH_STYLES


def test_every_style_produces_notes () -> None:

	for style in backingtrack.rhythm.STYLES:
		assert _generate("C G", style=style), style


def test_unknown_style_warns_and_plays_whole_notes (caplog) -> None:

	with caplog.at_level(logging.WARNING):
		notes = _generate("C", style="polka")

	assert sorted(_hits(notes)) == [0]
	assert "polka" in caplog.text
