import logging

import backingtrack.drums
import backingtrack.track


def _drums (pattern: str = "C", **config) -> list:

	chords = backingtrack.track.expand_progression(pattern)
	hit_ticks = config.pop("hit_ticks", backingtrack.drums.PLAYBACK_HIT_TICKS)

	return backingtrack.drums.generate(chords, backingtrack.track.DrumsConfig(**config), hit_ticks=hit_ticks)


def _by_note (notes: list, note: int) -> list:

	return [(n.start_tick, n.velocity) for n in notes if n.pitch == note]


def test_rock_beat_backbeat () -> None:

	notes = _drums("C C", style="rock_beat")

	assert [t for t, _ in _by_note(notes, backingtrack.drums.KICK)] == [0, 960, 1920, 2880]
	assert [t for t, _ in _by_note(notes, backingtrack.drums.SNARE)] == [480, 1440, 2400, 3360]
	assert len(_by_note(notes, backingtrack.drums.CLOSED_HAT)) == 16


def test_intensity_scales_velocity () -> None:

	soft = _drums(style="rock_beat", intensity=0.5)
	loud = _drums(style="rock_beat", intensity=1.0)

	assert _by_note(soft, backingtrack.drums.SNARE)[0][1] == 50
	assert _by_note(loud, backingtrack.drums.SNARE)[0][1] == 100


def test_base_velocity_defaults_and_clamps () -> None:

	assert backingtrack.drums.base_velocity(None) == 70
	assert backingtrack.drums.base_velocity(0) == 70
	assert backingtrack.drums.base_velocity(3.0) == 100


def test_gate_length_for_playback_and_export () -> None:

	assert {n.duration_ticks for n in _drums(style="rock_beat")} == {50}
	assert {n.duration_ticks for n in _drums(style="rock_beat", hit_ticks=backingtrack.drums.EXPORT_HIT_TICKS)} == {10}


def test_euclidean_and_beat_voices () -> None:

	voices = {
		"kick": backingtrack.track.DrumVoice(euclidean=backingtrack.track.EuclideanSpec(3, 8)),
		"snare": backingtrack.track.DrumVoice(beats=[2, 4, 0, 5]),
	}

	notes = _drums(voices=voices)

	assert _by_note(notes, backingtrack.drums.KICK) == [(0, 80), (720, 80), (1440, 80)]
	assert _by_note(notes, backingtrack.drums.SNARE) == [(480, 70), (1440, 70)]


def test_euclidean_rotation () -> None:

	voices = {"hihat": backingtrack.track.DrumVoice(euclidean=backingtrack.track.EuclideanSpec(3, 8, rotation=1))}

	assert [t for t, _ in _by_note(_drums(voices=voices), backingtrack.drums.CLOSED_HAT)] == [480, 1200, 1680]


def test_explicit_voices_win_over_the_preset () -> None:

	voices = {"ride": backingtrack.track.DrumVoice(beats=[1])}
	notes = _drums(style="rock_beat", voices=voices)

	assert [(n.start_tick, n.pitch) for n in notes] == [(0, backingtrack.drums.RIDE)]


def test_no_style_and_no_voices_is_silent () -> None:

	assert _drums() == []
	assert backingtrack.drums.generate(backingtrack.track.expand_progression("C"), None) == []


def test_pattern_repeats_for_partial_bars () -> None:

	"""A progression of 1.5 bars still gets two bars of drums."""

	notes = _drums("C*1.5", voices={"kick": backingtrack.track.DrumVoice(beats=[1])})

	assert [n.start_tick for n in notes] == [0, 1920]


def test_every_preset_has_hits_inside_the_bar () -> None:

	for name, preset in backingtrack.drums.PRESETS.items():
		hits = preset(1920, 70)
		assert hits, name
		assert all(0 <= tick < 1920 for tick, _, _ in hits), name
		assert all(0 <= velocity <= 127 for _, _, velocity in hits), name


def test_unknown_preset_warns (caplog) -> None:

	with caplog.at_level(logging.WARNING):
		notes = _drums(style="polka")

	assert "polka" in caplog.text
	assert [t for t, _ in _by_note(notes, backingtrack.drums.KICK)] == [0, 960]


def test_channel_is_nine () -> None:

	assert {n.channel for n in _drums(style="trap")} == {9}
