"""Drum generator (channel 9, GM drum map).

Two ways to describe a kit:

- A preset groove by name (``style: blues_shuffle``), used when no voice is
  spelled out.
- Explicit voices, each an optional Euclidean pattern plus an optional list
  of 1-based beats::

    drums:
      kick:
        euclidean: {hits: 3, steps: 8}
      snare:
        beats: [2, 4]
      hihat:
        euclidean: {hits: 8, steps: 8}

``intensity`` (0–1, default 0.7) scales a base velocity of 100; each voice
and preset hit is an offset from that base.
"""

import logging
import typing

import backingtrack.constants
import backingtrack.constants.gm_drums
import backingtrack.constants.velocity
import backingtrack.pattern
import backingtrack.sequence_utils
import backingtrack.track


logger = logging.getLogger(__name__)

DEFAULT_INTENSITY = 0.7
DEFAULT_PRESET = "rock_beat"

# Drum hits are one-shots; these are the gate lengths sent to the synth.
PLAYBACK_HIT_TICKS = 50
EXPORT_HIT_TICKS = 10

KICK = backingtrack.constants.gm_drums.KICK_1
SNARE = backingtrack.constants.gm_drums.SNARE_1
CLOSED_HAT = backingtrack.constants.gm_drums.HI_HAT_CLOSED
OPEN_HAT = backingtrack.constants.gm_drums.HI_HAT_OPEN
RIDE = backingtrack.constants.gm_drums.RIDE_1

# Velocity offsets from the base for explicit voices.
VOICE_ACCENTS: typing.Dict[str, int] = {
	"kick": 10,
	"snare": 0,
	"hihat": -20,
	"ride": -15,
}

# (tick within bar, GM note, velocity)
Hit = typing.Tuple[int, int, int]

PresetFunction = typing.Callable[[int, int], typing.List[Hit]]

SHUFFLE_POSITIONS = [0, 2, 3, 5, 6, 8, 9, 11]


def _backbeat (bar: int, kick: int, snare: int) -> typing.List[Hit]:

	"""Kick on 1 and 3, snare on 2 and 4."""

	return [
		(0, KICK, kick),
		(bar // 2, KICK, kick),
		(bar // 4, SNARE, snare),
		(3 * bar // 4, SNARE, snare),
	]


def rock_beat (bar: int, base: int) -> typing.List[Hit]:

	eighth = bar // 8
	hits = _backbeat(bar, base + 10, base)
	hits += [(i * eighth, CLOSED_HAT, base - 20 - (10 if i % 2 else 0)) for i in range(8)]

	return hits


def shuffle (bar: int, base: int) -> typing.List[Hit]:

	triplet = bar // 12
	hits = _backbeat(bar, base + 10, base)
	hits += [(pos * triplet, CLOSED_HAT, base - 20 - (10 if pos % 3 == 2 else 0)) for pos in SHUFFLE_POSITIONS]

	return hits


def jazz_swing (bar: int, base: int) -> typing.List[Hit]:

	"""Ding, ding-a ding on the ride over a feathered kick."""

	triplet = bar // 12
	hits = [
		(0, KICK, base),
		(bar // 4, SNARE, base - 10),
		(3 * bar // 4, SNARE, base - 10),
	]
	hits += [(pos * triplet, RIDE, base - 15 - (10 if pos % 3 == 2 else 0)) for pos in SHUFFLE_POSITIONS]

	return hits


def blues_shuffle (bar: int, base: int) -> typing.List[Hit]:

	"""12/8 shuffle: kick pickups, ghosted snare, open hat on each beat's last triplet."""

	t = bar // 12
	hits = [
		(0, KICK, base + 10),
		(5 * t, KICK, base - 5),
		(6 * t, KICK, base + 10),
		(11 * t, KICK, base - 5),
		(3 * t, SNARE, base),
		(9 * t, SNARE, base),
		(2 * t, SNARE, base - 35),
		(8 * t, SNARE, base - 35),
	]

	for beat in range(4):
		beat_start = beat * 3 * t
		hits += [
			(beat_start, CLOSED_HAT, base - 10),
			(beat_start + t, CLOSED_HAT, base - 25),
			(beat_start + 2 * t, OPEN_HAT, base - 15),
		]

	return hits


def four_on_floor (bar: int, base: int) -> typing.List[Hit]:

	quarter = bar // 4
	sixteenth = bar // 16

	hits = [(beat * quarter, KICK, base + 15) for beat in range(4)]
	hits += [(quarter, SNARE, base + 5), (3 * quarter, SNARE, base + 5)]

	for i in range(16):

		note = CLOSED_HAT
		velocity = base - 10 if i % 4 == 2 else base - 25

		if i % 2 == 1:
			velocity -= 5

		if i in (6, 14):
			note = OPEN_HAT
			velocity = base - 15

		hits.append((i * sixteenth, note, velocity))

	return hits


def trap (bar: int, base: int) -> typing.List[Hit]:

	"""Sparse kick, heavy snare, rolling hats with 32nd-note rolls into beat 4."""

	quarter = bar // 4
	s = bar // 16
	t = bar // 32

	hits = [
		(0, KICK, base + 20),
		(quarter + quarter // 2, KICK, base + 15),
		(3 * quarter, KICK, base + 15),
		(quarter, SNARE, base + 10),
		(3 * quarter, SNARE, base + 10),
	]

	rolls = [(i * s, 0 if i % 2 == 0 else -10) for i in range(12)]
	rolls += [
		(12 * s, 0), (12 * s + t, -15),
		(13 * s, -5), (13 * s + t, -15),
		(14 * s, 0), (14 * s + t, -15),
		(15 * s, -5), (15 * s + t, -20),
	]

	hits += [(offset, CLOSED_HAT, base - 20 + delta) for offset, delta in rolls]

	return hits


def ska (bar: int, base: int) -> typing.List[Hit]:

	eighth = bar // 8
	hits = _backbeat(bar, base + 10, base + 5)
	hits += [(i * eighth, CLOSED_HAT, base - 5 if i % 2 else base - 15) for i in range(8)]

	return hits


def reggae (bar: int, base: int) -> typing.List[Hit]:

	"""One drop: kick and snare together on 3 only."""

	quarter = bar // 4
	eighth = bar // 8

	hits = [
		(2 * quarter, KICK, base + 15),
		(2 * quarter, SNARE, base + 10),
		(3 * quarter, SNARE, base - 20),
	]
	hits += [(i * eighth, CLOSED_HAT, base - 10) for i in range(1, 8, 2)]

	return hits


def country (bar: int, base: int) -> typing.List[Hit]:

	eighth = bar // 8
	hits = _backbeat(bar, base + 10, base + 5)
	hits += [(i * eighth, CLOSED_HAT, base - 15 if i % 2 else base - 10) for i in range(8)]

	return hits


def disco (bar: int, base: int) -> typing.List[Hit]:

	quarter = bar // 4
	sixteenth = bar // 16

	hits = [(beat * quarter, KICK, base + 10) for beat in range(4)]
	hits += [(quarter, SNARE, base + 5), (3 * quarter, SNARE, base + 5)]

	for i in range(16):

		if i % 4 == 2:
			hits.append((i * sixteenth, OPEN_HAT, base - 10))
		elif i % 4 == 0:
			hits.append((i * sixteenth, CLOSED_HAT, base - 15))
		else:
			hits.append((i * sixteenth, CLOSED_HAT, base - 20))

	return hits


def motown (bar: int, base: int) -> typing.List[Hit]:

	quarter = bar // 4
	eighth = bar // 8

	hits = [
		(0, KICK, base + 10),
		(2 * quarter, KICK, base + 10),
		(quarter + 3 * eighth // 2, KICK, base - 5),
		(quarter, SNARE, base + 15),
		(3 * quarter, SNARE, base + 15),
	]
	hits += [(i * eighth, CLOSED_HAT, base - 20 if i % 2 else base - 15) for i in range(8)]

	return hits


def flamenco (bar: int, base: int) -> typing.List[Hit]:

	"""Cajon-style rumba: low tones, slaps and finger-roll ghosts on the sixteenth grid."""

	s = bar // 16

	hits = [(pos * s, KICK, base + 15 if pos == 0 else base + 10) for pos in (0, 6, 10)]
	hits += [(pos * s, SNARE, base) for pos in (3, 8, 12)]
	hits += [(pos * s, SNARE, base - 30) for pos in (2, 5, 9, 14)]

	return hits


PRESETS: typing.Dict[str, PresetFunction] = {
	"rock_beat": rock_beat,
	"shuffle": shuffle,
	"blues_shuffle": blues_shuffle,
	"jazz_swing": jazz_swing,
	"four_on_floor": four_on_floor,
	"edm": four_on_floor,
	"trap": trap,
	"ska": ska,
	"reggae": reggae,
	"one_drop": reggae,
	"country": country,
	"train": country,
	"disco": disco,
	"motown": motown,
	"soul": motown,
	"flamenco": flamenco,
	"rumba": flamenco,
}


def base_velocity (intensity: typing.Optional[float]) -> int:

	"""Base drum velocity for an intensity; unset or non-positive means the default."""

	if intensity is None or intensity <= 0:
		intensity = DEFAULT_INTENSITY

	intensity = min(1.0, intensity)

	return int(backingtrack.constants.velocity.DEFAULT_DRUM_BASE * intensity)


def voice_hits (voice: backingtrack.track.DrumVoice, note: int, velocity: int, ticks_per_bar: int) -> typing.List[Hit]:

	"""
	One bar of hits for an explicit voice.

	Euclidean hit ``i`` lands on ``i * (ticks_per_bar // steps)``; beat ``b``
	lands on ``(b - 1)`` quarter notes. Beats outside 1–4 are ignored.
	"""

	hits: typing.List[Hit] = []

	if voice.euclidean is not None:

		spec = voice.euclidean
		sequence = backingtrack.sequence_utils.euclidean(spec.hits, spec.steps, spec.rotation)
		step = ticks_per_bar // spec.steps

		hits += [(i * step, note, velocity) for i in backingtrack.sequence_utils.sequence_to_indices(sequence)]

		logger.debug(f"{backingtrack.constants.gm_drums.NOTE_NAMES.get(note, note)}: {backingtrack.sequence_utils.format_sequence(sequence)}")

	quarter = ticks_per_bar // backingtrack.constants.BEATS_PER_BAR

	for beat in voice.beats:
		if 1 <= beat <= backingtrack.constants.BEATS_PER_BAR:
			hits.append(((beat - 1) * quarter, note, velocity))

	return hits


def bar_hits (config: backingtrack.track.DrumsConfig, ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR) -> typing.List[Hit]:

	"""
	Return the hits for one bar of the kit, in tick order.

	Explicit voices win over the preset. With neither, the bar is empty.
	"""

	base = base_velocity(config.intensity)

	if config.has_voices:

		hits: typing.List[Hit] = []

		for name, voice in config.voices.items():
			note = backingtrack.constants.gm_drums.VOICE_NOTES[name]
			hits += voice_hits(voice, note, base + VOICE_ACCENTS[name], ticks_per_bar)

	elif config.style:

		style = config.style.strip().lower()

		if style not in PRESETS:
			logger.warning(f"Unknown drum style '{config.style}', playing {DEFAULT_PRESET}")

		hits = PRESETS.get(style, rock_beat)(ticks_per_bar, base)

	else:
		return []

	return sorted(hits, key=lambda hit: hit[0])


def generate (
	chords: typing.Sequence[backingtrack.track.Chord],
	config: typing.Optional[backingtrack.track.DrumsConfig] = None,
	ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR,
	hit_ticks: int = PLAYBACK_HIT_TICKS
) -> typing.List[backingtrack.pattern.NoteEvent]:

	"""
	Generate the drum track (channel 9), one bar pattern repeated for every bar of the progression.

	``hit_ticks`` is the gate length of each hit: 50 ticks for live playback,
	10 for file export.
	"""

	if config is None:
		return []

	hits = bar_hits(config, ticks_per_bar)
	bars = backingtrack.track.total_bars(chords)

	p = backingtrack.pattern.Pattern(channel=backingtrack.constants.DRUMS_CHANNEL)

	for bar in range(bars):
		bar_start = bar * ticks_per_bar
		for offset, note, velocity in hits:
			p.add_note(bar_start + offset, note, velocity, hit_ticks)

	return p.sorted_notes()
