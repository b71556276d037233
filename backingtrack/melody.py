"""Melody generator (channel 2): a scale-constrained random walk, or a 12-bar AAB blues head.

The walk keeps a current note and a direction. Strong beats (1 and 3) move
to a nearby chord tone, weak beats step one scale degree in the current
direction, and the line turns around when it leaves the soft range
``base - 5 .. base + 19``. Small random reversals and leaps keep phrases
from sounding mechanical.

All randomness comes from one ``random.Random`` instance, so a fixed seed
always produces the same melody::

    notes = generate(chords, config, key="A", style="blues", seed=42)
"""

import logging
import random
import typing

import backingtrack.chords
import backingtrack.constants
import backingtrack.intervals
import backingtrack.pattern
import backingtrack.track


logger = logging.getLogger(__name__)

# E3 for octave 3; each octave above adds 12.
BASE_NOTE_OCTAVE_3 = 52

# Soft range around the base note.
RANGE_LOW = -5
RANGE_HIGH = 19

REVERSE_PROBABILITY = 0.15
LEAP_PROBABILITY = 0.1
NEARBY_TONE_PROBABILITY = 0.3
NEARBY_TONE_SEMITONES = 5

# Slot length as a fraction of the bar.
STYLE_DIVISIONS: typing.Dict[str, int] = {
	"simple": 2,
	"moderate": 4,
	"active": 8,
}

BLUES_HEAD_STYLES = frozenset({"blues_head", "call_response"})


def base_note (octave: int) -> int:

	"""Lowest comfortable melody note for an octave setting (E3 = 52 for octave 3)."""

	return BASE_NOTE_OCTAVE_3 + (octave - 3) * 12


def closest_scale_note (scale_notes: typing.Sequence[int], target: int) -> int:

	"""Return the scale note nearest ``target`` (the lower one on a tie)."""

	if not scale_notes:
		return target

	closest = scale_notes[0]

	for note in scale_notes:
		if abs(note - target) < abs(closest - target):
			closest = note

	return closest


def step_scale (scale_notes: typing.Sequence[int], current: int, direction: int) -> int:

	"""
	Move one scale degree from ``current`` in ``direction`` (+1 up, -1 down).

	When ``current`` is not itself in the scale, the nearest scale note on
	the requested side is returned instead. The walk never leaves the list:
	at either end it stays on the outermost note.
	"""

	if not scale_notes:
		return current + direction

	for i, note in enumerate(scale_notes):

		if note == current:
			index = i + direction
			if 0 <= index < len(scale_notes):
				return scale_notes[index]
			break

		if note > current:
			if direction > 0 or i == 0:
				return note
			return scale_notes[i - 1]

	closest = closest_scale_note(scale_notes, current)
	index = scale_notes.index(closest) + direction

	return scale_notes[max(0, min(index, len(scale_notes) - 1))]


def closest_tone (pitch_classes: typing.Sequence[int], target: int, low: int, high: int) -> int:

	"""Return the pitch nearest ``target`` in ``low..high`` whose pitch class is listed."""

	closest = target
	closest_distance: typing.Optional[int] = None

	for pc in pitch_classes:
		for octave in range(-1, 3):
			note = pc + 12 * octave + (target // 12) * 12 - 12
			if low <= note <= high:
				distance = abs(note - target)
				if closest_distance is None or distance < closest_distance:
					closest = note
					closest_distance = distance

	return closest


class MelodyWalker:

	"""
	The random-walk improviser. One instance generates one track.
	"""

	def __init__ (self, rng: random.Random, base: int) -> None:

		self.rng = rng
		self.base = base
		self.low = base + RANGE_LOW
		self.high = base + RANGE_HIGH
		self.current = base + 7
		self.direction = 1


	def choose_chord_tone (self, tones: typing.Sequence[int]) -> int:

		"""
		Pick a chord tone near the current note.

		Candidates are the chord's pitch classes within two octaves of the
		current note and inside the soft range. The nearest one usually wins;
		any candidate within a fourth has a 30% chance to take over instead.
		"""

		anchor = (self.current // 12) * 12
		candidates = [
			pc + anchor + octave * 12
			for pc in tones
			for octave in range(-2, 3)
			if self.low <= pc + anchor + octave * 12 <= self.high
		]

		if not candidates:
			return self.current

		closest = candidates[0]
		closest_distance = abs(closest - self.current)

		for candidate in candidates:
			distance = abs(candidate - self.current)
			if distance < closest_distance or (distance <= NEARBY_TONE_SEMITONES and self.rng.random() < NEARBY_TONE_PROBABILITY):
				closest = candidate
				closest_distance = distance

		return closest


	def next_note (self, scale_notes: typing.Sequence[int], tones: typing.Sequence[int], strong: bool) -> int:

		"""Advance the walk by one note and return it."""

		if strong and tones:
			self.current = self.choose_chord_tone(tones)
		else:
			self.current = step_scale(scale_notes, self.current, self.direction)

		if self.current > self.high:
			self.direction = -1
			self.current = step_scale(scale_notes, self.current, self.direction)
		elif self.current < self.low:
			self.direction = 1
			self.current = step_scale(scale_notes, self.current, self.direction)

		if self.rng.random() < REVERSE_PROBABILITY:
			self.direction = -self.direction

		if self.rng.random() < LEAP_PROBABILITY:
			for _ in range(2 + self.rng.randrange(2)):
				self.current = step_scale(scale_notes, self.current, self.direction)

		return self.current


def _resolve_rng (seed: typing.Optional[int], rng: typing.Optional[random.Random]) -> random.Random:

	if rng is not None:
		return rng

	return random.Random(seed)


def _scale (key: str, style: str, chord_symbol: str, scale_type: typing.Optional[str]) -> backingtrack.intervals.Scale:

	if scale_type:
		root_pc, _ = backingtrack.intervals.parse_key(key)
		return backingtrack.intervals.Scale(root_pc, scale_type)

	return backingtrack.intervals.scale_for_style(key, style, chord_symbol)


def _walk (
	p: backingtrack.pattern.Pattern,
	chords: typing.Sequence[backingtrack.track.Chord],
	config: backingtrack.track.MelodyConfig,
	ticks_per_bar: int,
	key: str,
	style: str,
	scale_type: typing.Optional[str],
	rng: random.Random
) -> None:

	base = base_note(config.octave)
	walker = MelodyWalker(rng, base)

	slot = ticks_per_bar // STYLE_DIVISIONS.get(config.style, 4)
	beat_ticks = ticks_per_bar // backingtrack.constants.BEATS_PER_BAR
	cursor = 0

	for chord in chords:

		end = cursor + chord.ticks(ticks_per_bar)
		scale_notes = _scale(key, style, chord.symbol, scale_type).notes_in_range(base - 12, base + 24)
		tones = chord.parsed().tones()

		for tick in range(cursor, end, slot):

			if rng.random() > config.density:
				continue

			beat = (tick % ticks_per_bar) // beat_ticks
			strong = beat in (0, 2)

			pitch = walker.next_note(scale_notes, tones, strong)

			velocity = 65 + rng.randrange(20) + (10 if strong else 0)
			duration = max(slot // 2, slot - rng.randrange(slot // 8 + 1))

			p.add_note(tick, pitch, velocity, duration)

		cursor = end


def _call_phrase (p: backingtrack.pattern.Pattern, start: int, bar: int, scale_notes: typing.Sequence[int], tones: typing.Sequence[int], base: int, second_bar: bool, density: float, rng: random.Random) -> None:

	"""The sung "A" line: start near the fifth and fall, then land on a chord tone."""

	tick = start + bar // 8

	if not second_bar:

		first = closest_scale_note(scale_notes, base + 7)
		p.add_note(tick, first, 85, bar // 4)

		tick += bar // 4
		second = step_scale(scale_notes, first, -1)
		p.add_note(tick, second, 75, bar // 4)

		if rng.random() < density:
			tick += bar // 4
			p.add_note(tick, step_scale(scale_notes, second, -1), 70, bar // 4)

	else:

		target = closest_tone(tones, base, base - 5, base + 12) if tones else base

		p.add_note(tick, closest_scale_note(scale_notes, target + 2), 70, bar // 8)
		p.add_note(tick + bar // 6, target, 80, bar // 2)


def _response_phrase (p: backingtrack.pattern.Pattern, start: int, bar: int, scale_notes: typing.Sequence[int], base: int, rng: random.Random) -> None:

	tick = start + bar // 4
	first = closest_scale_note(scale_notes, base + 5)
	p.add_note(tick, first, 65, bar // 6)

	if rng.random() < 0.6:
		p.add_note(tick + bar // 4, step_scale(scale_notes, first, -1), 60, bar // 4)


def _resolution_phrase (p: backingtrack.pattern.Pattern, start: int, bar: int, scale_notes: typing.Sequence[int], base: int, second_bar: bool, density: float, rng: random.Random) -> None:

	"""The "B" line: start high and fall further, then resolve to the root."""

	tick = start + bar // 8

	if not second_bar:

		first = closest_scale_note(scale_notes, base + 10)
		p.add_note(tick, first, 85, bar // 4)

		tick += bar // 4
		second = step_scale(scale_notes, step_scale(scale_notes, first, -1), -1)
		p.add_note(tick, second, 80, bar // 4)

		if rng.random() < density:
			tick += bar // 4
			p.add_note(tick, step_scale(scale_notes, second, -1), 75, bar // 4)

	else:

		p.add_note(tick, closest_scale_note(scale_notes, base + 3), 75, bar // 6)
		p.add_note(tick + bar // 5, base, 90, bar * 2 // 3)


def _turnaround_phrase (p: backingtrack.pattern.Pattern, start: int, bar: int, scale_notes: typing.Sequence[int], base: int) -> None:

	"""Descending eighths from the fifth toward the root."""

	eighth = bar // 8
	tick = start + bar // 4
	note = closest_scale_note(scale_notes, base + 7)

	for i in range(4):

		p.add_note(tick, note, 75 - i * 5, eighth - 10)

		tick += eighth
		note = step_scale(scale_notes, note, -1)

		if note < base - 2:
			break


def _blues_head (
	p: backingtrack.pattern.Pattern,
	chords: typing.Sequence[backingtrack.track.Chord],
	config: backingtrack.track.MelodyConfig,
	ticks_per_bar: int,
	key: str,
	style: str,
	scale_type: typing.Optional[str],
	rng: random.Random
) -> None:

	"""
	AAB form over 12 bars, keyed by bar position modulo 12:

	- bars 1–2 and 5–6: call phrase (A)
	- bars 3–4 and 7–8: occasional response lick
	- bars 9–10: resolution phrase (B)
	- bar 11: turnaround lick half the time; bar 12 rests
	"""

	base = base_note(config.octave)
	scale_notes = _scale(key, style, "", scale_type).notes_in_range(base - 5, base + 12)

	# Chord sounding at the start of each whole bar.
	bar_chords: typing.List[backingtrack.track.Chord] = []
	cursor = 0

	for chord in chords:
		end = cursor + chord.ticks(ticks_per_bar)
		first_bar = -(-cursor // ticks_per_bar)
		last_bar = -(-end // ticks_per_bar)
		bar_chords.extend([chord] * (last_bar - first_bar))
		cursor = end

	total = cursor // ticks_per_bar

	for bar_index, chord in enumerate(bar_chords[:total]):

		position = bar_index % 12
		start = bar_index * ticks_per_bar
		tones = chord.parsed().tones()

		if position in (0, 1, 4, 5):
			_call_phrase(p, start, ticks_per_bar, scale_notes, tones, base, position % 2 == 1, config.density, rng)

		elif position in (2, 3, 6, 7):
			if rng.random() < 0.3:
				_response_phrase(p, start, ticks_per_bar, scale_notes, base, rng)

		elif position in (8, 9):
			_resolution_phrase(p, start, ticks_per_bar, scale_notes, base, position == 9, config.density, rng)

		elif position == 10 and rng.random() < 0.5:
			_turnaround_phrase(p, start, ticks_per_bar, scale_notes, base)


def generate (
	chords: typing.Sequence[backingtrack.track.Chord],
	config: typing.Optional[backingtrack.track.MelodyConfig] = None,
	ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR,
	key: str = "C",
	style: str = "",
	scale_type: typing.Optional[str] = None,
	seed: typing.Optional[int] = None,
	rng: typing.Optional[random.Random] = None
) -> typing.List[backingtrack.pattern.NoteEvent]:

	"""
	Generate the melody track (channel 2).

	Parameters:
		chords: The expanded progression.
		config: Melody settings (style, density, octave).
		ticks_per_bar: Grid size.
		key: Track key, e.g. ``"A"`` or ``"Em"``.
		style: Track style, used to pick the scale (see ``intervals.scale_for_style``).
		scale_type: Explicit scale name overriding the style mapping.
		seed: Seed for a fresh ``random.Random`` when ``rng`` is not given.
		rng: Random source to draw from.
	"""

	config = config or backingtrack.track.MelodyConfig(enabled=True)
	rng = _resolve_rng(seed, rng)

	p = backingtrack.pattern.Pattern(channel=backingtrack.constants.MELODY_CHANNEL)

	if config.style in BLUES_HEAD_STYLES:
		_blues_head(p, chords, config, ticks_per_bar, key, style, scale_type, rng)
	else:
		_walk(p, chords, config, ticks_per_bar, key, style, scale_type, rng)

	logger.debug(f"Melody '{config.style}': {len(p.notes)} notes")

	return p.sorted_notes()
