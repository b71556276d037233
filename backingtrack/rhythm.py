"""Chord-rhythm generator: turns the chord list into strums, stabs and picking patterns.

Each chord is voiced once (see ``backingtrack.chords``) and then played in
the requested style across its duration. Styles are looked up in
``STYLES``; a literal strum pattern such as ``"D.DU.UDU"`` overrides the
style. Unknown style names play whole-note chords.

Strum notation, one character per step (pattern length = steps per bar):

- ``D`` loud down strum, ``d`` soft down strum
- ``U`` loud up strum, ``u`` soft up strum (high string first)
- ``x`` / ``X`` muted scratch, very short
- anything else (``.``, ``-``, space) is a rest
"""

import logging
import typing

import backingtrack.constants
import backingtrack.constants.velocity
import backingtrack.pattern
import backingtrack.swing
import backingtrack.track


logger = logging.getLogger(__name__)

# Ticks released before the next hit so repeated chords re-articulate.
RELEASE_GAP = 10

STRUM_DELAY = 12

# Strum notation: character -> (velocity, up-strum).
STRUM_SYMBOLS: typing.Dict[str, typing.Tuple[int, bool]] = {
	"D": (85, False),
	"d": (65, False),
	"U": (75, True),
	"u": (55, True),
}

MUTED_STRUM_VELOCITY = 50
STRUM_VELOCITY_STEP = 2

# Styles whose grid is sixteenth notes (the status line counts 16 strums per bar for these).
SIXTEENTH_STYLES = frozenset({"sixteenth", "16th", "funk", "funk_muted", "funk_chop"})


class _Grid:

	"""Subdivision lengths for one bar."""

	def __init__ (self, ticks_per_bar: int) -> None:

		self.bar = ticks_per_bar
		self.half = ticks_per_bar // 2
		self.quarter = ticks_per_bar // 4
		self.eighth = ticks_per_bar // 8
		self.triplet = ticks_per_bar // 12
		self.sixteenth = ticks_per_bar // 16


StyleFunction = typing.Callable[
	[backingtrack.pattern.Pattern, typing.List[int], int, int, _Grid, float, typing.Set[int]],
	None
]


def _count (duration: int, step: int) -> int:

	"""Whole steps in a duration, at least one."""

	return max(1, duration // step)


def _whole (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	p.add_chord(start, notes, backingtrack.constants.velocity.DEFAULT_CHORD_VELOCITY, duration - RELEASE_GAP)


def _half (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	count = _count(duration, grid.half)
	length = duration // count

	for i in range(count):
		p.add_chord(start + i * length, notes, 85 if i == 0 else 75, length - RELEASE_GAP)


def _quarter (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	for i in range(_count(duration, grid.quarter)):
		velocity = 85 if (i % 4) + 1 in accents else 70
		p.add_chord(start + i * grid.quarter, notes, velocity, grid.quarter - RELEASE_GAP)


def _eighth (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	for i in range(_count(duration, grid.eighth)):

		velocity = 65

		if i % 2 == 0:
			velocity = 85 if (i // 2) % 4 + 1 in accents else 75

		p.add_chord(start + i * grid.eighth, notes, velocity, grid.eighth - RELEASE_GAP)


def _strum_down (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	for i in range(_count(duration, grid.quarter)):
		tick = start + i * grid.quarter
		velocity = 85 if (i % 4) + 1 in accents else 70
		p.add_strum(tick, notes, velocity, tick + grid.quarter - RELEASE_GAP, stagger=15)


def _strum_up_down (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	for i in range(_count(duration, grid.eighth)):

		tick = start + i * grid.eighth
		up = i % 2 == 1
		order = list(reversed(notes)) if up else notes

		p.add_strum(tick, order, 70 if up else 80, tick + grid.eighth - RELEASE_GAP, stagger=STRUM_DELAY)


def _folk (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	"""Root alone on 1 and 3, the upper chord tones on 2 and 4."""

	for i in range(_count(duration, grid.quarter)):

		tick = start + i * grid.quarter

		if (i % 4) + 1 in (1, 3):
			if notes:
				p.add_note(tick, notes[0], 85, grid.quarter - RELEASE_GAP)
		else:
			p.add_chord(tick, notes[1:], 70, grid.quarter - RELEASE_GAP)


SHUFFLE_POSITIONS = [0, 2, 3, 5, 6, 8, 9, 11]


def _shuffle_strum (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	"""Strums on the triplet grid; the last triplet of each beat follows the swing ratio."""

	for bar in range(_count(duration, grid.bar)):

		bar_start = start + bar * grid.bar

		for pos in SHUFFLE_POSITIONS:

			tick = bar_start + pos * grid.triplet

			if pos % 3 == 2:
				tick += backingtrack.swing.swing_offset(1, grid.triplet, swing)

			velocity = 80 if pos % 3 == 0 else 70
			p.add_strum(tick, notes, velocity, tick + grid.triplet * 2, stagger=10)


def _stride (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	"""The "pah" of oom-pah: chord stabs on 2 and 4."""

	for i in range(_count(duration, grid.quarter)):

		beat = (i % 4) + 1

		if beat in (2, 4):
			tick = start + i * grid.quarter
			p.add_strum(tick, notes, 80 if beat == 2 else 75, tick + grid.quarter - 50, stagger=8)


def _ragtime (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	count = _count(duration, grid.quarter)
	anticipation = grid.eighth // 2

	for i in range(count):

		tick = start + i * grid.quarter
		beat = (i % 4) + 1

		if beat in (2, 4):
			p.add_strum(tick, notes, 78, tick + grid.quarter - 50, stagger=8)

		elif beat == 1 and i + 1 < count:
			# Sixteenth pickup into beat 2.
			p.add_chord(tick + grid.quarter - anticipation, notes, 65, anticipation - RELEASE_GAP)


def _travis (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	"""Alternating thumb bass (root, fifth) under a high-mid-high finger pattern."""

	if len(notes) < 3:
		return

	bass, fifth, mid, high = notes[0], notes[0] + 7, notes[1], notes[-1]

	steps = [
		(bass, 80), (high, 60), (mid, 55), (high, 60),
		(fifth, 75), (high, 60), (mid, 55), (high, 60),
	]

	for bar in range(_count(duration, grid.bar)):
		for i, (pitch, velocity) in enumerate(steps):
			p.add_note(start + bar * grid.bar + i * grid.eighth, pitch, velocity, grid.eighth - 20)


def _fingerpick (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	if len(notes) < 3:
		return

	bass, low, mid, high = notes[0], notes[1], notes[len(notes) // 2], notes[-1]

	steps = [
		(bass, 80), (mid, 55), (high, 60), (mid, 50),
		(bass, 75), (mid, 55), (high, 60), (mid, 50),
		(bass, 80), (mid, 55), (high, 60), (mid, 50),
		(low, 70), (mid, 55), (high, 60), (mid, 50),
	]

	for bar in range(_count(duration, grid.bar)):
		for i, (pitch, velocity) in enumerate(steps):
			p.add_note(start + bar * grid.bar + i * grid.sixteenth, pitch, velocity, grid.sixteenth * 2 - RELEASE_GAP)


def _fingerpick_slow (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	if len(notes) < 2:
		return

	bass, mid, high = notes[0], notes[len(notes) // 2], notes[-1]

	steps = [(0, bass, 80), (2, mid, 55), (3, high, 60), (4, bass, 75), (6, high, 60), (7, mid, 50)]

	for bar in range(_count(duration, grid.bar)):
		for pos, pitch, velocity in steps:
			p.add_note(start + bar * grid.bar + pos * grid.eighth, pitch, velocity, grid.eighth * 2 - RELEASE_GAP)


def _arpeggio (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, descending: bool) -> None:

	if not notes:
		return

	order = list(reversed(notes)) if descending else notes
	spacing = grid.quarter // len(notes)

	for beat in range(_count(duration, grid.quarter)):

		beat_start = start + beat * grid.quarter
		velocity = 80 if beat % 4 == 0 else 70

		for i, pitch in enumerate(order):
			note_velocity = max(backingtrack.constants.velocity.ARPEGGIO_VELOCITY_FLOOR, velocity - i * 3)
			p.add_note(beat_start + i * spacing, pitch, note_velocity, spacing - RELEASE_GAP)


def _arpeggio_up (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	_arpeggio(p, notes, start, duration, grid, descending=False)


def _arpeggio_down (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	_arpeggio(p, notes, start, duration, grid, descending=True)


# Sixteenth position -> velocity.  1 e & a 2 e & a 3 e & a 4 e & a
FUNK_HITS = [(0, 95), (2, 60), (5, 65), (6, 80), (8, 70), (10, 60), (13, 65), (15, 70)]


def _funk_pattern (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, muted: bool) -> None:

	length = grid.sixteenth // 2 if muted else grid.sixteenth - 20

	for bar in range(_count(duration, grid.bar)):

		for pos, velocity in FUNK_HITS:

			tick = start + bar * grid.bar + pos * grid.sixteenth

			if muted:
				velocity = max(backingtrack.constants.velocity.MUTED_FUNK_VELOCITY_FLOOR, velocity - 10)

			p.add_strum(tick, notes, velocity, tick + length, stagger=5)


def _funk (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	_funk_pattern(p, notes, start, duration, grid, muted=False)


def _funk_muted (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	_funk_pattern(p, notes, start, duration, grid, muted=True)


def _sixteenth (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	for i in range(duration // grid.sixteenth):

		velocity = 60

		if i % 4 == 0:
			velocity = 90 if (i // 4) % 4 == 0 else 75

		p.add_chord(start + i * grid.sixteenth, notes, velocity, grid.sixteenth - 15)


def _ska (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	"""Off-beat skank: short chords on every "and"."""

	for i in range(duration // grid.eighth):
		if i % 2 == 1:
			p.add_chord(start + i * grid.eighth, notes, 85, grid.eighth * 2 // 3)


def _reggae (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	"""Off-beat chops with a heavy hit on beat 3 (one drop)."""

	for i in range(duration // grid.eighth):

		tick = start + i * grid.eighth

		if i % 2 == 1:
			p.add_chord(tick, notes, 65, grid.eighth // 2)
		elif i // 2 == 2:
			p.add_chord(tick, notes, 90, grid.eighth)


def _country (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	"""Boom-chick: root on 1 and 3, snappy chord on 2 and 4."""

	for i in range(duration // grid.quarter):

		tick = start + i * grid.quarter

		if i % 2 == 0:
			if notes:
				p.add_note(tick, notes[0], 85, grid.quarter - 20)
		else:
			p.add_chord(tick, notes, 75, grid.quarter * 2 // 3)


def _disco (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	for i in range(duration // grid.sixteenth):

		tick = start + i * grid.sixteenth

		if i % 4 == 0:
			p.add_chord(tick, notes, 85, grid.sixteenth * 3)
		elif i % 2 == 1:
			p.add_chord(tick, notes, 55, grid.sixteenth // 2)


def _motown (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	"""Tight eighths with the backbeat on 2 and 4."""

	for i in range(duration // grid.eighth):

		beat = i // 2
		on_beat = i % 2 == 0
		velocity = 70
		length = grid.eighth * 2 // 3

		if on_beat and beat in (1, 3):
			velocity = 90
			length = grid.eighth
		elif on_beat and beat == 0:
			velocity = 80

		p.add_chord(start + i * grid.eighth, notes, velocity, length)


FLAMENCO_HITS = [(0, 95), (3, 75), (6, 75), (8, 85), (10, 75), (12, 80)]


def _flamenco (p: backingtrack.pattern.Pattern, notes: typing.List[int], start: int, duration: int, grid: _Grid, swing: float, accents: typing.Set[int]) -> None:

	end = start + duration

	for bar in range(duration // grid.bar):

		for index, (pos, velocity) in enumerate(FLAMENCO_HITS):

			tick = start + bar * grid.bar + pos * grid.sixteenth

			if tick >= end:
				break

			length = grid.sixteenth * 2 if index == 0 else grid.sixteenth
			p.add_chord(tick, notes, velocity, length)


STYLES: typing.Dict[str, StyleFunction] = {
	"whole": _whole,
	"half": _half,
	"quarter": _quarter,
	"eighth": _eighth,
	"strum_down": _strum_down,
	"strum_up_down": _strum_up_down,
	"folk": _folk,
	"shuffle_strum": _shuffle_strum,
	"stride": _stride,
	"ragtime": _ragtime,
	"travis": _travis,
	"fingerpick": _fingerpick,
	"fingerpick_slow": _fingerpick_slow,
	"arpeggio_up": _arpeggio_up,
	"arpeggio_down": _arpeggio_down,
	"funk": _funk,
	"funk_muted": _funk_muted,
	"funk_chop": _funk_muted,
	"sixteenth": _sixteenth,
	"16th": _sixteenth,
	"ska": _ska,
	"skank": _ska,
	"reggae": _reggae,
	"one_drop": _reggae,
	"country": _country,
	"train": _country,
	"disco": _disco,
	"motown": _motown,
	"soul": _motown,
	"flamenco": _flamenco,
	"rumba": _flamenco,
}


def strum_pattern (p: backingtrack.pattern.Pattern, pattern: str, notes: typing.List[int], start: int, duration: int, ticks_per_bar: int, swing: float) -> None:

	"""
	Play a strum-notation pattern once per bar across ``duration``.

	The pattern length sets the grid: 4 characters are quarters, 8 are
	eighths, 16 are sixteenths. Swing delays odd steps.
	"""

	if not pattern:
		return

	step = ticks_per_bar // len(pattern)
	bars = _count(duration, ticks_per_bar)

	for bar in range(bars):

		bar_start = start + bar * ticks_per_bar

		for i, symbol in enumerate(pattern):

			tick = bar_start + i * step + backingtrack.swing.swing_offset(i, step, swing)

			if symbol in STRUM_SYMBOLS:
				velocity, up = STRUM_SYMBOLS[symbol]
				order = list(reversed(notes)) if up else notes
				p.add_strum(
					tick,
					order,
					velocity,
					tick + step - RELEASE_GAP,
					stagger = STRUM_DELAY,
					velocity_step = STRUM_VELOCITY_STEP,
					velocity_floor = backingtrack.constants.velocity.STRUM_VELOCITY_FLOOR
				)

			elif symbol in ("x", "X"):
				p.add_strum(
					tick,
					notes,
					MUTED_STRUM_VELOCITY,
					tick + step // 4 - RELEASE_GAP,
					stagger = STRUM_DELAY // 2,
					velocity_step = STRUM_VELOCITY_STEP,
					velocity_floor = backingtrack.constants.velocity.STRUM_VELOCITY_FLOOR
				)


def generate (
	chords: typing.Sequence[backingtrack.track.Chord],
	config: typing.Optional[backingtrack.track.RhythmConfig] = None,
	ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR
) -> typing.List[backingtrack.pattern.NoteEvent]:

	"""
	Generate the chord track (channel 0) for a chord list.

	Parameters:
		chords: The expanded progression, in order.
		config: Rhythm settings; ``None`` plays whole-note chords.
		ticks_per_bar: Grid size (1920 in 4/4).

	Example:
		```python
		chords = backingtrack.track.expand_progression("A7 A7 D7 A7")
		notes = generate(chords, RhythmConfig(style="whole"))
		sorted({n.start_tick for n in notes})  # [0, 1920, 3840, 5760]
		```
	"""

	config = config or backingtrack.track.RhythmConfig()

	style = (config.style or "whole").strip().lower()
	swing = backingtrack.swing.clamp_ratio(config.swing)
	accents = config.accent_beats or {1}

	if not config.pattern:

		if style not in STYLES:
			logger.warning(f"Unknown rhythm style '{config.style}', playing whole notes")

		style_function = STYLES.get(style, _whole)

	grid = _Grid(ticks_per_bar)
	p = backingtrack.pattern.Pattern(channel=backingtrack.constants.CHORDS_CHANNEL)
	cursor = 0

	for chord in chords:

		notes = chord.parsed().voicing()
		duration = chord.ticks(ticks_per_bar)

		if config.pattern:
			strum_pattern(p, config.pattern, notes, cursor, duration, ticks_per_bar, swing)
		else:
			style_function(p, notes, cursor, duration, grid, swing, accents)

		cursor += duration

	logger.debug(f"Rhythm '{config.pattern or style}': {len(p.notes)} notes over {len(chords)} chords")

	return p.sorted_notes()
