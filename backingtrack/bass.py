"""Bass generator: one small rhythmic template per style, built on the chord root.

Templates are written for one bar and repeat for every whole bar of the
chord. Notes that would start at or after the chord's end are dropped, so
half-bar chords only play the front of the template. The ``root`` style
instead holds a single note for the whole chord.

Slash chords play the slash note as the root (``Am/G`` walks from G).
"""

import logging
import typing

import backingtrack.chords
import backingtrack.constants
import backingtrack.constants.velocity
import backingtrack.pattern
import backingtrack.swing
import backingtrack.track


logger = logging.getLogger(__name__)

# Octave offsets added to the root pitch class.
BASS_OCTAVE = 36    # C2
SUB_OCTAVE = 28     # E1 region, for 808 and stride bass

# (tick within bar, pitch, duration, velocity)
TemplateNote = typing.Tuple[int, int, int, int]

TemplateFunction = typing.Callable[[int, backingtrack.chords.ChordSymbol, int, float], typing.List[TemplateNote]]


def _root_fifth (root: int, chord: backingtrack.chords.ChordSymbol, ticks_per_bar: int, swing: float) -> typing.List[TemplateNote]:

	half = ticks_per_bar // 2

	return [
		(0, root + BASS_OCTAVE, half - 10, 90),
		(half, root + BASS_OCTAVE + 7, half - 10, 85),
	]


def _walking_line (root: int, chord: backingtrack.chords.ChordSymbol) -> typing.List[int]:

	"""Root, third, fifth, then seventh (or sixth on triads)."""

	base = root + BASS_OCTAVE

	return [base, base + chord.third_interval(), base + 7, base + chord.seventh_interval()]


def _walking (root: int, chord: backingtrack.chords.ChordSymbol, ticks_per_bar: int, swing: float) -> typing.List[TemplateNote]:

	quarter = ticks_per_bar // 4

	return [(i * quarter, pitch, quarter - 10, 85) for i, pitch in enumerate(_walking_line(root, chord))]


def _swing_walking (root: int, chord: backingtrack.chords.ChordSymbol, ticks_per_bar: int, swing: float) -> typing.List[TemplateNote]:

	"""Walking line where the second note of each beat pair lands at the swing ratio of the pair."""

	quarter = ticks_per_bar // 4
	template = []

	for i, pitch in enumerate(_walking_line(root, chord)):

		pair_start = (i // 2) * 2 * quarter

		if i % 2 == 0:
			tick = pair_start
		else:
			tick = backingtrack.swing.swing_pair_tick(pair_start, quarter * 2, swing)

		template.append((tick, pitch, quarter - 10, 85))

	return template


def _stride (root: int, chord: backingtrack.chords.ChordSymbol, ticks_per_bar: int, swing: float) -> typing.List[TemplateNote]:

	"""The "oom" of oom-pah: low root on 1, low fifth on 3."""

	quarter = ticks_per_bar // 4

	return [
		(0, root + SUB_OCTAVE, quarter - 20, 95),
		(quarter * 2, root + 7 + SUB_OCTAVE, quarter - 20, 90),
	]


# 1-1-5-6-b7-6-5-5
BOOGIE_INTERVALS = [0, 0, 7, 9, 10, 9, 7, 7]


def _boogie (root: int, chord: backingtrack.chords.ChordSymbol, ticks_per_bar: int, swing: float) -> typing.List[TemplateNote]:

	eighth = ticks_per_bar // 8

	return [
		(i * eighth, root + BASS_OCTAVE + interval, eighth - 15, 85 + (i % 2) * 5)
		for i, interval in enumerate(BOOGIE_INTERVALS)
	]


def _sub (root: int, chord: backingtrack.chords.ChordSymbol, ticks_per_bar: int, swing: float) -> typing.List[TemplateNote]:

	"""808 sub: 1, and-of-2, 4."""

	quarter = ticks_per_bar // 4
	eighth = ticks_per_bar // 8
	low = root + SUB_OCTAVE

	return [
		(0, low, quarter + eighth, 110),
		(quarter + eighth, low, quarter, 100),
		(3 * quarter, low, quarter - 20, 105),
	]


def _sub_octave (root: int, chord: backingtrack.chords.ChordSymbol, ticks_per_bar: int, swing: float) -> typing.List[TemplateNote]:

	quarter = ticks_per_bar // 4
	eighth = ticks_per_bar // 8
	low = root + SUB_OCTAVE
	high = low + 12

	return [
		(0, low, eighth, 110),
		(eighth, high, eighth - 10, 95),
		(2 * eighth, low, quarter, 105),
		(2 * quarter, low, eighth, 110),
		(2 * quarter + eighth, high, eighth - 10, 90),
		(3 * quarter, low, quarter - 20, 100),
	]


# Sixteenth position, interval above the root, velocity.
FUNK_BASS_HITS = [(0, 0, 100), (2, 12, 70), (5, 0, 60), (6, 0, 90), (8, 0, 85), (10, 12, 70), (12, 0, 65), (14, 12, 75)]

FUNK_SIMPLE_HITS = [(0, 0, 95), (6, 7, 80), (10, 0, 75), (12, 7, 70), (15, 0, 80)]


def _funk (root: int, chord: backingtrack.chords.ChordSymbol, ticks_per_bar: int, swing: float) -> typing.List[TemplateNote]:

	sixteenth = ticks_per_bar // 16

	return [
		(pos * sixteenth, root + BASS_OCTAVE + interval, sixteenth - 15, velocity)
		for pos, interval, velocity in FUNK_BASS_HITS
	]


def _funk_simple (root: int, chord: backingtrack.chords.ChordSymbol, ticks_per_bar: int, swing: float) -> typing.List[TemplateNote]:

	sixteenth = ticks_per_bar // 16

	return [
		(pos * sixteenth, root + BASS_OCTAVE + interval, sixteenth * 2 - 15, velocity)
		for pos, interval, velocity in FUNK_SIMPLE_HITS
	]


TEMPLATES: typing.Dict[str, TemplateFunction] = {
	"root_fifth": _root_fifth,
	"walking": _walking,
	"swing_walking": _swing_walking,
	"stride": _stride,
	"boogie": _boogie,
	"808": _sub,
	"sub": _sub,
	"808_octave": _sub_octave,
	"edm": _sub_octave,
	"funk": _funk,
	"slap": _funk,
	"funk_simple": _funk_simple,
}

STYLES = frozenset(TEMPLATES) | {"root"}


def generate (
	chords: typing.Sequence[backingtrack.track.Chord],
	config: typing.Optional[backingtrack.track.BassConfig] = None,
	ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR
) -> typing.List[backingtrack.pattern.NoteEvent]:

	"""
	Generate the bass track (channel 1) for a chord list.

	Example:
		```python
		chords = [backingtrack.track.Chord("A7", 1)]
		notes = generate(chords, BassConfig(style="root_fifth"))
		[(n.start_tick, n.pitch) for n in notes]  # [(0, 45), (960, 52)]
		```
	"""

	config = config or backingtrack.track.BassConfig()

	style = (config.style or "root").strip().lower()
	swing = backingtrack.swing.clamp_ratio(config.swing)

	if style not in STYLES:
		logger.warning(f"Unknown bass style '{config.style}', playing roots")

	template_function = TEMPLATES.get(style)

	p = backingtrack.pattern.Pattern(channel=backingtrack.constants.BASS_CHANNEL)
	cursor = 0

	for chord in chords:

		symbol = chord.parsed()
		root = symbol.bass_root_pc
		duration = chord.ticks(ticks_per_bar)
		end = cursor + duration

		if template_function is None:
			p.add_note(cursor, root + BASS_OCTAVE, backingtrack.constants.velocity.DEFAULT_BASS_VELOCITY, duration - 10)

		else:
			template = template_function(root, symbol, ticks_per_bar, swing)

			for bar in range(max(1, duration // ticks_per_bar)):

				bar_start = cursor + bar * ticks_per_bar

				for offset, pitch, length, velocity in template:

					if bar_start + offset < end:
						p.add_note(bar_start + offset, pitch, velocity, length)

		cursor = end

	return p.sorted_notes()
