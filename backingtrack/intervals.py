"""Scales and the style-to-scale mapping used by the melody generator."""

import dataclasses
import typing

import backingtrack.chords


SCALE_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"pentatonic_minor": [0, 3, 5, 7, 10],
	"pentatonic_major": [0, 2, 4, 7, 9],
	"blues": [0, 3, 5, 6, 7, 10],
	"natural_minor": [0, 2, 3, 5, 7, 8, 10],
	"natural_major": [0, 2, 4, 5, 7, 9, 11],
	"dorian": [0, 2, 3, 5, 7, 9, 10],
	"mixolydian": [0, 2, 4, 5, 7, 9, 10],
	"harmonic_minor": [0, 2, 3, 5, 7, 8, 11],
}

SCALE_DISPLAY_NAMES: typing.Dict[str, str] = {
	"pentatonic_minor": "Minor Pentatonic",
	"pentatonic_major": "Major Pentatonic",
	"blues": "Blues",
	"natural_minor": "Natural Minor",
	"natural_major": "Major",
	"dorian": "Dorian",
	"mixolydian": "Mixolydian",
	"harmonic_minor": "Harmonic Minor",
}

SCALE_ALIASES: typing.Dict[str, str] = {
	"minor_pentatonic": "pentatonic_minor",
	"major_pentatonic": "pentatonic_major",
	"minor": "natural_minor",
	"aeolian": "natural_minor",
	"major": "natural_major",
	"ionian": "natural_major",
}

DEFAULT_SCALE = "pentatonic_minor"


@dataclasses.dataclass(frozen=True)
class Scale:

	"""
	A scale rooted on a pitch class.
	"""

	root_pc: int
	scale_type: str


	@property
	def intervals (self) -> typing.List[int]:

		"""Semitones from the root for each scale degree."""

		return SCALE_INTERVALS[self.scale_type]


	def contains (self, pitch: int) -> bool:

		"""Return True when a MIDI pitch belongs to the scale."""

		return (pitch - self.root_pc) % 12 in self.intervals


	def notes_in_range (self, low: int, high: int) -> typing.List[int]:

		"""Return every scale pitch in ``low..high`` inclusive, ascending.

		Example:
			```python
			Scale(9, "pentatonic_minor").notes_in_range(57, 69)
			# → [57, 60, 62, 64, 67, 69]
			```
		"""

		return [pitch for pitch in range(low, high + 1) if self.contains(pitch)]


	def name (self) -> str:

		"""Human-readable name, e.g. ``"A Blues"``."""

		root_name = backingtrack.chords.PC_TO_NOTE_NAME[self.root_pc]
		return f"{root_name} {SCALE_DISPLAY_NAMES[self.scale_type]}"


def normalize_scale_name (name: str) -> str:

	"""
	Resolve a scale name or alias to a key of ``SCALE_INTERVALS``.

	Raises:
		ValueError: If the name is unknown.
	"""

	key = name.strip().lower().replace(" ", "_").replace("-", "_")
	key = SCALE_ALIASES.get(key, key)

	if key not in SCALE_INTERVALS:
		raise ValueError(f"Unknown scale '{name}'. Available: {sorted(SCALE_INTERVALS)}")

	return key


def parse_key (key: typing.Optional[str]) -> typing.Tuple[int, bool]:

	"""Parse a key such as ``"Am"``, ``"Bb"`` or ``"F#m"`` into (root_pc, is_minor).

	An empty key means C major.

	Raises:
		ValueError: If the root is not a recognised note name.
	"""

	text = (key or "").strip()

	if not text:
		return 0, False

	lowered = text.lower()

	if lowered.endswith("min"):
		return backingtrack.chords.note_name_to_pc(text[:-3]), True

	if lowered.endswith("maj"):
		return backingtrack.chords.note_name_to_pc(text[:-3]), False

	if text.endswith("m"):
		return backingtrack.chords.note_name_to_pc(text[:-1]), True

	return backingtrack.chords.note_name_to_pc(text), False


def _jazz_scale_for_chord (chord: backingtrack.chords.ChordSymbol) -> Scale:

	"""Chord-scale choice for jazz: the mode that fits each chord quality."""

	if chord.quality == "major_7th":
		return Scale(chord.root_pc, "natural_major")

	if chord.quality in ("minor_7th", "minor"):
		return Scale(chord.root_pc, "dorian")

	if chord.quality == "diminished":
		return Scale(chord.root_pc, "harmonic_minor")

	return Scale(chord.root_pc, "mixolydian")


def scale_for_style (key: typing.Optional[str], style: typing.Optional[str], chord_symbol: typing.Optional[str] = None) -> Scale:

	"""
	Pick the melody scale for a track style, key and (for jazz) current chord.

	Style matching is by keyword, so ``"slow blues"`` and ``"blues_rock"``
	both select the blues scale:

	- blues: blues scale
	- jazz: chord-scale modes (Dorian over minor, Mixolydian over dominant)
	- rock: minor pentatonic
	- pop: natural minor or major
	- folk: natural minor, or major pentatonic in major keys
	- funk / soul: Dorian
	- country: major pentatonic
	- anything else: minor pentatonic
	"""

	root_pc, is_minor = parse_key(key)
	style_text = (style or "").lower()

	if "blues" in style_text:
		return Scale(root_pc, "blues")

	if "jazz" in style_text:
		if chord_symbol:
			return _jazz_scale_for_chord(backingtrack.chords.parse_chord_symbol(chord_symbol))
		return Scale(root_pc, "dorian" if is_minor else "mixolydian")

	if "rock" in style_text:
		return Scale(root_pc, "pentatonic_minor")

	if "pop" in style_text:
		return Scale(root_pc, "natural_minor" if is_minor else "natural_major")

	if "folk" in style_text:
		return Scale(root_pc, "natural_minor" if is_minor else "pentatonic_major")

	if "funk" in style_text or "soul" in style_text:
		return Scale(root_pc, "dorian")

	if "country" in style_text:
		return Scale(root_pc, "pentatonic_major")

	return Scale(root_pc, DEFAULT_SCALE)
