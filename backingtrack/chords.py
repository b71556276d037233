"""Chord symbol parsing, voicing and pitch class utilities.

Chord symbols in track files use lead-sheet shorthand: a root (``A``, ``F#``,
``Bb``), an optional quality suffix (``m``, ``7``, ``maj7``, ``m7``, ``5``,
``dim``, ``aug``) and an optional slash bass (``Am/G``).

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g., `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `PC_TO_NOTE_NAME`: Maps pitch classes to note names
- `CHORD_INTERVALS`: Maps chord quality names to voicing intervals (semitones from root)
- `CHORD_SUFFIX`: Maps chord quality names to human-readable suffixes (e.g., `"m"`, `"7"`)

Chords are voiced in close position from the root in octave 3 (MIDI 48-59).
"""

import dataclasses
import functools
import typing


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"Fb": 4,
	"E#": 5,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
	"Cb": 11,
	"B#": 0,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]

# Octave-3 C; chord voicings start from root_pc + VOICING_BASE.
VOICING_BASE = 48


CHORD_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 4, 7],
	"minor": [0, 3, 7],
	"diminished": [0, 3, 6],
	"augmented": [0, 4, 8],
	"dominant_7th": [0, 4, 7, 10],
	"major_7th": [0, 4, 7, 11],
	"minor_7th": [0, 3, 7, 10],
	"power": [0, 7, 12],
}

CHORD_SUFFIX: typing.Dict[str, str] = {
	"major": "",
	"minor": "m",
	"diminished": "dim",
	"augmented": "aug",
	"dominant_7th": "7",
	"major_7th": "maj7",
	"minor_7th": "m7",
	"power": "5",
}

# Quality suffixes recognised exactly. Anything not listed (e.g. "9", "sus4")
# is voiced as a major triad.
_EXACT_QUALITIES: typing.Dict[str, str] = {
	"": "major",
	"M": "major",
	"maj": "major",
	"m": "minor",
	"min": "minor",
	"-": "minor",
	"7": "dominant_7th",
	"^7": "major_7th",
	"M7": "major_7th",
	"5": "power",
	"dim": "diminished",
	"o": "diminished",
	"aug": "augmented",
	"+": "augmented",
}


def note_name_to_pc (name: str) -> int:

	"""Validate a note name and return its pitch class (0–11).

	The letter is case-insensitive; the accidental must be ``#`` or ``b``.

	Raises:
		ValueError: If the name is not recognised.

	Example:
		```python
		note_name_to_pc("F#")  # → 6
		note_name_to_pc("bb")  # → 10
		```
	"""

	cleaned = name.strip()

	if cleaned:
		cleaned = cleaned[0].upper() + cleaned[1:]

	if cleaned not in NOTE_NAME_TO_PC:
		raise ValueError(
			f"Unknown note name: {name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[cleaned]


def parse_quality (suffix: str) -> str:

	"""Map a chord suffix (the part after the root) to a quality name."""

	if suffix in _EXACT_QUALITIES:
		return _EXACT_QUALITIES[suffix]

	if suffix.startswith("maj7"):
		return "major_7th"

	if suffix.startswith("m7") or suffix.startswith("min7") or suffix.startswith("-7"):
		return "minor_7th"

	return "major"


@dataclasses.dataclass(frozen=True)
class ChordSymbol:

	"""
	A parsed chord symbol: root pitch class, quality and optional slash bass.
	"""

	symbol: str
	root_pc: int
	quality: str
	bass_pc: typing.Optional[int] = None


	def intervals (self) -> typing.List[int]:

		"""
		Return the voicing intervals for this chord quality.
		"""

		return list(CHORD_INTERVALS[self.quality])


	def voicing (self) -> typing.List[int]:

		"""Return the MIDI notes of the close-position voicing, lowest first.

		Example:
			```python
			parse_chord_symbol("A7").voicing()  # [57, 61, 64, 67]
			```
		"""

		root = VOICING_BASE + self.root_pc

		return [root + interval for interval in self.intervals()]


	@property
	def bass_root_pc (self) -> int:

		"""Pitch class the bass should play: the slash note, else the root."""

		return self.root_pc if self.bass_pc is None else self.bass_pc


	def third_interval (self) -> int:

		"""Semitones from the root to the chord's third."""

		if self.quality in ("minor", "minor_7th", "diminished"):
			return 3

		return 4


	def seventh_interval (self) -> int:

		"""Semitones from the root to the seventh, or a major sixth when the chord has none."""

		if self.quality in ("dominant_7th", "minor_7th"):
			return 10

		if self.quality == "major_7th":
			return 11

		return 9


	def tones (self) -> typing.List[int]:

		"""Return the chord tones as pitch classes: root, third, fifth and any seventh."""

		if self.quality == "diminished":
			intervals = [0, 3, 6]
		elif self.quality == "augmented":
			intervals = [0, 4, 8]
		elif self.quality == "power":
			intervals = [0, 7]
		elif self.quality in ("minor", "minor_7th"):
			intervals = [0, 3, 7]
		else:
			intervals = [0, 4, 7]

		if self.quality == "major_7th":
			intervals.append(11)
		elif self.quality in ("dominant_7th", "minor_7th"):
			intervals.append(10)

		return [(self.root_pc + interval) % 12 for interval in intervals]


	def name (self) -> str:

		"""
		Return a normalised chord name, e.g. ``"Am7"`` or ``"C/G"``.
		"""

		name = PC_TO_NOTE_NAME[self.root_pc] + CHORD_SUFFIX.get(self.quality, "")

		if self.bass_pc is not None:
			name += "/" + PC_TO_NOTE_NAME[self.bass_pc]

		return name


@functools.lru_cache(maxsize=512)
def parse_chord_symbol (symbol: str) -> ChordSymbol:

	"""Parse a chord symbol such as ``"F#m7"`` or ``"Am/G"``.

	Raises:
		ValueError: If the root or slash bass note is not a recognised note name.

	Example:
		```python
		chord = parse_chord_symbol("Am/G")
		chord.root_pc       # → 9
		chord.quality       # → "minor"
		chord.bass_root_pc  # → 7
		```
	"""

	text = symbol.strip()

	if not text:
		raise ValueError("Empty chord symbol")

	main, _, slash = text.partition("/")

	root_len = 2 if len(main) > 1 and main[1] in ("#", "b") else 1
	root_pc = note_name_to_pc(main[:root_len])
	quality = parse_quality(main[root_len:])

	bass_pc: typing.Optional[int] = None

	if slash:
		bass_pc = note_name_to_pc(slash)

	return ChordSymbol(symbol=text, root_pc=root_pc, quality=quality, bass_pc=bass_pc)
