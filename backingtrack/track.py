"""Track descriptions: the YAML file format and the chord list it expands to.

A track file looks like::

    track:
      title: Slow Blues in A
      key: A
      tempo: 72
      style: blues
    chord_progression:
      pattern: "A7 D7 A7*2 D7*2 A7*2 E7 D7 A7 E7"
      repeat: 2
    rhythm:
      style: shuffle_strum
      swing: 0.67
    bass:
      style: swing_walking
    drums:
      style: blues_shuffle
      intensity: 0.6
    melody:
      enabled: true
      style: blues_head

Every section except ``track`` and ``chord_progression`` is optional. Missing
or malformed sections raise ``TrackError`` naming the offending key.
"""

import dataclasses
import logging
import math
import os
import typing

import yaml

import backingtrack.chords
import backingtrack.constants
import backingtrack.intervals
import backingtrack.ticks


logger = logging.getLogger(__name__)

# Shortest chord allowed; zero or negative inline durations fall back to this.
MIN_CHORD_BARS = 0.5

DEFAULT_TEMPO = 120

DRUM_VOICES = ("kick", "snare", "hihat", "ride")

MELODY_STYLE_ALIASES: typing.Dict[str, str] = {
	"simple": "simple",
	"moderate": "moderate",
	"medium": "moderate",
	"active": "active",
	"busy": "active",
	"blues_head": "blues_head",
	"blueshead": "blues_head",
	"blues-head": "blues_head",
	"call_response": "call_response",
	"callresponse": "call_response",
	"call-response": "call_response",
	"aab": "call_response",
}


class TrackError (ValueError):

	"""Raised when a track description is missing or malformed."""


@dataclasses.dataclass
class Chord:

	"""
	One chord of the progression and how long it lasts, in (possibly fractional) bars.
	"""

	symbol: str
	bars: float


	def __post_init__ (self) -> None:

		if self.bars <= 0:
			self.bars = MIN_CHORD_BARS


	def ticks (self, ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR) -> int:

		"""Length of the chord in ticks."""

		return backingtrack.ticks.ticks_for_bars(self.bars, ticks_per_bar)


	def parsed (self) -> backingtrack.chords.ChordSymbol:

		"""The parsed chord symbol (root, quality, slash bass)."""

		return backingtrack.chords.parse_chord_symbol(self.symbol)


@dataclasses.dataclass
class TrackInfo:

	title: str = ""
	key: str = "C"
	tempo: int = DEFAULT_TEMPO
	time_signature: str = "4/4"
	style: str = ""
	capo: int = 0


@dataclasses.dataclass
class Progression:

	"""
	The ``chord_progression`` section: a chord pattern, its default chord length and a repeat count.
	"""

	pattern: str = ""
	bars_per_chord: float = 1
	repeat: int = 1


	def chords (self) -> typing.List[Chord]:

		"""Expand the pattern into the full chord list, repeats included."""

		return expand_progression(self.pattern, self.bars_per_chord, self.repeat)


	def total_bars (self) -> int:

		"""Length of the expanded progression in whole bars, rounding up."""

		return total_bars(self.chords())


@dataclasses.dataclass
class RhythmConfig:

	style: str = "whole"
	pattern: str = ""
	swing: float = 0.5
	accent: str = "1"
	instrument: str = ""


	@property
	def accent_beats (self) -> typing.Set[int]:

		"""Beats (1–4) to accent, parsed from a string like ``"1,3"``."""

		return parse_accent(self.accent)


@dataclasses.dataclass
class BassConfig:

	style: str = "root"
	swing: float = 0.5
	instrument: str = ""


@dataclasses.dataclass
class EuclideanSpec:

	"""
	An algorithmic drum pattern: ``hits`` onsets spread evenly over ``steps`` per bar.
	"""

	hits: int
	steps: int
	rotation: int = 0


@dataclasses.dataclass
class DrumVoice:

	"""
	One drum voice in an explicit kit: a Euclidean pattern, a 1-based beat list, or both.
	"""

	euclidean: typing.Optional[EuclideanSpec] = None
	beats: typing.List[int] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class DrumsConfig:

	style: str = ""
	intensity: float = 0.7
	voices: typing.Dict[str, DrumVoice] = dataclasses.field(default_factory=dict)


	@property
	def has_voices (self) -> bool:

		"""True when the kit is spelled out voice by voice rather than by a preset."""

		return bool(self.voices)


@dataclasses.dataclass
class MelodyConfig:

	enabled: bool = False
	style: str = "simple"
	density: float = 0.5
	octave: int = 4
	instrument: str = ""


@dataclasses.dataclass
class Track:

	"""
	A complete backing track description.
	"""

	info: TrackInfo
	progression: Progression
	rhythm: typing.Optional[RhythmConfig] = None
	bass: typing.Optional[BassConfig] = None
	drums: typing.Optional[DrumsConfig] = None
	melody: typing.Optional[MelodyConfig] = None
	scale_type: typing.Optional[str] = None


	def chords (self) -> typing.List[Chord]:

		return self.progression.chords()


	def total_bars (self) -> int:

		return self.progression.total_bars()


def parse_accent (accent: typing.Optional[str]) -> typing.Set[int]:

	"""Parse ``"1,3"`` into ``{1, 3}``; entries outside 1–4 are ignored."""

	beats: typing.Set[int] = set()

	for part in str(accent or "").split(","):

		part = part.strip()

		if part in ("1", "2", "3", "4"):
			beats.add(int(part))

	return beats


def parse_chord_with_duration (part: str, default_bars: float) -> Chord:

	"""Parse one pattern entry such as ``"Em*2"``, ``"G*0.5"`` or ``"D"``.

	An unparseable duration is kept as part of the symbol so the chord
	parser can report it.
	"""

	symbol, star, duration_text = part.partition("*")

	if star:
		try:
			return Chord(symbol = symbol, bars = float(duration_text))
		except ValueError:
			pass

	return Chord(symbol = part, bars = float(default_bars))


def expand_progression (pattern: typing.Union[str, typing.List[str]], bars_per_chord: float = 1, repeat: int = 1) -> typing.List[Chord]:

	"""
	Expand a chord pattern into a chord list.

	The pattern may be a whitespace-separated string or a list of strings
	(joined with spaces). The whole list is repeated ``repeat`` times.

	Example:
		```python
		expand_progression("A7 D7*2", repeat=2)
		# → [A7 1 bar, D7 2 bars, A7 1 bar, D7 2 bars]
		```
	"""

	if isinstance(pattern, (list, tuple)):
		pattern = " ".join(str(part) for part in pattern)

	chords = [parse_chord_with_duration(part, bars_per_chord) for part in str(pattern).split()]

	expanded: typing.List[Chord] = []

	for _ in range(max(1, repeat)):
		expanded.extend(dataclasses.replace(chord) for chord in chords)

	return expanded


def total_bars (chords: typing.Sequence[Chord]) -> int:

	"""Total length of a chord list in bars, rounded up to a whole bar."""

	return int(math.ceil(sum(chord.bars for chord in chords)))


def normalize_melody_style (style: typing.Optional[str]) -> str:

	"""Resolve a melody style alias; unknown styles become ``"simple"``."""

	return MELODY_STYLE_ALIASES.get((style or "").strip().lower(), "simple")


def _section (data: dict, key: str) -> typing.Optional[dict]:

	section = data.get(key)

	if section is None:
		return None

	if not isinstance(section, dict):
		raise TrackError(f"'{key}' must be a mapping, got {type(section).__name__}")

	return section


def _number (section: dict, key: str, default: typing.Any, kind: typing.Callable[[typing.Any], typing.Any], where: str) -> typing.Any:

	value = section.get(key)

	if value is None:
		return default

	try:
		return kind(value)
	except (TypeError, ValueError) as exc:
		raise TrackError(f"'{where}.{key}' must be a number, got {value!r}") from exc


def _parse_info (data: dict) -> TrackInfo:

	section = _section(data, "track")

	if section is None:
		raise TrackError("Missing required section 'track'")

	info = TrackInfo(
		title = str(section.get("title") or ""),
		key = str(section.get("key") or "C"),
		tempo = _number(section, "tempo", DEFAULT_TEMPO, int, "track"),
		time_signature = str(section.get("time_signature") or "4/4"),
		style = str(section.get("style") or ""),
		capo = _number(section, "capo", 0, int, "track"),
	)

	if info.tempo <= 0:
		raise TrackError(f"'track.tempo' must be positive, got {info.tempo}")

	if info.time_signature != "4/4":
		logger.warning(f"Time signature {info.time_signature} is not supported; playing in 4/4")

	try:
		backingtrack.intervals.parse_key(info.key)
	except ValueError as exc:
		raise TrackError(f"'track.key': {exc}") from exc

	return info


def _parse_progression (data: dict) -> Progression:

	section = _section(data, "chord_progression")

	if section is None:
		raise TrackError("Missing required section 'chord_progression'")

	pattern = section.get("pattern")

	if isinstance(pattern, (list, tuple)):
		pattern = " ".join(str(part) for part in pattern)

	if not isinstance(pattern, str) or not pattern.strip():
		raise TrackError("'chord_progression.pattern' must be a non-empty string or list of chords")

	progression = Progression(
		pattern = pattern,
		bars_per_chord = _number(section, "bars_per_chord", 1, float, "chord_progression") or 1,
		repeat = _number(section, "repeat", 1, int, "chord_progression") or 1,
	)

	for chord in progression.chords():
		try:
			chord.parsed()
		except ValueError as exc:
			raise TrackError(f"'chord_progression.pattern': {exc}") from exc

	return progression


def _parse_drum_voice (name: str, section: typing.Any) -> DrumVoice:

	if not isinstance(section, dict):
		raise TrackError(f"'drums.{name}' must be a mapping")

	voice = DrumVoice()

	euclid = section.get("euclidean")

	if euclid is not None:

		if not isinstance(euclid, dict):
			raise TrackError(f"'drums.{name}.euclidean' must be a mapping")

		where = f"drums.{name}.euclidean"
		spec = EuclideanSpec(
			hits = _number(euclid, "hits", 0, int, where),
			steps = _number(euclid, "steps", 16, int, where),
			rotation = _number(euclid, "rotation", 0, int, where),
		)

		if spec.steps <= 0:
			raise TrackError(f"'{where}.steps' must be positive, got {spec.steps}")

		voice.euclidean = spec

	beats = section.get("beats")

	if beats is not None:

		if not isinstance(beats, list):
			raise TrackError(f"'drums.{name}.beats' must be a list of beat numbers")

		try:
			voice.beats = [int(beat) for beat in beats]
		except (TypeError, ValueError) as exc:
			raise TrackError(f"'drums.{name}.beats' must contain numbers, got {beats!r}") from exc

	return voice


def parse_track (data: typing.Any) -> Track:

	"""
	Build a ``Track`` from an already-loaded YAML document.

	Raises:
		TrackError: If a required section is missing or a value is malformed.
	"""

	if not isinstance(data, dict):
		raise TrackError("A track file must contain a mapping at the top level")

	track = Track(info = _parse_info(data), progression = _parse_progression(data))

	rhythm = _section(data, "rhythm")

	if rhythm is not None:
		track.rhythm = RhythmConfig(
			style = str(rhythm.get("style") or "whole"),
			pattern = str(rhythm.get("pattern") or ""),
			swing = _number(rhythm, "swing", 0.5, float, "rhythm"),
			accent = str(rhythm.get("accent") or "1"),
			instrument = str(rhythm.get("instrument") or ""),
		)

	bass = _section(data, "bass")

	if bass is not None:
		track.bass = BassConfig(
			style = str(bass.get("style") or "root"),
			swing = _number(bass, "swing", 0.5, float, "bass"),
			instrument = str(bass.get("instrument") or ""),
		)

	drums = _section(data, "drums")

	if drums is not None:
		track.drums = DrumsConfig(
			style = str(drums.get("style") or ""),
			intensity = _number(drums, "intensity", 0.7, float, "drums"),
			voices = {name: _parse_drum_voice(name, drums[name]) for name in DRUM_VOICES if drums.get(name) is not None},
		)

	melody = _section(data, "melody")

	if melody is not None:
		track.melody = MelodyConfig(
			enabled = bool(melody.get("enabled", False)),
			style = normalize_melody_style(melody.get("style")),
			density = _number(melody, "density", 0.5, float, "melody"),
			octave = _number(melody, "octave", 4, int, "melody"),
			instrument = str(melody.get("instrument") or ""),
		)

	scale = _section(data, "scale")

	if scale is not None and scale.get("type"):
		try:
			track.scale_type = backingtrack.intervals.normalize_scale_name(str(scale["type"]))
		except ValueError as exc:
			raise TrackError(f"'scale.type': {exc}") from exc

	return track


def load_track (path: typing.Union[str, os.PathLike]) -> Track:

	"""
	Load and validate a track file.

	Raises:
		TrackError: If the file is not valid YAML or not a valid track.
		OSError: If the file cannot be read.
	"""

	with open(path, "r") as f:
		try:
			data = yaml.safe_load(f)
		except yaml.YAMLError as exc:
			raise TrackError(f"{path}: not valid YAML ({exc})") from exc

	track = parse_track(data)

	logger.info(f"Loaded '{track.info.title or path}': {len(track.chords())} chords, {track.total_bars()} bars at {track.info.tempo} BPM")

	return track
