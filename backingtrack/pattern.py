import dataclasses
import typing

import backingtrack.constants
import backingtrack.constants.velocity


def clamp_midi (value: int) -> int:

	"""Clamp a pitch or velocity to the MIDI data range 0–127."""

	return max(backingtrack.constants.MIN_PITCH, min(backingtrack.constants.MAX_PITCH, int(value)))


@dataclasses.dataclass(frozen=True)
class NoteEvent:

	"""
	A single note at an absolute tick position.

	Pitch and velocity are clamped to 0–127 and the duration is at least one
	tick, so every event can be written to MIDI as-is.
	"""

	channel: int
	pitch: int
	velocity: int
	start_tick: int
	duration_ticks: int


	def __post_init__ (self) -> None:

		object.__setattr__(self, "pitch", clamp_midi(self.pitch))
		object.__setattr__(self, "velocity", clamp_midi(self.velocity))
		object.__setattr__(self, "start_tick", max(0, int(self.start_tick)))
		object.__setattr__(self, "duration_ticks", max(1, int(self.duration_ticks)))


	@property
	def end_tick (self) -> int:

		"""Tick of the matching note-off."""

		return self.start_tick + self.duration_ticks


	def transposed (self, semitones: int) -> "NoteEvent":

		"""Return a copy shifted by ``semitones``, clamped to the MIDI range."""

		return dataclasses.replace(self, pitch = self.pitch + semitones)


class Pattern:

	"""
	Collects the notes one generator produces for one MIDI channel.

	Generators describe notes the way a player would: a start tick and either
	a length or the tick where the note is released. Strummed chords spread
	their notes by a small per-string delay but release together.
	"""

	def __init__ (self, channel: int) -> None:

		self.channel = channel
		self.notes: typing.List[NoteEvent] = []


	def add_note (self, position: int, pitch: int, velocity: int, duration: int) -> None:

		"""
		Add a note starting at ``position`` and lasting ``duration`` ticks.
		"""

		self.notes.append(NoteEvent(
			channel = self.channel,
			pitch = pitch,
			velocity = velocity,
			start_tick = position,
			duration_ticks = duration
		))


	def add_note_until (self, position: int, release: int, pitch: int, velocity: int) -> None:

		"""Add a note held from ``position`` until the absolute tick ``release``."""

		self.add_note(position, pitch, velocity, release - position)


	def add_chord (self, position: int, pitches: typing.Sequence[int], velocity: int, duration: int) -> None:

		"""Add every pitch of a chord at the same tick with the same length."""

		for pitch in pitches:
			self.add_note(position, pitch, velocity, duration)


	def add_strum (
		self,
		position: int,
		pitches: typing.Sequence[int],
		velocity: int,
		release: int,
		stagger: int = 0,
		velocity_step: int = 0,
		velocity_floor: int = backingtrack.constants.velocity.MIN_VELOCITY
	) -> None:

		"""
		Add a strummed chord.

		Note ``i`` (in the order given) starts ``i * stagger`` ticks after
		``position`` and is ``i * velocity_step`` softer, never below
		``velocity_floor``. All notes are released at the absolute tick
		``release``. Pass the pitches high-to-low for an up-strum.
		"""

		for i, pitch in enumerate(pitches):

			vel = max(velocity_floor, velocity - i * velocity_step)

			self.add_note_until(position + i * stagger, release, pitch, vel)


	def sorted_notes (self) -> typing.List[NoteEvent]:

		"""Return the notes ordered by start tick (stable for equal ticks)."""

		return sorted(self.notes, key=lambda note: note.start_tick)
