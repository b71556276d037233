"""Event sequencer: merges the generated parts and renders them for playback or for a MIDI file.

Same-pitch overlaps on one channel are resolved here, before anything is
played: the earlier note is cut short so it ends where the later one
starts, and dropped entirely if the two start together. At equal ticks a
note-off is always ordered before a note-on, so a cut note is released
before the same pitch sounds again.
"""

import dataclasses
import itertools
import logging
import os
import typing

import mido

import backingtrack.bass
import backingtrack.constants
import backingtrack.constants.gm_instruments
import backingtrack.drums
import backingtrack.melody
import backingtrack.pattern
import backingtrack.rhythm
import backingtrack.track


logger = logging.getLogger(__name__)

MIDI_FILE_TICKS_PER_BEAT = backingtrack.constants.TICKS_PER_QUARTER


@dataclasses.dataclass(frozen=True)
class PlaybackEvent:

	"""
	A single note-on or note-off at an absolute tick.
	"""

	tick: int
	channel: int
	pitch: int
	velocity: int
	is_note_on: bool


@dataclasses.dataclass
class PlaybackData:

	"""
	Everything the scheduler needs to play a track.

	``events`` is sorted by tick and is not modified after construction.
	"""

	events: typing.List[PlaybackEvent]
	ticks_per_bar: int
	total_ticks: int
	total_bars: int
	tempo: float
	programs: typing.Dict[int, int] = dataclasses.field(default_factory=dict)
	rhythm_style: str = "whole"
	capo: int = 0
	title: str = ""


def merge (streams: typing.Iterable[typing.Iterable[backingtrack.pattern.NoteEvent]]) -> typing.List[backingtrack.pattern.NoteEvent]:

	"""
	Merge per-instrument note lists into one list ordered by start tick.

	The sort is stable, so notes at the same tick keep the order they were
	generated in. Overlapping notes with the same channel and pitch are
	truncated (see the module docstring).
	"""

	ordered = sorted(itertools.chain.from_iterable(streams), key=lambda note: note.start_tick)

	merged: typing.List[typing.Optional[backingtrack.pattern.NoteEvent]] = []
	last_index: typing.Dict[typing.Tuple[int, int], int] = {}
	overlaps = 0

	for note in ordered:

		key = (note.channel, note.pitch)
		index = last_index.get(key)

		if index is not None:

			previous = merged[index]

			if previous is not None and previous.end_tick > note.start_tick:

				overlaps += 1
				length = note.start_tick - previous.start_tick

				if length <= 0:
					merged[index] = None
					logger.debug(f"Dropped duplicate note ch={note.channel} pitch={note.pitch} at tick {note.start_tick}")
				else:
					merged[index] = dataclasses.replace(previous, duration_ticks=length)
					logger.debug(f"Truncated note ch={note.channel} pitch={note.pitch} at tick {previous.start_tick} to {length} ticks")

		last_index[key] = len(merged)
		merged.append(note)

	if overlaps:
		logger.info(f"Resolved {overlaps} overlapping same-pitch notes")

	return [note for note in merged if note is not None]


def to_playback_events (notes: typing.Iterable[backingtrack.pattern.NoteEvent]) -> typing.List[PlaybackEvent]:

	"""Flatten notes into on/off events sorted by tick, note-offs first at equal ticks."""

	events: typing.List[PlaybackEvent] = []

	for note in notes:
		events.append(PlaybackEvent(note.start_tick, note.channel, note.pitch, note.velocity, True))
		events.append(PlaybackEvent(note.end_tick, note.channel, note.pitch, 0, False))

	events.sort(key=lambda event: (event.tick, event.is_note_on))

	return events


def to_track_messages (
	notes: typing.Iterable[backingtrack.pattern.NoteEvent],
	channel: int,
	program: typing.Optional[int] = None,
	name: typing.Optional[str] = None
) -> mido.MidiTrack:

	"""
	Build one delta-timed MIDI track for the notes on ``channel``.

	A program change is placed at tick 0 when ``program`` is given. Notes on
	other channels are ignored.
	"""

	track = mido.MidiTrack()

	if name:
		track.append(mido.MetaMessage('track_name', name=name, time=0))

	if program is not None:
		track.append(mido.Message('program_change', channel=channel, program=program, time=0))

	last_tick = 0

	for event in to_playback_events(note for note in notes if note.channel == channel):

		delta = max(0, event.tick - last_tick)

		if event.is_note_on:
			message = mido.Message('note_on', channel=channel, note=event.pitch, velocity=event.velocity, time=delta)
		else:
			message = mido.Message('note_off', channel=channel, note=event.pitch, velocity=0, time=delta)

		track.append(message)
		last_tick = event.tick

	return track


def programs_for (track: backingtrack.track.Track) -> typing.Dict[int, int]:

	"""GM program per melodic channel, from the instrument names in the track."""

	instruments = backingtrack.constants.gm_instruments

	return {
		backingtrack.constants.CHORDS_CHANNEL: instruments.program_for(track.rhythm.instrument if track.rhythm else None, instruments.DEFAULT_CHORDS_PROGRAM),
		backingtrack.constants.BASS_CHANNEL: instruments.program_for(track.bass.instrument if track.bass else None, instruments.DEFAULT_BASS_PROGRAM),
		backingtrack.constants.MELODY_CHANNEL: instruments.program_for(track.melody.instrument if track.melody else None, instruments.DEFAULT_MELODY_PROGRAM),
	}


def generate_parts (
	track: backingtrack.track.Track,
	seed: typing.Optional[int] = None,
	drum_hit_ticks: int = backingtrack.drums.PLAYBACK_HIT_TICKS,
	ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR
) -> typing.Dict[str, typing.List[backingtrack.pattern.NoteEvent]]:

	"""
	Run every generator the track asks for and return the notes per part.

	Chords are always generated; bass, drums and melody only when their
	sections are present (melody also needs ``enabled: true``).
	"""

	chords = track.chords()
	parts: typing.Dict[str, typing.List[backingtrack.pattern.NoteEvent]] = {
		"chords": backingtrack.rhythm.generate(chords, track.rhythm, ticks_per_bar),
	}

	if track.bass is not None:
		parts["bass"] = backingtrack.bass.generate(chords, track.bass, ticks_per_bar)

	if track.drums is not None:
		parts["drums"] = backingtrack.drums.generate(chords, track.drums, ticks_per_bar, hit_ticks=drum_hit_ticks)

	if track.melody is not None and track.melody.enabled:
		parts["melody"] = backingtrack.melody.generate(
			chords,
			track.melody,
			ticks_per_bar,
			key = track.info.key,
			style = track.info.style,
			scale_type = track.scale_type,
			seed = seed
		)

	logger.info("Generated " + ", ".join(f"{len(notes)} {name}" for name, notes in parts.items()) + " notes")

	return parts


def build_playback (track: backingtrack.track.Track, seed: typing.Optional[int] = None) -> PlaybackData:

	"""
	Generate, merge and flatten a track into ``PlaybackData`` for the scheduler.

	Parameters:
		track: The loaded track description.
		seed: Melody seed; the same seed always produces the same events.
	"""

	ticks_per_bar = backingtrack.constants.TICKS_PER_BAR
	parts = generate_parts(track, seed=seed)
	notes = merge(parts.values())

	total_ticks = sum(chord.ticks(ticks_per_bar) for chord in track.chords())

	return PlaybackData(
		events = to_playback_events(notes),
		ticks_per_bar = ticks_per_bar,
		total_ticks = total_ticks,
		total_bars = max(1, total_ticks // ticks_per_bar),
		tempo = float(track.info.tempo),
		programs = programs_for(track),
		rhythm_style = (track.rhythm.style if track.rhythm else "whole"),
		capo = track.info.capo,
		title = track.info.title,
	)


def write_midi_file (track: backingtrack.track.Track, path: typing.Union[str, os.PathLike], seed: typing.Optional[int] = None) -> mido.MidiFile:

	"""
	Write a type 1 Standard MIDI File at 480 ticks per quarter.

	Track 0 carries the tempo; then one track each for chords, bass, melody
	and drums, as present. Drum hits use a short 10-tick gate.
	"""

	parts = generate_parts(track, seed=seed, drum_hit_ticks=backingtrack.drums.EXPORT_HIT_TICKS)
	notes = merge(parts.values())
	programs = programs_for(track)

	mid = mido.MidiFile(type=1, ticks_per_beat=MIDI_FILE_TICKS_PER_BEAT)

	tempo_track = mido.MidiTrack()

	if track.info.title:
		tempo_track.append(mido.MetaMessage('track_name', name=track.info.title, time=0))

	tempo_track.append(mido.MetaMessage('time_signature', numerator=4, denominator=4, time=0))
	tempo_track.append(mido.MetaMessage('set_tempo', tempo=mido.bpm2tempo(track.info.tempo), time=0))
	mid.tracks.append(tempo_track)

	layout = [
		("chords", backingtrack.constants.CHORDS_CHANNEL),
		("bass", backingtrack.constants.BASS_CHANNEL),
		("melody", backingtrack.constants.MELODY_CHANNEL),
		("drums", backingtrack.constants.DRUMS_CHANNEL),
	]

	for name, channel in layout:

		if name not in parts:
			continue

		mid.tracks.append(to_track_messages(notes, channel, programs.get(channel), name=name))

	mid.save(os.fspath(path))

	logger.info(f"Wrote {path}: {len(mid.tracks)} tracks, {len(notes)} notes at {track.info.tempo} BPM")

	return mid
