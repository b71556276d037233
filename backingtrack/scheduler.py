"""Wall-clock playback of a built track through a synth.

The scheduler keeps a cursor into the (read-only) ``PlaybackData.events``
list and, on every ``tick()``, emits every event whose tick has been reached
according to the clock. Tempo changes are applied as a speed factor on
elapsed time rather than by rebuilding the events, so transpose, capo, mute,
seek, loop and tempo can all change while the track keeps playing.

Threading model: control methods may be called from the event loop, the
display thread or anywhere else. All state lives behind ``_lock``. Synth
commands are collected while the state lock is held and written after it is
released; the output lock is taken before the state lock is dropped so
commands reach the synth in the same order as the state changes that
produced them.
"""

import asyncio
import contextlib
import dataclasses
import logging
import threading
import time
import typing

import backingtrack.constants
import backingtrack.rhythm
import backingtrack.sequencer
import backingtrack.synth
import backingtrack.ticks


logger = logging.getLogger(__name__)

STOPPED = "stopped"
PLAYING = "playing"
PAUSED = "paused"

DEFAULT_TICK_INTERVAL = 0.005

# (synth method name, arguments)
Command = typing.Tuple[str, typing.Tuple[int, ...]]


@dataclasses.dataclass(frozen=True)
class PlaybackState:

	"""Position snapshot for the status line. All fields are zero-based."""

	bar: int
	beat: int
	strum: int
	paused: bool


@dataclasses.dataclass(frozen=True)
class LoopState:

	enabled: bool = False
	start_bar: int = 0
	end_bar: int = 0
	length: int = 0


class Scheduler:

	"""
	Plays ``PlaybackData`` in real time and takes live transport commands.

	Example:
		```python
		playback = backingtrack.sequencer.build_playback(track)
		scheduler = Scheduler(playback, synth)
		scheduler.start()
		await scheduler.run()
		```
	"""

	def __init__ (
		self,
		playback: backingtrack.sequencer.PlaybackData,
		synth: backingtrack.synth.Synth,
		clock: typing.Callable[[], float] = time.monotonic,
		tick_interval: float = DEFAULT_TICK_INTERVAL
	) -> None:

		"""
		Parameters:
			playback: Events and timing produced by ``build_playback``.
			synth: Where notes are sent.
			clock: Monotonic time source in seconds; tests pass a fake one.
			tick_interval: Seconds between loop iterations in ``run()``.
		"""

		if tick_interval <= 0:
			raise ValueError(f"tick_interval must be positive, got {tick_interval}")

		if playback.tempo <= 0:
			raise ValueError(f"Tempo must be positive, got {playback.tempo}")

		self.playback = playback
		self.synth = synth
		self.clock = clock
		self.tick_interval = tick_interval

		self._lock = threading.Lock()
		self._output_lock = threading.Lock()
		self._stop_event = asyncio.Event()

		self._state = STOPPED
		self._closed = False

		self._start_time = 0.0
		self._paused_at = 0.0
		self._paused_total = 0.0
		self._seek_offset = 0.0
		self._cursor = 0

		self._active_notes: typing.Set[typing.Tuple[int, int]] = set()

		self._transpose = 0
		self._capo = 0
		self._tempo_offset = 0.0
		self._muted: typing.Set[int] = set()
		self._loop = LoopState()


	# -----------------------------------------------------------------
	# Locking and output
	# -----------------------------------------------------------------

	@contextlib.contextmanager
	def _transaction (self) -> typing.Iterator[typing.List[Command]]:

		"""
		Hold the state lock for the body, then send the queued commands.

		The body appends commands to the yielded list. They are written after
		the state lock is released, under the output lock.
		"""

		outgoing: typing.List[Command] = []

		self._lock.acquire()

		try:
			yield outgoing
			self._output_lock.acquire()
		finally:
			self._lock.release()

		try:
			for name, args in outgoing:
				getattr(self.synth, name)(*args)
		finally:
			self._output_lock.release()


	def _flush_notes (self, outgoing: typing.List[Command], channel: typing.Optional[int] = None) -> None:

		"""Queue a note-off for every active note (optionally one channel only). Lock held."""

		for key in sorted(self._active_notes):

			if channel is not None and key[0] != channel:
				continue

			outgoing.append(("note_off", key))
			self._active_notes.discard(key)


	def _all_notes_off (self, outgoing: typing.List[Command]) -> None:

		for channel in range(backingtrack.constants.MIDI_CHANNEL_COUNT):
			outgoing.append(("control_change", (channel, backingtrack.constants.CC_ALL_NOTES_OFF, 0)))


	# -----------------------------------------------------------------
	# Time
	# -----------------------------------------------------------------

	def _speed_factor (self) -> float:

		return (self.playback.tempo + self._tempo_offset) / self.playback.tempo


	def _reference_time (self) -> float:

		"""Now, or the moment playback was paused."""

		return self._paused_at if self._state == PAUSED else self.clock()


	def _elapsed (self) -> float:

		"""Speed-adjusted elapsed time in score seconds at the base tempo. Lock held."""

		real = self._reference_time() - self._start_time - self._paused_total + self._seek_offset

		return max(0.0, real * self._speed_factor())


	def _current_tick (self) -> int:

		if self._state == STOPPED:
			return backingtrack.ticks.bar_to_tick(0)

		return backingtrack.ticks.seconds_to_tick(self._elapsed(), self.playback.tempo)


	def _current_bar (self) -> int:

		return backingtrack.ticks.tick_to_bar(self._current_tick(), self.playback.ticks_per_bar)


	def _set_position (self, score_seconds: float) -> None:

		"""Choose the seek offset so that ``_elapsed()`` returns ``score_seconds``. Lock held."""

		real = self._reference_time() - self._start_time - self._paused_total
		self._seek_offset = score_seconds / self._speed_factor() - real


	def _seek_internal (self, bar: int, outgoing: typing.List[Command]) -> int:

		"""Flush, clamp ``bar`` and move playback there. Lock held. Returns the clamped bar."""

		bar = max(0, min(bar, self.playback.total_bars - 1))

		self._flush_notes(outgoing)

		target_tick = backingtrack.ticks.bar_to_tick(bar, self.playback.ticks_per_bar)

		# Nudge by half a tick so float error can never land just before the bar.
		half_tick = backingtrack.ticks.tick_duration(self.playback.tempo) / 2
		self._set_position(backingtrack.ticks.tick_to_seconds(target_tick, self.playback.tempo) + half_tick)

		self._cursor = len(self.playback.events)

		for index, event in enumerate(self.playback.events):
			if event.tick >= target_tick:
				self._cursor = index
				break

		return bar


	# -----------------------------------------------------------------
	# Transport
	# -----------------------------------------------------------------

	def start (self) -> None:

		"""Send the instrument programs and start playing from the top."""

		with self._transaction() as outgoing:

			if self._closed:
				raise RuntimeError("Scheduler has been stopped")

			for channel, program in sorted(self.playback.programs.items()):
				outgoing.append(("program_change", (channel, program)))

			self._start_time = self.clock()
			self._paused_at = 0.0
			self._paused_total = 0.0
			self._seek_offset = 0.0
			self._cursor = 0
			self._capo = max(0, min(self.playback.capo, backingtrack.constants.MAX_CAPO))
			self._state = PLAYING
			self._stop_event.clear()

		logger.info(f"Playing {self.playback.title or 'track'}: {self.playback.total_bars} bars at {self.playback.tempo:g} BPM")


	def tick (self) -> None:

		"""
		Run one iteration of the playback loop: emit every event that is due.

		Does nothing unless playing. Reaching the end of the track flushes the
		sounding notes and stops.

		Raises:
			SynthError: When the synth rejects a command. Active notes are
				cleared and playback is stopped before the error propagates.
		"""

		try:
			with self._transaction() as outgoing:
				self._tick_locked(outgoing)

		except backingtrack.synth.SynthError:
			with self._lock:
				self._active_notes.clear()
				self._state = STOPPED
			self._stop_event.set()
			raise


	def _tick_locked (self, outgoing: typing.List[Command]) -> None:

		if self._state != PLAYING:
			return

		current_tick = self._current_tick()

		if self._loop.enabled and self._loop.end_bar > 0:

			loop_end_tick = backingtrack.ticks.bar_to_tick(self._loop.end_bar, self.playback.ticks_per_bar)

			if current_tick >= loop_end_tick:
				self._seek_internal(self._loop.start_bar, outgoing)
				logger.debug(f"Loop: back to bar {self._loop.start_bar + 1}")
				return

		if current_tick >= self.playback.total_ticks:
			self._flush_notes(outgoing)
			self._state = STOPPED
			self._stop_event.set()
			logger.info("Reached the end of the track")
			return

		events = self.playback.events

		while self._cursor < len(events) and events[self._cursor].tick <= current_tick:
			self._emit(events[self._cursor], outgoing)
			self._cursor += 1


	def _emit (self, event: backingtrack.sequencer.PlaybackEvent, outgoing: typing.List[Command]) -> None:

		"""Queue one event after mute, capo and transpose. Lock held."""

		track = backingtrack.constants.CHANNEL_TRACKS.get(event.channel)

		if track is not None and track in self._muted:
			return

		pitch = event.pitch

		if event.channel != backingtrack.constants.DRUMS_CHANNEL:
			pitch = max(backingtrack.constants.MIN_PITCH, min(backingtrack.constants.MAX_PITCH, pitch + self._capo + self._transpose))

		key = (event.channel, pitch)

		if event.is_note_on:

			if key in self._active_notes:
				logger.debug(f"Retriggering active note ch={event.channel} pitch={pitch} at tick {event.tick}")
				outgoing.append(("note_off", key))

			outgoing.append(("note_on", (event.channel, pitch, event.velocity)))
			self._active_notes.add(key)

		elif key in self._active_notes:

			outgoing.append(("note_off", key))
			self._active_notes.discard(key)


	async def run (self) -> None:

		"""Call ``tick()`` every ``tick_interval`` seconds until stopped or the track ends."""

		while not self._stop_event.is_set():

			self.tick()

			try:
				await asyncio.wait_for(self._stop_event.wait(), timeout=self.tick_interval)
			except asyncio.TimeoutError:
				pass


	async def play (self) -> None:

		"""
		Convenience method to start playback and wait for completion.
		"""

		self.start()

		try:
			await self.run()
		finally:
			self.stop()


	def pause (self) -> None:

		"""Silence the sounding notes and freeze the position."""

		with self._transaction() as outgoing:

			if self._state != PLAYING:
				return

			self._flush_notes(outgoing)
			self._paused_at = self.clock()
			self._state = PAUSED

		logger.info("Paused")


	def resume (self) -> None:

		with self._transaction():

			if self._state != PAUSED:
				return

			self._paused_total += self.clock() - self._paused_at
			self._state = PLAYING

		logger.info("Resumed")


	def toggle_pause (self) -> None:

		with self._lock:
			paused = self._state == PAUSED

		if paused:
			self.resume()
		else:
			self.pause()


	def seek_to_bar (self, bar: int) -> None:

		"""
		Jump to a zero-based bar, clamped to the track.

		Sounding notes are released; playback continues from the first event
		at or after the bar's first tick.
		"""

		with self._transaction() as outgoing:

			if self._state == STOPPED:
				return

			bar = self._seek_internal(bar, outgoing)

		logger.info(f"Seek to bar {bar + 1}")


	def seek (self, bars: int) -> None:

		"""Jump forward (positive) or back (negative) by a number of bars."""

		with self._transaction() as outgoing:

			if self._state == STOPPED:
				return

			bar = self._seek_internal(self._current_bar() + bars, outgoing)

		logger.info(f"Seek to bar {bar + 1}")


	# -----------------------------------------------------------------
	# Live controls
	# -----------------------------------------------------------------

	def transpose (self, semitones: int) -> None:

		"""Shift every pitched part by ``semitones``, added to the current transposition."""

		with self._transaction() as outgoing:
			self._flush_notes(outgoing)
			self._transpose += semitones
			total = self._transpose

		logger.info(f"Transpose {total:+d}")


	def set_capo (self, fret: int) -> None:

		"""Set the capo fret (0 to 12); pitched parts sound ``fret`` semitones higher."""

		with self._transaction() as outgoing:
			self._flush_notes(outgoing)
			self._capo = max(0, min(fret, backingtrack.constants.MAX_CAPO))
			capo = self._capo

		logger.info(f"Capo {capo}")


	def toggle_track_mute (self, track: int) -> None:

		"""
		Mute or unmute one part: 0 drums, 1 bass, 2 chords, 3 melody.

		Muting releases the notes sounding on that part's channel. Other
		indices are ignored.
		"""

		channel = backingtrack.constants.TRACK_CHANNELS.get(track)

		if channel is None:
			return

		with self._transaction() as outgoing:

			if track in self._muted:
				self._muted.discard(track)
				muted = False
			else:
				self._muted.add(track)
				self._flush_notes(outgoing, channel)
				muted = True

		logger.info(f"{backingtrack.constants.TRACK_NAMES[track].capitalize()} {'muted' if muted else 'unmuted'}")


	def adjust_tempo (self, delta: float) -> None:

		"""
		Change the playing speed by ``delta`` BPM.

		The position is kept, so the track carries on from the same tick. The
		effective tempo never drops below 20 BPM.
		"""

		with self._transaction():

			score_seconds = self._elapsed() if self._state != STOPPED else 0.0

			minimum_offset = backingtrack.constants.MIN_TEMPO_BPM - self.playback.tempo
			self._tempo_offset = max(minimum_offset, self._tempo_offset + delta)

			if self._state != STOPPED:
				self._set_position(score_seconds)

			effective = self.playback.tempo + self._tempo_offset

		logger.info(f"Tempo {effective:g} BPM")


	def set_loop (self, length: int) -> None:

		"""Loop ``length`` bars starting at the current bar. Zero clears the loop."""

		with self._lock:

			if length <= 0:
				self._loop = LoopState()
				loop = self._loop

			else:
				start_bar = self._current_bar()
				end_bar = min(start_bar + length, self.playback.total_bars)
				self._loop = LoopState(True, start_bar, end_bar, length)
				loop = self._loop

		if loop.enabled:
			logger.info(f"Loop bars {loop.start_bar + 1}-{loop.end_bar}")
		else:
			logger.info("Loop off")


	def toggle_loop (self, length: int) -> None:

		"""Clear the loop if it already has this length, otherwise loop ``length`` bars from here."""

		with self._lock:
			same = self._loop.enabled and self._loop.length == length

		self.set_loop(0 if same else length)


	def panic (self) -> None:

		"""Release every tracked note, then send All Notes Off on all channels."""

		logger.info("Panic: sending all notes off.")

		with self._transaction() as outgoing:
			self._flush_notes(outgoing)
			self._all_notes_off(outgoing)


	def stop (self) -> None:

		"""
		Stop playback, silence everything and close the synth.

		Safe to call more than once.
		"""

		with self._lock:

			if self._closed:
				return

			self._closed = True

		try:
			with self._transaction() as outgoing:
				self._flush_notes(outgoing)
				self._all_notes_off(outgoing)
				self._state = STOPPED
				self._stop_event.set()

		except backingtrack.synth.SynthError as exc:
			logger.warning(f"Could not silence the synth while stopping: {exc}")
			with self._lock:
				self._active_notes.clear()
				self._state = STOPPED
			self._stop_event.set()

		self.synth.close(timeout=backingtrack.synth.CLOSE_TIMEOUT)

		logger.info("Scheduler stopped")


	# -----------------------------------------------------------------
	# Queries
	# -----------------------------------------------------------------

	def get_playback_state (self) -> PlaybackState:

		"""Current bar, beat and strum slot. While paused the position is frozen."""

		with self._lock:
			tick = self._current_tick()
			paused = self._state == PAUSED

		ticks_per_bar = self.playback.ticks_per_bar
		style = (self.playback.rhythm_style or "").strip().lower()
		strums_per_bar = 16 if style in backingtrack.rhythm.SIXTEENTH_STYLES else 8

		return PlaybackState(
			bar = backingtrack.ticks.tick_to_bar(tick, ticks_per_bar),
			beat = backingtrack.ticks.tick_to_beat(tick, ticks_per_bar),
			strum = (tick % ticks_per_bar) // (ticks_per_bar // strums_per_bar),
			paused = paused
		)


	@property
	def transpose_semitones (self) -> int:

		with self._lock:
			return self._transpose


	@property
	def capo (self) -> int:

		with self._lock:
			return self._capo


	def is_track_muted (self, track: int) -> bool:

		with self._lock:
			return track in self._muted


	@property
	def tempo (self) -> typing.Tuple[float, float]:

		"""(effective BPM, offset from the track tempo)."""

		with self._lock:
			return self.playback.tempo + self._tempo_offset, self._tempo_offset


	@property
	def loop (self) -> LoopState:

		with self._lock:
			return self._loop


	@property
	def current_bar (self) -> int:

		with self._lock:
			return self._current_bar()


	@property
	def is_playing (self) -> bool:

		"""True while playing or paused."""

		with self._lock:
			return self._state != STOPPED


	@property
	def is_paused (self) -> bool:

		with self._lock:
			return self._state == PAUSED
