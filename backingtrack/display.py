"""Live terminal status line for the ``play`` command.

Shows the transport position and the live controls on one line of stderr,
redrawn in place. Log messages scroll above it without disruption::

	120 BPM  Key: A  Bar: 3/24  Beat: 2  Strum: 5/8  Chord: D7  Capo: 2  Mute: drums  Loop: 3-4

The ``play`` command calls :meth:`Display.update` a few times a second; all
state is read from the scheduler's thread-safe getters.
"""

import logging
import sys
import typing

import backingtrack.constants
import backingtrack.rhythm
import backingtrack.scheduler
import backingtrack.track


class DisplayLogHandler (logging.Handler):

	"""Logging handler that clears and redraws the status line around log output.

	Installed by ``Display.start()`` and removed by ``Display.stop()``.
	"""

	def __init__ (self, display: "Display") -> None:

		super().__init__()
		self._display = display

	def emit (self, record: logging.LogRecord) -> None:

		"""Clear the status line, write the log message, then redraw."""

		try:
			self._display.clear_line()

			msg = self.format(record)
			sys.stderr.write(msg + "\n")
			sys.stderr.flush()

			self._display.draw()

		except Exception:
			self.handleError(record)


class Display:

	"""Persistent one-line transport readout on stderr.

	Example:
		```python
		display = Display(scheduler, key=track.info.key, chords=track.chords())
		display.start()
		display.update()
		display.stop()
		```
	"""

	def __init__ (
		self,
		scheduler: backingtrack.scheduler.Scheduler,
		key: str = "",
		chords: typing.Optional[typing.Sequence[backingtrack.track.Chord]] = None
	) -> None:

		"""
		Parameters:
			scheduler: The scheduler to read state from.
			key: Shown as-is when set.
			chords: When given, the chord under the playhead is shown.
		"""

		self._scheduler = scheduler
		self._key = key
		self._active: bool = False
		self._handler: typing.Optional[DisplayLogHandler] = None
		self._saved_handlers: typing.List[logging.Handler] = []
		self._last_line: str = ""

		ticks_per_bar = scheduler.playback.ticks_per_bar

		# (start tick, end tick, symbol) for each chord.
		self._chord_spans: typing.List[typing.Tuple[int, int, str]] = []
		cursor = 0

		for chord in chords or []:
			end = cursor + chord.ticks(ticks_per_bar)
			self._chord_spans.append((cursor, end, chord.symbol))
			cursor = end

		style = (scheduler.playback.rhythm_style or "").strip().lower()
		self._strums_per_bar = 16 if style in backingtrack.rhythm.SIXTEENTH_STYLES else 8

	def start (self) -> None:

		"""Install the log handler and activate the display.

		The root logger's handlers are saved and replaced by a
		``DisplayLogHandler`` until ``stop()`` restores them.
		"""

		if self._active:
			return

		self._active = True

		root_logger = logging.getLogger()

		self._saved_handlers = list(root_logger.handlers)

		self._handler = DisplayLogHandler(self)

		if self._saved_handlers and self._saved_handlers[0].formatter:
			self._handler.setFormatter(self._saved_handlers[0].formatter)
		else:
			self._handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))

		root_logger.handlers.clear()
		root_logger.addHandler(self._handler)

	def stop (self) -> None:

		"""Clear the status line and restore the saved log handlers."""

		if not self._active:
			return

		self.clear_line()
		self._active = False

		root_logger = logging.getLogger()
		root_logger.handlers.clear()

		for handler in self._saved_handlers:
			root_logger.addHandler(handler)

		self._saved_handlers = []
		self._handler = None

	def update (self) -> None:

		"""Re-read the scheduler and redraw if anything changed."""

		if not self._active:
			return

		line = self._format_status()

		if line != self._last_line:
			self._last_line = line
			self.draw()

	def draw (self) -> None:

		if not self._active or not self._last_line:
			return

		sys.stderr.write(f"\r\033[K{self._last_line}")
		sys.stderr.flush()

	def clear_line (self) -> None:

		if not self._active:
			return

		sys.stderr.write("\r\033[K")
		sys.stderr.flush()

	def _chord_at (self, bar: int) -> typing.Optional[str]:

		tick = bar * self._scheduler.playback.ticks_per_bar

		for start, end, symbol in self._chord_spans:
			if start <= tick < end:
				return symbol

		return None

	def _format_status (self) -> str:

		"""Build the status string from the scheduler's current state."""

		scheduler = self._scheduler
		state = scheduler.get_playback_state()
		tempo, _ = scheduler.tempo

		parts: typing.List[str] = [f"{tempo:g} BPM"]

		if self._key:
			parts.append(f"Key: {self._key}")

		parts.append(f"Bar: {state.bar + 1}/{scheduler.playback.total_bars}")
		parts.append(f"Beat: {state.beat + 1}")
		parts.append(f"Strum: {state.strum + 1}/{self._strums_per_bar}")

		chord = self._chord_at(state.bar)

		if chord:
			parts.append(f"Chord: {chord}")

		transpose = scheduler.transpose_semitones

		if transpose:
			parts.append(f"Transpose: {transpose:+d}")

		if scheduler.capo:
			parts.append(f"Capo: {scheduler.capo}")

		muted = [
			name for index, name in enumerate(backingtrack.constants.TRACK_NAMES)
			if scheduler.is_track_muted(index)
		]

		if muted:
			parts.append("Mute: " + ",".join(muted))

		loop = scheduler.loop

		if loop.enabled:
			parts.append(f"Loop: {loop.start_bar + 1}-{loop.end_bar}")

		if state.paused:
			parts.append("[paused]")

		return "  ".join(parts)
