"""Single-keystroke transport controls for the ``play`` command.

A background thread reads keys from stdin in cbreak mode, so each keypress
arrives without Enter. The status line writes to stderr, so the two never
fight over the terminal.

Keys are queued by the thread and applied on the event loop by
:func:`handle_key`, which maps them onto :class:`backingtrack.scheduler.Scheduler`
controls:

====================  =======================================
Key                   Action
====================  =======================================
space                 pause / resume
``n`` / ``p``         next / previous bar
``+`` / ``-``         transpose up / down a semitone
``]`` / ``[``         capo up / down a fret
``1`` .. ``4``        mute drums, bass, chords, melody
``!`` .. ``(``        loop 1 .. 9 bars (shifted 1 .. 9)
``}`` / ``{``         tempo +5 / -5 BPM
``q``                 quit
====================  =======================================

**Platform support:** Linux and macOS. Without :mod:`termios` or a real TTY
on stdin the listener logs a warning and stays inactive.
"""

import logging
import queue
import select
import sys
import threading
import typing

import backingtrack.constants
import backingtrack.scheduler


logger = logging.getLogger(__name__)

HOTKEYS_SUPPORTED: bool = False

#: Why hotkeys are unavailable, or ``None`` when supported.
HOTKEYS_UNAVAILABLE_REASON: typing.Optional[str] = None

try:
	import termios
	import tty

	if not sys.stdin.isatty():
		raise OSError("stdin is not a TTY (running in a pipe or non-interactive context)")

	_fd = sys.stdin.fileno()
	_saved = termios.tcgetattr(_fd)
	termios.tcsetattr(_fd, termios.TCSADRAIN, _saved)

	HOTKEYS_SUPPORTED = True

except ImportError:
	HOTKEYS_UNAVAILABLE_REASON = (
		"The 'tty' and 'termios' modules are not available on this platform. "
		"Hotkeys require a POSIX operating system (Linux or macOS)."
	)
except OSError as _e:
	HOTKEYS_UNAVAILABLE_REASON = f"Hotkeys require an interactive terminal (TTY) on stdin. Reason: {_e}"


QUIT_KEYS = frozenset({"q", "Q"})

TEMPO_STEP = 5

# Shifted digits on a US keyboard, loop lengths 1 to 9.
LOOP_KEYS = {key: length for length, key in enumerate("!@#$%^&*(", start=1)}

MUTE_KEYS = {
	"1": backingtrack.constants.TRACK_DRUMS,
	"2": backingtrack.constants.TRACK_BASS,
	"3": backingtrack.constants.TRACK_CHORDS,
	"4": backingtrack.constants.TRACK_MELODY,
}

HELP_TEXT = (
	"[space] pause  [n/p] bar  [+/-] transpose  [ [/] ] capo  "
	"[1-4] mute  [shift+1-9] loop  [{/}] tempo  [q] quit"
)


def handle_key (scheduler: backingtrack.scheduler.Scheduler, key: str) -> bool:

	"""
	Apply one keypress to the scheduler.

	Returns:
		``False`` when the key asks to quit, otherwise ``True``. Unbound keys
		are ignored.
	"""

	if key in QUIT_KEYS:
		return False

	if key == " ":
		scheduler.toggle_pause()

	elif key in ("n", "N"):
		scheduler.seek(1)

	elif key in ("p", "P"):
		scheduler.seek(-1)

	elif key in ("+", "="):
		scheduler.transpose(1)

	elif key in ("-", "_"):
		scheduler.transpose(-1)

	elif key == "]":
		scheduler.set_capo(scheduler.capo + 1)

	elif key == "[":
		scheduler.set_capo(scheduler.capo - 1)

	elif key in MUTE_KEYS:
		scheduler.toggle_track_mute(MUTE_KEYS[key])

	elif key in LOOP_KEYS:
		scheduler.toggle_loop(LOOP_KEYS[key])

	elif key == "}":
		scheduler.adjust_tempo(TEMPO_STEP)

	elif key == "{":
		scheduler.adjust_tempo(-TEMPO_STEP)

	else:
		logger.debug(f"Unbound key {key!r}")

	return True


class KeystrokeListener:

	"""Background daemon thread that reads single keystrokes from stdin.

	Terminal settings are restored when the thread exits, even after an
	error. On unsupported platforms :meth:`start` only logs a warning and the
	other methods are no-ops.

	Example::

		listener = KeystrokeListener()
		listener.start()

		for key in listener.drain():
		    handle_key(scheduler, key)

		listener.stop()
	"""

	def __init__ (self) -> None:

		self._queue: queue.Queue = queue.Queue()
		self._thread: typing.Optional[threading.Thread] = None
		self._running: bool = False

		#: ``True`` after a successful :meth:`start` on a supported platform.
		self.active: bool = False

	def start (self) -> None:

		"""Put stdin into cbreak mode and start reading. A second call is a no-op."""

		if self._running:
			return

		if not HOTKEYS_SUPPORTED:
			logger.warning(f"Hotkeys are not available on this system and will be disabled. {HOTKEYS_UNAVAILABLE_REASON}")
			return

		self._running = True
		self.active = True
		self._thread = threading.Thread(
			target = self._listen,
			name   = "backingtrack-keystroke-listener",
			daemon = True,
		)
		self._thread.start()

	def stop (self) -> None:

		"""Signal the thread to exit within one poll interval. Does not wait."""

		self._running = False
		self.active = False

	def drain (self) -> typing.List[str]:

		"""Return every key pressed since the last call, in order. Never blocks."""

		keys: typing.List[str] = []

		while True:
			try:
				keys.append(self._queue.get_nowait())
			except queue.Empty:
				break

		return keys

	def _listen (self) -> None:

		fd = sys.stdin.fileno()
		old_settings = termios.tcgetattr(fd)

		try:
			# cbreak keeps Ctrl+C working, unlike raw mode.
			tty.setcbreak(fd)

			while self._running:
				ready, _, _ = select.select([sys.stdin], [], [], 0.1)
				if ready:
					char = sys.stdin.read(1)
					if char:
						self._queue.put(char)

		except (OSError, ValueError):
			logger.exception("Keystroke listener stopped")

		finally:
			termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
			self.active = False
