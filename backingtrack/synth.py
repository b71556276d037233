"""Sound back-ends the scheduler plays through.

The scheduler only needs the small ``Synth`` interface. Two implementations:

- ``FluidSynth`` starts a ``fluidsynth`` process in shell mode and drives it
  with its text protocol over stdin (``noteon 0 60 100`` and so on).
- ``MidiPortSynth`` sends the same events as MIDI messages through a
  ``mido`` output port, for hardware or a software synth that is already
  running.

Back-end failures (missing executable, the process exiting, a broken pipe,
no MIDI port) raise ``SynthError``.
"""

import glob
import logging
import os
import shutil
import subprocess
import threading
import time
import typing

import mido

import backingtrack.constants


logger = logging.getLogger(__name__)

DEFAULT_AUDIO_DRIVER = "pulseaudio"
DEFAULT_GAIN = 1.0

# Time fluidsynth needs to load a soundfont before it accepts commands.
STARTUP_DELAY = 0.2

CLOSE_TIMEOUT = 2.0

LOCAL_SOUNDFONT_PATTERNS = ["./soundfonts/*.sf2", "./soundfonts/*.SF2"]

USER_SOUNDFONT_PATTERNS = ["~/.local/share/soundfonts/*.sf2", "~/soundfonts/*.sf2"]

SYSTEM_SOUNDFONTS = [
	"/usr/share/sounds/sf2/FluidR3_GM.sf2",
	"/usr/share/sounds/sf2/default.sf2",
	"/usr/share/soundfonts/FluidR3_GM.sf2",
	"/usr/share/soundfonts/default.sf2",
	"/usr/share/soundfonts/default-GM.sf2",
	"/usr/share/sounds/sf2/TimGM6mb.sf2",
]

SYSTEM_SOUNDFONT_PATTERNS = ["/usr/share/sounds/sf2/*.sf2", "/usr/share/soundfonts/*.sf2"]

SOUNDFONT_ENV = "SOUNDFONT"


class SynthError (RuntimeError):

	"""Raised when a sound back-end cannot be started or stops accepting commands."""


@typing.runtime_checkable
class Synth (typing.Protocol):

	"""
	Anything that can play notes for the scheduler.
	"""

	def note_on (self, channel: int, pitch: int, velocity: int) -> None:
		...

	def note_off (self, channel: int, pitch: int) -> None:
		...

	def program_change (self, channel: int, program: int) -> None:
		...

	def control_change (self, channel: int, control: int, value: int) -> None:
		...

	def close (self, timeout: float = CLOSE_TIMEOUT) -> None:
		...


def _glob_sorted (pattern: str) -> typing.List[str]:

	return sorted(glob.glob(os.path.expanduser(pattern)))


def list_soundfonts () -> typing.List[str]:

	"""Return every soundfont found in the usual places, without duplicates, in search order."""

	found: typing.List[str] = []

	candidates: typing.List[str] = []

	for pattern in LOCAL_SOUNDFONT_PATTERNS + USER_SOUNDFONT_PATTERNS:
		candidates += _glob_sorted(pattern)

	candidates += [path for path in SYSTEM_SOUNDFONTS if os.path.isfile(path)]

	for pattern in SYSTEM_SOUNDFONT_PATTERNS:
		candidates += _glob_sorted(pattern)

	for path in candidates:
		if path not in found:
			found.append(path)

	return found


def find_soundfont (path: typing.Optional[str] = None) -> str:

	"""
	Locate the soundfont to load.

	An explicit ``path`` must exist. Otherwise the ``SOUNDFONT`` environment
	variable is tried, then ``./soundfonts/``, the user's soundfont folders
	and the usual system locations.

	Raises:
		SynthError: If no soundfont is found.
	"""

	if path:
		if os.path.isfile(path):
			return path
		raise SynthError(f"Soundfont not found: {path}")

	env_path = os.environ.get(SOUNDFONT_ENV)

	if env_path:
		if os.path.isfile(env_path):
			return env_path
		logger.warning(f"{SOUNDFONT_ENV}={env_path} does not exist, searching instead")

	found = list_soundfonts()

	if not found:
		raise SynthError(
			"No soundfont (.sf2) found. Install one (e.g. 'sudo apt install fluid-soundfont-gm'), "
			"put a .sf2 file in ./soundfonts/, or pass --soundfont"
		)

	return found[0]


class FluidSynth:

	"""
	A ``fluidsynth`` process driven over its stdin shell protocol.

	Example:
		```python
		synth = FluidSynth(find_soundfont())
		synth.start()
		synth.note_on(0, 60, 100)
		synth.close()
		```
	"""

	def __init__ (
		self,
		soundfont: str,
		audio_driver: str = DEFAULT_AUDIO_DRIVER,
		gain: float = DEFAULT_GAIN,
		executable: str = "fluidsynth",
		startup_delay: float = STARTUP_DELAY
	) -> None:

		self.soundfont = soundfont
		self.audio_driver = audio_driver
		self.gain = gain
		self.executable = executable
		self.startup_delay = startup_delay

		self.process: typing.Optional[subprocess.Popen] = None
		self._write_lock = threading.Lock()


	def command (self) -> typing.List[str]:

		"""The command line used to start the process."""

		return [self.executable, "-a", self.audio_driver, "-q", "-s", "-g", str(self.gain), self.soundfont]


	def start (self) -> None:

		"""
		Start the process and wait for it to load the soundfont.

		Raises:
			SynthError: If the executable is missing or the process exits during startup.
		"""

		if self.process is not None:
			return

		if shutil.which(self.executable) is None:
			raise SynthError(f"{self.executable} not found. Install it with 'sudo apt install fluidsynth'")

		try:
			self.process = subprocess.Popen(
				self.command(),
				stdin = subprocess.PIPE,
				stdout = subprocess.DEVNULL,
				stderr = subprocess.DEVNULL,
				text = True,
				bufsize = 1
			)
		except OSError as exc:
			raise SynthError(f"Failed to start {self.executable}: {exc}") from exc

		time.sleep(self.startup_delay)

		if self.process.poll() is not None:
			code = self.process.returncode
			self.process = None
			raise SynthError(f"{self.executable} exited during startup (code {code})")

		logger.info(f"FluidSynth started with {os.path.basename(self.soundfont)} ({self.audio_driver})")


	def send (self, line: str) -> None:

		"""
		Write one protocol command.

		Raises:
			SynthError: If the process is not running or its stdin is closed.
		"""

		if self.process is None or self.process.stdin is None:
			raise SynthError("FluidSynth is not running")

		with self._write_lock:
			try:
				self.process.stdin.write(line + "\n")
				self.process.stdin.flush()
			except (BrokenPipeError, OSError, ValueError) as exc:
				raise SynthError(f"FluidSynth stopped accepting commands: {exc}") from exc


	def note_on (self, channel: int, pitch: int, velocity: int) -> None:

		self.send(f"noteon {channel} {pitch} {velocity}")


	def note_off (self, channel: int, pitch: int) -> None:

		self.send(f"noteoff {channel} {pitch}")


	def program_change (self, channel: int, program: int) -> None:

		self.send(f"prog {channel} {program}")


	def control_change (self, channel: int, control: int, value: int) -> None:

		self.send(f"cc {channel} {control} {value}")


	def close (self, timeout: float = CLOSE_TIMEOUT) -> None:

		"""
		Ask the process to quit and wait up to ``timeout`` seconds before killing it.
		"""

		process = self.process

		if process is None:
			return

		self.process = None

		try:
			if process.stdin is not None and not process.stdin.closed:
				process.stdin.write("quit\n")
				process.stdin.flush()
				process.stdin.close()
		except (BrokenPipeError, OSError, ValueError):
			logger.debug("FluidSynth stdin already closed")

		try:
			process.wait(timeout=timeout)
		except subprocess.TimeoutExpired:
			logger.warning(f"FluidSynth did not exit within {timeout}s, killing it")
			process.kill()
			process.wait()

		logger.info("FluidSynth stopped")


def select_output_device (device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Select and open a MIDI output device.

	If ``device_name`` is provided, attempts to open that specific device.
	If ``device_name`` is None, auto-discovers available devices:
	- If exactly one device exists, it is selected automatically.
	- If multiple devices exist, prompts the user to choose one from the console.
	- If no devices exist, logs an error and returns None.

	Returns:
		A tuple of (device_name, midi_out_object) or (None, None) on failure.
	"""

	try:
		outputs = mido.get_output_names()
	except (OSError, ImportError) as exc:
		logger.error(f"Cannot list MIDI outputs: {exc}")
		return None, None

	logger.info(f"Available MIDI outputs: {outputs}")

	if not outputs:
		logger.error("No MIDI output devices found.")
		return None, None

	if device_name is not None:

		if device_name not in outputs:
			logger.error(f"MIDI output device '{device_name}' not found. Available devices: {outputs}")
			return None, None

		selected_name = device_name

	elif len(outputs) == 1:

		selected_name = outputs[0]
		logger.info(f"One MIDI output found - using '{selected_name}'")

	else:

		print("\nAvailable MIDI output devices:\n")

		for i, name in enumerate(outputs, 1):
			print(f"  {i}. {name}")

		print()

		while True:
			try:
				choice = int(input(f"Select a device (1-{len(outputs)}): "))
				if 1 <= choice <= len(outputs):
					break
			except ValueError:
				pass
			except EOFError:
				return None, None
			print(f"Enter a number between 1 and {len(outputs)}.")

		selected_name = outputs[choice - 1]

		print("\nTip: To skip this prompt, pass the device name directly:\n")
		print(f"  --device \"{selected_name}\"\n")

	try:
		midi_out = mido.open_output(selected_name)
	except (OSError, IOError) as exc:
		logger.error(f"Failed to open MIDI output '{selected_name}': {exc}")
		return None, None

	logger.info(f"Opened MIDI output: {selected_name}")

	return selected_name, midi_out


class MidiPortSynth:

	"""
	Plays through a ``mido`` MIDI output port.
	"""

	def __init__ (self, port: typing.Any, name: str = "") -> None:

		self.port = port
		self.name = name
		self._write_lock = threading.Lock()


	@classmethod
	def open (cls, device_name: typing.Optional[str] = None) -> "MidiPortSynth":

		"""
		Open a MIDI output (by name, or auto-discovered).

		Raises:
			SynthError: If no port could be opened.
		"""

		name, port = select_output_device(device_name)

		if port is None:
			raise SynthError(f"No usable MIDI output{' named ' + repr(device_name) if device_name else ''}")

		return cls(port, name or "")


	def _send (self, message: mido.Message) -> None:

		if self.port is None:
			raise SynthError("MIDI output is closed")

		with self._write_lock:
			try:
				self.port.send(message)
			except (OSError, IOError) as exc:
				raise SynthError(f"MIDI send failed (device may be disconnected): {exc}") from exc


	def note_on (self, channel: int, pitch: int, velocity: int) -> None:

		self._send(mido.Message('note_on', channel=channel, note=pitch, velocity=velocity))


	def note_off (self, channel: int, pitch: int) -> None:

		self._send(mido.Message('note_off', channel=channel, note=pitch, velocity=0))


	def program_change (self, channel: int, program: int) -> None:

		self._send(mido.Message('program_change', channel=channel, program=program))


	def control_change (self, channel: int, control: int, value: int) -> None:

		self._send(mido.Message('control_change', channel=channel, control=control, value=value))


	def close (self, timeout: float = CLOSE_TIMEOUT) -> None:

		"""Silence every channel and close the port."""

		port, self.port = self.port, None

		if port is None:
			return

		try:
			for channel in range(backingtrack.constants.MIDI_CHANNEL_COUNT):
				port.send(mido.Message('control_change', channel=channel, control=backingtrack.constants.CC_ALL_SOUND_OFF, value=0))
		except (OSError, IOError):
			logger.exception("MIDI all-sound-off failed (device may be disconnected)")
		finally:
			port.close()

		logger.info(f"Closed MIDI output {self.name}")


def create_synth (
	backend: str = "fluidsynth",
	soundfont: typing.Optional[str] = None,
	audio_driver: str = DEFAULT_AUDIO_DRIVER,
	gain: float = DEFAULT_GAIN,
	midi_device: typing.Optional[str] = None
) -> Synth:

	"""
	Create and start the configured back-end.

	Raises:
		SynthError: If the back-end is unknown or cannot be started.
	"""

	if backend == "fluidsynth":
		synth = FluidSynth(find_soundfont(soundfont), audio_driver=audio_driver, gain=gain)
		synth.start()
		return synth

	if backend == "midi":
		return MidiPortSynth.open(midi_device)

	raise SynthError(f"Unknown synth backend '{backend}'. Expected 'fluidsynth' or 'midi'")
