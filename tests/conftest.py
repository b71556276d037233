import typing

import mido
import pytest

import backingtrack.scheduler
import backingtrack.sequencer
import backingtrack.synth


class FakeMidiOut:

	"""Minimal MIDI output stub that records what is sent."""

	def __init__ (self) -> None:

		self.messages: typing.List[mido.Message] = []
		self.closed = False


	def send (self, message: mido.Message) -> None:

		"""Record an outgoing MIDI message."""

		self.messages.append(message)


	def close (self) -> None:

		self.closed = True


class RecordingSynth:

	"""In-memory synth that records every command as a tuple.

	Commands look like ``("note_on", 0, 60, 100)`` or ``("cc", 9, 123, 0)``.
	Set ``fail_after`` to make the n-th and later commands raise ``SynthError``.
	"""

	def __init__ (self, fail_after: typing.Optional[int] = None) -> None:

		self.commands: typing.List[typing.Tuple[typing.Any, ...]] = []
		self.closed = False
		self.close_timeout: typing.Optional[float] = None
		self.fail_after = fail_after


	def _record (self, *command: typing.Any) -> None:

		if self.fail_after is not None and len(self.commands) >= self.fail_after:
			raise backingtrack.synth.SynthError("broken pipe")

		self.commands.append(command)


	def note_on (self, channel: int, pitch: int, velocity: int) -> None:
		self._record("note_on", channel, pitch, velocity)


	def note_off (self, channel: int, pitch: int) -> None:
		self._record("note_off", channel, pitch)


	def program_change (self, channel: int, program: int) -> None:
		self._record("prog", channel, program)


	def control_change (self, channel: int, control: int, value: int) -> None:
		self._record("cc", channel, control, value)


	def close (self, timeout: float = 2.0) -> None:

		self.closed = True
		self.close_timeout = timeout


	def of_kind (self, kind: str) -> typing.List[typing.Tuple[typing.Any, ...]]:

		return [command for command in self.commands if command[0] == kind]


	def clear (self) -> None:

		self.commands = []


class FakeClock:

	"""Manually advanced monotonic clock, in seconds."""

	def __init__ (self, now: float = 100.0) -> None:

		self.now = now


	def __call__ (self) -> float:

		return self.now


	def advance (self, seconds: float) -> None:

		self.now += seconds


def make_playback (
	events: typing.Optional[typing.List[backingtrack.sequencer.PlaybackEvent]] = None,
	total_bars: int = 4,
	tempo: float = 120.0,
	rhythm_style: str = "whole",
	programs: typing.Optional[typing.Dict[int, int]] = None,
	capo: int = 0
) -> backingtrack.sequencer.PlaybackData:

	"""Build ``PlaybackData`` directly from events for scheduler tests."""

	ticks_per_bar = 1920

	return backingtrack.sequencer.PlaybackData(
		events = events or [],
		ticks_per_bar = ticks_per_bar,
		total_ticks = total_bars * ticks_per_bar,
		total_bars = total_bars,
		tempo = tempo,
		programs = programs if programs is not None else {0: 0, 1: 33, 2: 25},
		rhythm_style = rhythm_style,
		capo = capo,
	)


def on (tick: int, channel: int, pitch: int, velocity: int = 100) -> backingtrack.sequencer.PlaybackEvent:

	return backingtrack.sequencer.PlaybackEvent(tick, channel, pitch, velocity, True)


def off (tick: int, channel: int, pitch: int) -> backingtrack.sequencer.PlaybackEvent:

	return backingtrack.sequencer.PlaybackEvent(tick, channel, pitch, 0, False)


@pytest.fixture
def synth () -> RecordingSynth:

	return RecordingSynth()


@pytest.fixture
def clock () -> FakeClock:

	return FakeClock()


@pytest.fixture
def make_scheduler (synth: RecordingSynth, clock: FakeClock) -> typing.Callable[..., backingtrack.scheduler.Scheduler]:

	"""Factory for a scheduler wired to the recording synth and fake clock."""

	def _make (playback: typing.Optional[backingtrack.sequencer.PlaybackData] = None, **kwargs: typing.Any) -> backingtrack.scheduler.Scheduler:
		return backingtrack.scheduler.Scheduler(playback or make_playback(**kwargs), synth, clock=clock)

	return _make


def _fake_get_output_names () -> typing.List[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


# Module-level reference so tests can inspect the most recently opened port.
_current_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	_current_fake_output = FakeMidiOut()
	return _current_fake_output


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)
