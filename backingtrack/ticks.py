"""Tick arithmetic on the fixed 480 PPQN grid.

All positions in the engine are integer ticks from the start of the track.
Conversions from wall-clock time always truncate toward the earlier tick so
that the scheduler can never skip past an event.
"""

import math

import backingtrack.constants


def ticks_for_bars (bars: float, ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR) -> int:

	"""Return the number of ticks covered by a (possibly fractional) bar count."""

	return max(0, int(round(bars * ticks_per_bar)))


def tick_duration (tempo_bpm: float) -> float:

	"""
	Return the wall-clock length of one tick in seconds at the given tempo.
	"""

	if tempo_bpm <= 0:
		raise ValueError(f"Tempo must be positive, got {tempo_bpm}")

	return 60.0 / tempo_bpm / backingtrack.constants.TICKS_PER_QUARTER


def seconds_to_tick (seconds: float, tempo_bpm: float) -> int:

	"""Convert elapsed seconds to a tick, rounding toward the earlier tick.

	Negative times map to tick 0. A tiny epsilon absorbs float error so that
	``seconds_to_tick(tick_to_seconds(t)) == t`` for every tick.
	"""

	if seconds <= 0:
		return 0

	# seconds * tempo * 480 / 60 keeps the product exact for integral inputs.
	ticks = seconds * tempo_bpm * backingtrack.constants.TICKS_PER_QUARTER / 60.0

	return int(math.floor(ticks + 1e-9))


def tick_to_seconds (tick: int, tempo_bpm: float) -> float:

	"""Convert a tick position to elapsed seconds at the given tempo."""

	return tick * tick_duration(tempo_bpm)


def bar_to_tick (bar: int, ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR) -> int:

	"""Return the first tick of a zero-based bar."""

	return max(0, bar) * ticks_per_bar


def tick_to_bar (tick: int, ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR) -> int:

	"""Return the zero-based bar containing a tick."""

	return tick // ticks_per_bar


def tick_to_beat (tick: int, ticks_per_bar: int = backingtrack.constants.TICKS_PER_BAR) -> int:

	"""Return the zero-based beat within its bar (4/4 only)."""

	return (tick % ticks_per_bar) // (ticks_per_bar // backingtrack.constants.BEATS_PER_BAR)
