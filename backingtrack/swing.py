import typing


STRAIGHT = 0.5
MAX_SWING = 0.99


def clamp_ratio (ratio: typing.Optional[float]) -> float:

	"""Return a usable swing ratio in [0.5, 1); unset or non-positive means straight."""

	if ratio is None or ratio <= 0:
		return STRAIGHT

	return min(max(ratio, STRAIGHT), MAX_SWING)


def swing_offset (index: int, step_ticks: int, ratio: float) -> int:

	"""
	Return how many ticks to delay subdivision ``index`` for a swing ratio.

	Even subdivisions stay on the grid. Odd ones move later by
	``(ratio - 0.5) * 2 * step_ticks``, so 0.5 is straight and 0.67 is close
	to a triplet feel.

	Parameters:
		index: Position of the subdivision within its grid (0-based).
		step_ticks: Length of one subdivision in ticks.
		ratio: Swing ratio, clamped to [0.5, 1).
	"""

	if step_ticks < 0:
		raise ValueError("Step length must not be negative")

	ratio = clamp_ratio(ratio)

	if index % 2 == 0 or ratio <= STRAIGHT:
		return 0

	return int(step_ticks * (ratio - STRAIGHT) * 2)


def swing_pair_tick (pair_start: int, pair_ticks: int, ratio: float) -> int:

	"""Return the tick of the second note in a swung pair starting at ``pair_start``.

	Used for walking lines, where the pair spans two beats and the second
	note sits ``ratio`` of the way through it.
	"""

	return pair_start + int(pair_ticks * clamp_ratio(ratio))
