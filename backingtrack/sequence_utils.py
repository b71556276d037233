import typing


def euclidean (hits: int, steps: int, rotation: int = 0) -> typing.List[bool]:

	"""
	Generate a Euclidean rhythm using Bjorklund's algorithm.

	Distributes ``hits`` onsets as evenly as possible across ``steps`` and
	rotates the result left by ``rotation`` (negative values rotate right).
	Out-of-range hit counts clamp: no hits gives silence, ``hits >= steps``
	fills every step.

	Example:
		```python
		format_sequence(euclidean(3, 8))  # "x..x..x."
		```
	"""

	if steps <= 0:
		raise ValueError(f"Steps must be positive, got {steps}")

	if hits <= 0:
		return [False] * steps

	if hits >= steps:
		return [True] * steps

	head: typing.List[typing.List[bool]] = [[True] for _ in range(hits)]
	remainder: typing.List[typing.List[bool]] = [[False] for _ in range(steps - hits)]

	while len(remainder) > 1:

		count = min(len(head), len(remainder))
		joined = [head[i] + remainder[i] for i in range(count)]

		if len(head) > count:
			remainder = head[count:]
		else:
			remainder = remainder[count:]

		head = joined

	sequence = [step for group in head + remainder for step in group]

	shift = rotation % steps

	return sequence[shift:] + sequence[:shift]


def sequence_to_indices (sequence: typing.Sequence[typing.Union[int, bool]]) -> typing.List[int]:

	"""Extract step indices where hits occur in a binary sequence."""

	return [i for i, v in enumerate(sequence) if v]


def format_sequence (sequence: typing.Sequence[typing.Union[int, bool]]) -> str:

	"""Render a binary sequence as ``x`` for hits and ``.`` for rests."""

	return "".join("x" if v else "." for v in sequence)
