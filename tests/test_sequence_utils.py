import pytest

import backingtrack.sequence_utils


def _pattern (hits: int, steps: int, rotation: int = 0) -> str:

	return backingtrack.sequence_utils.format_sequence(backingtrack.sequence_utils.euclidean(hits, steps, rotation))


def test_euclidean_tresillo () -> None:

	"""Three hits over eight steps is the tresillo."""

	assert _pattern(3, 8) == "x..x..x."


def test_euclidean_four_on_the_floor () -> None:

	assert _pattern(4, 16) == "x...x...x...x..."


def test_euclidean_cinquillo () -> None:

	assert _pattern(5, 8) == "x.xx.xx."


def test_euclidean_rotation_shifts_left () -> None:

	assert _pattern(3, 8, rotation=1) == "..x..x.x"
	assert _pattern(3, 8, rotation=8) == "x..x..x."


def test_euclidean_negative_rotation_shifts_right () -> None:

	assert _pattern(3, 8, rotation=-1) == ".x..x..x"


def test_euclidean_hit_count_is_exact () -> None:

	for steps in range(1, 17):
		for hits in range(0, steps + 1):
			assert sum(backingtrack.sequence_utils.euclidean(hits, steps)) == hits


def test_euclidean_clamps_out_of_range_hits () -> None:

	assert _pattern(0, 4) == "...."
	assert _pattern(-2, 4) == "...."
	assert _pattern(9, 4) == "xxxx"


def test_euclidean_rejects_empty_grid () -> None:

	with pytest.raises(ValueError):
		backingtrack.sequence_utils.euclidean(1, 0)


def test_sequence_to_indices () -> None:

	sequence = [1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 0]

	assert backingtrack.sequence_utils.sequence_to_indices(sequence) == [0, 4, 8, 12]
	assert backingtrack.sequence_utils.sequence_to_indices([0, 0, 0]) == []
