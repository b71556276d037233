import logging

import pytest

import backingtrack.display
import backingtrack.track


CHORDS = [
	backingtrack.track.Chord("A7", 1.0),
	backingtrack.track.Chord("D7", 1.0),
	backingtrack.track.Chord("A7", 2.0),
]


@pytest.fixture
def display (make_scheduler, clock) -> backingtrack.display.Display:

	scheduler = make_scheduler(total_bars=4)
	scheduler.start()
	return backingtrack.display.Display(scheduler, key="A", chords=CHORDS)


def test_format_status_minimal (make_scheduler) -> None:

	"""Status line shows tempo, bar, beat and strum when nothing else is set."""

	scheduler = make_scheduler(total_bars=24)
	scheduler.start()

	status = backingtrack.display.Display(scheduler)._format_status()

	assert status == "120 BPM  Bar: 1/24  Beat: 1  Strum: 1/8"


def test_format_status_follows_the_playhead (display, clock) -> None:

	clock.advance(2.0 + 1.25)

	status = display._format_status()

	assert "Key: A" in status
	assert "Bar: 2/4" in status
	assert "Beat: 3" in status
	assert "Strum: 6/8" in status
	assert "Chord: D7" in status


def test_chord_spanning_several_bars (display, clock) -> None:

	clock.advance(3 * 2.0)

	assert "Chord: A7" in display._format_status()


def test_format_status_live_controls (display) -> None:

	scheduler = display._scheduler

	scheduler.transpose(-2)
	scheduler.set_capo(3)
	scheduler.toggle_track_mute(0)
	scheduler.toggle_track_mute(2)
	scheduler.set_loop(2)
	scheduler.adjust_tempo(-30)
	scheduler.pause()

	status = display._format_status()

	assert status.startswith("90 BPM")
	assert "Transpose: -2" in status
	assert "Capo: 3" in status
	assert "Mute: drums,chords" in status
	assert "Loop: 1-2" in status
	assert status.endswith("[paused]")


def test_sixteenth_styles_count_sixteen_strums (make_scheduler) -> None:

	scheduler = make_scheduler(rhythm_style="funk")
	scheduler.start()

	assert "Strum: 1/16" in backingtrack.display.Display(scheduler)._format_status()


def test_update_redraws_only_on_change (display, capsys) -> None:

	display.start()

	try:
		display.update()
		first = capsys.readouterr().err
		display.update()
		second = capsys.readouterr().err
	finally:
		display.stop()

	assert "Bar: 1/4" in first
	assert first.startswith("\r\033[K")
	assert second == ""


def test_log_messages_scroll_above_the_status_line (display, capsys) -> None:

	root_logger = logging.getLogger()
	saved = list(root_logger.handlers)

	display.start()

	try:
		assert len(root_logger.handlers) == 1
		assert isinstance(root_logger.handlers[0], backingtrack.display.DisplayLogHandler)

		display.update()
		capsys.readouterr()

		logging.getLogger("backingtrack.test").warning("hello")
		err = capsys.readouterr().err

	finally:
		display.stop()

	assert root_logger.handlers == saved
	assert "hello" in err
	assert err.index("hello") < err.rindex("Bar: 1/4")


def test_inactive_display_writes_nothing (display, capsys) -> None:

	display.update()
	display.draw()
	display.clear_line()
	display.stop()

	assert capsys.readouterr().err == ""
