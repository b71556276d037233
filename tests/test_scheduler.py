import asyncio
import threading
import time

import pytest

import backingtrack.scheduler
import backingtrack.synth

from conftest import FakeClock, RecordingSynth, make_playback, off, on


# At 120 BPM one bar lasts two seconds and one tick 1/960 s.
BAR = 2.0


def _at_tick (clock: FakeClock, start: float, tick: int) -> None:

	clock.now = start + tick / 960


def test_start_sends_programs_and_plays_from_the_top (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60), off(480, 0, 60)])
	scheduler.start()

	assert synth.commands == [("prog", 0, 0), ("prog", 1, 33), ("prog", 2, 25)]
	assert scheduler.is_playing
	assert scheduler.current_bar == 0

	synth.clear()
	scheduler.tick()

	assert synth.commands == [("note_on", 0, 60, 100)]


def test_events_are_emitted_when_their_tick_is_reached (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60), off(480, 0, 60), on(960, 1, 45), off(1440, 1, 45)])
	start = clock.now
	scheduler.start()
	synth.clear()

	scheduler.tick()
	_at_tick(clock, start, 479)
	scheduler.tick()

	assert synth.commands == [("note_on", 0, 60, 100)]

	_at_tick(clock, start, 1000)
	scheduler.tick()

	assert synth.commands[1:] == [("note_off", 0, 60), ("note_on", 1, 45, 100)]


def test_nothing_happens_before_start (make_scheduler, synth) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60)])
	scheduler.tick()

	assert synth.commands == []
	assert not scheduler.is_playing


def test_reaching_the_end_flushes_and_stops (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60)], total_bars=2)
	scheduler.start()
	scheduler.tick()
	synth.clear()

	clock.advance(2 * BAR)
	scheduler.tick()

	assert synth.commands == [("note_off", 0, 60)]
	assert not scheduler.is_playing


def test_pause_freezes_the_position (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler()
	start = clock.now
	scheduler.start()

	_at_tick(clock, start, 1200)
	before = scheduler.get_playback_state()
	scheduler.pause()

	clock.advance(10.0)
	paused = scheduler.get_playback_state()

	assert before == backingtrack.scheduler.PlaybackState(bar=0, beat=2, strum=5, paused=False)
	assert paused == backingtrack.scheduler.PlaybackState(bar=0, beat=2, strum=5, paused=True)

	scheduler.resume()

	assert scheduler.get_playback_state() == before

	clock.advance(0.25)

	assert scheduler.get_playback_state().beat == 3


def test_pause_silences_sounding_notes (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60), on(0, 1, 45), off(1900, 0, 60), off(1900, 1, 45)])
	scheduler.start()
	scheduler.tick()
	synth.clear()

	scheduler.pause()

	assert sorted(synth.commands) == [("note_off", 0, 60), ("note_off", 1, 45)]

	clock.advance(5.0)
	scheduler.tick()

	assert len(synth.commands) == 2


def test_toggle_pause (make_scheduler, clock) -> None:

	scheduler = make_scheduler()
	scheduler.start()

	scheduler.toggle_pause()
	assert scheduler.is_paused

	scheduler.toggle_pause()
	assert not scheduler.is_paused


def test_seek_is_clamped_to_the_track (make_scheduler, clock) -> None:

	scheduler = make_scheduler(total_bars=24)
	scheduler.start()

	scheduler.seek_to_bar(-5)
	assert scheduler.current_bar == 0

	scheduler.seek_to_bar(999)
	assert scheduler.current_bar == 23


def test_relative_seek (make_scheduler, clock) -> None:

	scheduler = make_scheduler(total_bars=8)
	scheduler.start()

	scheduler.seek(2)
	assert scheduler.current_bar == 2

	scheduler.seek(-1)
	assert scheduler.current_bar == 1

	clock.advance(BAR)
	assert scheduler.current_bar == 2


def test_seek_flushes_and_skips_to_the_target_bar (make_scheduler, synth, clock) -> None:

	events = [on(0, 0, 60), on(1920, 0, 62), on(3840, 0, 64), off(5000, 0, 60), off(5000, 0, 62), off(5000, 0, 64)]
	scheduler = make_scheduler(events=events)
	scheduler.start()
	scheduler.tick()
	synth.clear()

	scheduler.seek_to_bar(2)

	assert synth.commands == [("note_off", 0, 60)]

	scheduler.tick()

	assert synth.commands[1:] == [("note_on", 0, 64, 100)]


def test_seek_while_paused_stays_paused (make_scheduler, clock) -> None:

	scheduler = make_scheduler(total_bars=8)
	scheduler.start()
	scheduler.pause()

	scheduler.seek_to_bar(5)
	clock.advance(3 * BAR)

	assert scheduler.get_playback_state() == backingtrack.scheduler.PlaybackState(bar=5, beat=0, strum=0, paused=True)

	scheduler.resume()
	clock.advance(BAR)

	assert scheduler.current_bar == 6


def test_transpose_accumulates_and_skips_drums (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60), on(0, 9, 36), off(100, 0, 60), off(100, 9, 36), on(960, 0, 60), on(960, 9, 36)])
	scheduler.start()

	scheduler.transpose(2)
	scheduler.transpose(-5)

	assert scheduler.transpose_semitones == -3

	synth.clear()
	scheduler.tick()

	assert synth.commands == [("note_on", 0, 57, 100), ("note_on", 9, 36, 100)]


def test_transpose_flushes_sounding_notes (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60), off(1000, 0, 60)])
	scheduler.start()
	scheduler.tick()
	synth.clear()

	scheduler.transpose(1)

	assert synth.commands == [("note_off", 0, 60)]

	# The untransposed note-off no longer matches anything sounding.
	clock.advance(1.1)
	scheduler.tick()

	assert synth.commands == [("note_off", 0, 60)]


def test_note_off_follows_the_transposed_pitch (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60), off(480, 0, 60)])
	scheduler.start()
	scheduler.transpose(4)
	scheduler.tick()

	clock.advance(0.5)
	scheduler.tick()

	assert synth.of_kind("note_on") == [("note_on", 0, 64, 100)]
	assert synth.of_kind("note_off") == [("note_off", 0, 64)]


def test_pitches_are_clamped (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 120), on(0, 1, 5)])
	scheduler.start()
	scheduler.transpose(20)
	scheduler.tick()

	assert ("note_on", 0, 127, 100) in synth.commands

	scheduler.transpose(-40)
	scheduler.seek_to_bar(0)
	scheduler.tick()

	assert ("note_on", 1, 0, 100) in synth.commands


def test_capo_is_clamped (make_scheduler) -> None:

	scheduler = make_scheduler()
	scheduler.start()

	scheduler.set_capo(15)
	assert scheduler.capo == 12

	scheduler.set_capo(-1)
	assert scheduler.capo == 0


def test_capo_from_the_track_raises_pitched_parts (make_scheduler, synth) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60), on(0, 9, 38)], capo=3)
	scheduler.start()
	scheduler.tick()

	assert scheduler.capo == 3
	assert synth.of_kind("note_on") == [("note_on", 0, 63, 100), ("note_on", 9, 38, 100)]


def test_capo_and_transpose_add_up (make_scheduler, synth) -> None:

	scheduler = make_scheduler(events=[on(0, 2, 64)])
	scheduler.start()
	scheduler.set_capo(2)
	scheduler.transpose(-1)
	scheduler.tick()

	assert synth.of_kind("note_on") == [("note_on", 2, 65, 100)]


def test_mute_skips_the_track_and_silences_only_its_channel (make_scheduler, synth, clock) -> None:

	events = [on(0, 9, 36), on(0, 0, 60), off(1900, 9, 36), off(1900, 0, 60), on(1920, 9, 38), on(1920, 0, 62)]
	scheduler = make_scheduler(events=events)
	scheduler.start()
	scheduler.tick()
	synth.clear()

	scheduler.toggle_track_mute(0)

	assert scheduler.is_track_muted(0)
	assert synth.commands == [("note_off", 9, 36)]

	clock.advance(BAR)
	scheduler.tick()

	assert synth.commands[1:] == [("note_off", 0, 60), ("note_on", 0, 62, 100)]

	scheduler.toggle_track_mute(0)
	assert not scheduler.is_track_muted(0)


def test_mute_indices (make_scheduler) -> None:

	scheduler = make_scheduler()

	for index in range(4):
		scheduler.toggle_track_mute(index)

	assert [scheduler.is_track_muted(i) for i in range(4)] == [True, True, True, True]

	scheduler.toggle_track_mute(7)
	scheduler.toggle_track_mute(-1)

	assert not scheduler.is_track_muted(7)


def test_retriggering_a_sounding_note_sends_note_off_first (make_scheduler, synth, clock) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60), on(100, 0, 60, velocity=70), off(200, 0, 60)])
	scheduler.start()
	synth.clear()

	clock.advance(0.15)
	scheduler.tick()

	assert synth.commands == [("note_on", 0, 60, 100), ("note_off", 0, 60), ("note_on", 0, 60, 70)]


def test_tempo_changes_keep_the_position (make_scheduler, clock) -> None:

	scheduler = make_scheduler()
	start = clock.now
	scheduler.start()

	_at_tick(clock, start, 960)
	scheduler.adjust_tempo(120)

	assert scheduler.tempo == (240, 120)
	assert scheduler.get_playback_state().beat == 2

	clock.advance(0.5)

	assert scheduler.current_bar == 1
	assert scheduler.get_playback_state().beat == 0


def test_tempo_never_drops_below_the_floor (make_scheduler) -> None:

	scheduler = make_scheduler(tempo=100)
	scheduler.start()

	scheduler.adjust_tempo(-75)
	scheduler.adjust_tempo(-5)

	assert scheduler.tempo == (20, -80)

	scheduler.adjust_tempo(5)

	assert scheduler.tempo == (25, -75)


def test_loop_wraps_back_to_its_start (make_scheduler, clock) -> None:

	scheduler = make_scheduler(total_bars=8)
	start = clock.now
	scheduler.start()

	clock.now = start + BAR + 0.1
	scheduler.set_loop(2)

	assert scheduler.loop == backingtrack.scheduler.LoopState(enabled=True, start_bar=1, end_bar=3, length=2)

	clock.now = start + 3 * BAR + 0.01
	scheduler.tick()

	assert scheduler.current_bar == 1
	assert scheduler.is_playing


def test_loop_end_is_clamped_to_the_track (make_scheduler, clock) -> None:

	scheduler = make_scheduler(total_bars=4)
	scheduler.start()
	scheduler.seek_to_bar(3)

	scheduler.set_loop(5)

	assert (scheduler.loop.start_bar, scheduler.loop.end_bar) == (3, 4)


def test_toggle_loop (make_scheduler) -> None:

	scheduler = make_scheduler(total_bars=8)
	scheduler.start()

	scheduler.toggle_loop(2)
	assert scheduler.loop.enabled and scheduler.loop.length == 2

	scheduler.toggle_loop(4)
	assert scheduler.loop.length == 4

	scheduler.toggle_loop(4)
	assert not scheduler.loop.enabled

	scheduler.toggle_loop(3)
	scheduler.set_loop(0)
	assert scheduler.loop == backingtrack.scheduler.LoopState()


def test_strum_resolution_follows_the_rhythm_style (make_scheduler, clock) -> None:

	start = clock.now

	eighths = make_scheduler(rhythm_style="strum_up_down")
	eighths.start()
	sixteenths = make_scheduler(rhythm_style="funk")
	sixteenths.start()

	_at_tick(clock, start, 1200)

	assert eighths.get_playback_state().strum == 5
	assert sixteenths.get_playback_state().strum == 10


def test_panic (make_scheduler, synth) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60), on(0, 1, 45)])
	scheduler.start()
	scheduler.tick()
	synth.clear()

	scheduler.panic()

	assert sorted(synth.of_kind("note_off")) == [("note_off", 0, 60), ("note_off", 1, 45)]
	assert synth.of_kind("cc") == [("cc", channel, 123, 0) for channel in range(16)]
	assert synth.commands[:2] == synth.of_kind("note_off")


def test_stop_silences_and_closes_once (make_scheduler, synth) -> None:

	scheduler = make_scheduler(events=[on(0, 0, 60)])
	scheduler.start()
	scheduler.tick()
	synth.clear()

	scheduler.stop()

	assert synth.commands[0] == ("note_off", 0, 60)
	assert len(synth.of_kind("cc")) == 16
	assert synth.closed
	assert synth.close_timeout == 2.0
	assert not scheduler.is_playing

	count = len(synth.commands)
	scheduler.stop()

	assert len(synth.commands) == count


def test_start_after_stop_is_refused (make_scheduler) -> None:

	scheduler = make_scheduler()
	scheduler.stop()

	with pytest.raises(RuntimeError):
		scheduler.start()


def test_synth_failure_clears_state_and_propagates (clock) -> None:

	synth = RecordingSynth(fail_after=3)
	scheduler = backingtrack.scheduler.Scheduler(make_playback(events=[on(0, 0, 60)]), synth, clock=clock)
	scheduler.start()

	with pytest.raises(backingtrack.synth.SynthError):
		scheduler.tick()

	assert not scheduler.is_playing

	scheduler.stop()

	assert synth.closed


def test_invalid_arguments () -> None:

	synth = RecordingSynth()

	with pytest.raises(ValueError):
		backingtrack.scheduler.Scheduler(make_playback(), synth, tick_interval=0)

	with pytest.raises(ValueError):
		backingtrack.scheduler.Scheduler(make_playback(tempo=0), synth)


def test_controls_from_other_threads (make_scheduler, synth, clock) -> None:

	events = []

	for bar in range(4):
		for beat in range(4):
			tick = bar * 1920 + beat * 480
			events += [on(tick, 0, 60), on(tick, 9, 36), off(tick + 400, 0, 60), off(tick + 400, 9, 36)]

	events.sort(key=lambda event: (event.tick, event.is_note_on))

	scheduler = make_scheduler(events=events)
	scheduler.start()

	def _fiddle () -> None:
		for i in range(200):
			scheduler.transpose(1 if i % 2 else -1)
			scheduler.toggle_track_mute(i % 4)
			scheduler.get_playback_state()

	threads = [threading.Thread(target=_fiddle) for _ in range(4)]

	for thread in threads:
		thread.start()

	for _ in range(100):
		clock.advance(0.05)
		scheduler.tick()

	for thread in threads:
		thread.join()

	scheduler.stop()

	sounding = set()

	for command in synth.commands:
		if command[0] == "note_on":
			sounding.add(command[1:3])
		elif command[0] == "note_off":
			sounding.discard(command[1:3])

	assert sounding == set()


@pytest.mark.asyncio
async def test_run_plays_to_the_end () -> None:

	"""A one-bar track at 1200 BPM lasts 0.2 seconds of real time."""

	synth = RecordingSynth()
	playback = make_playback(events=[on(0, 0, 60), off(960, 0, 60), on(960, 1, 40), off(1900, 1, 40)], total_bars=1, tempo=1200)
	scheduler = backingtrack.scheduler.Scheduler(playback, synth, clock=time.monotonic)

	scheduler.start()
	await asyncio.wait_for(scheduler.run(), timeout=5)

	assert not scheduler.is_playing
	assert synth.of_kind("note_on") == [("note_on", 0, 60, 100), ("note_on", 1, 40, 100)]
	assert synth.of_kind("note_off") == [("note_off", 0, 60), ("note_off", 1, 40)]


@pytest.mark.asyncio
async def test_stop_ends_the_run_loop () -> None:

	synth = RecordingSynth()
	scheduler = backingtrack.scheduler.Scheduler(make_playback(total_bars=100), synth, clock=time.monotonic)

	scheduler.start()
	task = asyncio.create_task(scheduler.run())

	await asyncio.sleep(0.05)
	scheduler.stop()
	await asyncio.wait_for(task, timeout=1)

	assert synth.closed


@pytest.mark.asyncio
async def test_play_stops_the_synth_at_the_end () -> None:

	synth = RecordingSynth()
	scheduler = backingtrack.scheduler.Scheduler(make_playback(total_bars=1, tempo=2400), synth, clock=time.monotonic)

	await asyncio.wait_for(scheduler.play(), timeout=5)

	assert synth.closed
