import argparse
import asyncio
import logging
import os
import sys
import typing

import yaml

import backingtrack.display
import backingtrack.keystroke
import backingtrack.scheduler
import backingtrack.sequencer
import backingtrack.synth
import backingtrack.track


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

# Seconds between status line refreshes and keystroke polls.
UI_INTERVAL = 0.05


def load_config (config_path: str = DEFAULT_CONFIG_PATH, required: bool = False) -> dict:

	"""
	Load configuration from a YAML file.

	A missing file gives an empty configuration (with a warning when the
	path was given explicitly).
	"""

	if not os.path.exists(config_path):
		if required:
			logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		data = yaml.safe_load(f)

	if data is None:
		return {}

	if not isinstance(data, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping")

	return data


def _setting (config: dict, section: str, key: str, default: typing.Any = None) -> typing.Any:

	return (config.get(section) or {}).get(key, default)


async def play_track (
	scheduler: backingtrack.scheduler.Scheduler,
	key: str = "",
	chords: typing.Optional[typing.Sequence[backingtrack.track.Chord]] = None,
	hotkeys: bool = True
) -> None:

	"""
	Play until the track ends or ``q`` is pressed, with the status line and hotkeys.
	"""

	listener = backingtrack.keystroke.KeystrokeListener()
	display = backingtrack.display.Display(scheduler, key=key, chords=chords)

	scheduler.start()
	task = asyncio.create_task(scheduler.run())

	if hotkeys:
		listener.start()
		if listener.active:
			logger.info(backingtrack.keystroke.HELP_TEXT)

	display.start()

	try:
		while not task.done():

			for pressed in listener.drain():
				if not backingtrack.keystroke.handle_key(scheduler, pressed):
					scheduler.stop()
					break

			display.update()
			await asyncio.sleep(UI_INTERVAL)

		await task

	finally:
		display.stop()
		listener.stop()
		scheduler.stop()


def _command_play (args: argparse.Namespace, config: dict) -> int:

	track = backingtrack.track.load_track(args.file)
	playback = backingtrack.sequencer.build_playback(track, seed=args.seed)

	synth = backingtrack.synth.create_synth(
		backend = args.backend or _setting(config, "synth", "backend", "fluidsynth"),
		soundfont = args.soundfont or _setting(config, "synth", "soundfont"),
		audio_driver = _setting(config, "synth", "audio_driver", backingtrack.synth.DEFAULT_AUDIO_DRIVER),
		gain = float(_setting(config, "synth", "gain", backingtrack.synth.DEFAULT_GAIN)),
		midi_device = args.device or _setting(config, "synth", "midi_device")
	)

	scheduler = backingtrack.scheduler.Scheduler(
		playback,
		synth,
		tick_interval = float(_setting(config, "scheduler", "tick_interval", backingtrack.scheduler.DEFAULT_TICK_INTERVAL))
	)

	try:
		asyncio.run(play_track(scheduler, key=track.info.key, chords=track.chords(), hotkeys=not args.no_hotkeys))
	except KeyboardInterrupt:
		logger.info("Stopping...")
	finally:
		scheduler.stop()

	return 0


def _command_export (args: argparse.Namespace, config: dict) -> int:

	output = args.output or os.path.splitext(args.file)[0] + ".mid"

	track = backingtrack.track.load_track(args.file)
	backingtrack.sequencer.write_midi_file(track, output, seed=args.seed)

	print(output)

	return 0


def _command_soundfonts (args: argparse.Namespace, config: dict) -> int:

	found = backingtrack.synth.list_soundfonts()

	if not found:
		logger.warning("No soundfonts found. Install one with 'sudo apt install fluid-soundfont-gm' or put a .sf2 file in ./soundfonts/")
		return 1

	for path in found:
		print(path)

	return 0


COMMANDS: typing.Dict[str, typing.Callable[[argparse.Namespace, dict], int]] = {
	"play": _command_play,
	"export": _command_export,
	"soundfonts": _command_soundfonts,
}


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="backingtrack", description="Generate and play backing tracks from YAML chord charts")
	parser.add_argument("--config", default=None, help=f"YAML config file (default: {DEFAULT_CONFIG_PATH} if present)")
	parser.add_argument("--seed", type=int, default=None, help="Melody random seed, for repeatable output")
	parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

	subparsers = parser.add_subparsers(dest="command", required=True)

	play = subparsers.add_parser("play", help="Play a track with live controls")
	play.add_argument("file", help="Track YAML file")
	play.add_argument("--soundfont", default=None, help="Soundfont (.sf2) for FluidSynth")
	play.add_argument("--backend", choices=["fluidsynth", "midi"], default=None, help="Sound back-end (default: fluidsynth)")
	play.add_argument("--device", default=None, help="MIDI output name for the midi back-end")
	play.add_argument("--no-hotkeys", action="store_true", help="Disable keyboard controls")

	export = subparsers.add_parser("export", help="Write a Standard MIDI File")
	export.add_argument("file", help="Track YAML file")
	export.add_argument("output", nargs="?", default=None, help="Output .mid path (default: next to the input)")

	subparsers.add_parser("soundfonts", help="List soundfonts that were found")

	return parser


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the backingtrack command line.
	"""

	parser = build_parser()
	args = parser.parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

	try:
		config = load_config(args.config or DEFAULT_CONFIG_PATH, required=args.config is not None)

		if args.seed is None:
			args.seed = _setting(config, "melody", "seed")

		return COMMANDS[args.command](args, config)

	except backingtrack.track.TrackError as exc:
		logger.error(f"Invalid track: {exc}")
	except backingtrack.synth.SynthError as exc:
		logger.error(str(exc))
	except (OSError, ValueError, yaml.YAMLError) as exc:
		logger.error(str(exc))

	return 1


if __name__ == "__main__":
	sys.exit(main())
