"""General MIDI Level 1 drum notes used by the drum generator.

Standard MIDI percussion assignments for channel 10 (0-indexed channel 9).
These note numbers are a wire-format constant understood by virtually every
GM soundfont, so the drum generator refers to them by name::

    import backingtrack.constants.gm_drums

    backingtrack.constants.gm_drums.VOICE_NOTES["kick"]   # -> 36
"""

import typing


KICK_2 = 35
KICK_1 = 36
SIDE_STICK = 37
SNARE_1 = 38
HAND_CLAP = 39
HI_HAT_CLOSED = 42
HI_HAT_PEDAL = 44
HI_HAT_OPEN = 46
CRASH_1 = 49
RIDE_1 = 51
RIDE_BELL = 53
TAMBOURINE = 54


# Voice names accepted in track files, mapped to the note each one plays.
VOICE_NOTES: typing.Dict[str, int] = {
	"kick": KICK_1,
	"snare": SNARE_1,
	"hihat": HI_HAT_CLOSED,
	"ride": RIDE_1,
}


# Reverse map for log output and the status line.
NOTE_NAMES: typing.Dict[int, str] = {
	KICK_2: "kick_2",
	KICK_1: "kick_1",
	SIDE_STICK: "side_stick",
	SNARE_1: "snare_1",
	HAND_CLAP: "hand_clap",
	HI_HAT_CLOSED: "hi_hat_closed",
	HI_HAT_PEDAL: "hi_hat_pedal",
	HI_HAT_OPEN: "hi_hat_open",
	CRASH_1: "crash_1",
	RIDE_1: "ride_1",
	RIDE_BELL: "ride_bell",
	TAMBOURINE: "tambourine",
}
