"""Constants for backingtrack.

This package contains:

- ``backingtrack.constants.durations`` - Tick-based note durations on the 480 PPQN grid
- ``backingtrack.constants.velocity`` - MIDI velocity limits and defaults
- ``backingtrack.constants.gm_drums`` - General MIDI percussion notes used by the drum generator
- ``backingtrack.constants.gm_instruments`` - Friendly instrument names mapped to GM programs

The tick grid, channel assignments and track indices are defined here so
every module shares one source of truth, e.g.
``backingtrack.constants.TICKS_PER_BAR``.
"""

from backingtrack.constants.durations import (
	TICKS_PER_QUARTER,
	TICKS_PER_BAR,
	TICKS_PER_HALF,
	TICKS_PER_EIGHTH,
	TICKS_PER_SIXTEENTH,
	TICKS_PER_TRIPLET_EIGHTH,
	BEATS_PER_BAR,
)


# Logical MIDI channels (0-indexed). Channel 9 is the GM percussion channel.
CHORDS_CHANNEL = 0
BASS_CHANNEL = 1
MELODY_CHANNEL = 2
DRUMS_CHANNEL = 9

MIDI_CHANNEL_COUNT = 16

# Track indices used by the transport's mute switches.
TRACK_DRUMS = 0
TRACK_BASS = 1
TRACK_CHORDS = 2
TRACK_MELODY = 3

TRACK_NAMES = ["drums", "bass", "chords", "melody"]

TRACK_CHANNELS = {
	TRACK_DRUMS: DRUMS_CHANNEL,
	TRACK_BASS: BASS_CHANNEL,
	TRACK_CHORDS: CHORDS_CHANNEL,
	TRACK_MELODY: MELODY_CHANNEL,
}

CHANNEL_TRACKS = {channel: track for track, channel in TRACK_CHANNELS.items()}

# Controller numbers.
CC_ALL_SOUND_OFF = 120
CC_ALL_NOTES_OFF = 123

MIN_PITCH = 0
MAX_PITCH = 127

# Tempo floor applied to live tempo changes.
MIN_TEMPO_BPM = 20

MAX_CAPO = 12
