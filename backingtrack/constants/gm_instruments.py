"""General MIDI program numbers by friendly instrument name.

Track files name instruments (``instrument: jazz_guitar``) rather than
program numbers. Unknown or empty names fall back to the caller's default.
"""

import typing


DEFAULT_CHORDS_PROGRAM = 0      # Acoustic grand piano
DEFAULT_BASS_PROGRAM = 33       # Fingered bass
DEFAULT_MELODY_PROGRAM = 25     # Steel-string guitar


GM_INSTRUMENTS: typing.Dict[str, int] = {
	# Pianos
	"piano": 0,
	"acoustic_piano": 0,
	"bright_piano": 1,
	"honky_tonk": 3,
	"electric_piano": 4,
	"harpsichord": 6,
	"clavinet": 7,

	# Organ
	"organ": 16,
	"church_organ": 19,
	"reed_organ": 20,
	"accordion": 21,
	"harmonica": 22,
	"bandoneon": 23,

	# Guitars
	"nylon_guitar": 24,
	"steel_guitar": 25,
	"jazz_guitar": 26,
	"clean_guitar": 27,
	"muted_guitar": 28,
	"overdrive": 29,
	"distortion": 30,
	"harmonics": 31,

	# Bass
	"acoustic_bass": 32,
	"fingered_bass": 33,
	"picked_bass": 34,
	"fretless_bass": 35,
	"slap_bass": 36,
	"synth_bass": 38,

	# Strings
	"violin": 40,
	"viola": 41,
	"cello": 42,
	"contrabass": 43,
	"strings": 48,
	"slow_strings": 49,

	# Brass
	"trumpet": 56,
	"trombone": 57,
	"tuba": 58,
	"french_horn": 60,
	"brass": 61,
	"synth_brass": 62,

	# Woodwinds
	"soprano_sax": 64,
	"alto_sax": 65,
	"tenor_sax": 66,
	"baritone_sax": 67,
	"oboe": 68,
	"clarinet": 71,
	"flute": 73,
	"pan_flute": 75,

	# Synth
	"synth_lead": 80,
	"synth_pad": 88,
}


def program_for (name: typing.Optional[str], default: int) -> int:

	"""Return the GM program for an instrument name, or ``default``."""

	if not name:
		return default

	return GM_INSTRUMENTS.get(name.strip().lower(), default)
