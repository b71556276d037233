"""MIDI velocity constants.

Velocity is the MIDI attack strength (0-127). Generators pick their own
tiers per style; these are the shared limits and defaults.
"""

# Primary defaults
DEFAULT_CHORD_VELOCITY = 80     # Whole-note chords
DEFAULT_BASS_VELOCITY = 90      # Sustained root notes
DEFAULT_DRUM_BASE = 100         # Scaled by drum intensity

# Floors used when strums and arpeggios soften later notes
STRUM_VELOCITY_FLOOR = 30
ARPEGGIO_VELOCITY_FLOOR = 40
MUTED_FUNK_VELOCITY_FLOOR = 50

# MIDI standard range
MIN_VELOCITY = 0
MAX_VELOCITY = 127
