"""Tick-based timing constants.

The engine uses a fixed grid of **480 ticks per quarter note** (the same
resolution written to exported MIDI files) and assumes 4/4 throughout:

- `TICKS_PER_QUARTER = 480` - one beat
- `TICKS_PER_BAR = 1920` - one bar of four beats
- `TICKS_PER_EIGHTH = 240`, `TICKS_PER_SIXTEENTH = 120`
- `TICKS_PER_TRIPLET_EIGHTH = 160` - one twelfth of a bar, used by shuffle feels
"""

TICKS_PER_QUARTER = 480
BEATS_PER_BAR = 4
TICKS_PER_BAR = TICKS_PER_QUARTER * BEATS_PER_BAR

TICKS_PER_HALF = TICKS_PER_BAR // 2
TICKS_PER_EIGHTH = TICKS_PER_BAR // 8
TICKS_PER_SIXTEENTH = TICKS_PER_BAR // 16
TICKS_PER_TRIPLET_EIGHTH = TICKS_PER_BAR // 12
