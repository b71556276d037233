"""
Backingtrack - a rhythm and timing engine for jam-along backing tracks.

Describe a song in a small YAML file (key, tempo, chord progression and a
style for each part) and backingtrack generates the chords, bass, drums and
an optional melody, then plays them live through FluidSynth or any MIDI
output, or writes a Standard MIDI File.

- **Generators.** Strum and fingerpicking patterns with swing and accents,
  template bass lines, drum presets or per-voice Euclidean rhythms, and a
  scale-walking melody with a seeded random source.
- **Sequencer.** Merges the parts onto one 480 PPQN tick grid and resolves
  overlapping notes before anything plays.
- **Live transport.** Pause, seek by bar, loop, transpose, capo, per-part
  mute and tempo changes while the track keeps playing.

Command line::

	python -m backingtrack play song.yaml
	python -m backingtrack export song.yaml song.mid
	python -m backingtrack soundfonts

From Python:

```python
import backingtrack.track
import backingtrack.sequencer

track = backingtrack.track.load_track("song.yaml")
backingtrack.sequencer.write_midi_file(track, "song.mid", seed=1)
```
"""
