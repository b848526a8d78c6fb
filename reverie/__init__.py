"""
Reverie - a procedural composition engine for Python.

Give it a scale, a root and a mood, and it plays an endless, evolving
piece on four voices:

- **Melody.** A Markov chain over scale degrees, tuned per mood, walks the
  pitch list.  Now and then it plays a chord from the shared harmony
  instead of a single note.
- **Drone.** Sustained low notes that cycle through root-fifth, triad,
  octave and shifting voicings.
- **Rhythm.** A sixteen-step pattern chosen by density, with accents and
  slow mutation.
- **Ambience.** Sparse, long notes drifting over the top.

Over time the performance changes on its own.  Evolution nudges the
filter, tempo and the mood's note length and velocity ranges.
Variations at phrase boundaries transpose, reshuffle the rhythm, change
density or add dissonance, then revert.

The engine produces no audio.  It drives anything that satisfies the
small :mod:`reverie.backend` protocols.  :mod:`reverie.midi_synth` sends
MIDI through mido, and ``python -m reverie`` plays through a MIDI port.

Minimal example:

	```python
	import reverie

	clock = reverie.Sequencer(render=True)
	engine = reverie.Engine(scale="minor", root="A", mood="calm")
	engine.start(synth, clock=clock)
	clock.advance(60.0)
	engine.stop()
	```

Package-level exports: ``Engine``, ``Config``, ``Sequencer``,
``ReverieError``, ``ConfigurationError``, ``register_scale``.
"""

import reverie.config
import reverie.engine
import reverie.errors
import reverie.scales
import reverie.sequencer


Engine = reverie.engine.Engine
Config = reverie.config.Config
Sequencer = reverie.sequencer.Sequencer
ReverieError = reverie.errors.ReverieError
ConfigurationError = reverie.errors.ConfigurationError
register_scale = reverie.scales.register_scale
