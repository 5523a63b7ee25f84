"""
padseq - a terminal pad sequencer and sample-triggering engine.

Press keys to trigger samples organised into four instrument groups (drums,
bass, lead, vocal) of sixteen pads each. Arm recording and your presses are
quantized into a step grid; press play and every group loops its own pattern
in sync with an adjustable tempo while the terminal shows the playhead and
flashes the pads as they fire.

What it does:

- **Four parallel groups.** Each group has 99 patterns and its own step
  pointer. All groups play on every tick; you edit one group at a time.
- **Quantized live recording.** A press lands on the step you are hearing,
  so recording never drifts ahead of the playhead.
- **Steady clock.** Hybrid sleep+spin timing on the asyncio loop. A late
  tick is dropped and the grid realigned, never stacked into a burst.
- **Mixer.** Master and per-group gain and mute, applied to every trigger
  at the moment it fires.
- **No audio engine.** Triggers go to a sink: a MIDI sampler via ``mido``,
  an OSC sample player via ``python-osc``, or nowhere.

Integration:

- **Keyboard.** Single keystrokes from the terminal, rebindable in
  ``config.yaml``.
- **OSC.** Remote control of transport, pads and mixer, with step and
  tempo broadcast on every tick.
- **Web feed.** JSON state snapshots over WebSocket for visualisers.
- **Persistence.** Save and load all patterns as JSON.

Minimal example:

    ```python
    import padseq

    session = padseq.Session()
    session.play()
    ```

Or from the command line::

    python -m padseq --config config.yaml

Package-level exports: ``Session``, ``Sequencer``, ``Group``, ``load_config``.
"""

import padseq.config
import padseq.groups
import padseq.sequencer
import padseq.session


Session = padseq.session.Session
Sequencer = padseq.sequencer.Sequencer
Group = padseq.groups.Group
load_config = padseq.config.load_config
