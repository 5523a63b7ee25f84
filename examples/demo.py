import logging
import typing

import padseq.config
import padseq.session

logging.basicConfig(level=logging.INFO)

STEPS = 16

config = padseq.config.parse_config({
	"sequencer": {"bpm": 124, "steps_per_pattern": STEPS},
	"mixer": {"master_gain": 0.8, "group_gain": [0.9, 0.8, 0.7, 0.7]},
	"display": {"grid": True},
})


def pattern (hits: typing.Iterable[typing.Tuple[int, int, float]]) -> typing.List[typing.List[typing.List[float]]]:

	"""Build one pattern in saved-file layout from ``(step, pad, velocity)`` triples."""

	steps: typing.List[typing.List[typing.List[float]]] = [[] for _ in range(STEPS)]

	for step, pad, velocity in hits:
		steps[step].append([pad, velocity])

	return steps


# Four on the floor, backbeat snare, offbeat open hats, closed hats accented on the beat.
groove = [(step, 0, 1.0) for step in range(0, STEPS, 4)]
groove += [(step + 2, 3, 0.6) for step in range(0, STEPS, 4)]
groove += [(4, 1, 1.0), (12, 1, 1.0)]
groove += [(step, 2, 0.9 if step % 4 == 0 else 0.4) for step in range(0, STEPS, 2)]

# A second drum pattern to switch to with the Right arrow.
fill = [(step, 6 + (step // 4) % 2, 0.3 + step / 32) for step in range(STEPS)]
fill += [(0, 0, 1.0), (0, 4, 1.0)]

# A syncopated bass line against the kick.
bass = [(step, pad, 0.8) for step, pad in ((0, 0), (3, 0), (6, 2), (10, 0), (11, 1), (14, 2))]

session = padseq.session.Session(config)

session.sequencer.load_patterns({
	"DRUMS": [pattern(groove), pattern(fill)],
	"BASS": [pattern(bass)],
})

session.play()
