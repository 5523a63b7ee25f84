import dataclasses
import typing

import pydantic

import padseq.constants
import padseq.errors
import padseq.groups


def _bare_pad (value: typing.Any) -> typing.Any:

	"""Accept a bare pad index as a full-velocity hit."""

	if isinstance(value, int) and not isinstance(value, bool):
		return (value, 1.0)

	return value


Velocity = typing.Annotated[float, pydantic.Field(ge=0.0, le=1.0)]
HitData = typing.Annotated[typing.Tuple[padseq.groups.PadIndex, Velocity], pydantic.BeforeValidator(_bare_pad)]
StepData = typing.List[HitData]
PatternData = typing.List[StepData]
GroupPatternData = typing.Dict[
	padseq.groups.GroupKey,
	typing.Annotated[typing.List[PatternData], pydantic.Field(max_length=padseq.constants.MAX_PATTERNS)],
]

_pattern_adapter: pydantic.TypeAdapter = pydantic.TypeAdapter(PatternData)
_group_patterns_adapter: pydantic.TypeAdapter = pydantic.TypeAdapter(GroupPatternData)


def _validate (adapter: pydantic.TypeAdapter, data: typing.Any, where: str) -> typing.Any:

	try:
		return adapter.validate_python(data)
	except pydantic.ValidationError as exc:
		raise padseq.errors.PersistenceError(f"{where}: {padseq.errors.describe_validation(exc)}") from exc


@dataclasses.dataclass
class Step:

	"""
	One time slot of a pattern: the pads marked as hits, each with a velocity scalar.
	"""

	hits: typing.Dict[int, float] = dataclasses.field(default_factory=dict)

	@property
	def is_empty (self) -> bool:
		return not self.hits

	def mark (self, pad: int, velocity: float = 1.0) -> None:

		"""Mark *pad* as a hit. Marking an already-marked pad replaces its velocity."""

		self.hits[pad] = min(1.0, max(0.0, float(velocity)))

	def unmark (self, pad: int) -> None:
		self.hits.pop(pad, None)

	def pads (self) -> typing.List[int]:
		return sorted(self.hits)

	def velocity (self, pad: int) -> float:
		return self.hits.get(pad, 0.0)

	def clear (self) -> None:
		self.hits.clear()


class Pattern:

	"""
	A fixed-length step grid belonging to one group.

	The step count is set at construction and never changes, so a step index
	taken modulo ``length`` is always valid.
	"""

	def __init__ (self, group: padseq.groups.Group, index: int, length: int = padseq.constants.DEFAULT_STEPS_PER_PATTERN) -> None:

		"""
		Create an empty (all steps silent) pattern.
		"""

		if length <= 0:
			raise ValueError("Pattern length must be positive")

		self.group = group
		self.index = index
		self._length = length
		self.steps: typing.List[Step] = [Step() for _ in range(length)]

	@property
	def length (self) -> int:
		return self._length

	@property
	def is_empty (self) -> bool:
		return all(step.is_empty for step in self.steps)

	def step (self, index: int) -> Step:

		"""
		Return the step at *index*, wrapping modulo the pattern length.
		"""

		return self.steps[index % self._length]

	def hits_at (self, index: int) -> typing.List[typing.Tuple[int, float]]:

		"""
		Return ``(pad, velocity)`` pairs marked at a step, in pad order.
		"""

		step = self.step(index)
		return [(pad, step.hits[pad]) for pad in step.pads()]

	def mark (self, index: int, pad: int, velocity: float = 1.0) -> None:
		self.step(index).mark(pad, velocity)

	def clear (self) -> None:

		"""
		Silence every step without replacing the step objects.
		"""

		for step in self.steps:
			step.clear()

	def to_data (self) -> typing.List[typing.List[typing.List[typing.Any]]]:

		"""
		Serialise as a list of steps, each a list of ``[pad, velocity]`` pairs sorted by pad.
		"""

		return [[[pad, step.hits[pad]] for pad in step.pads()] for step in self.steps]

	@classmethod
	def from_data (cls, group: padseq.groups.Group, index: int, data: typing.Sequence[typing.Any], length: int) -> "Pattern":

		"""
		Rebuild a pattern from ``to_data()`` output, validating pads, velocities and step count.
		"""

		return cls._from_steps(group, index, _validate(_pattern_adapter, data, f"{group.name} pattern {index}"), length)

	@classmethod
	def _from_steps (cls, group: padseq.groups.Group, index: int, steps: PatternData, length: int) -> "Pattern":

		if len(steps) != length:
			raise padseq.errors.PersistenceError(
				f"{group.name} pattern {index}: expected {length} steps, got {len(steps)}"
			)

		pattern = cls(group, index, length)

		for step, hits in zip(pattern.steps, steps):
			for pad, velocity in hits:
				step.mark(pad, velocity)

		return pattern

	def __repr__ (self) -> str:
		return f"Pattern({self.group.name}, {self.index}, length={self._length})"


class PatternStore:

	"""
	Holds up to 99 patterns per group, created lazily on first access.

	Pure data: the sequencer is the only caller that mutates pattern contents.
	"""

	def __init__ (self, steps_per_pattern: int = padseq.constants.DEFAULT_STEPS_PER_PATTERN) -> None:

		if steps_per_pattern <= 0:
			raise ValueError("steps_per_pattern must be positive")

		self.steps_per_pattern = steps_per_pattern
		self._patterns: typing.Dict[padseq.groups.Group, typing.Dict[int, Pattern]] = {
			group: {} for group in padseq.groups.Group
		}

	@staticmethod
	def clamp_index (index: int) -> int:
		return max(0, min(padseq.constants.MAX_PATTERNS - 1, int(index)))

	def get (self, group: padseq.groups.Group, index: int) -> Pattern:

		"""
		Return the pattern at *index* for *group*, creating an empty one on first visit.

		Out-of-range indices are clamped to 0..98.
		"""

		index = self.clamp_index(index)
		patterns = self._patterns[group]

		if index not in patterns:
			patterns[index] = Pattern(group, index, self.steps_per_pattern)

		return patterns[index]

	def peek (self, group: padseq.groups.Group, index: int) -> typing.Optional[Pattern]:

		"""Return the pattern if it has been created, without creating it."""

		return self._patterns[group].get(self.clamp_index(index))

	def indices (self, group: padseq.groups.Group) -> typing.List[int]:
		return sorted(self._patterns[group])

	def to_data (self) -> typing.Dict[str, typing.List[typing.Any]]:

		"""
		Per group name, an ordered list of patterns where list position is the pattern index.

		Gaps below the highest created index are written as silent patterns; patterns
		never created above it are omitted.
		"""

		data: typing.Dict[str, typing.List[typing.Any]] = {}

		for group in padseq.groups.Group:

			patterns = self._patterns[group]
			count = max(patterns) + 1 if patterns else 0
			data[group.name] = [
				patterns[index].to_data() if index in patterns else [[] for _ in range(self.steps_per_pattern)]
				for index in range(count)
			]

		return data

	@staticmethod
	def validate_data (data: typing.Any) -> typing.Dict[padseq.groups.Group, typing.List[PatternData]]:

		"""
		Check a ``to_data()`` mapping against the pattern schema without loading it.

		Raises:
			PersistenceError: On an unknown group, too many patterns, or a malformed hit.
		"""

		return _validate(_group_patterns_adapter, data, "patterns")

	def load_data (self, data: typing.Mapping[typing.Any, typing.Any]) -> None:

		"""
		Replace all patterns with the contents of a ``to_data()`` mapping.

		The whole document is validated before anything is replaced.
		"""

		loaded: typing.Dict[padseq.groups.Group, typing.Dict[int, Pattern]] = {
			group: {} for group in padseq.groups.Group
		}

		for group, entries in self.validate_data(data).items():
			for index, steps in enumerate(entries):
				loaded[group][index] = Pattern._from_steps(group, index, steps, self.steps_per_pattern)

		self._patterns = loaded
