import enum
import typing

import pydantic

import padseq.constants
import padseq.errors


class Group (enum.IntEnum):

	"""
	The four parallel instrument lanes. Each owns 16 pads and up to 99 patterns.
	"""

	DRUMS = 0
	BASS = 1
	LEAD = 2
	VOCAL = 3

	@classmethod
	def parse (cls, value: typing.Union["Group", int, str]) -> "Group":

		"""Convert an int index, a case-insensitive name or a ``Group`` into a ``Group``.

		Raises:
			InputOutOfRange: If the value does not name one of the four groups.
		"""

		if isinstance(value, Group):
			return value

		if isinstance(value, str):
			name = value.strip().upper()
			if name in cls.__members__:
				return cls[name]
			if name.isdigit():
				value = int(name)
			else:
				raise padseq.errors.InputOutOfRange(f"Unknown group {value!r}")

		if isinstance(value, bool) or not isinstance(value, int):
			raise padseq.errors.InputOutOfRange(f"Group must be an index or name, got {value!r}")

		if not 0 <= value < padseq.constants.GROUP_COUNT:
			raise padseq.errors.InputOutOfRange(
				f"Group index {value} outside 0..{padseq.constants.GROUP_COUNT - 1}"
			)

		return cls(value)

	def next (self) -> "Group":
		return Group((self.value + 1) % padseq.constants.GROUP_COUNT)

	def previous (self) -> "Group":
		return Group((self.value - 1) % padseq.constants.GROUP_COUNT)


def validate_pad (pad: typing.Any) -> int:

	"""Return *pad* as an int, raising ``InputOutOfRange`` unless it is in 0..15."""

	if isinstance(pad, bool) or not isinstance(pad, int):
		raise padseq.errors.InputOutOfRange(f"Pad must be an integer index, got {pad!r}")

	if not 0 <= pad < padseq.constants.PADS_PER_GROUP:
		raise padseq.errors.InputOutOfRange(
			f"Pad index {pad} outside 0..{padseq.constants.PADS_PER_GROUP - 1}"
		)

	return pad


# Annotated types for pydantic schemas that address groups and pads.
GroupKey = typing.Annotated[Group, pydantic.BeforeValidator(Group.parse)]
PadIndex = typing.Annotated[int, pydantic.Field(ge=0, lt=padseq.constants.PADS_PER_GROUP)]
