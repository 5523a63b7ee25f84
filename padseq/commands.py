"""Commands and input events accepted by the engine.

Every input source (keyboard, OSC, tests) speaks the same vocabulary: a
``Command`` names what to do and carries the optional group, pad and value it
needs. Pad presses and releases are also available as validated
``InputEvent`` values for callers that only deal in pad input.
"""

import dataclasses
import enum
import time
import typing

import padseq.groups


class CommandType (enum.Enum):

	"""Everything a performer can ask the engine to do."""

	PLAY_STOP = "play_stop"
	TOGGLE_RECORD = "toggle_record"
	CLEAR_PATTERN = "clear_pattern"
	SWITCH_GROUP = "switch_group"
	PREVIOUS_GROUP = "previous_group"
	SELECT_GROUP = "select_group"
	PATTERN_PREV = "pattern_prev"
	PATTERN_NEXT = "pattern_next"
	SELECT_PATTERN = "select_pattern"
	TEMPO_UP = "tempo_up"
	TEMPO_DOWN = "tempo_down"
	SET_TEMPO = "set_tempo"
	MASTER_VOL_UP = "master_vol_up"
	MASTER_VOL_DOWN = "master_vol_down"
	MASTER_MUTE_TOGGLE = "master_mute_toggle"
	GROUP_VOL_UP = "group_vol_up"
	GROUP_VOL_DOWN = "group_vol_down"
	GROUP_MUTE_TOGGLE = "group_mute_toggle"
	SET_MASTER_VOLUME = "set_master_volume"
	SET_GROUP_VOLUME = "set_group_volume"
	PAD_PRESS = "pad_press"
	PAD_RELEASE = "pad_release"
	REWIND = "rewind"
	SAVE = "save"
	LOAD = "load"
	HELP = "help"
	QUIT = "quit"

	@classmethod
	def parse (cls, value: typing.Union["CommandType", str]) -> "CommandType":

		"""Look up a command by member name or value, case-insensitively.

		Raises:
			ValueError: If no command has that name.
		"""

		if isinstance(value, CommandType):
			return value

		key = str(value).strip().upper().replace("-", "_").replace(" ", "_")

		if key in cls.__members__:
			return cls[key]

		raise ValueError(f"Unknown command {value!r}")


# Commands that need a group, and fall back to the active group when none is given.
GROUP_COMMANDS = frozenset({
	CommandType.SELECT_GROUP,
	CommandType.GROUP_VOL_UP,
	CommandType.GROUP_VOL_DOWN,
	CommandType.GROUP_MUTE_TOGGLE,
	CommandType.SET_GROUP_VOLUME,
	CommandType.PAD_PRESS,
	CommandType.PAD_RELEASE,
})


@dataclasses.dataclass(frozen=True)
class Command:

	"""
	One request for the engine, applied on the event loop by the session.

	Attributes:
		type: What to do.
		group: Target group, for group commands and pad input. ``None`` means the active group.
		pad: Pad index, for ``PAD_PRESS`` and ``PAD_RELEASE``.
		value: Numeric argument for the ``SET_*`` commands and ``SELECT_PATTERN``.
		timestamp: When the input happened (``time.monotonic()`` seconds).
	"""

	type: CommandType
	group: typing.Optional[padseq.groups.Group] = None
	pad: typing.Optional[int] = None
	value: typing.Optional[float] = None
	timestamp: float = dataclasses.field(default_factory=time.monotonic)


class InputEventType (enum.Enum):

	PRESS = "press"
	RELEASE = "release"


@dataclasses.dataclass(frozen=True)
class InputEvent:

	"""
	A pad press or release tagged with its group, pad and timestamp.

	Build with ``InputEvent.create`` so indices are validated on the way in.
	"""

	type: InputEventType
	group: padseq.groups.Group
	pad: int
	timestamp: float

	@classmethod
	def create (
		cls,
		type: typing.Union[InputEventType, str],
		group: typing.Union[padseq.groups.Group, int, str],
		pad: int,
		timestamp: typing.Optional[float] = None
	) -> "InputEvent":

		"""
		Validate and build an event.

		Raises:
			InputOutOfRange: If the group or pad is outside its bounds.
			ValueError: If *type* is not a press or release.
		"""

		event_type = type if isinstance(type, InputEventType) else InputEventType(str(type).lower())

		return cls(
			type = event_type,
			group = padseq.groups.Group.parse(group),
			pad = padseq.groups.validate_pad(pad),
			timestamp = time.monotonic() if timestamp is None else float(timestamp)
		)

	def to_command (self) -> Command:

		command_type = CommandType.PAD_PRESS if self.type is InputEventType.PRESS else CommandType.PAD_RELEASE
		return Command(command_type, group=self.group, pad=self.pad, timestamp=self.timestamp)
