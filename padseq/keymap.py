"""Keyboard layout: which key sends which command.

The default layout puts the sixteen pads of the active group on a 4x4 block
of the keyboard::

	7 8 9 0
	u i o p
	j k l ;
	m , . /

Transport, navigation and mixer keys surround it. Any key can be rebound
from the ``key_bindings`` section of the configuration, using a key name
(``"Tab"``, ``"F5"``, ``"Up"`` or a single character) and a command spec::

	key_bindings:
	  "q": quit
	  "F5": group_mute_toggle drums
	  "a": pad_press 0
	  "Esc": none            # unbind
"""

import dataclasses
import logging
import typing

import padseq.commands
import padseq.constants
import padseq.errors
import padseq.groups


logger = logging.getLogger(__name__)


CommandType = padseq.commands.CommandType


#: Key names accepted in configuration, mapped to what the terminal sends.
NAMED_KEYS: typing.Dict[str, str] = {
	"space": " ",
	"tab": "\t",
	"backtab": "\x1b[Z",
	"shift-tab": "\x1b[Z",
	"enter": "\n",
	"esc": "\x1b",
	"escape": "\x1b",
	"up": "\x1b[A",
	"down": "\x1b[B",
	"right": "\x1b[C",
	"left": "\x1b[D",
	"f1": "\x1bOP",
	"f2": "\x1bOQ",
	"f3": "\x1bOR",
	"f4": "\x1bOS",
	"f5": "\x1b[15~",
	"f6": "\x1b[17~",
	"f7": "\x1b[18~",
	"f8": "\x1b[19~",
}

# Some terminals send the VT220 form for F1-F4.
_KEY_ALIASES: typing.Dict[str, str] = {
	"\x1b[11~": "\x1bOP",
	"\x1b[12~": "\x1bOQ",
	"\x1b[13~": "\x1bOR",
	"\x1b[14~": "\x1bOS",
	"\x1bOA": "\x1b[A",
	"\x1bOB": "\x1b[B",
	"\x1bOC": "\x1b[C",
	"\x1bOD": "\x1b[D",
	"\r": "\n",
}

PAD_KEYS = "7890uiopjkl;m,./"

GROUP_VOLUME_UP_KEYS = "1234"
GROUP_VOLUME_DOWN_KEYS = "!@#$"


@dataclasses.dataclass(frozen=True)
class Binding:

	"""A command bound to a key, with the arguments it always carries."""

	type: padseq.commands.CommandType
	group: typing.Optional[padseq.groups.Group] = None
	pad: typing.Optional[int] = None
	value: typing.Optional[float] = None

	def to_command (self) -> padseq.commands.Command:
		return padseq.commands.Command(self.type, group=self.group, pad=self.pad, value=self.value)

	def describe (self) -> str:

		text = self.type.name.lower().replace("_", " ")

		if self.group is not None:
			text += f" {self.group.name.lower()}"
		if self.pad is not None:
			text += f" {self.pad}"
		if self.value is not None:
			text += f" {self.value:g}"

		return text


def parse_key (name: str) -> str:

	"""
	Turn a configured key name into the string the terminal sends for it.

	Raises:
		ConfigError: If the name is neither a known key name nor a single character.
	"""

	lowered = name.lower()

	if lowered in NAMED_KEYS:
		return NAMED_KEYS[lowered]

	if len(name) == 1:
		return name

	raise padseq.errors.ConfigError(f"Unknown key name {name!r}")


def normalize_key (key: str) -> str:

	"""Map alternative terminal encodings of the same key onto one form."""

	return _KEY_ALIASES.get(key, key)


def key_label (key: str) -> str:

	"""Human-readable name for a key string, for help output."""

	for name, sequence in NAMED_KEYS.items():
		if sequence == key:
			return name.capitalize() if len(name) > 2 else name.upper()

	return key


def parse_binding (spec: str) -> Binding:

	"""
	Parse a command spec such as ``"quit"``, ``"pad_press 3"``, ``"group_mute_toggle bass"``
	or ``"set_tempo 140"``.

	For pad commands the argument is the pad; for group commands it is the
	group; for ``set_*`` and ``select_pattern`` it is the value.

	Raises:
		ConfigError: If the command or its arguments are invalid.
	"""

	parts = spec.split()

	if not parts:
		raise padseq.errors.ConfigError("Empty key binding")

	try:
		command_type = padseq.commands.CommandType.parse(parts[0])
	except ValueError as exc:
		raise padseq.errors.ConfigError(str(exc)) from exc

	args = parts[1:]
	group: typing.Optional[padseq.groups.Group] = None
	pad: typing.Optional[int] = None
	value: typing.Optional[float] = None

	try:
		if command_type in (CommandType.PAD_PRESS, CommandType.PAD_RELEASE):
			if len(args) == 2:
				group = padseq.groups.Group.parse(args.pop(0))
			if len(args) != 1:
				raise padseq.errors.ConfigError(f"{spec!r}: pad commands take a pad number")
			pad = padseq.groups.validate_pad(int(args[0]))

		elif command_type is CommandType.SET_GROUP_VOLUME:
			if len(args) != 2:
				raise padseq.errors.ConfigError(f"{spec!r}: expected a group and a gain")
			group = padseq.groups.Group.parse(args[0])
			value = float(args[1])

		elif command_type in padseq.commands.GROUP_COMMANDS:
			if len(args) > 1:
				raise padseq.errors.ConfigError(f"{spec!r}: expected at most one group")
			if args:
				group = padseq.groups.Group.parse(args[0])

		elif command_type in (CommandType.SET_TEMPO, CommandType.SET_MASTER_VOLUME, CommandType.SELECT_PATTERN):
			if len(args) != 1:
				raise padseq.errors.ConfigError(f"{spec!r}: expected a value")
			value = float(args[0])

		elif args:
			raise padseq.errors.ConfigError(f"{spec!r}: {command_type.name.lower()} takes no arguments")

	except padseq.errors.ConfigError:
		raise

	except ValueError as exc:
		raise padseq.errors.ConfigError(f"{spec!r}: {exc}") from exc

	return Binding(command_type, group=group, pad=pad, value=value)


def default_bindings () -> typing.Dict[str, Binding]:

	bindings: typing.Dict[str, Binding] = {
		" ": Binding(CommandType.PLAY_STOP),
		"r": Binding(CommandType.TOGGLE_RECORD),
		"c": Binding(CommandType.CLEAR_PATTERN),
		"z": Binding(CommandType.REWIND),
		NAMED_KEYS["tab"]: Binding(CommandType.SWITCH_GROUP),
		NAMED_KEYS["backtab"]: Binding(CommandType.PREVIOUS_GROUP),
		NAMED_KEYS["right"]: Binding(CommandType.PATTERN_NEXT),
		NAMED_KEYS["left"]: Binding(CommandType.PATTERN_PREV),
		NAMED_KEYS["up"]: Binding(CommandType.TEMPO_UP),
		NAMED_KEYS["down"]: Binding(CommandType.TEMPO_DOWN),
		"=": Binding(CommandType.MASTER_VOL_UP),
		"+": Binding(CommandType.MASTER_VOL_UP),
		"-": Binding(CommandType.MASTER_VOL_DOWN),
		"M": Binding(CommandType.MASTER_MUTE_TOGGLE),
		"S": Binding(CommandType.SAVE),
		"L": Binding(CommandType.LOAD),
		"?": Binding(CommandType.HELP),
		NAMED_KEYS["esc"]: Binding(CommandType.QUIT),
	}

	for group in padseq.groups.Group:
		bindings[GROUP_VOLUME_UP_KEYS[group]] = Binding(CommandType.GROUP_VOL_UP, group=group)
		bindings[GROUP_VOLUME_DOWN_KEYS[group]] = Binding(CommandType.GROUP_VOL_DOWN, group=group)
		bindings[NAMED_KEYS[f"f{group + 1}"]] = Binding(CommandType.GROUP_MUTE_TOGGLE, group=group)

	for pad, key in enumerate(PAD_KEYS):
		bindings[key] = Binding(CommandType.PAD_PRESS, pad=pad)

	return bindings


class Keymap:

	"""
	Lookup from key strings (as delivered by the keystroke listener) to bindings.
	"""

	def __init__ (self, bindings: typing.Optional[typing.Mapping[str, Binding]] = None) -> None:

		self.bindings: typing.Dict[str, Binding] = dict(default_bindings() if bindings is None else bindings)

	@classmethod
	def from_config (cls, overrides: typing.Mapping[str, str]) -> "Keymap":

		"""
		The default layout with configured overrides applied. A spec of ``none`` unbinds the key.

		Raises:
			ConfigError: On an unknown key name or an invalid command spec.
		"""

		keymap = cls()

		for name, spec in overrides.items():

			key = parse_key(name)

			if spec.strip().lower() in ("", "none"):
				keymap.bindings.pop(key, None)
				continue

			keymap.bindings[key] = parse_binding(spec)

		if overrides:
			logger.info(f"Applied {len(overrides)} key binding override(s)")

		return keymap

	def resolve (self, key: str) -> typing.Optional[Binding]:
		return self.bindings.get(normalize_key(key))

	def command_for (self, key: str) -> typing.Optional[padseq.commands.Command]:

		binding = self.resolve(key)
		return None if binding is None else binding.to_command()

	def help_lines (self) -> typing.List[str]:

		"""One ``key  command`` line per binding, pads last."""

		bindings = sorted(
			self.bindings.items(),
			key = lambda item: (item[1].type is CommandType.PAD_PRESS, item[1].pad or 0, item[1].type.name, item[0])
		)

		return [f"{key_label(key):>8}  {binding.describe()}" for key, binding in bindings]
