"""YAML configuration for a padseq session.

Every key is optional. A missing file means "all defaults"::

	sequencer:
	  bpm: 120
	  steps_per_pattern: 16
	  steps_per_beat: 4
	  spin_wait: true

	mixer:
	  master_gain: 0.7
	  group_gain: 0.8          # or a list of four gains

	output:
	  type: midi               # midi, osc or none
	  device: "Sampler MIDI 1"
	  channels: [9, 1, 2, 3]
	  base_note: 36
	  host: 127.0.0.1          # osc output only
	  port: 57120

	samples:
	  drums:
	    0: samples/kick.wav
	    1: {name: Snare, note: 38}

	osc:
	  enabled: false
	  receive_port: 9000
	  send_port: 9001
	  send_host: 127.0.0.1

	web_feed:
	  enabled: false
	  port: 8765

	display:
	  enabled: true
	  grid: true

	key_bindings:
	  "q": quit
	  "F5": group_mute_toggle drums

	patterns_file: patterns.json
"""

import logging
import os
import typing

import pydantic
import yaml

import padseq.constants
import padseq.errors
import padseq.groups


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "config.yaml"


Gain = typing.Annotated[float, pydantic.Field(ge=0.0, le=1.0)]
MidiChannel = typing.Annotated[int, pydantic.Field(ge=0, le=15)]
MidiNote = typing.Annotated[int, pydantic.Field(ge=0, le=127)]


class _Section (pydantic.BaseModel):

	model_config = pydantic.ConfigDict(extra="forbid", frozen=True)


class SequencerConfig (_Section):

	# Out-of-range tempo is clamped later, like any other tempo change.
	bpm: float = pydantic.Field(padseq.constants.DEFAULT_BPM, ge=0)
	steps_per_pattern: int = pydantic.Field(padseq.constants.DEFAULT_STEPS_PER_PATTERN, gt=0)
	steps_per_beat: int = pydantic.Field(padseq.constants.DEFAULT_STEPS_PER_BEAT, gt=0)
	spin_wait: bool = True


class MixerConfig (_Section):

	master_gain: Gain = padseq.constants.DEFAULT_MASTER_GAIN
	group_gain: typing.Tuple[Gain, Gain, Gain, Gain] = (padseq.constants.DEFAULT_GROUP_GAIN,) * padseq.constants.GROUP_COUNT

	@pydantic.field_validator("group_gain", mode="before")
	@classmethod
	def _broadcast_gain (cls, value: typing.Any) -> typing.Any:

		"""A single number applies to every group."""

		if isinstance(value, (int, float)) and not isinstance(value, bool):
			return (value,) * padseq.constants.GROUP_COUNT

		return value


class OutputConfig (_Section):

	"""
	Where triggers are sent. ``type`` is ``"midi"``, ``"osc"`` or ``"none"``.
	"""

	type: typing.Literal["midi", "osc", "none"] = "midi"
	device: typing.Optional[str] = None
	channels: typing.Tuple[MidiChannel, MidiChannel, MidiChannel, MidiChannel] = (9, 1, 2, 3)
	base_note: MidiNote = padseq.constants.DEFAULT_BASE_NOTE
	host: str = "127.0.0.1"
	port: int = pydantic.Field(57120, ge=0, le=65535)


class OscConfig (_Section):

	enabled: bool = False
	receive_port: int = pydantic.Field(9000, ge=0, le=65535)
	send_port: int = pydantic.Field(9001, ge=0, le=65535)
	send_host: str = "127.0.0.1"


class WebFeedConfig (_Section):

	enabled: bool = False
	host: str = "localhost"
	port: int = pydantic.Field(8765, ge=0, le=65535)


class DisplayConfig (_Section):

	enabled: bool = True
	grid: bool = True


class SampleEntry (_Section):

	"""
	One pad of the ``samples`` section.

	A bare string is shorthand for ``{path: <string>}``. Missing fields are
	filled in by ``SampleBank.from_config``: the name from the file stem (or the
	pad's default name) and the note from ``base_note + pad``. An explicit
	``note: null`` means the pad sends no MIDI note.
	"""

	name: typing.Optional[str] = None
	path: typing.Optional[str] = None
	note: typing.Optional[MidiNote] = None

	@pydantic.model_validator(mode="before")
	@classmethod
	def _path_shorthand (cls, value: typing.Any) -> typing.Any:

		if isinstance(value, str):
			return {"path": value}

		return value


SamplesSection = typing.Dict[padseq.groups.GroupKey, typing.Dict[padseq.groups.PadIndex, SampleEntry]]

_samples_adapter: pydantic.TypeAdapter = pydantic.TypeAdapter(SamplesSection)


class Config (_Section):

	"""Complete session configuration, built by ``load_config`` or ``parse_config``."""

	sequencer: SequencerConfig = pydantic.Field(default_factory=SequencerConfig)
	mixer: MixerConfig = pydantic.Field(default_factory=MixerConfig)
	output: OutputConfig = pydantic.Field(default_factory=OutputConfig)
	osc: OscConfig = pydantic.Field(default_factory=OscConfig)
	web_feed: WebFeedConfig = pydantic.Field(default_factory=WebFeedConfig)
	display: DisplayConfig = pydantic.Field(default_factory=DisplayConfig)
	samples: SamplesSection = pydantic.Field(default_factory=dict)
	key_bindings: typing.Dict[str, str] = pydantic.Field(default_factory=dict)
	patterns_file: str = "patterns.json"

	@pydantic.field_validator("sequencer", "mixer", "output", "osc", "web_feed", "display", "samples", "key_bindings", mode="before")
	@classmethod
	def _empty_section (cls, value: typing.Any) -> typing.Any:

		"""A section present in YAML with no body parses as ``None``: treat it as empty."""

		return {} if value is None else value

	@pydantic.field_validator("key_bindings", mode="before")
	@classmethod
	def _key_names_as_text (cls, value: typing.Any) -> typing.Any:

		# YAML reads an unquoted digit key as an int.
		if isinstance(value, dict):
			return {str(key): action for key, action in value.items()}

		return value


def parse_samples (mapping: typing.Any) -> typing.Dict[padseq.groups.Group, typing.Dict[int, SampleEntry]]:

	"""
	Validate a ``samples`` mapping of ``group -> pad -> entry``.

	Raises:
		ConfigError: If a group or pad is out of range or an entry is malformed.
	"""

	try:
		return _samples_adapter.validate_python(mapping)
	except pydantic.ValidationError as exc:
		raise padseq.errors.ConfigError(f"Invalid samples: {padseq.errors.describe_validation(exc)}") from exc


def parse_config (raw: typing.Optional[typing.Mapping[str, typing.Any]]) -> Config:

	"""
	Validate a parsed YAML mapping and turn it into a ``Config``.

	Raises:
		ConfigError: On unknown keys, wrong types or out-of-range values.
	"""

	if raw is None:
		return Config()

	if not isinstance(raw, dict):
		raise padseq.errors.ConfigError("Configuration must be a mapping at the top level")

	try:
		return Config.model_validate(raw)
	except pydantic.ValidationError as exc:
		raise padseq.errors.ConfigError(f"Invalid configuration: {padseq.errors.describe_validation(exc)}") from exc


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> Config:

	"""
	Load configuration from a YAML file.

	A missing file is not an error: a warning is logged and defaults are used.

	Raises:
		ConfigError: If the file exists but is not valid YAML or fails validation.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return Config()

	try:
		with open(config_path, 'r') as f:
			raw = yaml.safe_load(f)
	except yaml.YAMLError as exc:
		raise padseq.errors.ConfigError(f"Could not parse {config_path}: {exc}") from exc

	return parse_config(raw)


def generate_example (path: str) -> None:

	"""Write a commented example configuration to *path*."""

	with open(path, 'w') as f:
		f.write(EXAMPLE_CONFIG)

	logger.info(f"Wrote example configuration to {path}")


EXAMPLE_CONFIG = """\
# padseq configuration. Every key is optional.

sequencer:
  bpm: 120
  steps_per_pattern: 16
  steps_per_beat: 4
  spin_wait: true

mixer:
  master_gain: 0.7
  group_gain: 0.8

output:
  type: midi            # midi, osc or none
  # device: "My Sampler MIDI 1"
  channels: [9, 1, 2, 3]
  base_note: 36

# samples:
#   drums:
#     0: samples/kick.wav
#     1: {name: Snare, note: 38}

osc:
  enabled: false
  receive_port: 9000
  send_port: 9001
  send_host: 127.0.0.1

web_feed:
  enabled: false
  port: 8765

display:
  enabled: true
  grid: true

# key_bindings:
#   "q": quit

patterns_file: patterns.json
"""
