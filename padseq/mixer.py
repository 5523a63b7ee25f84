import dataclasses
import logging
import typing

import padseq.constants
import padseq.groups


logger = logging.getLogger(__name__)


def _clamp_gain (value: float) -> float:
	return min(1.0, max(0.0, float(value)))


@dataclasses.dataclass
class ChannelState:

	"""
	Gain and mute flag for one group channel.
	"""

	gain: float = padseq.constants.DEFAULT_GROUP_GAIN
	muted: bool = False


@dataclasses.dataclass(frozen=True)
class MixerSnapshot:

	"""
	Immutable copy of the full mixer state, sent to the rendering side on every change.
	"""

	master_gain: float
	master_muted: bool
	group_gains: typing.Tuple[float, ...]
	group_muted: typing.Tuple[bool, ...]

	def as_dict (self) -> typing.Dict[str, typing.Any]:

		"""JSON-friendly form keyed by group name."""

		return {
			"master": {"gain": self.master_gain, "muted": self.master_muted},
			"groups": {
				group.name: {"gain": self.group_gains[group], "muted": self.group_muted[group]}
				for group in padseq.groups.Group
			},
		}


class Mixer:

	"""
	Master and per-group volume with mute flags.

	The sequencer reads ``effective_gain()`` once per trigger. Gains are only
	changed by explicit mixer commands and are never reset automatically.
	"""

	def __init__ (
		self,
		master_gain: float = padseq.constants.DEFAULT_MASTER_GAIN,
		group_gain: typing.Union[float, typing.Sequence[float]] = padseq.constants.DEFAULT_GROUP_GAIN
	) -> None:

		"""
		Initialise the mixer with unmuted channels.

		Parameters:
			master_gain: Starting master gain (clamped to 0..1).
			group_gain: A single starting gain for every group, or one value per group.
		"""

		if isinstance(group_gain, (int, float)):
			gains = [float(group_gain)] * padseq.constants.GROUP_COUNT
		else:
			gains = [float(g) for g in group_gain]
			if len(gains) != padseq.constants.GROUP_COUNT:
				raise ValueError(f"Expected {padseq.constants.GROUP_COUNT} group gains, got {len(gains)}")

		self.master_gain: float = _clamp_gain(master_gain)
		self.master_muted: bool = False
		self.channels: typing.List[ChannelState] = [ChannelState(gain=_clamp_gain(g)) for g in gains]

	def channel (self, group: padseq.groups.Group) -> ChannelState:
		return self.channels[padseq.groups.Group.parse(group)]

	def effective_gain (self, group: padseq.groups.Group) -> float:

		"""
		Return 0.0 if the master or the group is muted, otherwise ``master_gain * group_gain``.

		Pure: reads state only, safe to call once per trigger.
		"""

		channel = self.channels[group]

		if self.master_muted or channel.muted:
			return 0.0

		return self.master_gain * channel.gain

	def adjust_master_volume (self, delta: float) -> float:

		self.master_gain = _clamp_gain(self.master_gain + delta)
		logger.debug(f"Master volume {self.master_gain:.2f}")
		return self.master_gain

	def set_master_volume (self, value: float) -> float:

		self.master_gain = _clamp_gain(value)
		return self.master_gain

	def adjust_group_volume (self, group: padseq.groups.Group, delta: float) -> float:

		channel = self.channel(group)
		channel.gain = _clamp_gain(channel.gain + delta)
		logger.debug(f"{padseq.groups.Group(group).name} volume {channel.gain:.2f}")
		return channel.gain

	def set_group_volume (self, group: padseq.groups.Group, value: float) -> float:

		channel = self.channel(group)
		channel.gain = _clamp_gain(value)
		return channel.gain

	def toggle_master_mute (self) -> bool:

		self.master_muted = not self.master_muted
		logger.info(f"Master {'muted' if self.master_muted else 'unmuted'}")
		return self.master_muted

	def toggle_group_mute (self, group: padseq.groups.Group) -> bool:

		channel = self.channel(group)
		channel.muted = not channel.muted
		logger.info(f"{padseq.groups.Group(group).name} {'muted' if channel.muted else 'unmuted'}")
		return channel.muted

	def snapshot (self) -> MixerSnapshot:

		return MixerSnapshot(
			master_gain = self.master_gain,
			master_muted = self.master_muted,
			group_gains = tuple(c.gain for c in self.channels),
			group_muted = tuple(c.muted for c in self.channels),
		)
