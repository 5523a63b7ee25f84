"""Index-based lookup from ``(group, pad)`` to loaded sample handles.

Discovering and decoding sample files is someone else's job: the bank only
stores handles that have already been resolved, plus a display name for every
pad. Handles are referenced by the engine, never owned by it.
"""

import dataclasses
import logging
import os
import typing

import padseq.config
import padseq.constants
import padseq.groups


logger = logging.getLogger(__name__)


DEFAULT_PAD_NAMES: typing.Dict[padseq.groups.Group, typing.Tuple[str, ...]] = {
	padseq.groups.Group.DRUMS: (
		"Kick", "Snare", "HiHat", "OpenHat",
		"Crash", "Ride", "Tom1", "Tom2",
		"Perc1", "Perc2", "Perc3", "Perc4",
		"FX1", "FX2", "FX3", "FX4",
	),
	padseq.groups.Group.BASS: (
		"Bass1", "Bass2", "Sub1", "Sub2",
		"Pluck1", "Pluck2", "Saw1", "Saw2",
		"Sine1", "Sine2", "FM1", "FM2",
		"Noise1", "Noise2", "Sweep1", "Sweep2",
	),
	padseq.groups.Group.LEAD: (
		"Lead1", "Lead2", "Arp1", "Arp2",
		"Pad1", "Pad2", "Strings1", "Strings2",
		"Brass1", "Brass2", "Choir1", "Choir2",
		"Organ1", "Organ2", "Piano1", "Piano2",
	),
	padseq.groups.Group.VOCAL: (
		"Vocal1", "Vocal2", "Chop1", "Chop2",
		"Voice1", "Voice2", "Speak1", "Speak2",
		"Breath1", "Breath2", "Scratch1", "Scratch2",
		"Reverse1", "Reverse2", "Echo1", "Echo2",
	),
}


@dataclasses.dataclass(frozen=True)
class SampleHandle:

	"""
	A ready-to-play sample as resolved by the loading collaborator.

	Attributes:
		name: Display name for the pad.
		path: Source file, if the sample came from disk.
		note: MIDI note to send when the sink is a MIDI sampler.
	"""

	name: str
	path: typing.Optional[str] = None
	note: typing.Optional[int] = None


class SampleBank:

	"""
	Lookup table of sample handles, one slot per ``(group, pad)``.
	"""

	def __init__ (self) -> None:

		self._handles: typing.Dict[typing.Tuple[padseq.groups.Group, int], SampleHandle] = {}

	def assign (self, group: typing.Union[padseq.groups.Group, int, str], pad: int, handle: SampleHandle) -> None:

		key = (padseq.groups.Group.parse(group), padseq.groups.validate_pad(pad))
		self._handles[key] = handle

	def remove (self, group: typing.Union[padseq.groups.Group, int, str], pad: int) -> None:

		key = (padseq.groups.Group.parse(group), padseq.groups.validate_pad(pad))
		self._handles.pop(key, None)

	def resolve (self, group: padseq.groups.Group, pad: int) -> typing.Optional[SampleHandle]:

		"""Return the handle loaded for a pad, or ``None`` when the pad is empty."""

		return self._handles.get((padseq.groups.Group(group), pad))

	def has_sample (self, group: padseq.groups.Group, pad: int) -> bool:
		return self.resolve(group, pad) is not None

	def name (self, group: padseq.groups.Group, pad: int) -> str:

		"""Display name for a pad: the loaded sample's name, else the built-in default."""

		handle = self.resolve(group, pad)

		if handle is not None:
			return handle.name

		return DEFAULT_PAD_NAMES[padseq.groups.Group(group)][pad]

	def __len__ (self) -> int:
		return len(self._handles)

	@classmethod
	def with_defaults (cls, base_note: int = padseq.constants.DEFAULT_BASE_NOTE) -> "SampleBank":

		"""
		A bank with every pad assigned its default name and a MIDI note of ``base_note + pad``.

		Useful when driving an external MIDI sampler that already holds the sounds.
		"""

		bank = cls()

		for group, names in DEFAULT_PAD_NAMES.items():
			for pad, name in enumerate(names):
				bank.assign(group, pad, SampleHandle(name=name, note=base_note + pad))

		return bank

	@classmethod
	def from_config (cls, mapping: typing.Mapping[typing.Any, typing.Any], base_note: int = padseq.constants.DEFAULT_BASE_NOTE) -> "SampleBank":

		"""
		Build a bank from the ``samples`` section of the configuration.

		Expected shape::

			samples:
			  drums:
			    0: {name: Kick, path: samples/kick.wav, note: 36}
			    1: samples/snare.wav

		A bare string is taken as the sample path, and its file stem as the name.
		Accepts the raw mapping or the already validated ``Config.samples``.

		Raises:
			ConfigError: If a group or pad is out of range or an entry is malformed.
		"""

		bank = cls()

		for group, pads in padseq.config.parse_samples(mapping).items():
			for pad, entry in pads.items():

				if entry.name:
					name = entry.name
				elif entry.path:
					name = os.path.splitext(os.path.basename(entry.path))[0]
				else:
					name = DEFAULT_PAD_NAMES[group][pad]

				note = entry.note

				if note is None and "note" not in entry.model_fields_set:
					note = base_note + pad

				bank.assign(group, pad, SampleHandle(name=name, path=entry.path, note=note))

		logger.info(f"Sample bank: {len(bank)} pads assigned")

		return bank
