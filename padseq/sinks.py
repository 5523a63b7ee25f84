"""Concrete audio sinks for the playback dispatcher.

padseq does not decode or mix audio itself. A sink hands each trigger to
something that does:

- ``MidiSink`` sends note-on messages to a hardware or software sampler via
  :mod:`mido`, one MIDI channel per group.
- ``OscSink`` sends ``/padseq/play`` messages to an OSC sample player (for
  example a SuperCollider or Pure Data patch) via :mod:`pythonosc`.
- ``NullSink`` only logs, and is what the engine falls back to when no output
  is configured or the MIDI device cannot be opened.
"""

import logging
import typing

import mido
import pythonosc.udp_client

import padseq.constants
import padseq.groups
import padseq.samples


logger = logging.getLogger(__name__)


def open_output_port (device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Open the MIDI port a session should trigger on, without ever prompting.

	stdin belongs to the keyboard listener while a session runs, so an
	ambiguous choice is reported instead of asked about. The port is opened only
	when ``output.device`` names an existing port, or when no device is
	configured and exactly one port exists.

	Returns:
		``(port_name, port)``, or ``(None, None)`` so the caller can fall back to
		a ``NullSink``.
	"""

	try:
		outputs = mido.get_output_names()
	except Exception as e:
		logger.error(f"Could not list MIDI outputs: {e}")
		return None, None

	logger.debug(f"MIDI outputs: {outputs}")

	if device_name is None:
		if not outputs:
			logger.error("No MIDI output ports found")
			return None, None

		if len(outputs) > 1:
			logger.error(
				f"{len(outputs)} MIDI output ports found and output.device is not set. "
				f"Choose one of: {', '.join(repr(name) for name in outputs)} "
				f"(padseq --list-outputs prints them)"
			)
			return None, None

		device_name = outputs[0]

	elif device_name not in outputs:
		logger.error(f"MIDI output {device_name!r} not found. Available: {outputs}")
		return None, None

	try:
		port = mido.open_output(device_name)
	except Exception as e:
		logger.error(f"Could not open MIDI output {device_name!r}: {e}")
		return None, None

	logger.info(f"Triggering on MIDI output {device_name!r}")

	return device_name, port


class NullSink:

	"""Sink that drops every trigger after logging it."""

	def play (self, handle: padseq.samples.SampleHandle, gain: float) -> None:
		logger.debug(f"play {handle.name} gain={gain:.2f}")


class MidiSink:

	"""
	Triggers samples on an external MIDI sampler.

	Each sample handle carries the note to send; the MIDI channel is chosen by
	the group the handle belongs to. Gain maps linearly onto velocity 0-127.
	A trigger whose velocity rounds to zero is not sent, since a note-on with
	velocity 0 means note-off on the wire.
	"""

	def __init__ (
		self,
		output_device_name: typing.Optional[str] = None,
		channels: typing.Sequence[int] = (9, 1, 2, 3),
		base_note: int = padseq.constants.DEFAULT_BASE_NOTE,
		midi_out: typing.Optional[typing.Any] = None
	) -> None:

		"""
		Open the output port (or adopt *midi_out* when given).

		Parameters:
			output_device_name: MIDI output port name. When omitted, the only
				available port is used; see ``open_output_port``.
			channels: MIDI channel (0-15) for each group, in group order.
			base_note: Note for pad 0 when a handle has no note of its own.
			midi_out: An already-open port, mainly for tests.
		"""

		self.channels = tuple(channels)
		self.base_note = base_note
		self.active_notes: typing.Set[typing.Tuple[int, int]] = set()
		self._handle_channels: typing.Dict[int, typing.Tuple[padseq.samples.SampleHandle, int]] = {}

		if midi_out is not None:
			self.output_device_name = output_device_name
			self.midi_out: typing.Optional[typing.Any] = midi_out
		else:
			self.output_device_name, self.midi_out = open_output_port(output_device_name)

	@property
	def is_open (self) -> bool:
		return self.midi_out is not None

	def bind (self, bank: padseq.samples.SampleBank) -> None:

		"""
		Record which channel each handle in *bank* plays on.

		Handles are matched by identity, not value, so two groups configured
		with the same file keep their own channels.
		"""

		for group in padseq.groups.Group:
			for pad in range(padseq.constants.PADS_PER_GROUP):
				handle = bank.resolve(group, pad)
				if handle is not None:
					self._handle_channels[id(handle)] = (handle, self.channels[group])

	def channel_for (self, handle: padseq.samples.SampleHandle) -> int:

		bound = self._handle_channels.get(id(handle))

		if bound is not None and bound[0] is handle:
			return bound[1]

		return self.channels[0]

	def play (self, handle: padseq.samples.SampleHandle, gain: float) -> None:

		if self.midi_out is None:
			return

		velocity = int(round(gain * padseq.constants.MIDI_MAX_VELOCITY))

		if velocity <= 0:
			return

		channel = self.channel_for(handle)
		note = handle.note if handle.note is not None else self.base_note

		try:
			# Retrigger: end the previous hit of the same note first.
			if (channel, note) in self.active_notes:
				self.midi_out.send(mido.Message('note_off', channel=channel, note=note, velocity=0))

			self.midi_out.send(mido.Message('note_on', channel=channel, note=note, velocity=velocity))
			self.active_notes.add((channel, note))

		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")

	def silence (self) -> None:

		"""
		Send note_off for every sounding note, then All Sound Off on the group channels.
		"""

		if self.midi_out is None:
			return

		try:
			for channel, note in sorted(self.active_notes):
				self.midi_out.send(mido.Message('note_off', channel=channel, note=note, velocity=0))

			for channel in sorted(set(self.channels)):
				self.midi_out.send(mido.Message('control_change', channel=channel, control=120, value=0))

		except Exception:
			logger.exception("MIDI silence failed (device may be disconnected)")

		self.active_notes.clear()

	def close (self) -> None:

		if self.midi_out is None:
			return

		self.silence()
		self.midi_out.close()
		self.midi_out = None


class OscSink:

	"""
	Sends each trigger as an OSC message to a sample player.

	Messages:

	- ``/padseq/play <path-or-name> <gain>``
	- ``/padseq/silence``
	"""

	def __init__ (self, host: str = "127.0.0.1", port: int = 57120, client: typing.Optional[typing.Any] = None) -> None:

		self.host = host
		self.port = port
		self._client = client if client is not None else pythonosc.udp_client.SimpleUDPClient(host, port)

	def play (self, handle: padseq.samples.SampleHandle, gain: float) -> None:

		target = handle.path if handle.path is not None else handle.name

		try:
			self._client.send_message("/padseq/play", [target, float(gain)])
		except Exception as e:
			logger.warning(f"OSC send error: {e}")

	def silence (self) -> None:

		try:
			self._client.send_message("/padseq/silence", [])
		except Exception as e:
			logger.warning(f"OSC send error: {e}")
