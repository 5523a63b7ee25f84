import enum
import logging
import typing

import padseq.groups
import padseq.samples


logger = logging.getLogger(__name__)


class TriggerResult (enum.Enum):

	"""Outcome of a trigger request."""

	PLAYED = "played"
	EMPTY = "empty"


@typing.runtime_checkable
class Sink (typing.Protocol):

	"""
	Protocol for audio sinks. ``play`` must return without waiting for playback to finish.
	"""

	def play (self, handle: padseq.samples.SampleHandle, gain: float) -> None:

		"""
		Start playing *handle* scaled by *gain* (0.0..1.0).
		"""

		...


class PlaybackDispatcher:

	"""
	Thin boundary between the sequencer and the external audio sink.

	Resolves ``(group, pad)`` to a sample handle and forwards it, fire-and-forget.
	A pad with no sample is reported as ``TriggerResult.EMPTY`` with no sink call.
	"""

	def __init__ (self, bank: padseq.samples.SampleBank, sink: Sink) -> None:

		self.bank = bank
		self.sink = sink

	def trigger (self, group: padseq.groups.Group, pad: int, gain: float) -> TriggerResult:

		handle = self.bank.resolve(group, pad)

		if handle is None:
			logger.debug(f"Empty pad {padseq.groups.Group(group).name}:{pad}")
			return TriggerResult.EMPTY

		gain = min(1.0, max(0.0, gain))

		try:
			self.sink.play(handle, gain)
		except Exception:
			logger.exception(f"Sink failed to play {handle.name!r}")

		return TriggerResult.PLAYED

	def silence (self) -> None:

		"""
		Ask the sink to cut any sustained sounds, when it knows how.
		"""

		silence = getattr(self.sink, "silence", None)

		if silence is None:
			return

		try:
			silence()
		except Exception:
			logger.exception("Sink failed to silence")

	def close (self) -> None:

		close = getattr(self.sink, "close", None)

		if close is not None:
			try:
				close()
			except Exception:
				logger.exception("Sink failed to close")
