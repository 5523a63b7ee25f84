import dataclasses
import enum
import logging
import typing

import padseq.clock
import padseq.commands
import padseq.constants
import padseq.dispatcher
import padseq.event_emitter
import padseq.groups
import padseq.mixer
import padseq.pattern


logger = logging.getLogger(__name__)


class TransportMode (enum.Enum):

	STOPPED = "stopped"
	PLAYING = "playing"


@dataclasses.dataclass
class GroupTransport:

	"""
	Playback position of one group.

	Attributes:
		pattern_index: The group's active pattern (0..98).
		step_index: The step the next tick will play.
		last_step: The step the most recent tick played, or ``None`` before the
			first tick (and after a rewind).
	"""

	pattern_index: int = 0
	step_index: int = 0
	last_step: typing.Optional[int] = None


@dataclasses.dataclass(frozen=True)
class TickInfo:

	"""Emitted with ``"tick"``: what the active group just played."""

	step_index: int
	group: padseq.groups.Group
	pattern_index: int
	mode: TransportMode
	recording: bool


@dataclasses.dataclass(frozen=True)
class TriggerInfo:

	"""
	Emitted with ``"trigger"`` for every trigger, from the sequence or from a live pad press.
	"""

	group: padseq.groups.Group
	pad: int
	gain: float
	result: padseq.dispatcher.TriggerResult
	live: bool = False
	recorded_step: typing.Optional[int] = None


@dataclasses.dataclass(frozen=True)
class TransportSnapshot:

	"""Read-only copy of the transport for rendering."""

	mode: TransportMode
	recording: bool
	tempo: float
	group: padseq.groups.Group
	pattern_indices: typing.Tuple[int, ...]
	step_indices: typing.Tuple[int, ...]

	@property
	def pattern_index (self) -> int:
		return self.pattern_indices[self.group]

	@property
	def step_index (self) -> int:
		return self.step_indices[self.group]

	def as_dict (self) -> typing.Dict[str, typing.Any]:

		return {
			"mode": self.mode.value,
			"recording": self.recording,
			"tempo": self.tempo,
			"group": self.group.name,
			"pattern_index": self.pattern_index,
			"step_index": self.step_index,
			"groups": {
				group.name: {"pattern_index": self.pattern_indices[group], "step_index": self.step_indices[group]}
				for group in padseq.groups.Group
			},
		}


class Sequencer:

	"""
	The transport state machine and the only writer of pattern contents.

	All four groups play in parallel: every tick reads each group's active
	pattern at that group's own step pointer, triggers every marked pad through
	the dispatcher, and advances the pointer. The performer edits one group at a
	time (the *active* group); switching groups never moves any pointer.

	Live pad presses always sound. While recording *and* playing they are also
	written into the active pattern, quantized to the step the active group
	most recently played.

	The sequencer is not thread-safe. Call it from one event loop only; the
	session queues input from other threads onto that loop.

	Events (see :class:`padseq.event_emitter.EventEmitter`):

	- ``"tick"`` (``TickInfo``)
	- ``"trigger"`` (``TriggerInfo``)
	- ``"release"`` (group, pad)
	- ``"transport"`` (``TransportSnapshot``)
	- ``"pattern"`` (group, pattern index)
	"""

	def __init__ (
		self,
		store: padseq.pattern.PatternStore,
		mixer: padseq.mixer.Mixer,
		dispatcher: padseq.dispatcher.PlaybackDispatcher,
		bpm: float = padseq.constants.DEFAULT_BPM,
		events: typing.Optional[padseq.event_emitter.EventEmitter] = None
	) -> None:

		"""
		Start STOPPED, not recording, on DRUMS with every group at pattern 0 step 0.

		Parameters:
			store: Pattern storage shared with persistence.
			mixer: Read once per trigger for the effective gain.
			dispatcher: Where triggers go.
			bpm: Starting tempo, clamped to 60..300.
			events: Emitter to publish the rendering feed on; a new one by default.
		"""

		self.store = store
		self.mixer = mixer
		self.dispatcher = dispatcher
		self.events = events if events is not None else padseq.event_emitter.EventEmitter()

		self._mode = TransportMode.STOPPED
		self._recording = False
		self._group = padseq.groups.Group.DRUMS
		self._tempo = padseq.clock.clamp_bpm(bpm)
		self._transports: typing.Dict[padseq.groups.Group, GroupTransport] = {
			group: GroupTransport() for group in padseq.groups.Group
		}

	# Read accessors

	@property
	def mode (self) -> TransportMode:
		return self._mode

	@property
	def playing (self) -> bool:
		return self._mode is TransportMode.PLAYING

	@property
	def recording (self) -> bool:
		return self._recording

	@property
	def tempo (self) -> float:
		return self._tempo

	@property
	def group (self) -> padseq.groups.Group:
		return self._group

	@property
	def pattern_index (self) -> int:
		return self._transports[self._group].pattern_index

	@property
	def step_index (self) -> int:

		"""The step the active group will play on the next tick."""

		return self._transports[self._group].step_index

	@property
	def active_pattern (self) -> padseq.pattern.Pattern:
		return self.store.get(self._group, self.pattern_index)

	def group_transport (self, group: typing.Union[padseq.groups.Group, int, str]) -> GroupTransport:

		"""Return a copy of one group's playback position."""

		return dataclasses.replace(self._transports[padseq.groups.Group.parse(group)])

	def state (self) -> TransportSnapshot:

		return TransportSnapshot(
			mode = self._mode,
			recording = self._recording,
			tempo = self._tempo,
			group = self._group,
			pattern_indices = tuple(self._transports[g].pattern_index for g in padseq.groups.Group),
			step_indices = tuple(self._transports[g].step_index for g in padseq.groups.Group),
		)

	def _emit_transport (self) -> None:
		self.events.emit("transport", self.state())

	# Transport

	def toggle_play (self) -> TransportMode:

		"""
		Switch between STOPPED and PLAYING.

		Step pointers are left where they are, so play resumes from the stop
		position (use ``rewind()`` to go back to step 0). Stopping silences any
		sustained triggers but never touches pattern contents.
		"""

		if self._mode is TransportMode.PLAYING:
			self._mode = TransportMode.STOPPED
			self.dispatcher.silence()
			logger.info("Stopped")
		else:
			self._mode = TransportMode.PLAYING
			logger.info("Playing")

		self._emit_transport()
		return self._mode

	def toggle_record (self) -> bool:

		self._recording = not self._recording
		logger.info(f"Recording {'on' if self._recording else 'off'}")
		self._emit_transport()
		return self._recording

	def rewind (self) -> None:

		"""Move every group's step pointer back to step 0."""

		for transport in self._transports.values():
			transport.step_index = 0
			transport.last_step = None

		self._emit_transport()

	def set_tempo (self, bpm: float) -> float:

		"""
		Set the tempo, silently clamped to 60..300. The clock picks it up on its next interval.
		"""

		self._tempo = padseq.clock.clamp_bpm(bpm)
		logger.info(f"BPM set to {self._tempo:.0f}")
		self._emit_transport()
		return self._tempo

	def adjust_tempo (self, delta: float) -> float:
		return self.set_tempo(self._tempo + delta)

	# Group and pattern selection

	def select_group (self, group: typing.Union[padseq.groups.Group, int, str]) -> padseq.groups.Group:

		self._group = padseq.groups.Group.parse(group)
		logger.debug(f"Active group {self._group.name}")
		self._emit_transport()
		return self._group

	def next_group (self) -> padseq.groups.Group:
		return self.select_group(self._group.next())

	def previous_group (self) -> padseq.groups.Group:
		return self.select_group(self._group.previous())

	def select_pattern (self, index: int) -> int:

		"""
		Make *index* the active group's pattern, clamped to 0..98.

		Takes effect immediately: the next tick plays the new pattern at the
		group's current step pointer.
		"""

		transport = self._transports[self._group]
		transport.pattern_index = self.store.clamp_index(index)
		logger.debug(f"{self._group.name} pattern {transport.pattern_index + 1}")
		self._emit_transport()
		return transport.pattern_index

	def navigate_pattern (self, delta: int) -> int:
		return self.select_pattern(self.pattern_index + delta)

	def clear_pattern (self) -> None:

		"""Silence every step of the active pattern. Transport state is not changed."""

		self.active_pattern.clear()
		logger.info(f"Cleared {self._group.name} pattern {self.pattern_index + 1}")
		self.events.emit("pattern", self._group, self.pattern_index)

	# Playback

	def on_tick (self) -> None:

		"""
		Play one step on every group, then advance every step pointer.

		Does nothing while STOPPED.
		"""

		if self._mode is not TransportMode.PLAYING:
			return

		for group in padseq.groups.Group:

			transport = self._transports[group]
			step = transport.step_index

			# Patterns that were never created are silent; don't create them just to read them.
			pattern = self.store.peek(group, transport.pattern_index)

			if pattern is not None:
				for pad, velocity in pattern.hits_at(step):
					self._trigger(group, pad, velocity, live=False)

			transport.last_step = step
			transport.step_index = (step + 1) % self.store.steps_per_pattern

		active = self._transports[self._group]

		self.events.emit("tick", TickInfo(
			step_index = active.last_step,
			group = self._group,
			pattern_index = active.pattern_index,
			mode = self._mode,
			recording = self._recording,
		))

	def _trigger (
		self,
		group: padseq.groups.Group,
		pad: int,
		velocity: float,
		live: bool,
		recorded_step: typing.Optional[int] = None
	) -> padseq.dispatcher.TriggerResult:

		gain = self.mixer.effective_gain(group) * velocity
		result = self.dispatcher.trigger(group, pad, gain)

		self.events.emit("trigger", TriggerInfo(
			group = group,
			pad = pad,
			gain = gain,
			result = result,
			live = live,
			recorded_step = recorded_step,
		))

		return result

	# Live input

	def on_pad_pressed (self, pad: int, timestamp: typing.Optional[float] = None, velocity: float = 1.0) -> padseq.dispatcher.TriggerResult:

		"""
		Trigger a pad on the active group now, and record it when armed.

		The press is recorded only while recording and PLAYING. It lands on the
		step the active group played most recently, which is the step the
		performer is hearing. Before the first tick it lands on the step pointer.

		Raises:
			InputOutOfRange: If *pad* is outside 0..15. Nothing is triggered or recorded.
		"""

		padseq.groups.validate_pad(pad)

		recorded_step: typing.Optional[int] = None

		if self._recording and self._mode is TransportMode.PLAYING:

			transport = self._transports[self._group]
			recorded_step = transport.last_step if transport.last_step is not None else transport.step_index

			self.active_pattern.mark(recorded_step, pad, velocity)
			logger.debug(f"Recorded {self._group.name}:{pad} at step {recorded_step + 1}")

		result = self._trigger(self._group, pad, velocity, live=True, recorded_step=recorded_step)

		if recorded_step is not None:
			self.events.emit("pattern", self._group, self.pattern_index)

		return result

	def on_pad_released (self, pad: int, timestamp: typing.Optional[float] = None) -> None:

		"""
		Note a pad release. Releases never change pattern contents.

		Raises:
			InputOutOfRange: If *pad* is outside 0..15.
		"""

		padseq.groups.validate_pad(pad)
		self.events.emit("release", self._group, pad)

	def handle_event (self, event: padseq.commands.InputEvent) -> typing.Optional[padseq.dispatcher.TriggerResult]:

		"""
		Apply a validated pad event, making its group the active group first.
		"""

		if event.group != self._group:
			self.select_group(event.group)

		if event.type is padseq.commands.InputEventType.PRESS:
			return self.on_pad_pressed(event.pad, event.timestamp)

		self.on_pad_released(event.pad, event.timestamp)
		return None

	# Persistence

	def pattern_data (self) -> typing.Dict[str, typing.List[typing.Any]]:
		return self.store.to_data()

	def load_patterns (self, data: typing.Mapping[typing.Any, typing.Any]) -> None:

		"""
		Replace every pattern from a ``PatternStore.to_data()`` mapping.

		Raises:
			PersistenceError: If the data is malformed. Existing patterns are kept.
		"""

		self.store.load_data(data)
		logger.info("Patterns loaded")

		for group in padseq.groups.Group:
			self.events.emit("pattern", group, self._transports[group].pattern_index)
