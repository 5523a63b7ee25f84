"""A running padseq instrument: engine, clock, input and feeds wired together.

A ``Session`` owns one sequencer and everything around it. All state changes
happen on one asyncio event loop. Keystrokes (from the listener thread) and
OSC messages become :class:`padseq.commands.Command` objects that are queued
onto that loop with ``submit()`` and applied one at a time by ``execute()``.
Clock ticks run on the same loop, so a tick and a command never interleave.

Example::

	import padseq.config
	import padseq.session

	session = padseq.session.Session(padseq.config.load_config())
	session.play()
"""

import asyncio
import logging
import signal
import typing

import padseq.clock
import padseq.commands
import padseq.config
import padseq.constants
import padseq.dispatcher
import padseq.display
import padseq.errors
import padseq.groups
import padseq.keymap
import padseq.keystroke
import padseq.mixer
import padseq.osc
import padseq.pattern
import padseq.persistence
import padseq.samples
import padseq.sequencer
import padseq.sinks
import padseq.web_feed


logger = logging.getLogger(__name__)


CommandType = padseq.commands.CommandType


def build_sink (output: padseq.config.OutputConfig, bank: padseq.samples.SampleBank) -> padseq.dispatcher.Sink:

	"""
	Create the sink named by the output configuration.

	A MIDI output that cannot be opened falls back to a ``NullSink`` with a
	warning, so the sequencer still runs (silently) without hardware.
	"""

	if output.type == "none":
		return padseq.sinks.NullSink()

	if output.type == "osc":
		return padseq.sinks.OscSink(host=output.host, port=output.port)

	sink = padseq.sinks.MidiSink(
		output_device_name = output.device,
		channels = output.channels,
		base_note = output.base_note
	)

	if not sink.is_open:
		logger.warning("No MIDI output available - triggers will not be heard")
		return padseq.sinks.NullSink()

	sink.bind(bank)
	return sink


class Session:

	"""
	Wires store, mixer, sample bank, dispatcher, sequencer and clock, plus the
	optional keyboard, display, OSC and web feed collaborators.
	"""

	def __init__ (
		self,
		config: typing.Optional[padseq.config.Config] = None,
		sink: typing.Optional[padseq.dispatcher.Sink] = None,
		bank: typing.Optional[padseq.samples.SampleBank] = None
	) -> None:

		"""
		Build the engine from configuration.

		Parameters:
			config: Session configuration; defaults throughout when omitted.
			sink: Audio sink to use instead of the one the configuration names.
			bank: Sample bank to use instead of the one the configuration describes.

		Raises:
			ConfigError: If the samples or key bindings sections are invalid.
		"""

		self.config = config if config is not None else padseq.config.Config()

		output = self.config.output

		if bank is None:
			if self.config.samples:
				bank = padseq.samples.SampleBank.from_config(self.config.samples, base_note=output.base_note)
			else:
				bank = padseq.samples.SampleBank.with_defaults(base_note=output.base_note)

		if len(bank) == 0:
			logger.warning("No samples loaded in any group - every pad is empty")

		self.bank = bank
		self.sink = sink if sink is not None else build_sink(output, bank)
		self.dispatcher = padseq.dispatcher.PlaybackDispatcher(self.bank, self.sink)
		self.store = padseq.pattern.PatternStore(self.config.sequencer.steps_per_pattern)
		self.mixer = padseq.mixer.Mixer(self.config.mixer.master_gain, self.config.mixer.group_gain)

		self.sequencer = padseq.sequencer.Sequencer(
			store = self.store,
			mixer = self.mixer,
			dispatcher = self.dispatcher,
			bpm = self.config.sequencer.bpm
		)

		self.events = self.sequencer.events

		self.clock = padseq.clock.Clock(
			on_tick = self.sequencer.on_tick,
			get_bpm = lambda: self.sequencer.tempo,
			steps_per_beat = self.config.sequencer.steps_per_beat,
			spin_wait = self.config.sequencer.spin_wait
		)

		self.keymap = padseq.keymap.Keymap.from_config(self.config.key_bindings)

		self.display: typing.Optional[padseq.display.Display] = None
		self.osc_server: typing.Optional[padseq.osc.OscServer] = None
		self.web_feed: typing.Optional[padseq.web_feed.WebFeed] = None
		self._keystroke_listener: typing.Optional[padseq.keystroke.KeystrokeListener] = None

		self._loop: typing.Optional[asyncio.AbstractEventLoop] = None
		self._queue: typing.Optional[asyncio.Queue] = None
		self._stop_event: typing.Optional[asyncio.Event] = None
		self._consumer: typing.Optional[asyncio.Task] = None

		self._handlers: typing.Dict[padseq.commands.CommandType, typing.Callable[[padseq.commands.Command], typing.Any]] = {
			CommandType.PLAY_STOP: lambda c: self._toggle_play(),
			CommandType.TOGGLE_RECORD: lambda c: self.sequencer.toggle_record(),
			CommandType.CLEAR_PATTERN: lambda c: self.sequencer.clear_pattern(),
			CommandType.SWITCH_GROUP: lambda c: self.sequencer.next_group(),
			CommandType.PREVIOUS_GROUP: lambda c: self.sequencer.previous_group(),
			CommandType.SELECT_GROUP: lambda c: self.sequencer.select_group(self._group_of(c)),
			CommandType.PATTERN_PREV: lambda c: self.sequencer.navigate_pattern(-1),
			CommandType.PATTERN_NEXT: lambda c: self.sequencer.navigate_pattern(1),
			CommandType.SELECT_PATTERN: lambda c: self.sequencer.select_pattern(int(self._value_of(c))),
			CommandType.TEMPO_UP: lambda c: self.sequencer.adjust_tempo(padseq.constants.TEMPO_STEP),
			CommandType.TEMPO_DOWN: lambda c: self.sequencer.adjust_tempo(-padseq.constants.TEMPO_STEP),
			CommandType.SET_TEMPO: lambda c: self.sequencer.set_tempo(self._value_of(c)),
			CommandType.MASTER_VOL_UP: lambda c: self._mixer_change(self.mixer.adjust_master_volume, padseq.constants.VOLUME_STEP),
			CommandType.MASTER_VOL_DOWN: lambda c: self._mixer_change(self.mixer.adjust_master_volume, -padseq.constants.VOLUME_STEP),
			CommandType.MASTER_MUTE_TOGGLE: lambda c: self._mixer_change(self.mixer.toggle_master_mute),
			CommandType.GROUP_VOL_UP: lambda c: self._mixer_change(self.mixer.adjust_group_volume, self._group_of(c), padseq.constants.VOLUME_STEP),
			CommandType.GROUP_VOL_DOWN: lambda c: self._mixer_change(self.mixer.adjust_group_volume, self._group_of(c), -padseq.constants.VOLUME_STEP),
			CommandType.GROUP_MUTE_TOGGLE: lambda c: self._mixer_change(self.mixer.toggle_group_mute, self._group_of(c)),
			CommandType.SET_MASTER_VOLUME: lambda c: self._mixer_change(self.mixer.set_master_volume, self._value_of(c)),
			CommandType.SET_GROUP_VOLUME: lambda c: self._mixer_change(self.mixer.set_group_volume, self._group_of(c), self._value_of(c)),
			CommandType.PAD_PRESS: self._pad_press,
			CommandType.PAD_RELEASE: self._pad_release,
			CommandType.REWIND: lambda c: self.sequencer.rewind(),
			CommandType.SAVE: lambda c: self._save(),
			CommandType.LOAD: lambda c: self._load(),
			CommandType.HELP: lambda c: self.show_help(),
			CommandType.QUIT: lambda c: self.request_stop(),
		}

	# Command handling

	def _group_of (self, command: padseq.commands.Command) -> padseq.groups.Group:
		return self.sequencer.group if command.group is None else command.group

	@staticmethod
	def _value_of (command: padseq.commands.Command) -> float:

		if command.value is None:
			raise ValueError(f"{command.type.name} needs a value")

		return command.value

	def _mixer_change (self, method: typing.Callable[..., typing.Any], *args: typing.Any) -> typing.Any:

		result = method(*args)
		self.events.emit("mixer", self.mixer.snapshot())
		return result

	def _toggle_play (self) -> padseq.sequencer.TransportMode:

		mode = self.sequencer.toggle_play()

		if mode is padseq.sequencer.TransportMode.PLAYING:
			self.clock.start()
		else:
			self.clock.halt()

		return mode

	def _pad_press (self, command: padseq.commands.Command) -> padseq.dispatcher.TriggerResult:

		if command.pad is None:
			raise padseq.errors.InputOutOfRange("Pad press without a pad")

		if command.group is None:
			return self.sequencer.on_pad_pressed(command.pad, command.timestamp)

		event = padseq.commands.InputEvent.create(padseq.commands.InputEventType.PRESS, command.group, command.pad, command.timestamp)
		return self.sequencer.handle_event(event)

	def _pad_release (self, command: padseq.commands.Command) -> None:

		if command.pad is None:
			raise padseq.errors.InputOutOfRange("Pad release without a pad")

		if command.group is None:
			self.sequencer.on_pad_released(command.pad, command.timestamp)
			return

		event = padseq.commands.InputEvent.create(padseq.commands.InputEventType.RELEASE, command.group, command.pad, command.timestamp)
		self.sequencer.handle_event(event)

	def execute (self, command: padseq.commands.Command) -> typing.Any:

		"""
		Apply one command now. Must be called on the session's event loop.

		Returns whatever the underlying operation returns (the new tempo, the new
		gain, the trigger result and so on).

		Raises:
			InputOutOfRange: If the command names a pad or group outside its bounds.
		"""

		logger.debug(f"Command {command.type.name}")
		return self._handlers[command.type](command)

	def submit (self, command: padseq.commands.Command) -> None:

		"""
		Queue a command for the event loop. Safe to call from any thread.
		"""

		if self._loop is None or self._queue is None:
			logger.warning(f"Session not running - {command.type.name} ignored")
			return

		self._loop.call_soon_threadsafe(self._queue.put_nowait, command)

	def on_key (self, key: str) -> None:

		"""Translate a key from the keystroke listener into a queued command."""

		command = self.keymap.command_for(key)

		if command is None:
			logger.debug(f"Unbound key {key!r}")
			return

		self.submit(command)

	async def _consume (self) -> None:

		assert self._queue is not None

		while True:
			command = await self._queue.get()

			try:
				self.execute(command)
			except padseq.errors.InputOutOfRange as e:
				logger.warning(f"Ignored {command.type.name}: {e}")
			except Exception:
				logger.exception(f"Command {command.type.name} failed")
			finally:
				self._queue.task_done()

	async def drain (self) -> None:

		"""Wait until every queued command has been applied."""

		if self._queue is not None:
			await self._queue.join()

	# Persistence

	def save_patterns (self, path: typing.Optional[str] = None) -> None:

		"""
		Raises:
			PersistenceError: If the file cannot be written.
		"""

		padseq.persistence.save_file(self.sequencer, path or self.config.patterns_file)

	def load_patterns (self, path: typing.Optional[str] = None) -> None:

		"""
		Raises:
			PersistenceError: If the file is missing or invalid. Patterns are unchanged.
		"""

		padseq.persistence.load_file(self.sequencer, path or self.config.patterns_file)

	def _save (self) -> None:
		try:
			self.save_patterns()
		except padseq.errors.PersistenceError as e:
			logger.error(f"Save failed: {e}")

	def _load (self) -> None:
		try:
			self.load_patterns()
		except padseq.errors.PersistenceError as e:
			logger.error(f"Load failed: {e}")

	def show_help (self) -> None:

		logger.info("Key bindings:")

		for line in self.keymap.help_lines():
			logger.info(line)

	# Lifecycle

	def request_stop (self) -> None:

		"""Ask a running session to shut down."""

		if self._stop_event is not None:
			self._stop_event.set()

	def play (self) -> None:

		"""
		Run the instrument. Blocks until Esc, Ctrl+C or SIGTERM.
		"""

		try:
			asyncio.run(self._run())

		except KeyboardInterrupt:
			pass

	async def start (self) -> None:

		"""Bind to the running loop and start the command consumer and the optional collaborators."""

		self._loop = asyncio.get_running_loop()
		self._queue = asyncio.Queue()
		self._stop_event = asyncio.Event()
		self._consumer = self._loop.create_task(self._consume())

		if self.config.display.enabled:
			self.display = padseq.display.Display(self.sequencer, self.mixer, self.bank, grid=self.config.display.grid)
			self.display.start()
			for event_name in ("tick", "transport", "pattern", "mixer"):
				self.events.on(event_name, self.display.update)
			self.events.on("trigger", self.display.on_trigger)
			self.display.update()

		if self.config.osc.enabled:
			self.osc_server = padseq.osc.OscServer(
				submit = self.submit,
				receive_port = self.config.osc.receive_port,
				send_port = self.config.osc.send_port,
				send_host = self.config.osc.send_host
			)
			await self.osc_server.start()

			def _send_osc_status (info: padseq.sequencer.TickInfo) -> None:
				if self.osc_server:
					self.osc_server.send_status(info, self.sequencer.tempo)

			self.events.on("tick", _send_osc_status)

		if self.config.web_feed.enabled:
			self.web_feed = padseq.web_feed.WebFeed(
				self.sequencer,
				self.mixer,
				host = self.config.web_feed.host,
				port = self.config.web_feed.port
			)
			self.events.on("trigger", self.web_feed.on_trigger)
			await self.web_feed.start()

	async def stop (self) -> None:

		"""Stop the clock, silence the sink and shut down every collaborator."""

		if self._keystroke_listener is not None:
			self._keystroke_listener.stop()
			self._keystroke_listener = None

		await self.clock.stop()

		if self.sequencer.playing:
			self.sequencer.toggle_play()

		if self.web_feed is not None:
			await self.web_feed.stop()

		if self.osc_server is not None:
			await self.osc_server.stop()

		if self.display is not None:
			self.display.stop()

		consumer = self._consumer
		self._consumer = None

		if consumer is not None:
			consumer.cancel()
			try:
				await consumer
			except asyncio.CancelledError:
				pass

		self.dispatcher.close()
		self._loop = None
		self._queue = None

	async def _run (self) -> None:

		await self.start()

		self._keystroke_listener = padseq.keystroke.KeystrokeListener(on_key=self.on_key)
		self._keystroke_listener.start()

		if self._keystroke_listener.active:
			self.show_help()

		await self.run_until_stopped()
		await self.stop()

	async def run_until_stopped (self) -> None:

		"""
		Wait for Quit, SIGINT or SIGTERM.
		"""

		assert self._stop_event is not None, "start() must be awaited first"

		logger.info("padseq ready. Press Esc or Ctrl+C to quit.")

		loop = asyncio.get_running_loop()

		for sig in (signal.SIGINT, signal.SIGTERM):
			try:
				loop.add_signal_handler(sig, self.request_stop)
			except (NotImplementedError, RuntimeError):
				pass

		try:
			await self._stop_event.wait()
		finally:
			for sig in (signal.SIGINT, signal.SIGTERM):
				try:
					loop.remove_signal_handler(sig)
				except (NotImplementedError, RuntimeError):
					pass
