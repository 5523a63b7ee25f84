import typing

import mido
import pytest

import padseq.config
import padseq.dispatcher
import padseq.mixer
import padseq.pattern
import padseq.samples
import padseq.sequencer
import padseq.session


class FakeMidiOut:

	"""Minimal MIDI output stub that keeps every message sent."""

	def __init__ (self) -> None:

		self.sent: typing.List[mido.Message] = []
		self.closed = False

	def send (self, message: mido.Message) -> None:

		"""Record an outgoing MIDI message."""

		self.sent.append(message)

	def close (self) -> None:

		self.closed = True


_last_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _last_fake_output
	_last_fake_output = FakeMidiOut()
	return _last_fake_output


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


@pytest.fixture
def last_midi_out (patch_midi: None) -> typing.Callable[[], typing.Optional[FakeMidiOut]]:

	"""Accessor for the most recently opened fake output."""

	return lambda: _last_fake_output


class RecordingSink:

	"""Sink that keeps every play call as ``(handle, gain)``."""

	def __init__ (self) -> None:

		self.played: typing.List[typing.Tuple[padseq.samples.SampleHandle, float]] = []
		self.silenced = 0
		self.closed = False

	def play (self, handle: padseq.samples.SampleHandle, gain: float) -> None:
		self.played.append((handle, gain))

	def silence (self) -> None:
		self.silenced += 1

	def close (self) -> None:
		self.closed = True

	def names (self) -> typing.List[str]:
		return [handle.name for handle, _ in self.played]


@pytest.fixture
def sink () -> RecordingSink:
	return RecordingSink()


@pytest.fixture
def bank () -> padseq.samples.SampleBank:
	return padseq.samples.SampleBank.with_defaults()


@pytest.fixture
def mixer () -> padseq.mixer.Mixer:

	"""Unity gains, so trigger gains equal velocities."""

	return padseq.mixer.Mixer(master_gain=1.0, group_gain=1.0)


@pytest.fixture
def sequencer (bank: padseq.samples.SampleBank, sink: RecordingSink, mixer: padseq.mixer.Mixer) -> padseq.sequencer.Sequencer:

	store = padseq.pattern.PatternStore(steps_per_pattern=16)
	dispatcher = padseq.dispatcher.PlaybackDispatcher(bank, sink)

	return padseq.sequencer.Sequencer(store, mixer, dispatcher, bpm=120)


@pytest.fixture
def quiet_config () -> padseq.config.Config:

	"""Configuration with no display, no hardware and no network."""

	return padseq.config.parse_config({
		"output": {"type": "none"},
		"display": {"enabled": False},
		"sequencer": {"spin_wait": False},
	})


@pytest.fixture
def session (quiet_config: padseq.config.Config, sink: RecordingSink) -> padseq.session.Session:
	return padseq.session.Session(quiet_config, sink=sink)
