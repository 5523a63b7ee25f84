import logging

import pytest

import padseq.dispatcher
import padseq.groups
import padseq.samples

import conftest


Group = padseq.groups.Group


def test_trigger_plays_resolved_handle (bank: padseq.samples.SampleBank, sink: conftest.RecordingSink) -> None:

	dispatcher = padseq.dispatcher.PlaybackDispatcher(bank, sink)

	result = dispatcher.trigger(Group.DRUMS, 0, 0.5)

	assert result is padseq.dispatcher.TriggerResult.PLAYED
	assert sink.played == [(bank.resolve(Group.DRUMS, 0), 0.5)]


def test_empty_pad_is_reported_not_raised (sink: conftest.RecordingSink) -> None:

	dispatcher = padseq.dispatcher.PlaybackDispatcher(padseq.samples.SampleBank(), sink)

	assert dispatcher.trigger(Group.BASS, 4, 1.0) is padseq.dispatcher.TriggerResult.EMPTY
	assert sink.played == []


def test_gain_is_clamped (bank: padseq.samples.SampleBank, sink: conftest.RecordingSink) -> None:

	dispatcher = padseq.dispatcher.PlaybackDispatcher(bank, sink)
	dispatcher.trigger(Group.DRUMS, 0, 1.8)
	dispatcher.trigger(Group.DRUMS, 0, -0.1)

	assert [gain for _, gain in sink.played] == [1.0, 0.0]


def test_sink_failure_is_logged_and_swallowed (bank: padseq.samples.SampleBank, caplog: pytest.LogCaptureFixture) -> None:

	class BrokenSink:
		def play (self, handle: padseq.samples.SampleHandle, gain: float) -> None:
			raise RuntimeError("device gone")

	dispatcher = padseq.dispatcher.PlaybackDispatcher(bank, BrokenSink())

	with caplog.at_level(logging.ERROR):
		result = dispatcher.trigger(Group.DRUMS, 0, 1.0)

	assert result is padseq.dispatcher.TriggerResult.PLAYED
	assert "Sink failed to play 'Kick'" in caplog.text


def test_silence_and_close_forward_when_supported (bank: padseq.samples.SampleBank, sink: conftest.RecordingSink) -> None:

	dispatcher = padseq.dispatcher.PlaybackDispatcher(bank, sink)
	dispatcher.silence()
	dispatcher.close()

	assert sink.silenced == 1
	assert sink.closed


def test_silence_is_optional (bank: padseq.samples.SampleBank) -> None:

	class PlayOnly:
		def play (self, handle: padseq.samples.SampleHandle, gain: float) -> None:
			pass

	dispatcher = padseq.dispatcher.PlaybackDispatcher(bank, PlayOnly())
	dispatcher.silence()
	dispatcher.close()

	assert isinstance(PlayOnly(), padseq.dispatcher.Sink)
