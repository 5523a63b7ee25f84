import asyncio
import typing

import pytest

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import padseq.commands
import padseq.groups
import padseq.osc
import padseq.sequencer


CommandType = padseq.commands.CommandType
Group = padseq.groups.Group


async def _send (messages: typing.List[typing.Tuple[str, typing.Any]]) -> typing.List[padseq.commands.Command]:

	"""Start a server on a free port, send each message to it and return what it submitted."""

	received: typing.List[padseq.commands.Command] = []
	server = padseq.osc.OscServer(received.append, receive_port=0, send_port=0)
	await server.start()

	try:
		client = pythonosc.udp_client.SimpleUDPClient("127.0.0.1", server.port)

		for address, args in messages:
			client.send_message(address, args)

		# Give it a tiny bit of time to process
		await asyncio.sleep(0.1)

	finally:
		await server.stop()

	return received


@pytest.mark.asyncio
async def test_osc_transport_handlers () -> None:

	received = await _send([
		("/play", []),
		("/record", []),
		("/clear", []),
		("/rewind", []),
	])

	assert [c.type for c in received] == [
		CommandType.PLAY_STOP,
		CommandType.TOGGLE_RECORD,
		CommandType.CLEAR_PATTERN,
		CommandType.REWIND,
	]


@pytest.mark.asyncio
async def test_osc_bpm_handler () -> None:

	received = await _send([("/bpm", 145)])

	assert len(received) == 1
	assert received[0].type is CommandType.SET_TEMPO
	assert received[0].value == 145.0


@pytest.mark.asyncio
async def test_osc_group_and_pattern_handlers () -> None:

	received = await _send([
		("/group", "bass"),
		("/group", 3),
		("/pattern", 7),
	])

	assert received[0].group is Group.BASS
	assert received[1].group is Group.VOCAL
	assert received[2].type is CommandType.SELECT_PATTERN
	assert received[2].value == 7


@pytest.mark.asyncio
async def test_osc_pad_handlers () -> None:

	received = await _send([
		("/pad/press", [1, 5]),
		("/pad/release", ["lead", 15]),
	])

	assert received[0] == padseq.commands.Command(CommandType.PAD_PRESS, group=Group.BASS, pad=5, timestamp=received[0].timestamp)
	assert received[1].type is CommandType.PAD_RELEASE
	assert received[1].group is Group.LEAD
	assert received[1].pad == 15


@pytest.mark.asyncio
async def test_osc_rejects_out_of_range_pads () -> None:

	received = await _send([
		("/pad/press", [0, 16]),
		("/pad/press", [4, 0]),
		("/pad/press", [0]),
		("/group", "keys"),
	])

	assert received == []


@pytest.mark.asyncio
async def test_osc_mixer_and_mute_handlers () -> None:

	received = await _send([
		("/mixer/master", 0.5),
		("/mixer/group", ["drums", 0.25]),
		("/mute/master", []),
		("/mute/vocal", []),
	])

	assert received[0].type is CommandType.SET_MASTER_VOLUME
	assert received[0].value == 0.5
	assert received[1].type is CommandType.SET_GROUP_VOLUME
	assert received[1].group is Group.DRUMS
	assert received[1].value == 0.25
	assert received[2].type is CommandType.MASTER_MUTE_TOGGLE
	assert received[3].type is CommandType.GROUP_MUTE_TOGGLE
	assert received[3].group is Group.VOCAL


@pytest.mark.asyncio
async def test_osc_custom_handler () -> None:

	"""map() registers extra addresses alongside the built-in ones."""

	calls: typing.List[typing.Any] = []
	server = padseq.osc.OscServer(lambda command: None, receive_port=0, send_port=0)
	server.map("/custom", lambda address, *args: calls.append(args))
	await server.start()

	client = pythonosc.udp_client.SimpleUDPClient("127.0.0.1", server.port)
	client.send_message("/custom", [1, 2])
	await asyncio.sleep(0.1)
	await server.stop()

	assert calls == [(1, 2)]


@pytest.mark.asyncio
async def test_osc_send_status () -> None:

	"""send_status() reports step, tempo and transport to the send target."""

	messages: typing.List[typing.Tuple[str, typing.Tuple[typing.Any, ...]]] = []

	listener = pythonosc.dispatcher.Dispatcher()
	listener.set_default_handler(lambda address, *args: messages.append((address, args)))

	receiver = pythonosc.osc_server.AsyncIOOSCUDPServer(("127.0.0.1", 0), listener, asyncio.get_running_loop())
	receiver_transport, _ = await receiver.create_serve_endpoint()
	receiver_port = receiver_transport.get_extra_info("sockname")[1]

	server = padseq.osc.OscServer(lambda command: None, receive_port=0, send_port=receiver_port)
	await server.start()

	server.send_status(padseq.sequencer.TickInfo(
		step_index = 4,
		group = Group.DRUMS,
		pattern_index = 0,
		mode = padseq.sequencer.TransportMode.PLAYING,
		recording = True,
	), tempo=128)

	await asyncio.sleep(0.1)

	await server.stop()
	receiver_transport.close()

	assert ("/step", (4,)) in messages
	assert ("/bpm", (128.0,)) in messages
	assert ("/transport", ("playing", 1)) in messages


@pytest.mark.asyncio
async def test_port_is_none_until_started () -> None:

	server = padseq.osc.OscServer(lambda command: None, receive_port=0)

	assert server.port is None

	await server.start()
	assert isinstance(server.port, int)

	await server.stop()
	assert server.port is None
