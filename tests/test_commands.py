import pytest

import padseq.commands
import padseq.errors
import padseq.groups


def test_input_event_create_validates () -> None:

	event = padseq.commands.InputEvent.create("press", "bass", 3, timestamp=12.5)

	assert event.type is padseq.commands.InputEventType.PRESS
	assert event.group is padseq.groups.Group.BASS
	assert event.pad == 3
	assert event.timestamp == 12.5


@pytest.mark.parametrize("group, pad", [(4, 0), (0, 16), ("keys", 1), (0, -1)])
def test_input_event_create_rejects_out_of_range (group: object, pad: int) -> None:

	with pytest.raises(padseq.errors.InputOutOfRange):
		padseq.commands.InputEvent.create(padseq.commands.InputEventType.PRESS, group, pad)  # type: ignore[arg-type]


def test_input_event_default_timestamp () -> None:

	event = padseq.commands.InputEvent.create("release", 0, 0)

	assert event.timestamp > 0


def test_input_event_to_command () -> None:

	event = padseq.commands.InputEvent.create("release", 2, 7, timestamp=1.0)
	command = event.to_command()

	assert command.type is padseq.commands.CommandType.PAD_RELEASE
	assert command.group is padseq.groups.Group.LEAD
	assert command.pad == 7
	assert command.timestamp == 1.0


def test_command_type_parse () -> None:

	assert padseq.commands.CommandType.parse("play_stop") is padseq.commands.CommandType.PLAY_STOP
	assert padseq.commands.CommandType.parse("Group-Mute-Toggle") is padseq.commands.CommandType.GROUP_MUTE_TOGGLE

	with pytest.raises(ValueError):
		padseq.commands.CommandType.parse("dance")
