import pytest

import padseq.constants
import padseq.groups
import padseq.mixer


Group = padseq.groups.Group


def test_defaults () -> None:

	mixer = padseq.mixer.Mixer()

	assert mixer.master_gain == padseq.constants.DEFAULT_MASTER_GAIN
	assert not mixer.master_muted
	assert all(c.gain == padseq.constants.DEFAULT_GROUP_GAIN and not c.muted for c in mixer.channels)
	assert mixer.effective_gain(Group.DRUMS) == pytest.approx(0.7 * 0.8)


def test_per_group_starting_gains () -> None:

	mixer = padseq.mixer.Mixer(master_gain=1.0, group_gain=[0.1, 0.2, 0.3, 0.4])

	assert mixer.effective_gain(Group.LEAD) == pytest.approx(0.3)


def test_wrong_number_of_group_gains () -> None:

	with pytest.raises(ValueError):
		padseq.mixer.Mixer(group_gain=[0.5, 0.5])


def test_volume_adjust_clamps () -> None:

	mixer = padseq.mixer.Mixer(master_gain=0.98, group_gain=0.02)

	assert mixer.adjust_master_volume(0.05) == 1.0
	assert mixer.adjust_group_volume(Group.BASS, -0.05) == 0.0
	assert mixer.adjust_group_volume(Group.BASS, 0.05) == pytest.approx(0.05)


def test_set_volume_clamps () -> None:

	mixer = padseq.mixer.Mixer()

	assert mixer.set_master_volume(1.5) == 1.0
	assert mixer.set_group_volume(Group.VOCAL, -2) == 0.0


def test_mute_forces_zero_and_unmute_restores () -> None:

	mixer = padseq.mixer.Mixer(master_gain=0.5, group_gain=0.5)

	assert mixer.toggle_group_mute(Group.DRUMS) is True
	assert mixer.effective_gain(Group.DRUMS) == 0.0
	assert mixer.effective_gain(Group.BASS) == pytest.approx(0.25)

	assert mixer.toggle_group_mute(Group.DRUMS) is False
	assert mixer.effective_gain(Group.DRUMS) == pytest.approx(0.25)


def test_master_mute_silences_every_group () -> None:

	mixer = padseq.mixer.Mixer()
	mixer.toggle_master_mute()

	assert all(mixer.effective_gain(g) == 0.0 for g in Group)


def test_muting_keeps_gain () -> None:

	mixer = padseq.mixer.Mixer()
	mixer.set_group_volume(Group.LEAD, 0.33)
	mixer.toggle_group_mute(Group.LEAD)
	mixer.toggle_group_mute(Group.LEAD)

	assert mixer.channel(Group.LEAD).gain == pytest.approx(0.33)


def test_snapshot_as_dict () -> None:

	mixer = padseq.mixer.Mixer(master_gain=0.6, group_gain=0.4)
	mixer.toggle_group_mute(Group.BASS)

	data = mixer.snapshot().as_dict()

	assert data["master"] == {"gain": 0.6, "muted": False}
	assert data["groups"]["BASS"] == {"gain": 0.4, "muted": True}
	assert set(data["groups"]) == {"DRUMS", "BASS", "LEAD", "VOCAL"}


def test_snapshot_is_a_copy () -> None:

	mixer = padseq.mixer.Mixer()
	snapshot = mixer.snapshot()
	mixer.set_master_volume(0.1)

	assert snapshot.master_gain == padseq.constants.DEFAULT_MASTER_GAIN
