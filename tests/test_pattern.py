import pytest

import padseq.constants
import padseq.errors
import padseq.groups
import padseq.pattern


Group = padseq.groups.Group


def test_new_pattern_is_silent () -> None:

	pattern = padseq.pattern.Pattern(Group.DRUMS, 0, length=16)

	assert pattern.length == 16
	assert pattern.is_empty
	assert all(pattern.hits_at(i) == [] for i in range(16))


def test_mark_and_hits_at_sorted_by_pad () -> None:

	pattern = padseq.pattern.Pattern(Group.DRUMS, 0)
	pattern.mark(4, 9)
	pattern.mark(4, 2, velocity=0.5)

	assert pattern.hits_at(4) == [(2, 0.5), (9, 1.0)]
	assert not pattern.is_empty


def test_marking_twice_keeps_one_hit () -> None:

	pattern = padseq.pattern.Pattern(Group.DRUMS, 0)
	pattern.mark(0, 3)
	pattern.mark(0, 3)

	assert pattern.hits_at(0) == [(3, 1.0)]


def test_step_index_wraps () -> None:

	pattern = padseq.pattern.Pattern(Group.BASS, 0, length=16)
	pattern.mark(17, 1)

	assert pattern.hits_at(1) == [(1, 1.0)]
	assert pattern.step(33) is pattern.step(1)


def test_velocity_is_clamped () -> None:

	step = padseq.pattern.Step()
	step.mark(0, 1.7)
	step.mark(1, -0.2)

	assert step.velocity(0) == 1.0
	assert step.velocity(1) == 0.0
	assert step.velocity(2) == 0.0


def test_clear_keeps_length () -> None:

	pattern = padseq.pattern.Pattern(Group.LEAD, 2, length=8)
	pattern.mark(3, 5)
	steps_before = pattern.steps
	pattern.clear()

	assert pattern.is_empty
	assert pattern.length == 8
	assert pattern.steps is steps_before


def test_length_must_be_positive () -> None:

	with pytest.raises(ValueError):
		padseq.pattern.Pattern(Group.DRUMS, 0, length=0)


def test_to_data_and_from_data () -> None:

	pattern = padseq.pattern.Pattern(Group.VOCAL, 7, length=4)
	pattern.mark(0, 1)
	pattern.mark(2, 0, velocity=0.25)

	data = pattern.to_data()
	assert data == [[[1, 1.0]], [], [[0, 0.25]], []]

	rebuilt = padseq.pattern.Pattern.from_data(Group.VOCAL, 7, data, 4)
	assert rebuilt.to_data() == data


def test_from_data_accepts_bare_pad_numbers () -> None:

	rebuilt = padseq.pattern.Pattern.from_data(Group.DRUMS, 0, [[3], [], [], []], 4)

	assert rebuilt.hits_at(0) == [(3, 1.0)]


@pytest.mark.parametrize("data", [
	[[], [], []],                 # wrong step count
	[[[16, 1.0]], [], [], []],    # pad out of range
	["x", [], [], []],            # step not a list
	[[[1, "loud"]], [], [], []],  # bad velocity
	[[[1, 1.5]], [], [], []],    # velocity above 1.0
])
def test_from_data_rejects_malformed (data: list) -> None:

	with pytest.raises(padseq.errors.PersistenceError):
		padseq.pattern.Pattern.from_data(Group.DRUMS, 0, data, 4)


def test_store_creates_patterns_lazily () -> None:

	store = padseq.pattern.PatternStore(steps_per_pattern=16)

	assert store.peek(Group.DRUMS, 5) is None
	pattern = store.get(Group.DRUMS, 5)

	assert store.peek(Group.DRUMS, 5) is pattern
	assert store.get(Group.DRUMS, 5) is pattern
	assert store.indices(Group.DRUMS) == [5]
	assert store.indices(Group.BASS) == []


def test_store_clamps_indices () -> None:

	store = padseq.pattern.PatternStore()

	assert store.get(Group.DRUMS, 150).index == padseq.constants.MAX_PATTERNS - 1
	assert store.get(Group.DRUMS, -3).index == 0


def test_store_to_data_fills_gaps_and_omits_trailing () -> None:

	store = padseq.pattern.PatternStore(steps_per_pattern=2)
	store.get(Group.BASS, 2).mark(1, 4)

	data = store.to_data()

	assert data["DRUMS"] == []
	assert data["BASS"] == [[[], []], [[], []], [[], [[4, 1.0]]]]


def test_store_load_data_replaces_everything () -> None:

	store = padseq.pattern.PatternStore(steps_per_pattern=2)
	store.get(Group.DRUMS, 0).mark(0, 0)

	store.load_data({"LEAD": [[[[1, 0.5]], []]]})

	assert store.peek(Group.DRUMS, 0) is None
	assert store.get(Group.LEAD, 0).hits_at(0) == [(1, 0.5)]


def test_store_load_data_is_all_or_nothing () -> None:

	store = padseq.pattern.PatternStore(steps_per_pattern=2)
	store.get(Group.DRUMS, 0).mark(0, 0)

	with pytest.raises(padseq.errors.PersistenceError):
		store.load_data({"DRUMS": [[[], []]], "BASS": [[[[99, 1.0]], []]]})

	assert store.get(Group.DRUMS, 0).hits_at(0) == [(0, 1.0)]


@pytest.mark.parametrize("data", [
	{"KEYS": []},
	{"DRUMS": "nope"},
	{"DRUMS": [[[], []]] * 100},
])
def test_store_load_data_rejects_bad_documents (data: dict) -> None:

	store = padseq.pattern.PatternStore(steps_per_pattern=2)

	with pytest.raises(padseq.errors.PersistenceError):
		store.load_data(data)


def test_validate_data_leaves_the_store_alone () -> None:

	store = padseq.pattern.PatternStore(steps_per_pattern=2)

	validated = store.validate_data({"bass": [[[1, [2, 0.5]], []]]})

	assert validated == {Group.BASS: [[[(1, 1.0), (2, 0.5)], []]]}
	assert store.indices(Group.BASS) == []
