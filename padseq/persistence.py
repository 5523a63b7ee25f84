"""Save and load pattern contents as JSON.

Document layout::

	{
	  "format": "padseq-patterns",
	  "version": 1,
	  "steps_per_pattern": 16,
	  "groups": {
	    "DRUMS": [ [[[0, 1.0]], [], ...], ... ],
	    ...
	  }
	}

Each group's list is ordered by pattern index. Each pattern is a list of
steps and each step is a list of ``[pad, velocity]`` pairs.

Only pattern contents are stored. Tempo, mixer and transport state belong to
the configuration and the running session.
"""

import json
import logging
import os
import typing

import pydantic

import padseq.errors
import padseq.pattern
import padseq.sequencer


logger = logging.getLogger(__name__)


FORMAT_NAME = "padseq-patterns"
FORMAT_VERSION = 1


class PatternDocument (pydantic.BaseModel):

	"""Schema of a saved pattern file. Unknown top-level keys are ignored."""

	format: typing.Literal["padseq-patterns"]
	version: typing.Literal[1]
	steps_per_pattern: int = pydantic.Field(gt=0)
	groups: padseq.pattern.GroupPatternData


def dump (sequencer: padseq.sequencer.Sequencer) -> typing.Dict[str, typing.Any]:

	return {
		"format": FORMAT_NAME,
		"version": FORMAT_VERSION,
		"steps_per_pattern": sequencer.store.steps_per_pattern,
		"groups": sequencer.pattern_data(),
	}


def load (sequencer: padseq.sequencer.Sequencer, document: typing.Any) -> None:

	"""
	Validate a parsed document and load it into the sequencer.

	Raises:
		PersistenceError: If the document is not a padseq pattern file, has an
			unsupported version, or was saved with a different step count.
	"""

	try:
		parsed = PatternDocument.model_validate(document)
	except pydantic.ValidationError as exc:
		raise padseq.errors.PersistenceError(
			f"Not a usable padseq pattern file: {padseq.errors.describe_validation(exc)}"
		) from exc

	if parsed.steps_per_pattern != sequencer.store.steps_per_pattern:
		raise padseq.errors.PersistenceError(
			f"Pattern file has {parsed.steps_per_pattern} steps per pattern, this session uses {sequencer.store.steps_per_pattern}"
		)

	sequencer.load_patterns(parsed.groups)


def save_file (sequencer: padseq.sequencer.Sequencer, path: str) -> None:

	"""
	Write every pattern to *path*, replacing the file atomically.

	Raises:
		PersistenceError: If the file cannot be written.
	"""

	document = dump(sequencer)
	tmp_path = f"{path}.tmp"

	try:
		with open(tmp_path, "w", encoding="utf-8") as f:
			json.dump(document, f, indent=1)
		os.replace(tmp_path, path)

	except OSError as exc:
		raise padseq.errors.PersistenceError(f"Could not save patterns to {path}: {exc}") from exc

	logger.info(f"Saved patterns to {path}")


def load_file (sequencer: padseq.sequencer.Sequencer, path: str) -> None:

	"""
	Read *path* and replace every pattern with its contents.

	Raises:
		PersistenceError: If the file is missing, not valid JSON, or fails validation.
			The current patterns are left untouched in that case.
	"""

	try:
		with open(path, "r", encoding="utf-8") as f:
			document = json.load(f)

	except OSError as exc:
		raise padseq.errors.PersistenceError(f"Could not read patterns from {path}: {exc}") from exc

	except json.JSONDecodeError as exc:
		raise padseq.errors.PersistenceError(f"{path} is not valid JSON: {exc}") from exc

	except UnicodeDecodeError as exc:
		raise padseq.errors.PersistenceError(f"{path} is not UTF-8 text: {exc}") from exc

	load(sequencer, document)
	logger.info(f"Loaded patterns from {path}")
