"""Exception types raised at the padseq boundaries.

Nothing inside the engine is fatal. Out-of-range tempo and pattern indices are
clamped rather than raised, and a trigger on an empty pad is reported as
``TriggerResult.EMPTY`` instead of an exception. The classes below cover the
cases that are rejected outright before they reach sequencer state.
"""

import typing


class PadseqError (Exception):

	"""Base class for all padseq errors."""


class InputOutOfRange (PadseqError, ValueError):

	"""A group or pad index outside the valid bounds."""


class ConfigError (PadseqError, ValueError):

	"""The configuration file could not be parsed or contains invalid values."""


class PersistenceError (PadseqError, ValueError):

	"""A saved pattern document is malformed or incompatible."""


def describe_validation (exc: typing.Any) -> str:

	"""Flatten a ``pydantic.ValidationError`` into one ``key.path: message`` entry per problem."""

	lines = []

	for error in exc.errors():
		where = ".".join(str(part) for part in error["loc"]) or "(top level)"
		lines.append(f"{where}: {error['msg']}")

	return "; ".join(lines)
