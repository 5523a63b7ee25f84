"""Live terminal dashboard for the pad sequencer.

Provides a persistent status line showing tempo, transport, the active group
and pattern, the playhead and the mixer. Optionally renders an ASCII grid of
the active pattern above it, with a playhead marker and a 4x4 pad block in
which recently triggered pads flash.

Log messages scroll above the dashboard without disruption.

The status line looks like::

	120 BPM  PLAY  REC  DRUMS  Pat 1  Step 5/16  Master 0.70  Group 0.80

The grid (when enabled) looks like::

	  DRUMS pattern 1
	  Kick        |X . . . X . . . X . . . X . . .|
	  Snare       |. . . . X . . . . . . . X . . .|
	              |        ^                      |
	  [7 Kick*] [8 Snare ] [9 HiHat ] [0 OpenHat]
"""

import logging
import shutil
import sys
import time
import typing

import padseq.constants
import padseq.groups
import padseq.keymap
import padseq.mixer
import padseq.samples
import padseq.sequencer


_LABEL_WIDTH = 12
_MIN_TERMINAL_WIDTH = 40
_PAD_NAME_WIDTH = 8


class GridDisplay:

	"""Multi-line ASCII view of the active pattern.

	One row per pad that has at least one hit, a playhead row marking the
	step most recently played, and a 4x4 block of pad names in which pads
	triggered within the last ``FLASH_SECONDS`` are marked with ``*``.

	Not used directly: instantiated by ``Display`` when ``grid=True``.
	"""

	def __init__ (
		self,
		sequencer: padseq.sequencer.Sequencer,
		bank: padseq.samples.SampleBank,
		pad_keys: str = padseq.keymap.PAD_KEYS,
		now: typing.Callable[[], float] = time.monotonic
	) -> None:

		self._sequencer = sequencer
		self._bank = bank
		self._pad_keys = pad_keys
		self._now = now
		self._flash: typing.Dict[typing.Tuple[padseq.groups.Group, int], float] = {}
		self._lines: typing.List[str] = []

	@property
	def line_count (self) -> int:
		return len(self._lines)

	@property
	def lines (self) -> typing.List[str]:
		return list(self._lines)

	@staticmethod
	def _velocity_char (velocity: float) -> str:

		"""Map a hit velocity (0.0-1.0) to one character; ``"."`` means no hit."""

		if velocity <= 0:
			return "."
		if velocity <= 0.4:
			return "o"
		if velocity <= 0.8:
			return "O"
		return "X"

	def flash (self, group: padseq.groups.Group, pad: int) -> None:

		"""Mark a pad as just triggered."""

		self._flash[(group, pad)] = self._now() + padseq.constants.FLASH_SECONDS

	def is_flashing (self, group: padseq.groups.Group, pad: int) -> bool:

		until = self._flash.get((group, pad))

		if until is None:
			return False

		if self._now() >= until:
			del self._flash[(group, pad)]
			return False

		return True

	def build (self) -> None:

		"""Rebuild grid lines from the current sequencer state."""

		term_width = shutil.get_terminal_size(fallback=(80, 24)).columns

		if term_width < _MIN_TERMINAL_WIDTH:
			self._lines = []
			return

		seq = self._sequencer
		group = seq.group
		pattern = seq.store.peek(group, seq.pattern_index)
		display_cols = self._fit_columns(seq.store.steps_per_pattern, term_width)

		lines = [f"  {group.name} pattern {seq.pattern_index + 1}"]

		if pattern is not None:
			for pad in range(padseq.constants.PADS_PER_GROUP):
				velocities = [pattern.step(i).velocity(pad) for i in range(display_cols)]
				if any(velocities):
					label = self._bank.name(group, pad)[:_LABEL_WIDTH].ljust(_LABEL_WIDTH)
					cells = " ".join(self._velocity_char(v) for v in velocities)
					lines.append(f"  {label}|{cells}|")

		last_step = seq.group_transport(group).last_step
		marker = [" "] * display_cols

		if last_step is not None and last_step < display_cols:
			marker[last_step] = "^"

		lines.append(f"  {' ' * _LABEL_WIDTH}|{' '.join(marker)}|")

		for row in range(4):
			cells = []
			for pad in range(row * 4, row * 4 + 4):
				key = self._pad_keys[pad] if pad < len(self._pad_keys) else " "
				name = self._bank.name(group, pad)[:_PAD_NAME_WIDTH - 1]
				mark = "*" if self.is_flashing(group, pad) else " "
				cells.append(f"[{key} {(name + mark).ljust(_PAD_NAME_WIDTH)}]")
			lines.append("  " + " ".join(cells))

		self._lines = lines

	@staticmethod
	def _fit_columns (grid_size: int, term_width: int) -> int:

		"""Determine how many step columns fit in the terminal."""

		overhead = 2 + _LABEL_WIDTH + 2
		available = term_width - overhead

		if available <= 0:
			return 0

		max_cols = (available + 1) // 2

		return min(grid_size, max_cols)


class DisplayLogHandler (logging.Handler):

	"""Logging handler that clears and redraws the dashboard around log output."""

	def __init__ (self, display: "Display") -> None:

		super().__init__()
		self._display = display

	def emit (self, record: logging.LogRecord) -> None:

		try:
			self._display.clear_line()

			msg = self.format(record)
			sys.stderr.write(msg + "\n")
			sys.stderr.flush()

			self._display.draw()

		except Exception:
			self.handleError(record)


class Display:

	"""Live-updating terminal dashboard showing sequencer and mixer state.

	Subscribe ``update`` to the sequencer's ``"tick"``, ``"transport"``,
	``"pattern"`` and ``"mixer"`` events and ``on_trigger`` to ``"trigger"``;
	the session does this when the display is enabled.
	"""

	def __init__ (
		self,
		sequencer: padseq.sequencer.Sequencer,
		mixer: padseq.mixer.Mixer,
		bank: padseq.samples.SampleBank,
		grid: bool = False,
		now: typing.Callable[[], float] = time.monotonic
	) -> None:

		"""
		Parameters:
			sequencer: Read for transport, group, pattern and playhead.
			mixer: Read for gains and mute flags.
			bank: Supplies pad names for the grid.
			grid: When True, render the active pattern grid above the status line.
			now: Time source for pad flashes.
		"""

		self._sequencer = sequencer
		self._mixer = mixer
		self._active: bool = False
		self._handler: typing.Optional[DisplayLogHandler] = None
		self._saved_handlers: typing.List[logging.Handler] = []
		self._last_line: str = ""
		self._grid: typing.Optional[GridDisplay] = GridDisplay(sequencer, bank, now=now) if grid else None
		self._drawn_line_count: int = 0

	@property
	def active (self) -> bool:
		return self._active

	def start (self) -> None:

		"""Install the log handler and activate the display.

		Existing root logger handlers are saved and replaced by a
		``DisplayLogHandler``; ``stop()`` restores them.
		"""

		if self._active:
			return

		self._active = True

		root_logger = logging.getLogger()
		self._saved_handlers = list(root_logger.handlers)
		self._handler = DisplayLogHandler(self)

		if self._saved_handlers and self._saved_handlers[0].formatter:
			self._handler.setFormatter(self._saved_handlers[0].formatter)
		else:
			self._handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))

		root_logger.handlers.clear()
		root_logger.addHandler(self._handler)

	def stop (self) -> None:

		"""Clear the dashboard and restore the original log handlers."""

		if not self._active:
			return

		self.clear_line()
		self._active = False

		root_logger = logging.getLogger()
		root_logger.handlers.clear()

		for handler in self._saved_handlers:
			root_logger.addHandler(handler)

		self._saved_handlers = []
		self._handler = None

	def on_trigger (self, info: padseq.sequencer.TriggerInfo) -> None:

		"""Flash the triggered pad, then redraw."""

		if self._grid is not None:
			self._grid.flash(info.group, info.pad)

		self.update()

	def update (self, *_: typing.Any) -> None:

		"""Rebuild and redraw the dashboard. Event arguments are ignored; state is read directly."""

		if not self._active:
			return

		self._last_line = self.format_status()

		if self._grid is not None:
			self._grid.build()

		self.draw()

	def draw (self) -> None:

		"""Write the current dashboard to the terminal."""

		if not self._active or not self._last_line:
			return

		grid_lines = self._grid.lines if self._grid is not None else []
		total = len(grid_lines) + 1

		# Cursor sits on the status line with no trailing newline.
		if self._drawn_line_count > 1:
			sys.stderr.write(f"\033[{self._drawn_line_count - 1}A")

		for line in grid_lines:
			sys.stderr.write(f"\r\033[K{line}\n")

		sys.stderr.write(f"\r\033[K{self._last_line}")
		sys.stderr.flush()

		self._drawn_line_count = total

	def clear_line (self) -> None:

		"""Erase the entire dashboard region from the terminal."""

		if not self._active:
			return

		if self._drawn_line_count > 1:
			sys.stderr.write(f"\033[{self._drawn_line_count - 1}A")

			for _ in range(self._drawn_line_count):
				sys.stderr.write("\r\033[K\n")

			sys.stderr.write(f"\033[{self._drawn_line_count}A")
		else:
			sys.stderr.write("\r\033[K")

		sys.stderr.flush()
		self._drawn_line_count = 0

	def format_status (self) -> str:

		"""Build the status string from current sequencer and mixer state."""

		seq = self._sequencer
		mixer = self._mixer
		group = seq.group
		channel = mixer.channel(group)
		last_step = seq.group_transport(group).last_step

		parts: typing.List[str] = [
			f"{seq.tempo:.0f} BPM",
			"PLAY" if seq.playing else "STOP",
		]

		if seq.recording:
			parts.append("REC")

		parts.append(group.name)
		parts.append(f"Pat {seq.pattern_index + 1}")

		step_text = "-" if last_step is None else str(last_step + 1)
		parts.append(f"Step {step_text}/{seq.store.steps_per_pattern}")

		parts.append(f"Master {mixer.master_gain:.2f}{' [M]' if mixer.master_muted else ''}")
		parts.append(f"Group {channel.gain:.2f}{' [M]' if channel.muted else ''}")

		return "  ".join(parts)
