"""Keystroke input for playing the pads from the terminal.

Provides a background thread that reads stdin without requiring the user to
press Enter, and splits what it reads into keys. Multi-byte escape sequences
(arrow keys, F-keys, Shift-Tab) arrive as one key string, so ``"\\x1b[A"``
is the Up arrow and a lone ``"\\x1b"`` is Esc once nothing follows it within
``ESCAPE_TIMEOUT``. The display writes to **stderr** while this module reads
from **stdin**, so the two never conflict.

**Platform support:** Linux and macOS. Requires :mod:`tty` and :mod:`termios`,
which are only available on POSIX systems. On unsupported platforms, or when
stdin is not a real TTY, the listener starts in a degraded mode and logs a
warning instead of raising an exception.
"""

import logging
import os
import queue
import select
import sys
import threading
import typing


logger = logging.getLogger(__name__)


#: ``True`` when the current platform supports single-keystroke input.
KEYS_SUPPORTED: bool = False

#: Why keystroke input is not available, or ``None`` when :data:`KEYS_SUPPORTED` is ``True``.
KEYS_UNAVAILABLE_REASON: typing.Optional[str] = None

try:
	import termios
	import tty

	if not sys.stdin.isatty():
		raise OSError("stdin is not a TTY (running in a pipe or non-interactive context)")

	_fd = sys.stdin.fileno()
	_saved = termios.tcgetattr(_fd)
	termios.tcsetattr(_fd, termios.TCSADRAIN, _saved)

	KEYS_SUPPORTED = True

except ImportError:
	KEYS_UNAVAILABLE_REASON = (
		"The 'tty' and 'termios' modules are not available on this platform. "
		"Keyboard input requires a POSIX operating system (Linux or macOS)."
	)
except OSError as _e:
	KEYS_UNAVAILABLE_REASON = (
		f"Keyboard input requires an interactive terminal (TTY) on stdin. "
		f"Reason: {_e}"
	)
except Exception as _e:
	KEYS_UNAVAILABLE_REASON = f"Keyboard input unavailable: {_e}"


ESC = "\x1b"

# How long a trailing ESC waits for the rest of a sequence before it counts as the Esc key.
ESCAPE_TIMEOUT = 0.05

POLL_INTERVAL = 0.1


def split_keys (data: str) -> typing.List[str]:

	"""Split a chunk of terminal input into individual keys.

	Recognises CSI sequences (``ESC [`` ... final byte, e.g. arrows, Shift-Tab
	and ``ESC [ 15 ~``) and SS3 sequences (``ESC O`` + one byte, e.g. F1-F4).
	An ESC that does not start a sequence is returned on its own as the Esc key.

	Example::

		split_keys("a\\x1b[Ab")   # ["a", "\\x1b[A", "b"]
	"""

	keys: typing.List[str] = []
	i = 0

	while i < len(data):

		char = data[i]

		if char != ESC or i + 1 >= len(data):
			keys.append(char)
			i += 1
			continue

		introducer = data[i + 1]

		if introducer == "[":
			end = i + 2
			# Parameter and intermediate bytes, then one final byte in 0x40-0x7E.
			while end < len(data) and not ("\x40" <= data[end] <= "\x7e"):
				end += 1
			keys.append(data[i:end + 1])
			i = end + 1

		elif introducer == "O" and i + 2 < len(data):
			keys.append(data[i:i + 3])
			i += 3

		else:
			keys.append(ESC)
			i += 1

	return keys


def _incomplete_tail (data: str) -> int:

	"""Index where a trailing, still unfinished escape sequence starts, or ``len(data)``."""

	start = data.rfind(ESC)

	if start == -1:
		return len(data)

	tail = data[start:]

	if tail in (ESC, ESC + "O"):
		return start

	if tail.startswith(ESC + "[") and not any("\x40" <= c <= "\x7e" for c in tail[2:]):
		return start

	return len(data)


def split_pending (data: str) -> typing.Tuple[typing.List[str], str]:

	"""Split *data* like :func:`split_keys`, holding back an unfinished trailing sequence.

	A terminal may deliver one arrow key across two reads. The held-back text
	is returned so the caller can prepend it to the next read.

	Example::

		split_pending("a\\x1b")    # (["a"], "\\x1b")
		split_pending("\\x1b[A")   # (["\\x1b[A"], "")
	"""

	cut = _incomplete_tail(data)

	return split_keys(data[:cut]), data[cut:]


class KeystrokeListener:

	"""Background daemon thread that reads keystrokes from stdin.

	Puts stdin into *cbreak* mode so each keypress is delivered immediately.
	Keys are handed to ``on_key`` (called from the listener thread, so it
	must be thread-safe) or, when no callback is given, placed in a
	thread-safe queue for :meth:`drain`.

	Terminal settings are always restored on shutdown, even if an exception
	occurs, so a crashed listener will not leave the terminal in a broken state.

	Example::

		listener = KeystrokeListener(on_key=lambda key: loop.call_soon_threadsafe(handle, key))
		listener.start()
		...
		listener.stop()
	"""

	def __init__ (self, on_key: typing.Optional[typing.Callable[[str], None]] = None) -> None:

		self.on_key = on_key
		self._queue: queue.Queue[str] = queue.Queue()
		self._thread: typing.Optional[threading.Thread] = None
		self._running: bool = False
		self._pending: str = ""

		#: ``True`` after a successful :meth:`start` on a supported platform.
		self.active: bool = False

	def start (self) -> None:

		"""Start the background listener thread.

		Safe to call more than once. If :data:`KEYS_SUPPORTED` is ``False``,
		logs a warning and returns without starting the thread.
		"""

		if self._running:
			return

		if not KEYS_SUPPORTED:
			logger.warning(
				f"Keyboard input is not available on this system and will be disabled. "
				f"{KEYS_UNAVAILABLE_REASON}"
			)
			return

		self._running = True
		self.active = True
		self._thread = threading.Thread(
			target = self._listen,
			name   = "padseq-keystroke-listener",
			daemon = True,
		)
		self._thread.start()

	def stop (self) -> None:

		"""Signal the listener to stop. The thread exits within one poll interval (~0.1 s)."""

		self._running = False
		self.active = False

	def drain (self) -> typing.List[str]:

		"""Return all keys queued since the last drain. Non-blocking."""

		keys: typing.List[str] = []

		while True:
			try:
				keys.append(self._queue.get_nowait())
			except queue.Empty:
				break

		return keys

	def feed (self, data: str) -> None:

		"""Deliver a chunk of raw input as if it had been typed.

		An unfinished escape sequence at the end is held until the next call
		or :meth:`flush`.
		"""

		keys, self._pending = split_pending(self._pending + data)
		self._deliver(keys)

	def flush (self) -> None:

		"""Deliver held-back input as typed, so a lone ESC becomes the Esc key."""

		if self._pending:
			keys = split_keys(self._pending)
			self._pending = ""
			self._deliver(keys)

	def _deliver (self, keys: typing.List[str]) -> None:

		for key in keys:
			if self.on_key is not None:
				self.on_key(key)
			else:
				self._queue.put(key)

	def _listen (self) -> None:

		import termios  # noqa: PLC0415
		import tty      # noqa: PLC0415

		fd = sys.stdin.fileno()
		old_settings = termios.tcgetattr(fd)

		try:
			# cbreak rather than raw, so Ctrl+C still raises SIGINT.
			tty.setcbreak(fd)

			while self._running:
				timeout = ESCAPE_TIMEOUT if self._pending else POLL_INTERVAL
				ready, _, _ = select.select([fd], [], [], timeout)
				if ready:
					data = os.read(fd, 64)
					if data:
						self.feed(data.decode("utf-8", errors="replace"))
				else:
					self.flush()

		except Exception:
			logger.exception("Keystroke listener stopped")

		finally:
			termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
			self.active = False
