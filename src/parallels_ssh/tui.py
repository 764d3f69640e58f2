"""
Terminal surface for the interactive menus.

Provides a cell-addressed drawing surface on top of Rich's Live display
and a raw-mode input reader that turns key presses, mouse wheel reports and
terminal resizes into events.

Uses alternate screen mode (like vim/emacs) - exits cleanly back to shell.
"""

import os
import sys
import tty
import select
import signal
import shutil
import termios
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Tuple

from rich.console import Console
from rich.live import Live
from rich.text import Text

from .errors import SurfaceError

# Seconds to wait for input before checking for a pending resize
POLL_INTERVAL = 0.1

# xterm mouse reporting (button events + SGR extended coordinates)
MOUSE_ON = "\x1b[?1000h\x1b[?1006h"
MOUSE_OFF = "\x1b[?1006l\x1b[?1000l"

# SGR mouse button codes for the scroll wheel
WHEEL_UP_BUTTON = 64
WHEEL_DOWN_BUTTON = 65


def get_terminal_size() -> Tuple[int, int]:
    """Get current terminal size (width, height)."""
    size = shutil.get_terminal_size(fallback=(80, 24))
    return size.columns, size.lines


class EventType(Enum):
    KEY = "key"
    MOUSE = "mouse"
    RESIZE = "resize"
    ERROR = "error"


class Key(Enum):
    CHAR = "char"
    ENTER = "enter"
    ESC = "esc"
    CTRL_C = "ctrl-c"
    BACKSPACE = "backspace"
    DELETE = "delete"
    ARROW_UP = "up"
    ARROW_DOWN = "down"
    ARROW_LEFT = "left"
    ARROW_RIGHT = "right"
    PGUP = "pgup"
    PGDN = "pgdn"
    WHEEL_UP = "wheel-up"
    WHEEL_DOWN = "wheel-down"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Event:
    """Single input event delivered to a menu"""
    type: EventType
    key: Key = Key.UNKNOWN
    ch: str = ""
    error: Optional[BaseException] = None

    @classmethod
    def char(cls, ch: str) -> "Event":
        return cls(EventType.KEY, Key.CHAR, ch)

    @classmethod
    def of(cls, key: Key) -> "Event":
        return cls(EventType.KEY, key)


RESIZE_EVENT = Event(EventType.RESIZE)

_CSI_KEYS = {
    "A": Key.ARROW_UP,
    "B": Key.ARROW_DOWN,
    "C": Key.ARROW_RIGHT,
    "D": Key.ARROW_LEFT,
}

_TILDE_KEYS = {
    "3": Key.DELETE,
    "5": Key.PGUP,
    "6": Key.PGDN,
}


def _mouse_event(button: int) -> Optional[Event]:
    if button == WHEEL_UP_BUTTON:
        return Event(EventType.MOUSE, Key.WHEEL_UP)
    if button == WHEEL_DOWN_BUTTON:
        return Event(EventType.MOUSE, Key.WHEEL_DOWN)
    return None


def _decode_escape(data: str, pos: int) -> Tuple[Optional[Event], int]:
    """Decode an escape sequence starting at data[pos] == ESC."""
    if pos + 1 >= len(data) or data[pos + 1] not in "[O":
        return Event.of(Key.ESC), pos + 1

    # SS3 arrows (application cursor mode): ESC O A
    if data[pos + 1] == "O":
        if pos + 2 < len(data):
            return Event.of(_CSI_KEYS.get(data[pos + 2], Key.UNKNOWN)), pos + 3
        return Event.of(Key.ESC), pos + 1

    start = pos + 2
    # X10 mouse report: ESC [ M <button+32> <x+32> <y+32>
    if data.startswith("M", start) and start + 3 < len(data):
        return _mouse_event(ord(data[start + 1]) - 32), start + 4

    end = start
    while end < len(data) and not ("@" <= data[end] <= "~"):
        end += 1
    if end >= len(data):
        return Event.of(Key.UNKNOWN), len(data)

    params, final = data[start:end], data[end]
    nxt = end + 1

    # SGR mouse report: ESC [ < button ; x ; y (M|m)
    if params.startswith("<"):
        if final != "M":
            return None, nxt
        try:
            button = int(params[1:].split(";")[0])
        except ValueError:
            return None, nxt
        return _mouse_event(button), nxt

    if final == "~":
        return Event.of(_TILDE_KEYS.get(params, Key.UNKNOWN)), nxt
    return Event.of(_CSI_KEYS.get(final, Key.UNKNOWN)), nxt


def decode_input(data: str) -> list[Event]:
    """
    Decode raw terminal input into events.

    A single read may carry several key presses; all of them are
    returned in order. Mouse reports other than the scroll wheel are
    dropped.
    """
    events: list[Event] = []
    pos = 0
    while pos < len(data):
        ch = data[pos]
        event: Optional[Event]
        if ch == "\x1b":
            event, pos = _decode_escape(data, pos)
        else:
            pos += 1
            if ch in ("\r", "\n"):
                event = Event.of(Key.ENTER)
            elif ch == "\x03":
                event = Event.of(Key.CTRL_C)
            elif ch in ("\x7f", "\x08"):
                event = Event.of(Key.BACKSPACE)
            elif ch.isprintable():
                event = Event.char(ch)
            else:
                event = Event.of(Key.UNKNOWN)
        if event is not None:
            events.append(event)
    return events


class Canvas:
    """
    Fixed-size grid of styled character cells.

    Writes outside the grid are ignored, so callers may draw with
    coordinates computed from a terminal that is smaller than the content.
    """

    def __init__(self, width: int, height: int):
        self.width = max(0, width)
        self.height = max(0, height)
        self.clear()

    def clear(self) -> None:
        self._cells: list[list[tuple[str, Optional[str]]]] = [
            [(" ", None)] * self.width for _ in range(self.height)
        ]

    def set_cell(self, x: int, y: int, ch: str, style: Optional[str] = None) -> None:
        if 0 <= x < self.width and 0 <= y < self.height:
            self._cells[y][x] = (ch, style)

    def write(self, x: int, y: int, text: str, style: Optional[str] = None) -> None:
        for i, ch in enumerate(text):
            self.set_cell(x + i, y, ch, style)

    def get_cell(self, x: int, y: int) -> str:
        return self._cells[y][x][0]

    def row(self, y: int) -> str:
        return "".join(ch for ch, _ in self._cells[y])

    def to_text(self) -> Text:
        """Render the grid as Rich Text, merging runs of equal style"""
        text = Text(no_wrap=True, overflow="crop")
        for y, cells in enumerate(self._cells):
            if y:
                text.append("\n")
            run, run_style = "", None
            for ch, style in cells:
                if style != run_style and run:
                    text.append(run, style=run_style)
                    run = ""
                run_style = style
                run += ch
            if run:
                text.append(run, style=run_style)
        return text


class Surface(Protocol):
    """Drawable surface with an input event source"""

    def size(self) -> Tuple[int, int]: ...
    def clear(self) -> None: ...
    def set_cell(self, x: int, y: int, ch: str, style: Optional[str] = None) -> None: ...
    def write(self, x: int, y: int, text: str, style: Optional[str] = None) -> None: ...
    def flush(self) -> None: ...
    def poll_event(self) -> Event: ...


class TerminalSurface:
    """
    Full-screen terminal surface.

    Owns the terminal for the duration of a ``with`` block: alternate
    screen, raw keyboard input, mouse wheel reporting and SIGWINCH
    handling are set up on entry and always restored on exit.

    Usage:
        with TerminalSurface() as surface:
            surface.clear()
            surface.write(0, 0, "hello")
            surface.flush()
            event = surface.poll_event()
    """

    def __init__(self, console: Optional[Console] = None, mouse: bool = True):
        if console is None:
            width, height = get_terminal_size()
            self.console = Console(
                force_terminal=True,  # Ensure terminal mode
                width=width,
                height=height,
            )
        else:
            self.console = console

        self.mouse = mouse
        self.canvas = Canvas(*get_terminal_size())
        self.live: Optional[Live] = None
        self._fd: Optional[int] = None
        self._saved_mode: Optional[list] = None
        self._old_sigwinch = None
        self._resized = False
        self._pending: deque[Event] = deque()

    def _handle_resize(self, signum, frame) -> None:
        """Handle terminal resize signal (SIGWINCH)."""
        self._resized = True

    def __enter__(self) -> "TerminalSurface":
        """Acquire the terminal: raw input, alternate screen, mouse reporting"""
        try:
            fd = sys.stdin.fileno()
            if not os.isatty(fd):
                raise SurfaceError("stdin is not a terminal")
            self._saved_mode = termios.tcgetattr(fd)
            tty.setraw(fd, termios.TCSANOW)
            # Keep output post-processing so Rich newlines still return the carriage
            mode = termios.tcgetattr(fd)
            mode[1] |= termios.OPOST | termios.ONLCR
            termios.tcsetattr(fd, termios.TCSANOW, mode)
            self._fd = fd
        except (OSError, ValueError, termios.error) as e:
            raise SurfaceError(f"Unable to initialize terminal: {e}") from e

        try:
            self._old_sigwinch = signal.signal(signal.SIGWINCH, self._handle_resize)
        except (ValueError, OSError):
            # Not on the main thread or SIGWINCH not available
            self._old_sigwinch = None

        try:
            self.live = Live(
                Text(""),
                console=self.console,
                screen=True,  # Use alternate screen buffer (like vim/emacs)
                auto_refresh=False,  # Manual refresh for less flicker
                transient=True,
                vertical_overflow="crop",
            )
            self.live.__enter__()
            if self.mouse:
                self._write_control(MOUSE_ON)
        except BaseException:
            self.__exit__(*sys.exc_info())
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Release the terminal, whatever state it was left in"""
        if self.mouse and self.live is not None:
            self._write_control(MOUSE_OFF)

        if self.live is not None:
            self.live.__exit__(exc_type, exc_val, exc_tb)
            self.live = None

        if self._fd is not None and self._saved_mode is not None:
            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_mode)
            except termios.error:
                pass
            self._fd = None

        if self._old_sigwinch is not None:
            try:
                signal.signal(signal.SIGWINCH, self._old_sigwinch)
            except (ValueError, OSError):
                pass
            self._old_sigwinch = None

        # Ensure cursor is visible
        self.console.show_cursor(True)

    def _write_control(self, sequence: str) -> None:
        self.console.file.write(sequence)
        self.console.file.flush()

    def size(self) -> Tuple[int, int]:
        return get_terminal_size()

    def clear(self) -> None:
        """Start a new frame sized to the current terminal"""
        width, height = self.size()
        self.console.size = (width, height)
        self.canvas = Canvas(width, height)

    def set_cell(self, x: int, y: int, ch: str, style: Optional[str] = None) -> None:
        self.canvas.set_cell(x, y, ch, style)

    def write(self, x: int, y: int, text: str, style: Optional[str] = None) -> None:
        self.canvas.write(x, y, text, style)

    def flush(self) -> None:
        if self.live is not None:
            self.live.update(self.canvas.to_text(), refresh=True)

    def poll_event(self) -> Event:
        """
        Block until the next input or resize event.

        Returns:
            The next event; an ERROR event if reading input fails
        """
        if self._fd is None:
            return Event(EventType.ERROR, error=SurfaceError("terminal not initialized"))

        while not self._pending:
            if self._resized:
                self._resized = False
                return RESIZE_EVENT
            try:
                ready, _, _ = select.select([self._fd], [], [], POLL_INTERVAL)
                if not ready:
                    continue
                data = os.read(self._fd, 1024)
            except OSError as e:
                return Event(EventType.ERROR, error=e)
            if not data:
                return Event(EventType.ERROR, error=EOFError("terminal input closed"))
            self._pending.extend(decode_input(data.decode("utf-8", errors="replace")))

        return self._pending.popleft()
