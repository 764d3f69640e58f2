"""
Interactive selection list and text prompt.

Both components are small state machines driven by events from a
``Surface``: every event either updates state and redraws, or ends the
session with a result. Geometry is recomputed from the surface size on
every draw, so the menus stay centered when the terminal is resized.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TypeAlias

from .errors import PromptError, SurfaceError
from .tui import Event, EventType, Key, Surface, TerminalSurface

logger = logging.getLogger(__name__)

BORDER_STYLE: Optional[str] = None
TITLE_STYLE = "green"
CONTENT_STYLE = "white"
CURSOR_STYLE = "bold green"

CURSOR_GLYPH = ">"
# Columns from the box's left edge to the cursor and to the content
CURSOR_OFFSET = 2
CONTENT_OFFSET = 4
# Extra width beyond the longest content line
WIDTH_PADDING = 12

PROMPT_MIN_WIDTH = 20

SurfaceFactory: TypeAlias = Callable[[], Surface]


class Outcome(Enum):
    """How an interactive session ended"""
    OK = "ok"
    CANCELLED = "cancelled"
    INTERRUPTED = "interrupted"
    FAULT = "fault"


@dataclass(frozen=True, slots=True)
class SelectionResult:
    """
    Result of a list session.

    ``index`` is meaningful only when ``outcome`` is OK.
    """
    index: int
    outcome: Outcome
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK


class ListSelection:
    """Cursor over a fixed list of display lines, clamped to its ends"""

    def __init__(self, content: Sequence[str]):
        self.content: tuple[str, ...] = tuple(content)
        self.index = 0

    def __len__(self) -> int:
        return len(self.content)

    def move_up(self) -> bool:
        """Move cursor up one line. Returns True if it moved."""
        if self.index > 0:
            self.index -= 1
            return True
        return False

    def move_down(self) -> bool:
        """Move cursor down one line. Returns True if it moved."""
        if self.index < len(self.content) - 1:
            self.index += 1
            return True
        return False


@dataclass(frozen=True, slots=True)
class ListGeometry:
    """Screen placement of a list box, derived from content and terminal size"""
    title_x: int
    title_y: int
    origin_x: int
    origin_y: int
    width: int
    height: int

    @classmethod
    def compute(cls, title: str, content: Sequence[str], term_width: int, term_height: int) -> "ListGeometry":
        height = len(content) + 2
        longest = max((len(line) for line in content), default=0)
        width = max(longest + WIDTH_PADDING, len(title))

        center_x, center_y = term_width // 2, term_height // 2
        origin_y = center_y - height // 2
        return cls(
            title_x=center_x - len(title) // 2,
            title_y=origin_y - 2,
            origin_x=center_x - width // 2,
            origin_y=origin_y,
            width=width,
            height=height,
        )


def draw_box(surface: Surface, x: int, y: int, width: int, height: int, style: Optional[str] = BORDER_STYLE) -> None:
    """Draw a single-line border with its top-left corner at (x, y)"""
    right, bottom = x + width - 1, y + height - 1
    for cx in range(x + 1, right):
        surface.set_cell(cx, y, "─", style)
        surface.set_cell(cx, bottom, "─", style)
    for cy in range(y + 1, bottom):
        surface.set_cell(x, cy, "│", style)
        surface.set_cell(right, cy, "│", style)
    surface.set_cell(x, y, "┌", style)
    surface.set_cell(right, y, "┐", style)
    surface.set_cell(x, bottom, "└", style)
    surface.set_cell(right, bottom, "┘", style)


class ListBox:
    """
    Centered, bordered list with a movable cursor.

    Keys:
        Up/Left/PgUp/k, wheel up      previous line
        Down/Right/PgDn/j, wheel down next line
        Enter                         select
        Esc, q                        cancel
        Ctrl+C                        interrupt

    Usage:
        result = ListBox("Choose VM", lines).display_and_select()
        if result.ok:
            chosen = lines[result.index]
    """

    UP_KEYS = frozenset({Key.ARROW_UP, Key.ARROW_LEFT, Key.PGUP, Key.WHEEL_UP})
    DOWN_KEYS = frozenset({Key.ARROW_DOWN, Key.ARROW_RIGHT, Key.PGDN, Key.WHEEL_DOWN})

    def __init__(self, title: str, content: Sequence[str]):
        if not content:
            raise ValueError("ListBox requires at least one line of content")
        self.title = title
        self.selection = ListSelection(content)
        self.geometry: Optional[ListGeometry] = None

    @property
    def index(self) -> int:
        return self.selection.index

    def draw(self, surface: Surface) -> None:
        """Redraw the whole list for the current terminal size"""
        width, height = surface.size()
        geo = ListGeometry.compute(self.title, self.selection.content, width, height)
        self.geometry = geo

        surface.clear()
        draw_box(surface, geo.origin_x, geo.origin_y, geo.width, geo.height)
        surface.write(geo.title_x, geo.title_y, self.title, TITLE_STYLE)

        for row, line in enumerate(self.selection.content):
            y = geo.origin_y + 1 + row
            if row == self.selection.index:
                surface.set_cell(geo.origin_x + CURSOR_OFFSET, y, CURSOR_GLYPH, CURSOR_STYLE)
            surface.write(geo.origin_x + CONTENT_OFFSET, y, line, CONTENT_STYLE)

        surface.flush()

    def handle(self, event: Event, surface: Surface) -> Optional[SelectionResult]:
        """
        Apply one event.

        Returns:
            The final result if the event ended the session, otherwise None
        """
        match event.type:
            case EventType.ERROR:
                return SelectionResult(-1, Outcome.FAULT, event.error)
            case EventType.RESIZE:
                self.draw(surface)
                return None

        key = event.key
        if key is Key.CHAR:
            match event.ch:
                case "q" | "Q":
                    return SelectionResult(-1, Outcome.CANCELLED)
                case "k" | "K":
                    key = Key.ARROW_UP
                case "j" | "J":
                    key = Key.ARROW_DOWN

        if key in self.UP_KEYS:
            self.selection.move_up()
            self.draw(surface)
        elif key in self.DOWN_KEYS:
            self.selection.move_down()
            self.draw(surface)
        elif key is Key.ENTER:
            return SelectionResult(self.selection.index, Outcome.OK)
        elif key is Key.ESC:
            return SelectionResult(-1, Outcome.CANCELLED)
        elif key is Key.CTRL_C:
            return SelectionResult(self.selection.index, Outcome.INTERRUPTED)
        return None

    def run(self, surface: Surface) -> SelectionResult:
        """Run the event loop on an already acquired surface"""
        self.draw(surface)
        while True:
            result = self.handle(surface.poll_event(), surface)
            if result is not None:
                logger.debug(f"List closed: {result.outcome.value} index={result.index}")
                return result

    def display_and_select(self, surface_factory: SurfaceFactory = TerminalSurface) -> SelectionResult:
        """
        Acquire the terminal, run the list and release the terminal.

        Returns:
            Selection result; FAULT if the terminal is unavailable
        """
        try:
            with surface_factory() as surface:
                return self.run(surface)
        except SurfaceError as e:
            logger.error(f"[FAIL] {e}")
            return SelectionResult(-1, Outcome.FAULT, e)


class TextEntry:
    """Character buffer edited from the end"""

    def __init__(self, initial: str = ""):
        self.buffer: list[str] = list(initial)

    def __len__(self) -> int:
        return len(self.buffer)

    @property
    def text(self) -> str:
        return "".join(self.buffer)

    def append(self, ch: str) -> None:
        self.buffer.append(ch)

    def erase(self) -> None:
        """Remove the last character; no-op on an empty buffer"""
        if self.buffer:
            self.buffer.pop()


class TextPrompt:
    """
    Centered single-line text box with a label above it.

    Keys:
        printable      append character
        Backspace/Del  remove last character
        Enter          submit
        Esc            cancel
        Ctrl+C         interrupt
    """

    def __init__(self, label: str, initial: str = ""):
        self.label = label
        self.entry = TextEntry(initial)

    def draw(self, surface: Surface) -> None:
        term_width, term_height = surface.size()
        cx, cy = term_width // 2, term_height // 2
        width = max(len(self.entry) + 2, PROMPT_MIN_WIDTH)
        half = width // 2

        surface.clear()
        draw_box(surface, cx - half, cy - 1, 2 * half + 1, 3)
        surface.write(cx - len(self.label) // 2, cy - 2, self.label, TITLE_STYLE)
        text = self.entry.text
        surface.write(cx - len(text) // 2, cy, text)
        surface.flush()

    def handle(self, event: Event, surface: Surface) -> Optional[tuple[Outcome, str]]:
        """
        Apply one event.

        Returns:
            (outcome, text) if the event ended the session, otherwise None
        """
        match event.type:
            case EventType.ERROR:
                return Outcome.FAULT, ""
            case EventType.RESIZE:
                self.draw(surface)
                return None
            case EventType.MOUSE:
                return None

        match event.key:
            case Key.CTRL_C:
                return Outcome.INTERRUPTED, ""
            case Key.ESC:
                return Outcome.CANCELLED, ""
            case Key.ENTER:
                return Outcome.OK, self.entry.text
            case Key.BACKSPACE | Key.DELETE:
                self.entry.erase()
                self.draw(surface)
            case Key.CHAR:
                self.entry.append(event.ch)
                self.draw(surface)
        return None

    def run(self, surface: Surface) -> str:
        """
        Run the prompt on an already acquired surface.

        Raises:
            PromptError: If the prompt ends without a submitted value
        """
        self.draw(surface)
        while True:
            event = surface.poll_event()
            result = self.handle(event, surface)
            if result is None:
                continue
            outcome, text = result
            if outcome is Outcome.OK:
                return text
            raise PromptError(outcome, str(event.error) if event.error else "")


def ask_for_username(info: str, surface_factory: SurfaceFactory = TerminalSurface) -> str:
    """
    Prompt for the login name to use for a VM.

    Args:
        info: Target description shown in the label (e.g., "vm (10.0.0.5)")
        surface_factory: Callable returning the surface context manager

    Returns:
        The entered username (may be empty)

    Raises:
        PromptError: If the prompt was cancelled or failed
        SurfaceError: If the terminal is unavailable
    """
    prompt = TextPrompt(f"Enter your username for {info}")
    with surface_factory() as surface:
        return prompt.run(surface)
