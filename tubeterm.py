# -*- coding: utf-8 -*-
#
# tubeterm - Terminal Video Browser
# Copyright (C) 2026 xir
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#

import argparse
import contextlib
import curses
import logging
from logging.handlers import RotatingFileHandler
import signal
import sys
import unicodedata
from functools import lru_cache
from typing import List, Optional, Tuple

from backend import ResultRecord, TitleCache, make_fetcher
from config import Settings, load_settings
from launcher import PlayerLauncher
from state import InteractionState, Mode
import os

__version__ = "1.1.0"

os.makedirs('logs', exist_ok=True)
log_file = 'logs/tubeterm.log'
log_handler = RotatingFileHandler(log_file, maxBytes=1024*1024, backupCount=1)
log_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                                  datefmt='%Y-%m-%d %H:%M:%S')
log_handler.setFormatter(log_formatter)
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(log_handler)

_PROJECT_LOGGERS = ('tubeterm', 'backend', 'launcher', 'state')

HEADER_SHARE = 0.10
FOOTER_SHARE = 0.10
MIN_REGION_ROWS = 3

HINTS = {
    Mode.INPUT: "ENTER: search  ESC: results  TAB: next region  ^C: quit",
    Mode.LIST: "UP/DOWN: select  ENTER: play  /: search  TAB: next region  q: quit",
    Mode.STATUS: "/: search  TAB: next region  q: quit",
}


def compute_layout(height: int) -> List[Tuple[int, int]]:
    """Split the screen rows into (top, rows) for the query, list and status regions."""
    header = max(MIN_REGION_ROWS, int(height * HEADER_SHARE))
    header = min(header, height)
    footer = min(max(MIN_REGION_ROWS, int(height * FOOTER_SHARE)), height - header)
    middle = max(0, height - header - footer)
    return [(0, header), (header, middle), (header + middle, footer)]


def visible_window(highlight: int, count: int, rows: int) -> Tuple[int, int]:
    """First and one-past-last index to show so the highlight stays on screen."""
    if rows <= 0 or count == 0:
        return 0, 0
    start = 0
    if highlight >= rows:
        start = highlight - rows + 1
    return start, min(start + rows, count)


@lru_cache(maxsize=4096)
def _char_width(ch: str) -> int:
    if unicodedata.category(ch) in ('Mn', 'Me', 'Cf'):
        return 0
    if unicodedata.east_asian_width(ch) in ('F', 'W'):
        return 2
    return 1


def display_width(text: str) -> int:
    """Number of terminal columns the text occupies."""
    return sum(_char_width(ch) for ch in text)


def truncate_to_width(text: str, width: int) -> str:
    used = 0
    for i, ch in enumerate(text):
        w = _char_width(ch)
        if used + w > width:
            return text[:i]
        used += w
    return text


def format_row(record: ResultRecord, width: int) -> str:
    """Lay out a result as title on the left, uploader and duration on the right.

    Widths are terminal columns, so wide (CJK) and combining characters line up.
    """
    uploader = record.uploader
    if record.verified:
        uploader += " ✓"
    right = f"{uploader}  {record.duration}" if uploader else record.duration
    title_width = width - display_width(right) - 2
    if title_width < 8:
        return truncate_to_width(record.title, width)
    title = record.title
    if display_width(title) > title_width:
        title = truncate_to_width(title, title_width - 1) + "…"
    padding = " " * (title_width - display_width(title))
    return f"{title}{padding}  {right}"


def _put(win, y: int, x: int, text: str, attr: int = 0):
    # Writing the bottom-right cell raises even though the text is drawn
    try:
        win.addstr(y, x, text, attr)
    except curses.error:
        pass


class TubeTermCLI:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.state: Optional[InteractionState] = None
        self.stdscr: Optional[curses.window] = None

    @contextlib.contextmanager
    def suspended(self):
        """Hand the terminal to a foreground child and take it back afterwards."""
        curses.def_prog_mode()
        curses.endwin()
        try:
            yield
        finally:
            curses.reset_prog_mode()
            if self.stdscr is not None:
                self.stdscr.clear()
                self.stdscr.refresh()

    def draw_box(self, stdscr: curses.window, top: int, rows: int, width: int, title: str, focused: bool):
        if rows < 2 or width < 4:
            return
        attr = curses.A_BOLD if focused else curses.A_DIM
        try:
            stdscr.hline(top, 0, curses.ACS_HLINE, width)
        except curses.error:
            return
        _put(stdscr, top, 2, f" {title} ", attr)

    def draw_query(self, stdscr: curses.window, top: int, rows: int, width: int) -> Optional[Tuple[int, int]]:
        state = self.state
        focused = state.mode is Mode.INPUT
        self.draw_box(stdscr, top, rows, width, "Search", focused)
        prompt = "> "
        avail = width - len(prompt) - 4
        if rows < 2 or avail <= 0:
            return None
        if focused:
            # Scroll the buffer horizontally so the cursor stays visible
            offset = max(0, state.cursor - avail + 1)
            text = state.query[offset:offset + avail]
            _put(stdscr, top + 1, 2, prompt + text)
            return top + 1, 2 + len(prompt) + state.cursor - offset
        if state.last_query:
            text = f"Last search: {state.last_query}"
        elif state.searched:
            text = "Trending"
        else:
            text = ""
        _put(stdscr, top + 1, 2, text[:width - 4], curses.A_DIM)
        hint = "Press '/' to search"
        if rows > 2 and len(hint) < width - 4:
            _put(stdscr, top + 2, 2, hint, curses.A_DIM)
        return None

    def draw_results(self, stdscr: curses.window, top: int, rows: int, width: int):
        state = self.state
        focused = state.mode is Mode.LIST
        count = len(state.results)
        self.draw_box(stdscr, top, rows, width, f"Results ({count})", focused)
        list_rows = rows - 1
        if list_rows <= 0:
            return
        if not state.searched:
            _put(stdscr, top + 1, 4, "No search performed yet.")
            return
        if not state.results:
            _put(stdscr, top + 1, 4, "No results.")
            return

        start, end = visible_window(state.highlight, count, list_rows)
        for i in range(start, end):
            line = format_row(state.results[i], width - 6)
            prefix = ">" if i == state.highlight else " "
            row = top + 1 + i - start
            if i == state.highlight:
                stdscr.attron(curses.color_pair(2))
            _put(stdscr, row, 2, f"{prefix} {line}")
            if i == state.highlight:
                stdscr.attroff(curses.color_pair(2))

        if count > list_rows:
            position = f"{state.highlight + 1}/{count}"
            _put(stdscr, top, width - len(position) - 2, position)

    def draw_status(self, stdscr: curses.window, top: int, rows: int, width: int):
        state = self.state
        focused = state.mode is Mode.STATUS
        self.draw_box(stdscr, top, rows, width, "Status", focused)
        if rows < 2:
            return
        _put(stdscr, top + 1, 2, truncate_to_width(state.message, width - 4))
        if rows > 2:
            if focused and state.selected:
                record = state.selected
                detail = record.locator
                if record.uploader:
                    detail = f"{record.uploader} - {detail}"
                _put(stdscr, top + 2, 2, truncate_to_width(detail, width - 4), curses.A_DIM)
            else:
                _put(stdscr, top + 2, 2, HINTS[state.mode][:width - 4], curses.A_DIM)

    def draw(self, stdscr: curses.window):
        height, width = stdscr.getmaxyx()
        (q_top, q_rows), (l_top, l_rows), (s_top, s_rows) = compute_layout(height)
        cursor_pos = self.draw_query(stdscr, q_top, q_rows, width)
        self.draw_results(stdscr, l_top, l_rows, width)
        self.draw_status(stdscr, s_top, s_rows, width)
        if cursor_pos is not None:
            self._set_cursor(1)
            try:
                stdscr.move(*cursor_pos)
            except curses.error:
                pass
        else:
            self._set_cursor(0)

    @staticmethod
    def _set_cursor(visibility: int):
        try:
            curses.curs_set(visibility)
        except curses.error:
            pass

    def read_key(self, stdscr: curses.window):
        try:
            return stdscr.get_wch()
        except curses.error:
            # Timed out without input
            return None

    def main(self, stdscr: curses.window, state: InteractionState):
        self.stdscr = stdscr
        self.state = state
        curses.raw()
        stdscr.keypad(True)
        if curses.has_colors():
            curses.init_pair(2, curses.COLOR_BLACK, curses.COLOR_WHITE)
        stdscr.timeout(self.settings.poll_interval_ms)
        logger.info("Entering main loop")

        while True:
            stdscr.erase()
            self.draw(stdscr)
            stdscr.refresh()

            key = self.read_key(stdscr)
            if key is None:
                continue
            logger.debug(f"Key pressed: {key!r} in {self.state.mode.name}")
            if not self.state.apply(key):
                break
        logger.info("Leaving main loop")


def signal_handler(sig, frame):
    # SystemExit unwinds through curses.wrapper, which restores the terminal
    sys.exit(0)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="tubeterm", description="Search and play YouTube videos from the terminal")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-s", "--search", help="Search for a video instead of showing trending")
    group.add_argument("-u", "--url", help="Play a video by url and exit")
    parser.add_argument("--audio", action="store_true", default=None, help="Play audio only, in the foreground")
    parser.add_argument("--backend", choices=("piped", "scrape"), help="Where results come from")
    parser.add_argument("--player", help="Media player command (default: mpv)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.debug:
        for name in _PROJECT_LOGGERS:
            logging.getLogger(name).setLevel(logging.DEBUG)

    try:
        settings = load_settings(backend=args.backend, player=args.player, audio_only=args.audio)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1
    if args.url:
        success, message = PlayerLauncher(settings.player).launch(args.url, "From URL", settings.audio_only)
        print(message, file=sys.stdout if success else sys.stderr)
        return 0 if success else 1

    try:
        fetcher = make_fetcher(settings, TitleCache(settings.title_cache_size))
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    cli = TubeTermCLI(settings)
    launcher = PlayerLauncher(settings.player, suspend=cli.suspended)
    success, payload = fetcher.fetch(args.search)
    if not success:
        logger.error(f"Initial fetch failed: {payload}")
        print(f"Could not fetch results: {payload}", file=sys.stderr)
        return 1

    state = InteractionState(fetcher, launcher, payload, args.search, settings.audio_only)
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    try:
        curses.wrapper(cli.main, state)
    except curses.error as e:
        logger.error(f"Terminal error: {e}")
        print(f"Terminal error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
