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

import curses
import logging
from logging.handlers import RotatingFileHandler
from enum import Enum
from typing import List, Optional, Union

from backend import ResultRecord
import os

os.makedirs('logs', exist_ok=True)
log_handler = RotatingFileHandler('logs/state.log', maxBytes=1024*1024, backupCount=1)
log_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                                           datefmt='%Y-%m-%d %H:%M:%S'))
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(log_handler)

# Define key codes. get_wch() yields str for characters, int for special keys.
KEY_UP = curses.KEY_UP
KEY_DOWN = curses.KEY_DOWN
KEY_LEFT = curses.KEY_LEFT
KEY_RIGHT = curses.KEY_RIGHT
KEY_ENTER = ('\n', '\r', curses.KEY_ENTER)
KEY_BACKSPACE = ('\x7f', '\b', curses.KEY_BACKSPACE)
KEY_TAB = '\t'
KEY_ESCAPE = '\x1b'
KEY_INTERRUPT = '\x03'
KEY_SEARCH = '/'
KEY_QUIT = 'q'

Key = Union[int, str]


class Mode(Enum):
    INPUT = 'Search'
    LIST = 'Results'
    STATUS = 'Status'


_NEXT_MODE = {
    Mode.INPUT: Mode.LIST,
    Mode.LIST: Mode.STATUS,
    Mode.STATUS: Mode.INPUT,
}


def _is_printable(key: Key) -> bool:
    return isinstance(key, str) and len(key) == 1 and key.isprintable()


class InteractionState:
    """Everything the terminal UI shows, and the only place it changes.

    ``apply`` takes one key at a time and returns False once the user quits.
    Searches and playback go through the fetcher and launcher synchronously.
    """

    def __init__(self, fetcher, launcher, results: Optional[List[ResultRecord]] = None,
                 query: Optional[str] = None, audio_only: bool = False):
        self.fetcher = fetcher
        self.launcher = launcher
        self.audio_only = audio_only
        self.mode: Mode = Mode.LIST
        self.query: str = ""
        self.cursor: int = 0
        self.results: List[ResultRecord] = list(results) if results is not None else []
        self.highlight: int = 0
        self.searched: bool = results is not None
        self.last_query: Optional[str] = query
        self.message: str = ""
        if self.searched:
            self.message = self._describe_search(query, len(self.results))

    @staticmethod
    def _describe_search(query: Optional[str], count: int) -> str:
        if query:
            return f"Searched for: {query} ({count} results)"
        return f"Trending ({count} results)"

    @property
    def selected(self) -> Optional[ResultRecord]:
        if not self.results:
            return None
        return self.results[self.highlight]

    def set_message(self, message: str):
        if message:
            self.message = message

    def apply(self, key: Optional[Key]) -> bool:
        if key is None:
            return True
        if key == KEY_INTERRUPT:
            return False
        if self.mode is not Mode.INPUT:
            if key == KEY_QUIT:
                return False
            if key == KEY_SEARCH:
                self.begin_search()
                return True
        if key == KEY_TAB:
            self.next_region()
        elif self.mode is Mode.INPUT:
            self.handle_input(key)
        elif self.mode is Mode.LIST:
            self.handle_list(key)
        return True

    def begin_search(self):
        self.mode = Mode.INPUT
        self.cursor = len(self.query)

    def enter_list(self):
        self.mode = Mode.LIST
        self.highlight = 0

    def next_region(self):
        mode = _NEXT_MODE[self.mode]
        if mode is Mode.LIST:
            self.enter_list()
        elif mode is Mode.INPUT:
            self.begin_search()
        else:
            self.mode = mode

    def handle_input(self, key: Key):
        if key in KEY_ENTER:
            self.submit()
        elif key in KEY_BACKSPACE:
            if self.cursor > 0:
                self.query = self.query[:self.cursor - 1] + self.query[self.cursor:]
                self.cursor -= 1
        elif key == KEY_LEFT:
            self.cursor = max(0, self.cursor - 1)
        elif key == KEY_RIGHT:
            self.cursor = min(len(self.query), self.cursor + 1)
        elif key == KEY_ESCAPE:
            self.enter_list()
        elif _is_printable(key):
            self.query = self.query[:self.cursor] + key + self.query[self.cursor:]
            self.cursor += 1

    def submit(self):
        query = self.query.strip()
        logger.info(f"Submitting search: '{query}'")
        success, payload = self.fetcher.fetch(query or None)
        if not success:
            # Prior results stay on screen; the query stays editable for a retry
            logger.error(f"Search for '{query}' failed: {payload}")
            self.set_message(f"Search failed: {payload}")
            return
        self.results = list(payload)
        self.highlight = 0
        self.searched = True
        self.last_query = query or None
        self.mode = Mode.LIST
        self.query = ""
        self.cursor = 0
        self.set_message(self._describe_search(query, len(self.results)))

    def handle_list(self, key: Key):
        if key == KEY_UP:
            if self.highlight > 0:
                self.highlight -= 1
        elif key == KEY_DOWN:
            if self.highlight < len(self.results) - 1:
                self.highlight += 1
        elif key in KEY_ENTER:
            self.play_selected()

    def play_selected(self):
        record = self.selected
        if record is None:
            self.set_message("Nothing to play")
            return
        success, message = self.launcher.launch(record.locator, record.title, self.audio_only)
        if success:
            self.set_message(f"Now playing: {record.title}")
        else:
            self.set_message(f"Playback failed: {message}")
