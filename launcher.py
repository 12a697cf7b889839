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

import contextlib
import shutil
import signal
import subprocess
import logging
from logging.handlers import RotatingFileHandler
from typing import Tuple
import os

os.makedirs('logs', exist_ok=True)
log_handler = RotatingFileHandler('logs/launcher.log', maxBytes=1024*1024, backupCount=1)
log_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                                           datefmt='%Y-%m-%d %H:%M:%S'))
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(log_handler)

_RELAYED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class PlayerLauncher:
    """Starts the external media player for a locator.

    Video playback is detached: the player runs in its own session and is
    never awaited. Audio-only playback runs in the foreground; the caller
    blocks until the player exits and interrupts are passed on to it.
    """

    def __init__(self, command: str = 'mpv', suspend=None):
        self.command_name = command
        self.command_path = shutil.which(command)
        # Context manager that hands the terminal to a foreground player
        self.suspend = suspend or contextlib.nullcontext

    @property
    def is_available(self) -> bool:
        return self.command_path is not None

    def launch(self, locator: str, title: str, audio_only: bool = False) -> Tuple[bool, str]:
        if not self.is_available:
            logger.error(f"Player '{self.command_name}' not found")
            return False, f"Player '{self.command_name}' not found. Ensure it is installed."
        if audio_only:
            return self._run_foreground(locator.strip(), title)
        return self._spawn_detached(locator.strip(), title)

    def _spawn_detached(self, locator: str, title: str) -> Tuple[bool, str]:
        try:
            proc = subprocess.Popen(
                [self.command_path, locator],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.error(f"Failed to start {self.command_name} for {locator}: {e}")
            return False, f"Failed to start {self.command_name}: {e}"
        logger.info(f"Started {self.command_name} (pid={proc.pid}) for '{title}'")
        return True, f"Now playing: {title}"

    def _run_foreground(self, locator: str, title: str) -> Tuple[bool, str]:
        with self.suspend():
            try:
                proc = subprocess.Popen([self.command_path, "--no-video", locator])
            except OSError as e:
                logger.error(f"Failed to start {self.command_name} for {locator}: {e}")
                return False, f"Failed to start {self.command_name}: {e}"
            logger.info(f"Playing audio with {self.command_name} (pid={proc.pid}): '{title}'")

            interrupted = []

            def relay(sig, frame):
                interrupted.append(sig)
                logger.info(f"Relaying signal {sig} to pid {proc.pid}")
                proc.send_signal(sig)

            previous = {sig: signal.signal(sig, relay) for sig in _RELAYED_SIGNALS}
            try:
                returncode = proc.wait()
            finally:
                for sig, handler in previous.items():
                    signal.signal(sig, handler)

        logger.info(f"{self.command_name} exited with {returncode}")
        if interrupted:
            return True, f"Stopped: {title}"
        if returncode != 0:
            return False, f"{self.command_name} exited with status {returncode}: {title}"
        return True, f"Finished playing: {title}"
