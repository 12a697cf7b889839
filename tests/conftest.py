"""Shared pytest fixtures for tubeterm tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from backend import ResultRecord
from state import InteractionState, Mode


class FakeFetcher:
    """Records every query and answers from a queue of canned results."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.queries = []

    def fetch(self, query=None):
        self.queries.append(query)
        if self.responses:
            return self.responses.pop(0)
        return True, []


class FakeLauncher:
    def __init__(self, success=True, message="started"):
        self.success = success
        self.message = message
        self.calls = []

    def launch(self, locator, title, audio_only=False):
        self.calls.append((locator, title, audio_only))
        return self.success, self.message


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the developer's ~/.tubeterm.json and the shipped config.json out of tests."""
    monkeypatch.setattr(config, "PROJECT_CONFIG", tmp_path / "config.json")
    monkeypatch.setattr(config, "USER_CONFIG", tmp_path / ".tubeterm.json")


def make_record(n):
    return ResultRecord(
        title=f"Video {n}",
        locator=f"https://www.youtube.com/watch?v=id{n}",
        duration="3:33",
        uploader=f"Channel {n}",
        verified=n % 2 == 0,
    )


@pytest.fixture
def records():
    return [make_record(n) for n in range(3)]


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def state(fetcher, launcher, records):
    """A state right after a successful trending fetch, focused on the list."""
    return InteractionState(fetcher, launcher, records)


@pytest.fixture
def input_state(state):
    state.begin_search()
    assert state.mode is Mode.INPUT
    return state
