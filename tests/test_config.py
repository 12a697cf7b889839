import json

import pytest

import config
from config import Settings, get_preference, load_settings


@pytest.fixture
def config_files(tmp_path, monkeypatch):
    project = tmp_path / "config.json"
    user = tmp_path / ".tubeterm.json"
    monkeypatch.setattr(config, "PROJECT_CONFIG", project)
    monkeypatch.setattr(config, "USER_CONFIG", user)
    return project, user


def test_defaults_without_files(config_files):
    assert load_settings() == Settings()


def test_user_file_overrides_project_file(config_files):
    project, user = config_files
    project.write_text(json.dumps({'player': 'vlc', 'region': 'DE'}))
    user.write_text(json.dumps({'player': 'mpv-git'}))
    assert get_preference('player') == 'mpv-git'
    assert get_preference('region') == 'DE'
    assert get_preference('missing', 'fallback') == 'fallback'
    settings = load_settings()
    assert settings.player == 'mpv-git'
    assert settings.region == 'DE'


def test_overrides_win_and_none_is_ignored(config_files):
    _, user = config_files
    user.write_text(json.dumps({'backend': 'scrape', 'audio_only': True}))
    settings = load_settings(backend='piped', audio_only=None, player=None)
    assert settings.backend == 'piped'
    assert settings.audio_only is True
    assert settings.player == 'mpv'


def test_unknown_override_is_rejected(config_files):
    with pytest.raises(ValueError):
        load_settings(colour='red')


def test_tests_never_see_the_real_home_config(tmp_path):
    assert config.USER_CONFIG == tmp_path / ".tubeterm.json"
    assert config.PROJECT_CONFIG == tmp_path / "config.json"
    assert load_settings() == Settings()


def test_file_values_are_converted_to_field_types(config_files):
    _, user = config_files
    user.write_text(json.dumps({'poll_interval_ms': "50", 'request_timeout': 5,
                                'audio_only': "true", 'search_pages': 2}))
    settings = load_settings()
    assert settings.poll_interval_ms == 50
    assert isinstance(settings.request_timeout, float) and settings.request_timeout == 5.0
    assert settings.audio_only is True
    assert settings.search_pages == 2


@pytest.mark.parametrize("key, value", [
    ('poll_interval_ms', "abc"),
    ('poll_interval_ms', True),
    ('audio_only', "yes"),
    ('audio_only', 1),
    ('player', 42),
    ('request_timeout', [10]),
])
def test_ill_typed_file_values_are_rejected(config_files, key, value):
    _, user = config_files
    user.write_text(json.dumps({key: value}))
    with pytest.raises(ValueError):
        load_settings()


def test_ill_typed_override_is_rejected(config_files):
    with pytest.raises(ValueError):
        load_settings(search_pages="many")
