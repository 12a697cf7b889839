import json
from dataclasses import dataclass, fields
from pathlib import Path

# Project config (shipped defaults) - next to the code
PROJECT_CONFIG = Path(__file__).parent / 'config.json'

# User config - hidden in home directory, overrides the project config
USER_CONFIG = Path.home() / '.tubeterm.json'


@dataclass
class Settings:
    backend: str = 'piped'
    api_url: str = 'https://pipedapi.kavin.rocks'
    region: str = 'US'
    player: str = 'mpv'
    audio_only: bool = False
    poll_interval_ms: int = 50
    request_timeout: float = 10.0
    search_pages: int = 3
    title_cache_size: int = 256


def _load_file(path):
    if path.exists():
        with open(path, 'r') as f:
            return json.load(f)
    return {}


def get_preference(key, default=None):
    user = _load_file(USER_CONFIG)
    if key in user:
        return user[key]
    return _load_file(PROJECT_CONFIG).get(key, default)


def _coerce(f, value):
    """Convert a config value to the type of its field, or raise ValueError."""
    if f.type in (bool, 'bool'):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ('true', 'false'):
            return value.lower() == 'true'
        raise ValueError(f"Setting '{f.name}' must be true or false, got {value!r}")
    if f.type in (int, 'int', float, 'float'):
        kind = float if f.type in (float, 'float') else int
        if isinstance(value, bool):
            raise ValueError(f"Setting '{f.name}' must be a number, got {value!r}")
        try:
            return kind(value)
        except (TypeError, ValueError):
            raise ValueError(f"Setting '{f.name}' must be a number, got {value!r}") from None
    if not isinstance(value, str):
        raise ValueError(f"Setting '{f.name}' must be a string, got {value!r}")
    return value


def load_settings(**overrides) -> Settings:
    """Resolve settings from defaults, then the config files, then overrides.

    Overrides whose value is None are ignored so argparse namespaces can be
    passed straight through. Values are converted to each field's type;
    anything that does not fit raises ValueError.
    """
    settings = Settings()
    known = {f.name: f for f in fields(Settings)}
    for name, f in known.items():
        value = get_preference(name)
        if value is not None:
            setattr(settings, name, _coerce(f, value))
    for key, value in overrides.items():
        if value is None:
            continue
        if key not in known:
            raise ValueError(f"Unknown setting: {key}")
        setattr(settings, key, _coerce(known[key], value))
    return settings
