import os
from collections import namedtuple

DEFAULT_PORT = 3030
DEFAULT_TIMEOUT = 5000

Config = namedtuple(
    "Config",
    ["golden_mode", "port", "timeout", "headless", "bundler"],
)


def _int_setting(environ, key, default):
    raw = environ.get(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"Warning: Invalid {key} '{raw}'. Using default ({default}).")
        return default


def load_config(environ=None):
    environ = os.environ if environ is None else environ

    if environ.get("SNAPSHOT_UPDATE"):
        golden_mode = "all"
    elif environ.get("SNAPSHOT_CI"):
        golden_mode = "none"
    else:
        golden_mode = "new"

    return Config(
        golden_mode=golden_mode,
        port=_int_setting(environ, "ROUNDTRIP_PORT", DEFAULT_PORT),
        timeout=_int_setting(environ, "ROUNDTRIP_TIMEOUT", DEFAULT_TIMEOUT),
        headless=not environ.get("ROUNDTRIP_HEADFUL"),
        bundler=environ.get("ROUNDTRIP_BUNDLER") or None,
    )
