"""
Configuration defaults with PROGRESS_PORT_<NAME> environment overrides.
"""

import os

ENV_PREFIX = 'PROGRESS_PORT_'

DEFAULTS = {
    'SECRET_KEY': 'progress-port-dev',
    'MAX_CONTENT_LENGTH': 10 * 1024 * 1024,  # 10 MB max upload
    'PAGE_SIZE': 50,
    'SAMPLE_PROJECTS': 20,
    'SAMPLE_INTERNSHIPS': 40,
    'LOG_LEVEL': 'INFO',
}


def load_config(overrides=None, environ=None):
    """
    Build the config dict: defaults, then environment, then explicit overrides.

    Environment values are coerced to the type of the default so that
    PROGRESS_PORT_PAGE_SIZE=25 yields an int.
    """
    environ = os.environ if environ is None else environ
    config = dict(DEFAULTS)
    for key, default in DEFAULTS.items():
        raw = environ.get(ENV_PREFIX + key)
        if raw is None or raw == '':
            continue
        if isinstance(default, int):
            try:
                config[key] = int(raw)
            except ValueError:
                raise ValueError(f"{ENV_PREFIX}{key} must be an integer, got {raw!r}")
        else:
            config[key] = raw
    if overrides:
        config.update(overrides)
    return config
