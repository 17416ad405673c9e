import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "account": None,
    "display_locale": "en",
    "timeout": 30,  # seconds, for both connect and read
    "reply_enabled": True,
    "comments_page_size": 20,
}


def load_config(config_path: str = ".devconsole.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .devconsole.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # The account may come from the file, the password only from the environment.
    config["account"] = os.environ.get("DEVCONSOLE_ACCOUNT") or config.get("account")
    config["password"] = os.environ.get("DEVCONSOLE_PASSWORD")

    return config
