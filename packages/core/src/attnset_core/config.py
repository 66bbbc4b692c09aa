import os
from pathlib import Path
from typing import Optional

import yaml

from attnset_core.threads import THREAD_MODES

DEFAULT_CONFIG: dict = {
    "enable_attention_set": True,
    "thread_participants": "ancestors",  # "ancestors" = path to the root only, "thread" = whole tree
    "service_accounts": [],
    "service_account_domains": [],  # e.g. "ci.example.com" marks every account at that domain as a robot
    "store": "memory",
    "store_path": ".attnset.db",
    "gist_id": None,
}

_FALSE_VALUES = {"0", "false", "no", "off"}


def load_config(config_path: str = ".attnset.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .attnset.yml in the current directory
      3. CLI argument overrides
    """
    config = {
        **DEFAULT_CONFIG,
        "service_accounts": list(DEFAULT_CONFIG["service_accounts"]),
        "service_account_domains": list(DEFAULT_CONFIG["service_account_domains"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # The environment can switch the feature off without editing the file.
    enable_env = os.environ.get("ATTNSET_ENABLE")
    if enable_env is not None:
        config["enable_attention_set"] = enable_env.strip().lower() not in _FALSE_VALUES

    if config["thread_participants"] not in THREAD_MODES:
        raise ValueError(
            f"Unknown thread_participants: {config['thread_participants']!r}. Choose 'ancestors' or 'thread'."
        )

    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config
