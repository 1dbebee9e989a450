import os
from typing import Optional

DEFAULT_CONFIG: dict = {
    "app_id": None,
    "private_key": None,
    "webhook_secret": None,
    "bot_name": "discord-js-bot",
    "target_repo": "discordjs/discord.js",
    "workflow_id": "publish-dev.yml",
    "workflow_name": "Publish dev",
    "dispatch_branch": "main",
    "install_package": "discord.js",
    "record_ttl": 3600,
    "dispatch_grace_seconds": 5,
    "run_lookup_limit": 5,
    "store": "memory",  # memory | sqlite | gist
    "store_path": ".packbot.db",
    "gist_id": None,
    "gist_token": None,
    "log_level": "INFO",
}

# config key -> environment variable
_ENV_VARS: dict = {
    "app_id": "APP_ID",
    "private_key": "PRIVATE_KEY",
    "webhook_secret": "WEBHOOK_SECRET",
    "bot_name": "PACKBOT_BOT_NAME",
    "target_repo": "PACKBOT_TARGET_REPO",
    "workflow_id": "PACKBOT_WORKFLOW_ID",
    "workflow_name": "PACKBOT_WORKFLOW_NAME",
    "dispatch_branch": "PACKBOT_DISPATCH_BRANCH",
    "install_package": "PACKBOT_INSTALL_PACKAGE",
    "record_ttl": "PACKBOT_RECORD_TTL",
    "dispatch_grace_seconds": "PACKBOT_DISPATCH_GRACE",
    "run_lookup_limit": "PACKBOT_RUN_LOOKUP_LIMIT",
    "store": "PACKBOT_STORE",
    "store_path": "PACKBOT_STORE_PATH",
    "gist_id": "PACKBOT_GIST_ID",
    "gist_token": "PACKBOT_GIST_TOKEN",
    "log_level": "PACKBOT_LOG_LEVEL",
}

_INT_KEYS = ("record_ttl", "dispatch_grace_seconds", "run_lookup_limit")

REQUIRED_APP_SETTINGS = ("app_id", "private_key", "webhook_secret")


def load_config(overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. Environment variables
      3. Explicit overrides (CLI options); None values are ignored
    """
    config = dict(DEFAULT_CONFIG)

    for key, env_var in _ENV_VARS.items():
        value = os.environ.get(env_var)
        if value:
            config[key] = value

    # The Gist store can reuse the token GitHub Actions and gh users already have.
    if not config["gist_token"]:
        config["gist_token"] = os.environ.get("GITHUB_TOKEN")

    if overrides:
        for key, value in overrides.items():
            if value is not None:
                config[key] = value

    for key in _INT_KEYS:
        try:
            config[key] = int(config[key])
        except (TypeError, ValueError):
            raise ValueError(f"{_ENV_VARS[key]} must be an integer, got {config[key]!r}")

    if config["private_key"]:
        config["private_key"] = unescape_private_key(config["private_key"])

    return config


def unescape_private_key(value: str) -> str:
    """Turn the single-line form of a PEM key (literal ``\\n``) back into a multi-line key."""
    return value.replace("\\n", "\n")


def missing_app_settings(config: dict) -> list[str]:
    """Return the environment variable names of unset App credentials."""
    return [_ENV_VARS[key] for key in REQUIRED_APP_SETTINGS if not config.get(key)]


def trigger_phrase(config: dict) -> str:
    return f"@{config['bot_name']} pack this"
