"""
Path utilities for chatbridge.

Provides consistent path resolution for configuration and data files.
"""

import os
from pathlib import Path


def get_chatbridge_home() -> Path:
    """
    Get the chatbridge home directory.

    Resolution order:
    1. CHATBRIDGE_HOME environment variable
    2. Default: ~/.chatbridge

    Returns:
        Path to the chatbridge home directory.
    """
    env_home = os.environ.get("CHATBRIDGE_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".chatbridge"


def get_global_config_path() -> Path:
    """
    Get the path to the global configuration file.

    Returns:
        Path to ~/.chatbridge/config.yaml
    """
    return get_chatbridge_home() / "config.yaml"


def get_audit_log_path() -> Path:
    """
    Get the default audit log path.

    Returns:
        Path to ~/.chatbridge/audit.jsonl
    """
    return get_chatbridge_home() / "audit.jsonl"
