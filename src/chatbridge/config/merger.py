"""
Configuration merger for chatbridge.

Implements deep merge of layered configuration dictionaries.
"""

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Merge rules:
    - Scalar values: override replaces base
    - Dicts: recursive deep merge
    - Arrays: override replaces base
    - Arrays with '+' prefix key: append unique items to base array
    - null/None value: remove key from result

    Args:
        base: Base configuration dictionary.
        override: Override configuration dictionary.

    Returns:
        Merged configuration dictionary.

    Examples:
        >>> base = {"telegram": {"allowed_users": ["42"]}}
        >>> override = {"telegram": {"+allowed_users": ["@alice"]}}
        >>> deep_merge(base, override)
        {"telegram": {"allowed_users": ["42", "@alice"]}}
    """
    result = base.copy()

    for key, value in override.items():
        if key.startswith("+") and isinstance(value, list):
            actual_key = key[1:]
            existing = result.get(actual_key)
            if isinstance(existing, list):
                result[actual_key] = existing + [item for item in value if item not in existing]
            else:
                result[actual_key] = value

        elif value is None:
            result.pop(key, None)

        elif isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)

        else:
            result[key] = value

    return result


def set_nested_value(config: dict[str, Any], key_path: str, value: Any) -> dict[str, Any]:
    """
    Set a nested value in a configuration dictionary.

    Creates intermediate dictionaries as needed.

    Args:
        config: Configuration dictionary.
        key_path: Dot-separated key path (e.g., "platforms.telegram.enable").
        value: Value to set.

    Returns:
        Modified configuration dictionary.
    """
    keys = key_path.split(".")
    current = config

    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value
    return config
