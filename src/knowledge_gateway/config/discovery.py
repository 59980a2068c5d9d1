from pathlib import Path

from knowledge_gateway.core.system import get_gateway_config_dir


def find_toml_config_file() -> Path | None:
    """Find the TOML configuration file for the knowledge gateway.

    Searches in the following order:
    1. .knowledge_gateway.toml in current directory
    2. knowledge_gateway.toml in current directory
    3. config.toml in user config directory/knowledge_gateway/ (platform-specific)
    """
    candidates = [
        Path(".knowledge_gateway.toml").resolve(),
        Path("knowledge_gateway.toml").resolve(),
        get_gateway_config_dir() / "config.toml",
    ]

    for candidate in candidates:
        if candidate.exists() and candidate.is_file():
            return candidate

    return None
