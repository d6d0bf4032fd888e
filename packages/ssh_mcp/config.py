"""Configuration for ssh-mcp server."""

import logging
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import __version__
from .exceptions import ConfigurationError


@dataclass
class SSHMCPConfig:
    """Configuration for the MCP server."""
    # Server identification
    server_name: str = "ssh-mcp-server"
    server_version: str = __version__

    # SSH transport
    connect_timeout: float = 30.0
    known_hosts_path: Optional[Path] = None
    term_type: str = "xterm-256color"

    # Typing simulation window in milliseconds
    typing_delay_min_ms: float = 50.0
    typing_delay_max_ms: float = 150.0

    # File transfer
    staging_dir: Path = Path(tempfile.gettempdir())
    local_ref: str = "local"

    log_level: str = "INFO"

    @property
    def typing_delay_window(self) -> tuple:
        """Typing delay window in seconds as (low, high)."""
        return (self.typing_delay_min_ms / 1000.0, self.typing_delay_max_ms / 1000.0)


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(
            f"{name} must be a number, got {raw!r}",
            missing_key=name
        )


def get_config() -> SSHMCPConfig:
    """Load configuration from environment.

    Optional environment variables:
        SSH_MCP_SERVER_NAME: Server name (default: ssh-mcp-server)
        SSH_MCP_VERSION: Server version (default: package version)
        SSH_MCP_CONNECT_TIMEOUT: SSH connect timeout in seconds (default: 30.0)
        SSH_MCP_KNOWN_HOSTS: known_hosts file; unset disables host key checks
        SSH_MCP_TERM_TYPE: Terminal type for interactive shells (default: xterm-256color)
        SSH_MCP_TYPING_DELAY_MIN_MS: Lower typing delay bound (default: 50)
        SSH_MCP_TYPING_DELAY_MAX_MS: Upper typing delay bound (default: 150)
        SSH_MCP_STAGING_DIR: Directory for remote-to-remote staging files
        SSH_MCP_LOCAL_REF: Connection id that designates the local filesystem (default: local)
        SSH_MCP_LOG_LEVEL: Log level (default: INFO)

    Returns:
        SSHMCPConfig with loaded values

    Raises:
        ConfigurationError: If a value cannot be parsed
    """
    # Load .env file if it exists
    env_file = Path(__file__).parent / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    # Also try parent directory .env
    parent_env = Path(__file__).parent.parent / ".env"
    if parent_env.exists():
        load_dotenv(parent_env)

    known_hosts = os.getenv("SSH_MCP_KNOWN_HOSTS")
    staging_dir = os.getenv("SSH_MCP_STAGING_DIR")

    config = SSHMCPConfig(
        server_name=os.getenv("SSH_MCP_SERVER_NAME", "ssh-mcp-server"),
        server_version=os.getenv("SSH_MCP_VERSION", __version__),
        connect_timeout=_read_float("SSH_MCP_CONNECT_TIMEOUT", "30.0"),
        known_hosts_path=Path(known_hosts).expanduser() if known_hosts else None,
        term_type=os.getenv("SSH_MCP_TERM_TYPE", "xterm-256color"),
        typing_delay_min_ms=_read_float("SSH_MCP_TYPING_DELAY_MIN_MS", "50"),
        typing_delay_max_ms=_read_float("SSH_MCP_TYPING_DELAY_MAX_MS", "150"),
        staging_dir=Path(staging_dir).expanduser() if staging_dir else Path(tempfile.gettempdir()),
        local_ref=os.getenv("SSH_MCP_LOCAL_REF", "local"),
        log_level=os.getenv("SSH_MCP_LOG_LEVEL", "INFO").upper(),
    )

    if config.typing_delay_min_ms < 0 or config.typing_delay_max_ms < config.typing_delay_min_ms:
        raise ConfigurationError(
            "Typing delay window must satisfy 0 <= SSH_MCP_TYPING_DELAY_MIN_MS "
            f"<= SSH_MCP_TYPING_DELAY_MAX_MS (got {config.typing_delay_min_ms}, "
            f"{config.typing_delay_max_ms})",
            missing_key="SSH_MCP_TYPING_DELAY_MAX_MS"
        )

    return config


def validate_config(config: SSHMCPConfig) -> None:
    """Validate configuration paths exist.

    Args:
        config: The configuration to validate

    Raises:
        ConfigurationError: If required files or directories don't exist
    """
    if config.known_hosts_path is not None and not config.known_hosts_path.exists():
        raise ConfigurationError(
            f"known_hosts file not found at {config.known_hosts_path}. "
            "Unset SSH_MCP_KNOWN_HOSTS to disable host key checking.",
            missing_key="SSH_MCP_KNOWN_HOSTS"
        )

    if not config.staging_dir.is_dir():
        raise ConfigurationError(
            f"Staging directory not found at {config.staging_dir}.",
            missing_key="SSH_MCP_STAGING_DIR"
        )


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout carries the MCP stdio stream."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
