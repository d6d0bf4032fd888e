"""SSH MCP Server.

Provides MCP tools for SSH connections, remote command execution, file
copying and interactive shell sessions, all addressed by caller-chosen ids.

Usage:
    python -m ssh_mcp              # Run via module
    ssh-mcp                        # Console script

Environment Variables:
    SSH_MCP_CONNECT_TIMEOUT: SSH connect timeout in seconds (default: 30.0)
    SSH_MCP_KNOWN_HOSTS: known_hosts file (default: host keys not checked)
    SSH_MCP_TYPING_DELAY_MIN_MS / SSH_MCP_TYPING_DELAY_MAX_MS: typing pace window
    SSH_MCP_STAGING_DIR: Directory for remote-to-remote staging files
    SSH_MCP_LOG_LEVEL: Log level (default: INFO)
"""

import logging
import signal
import sys
from contextlib import asynccontextmanager
from typing import Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from . import tools
from .config import SSHMCPConfig, configure_logging, get_config
from .exceptions import ConfigurationError
from .manager import SSHManager

logger = logging.getLogger(__name__)

# (tool function, title, read-only, destructive, idempotent)
TOOL_TABLE = [
    (tools.ssh_connect, "Connect to SSH Server", False, False, False),
    (tools.ssh_disconnect, "Disconnect SSH Connection", False, True, False),
    (tools.ssh_execute, "Execute Remote Command", False, True, False),
    (tools.ssh_copy_file, "Copy File", False, True, True),
    (tools.ssh_list_files, "List Files", True, False, True),
    (tools.ssh_file_info, "File Info", True, False, True),
    (tools.ssh_start_interactive_shell, "Start Interactive Shell", False, False, False),
    (tools.ssh_send_input, "Send Shell Input", False, True, False),
    (tools.ssh_read_output, "Read Shell Output", False, False, False),
    (tools.ssh_close_interactive_shell, "Close Interactive Shell", False, True, False),
    (tools.ssh_list_sessions, "List Interactive Sessions", True, False, True),
    (tools.ssh_save_credential, "Save Credential", False, False, False),
    (tools.ssh_list_credentials, "List Credentials", True, False, True),
    (tools.ssh_delete_credential, "Delete Credential", False, True, False),
    (tools.ssh_connect_with_credential, "Connect With Saved Credential", False, False, False),
    (tools.ssh_set_working_directory, "Set Working Directory", False, False, True),
    (tools.ssh_get_working_directory, "Get Working Directory", True, False, True),
    (tools.ssh_docker_deploy, "Docker Deploy", False, True, False),
    (tools.ssh_docker_status, "Docker Status", True, False, True),
]


@asynccontextmanager
async def lifespan(server: FastMCP):
    """Close every session and connection when the server stops."""
    manager = SSHManager.get_instance()
    logger.info(f"{server.name} started")
    try:
        yield {"manager": manager}
    finally:
        await manager.shutdown()


def create_server(config: Optional[SSHMCPConfig] = None) -> FastMCP:
    """Create and configure the MCP server.

    Returns:
        Configured FastMCP server instance
    """
    try:
        config = config or get_config()
        SSHManager.get_instance(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    mcp = FastMCP(name=config.server_name, lifespan=lifespan)

    for fn, title, read_only, destructive, idempotent in TOOL_TABLE:
        mcp.tool(
            name=fn.__name__,
            annotations=ToolAnnotations(
                title=title,
                readOnlyHint=read_only,
                destructiveHint=destructive,
                idempotentHint=idempotent,
                openWorldHint=True,
            ),
        )(fn)

    return mcp


def _terminate(signum, frame):
    """Re-raise SIGTERM as SIGINT so it takes the Ctrl-C shutdown path."""
    signal.raise_signal(signal.SIGINT)


def install_signal_handlers() -> None:
    signal.signal(signal.SIGTERM, _terminate)


def main():
    """Run the MCP server over stdio."""
    try:
        config = get_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.log_level)
    mcp = create_server(config)
    install_signal_handlers()
    logger.info(f"{config.server_name} {config.server_version} running on stdio")
    mcp.run()

