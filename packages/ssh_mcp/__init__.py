"""SSH MCP Server.

Provides MCP tools for opening and multiplexing SSH connections, running
remote commands, copying files and driving interactive shell sessions,
all addressed by caller-chosen ids.

Connections, interactive sessions and saved credentials live in memory for
the lifetime of the server process and are closed on shutdown.
"""

__version__ = "1.0.0"
