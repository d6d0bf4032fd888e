"""MCP tool implementations for SSH operations.

This module defines the tool functions that are registered with FastMCP.
Each tool validates its arguments with a pydantic input model before any
state is touched, calls into SSHManager, and turns errors into a failure
result carrying the error code and message instead of raising.
"""

import logging
from typing import Annotated, Any, Optional

from pydantic import ValidationError

from . import docker
from .exceptions import SshMcpError
from .manager import SSHManager
from .models import (
    ConnectInput,
    ConnectOutput,
    ConnectWithCredentialInput,
    ConnectionIdInput,
    CopyFileInput,
    CredentialIdInput,
    CredentialListOutput,
    DockerDeployInput,
    DockerStatusInput,
    DockerStatusOutput,
    ExecuteInput,
    ExecuteOutput,
    FileInfoInput,
    FileInfoOutput,
    ListFilesInput,
    ListFilesOutput,
    ReadOutputInput,
    ReadOutputOutput,
    SaveCredentialInput,
    SendInputInput,
    SessionIdInput,
    SessionListOutput,
    SetWorkingDirectoryInput,
    StartShellInput,
    StatusOutput,
    WorkingDirectoryOutput,
)

logger = logging.getLogger(__name__)


def error_fields(e: Exception) -> dict[str, Any]:
    """Map an exception to the error/message fields of a failure result."""
    if isinstance(e, ValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        return {"error": "InvalidParams", "message": f"Invalid parameters: {details}"}
    if isinstance(e, SshMcpError):
        return {"error": e.code, "message": str(e)}
    logger.exception(f"Unexpected tool error: {e}")
    return {"error": "InternalError", "message": f"Unexpected error: {e}"}


# ============================================================================
# Connections
# ============================================================================

async def ssh_connect(
    host: Annotated[str, "SSH server hostname or IP address"],
    username: Annotated[str, "SSH username"],
    connection_id: Annotated[str, "Unique identifier for this connection"],
    port: Annotated[int, "SSH port number"] = 22,
    password: Annotated[Optional[str], "SSH password (if not using key)"] = None,
    private_key_path: Annotated[Optional[str], "Path to private key file"] = None,
    passphrase: Annotated[Optional[str], "Passphrase for private key"] = None,
) -> ConnectOutput:
    """Open an SSH connection and register it under connection_id.

    Exactly one of password or private_key_path must be given.

    Examples:
        - ssh_connect("10.0.0.5", "deploy", "web1", password="...")
        - ssh_connect("build.example.com", "ci", "ci", private_key_path="~/.ssh/id_ed25519")
    """
    manager = SSHManager.get_instance()

    try:
        params = ConnectInput(
            host=host,
            port=port,
            username=username,
            password=password,
            private_key_path=private_key_path,
            passphrase=passphrase,
            connection_id=connection_id,
        )
        connection = await manager.connections.open(params.connection_id, params.to_params())
    except Exception as e:
        return ConnectOutput(success=False, connection_id=connection_id, **error_fields(e))

    return ConnectOutput(
        success=True,
        message=(
            f"Successfully connected to {connection.host}:{connection.port} as "
            f"{connection.username} (Connection ID: {connection.connection_id})"
        ),
        connection_id=connection.connection_id,
        host=connection.host,
        port=connection.port,
        username=connection.username,
    )


async def ssh_disconnect(
    connection_id: Annotated[str, "Connection ID to disconnect"],
) -> StatusOutput:
    """Close an SSH connection. Sessions on it become inactive."""
    manager = SSHManager.get_instance()

    try:
        params = ConnectionIdInput(connection_id=connection_id)
        await manager.disconnect(params.connection_id)
    except Exception as e:
        return StatusOutput(success=False, **error_fields(e))

    return StatusOutput(success=True, message=f"Disconnected from {connection_id}")


async def ssh_execute(
    connection_id: Annotated[str, "SSH connection ID"],
    command: Annotated[str, "Command to execute on remote server"],
    cwd: Annotated[Optional[str], "Working directory for command execution"] = None,
) -> ExecuteOutput:
    """Execute a command on a remote server.

    The exit code is passed through untouched; success only reports whether
    the command could be run. cwd is not filled in from the connection's
    working directory.
    """
    manager = SSHManager.get_instance()

    try:
        params = ExecuteInput(connection_id=connection_id, command=command, cwd=cwd)
        result = await manager.connections.execute(
            params.connection_id, params.command, cwd=params.cwd
        )
    except Exception as e:
        return ExecuteOutput(success=False, command=command, **error_fields(e))

    return ExecuteOutput(
        success=True,
        message=f"Command finished with exit code {result.exit_code}",
        command=command,
        exit_code=result.exit_code,
        stdout=result.stdout,
        stderr=result.stderr,
    )


async def ssh_set_working_directory(
    connection_id: Annotated[str, "SSH connection ID"],
    working_directory: Annotated[str, "Working directory path to set as current"],
) -> WorkingDirectoryOutput:
    """Set the working directory of a connection after checking it exists."""
    manager = SSHManager.get_instance()

    try:
        params = SetWorkingDirectoryInput(
            connection_id=connection_id, working_directory=working_directory
        )
        cwd = await manager.connections.set_working_directory(
            params.connection_id, params.working_directory
        )
    except Exception as e:
        return WorkingDirectoryOutput(
            success=False, connection_id=connection_id, **error_fields(e)
        )

    return WorkingDirectoryOutput(
        success=True,
        message=f"Working directory set to: {cwd}",
        connection_id=connection_id,
        cwd=cwd,
    )


async def ssh_get_working_directory(
    connection_id: Annotated[str, "SSH connection ID"],
) -> WorkingDirectoryOutput:
    """Get the working directory of a connection."""
    manager = SSHManager.get_instance()

    try:
        params = ConnectionIdInput(connection_id=connection_id)
        cwd = await manager.connections.get_working_directory(params.connection_id)
    except Exception as e:
        return WorkingDirectoryOutput(
            success=False, connection_id=connection_id, **error_fields(e)
        )

    return WorkingDirectoryOutput(
        success=True,
        message=f"Current working directory: {cwd}",
        connection_id=connection_id,
        cwd=cwd,
    )


# ============================================================================
# Files
# ============================================================================

async def ssh_copy_file(
    source_connection_id: Annotated[str, 'Source connection ID ("local" for local files)'],
    source_path: Annotated[str, "Source file path"],
    target_connection_id: Annotated[str, 'Target connection ID ("local" for local files)'],
    target_path: Annotated[str, "Target file path"],
    create_directories: Annotated[bool, "Create target directories"] = True,
) -> StatusOutput:
    """Copy a file local<->remote, remote<->remote or local->local."""
    manager = SSHManager.get_instance()

    try:
        params = CopyFileInput(
            source_connection_id=source_connection_id,
            source_path=source_path,
            target_connection_id=target_connection_id,
            target_path=target_path,
            create_directories=create_directories,
        )
        message = await manager.files.copy_file(
            params.source_connection_id,
            params.source_path,
            params.target_connection_id,
            params.target_path,
            create_directories=params.create_directories,
        )
    except Exception as e:
        return StatusOutput(success=False, **error_fields(e))

    return StatusOutput(success=True, message=message)


async def ssh_list_files(
    connection_id: Annotated[str, 'SSH connection ID ("local" for local files)'],
    remote_path: Annotated[str, "Directory path to list"],
    show_hidden: Annotated[bool, "Show hidden files"] = False,
) -> ListFilesOutput:
    """List a directory on a remote server or locally."""
    manager = SSHManager.get_instance()

    try:
        params = ListFilesInput(
            connection_id=connection_id, remote_path=remote_path, show_hidden=show_hidden
        )
        listing = await manager.files.list_files(
            params.connection_id, params.remote_path, show_hidden=params.show_hidden
        )
    except Exception as e:
        return ListFilesOutput(success=False, path=remote_path, **error_fields(e))

    return ListFilesOutput(
        success=True,
        message=f"Files in {connection_id}:{remote_path}",
        path=listing.path,
        entries=listing.entries,
        listing=listing.raw,
    )


async def ssh_file_info(
    connection_id: Annotated[str, 'SSH connection ID ("local" for local files)'],
    file_path: Annotated[str, "File path to get info for"],
) -> FileInfoOutput:
    """Get file information (size, permissions, timestamps)."""
    manager = SSHManager.get_instance()

    try:
        params = FileInfoInput(connection_id=connection_id, file_path=file_path)
        info = await manager.files.file_info(params.connection_id, params.file_path)
    except Exception as e:
        return FileInfoOutput(success=False, path=file_path, **error_fields(e))

    return FileInfoOutput(
        success=True,
        message=f"File info for {connection_id}:{file_path}",
        path=info.path,
        info=info.info,
        stat=info.raw,
    )


# ============================================================================
# Interactive shells
# ============================================================================

async def ssh_start_interactive_shell(
    connection_id: Annotated[str, "SSH connection ID"],
    session_id: Annotated[str, "Unique identifier for this interactive session"],
    shell: Annotated[str, "Shell to use (e.g., /bin/bash, /bin/zsh)"] = "/bin/bash",
    cols: Annotated[int, "Terminal columns"] = 80,
    rows: Annotated[int, "Terminal rows"] = 24,
) -> StatusOutput:
    """Start an interactive shell session with a pseudo-terminal."""
    manager = SSHManager.get_instance()

    try:
        params = StartShellInput(
            connection_id=connection_id,
            session_id=session_id,
            shell=shell,
            cols=cols,
            rows=rows,
        )
        session = await manager.sessions.start(
            params.session_id,
            params.connection_id,
            shell=params.shell,
            cols=params.cols,
            rows=params.rows,
        )
    except Exception as e:
        return StatusOutput(success=False, **error_fields(e))

    return StatusOutput(
        success=True,
        message=(
            f"Interactive shell session '{session.session_id}' started successfully\n"
            f"Shell: {session.shell}\nTerminal: {session.cols}x{session.rows}"
        ),
    )


async def ssh_send_input(
    session_id: Annotated[str, "Interactive session ID"],
    input: Annotated[str, "Input to send to the shell"],
    simulate_typing: Annotated[bool, "Simulate human typing with delays"] = False,
) -> StatusOutput:
    """Send input to an interactive shell, optionally paced like a human."""
    manager = SSHManager.get_instance()

    try:
        params = SendInputInput(
            session_id=session_id, input=input, simulate_typing=simulate_typing
        )
        await manager.sessions.send_input(
            params.session_id, params.input, simulate_typing=params.simulate_typing
        )
    except Exception as e:
        return StatusOutput(success=False, **error_fields(e))

    # The input itself is not echoed back; it may be a password.
    suffix = " (with typing simulation)" if simulate_typing else ""
    return StatusOutput(
        success=True,
        message=f"Sent {len(input)} character(s) to session '{session_id}'{suffix}",
    )


async def ssh_read_output(
    session_id: Annotated[str, "Interactive session ID"],
    timeout: Annotated[int, "Timeout in milliseconds to wait for output"] = 5000,
    clear_buffer: Annotated[bool, "Clear the output buffer after reading"] = True,
) -> ReadOutputOutput:
    """Read buffered output, waiting up to timeout ms if nothing is buffered."""
    manager = SSHManager.get_instance()

    try:
        params = ReadOutputInput(
            session_id=session_id, timeout=timeout, clear_buffer=clear_buffer
        )
        session = manager.sessions.get(params.session_id)
        output = await manager.sessions.read_output(
            params.session_id, timeout_ms=params.timeout, clear_buffer=params.clear_buffer
        )
    except Exception as e:
        return ReadOutputOutput(success=False, session_id=session_id, **error_fields(e))

    return ReadOutputOutput(
        success=True,
        message=f"Output from session '{session_id}'",
        session_id=session_id,
        output=output,
        active=session.is_active,
    )


async def ssh_close_interactive_shell(
    session_id: Annotated[str, "Interactive session ID to close"],
) -> StatusOutput:
    """Close an interactive shell session."""
    manager = SSHManager.get_instance()

    try:
        params = SessionIdInput(session_id=session_id)
        await manager.sessions.close(params.session_id)
    except Exception as e:
        return StatusOutput(success=False, **error_fields(e))

    return StatusOutput(
        success=True,
        message=f"Interactive shell session '{session_id}' closed successfully",
    )


async def ssh_list_sessions() -> SessionListOutput:
    """List interactive sessions and their states."""
    manager = SSHManager.get_instance()
    sessions = manager.sessions.list_sessions()
    return SessionListOutput(
        success=True,
        message=f"{len(sessions)} interactive session(s)",
        sessions=sessions,
    )


# ============================================================================
# Credentials
# ============================================================================

async def ssh_save_credential(
    credential_id: Annotated[str, "Unique identifier for this credential"],
    host: Annotated[str, "SSH server hostname or IP address"],
    username: Annotated[str, "SSH username"],
    port: Annotated[int, "SSH port number"] = 22,
    password: Annotated[Optional[str], "SSH password (if not using key)"] = None,
    private_key_path: Annotated[Optional[str], "Path to private key file"] = None,
    passphrase: Annotated[Optional[str], "Passphrase for private key"] = None,
) -> StatusOutput:
    """Save SSH credentials in memory for reuse."""
    manager = SSHManager.get_instance()

    try:
        params = SaveCredentialInput(
            credential_id=credential_id,
            host=host,
            port=port,
            username=username,
            password=password,
            private_key_path=private_key_path,
            passphrase=passphrase,
        )
        credential = await manager.credentials.save(params.credential_id, params.to_params())
    except Exception as e:
        return StatusOutput(success=False, **error_fields(e))

    return StatusOutput(
        success=True,
        message=(
            f"Credential '{credential.credential_id}' saved successfully for "
            f"{credential.params.describe()}"
        ),
    )


async def ssh_list_credentials() -> CredentialListOutput:
    """List saved credentials. Secrets are reported only as has_password/has_private_key."""
    manager = SSHManager.get_instance()
    credentials = manager.credentials.list_credentials()

    if not credentials:
        message = "No saved credentials found"
    else:
        lines = [
            f"- {c['credential_id']}: {c['username']}@{c['host']}:{c['port']} "
            f"({'password' if c['has_password'] else 'key'}) - Last used: {c['last_used']}"
            for c in credentials
        ]
        message = "Saved credentials:\n" + "\n".join(lines)

    return CredentialListOutput(success=True, message=message, credentials=credentials)


async def ssh_delete_credential(
    credential_id: Annotated[str, "Credential ID to delete"],
) -> StatusOutput:
    """Delete a saved credential."""
    manager = SSHManager.get_instance()

    try:
        params = CredentialIdInput(credential_id=credential_id)
        credential = await manager.credentials.delete(params.credential_id)
    except Exception as e:
        return StatusOutput(success=False, **error_fields(e))

    return StatusOutput(
        success=True,
        message=(
            f"Credential '{credential_id}' ({credential.params.username}@"
            f"{credential.params.host}) deleted successfully"
        ),
    )


async def ssh_connect_with_credential(
    credential_id: Annotated[str, "Stored credential ID to use"],
    connection_id: Annotated[str, "Unique identifier for this connection"],
) -> ConnectOutput:
    """Open a connection using a saved credential."""
    manager = SSHManager.get_instance()

    try:
        params = ConnectWithCredentialInput(
            credential_id=credential_id, connection_id=connection_id
        )
        connection = await manager.credentials.connect_using(
            params.credential_id, params.connection_id, manager.connections
        )
    except Exception as e:
        return ConnectOutput(success=False, connection_id=connection_id, **error_fields(e))

    return ConnectOutput(
        success=True,
        message=(
            f"Successfully connected to {connection.host}:{connection.port} as "
            f"{connection.username} using saved credential '{credential_id}' "
            f"(Connection ID: {connection_id})"
        ),
        connection_id=connection_id,
        host=connection.host,
        port=connection.port,
        username=connection.username,
    )


# ============================================================================
# Docker
# ============================================================================

async def ssh_docker_deploy(
    connection_id: Annotated[str, "SSH connection ID"],
    working_directory: Annotated[str, "Directory containing docker-compose.yml or Dockerfile"],
    deployment_type: Annotated[str, "compose, build or run"],
    image_name: Annotated[Optional[str], "Docker image name (for build/run)"] = None,
    container_name: Annotated[Optional[str], "Container name (for run)"] = None,
    compose_file: Annotated[str, "Docker compose file name"] = "docker-compose.yml",
    build_args: Annotated[Optional[dict[str, str]], "Build arguments"] = None,
    env_vars: Annotated[Optional[dict[str, str]], "Environment variables"] = None,
    ports: Annotated[Optional[list[str]], "Port mappings"] = None,
    volumes: Annotated[Optional[list[str]], "Volume mappings"] = None,
    detached: Annotated[bool, "Run in detached mode"] = True,
) -> ExecuteOutput:
    """Deploy with docker-compose, docker build or docker run."""
    manager = SSHManager.get_instance()

    try:
        params = DockerDeployInput(
            connection_id=connection_id,
            working_directory=working_directory,
            deployment_type=deployment_type,
            image_name=image_name,
            container_name=container_name,
            compose_file=compose_file,
            build_args=build_args,
            env_vars=env_vars,
            ports=ports,
            volumes=volumes,
            detached=detached,
        )
        command, result = await docker.deploy(
            manager.connections,
            params.connection_id,
            params.working_directory,
            params.deployment_type,
            image_name=params.image_name,
            container_name=params.container_name,
            compose_file=params.compose_file,
            build_args=params.build_args,
            env_vars=params.env_vars,
            ports=params.ports,
            volumes=params.volumes,
            detached=params.detached,
        )
    except Exception as e:
        return ExecuteOutput(success=False, command="", **error_fields(e))

    return ExecuteOutput(
        success=True,
        message=f"Docker {deployment_type} deployment finished with exit code {result.exit_code}",
        command=command,
        exit_code=result.exit_code,
        stdout=result.stdout,
        stderr=result.stderr,
    )


async def ssh_docker_status(
    connection_id: Annotated[str, "SSH connection ID"],
    working_directory: Annotated[Optional[str], "Working directory (defaults to current)"] = None,
) -> DockerStatusOutput:
    """Show container status and, in a known directory, docker-compose status."""
    manager = SSHManager.get_instance()

    try:
        params = DockerStatusInput(
            connection_id=connection_id, working_directory=working_directory
        )
        report = await docker.status(
            manager.connections, params.connection_id, params.working_directory
        )
    except Exception as e:
        return DockerStatusOutput(success=False, **error_fields(e))

    return DockerStatusOutput(
        success=True,
        message=f"Docker Status ({report.working_directory or 'current directory'})",
        working_directory=report.working_directory,
        containers=report.containers,
        compose=report.compose,
    )
