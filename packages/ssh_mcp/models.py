"""Pydantic models for ssh-mcp tool input/output schemas."""

from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator

from .transport import ConnectionParams

_INPUT_CONFIG = ConfigDict(
    str_strip_whitespace=True,
    validate_assignment=True,
    extra='forbid'
)

# Secrets, commands and paths are passed through untouched; only ids and
# host names are stripped.
_VERBATIM_CONFIG = ConfigDict(
    validate_assignment=True,
    extra='forbid'
)

Identifier = Annotated[str, StringConstraints(strip_whitespace=True)]


class _AuthFields(BaseModel):
    """Host and authentication fields shared by connect and save-credential."""
    model_config = _VERBATIM_CONFIG

    host: Identifier = Field(
        ...,
        description="SSH server hostname or IP address",
        min_length=1,
        examples=["192.168.1.10", "build.example.com"]
    )
    port: int = Field(default=22, ge=1, le=65535, description="SSH port number")
    username: Identifier = Field(..., description="SSH username", min_length=1)
    password: Optional[str] = Field(
        default=None,
        description="SSH password (if not using key)"
    )
    private_key_path: Optional[str] = Field(
        default=None,
        description="Path to private key file",
        examples=["~/.ssh/id_ed25519"]
    )
    passphrase: Optional[str] = Field(
        default=None,
        description="Passphrase for private key"
    )

    @model_validator(mode="after")
    def _check_auth_method(self):
        if self.password and self.private_key_path:
            raise ValueError("Provide either password or private_key_path, not both")
        if not self.password and not self.private_key_path:
            raise ValueError("Either password or private_key_path must be provided")
        if self.passphrase and not self.private_key_path:
            raise ValueError("passphrase requires private_key_path")
        return self

    def to_params(self) -> ConnectionParams:
        return ConnectionParams(
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            private_key_path=self.private_key_path,
            passphrase=self.passphrase,
        )


class ConnectInput(_AuthFields):
    """Input for opening an SSH connection."""
    connection_id: Identifier = Field(
        ...,
        description="Unique identifier for this connection",
        min_length=1,
        max_length=256
    )


class SaveCredentialInput(_AuthFields):
    """Input for saving reusable SSH credentials."""
    credential_id: Identifier = Field(
        ...,
        description="Unique identifier for this credential",
        min_length=1,
        max_length=256
    )


class ConnectionIdInput(BaseModel):
    """Input naming a single connection."""
    model_config = _INPUT_CONFIG

    connection_id: str = Field(..., description="SSH connection ID", min_length=1)


class CredentialIdInput(BaseModel):
    """Input naming a single credential."""
    model_config = _INPUT_CONFIG

    credential_id: str = Field(..., description="Credential ID", min_length=1)


class SessionIdInput(BaseModel):
    """Input naming a single interactive session."""
    model_config = _INPUT_CONFIG

    session_id: str = Field(..., description="Interactive session ID", min_length=1)


class ConnectWithCredentialInput(BaseModel):
    """Input for connecting with a saved credential."""
    model_config = _INPUT_CONFIG

    credential_id: str = Field(..., description="Stored credential ID to use", min_length=1)
    connection_id: str = Field(
        ...,
        description="Unique identifier for this connection",
        min_length=1,
        max_length=256
    )


class ExecuteInput(BaseModel):
    """Input for remote command execution."""
    model_config = _VERBATIM_CONFIG

    connection_id: Identifier = Field(..., description="SSH connection ID", min_length=1)
    command: str = Field(
        ...,
        description="Command to execute on remote server",
        min_length=1,
        examples=["ls -la", "uname -a"]
    )
    cwd: Optional[str] = Field(
        default=None,
        description="Working directory for command execution. Not taken from the "
                    "connection's working directory unless passed explicitly."
    )


class CopyFileInput(BaseModel):
    """Input for copying a file between hosts."""
    model_config = _VERBATIM_CONFIG

    source_connection_id: Identifier = Field(
        ...,
        description='Source SSH connection ID (use "local" for local files)',
        min_length=1
    )
    source_path: str = Field(..., description="Source file path", min_length=1)
    target_connection_id: Identifier = Field(
        ...,
        description='Target SSH connection ID (use "local" for local files)',
        min_length=1
    )
    target_path: str = Field(..., description="Target file path", min_length=1)
    create_directories: bool = Field(
        default=True,
        description="Create target directories if they don't exist"
    )


class ListFilesInput(BaseModel):
    """Input for listing a directory."""
    model_config = _VERBATIM_CONFIG

    connection_id: Identifier = Field(
        ...,
        description='SSH connection ID (use "local" for local files)',
        min_length=1
    )
    remote_path: str = Field(..., description="Directory path to list", min_length=1)
    show_hidden: bool = Field(default=False, description="Show hidden files")


class FileInfoInput(BaseModel):
    """Input for file metadata."""
    model_config = _VERBATIM_CONFIG

    connection_id: Identifier = Field(
        ...,
        description='SSH connection ID (use "local" for local files)',
        min_length=1
    )
    file_path: str = Field(..., description="File path to get info for", min_length=1)


class StartShellInput(BaseModel):
    """Input for starting an interactive shell."""
    model_config = _INPUT_CONFIG

    connection_id: str = Field(..., description="SSH connection ID", min_length=1)
    session_id: str = Field(
        ...,
        description="Unique identifier for this interactive session",
        min_length=1,
        max_length=256
    )
    shell: str = Field(
        default="/bin/bash",
        description="Shell to use (e.g., /bin/bash, /bin/zsh)",
        min_length=1
    )
    cols: int = Field(default=80, ge=1, le=1000, description="Terminal columns")
    rows: int = Field(default=24, ge=1, le=1000, description="Terminal rows")


class SendInputInput(BaseModel):
    """Input for writing to an interactive shell."""
    model_config = _VERBATIM_CONFIG

    session_id: Identifier = Field(..., description="Interactive session ID", min_length=1)
    input: str = Field(..., description="Input to send to the shell (sent verbatim)")
    simulate_typing: bool = Field(
        default=False,
        description="Simulate human typing with delays"
    )


class ReadOutputInput(BaseModel):
    """Input for reading interactive shell output."""
    model_config = _INPUT_CONFIG

    session_id: str = Field(..., description="Interactive session ID", min_length=1)
    timeout: int = Field(
        default=5000,
        ge=0,
        le=600000,
        description="Timeout in milliseconds to wait for output"
    )
    clear_buffer: bool = Field(
        default=True,
        description="Clear the output buffer after reading"
    )


class SetWorkingDirectoryInput(BaseModel):
    """Input for setting a connection's working directory."""
    model_config = _VERBATIM_CONFIG

    connection_id: Identifier = Field(..., description="SSH connection ID", min_length=1)
    working_directory: str = Field(
        ...,
        description="Working directory path to set as current",
        min_length=1
    )


class DockerDeployInput(BaseModel):
    """Input for a Docker deployment."""
    model_config = _VERBATIM_CONFIG

    connection_id: Identifier = Field(..., description="SSH connection ID", min_length=1)
    working_directory: str = Field(
        ...,
        description="Directory containing docker-compose.yml or Dockerfile",
        min_length=1
    )
    deployment_type: Literal["compose", "build", "run"] = Field(
        ...,
        description="Type of Docker deployment"
    )
    image_name: Optional[str] = Field(default=None, description="Docker image name (for build/run)")
    container_name: Optional[str] = Field(default=None, description="Container name (for run)")
    compose_file: str = Field(default="docker-compose.yml", description="Docker compose file name")
    build_args: Optional[dict[str, str]] = Field(default=None, description="Build arguments")
    env_vars: Optional[dict[str, str]] = Field(default=None, description="Environment variables")
    ports: Optional[list[str]] = Field(default=None, description='Port mappings (e.g., ["8080:80"])')
    volumes: Optional[list[str]] = Field(default=None, description="Volume mappings")
    detached: bool = Field(default=True, description="Run in detached mode")

    @model_validator(mode="after")
    def _check_image(self):
        if self.deployment_type in ("build", "run") and not self.image_name:
            raise ValueError(f"image_name is required for {self.deployment_type} deployment type")
        return self


class DockerStatusInput(BaseModel):
    """Input for Docker status."""
    model_config = _VERBATIM_CONFIG

    connection_id: Identifier = Field(..., description="SSH connection ID", min_length=1)
    working_directory: Optional[str] = Field(
        default=None,
        description="Working directory to check (defaults to current)"
    )


# ----------------------------------------------------------------------------
# Outputs
# ----------------------------------------------------------------------------

class StatusOutput(BaseModel):
    """Generic result of a tool call."""
    success: bool = Field(description="Whether the operation succeeded")
    message: str = Field(description="Status message")
    error: Optional[str] = Field(
        default=None,
        description="Error code when success is false (NotFound, AlreadyExists, ...)"
    )


class ConnectOutput(StatusOutput):
    """Result of opening a connection."""
    connection_id: str = Field(description="Connection ID")
    host: Optional[str] = Field(default=None, description="Remote host")
    port: Optional[int] = Field(default=None, description="Remote port")
    username: Optional[str] = Field(default=None, description="Remote user")


class ExecuteOutput(StatusOutput):
    """Result of a remote command."""
    command: str = Field(description="Command that was run")
    exit_code: Optional[int] = Field(default=None, description="Exit code of the command")
    stdout: str = Field(default="", description="Standard output from the command")
    stderr: str = Field(default="", description="Standard error from the command")


class ListFilesOutput(StatusOutput):
    """Directory listing."""
    path: str = Field(description="Listed path")
    entries: Optional[list[dict[str, Any]]] = Field(
        default=None,
        description="Entries with name/type/path (local listings)"
    )
    listing: Optional[str] = Field(default=None, description="ls output (remote listings)")


class FileInfoOutput(StatusOutput):
    """File metadata."""
    path: str = Field(description="Inspected path")
    info: Optional[dict[str, Any]] = Field(default=None, description="Stat fields (local files)")
    stat: Optional[str] = Field(default=None, description="stat output (remote files)")


class ReadOutputOutput(StatusOutput):
    """Buffered output of an interactive session."""
    session_id: str = Field(description="Interactive session ID")
    output: str = Field(default="", description="Buffered text; empty on timeout")
    active: bool = Field(default=False, description="Whether the session still accepts input")


class SessionListOutput(StatusOutput):
    """Registered interactive sessions."""
    sessions: list[dict[str, Any]] = Field(default_factory=list)


class CredentialListOutput(StatusOutput):
    """Saved credentials with secrets masked."""
    credentials: list[dict[str, Any]] = Field(default_factory=list)


class WorkingDirectoryOutput(StatusOutput):
    """Working directory of a connection."""
    connection_id: str = Field(description="Connection ID")
    cwd: Optional[str] = Field(default=None, description="Working directory")


class DockerStatusOutput(StatusOutput):
    """Docker status of a connection."""
    working_directory: Optional[str] = Field(default=None)
    containers: str = Field(default="", description="docker ps -a output")
    compose: Optional[str] = Field(default=None, description="docker-compose ps output")
