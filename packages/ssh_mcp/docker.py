"""Docker deployment helpers run over a registered connection."""

import logging
import shlex
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .connections import ConnectionRegistry
from .exceptions import InvalidParamsError
from .transport import ExecResult

logger = logging.getLogger(__name__)

DEFAULT_COMPOSE_FILE = "docker-compose.yml"


class DeploymentType(str, Enum):
    """Supported deployment workflows."""
    COMPOSE = "compose"
    BUILD = "build"
    RUN = "run"


@dataclass
class DockerStatus:
    """Container listing plus compose status when a directory is known."""
    working_directory: Optional[str]
    containers: str
    compose: Optional[str] = None


def build_deploy_command(
    deployment_type: DeploymentType,
    image_name: Optional[str] = None,
    container_name: Optional[str] = None,
    compose_file: str = DEFAULT_COMPOSE_FILE,
    build_args: Optional[dict[str, str]] = None,
    env_vars: Optional[dict[str, str]] = None,
    ports: Optional[list[str]] = None,
    volumes: Optional[list[str]] = None,
    detached: bool = True,
) -> str:
    """Build the shell command for a deployment.

    Raises:
        InvalidParamsError: If build or run is requested without image_name
    """
    deployment_type = DeploymentType(deployment_type)
    parts = [f"{key}={shlex.quote(value)}" for key, value in (env_vars or {}).items()]

    if deployment_type == DeploymentType.COMPOSE:
        parts.append("docker-compose")
        if compose_file and compose_file != DEFAULT_COMPOSE_FILE:
            parts += ["-f", shlex.quote(compose_file)]
        parts.append("up")
        if detached:
            parts.append("-d")
        return " ".join(parts)

    if not image_name:
        raise InvalidParamsError(
            f"image_name is required for {deployment_type.value} deployment type"
        )

    if deployment_type == DeploymentType.BUILD:
        parts += ["docker", "build"]
        for key, value in (build_args or {}).items():
            parts += ["--build-arg", f"{key}={shlex.quote(value)}"]
        parts += ["-t", shlex.quote(image_name), "."]
        return " ".join(parts)

    parts += ["docker", "run"]
    if detached:
        parts.append("-d")
    if container_name:
        parts += ["--name", shlex.quote(container_name)]
    for port in ports or []:
        parts += ["-p", shlex.quote(port)]
    for volume in volumes or []:
        parts += ["-v", shlex.quote(volume)]
    parts.append(shlex.quote(image_name))
    return " ".join(parts)


async def deploy(
    connections: ConnectionRegistry,
    connection_id: str,
    working_directory: str,
    deployment_type: DeploymentType,
    **options,
) -> tuple[str, ExecResult]:
    """Run a deployment in working_directory.

    Returns:
        Tuple of (command, result)
    """
    connections.get(connection_id)
    command = build_deploy_command(deployment_type, **options)
    logger.info(f"[{connection_id}] docker {DeploymentType(deployment_type).value} "
                f"in {working_directory}")
    result = await connections.execute(connection_id, command, cwd=working_directory)
    return command, result


async def status(
    connections: ConnectionRegistry,
    connection_id: str,
    working_directory: Optional[str] = None,
) -> DockerStatus:
    """Report container status, falling back to the cached working directory."""
    connection = connections.get(connection_id)
    workdir = working_directory or connection.current_working_directory

    ps_result = await connections.execute(connection_id, "docker ps -a", cwd=workdir)
    compose = None
    if workdir:
        compose_result = await connections.execute(
            connection_id, "docker-compose ps", cwd=workdir
        )
        if compose_result.success:
            compose = compose_result.stdout

    return DockerStatus(
        working_directory=workdir,
        containers=ps_result.stdout,
        compose=compose,
    )
