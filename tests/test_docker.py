"""Unit tests for Docker deployment helpers."""

import pytest

from ssh_mcp import docker
from ssh_mcp.docker import DeploymentType, build_deploy_command
from ssh_mcp.exceptions import InvalidParamsError, NotFoundError
from ssh_mcp.transport import ExecResult


class TestBuildDeployCommand:
    """Tests for build_deploy_command."""

    def test_compose_defaults(self):
        assert build_deploy_command("compose") == "docker-compose up -d"

    def test_compose_custom_file_foreground(self):
        command = build_deploy_command(
            DeploymentType.COMPOSE, compose_file="prod.yml", detached=False
        )
        assert command == "docker-compose -f prod.yml up"

    def test_build_with_args_and_env(self):
        command = build_deploy_command(
            "build",
            image_name="shop:1.2",
            build_args={"VERSION": "1.2"},
            env_vars={"DOCKER_BUILDKIT": "1"},
        )
        assert command == "DOCKER_BUILDKIT=1 docker build --build-arg VERSION=1.2 -t shop:1.2 ."

    def test_run_with_ports_and_volumes(self):
        command = build_deploy_command(
            "run",
            image_name="nginx",
            container_name="web",
            ports=["8080:80"],
            volumes=["/srv/www:/usr/share/nginx/html"],
        )
        assert command == (
            "docker run -d --name web -p 8080:80 "
            "-v /srv/www:/usr/share/nginx/html nginx"
        )

    def test_values_are_quoted(self):
        command = build_deploy_command("run", image_name="nginx", env_vars={"MSG": "a b"})
        assert command.startswith("MSG='a b' docker run")

    @pytest.mark.parametrize("deployment_type", ["build", "run"])
    def test_image_required(self, deployment_type):
        with pytest.raises(InvalidParamsError):
            build_deploy_command(deployment_type)


class TestDeployAndStatus:
    """Tests for deploy and status over a connection."""

    @pytest.mark.asyncio
    async def test_deploy_runs_in_directory(self, registry, password_params):
        await registry.open("c", password_params)

        command, result = await docker.deploy(registry, "c", "/srv/app", "compose")

        assert command == "docker-compose up -d"
        assert result.success
        assert registry.get("c").shell.commands[-1] == ("docker-compose up -d", "/srv/app")

    @pytest.mark.asyncio
    async def test_deploy_unknown_connection(self, registry):
        with pytest.raises(NotFoundError):
            await docker.deploy(registry, "nope", "/srv/app", "compose")

    @pytest.mark.asyncio
    async def test_status_uses_cached_directory(self, registry, password_params):
        await registry.open("c", password_params)
        await registry.set_working_directory("c", "/tmp")
        shell = registry.get("c").shell
        shell.responses["docker ps -a"] = ExecResult(0, "CONTAINER ID\n", "")
        shell.responses["docker-compose ps"] = ExecResult(0, "NAME\n", "")

        report = await docker.status(registry, "c")

        assert report.working_directory == "/tmp"
        assert report.containers == "CONTAINER ID\n"
        assert report.compose == "NAME\n"

    @pytest.mark.asyncio
    async def test_status_without_directory_skips_compose(self, registry, password_params):
        await registry.open("c", password_params)
        shell = registry.get("c").shell

        report = await docker.status(registry, "c")

        assert report.compose is None
        assert [c[0] for c in shell.commands] == ["docker ps -a"]
