"""Tests for trampoline/lib/docker.py command builders."""

from pathlib import Path

import pytest

from trampoline.lib import docker
from trampoline.lib.command_helpers import HostUser

IMAGE = "gcr.io/test-project/python-multi"


@pytest.mark.unit
class TestBuildCommand:
    """Tests for build_command()."""

    def test_uses_dockerfile_directory_as_context(self):
        cmd = docker.build_command(IMAGE, Path("/repo/.kokoro/docker/Dockerfile"), cache_from=False)

        assert cmd == [
            "docker",
            "build",
            "-f",
            "/repo/.kokoro/docker/Dockerfile",
            "-t",
            IMAGE,
            "/repo/.kokoro/docker",
        ]

    def test_cache_from_pulled_image(self):
        cmd = docker.build_command(IMAGE, Path("/repo/Dockerfile"), cache_from=True)

        assert cmd[-3:] == ["--cache-from", IMAGE, "/repo"]


@pytest.mark.unit
class TestContainerCommand:
    """Tests for container_command()."""

    def test_defaults_to_build_file_in_project_mount(self):
        assert docker.container_command(".kokoro/build.sh", []) == ["/v/.kokoro/build.sh"]

    def test_caller_commands_take_precedence(self):
        assert docker.container_command(".kokoro/build.sh", ["nox", "-s", "lint"]) == [
            "nox",
            "-s",
            "lint",
        ]


@pytest.mark.unit
class TestRunCommand:
    """Tests for run_command()."""

    user = HostUser(uid=1000, gid=1001, name="builder")

    def test_flags_in_order(self):
        cmd = docker.run_command(
            image=IMAGE,
            command=["/v/.kokoro/build.sh"],
            project_root=Path("/src/repo"),
            home_dir=Path("/tmp/ci-abc/h"),
            user=self.user,
            running_in_ci=True,
            gfile_dir="/staging",
        )

        assert cmd == [
            "docker",
            "run",
            "--rm",
            "--network=host",
            "--privileged",
            "--volume",
            "/staging:/gfile",
            "--env",
            "KOKORO_GFILE_DIR=/gfile",
            "--env",
            "RUNNING_IN_CI=true",
            "--user",
            "1000:1001",
            "--env",
            "USER=builder",
            "--volume",
            "/src/repo:/v",
            "--workdir",
            "/v",
            "--env",
            "PROJECT_ROOT=/v",
            "--volume",
            "/tmp/ci-abc/h:/h",
            "--env",
            "HOME=/h",
            IMAGE,
            "/v/.kokoro/build.sh",
        ]

    def test_local_run_mounts_dev_shm(self):
        cmd = docker.run_command(
            image=IMAGE,
            command=["bash"],
            project_root=Path("/src/repo"),
            home_dir=Path("/tmp/h"),
            user=self.user,
            running_in_ci=False,
        )

        assert "/dev/shm:/gfile" in cmd
        assert "RUNNING_IN_CI=false" in cmd

    def test_interactive_and_pass_down_env_precede_image(self):
        cmd = docker.run_command(
            image=IMAGE,
            command=["bash"],
            project_root=Path("/src/repo"),
            home_dir=Path("/tmp/h"),
            user=self.user,
            running_in_ci=False,
            pass_down_env={"NOX_SESSION": "lint", "STAGING_BUCKET": "bucket"},
            interactive=True,
        )

        assert cmd[-7:] == [
            "-it",
            "--env",
            "NOX_SESSION=lint",
            "--env",
            "STAGING_BUCKET=bucket",
            IMAGE,
            "bash",
        ]

    def test_pull_and_push_commands(self):
        assert docker.pull_command(IMAGE) == ["docker", "pull", IMAGE]
        assert docker.push_command(IMAGE) == ["docker", "push", IMAGE]
