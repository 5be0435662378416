"""Integration tests for the trampoline command line."""

import io
import tempfile

import pytest

from trampoline import __version__
from trampoline.cli import create_parser, main

TEST_IMAGE = "gcr.io/test-project/python-multi"


@pytest.fixture
def cli_env(monkeypatch, tmp_path, project_root):
    """Process environment for a local CLI run inside ``project_root``."""
    monkeypatch.setenv("TRAMPOLINE_IMAGE", TEST_IMAGE)
    monkeypatch.setenv("TRAMPOLINE_BUILD_FILE", ".kokoro/build.sh")
    for name in (
        "TRAMPOLINE_IMAGE_SOURCE",
        "KOKORO_GFILE_DIR",
        "KOKORO_GITHUB_PULL_REQUEST_NUMBER",
        "TRAMPOLINE_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)

    workspace_dir = tmp_path / "tmp"
    workspace_dir.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(workspace_dir))
    monkeypatch.setattr("trampoline.runner.sys.stdin", io.StringIO())
    monkeypatch.chdir(project_root)
    return project_root


class TestParser:
    """Tests for create_parser()."""

    def test_options_before_command(self):
        args = create_parser().parse_args(["--dry-run", "nox", "-s", "lint", "--verbose"])

        assert args.dry_run is True
        assert args.verbose is False
        assert args.command == ["nox", "-s", "lint", "--verbose"]

    def test_no_command(self):
        args = create_parser().parse_args([])

        assert args.command == []
        assert args.project_dir is None

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Tests for main()."""

    def test_returns_container_exit_code(self, cli_env, fake_subprocess):
        fake_subprocess.fail("docker", "run", returncode=5)

        assert main(["--no-color"]) == 5

    def test_runs_build_file_from_discovered_root(self, cli_env, fake_subprocess):
        assert main([]) == 0

        run = fake_subprocess.commands("docker", "run")[0]
        assert f"{cli_env.resolve()}:/v" in run
        assert run[-1] == "/v/.kokoro/build.sh"

    def test_project_dir_option(self, cli_env, fake_subprocess, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert main(["--project-dir", str(cli_env)]) == 0

        run = fake_subprocess.commands("docker", "run")[0]
        assert f"{cli_env.resolve()}:/v" in run

    def test_separator_is_dropped(self, cli_env, fake_subprocess):
        main(["--", "python", "-m", "pytest"])

        run = fake_subprocess.commands("docker", "run")[0]
        assert run[-4:] == [TEST_IMAGE, "python", "-m", "pytest"]

    def test_missing_configuration(self, cli_env, fake_subprocess, monkeypatch, capsys):
        monkeypatch.delenv("TRAMPOLINE_BUILD_FILE")

        assert main([]) == 1

        assert "Missing TRAMPOLINE_BUILD_FILE env var. Aborting." in capsys.readouterr().out
        assert fake_subprocess.commands("docker") == []

    def test_image_failure(self, cli_env, fake_subprocess, capsys):
        fake_subprocess.fail("docker", "pull")

        assert main([]) == 1
        assert f"Failed to download the image {TEST_IMAGE}" in capsys.readouterr().out

    def test_outside_repository(self, cli_env, fake_subprocess, tmp_path, monkeypatch, capsys):
        plain = tmp_path / "plain"
        plain.mkdir()
        monkeypatch.chdir(plain)

        assert main([]) == 1
        assert "Could not find the project root" in capsys.readouterr().out

    def test_dry_run(self, cli_env, fake_subprocess, capsys):
        assert main(["--dry-run"]) == 0

        assert fake_subprocess.calls == []
        assert f"Would execute: docker pull {TEST_IMAGE}" in capsys.readouterr().out

    def test_unexpected_error(self, cli_env, monkeypatch, capsys):
        def boom(self, commands):
            raise RuntimeError("boom")

        monkeypatch.setattr("trampoline.cli.Trampoline.run", boom)

        assert main([]) == 1
        assert "Trampoline failed: boom" in capsys.readouterr().err

    def test_keyboard_interrupt(self, cli_env, monkeypatch):
        def interrupt(self, commands):
            raise KeyboardInterrupt

        monkeypatch.setattr("trampoline.cli.Trampoline.run", interrupt)

        assert main([]) == 130
