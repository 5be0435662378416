"""Pytest configuration and shared fixtures."""

import logging
from unittest.mock import Mock

import pytest

from trampoline.lib.output import set_color_enabled

TEST_IMAGE = "gcr.io/test-project/python-multi"
TEST_BUILD_FILE = ".kokoro/build.sh"


class FakeSubprocess:
    """Stand-in for ``subprocess.run`` that records calls.

    Every command succeeds unless a prefix was registered with ``fail`` or
    ``raise_on``.
    """

    def __init__(self):
        self.calls = []
        self.returncodes = {}
        self.errors = {}

    def fail(self, *prefix, returncode=1):
        self.returncodes[tuple(prefix)] = returncode

    def raise_on(self, *prefix, error):
        self.errors[tuple(prefix)] = error

    def __call__(self, cmd, **kwargs):
        cmd = list(cmd)
        self.calls.append((cmd, kwargs))
        for prefix, error in self.errors.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                raise error
        returncode = 0
        for prefix, code in self.returncodes.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                returncode = code
        return Mock(returncode=returncode, stdout="", stderr="")

    def commands(self, *prefix):
        """Return the recorded commands starting with ``prefix``."""
        return [cmd for cmd, _ in self.calls if tuple(cmd[: len(prefix)]) == prefix]

    def kwargs_for(self, *prefix):
        return [kwargs for cmd, kwargs in self.calls if tuple(cmd[: len(prefix)]) == prefix]


@pytest.fixture(autouse=True)
def plain_output():
    """Disable banner colors and reset the trampoline logger around each test."""
    set_color_enabled(False)
    yield
    set_color_enabled(None)
    logging.getLogger("trampoline").handlers.clear()


@pytest.fixture
def fake_subprocess(monkeypatch):
    """Replace subprocess.run for every external command.

    Returns
    -------
    FakeSubprocess
        Recorder of the executed commands.
    """
    fake = FakeSubprocess()
    monkeypatch.setattr("trampoline.lib.command_helpers.subprocess.run", fake)
    return fake


@pytest.fixture
def project_root(tmp_path):
    """Create a temporary git checkout.

    Returns
    -------
    Path
        Repository root containing a ``.git`` directory and the build file.
    """
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    (root / ".kokoro").mkdir()
    (root / ".kokoro" / "build.sh").write_text("#!/bin/bash\nnox\n")
    return root


@pytest.fixture
def base_environ():
    """Minimal environment for a local (non-CI) run."""
    return {
        "TRAMPOLINE_IMAGE": TEST_IMAGE,
        "TRAMPOLINE_BUILD_FILE": TEST_BUILD_FILE,
        "PATH": "/usr/bin:/bin",
    }


@pytest.fixture
def ci_environ(base_environ, tmp_path):
    """Environment of a CI run on a branch."""
    gfile_dir = tmp_path / "gfile"
    gfile_dir.mkdir()
    return {**base_environ, "KOKORO_GFILE_DIR": str(gfile_dir)}
