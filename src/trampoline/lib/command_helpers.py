"""
Command Helper Functions.

This module provides helpers shared by the trampoline steps that call out to
external tools.

Functions
---------
get_host_user : Identity of the invoking user, mapped into the container
prepare_subprocess_env : Prepare environment variables for subprocess calls
check_docker_available : Check that the docker CLI can be executed
run_external : Run one external command, honouring dry-run mode
"""

import logging
import os
import pwd
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from trampoline.lib.output import info

logger = logging.getLogger("trampoline")


@dataclass(frozen=True)
class HostUser:
    """
    Identity of the user running the trampoline.

    The container runs as this uid/gid so files written to the mounted
    project directory are not owned by root.
    """

    uid: int
    gid: int
    name: str


def get_host_user() -> HostUser:
    """
    Get the uid, gid and login name of the current process.

    Returns
    -------
    HostUser
        Current user. When the uid has no passwd entry the name falls back to
        the numeric uid.
    """
    uid = os.getuid()
    gid = os.getgid()
    try:
        name = pwd.getpwuid(uid).pw_name
    except KeyError:
        name = str(uid)
    return HostUser(uid=uid, gid=gid, name=name)


def prepare_subprocess_env(base_env: Mapping[str, str], extra_vars: dict = None) -> dict:
    """
    Prepare environment variables for subprocess calls.

    Parameters
    ----------
    base_env : Mapping[str, str]
        Environment to start from, usually the process environment.
    extra_vars : dict, optional
        Additional environment variables to set.

    Returns
    -------
    dict
        Dictionary of environment variables suitable for subprocess.run(env=...).

    Examples
    --------
    >>> env = prepare_subprocess_env(os.environ, {"CLOUDSDK_CONFIG": "/tmp/ci-x/gcloud"})
    >>> subprocess.run(["gcloud", "info"], env=env)
    """
    env = dict(base_env)

    if extra_vars:
        env.update(extra_vars)

    return env


def check_docker_available() -> bool:
    """
    Check if Docker is available in the system PATH.

    Returns
    -------
    bool
        True if Docker is available, False otherwise.

    Notes
    -----
    Uses 'docker --version' to check availability. This is a lightweight
    check that doesn't require Docker daemon to be running.
    """
    try:
        result = subprocess.run(
            ["docker", "--version"],
            capture_output=True,
            text=True,
            check=False,
            timeout=5,
        )
        return result.returncode == 0
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False


def run_external(
    cmd: Sequence[str],
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    dry_run: bool = False,
) -> int:
    """
    Run one external command to completion and return its exit code.

    Output is streamed straight to the console. A process killed by a signal
    is reported the way a shell would, as ``128 + signal``.

    Parameters
    ----------
    cmd : Sequence[str]
        Command and arguments.
    env : Mapping[str, str], optional
        Environment for the child process.
    cwd : Path, optional
        Working directory for the child process.
    dry_run : bool, optional
        Print the command instead of running it and report success.

    Returns
    -------
    int
        Exit code of the command (0 in dry-run mode).

    Raises
    ------
    FileNotFoundError
        If the executable does not exist.
    """
    command_line = shlex.join(cmd)

    if dry_run:
        info(f"Would execute: {command_line}")
        return 0

    logger.debug(f"Executing: {command_line}")
    result = subprocess.run(list(cmd), env=env, cwd=cwd, check=False)

    returncode = result.returncode
    if returncode < 0:
        returncode = 128 - returncode
    logger.debug(f"Exit code {returncode}: {command_line}")
    return returncode
