"""Docker command lines used by the trampoline.

Each function returns an argv list; running it is left to the caller so the
exact flags can be inspected and tested without a Docker daemon.
"""

from collections.abc import Mapping, Sequence
from pathlib import Path

from trampoline.lib.command_helpers import HostUser

# Fixed mount points inside the container
CONTAINER_PROJECT_DIR = "/v"
CONTAINER_HOME_DIR = "/h"
CONTAINER_GFILE_DIR = "/gfile"

# Mounted as /gfile when KOKORO_GFILE_DIR is not set
DEFAULT_GFILE_DIR = "/dev/shm"


def pull_command(image: str) -> list[str]:
    """Return ``docker pull <image>``."""
    return ["docker", "pull", image]


def push_command(image: str) -> list[str]:
    """Return ``docker push <image>``."""
    return ["docker", "push", image]


def build_command(image: str, dockerfile: Path, cache_from: bool) -> list[str]:
    """
    Build the ``docker build`` command for an image source.

    Parameters
    ----------
    image : str
        Tag to give the built image.
    dockerfile : Path
        Path to the Dockerfile. Its parent directory is the build context.
    cache_from : bool
        Reuse layers of the already pulled ``image``.

    Returns
    -------
    list[str]
        Command arguments.
    """
    cmd = ["docker", "build", "-f", str(dockerfile), "-t", image]

    if cache_from:
        cmd.extend(["--cache-from", image])

    cmd.append(str(dockerfile.parent))
    return cmd


def container_command(build_file: str, commands: Sequence[str]) -> list[str]:
    """
    Resolve the command run inside the container.

    Caller-supplied arguments win; otherwise the build file is run from the
    mounted project directory.
    """
    if commands:
        return list(commands)
    return [f"{CONTAINER_PROJECT_DIR}/{build_file}"]


def run_command(
    image: str,
    command: Sequence[str],
    project_root: Path,
    home_dir: Path,
    user: HostUser,
    running_in_ci: bool,
    gfile_dir: str | None = None,
    pass_down_env: Mapping[str, str] | None = None,
    interactive: bool = False,
) -> list[str]:
    """
    Build the ``docker run`` command for the build container.

    Parameters
    ----------
    image : str
        Image to run.
    command : Sequence[str]
        Command executed in the container.
    project_root : Path
        Project directory, mounted read-write at ``/v``.
    home_dir : Path
        Scratch home directory, mounted at ``/h``.
    user : HostUser
        Identity the container runs as.
    running_in_ci : bool
        Exposed to the build as ``RUNNING_IN_CI``.
    gfile_dir : str, optional
        CI file-staging directory, mounted at ``/gfile``.
    pass_down_env : Mapping[str, str], optional
        Whitelisted variables forwarded as ``--env NAME=value``.
    interactive : bool, optional
        Attach a TTY (``-it``).

    Returns
    -------
    list[str]
        Command arguments.
    """
    cmd = [
        "docker",
        "run",
        # Remove the container after it exits.
        "--rm",
        "--network=host",
        # Docker is used for packaging the dev tools, not for isolation.
        "--privileged",
        "--volume",
        f"{gfile_dir or DEFAULT_GFILE_DIR}:{CONTAINER_GFILE_DIR}",
        "--env",
        f"KOKORO_GFILE_DIR={CONTAINER_GFILE_DIR}",
        "--env",
        f"RUNNING_IN_CI={'true' if running_in_ci else 'false'}",
        # Files written under /v must belong to the host user, not root.
        "--user",
        f"{user.uid}:{user.gid}",
        "--env",
        f"USER={user.name}",
        "--volume",
        f"{project_root}:{CONTAINER_PROJECT_DIR}",
        "--workdir",
        CONTAINER_PROJECT_DIR,
        "--env",
        f"PROJECT_ROOT={CONTAINER_PROJECT_DIR}",
        "--volume",
        f"{home_dir}:{CONTAINER_HOME_DIR}",
        "--env",
        f"HOME={CONTAINER_HOME_DIR}",
    ]

    if interactive:
        cmd.append("-it")

    for name, value in (pass_down_env or {}).items():
        cmd.extend(["--env", f"{name}={value}"])

    cmd.append(image)
    cmd.extend(command)
    return cmd
