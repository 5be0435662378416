"""
Build trampoline orchestration.

A run does three things:

1. Prepare the Docker image for the build (pull, and optionally rebuild it
   from its Dockerfile using the pulled image as cache)
2. Run the build script in the container with the project mounted at ``/v``
3. Upload the freshly built image when a CI build on a branch succeeds
"""

import logging
import os
import shlex
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from trampoline.config import ConfigLoader, TrampolineConfig
from trampoline.exceptions import ImageError, TrampolineError
from trampoline.lib import docker, gcloud
from trampoline.lib.command_helpers import (
    check_docker_available,
    get_host_user,
    prepare_subprocess_env,
    run_external,
)
from trampoline.lib.output import log, log_green, log_red, log_yellow
from trampoline.lib.paths import Workspace, create_workspace

logger = logging.getLogger("trampoline")


@dataclass(frozen=True)
class ImageState:
    """
    Outcome of the image preparation step.

    Attributes
    ----------
    has_cache : bool
        The image was pulled from the registry.
    rebuilt : bool
        The image was built from its Dockerfile during this run.
    """

    has_cache: bool
    rebuilt: bool


def should_publish(
    running_in_ci: bool,
    rebuilt: bool,
    pull_request_number: str | None,
    exit_code: int,
) -> bool:
    """
    Decide whether the image is pushed back to the registry.

    Only a successful CI build of a branch (not a pull request) that rebuilt
    the image publishes it.

    Parameters
    ----------
    running_in_ci : bool
        The run happens on CI.
    rebuilt : bool
        The image was built during this run rather than only pulled.
    pull_request_number : str or None
        Pull request number of the build, if any.
    exit_code : int
        Exit code of the container run.

    Returns
    -------
    bool
        True if the image should be pushed.
    """
    return running_in_ci and rebuilt and not pull_request_number and exit_code == 0


class Trampoline:
    """
    Run one containerized CI build.

    Parameters
    ----------
    project_root : Path
        Repository root, mounted into the container.
    environ : Mapping[str, str], optional
        Environment to read configuration from, by default ``os.environ``.
    dry_run : bool, optional
        Print external commands instead of running them, by default False.
    interactive : bool, optional
        Attach a TTY to the container. Defaults to whether stdin is a TTY.
    workspace_dir : Path, optional
        Parent of the scratch workspace, by default the system temp dir.

    Examples
    --------
    >>> exit_code = Trampoline(Path("/src/repo")).run(["nox", "-s", "lint"])
    """

    def __init__(
        self,
        project_root: Path,
        environ: Mapping[str, str] | None = None,
        dry_run: bool = False,
        interactive: bool | None = None,
        workspace_dir: Path | None = None,
    ):
        self.project_root = Path(project_root).resolve()
        self.environ = os.environ if environ is None else environ
        self.dry_run = dry_run
        self.interactive = interactive
        self.workspace_dir = workspace_dir

    def run(self, commands: Sequence[str] = ()) -> int:
        """
        Execute the full trampoline sequence.

        Parameters
        ----------
        commands : Sequence[str], optional
            Command to run in the container instead of the build file.

        Returns
        -------
        int
            Exit code of the container run.

        Raises
        ------
        ConfigError
            If a required variable is missing.
        CloudAuthError
            If CI credentials cannot be activated.
        ImageError
            If no runnable image can be obtained.
        """
        workspace = create_workspace(self.workspace_dir)
        logger.debug(f"Created workspace {workspace.root}")

        env = self.authenticate(workspace)

        log_yellow(f"Using the project root: {self.project_root}.")

        log_yellow("Checking environment variables.")
        config = ConfigLoader(self.project_root, self.environ).load()

        log_yellow("Preparing Docker image.")
        state = self.prepare_image(config, env)

        exit_code = self.run_container(config, workspace, commands, env)

        if exit_code == 0:
            log_green(f"Build finished with {exit_code}")
        else:
            log_red(f"Build finished with {exit_code}")

        if should_publish(
            config.running_in_ci, state.rebuilt, config.pull_request_number, exit_code
        ):
            self.publish(config, env)

        return exit_code

    def authenticate(self, workspace: Workspace) -> dict:
        """
        Activate CI credentials when running on CI.

        Parameters
        ----------
        workspace : Workspace
            Scratch workspace holding the isolated gcloud configuration.

        Returns
        -------
        dict
            Environment for every later external command.
        """
        gfile_dir = self.environ.get("KOKORO_GFILE_DIR")
        if not gfile_dir:
            return prepare_subprocess_env(self.environ)

        gcloud_config_dir = workspace.gcloud_config_dir()
        log(f"Using isolated gcloud config: {gcloud_config_dir}.")
        env = prepare_subprocess_env(self.environ, {"CLOUDSDK_CONFIG": str(gcloud_config_dir)})

        key_file = gcloud.service_account_key_file(gfile_dir)
        log(f"Using {key_file} for authentication.")
        gcloud.authenticate(key_file, env, dry_run=self.dry_run)
        return env

    def prepare_image(self, config: TrampolineConfig, env: Mapping[str, str]) -> ImageState:
        """
        Pull the image and rebuild it when an image source is configured.

        Parameters
        ----------
        config : TrampolineConfig
            Run configuration.
        env : Mapping[str, str]
            Environment for the docker commands.

        Returns
        -------
        ImageState
            Whether the pull and the build succeeded.

        Raises
        ------
        ImageError
            If Docker is missing, the build fails, or the pull fails and
            there is nothing to build from.
        """
        if not self.dry_run and not check_docker_available():
            raise ImageError("Docker is not installed or not in PATH")

        image = config.image
        log_yellow(f"Start pulling the Docker image: {image}.")
        if self._execute(docker.pull_command(image), env) == 0:
            log_green(f"Finished pulling the Docker image: {image}.")
            has_cache = True
        else:
            log_red(f"Failed pulling the Docker image: {image}.")
            has_cache = False

        if not config.image_source:
            if not has_cache:
                raise ImageError(f"Failed to download the image {image}, aborting.")
            return ImageState(has_cache=True, rebuilt=False)

        dockerfile = Path(config.image_source)
        if not dockerfile.is_absolute():
            dockerfile = self.project_root / dockerfile

        log_yellow("Start building the docker image.")
        cmd = docker.build_command(image, dockerfile, cache_from=has_cache)
        if self._execute(cmd, env) != 0:
            raise ImageError(
                "Failed to build the Docker image. Aborting.", {"dockerfile": str(dockerfile)}
            )

        log_green("Finished building the docker image.")
        return ImageState(has_cache=has_cache, rebuilt=True)

    def run_container(
        self,
        config: TrampolineConfig,
        workspace: Workspace,
        commands: Sequence[str],
        env: Mapping[str, str],
    ) -> int:
        """
        Run the build container once and return its exit code.

        Parameters
        ----------
        config : TrampolineConfig
            Run configuration.
        workspace : Workspace
            Scratch workspace providing the container home directory.
        commands : Sequence[str]
            Caller-supplied command; empty to run the build file.
        env : Mapping[str, str]
            Environment for the docker command.

        Returns
        -------
        int
            Container exit code.
        """
        if commands:
            log_yellow(f"Running the given commands '{shlex.join(commands)}' in the container.")
        else:
            log_yellow("Running the tests in a Docker container.")

        interactive = self.interactive
        if interactive is None:
            interactive = sys.stdin.isatty()

        cmd = docker.run_command(
            image=config.image,
            command=docker.container_command(config.build_file, commands),
            project_root=self.project_root,
            home_dir=workspace.home,
            user=get_host_user(),
            running_in_ci=config.running_in_ci,
            gfile_dir=config.gfile_dir,
            pass_down_env=config.pass_down_env,
            interactive=interactive,
        )

        # Dry-run mode prints the command itself
        if not self.dry_run:
            print(shlex.join(cmd), flush=True)
        return self._execute(cmd, env)

    def publish(self, config: TrampolineConfig, env: Mapping[str, str]) -> bool:
        """
        Push the image to the registry.

        A failed push is reported but never fails the run.

        Returns
        -------
        bool
            True if the push succeeded.
        """
        log_yellow("Uploading the Docker image.")
        try:
            returncode = self._execute(docker.push_command(config.image), env)
        except (TrampolineError, OSError) as e:
            logger.debug(f"docker push raised: {e}")
            returncode = None

        if returncode == 0:
            log_green("Finished uploading the Docker image.")
            return True

        log_red("Failed uploading the Docker image.")
        return False

    def _execute(self, cmd: Sequence[str], env: Mapping[str, str]) -> int:
        try:
            return run_external(cmd, env=env, cwd=self.project_root, dry_run=self.dry_run)
        except FileNotFoundError:
            raise ImageError("Docker is not installed or not in PATH")
