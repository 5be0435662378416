"""Google Cloud credential activation for CI runs."""

import logging
import shlex
from collections.abc import Mapping
from pathlib import Path

from trampoline.exceptions import CloudAuthError
from trampoline.lib.command_helpers import run_external

logger = logging.getLogger("trampoline")

# The trampoline service account key staged by the CI system
SERVICE_ACCOUNT_KEY_NAME = "kokoro-trampoline.service-account.json"


def service_account_key_file(gfile_dir: str) -> Path:
    """Return the service account key path inside the CI file-staging directory."""
    return Path(gfile_dir) / SERVICE_ACCOUNT_KEY_NAME


def activate_service_account_command(key_file: Path) -> list[str]:
    return ["gcloud", "auth", "activate-service-account", "--key-file", str(key_file)]


def configure_docker_command() -> list[str]:
    return ["gcloud", "auth", "configure-docker", "--quiet"]


def authenticate(key_file: Path, env: Mapping[str, str], dry_run: bool = False) -> None:
    """
    Activate the service account and register gcloud as docker credential helper.

    Parameters
    ----------
    key_file : Path
        Service account JSON key.
    env : Mapping[str, str]
        Environment for the gcloud calls. Must carry ``CLOUDSDK_CONFIG``.
    dry_run : bool, optional
        Print the commands instead of running them.

    Raises
    ------
    CloudAuthError
        If gcloud is missing or either command fails.

    Examples
    --------
    >>> authenticate(Path("/dev/shm/kokoro-trampoline.service-account.json"), env)
    """
    for cmd in (activate_service_account_command(key_file), configure_docker_command()):
        try:
            returncode = run_external(cmd, env=env, dry_run=dry_run)
        except FileNotFoundError:
            raise CloudAuthError(
                "gcloud CLI not found. Install it from: https://cloud.google.com/sdk/docs/install"
            )

        if returncode != 0:
            raise CloudAuthError(
                "Failed to set up Google Cloud credentials",
                command=shlex.join(cmd),
                returncode=returncode,
            )

    logger.debug(f"Activated service account from {key_file}")
