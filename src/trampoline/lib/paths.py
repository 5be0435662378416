"""Project root discovery and the per-run scratch workspace."""

import tempfile
from dataclasses import dataclass
from pathlib import Path

from trampoline.exceptions import ConfigError

WORKSPACE_PREFIX = "ci-"


@dataclass(frozen=True)
class Workspace:
    """
    Scratch directories owned by a single trampoline run.

    The tree is left in place for the OS or CI system to reclaim.

    Attributes
    ----------
    root : Path
        Unique temporary directory (``ci-XXXXXXXX``).
    home : Path
        Directory mounted as ``HOME`` inside the container.
    """

    root: Path
    home: Path

    def gcloud_config_dir(self) -> Path:
        """
        Create and return the isolated gcloud configuration directory.

        Returns
        -------
        Path
            Path to ``<root>/gcloud``.
        """
        path = self.root / "gcloud"
        path.mkdir(parents=True, exist_ok=True)
        return path


def create_workspace(base_dir: Path | None = None) -> Workspace:
    """
    Create a fresh scratch workspace with a nested home directory.

    Parameters
    ----------
    base_dir : Path, optional
        Parent directory for the workspace. Defaults to the system temp dir.

    Returns
    -------
    Workspace
        The newly created workspace.
    """
    root = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=base_dir))
    home = root / "h"
    home.mkdir(parents=True, exist_ok=True)
    return Workspace(root=root, home=home)


def find_project_root(start: Path | None = None) -> Path:
    """
    Find the repository root by walking up until a ``.git`` entry is found.

    ``.git`` may be a directory or, for worktrees and submodules, a file.

    Parameters
    ----------
    start : Path, optional
        Directory to start from. Defaults to the current working directory.

    Returns
    -------
    Path
        Absolute path to the repository root.

    Raises
    ------
    ConfigError
        If no ancestor of ``start`` contains ``.git``.

    Examples
    --------
    >>> find_project_root(Path("/src/myrepo/.kokoro"))
    PosixPath('/src/myrepo')
    """
    current = (start or Path.cwd()).resolve()

    for directory in (current, *current.parents):
        if (directory / ".git").exists():
            return directory

    raise ConfigError(
        "Could not find the project root (no .git directory found)",
        {"start": str(current)},
    )
