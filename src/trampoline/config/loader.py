"""Configuration loader for trampoline runs."""

import logging
import os
import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

import yaml

from trampoline.exceptions import ConfigError

logger = logging.getLogger("trampoline")

RC_FILE = ".trampolinerc"
YAML_RC_FILE = ".trampolinerc.yaml"

# The basic trampoline configuration
BASE_REQUIRED_ENVVARS = ("TRAMPOLINE_IMAGE", "TRAMPOLINE_BUILD_FILE")

# Matches the start of `required_envvars+=( ... )` style array statements
_RC_ARRAY_RE = re.compile(
    r"^[ \t]*(?P<name>required_envvars|pass_down_envvars)(?P<op>\+?=)\(",
    re.MULTILINE,
)


def _read_array(text: str) -> list[str]:
    """
    Split the words of a shell array up to its closing parenthesis.

    Parameters
    ----------
    text : str
        Source following the opening ``(``.

    Returns
    -------
    list of str
        Array elements with their quotes removed.

    Raises
    ------
    ValueError
        If a quote or the array is not closed.
    """
    # Non-POSIX mode keeps the quotes, so a quoted ")" is told apart from the
    # closing parenthesis
    lexer = shlex.shlex(text, posix=False, punctuation_chars=")")
    lexer.whitespace_split = True

    words = []
    for token in iter(lexer.get_token, lexer.eof):
        if token.startswith(")"):
            return words
        words.append("".join(shlex.split(token)))
    raise ValueError("No closing parenthesis")


@dataclass(frozen=True)
class TrampolineConfig:
    """
    Resolved configuration for one trampoline run.

    Attributes
    ----------
    image : str
        Docker image to pull, build and run (``TRAMPOLINE_IMAGE``).
    build_file : str
        Script run in the container, relative to the project root
        (``TRAMPOLINE_BUILD_FILE``).
    image_source : str or None
        Dockerfile used to rebuild the image (``TRAMPOLINE_IMAGE_SOURCE``).
    gfile_dir : str or None
        CI file-staging directory (``KOKORO_GFILE_DIR``).
    pull_request_number : str or None
        Set for pull-request builds (``KOKORO_GITHUB_PULL_REQUEST_NUMBER``).
    required_envvars : tuple of str
        Variables that had to be non-empty.
    pass_down_envvars : tuple of str
        Variables whitelisted for forwarding into the container.
    pass_down_env : Mapping[str, str]
        Forwarded variables that are actually set, read-only.
    sources : tuple of str
        Override files that were read.
    """

    image: str
    build_file: str
    image_source: str | None = None
    gfile_dir: str | None = None
    pull_request_number: str | None = None
    required_envvars: tuple[str, ...] = BASE_REQUIRED_ENVVARS
    pass_down_envvars: tuple[str, ...] = ()
    pass_down_env: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )
    sources: tuple[str, ...] = ()

    @property
    def running_in_ci(self) -> bool:
        return bool(self.gfile_dir)


def _dedupe(names: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(names))


class ConfigLoader:
    """
    Load trampoline configuration from the environment and override files.

    Sources, in order:
    1. Process environment
    2. Legacy shell override (``.trampolinerc``), array statements only
    3. YAML override (``.trampolinerc.yaml``)

    Attributes
    ----------
    project_root : Path
        Directory holding the override files.
    environ : Mapping[str, str]
        Environment the configuration is read from.
    """

    def __init__(self, project_root: Path, environ: Mapping[str, str] | None = None):
        """
        Initialize configuration loader.

        Parameters
        ----------
        project_root : Path
            Repository root.
        environ : Mapping[str, str], optional
            Environment to read, by default ``os.environ``.
        """
        self.project_root = Path(project_root)
        self.environ = os.environ if environ is None else environ

    def _load_rc_file(self, path: Path) -> dict:
        """
        Extract the envvar arrays from a legacy shell override file.

        Parameters
        ----------
        path : Path
            Path to ``.trampolinerc``.

        Returns
        -------
        dict
            ``{"required_envvars": [(op, names)], "pass_down_envvars": [...]}``
            where ``op`` is ``"="`` or ``"+="``. Empty if the file is missing.

        Raises
        ------
        ConfigError
            If an array body cannot be split into words.
        """
        if not path.exists():
            return {}

        text = path.read_text()
        statements: dict[str, list[tuple[str, list[str]]]] = {}
        for match in _RC_ARRAY_RE.finditer(text):
            try:
                names = _read_array(text[match.end() :])
            except ValueError as e:
                raise ConfigError(f"Invalid array in {path}: {e}")
            statements.setdefault(match.group("name"), []).append((match.group("op"), names))

        return statements

    def _load_yaml_file(self, path: Path) -> dict:
        """
        Load and validate the YAML override file.

        Parameters
        ----------
        path : Path
            Path to ``.trampolinerc.yaml``.

        Returns
        -------
        dict
            Parsed content, or empty dict if the file doesn't exist.

        Raises
        ------
        ConfigError
            If the file is not valid YAML or keys have the wrong type.
        """
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")

        if not content:
            return {}
        if not isinstance(content, dict):
            raise ConfigError(f"Expected a mapping in {path}")

        for key in ("required_envvars", "pass_down_envvars"):
            value = content.get(key, [])
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"'{key}' must be a list of variable names", {"file": str(path)})

        defaults = content.get("defaults", {})
        if not isinstance(defaults, dict):
            raise ConfigError("'defaults' must be a mapping", {"file": str(path)})

        return content

    def load(self) -> TrampolineConfig:
        """
        Load, merge and validate the configuration.

        Returns
        -------
        TrampolineConfig
            Immutable configuration for this run.

        Raises
        ------
        ConfigError
            If an override file is invalid or a required variable is empty.
        """
        required: list[str] = []
        pass_down: list[str] = []
        sources = []

        rc_path = self.project_root / RC_FILE
        rc_statements = self._load_rc_file(rc_path)
        if rc_path.exists():
            sources.append(str(rc_path))

        targets = {"required_envvars": required, "pass_down_envvars": pass_down}
        for name, target in targets.items():
            for op, names in rc_statements.get(name, []):
                if op == "=":
                    target.clear()
                target.extend(names)

        yaml_path = self.project_root / YAML_RC_FILE
        overrides = self._load_yaml_file(yaml_path)
        if yaml_path.exists():
            sources.append(str(yaml_path))

        required.extend(overrides.get("required_envvars", []))
        pass_down.extend(overrides.get("pass_down_envvars", []))

        env = dict(self.environ)
        for key, value in overrides.get("defaults", {}).items():
            if not env.get(key):
                env[key] = "" if value is None else str(value)

        for source in sources:
            logger.debug(f"Loaded overrides from {source}")

        # The base variables stay required even when the rc file replaces the list
        required_envvars = _dedupe([*BASE_REQUIRED_ENVVARS, *required])
        missing = [name for name in required_envvars if not env.get(name)]
        if missing:
            raise ConfigError(
                " ".join(f"Missing {name} env var." for name in missing) + " Aborting."
            )

        pass_down_envvars = _dedupe(pass_down)
        pass_down_env = MappingProxyType(
            {name: env[name] for name in pass_down_envvars if env.get(name)}
        )

        return TrampolineConfig(
            image=env["TRAMPOLINE_IMAGE"],
            build_file=env["TRAMPOLINE_BUILD_FILE"],
            image_source=env.get("TRAMPOLINE_IMAGE_SOURCE") or None,
            gfile_dir=env.get("KOKORO_GFILE_DIR") or None,
            pull_request_number=env.get("KOKORO_GITHUB_PULL_REQUEST_NUMBER") or None,
            required_envvars=required_envvars,
            pass_down_envvars=pass_down_envvars,
            pass_down_env=pass_down_env,
            sources=tuple(sources),
        )
