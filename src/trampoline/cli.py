"""Main CLI entry point for the trampoline."""

import argparse
import sys
from pathlib import Path

from trampoline import __version__
from trampoline.exceptions import TrampolineError
from trampoline.lib.formatters import CapitalizedHelpFormatter
from trampoline.lib.logger import setup_logger
from trampoline.lib.output import error, log_red, set_color_enabled
from trampoline.lib.paths import find_project_root
from trampoline.runner import Trampoline

DESCRIPTION = """\
Prepare a Docker image and run a CI build inside it.

Without a command, $TRAMPOLINE_BUILD_FILE is run in the container.
Any arguments after the options become the command run in the container.

Environment:
  TRAMPOLINE_IMAGE          Docker image to use (required)
  TRAMPOLINE_BUILD_FILE     Script to run in the container (required)
  TRAMPOLINE_IMAGE_SOURCE   Dockerfile to rebuild the image from
  KOKORO_GFILE_DIR          CI file-staging directory; enables CI mode
"""


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="trampoline",
        description=DESCRIPTION,
        formatter_class=CapitalizedHelpFormatter,
    )

    parser.add_argument("--version", "-v", action="version", version=f"trampoline {__version__}")
    parser.add_argument(
        "--project-dir",
        "-d",
        type=Path,
        help="Project root (default: nearest parent directory containing .git)",
    )
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--dry-run", action="store_true", help="Show what would happen")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run in the container (default: $TRAMPOLINE_BUILD_FILE)",
    )

    # Customize main parser options title
    parser._optionals.title = "Options"

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point for the trampoline command.

    Parameters
    ----------
    argv : list of str, optional
        Command-line arguments, by default ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code of the container run, 1 for a fatal trampoline error,
        130 for keyboard interrupt.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        set_color_enabled(False)

    logger = setup_logger(verbose=args.verbose)

    commands = list(args.command)
    if commands and commands[0] == "--":
        commands = commands[1:]

    try:
        if args.project_dir:
            project_root = args.project_dir.resolve()
        else:
            project_root = find_project_root()

        trampoline = Trampoline(project_root, dry_run=args.dry_run)
        return trampoline.run(commands)

    except TrampolineError as e:
        log_red(str(e))
        logger.debug("Trampoline aborted", exc_info=True)
        return 1
    except KeyboardInterrupt:
        print()
        return 130
    except Exception as e:
        error(f"Trampoline failed: {e}")
        logger.debug("Unexpected error", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
