"""
Argparse formatting for the trampoline CLI.

Classes
-------
CapitalizedHelpFormatter : Custom argparse formatter with capitalized section titles
"""

import argparse


class CapitalizedHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """
    Custom help formatter that capitalizes section titles.

    Extends RawDescriptionHelpFormatter to:
    - Capitalize "usage:" to "Usage:"
    - Add newline after usage for better readability
    - Preserve raw formatting for description text
    """

    def add_usage(self, usage, actions, groups, prefix=None):
        if prefix is None:
            prefix = "Usage:\n  "
        return super().add_usage(usage, actions, groups, prefix)
