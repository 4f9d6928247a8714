"""Yoho - push, wait, merge.

A one-shot CLI that chains git, GitHub pull requests and an issue tracker
behind a few short commands: ``yo`` opens the PR, ``ho`` waits for it to be
mergeable and green, ``hou`` merges it and cleans up.
"""

__version__ = "0.3.0"
__author__ = "yoho contributors"
