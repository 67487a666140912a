"""
webgit - pull and push a webroot repository together with its submodules and
sibling repositories, routing contributions through forks and pull requests
when the current user cannot write to the canonical repositories.
"""

__version__ = "1.0.0"
__description__ = "Multi-repository git workflow for webroot workspaces"

from .cli import main

__all__ = ["main"]
