"""
peer-dependency-checker

Checks npm, pnpm, yarn and bun projects for peer dependency conflicts before
packages are upgraded.
"""

__version__ = "1.0.1"
__author__ = "hyperdrift"

from .cli import main

__all__ = ["main"]
