"""
CLI module for agentlinker.

Provides the command-line interface using Click. The console script
entry point is agentlinker.cli.main:main.
"""

from agentlinker.cli.main import cli

__all__ = ["cli"]
