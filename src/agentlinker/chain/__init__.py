"""
Inheritance chain resolution for monorepo layouts.

A chain is the ordered list of .agents folders from the user's global
root down to the directory being resolved.
"""

from agentlinker.chain.chain import ChainLevel, InheritanceChain, resolve_chain

__all__ = ["ChainLevel", "InheritanceChain", "resolve_chain"]
