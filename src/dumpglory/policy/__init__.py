"""Policy module — typed access to game parameters."""

from dumpglory.policy.resolver import GameResolver

__all__ = ["GameResolver"]
