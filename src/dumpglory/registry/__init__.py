"""Registry module — staked participants and their epoch statistics."""

from dumpglory.registry.participants import ParticipantRegistry

__all__ = ["ParticipantRegistry"]
