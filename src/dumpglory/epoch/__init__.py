"""Epoch module — phase state machine and join-fee schedule."""

from dumpglory.epoch.clock import EpochClock

__all__ = ["EpochClock"]
