"""Bridge module — rate limits for DUMP leaving through the bridge."""

from dumpglory.bridge.gatekeeper import BridgeGatekeeper

__all__ = ["BridgeGatekeeper"]
