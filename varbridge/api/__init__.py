"""HTTP surface for the bridge."""

from varbridge.api.bridge_server import BridgeServer, normalize_hook_route

__all__ = ["BridgeServer", "normalize_hook_route"]
