"""Qt integration for overlays consuming ping measurements."""

from .ping_bridge import QtPingBridge

__all__ = ["QtPingBridge"]
