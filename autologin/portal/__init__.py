"""Human-resolution portal for bot challenges."""

from autologin.portal.portal import Portal, PortalHandle
from autologin.portal.server import create_app
from autologin.portal.streaming import PortalChannel, PortalRegistry, ScreenStreamingService

__all__ = [
    "Portal",
    "PortalChannel",
    "PortalHandle",
    "PortalRegistry",
    "ScreenStreamingService",
    "create_app",
]
