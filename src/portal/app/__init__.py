"""Application scope helpers."""

from .scope import PortalScope, create_portal_scope

__all__ = ["PortalScope", "create_portal_scope"]
