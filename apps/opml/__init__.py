"""OPML import/export module for FeedPulse."""

from apps.opml.api import router
from apps.opml.codec import OPMLDocument, parse_opml, render_opml
from apps.opml.service import OPMLService

__all__ = ["router", "OPMLDocument", "OPMLService", "parse_opml", "render_opml"]
