"""Main package for Django Shortcodes."""

# Public API
# NOTE: Some of the documentation is generated based on these exports
# isort: off
from django_shortcodes.app_settings import ErrorBehavior, ShortcodesSettings
from django_shortcodes.autodiscovery import import_libraries
from django_shortcodes.shortcode_registry import (
    ShortcodeRegistry,
    get_active_registry,
    get_registry,
    register,
    registry,
)
from django_shortcodes.types import Location, ShortcodeHandler, ShortcodeResult
from django_shortcodes.util.exception import NotRegistered
from django_shortcodes.util.html_parser import HTMLElement, HTMLNode, HTMLStructure, HTMLTagAttr
from django_shortcodes.util.tag_scanner import TagOccurrence

# isort: on


__all__ = [
    "ErrorBehavior",
    "get_active_registry",
    "get_registry",
    "HTMLElement",
    "HTMLNode",
    "HTMLStructure",
    "HTMLTagAttr",
    "import_libraries",
    "Location",
    "NotRegistered",
    "register",
    "registry",
    "ShortcodeHandler",
    "ShortcodeRegistry",
    "ShortcodeResult",
    "ShortcodesSettings",
    "TagOccurrence",
]
