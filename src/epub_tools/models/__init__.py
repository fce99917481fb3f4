"""Data models."""

from epub_tools.models.extraction import ExtractOptions, OutputMode
from epub_tools.models.spine import ManifestItem, MediaType, Spine, SpineItem
from epub_tools.models.toc import NavPoint, NavPointList, Toc

__all__ = [
    # Package models
    "MediaType",
    "ManifestItem",
    "SpineItem",
    "Spine",
    # TOC models
    "NavPoint",
    "NavPointList",
    "Toc",
    # Extraction models
    "ExtractOptions",
    "OutputMode",
]
