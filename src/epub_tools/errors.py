"""Errors raised while reading or editing an EPUB."""


class EpubError(Exception):
    """Base class for all EPUB errors."""

    def __init__(self, message: str, path: str | None = None):
        self.message = message
        self.path = path
        super().__init__(f"{message} ({path})" if path else message)


class ContainerUnreadable(EpubError):
    """The archive cannot be opened or a required entry is missing."""


class MalformedDocument(EpubError):
    """A document inside the archive could not be parsed."""


class StructureError(EpubError):
    """The package or navigation document is structurally inconsistent."""


class MissingSpine(StructureError):
    """The package document has no spine element."""


class MissingTocReference(StructureError):
    """The spine does not point to a usable TOC document."""


class DanglingSpineReference(StructureError):
    """A spine itemref names an id that is not in the manifest."""


class MissingNavigationMap(StructureError):
    """The TOC document has no navMap."""


class FragmentError(EpubError):
    """A fragment boundary could not be located."""


class FragmentStartNotFound(FragmentError):
    """No element carries the requested start id."""


class FragmentEndNotFound(FragmentError):
    """The walk reached the end of the document without meeting the end id."""
