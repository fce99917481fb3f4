"""Data models for fragment extraction."""

from enum import Enum

from pydantic import BaseModel


class OutputMode(str, Enum):
    """What the extractor emits."""

    TEXT = "text"
    MARKUP = "markup"


class ExtractOptions(BaseModel):
    """Boundaries and output mode of a single extraction."""

    href: str
    begin: str | None = None
    end: str | None = None
    mode: OutputMode = OutputMode.TEXT

    @property
    def keep_markup(self) -> bool:
        return self.mode == OutputMode.MARKUP
