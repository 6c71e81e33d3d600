from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Tuple
from datetime import datetime


class TargetSource(str, Enum):
    ORIGINAL = "original"
    ESCAPED_FRAGMENT = "escaped_fragment"


class TargetReference(BaseModel):
    """The URL a caller asked for, plus its escaped-fragment rewrite if any."""

    model_config = ConfigDict(frozen=True)

    original: str
    derived: Optional[str] = None

    @property
    def source(self) -> TargetSource:
        if self.derived is not None:
            return TargetSource.ESCAPED_FRAGMENT
        return TargetSource.ORIGINAL

    @property
    def active_url(self) -> str:
        if self.source is TargetSource.ESCAPED_FRAGMENT:
            return self.derived
        return self.original


class LinkPreview(BaseModel):
    model_config = ConfigDict(frozen=True)

    icon: str = ""
    name: str = ""
    title: str = ""
    description: str = ""
    images: Tuple[str, ...] = ()
    link: str = ""


class Document(BaseModel):
    model_config = ConfigDict(frozen=True)

    body: bytes
    preview: LinkPreview


class PreviewResponse(BaseModel):
    url: str
    link: str
    icon: str = ""
    name: str = ""
    title: str = ""
    description: str = ""
    images: List[str] = Field(default_factory=list)
    fetched_at: datetime
