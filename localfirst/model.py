"""External models handed out by repositories."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Author:
    """An author as seen by callers of the repository."""

    id: str
    name: str
    image_url: str = ""
    twitter: str = ""
    medium_page: str = ""
    bio: str = ""


@dataclass(frozen=True)
class Topic:
    """A topic as seen by callers of the repository."""

    id: str
    name: str
    short_description: str = ""
    long_description: str = ""
    url: str = ""
    image_url: str = ""
