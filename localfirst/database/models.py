"""Persisted representations of synced entities."""

import sqlite3
from dataclasses import astuple, dataclass, fields
from typing import ClassVar

from ..model import Author, Topic


@dataclass(frozen=True)
class AuthorEntity:
    """Row of the ``authors`` table."""

    TABLE: ClassVar[str] = "authors"

    id: str
    name: str
    image_url: str = ""
    twitter: str = ""
    medium_page: str = ""
    bio: str = ""

    @classmethod
    def columns(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "AuthorEntity":
        return cls(**{name: row[name] for name in cls.columns()})

    def to_row(self) -> tuple:
        return astuple(self)

    def as_external_model(self) -> Author:
        return Author(
            id=self.id,
            name=self.name,
            image_url=self.image_url,
            twitter=self.twitter,
            medium_page=self.medium_page,
            bio=self.bio,
        )


@dataclass(frozen=True)
class TopicEntity:
    """Row of the ``topics`` table."""

    TABLE: ClassVar[str] = "topics"

    id: str
    name: str
    short_description: str = ""
    long_description: str = ""
    url: str = ""
    image_url: str = ""

    @classmethod
    def columns(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "TopicEntity":
        return cls(**{name: row[name] for name in cls.columns()})

    def to_row(self) -> tuple:
        return astuple(self)

    def as_external_model(self) -> Topic:
        return Topic(
            id=self.id,
            name=self.name,
            short_description=self.short_description,
            long_description=self.long_description,
            url=self.url,
            image_url=self.image_url,
        )
