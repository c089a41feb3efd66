"""Network representations of remote records.

The wire format uses camelCase keys.
"""

from dataclasses import dataclass
from typing import Any

from ..database.models import AuthorEntity, TopicEntity


@dataclass
class NetworkAuthor:
    """An author as returned by the remote."""

    id: str
    name: str
    image_url: str = ""
    twitter: str = ""
    medium_page: str = ""
    bio: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NetworkAuthor":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            image_url=data.get("imageUrl", ""),
            twitter=data.get("twitter", ""),
            medium_page=data.get("mediumPage", ""),
            bio=data.get("bio", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "imageUrl": self.image_url,
            "twitter": self.twitter,
            "mediumPage": self.medium_page,
            "bio": self.bio,
        }

    def as_entity(self) -> AuthorEntity:
        return AuthorEntity(
            id=self.id,
            name=self.name,
            image_url=self.image_url,
            twitter=self.twitter,
            medium_page=self.medium_page,
            bio=self.bio,
        )


@dataclass
class NetworkTopic:
    """A topic as returned by the remote."""

    id: str
    name: str
    short_description: str = ""
    long_description: str = ""
    url: str = ""
    image_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NetworkTopic":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            short_description=data.get("shortDescription", ""),
            long_description=data.get("longDescription", ""),
            url=data.get("url", ""),
            image_url=data.get("imageUrl", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "shortDescription": self.short_description,
            "longDescription": self.long_description,
            "url": self.url,
            "imageUrl": self.image_url,
        }

    def as_entity(self) -> TopicEntity:
        return TopicEntity(
            id=self.id,
            name=self.name,
            short_description=self.short_description,
            long_description=self.long_description,
            url=self.url,
            image_url=self.image_url,
        )
