"""Entity kinds kept in sync, each with its own change list version."""

from dataclasses import dataclass

from .database.models import AuthorEntity, TopicEntity
from .network.models import NetworkAuthor, NetworkTopic


@dataclass(frozen=True)
class EntityKind:
    """Ties together the representations of one synced collection."""

    name: str  # Key of the change list version: "author"
    remote_path: str  # Collection path on the remote: "authors"
    network_type: type
    entity_type: type


AUTHORS = EntityKind(
    name="author",
    remote_path="authors",
    network_type=NetworkAuthor,
    entity_type=AuthorEntity,
)

TOPICS = EntityKind(
    name="topic",
    remote_path="topics",
    network_type=NetworkTopic,
    entity_type=TopicEntity,
)

ALL_KINDS: dict[str, EntityKind] = {kind.name: kind for kind in (AUTHORS, TOPICS)}


def get_kind(name: str) -> EntityKind:
    """Look up a kind by its version key or its collection path.

    Raises:
        KeyError: If no kind matches.
    """
    for kind in ALL_KINDS.values():
        if name in (kind.name, kind.remote_path):
            return kind
    raise KeyError(f"Unknown entity kind: {name}")
