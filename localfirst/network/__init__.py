"""Remote sources and their wire models."""

from .models import NetworkAuthor, NetworkTopic
from .source import HttpRemoteSource, JsonFileRemoteSource, RemoteSource

__all__ = [
    "HttpRemoteSource",
    "JsonFileRemoteSource",
    "NetworkAuthor",
    "NetworkTopic",
    "RemoteSource",
]
