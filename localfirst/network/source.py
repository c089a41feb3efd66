"""Remote sources returning full, ordered collections."""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx

from ..errors import NetworkError

if TYPE_CHECKING:
    from ..kinds import EntityKind

logger = logging.getLogger(__name__)


def parse_collection(kind: "EntityKind", payload: Any) -> list:
    """Turn a decoded JSON payload into network models of ``kind``.

    Accepts either a bare array or an object with an ``items`` array.

    Raises:
        NetworkError: If the payload does not have the expected shape.
    """
    items = payload.get("items") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise NetworkError(f"Malformed {kind.remote_path} payload: expected a list")

    try:
        return [kind.network_type.from_dict(item) for item in items]
    except (KeyError, TypeError, AttributeError) as e:
        raise NetworkError(f"Malformed {kind.remote_path} record: {e}") from e


class RemoteSource(ABC):
    """Source of truth for synced collections."""

    @abstractmethod
    async def fetch_all(self, kind: "EntityKind") -> list:
        """Fetch the full remote collection of ``kind``, oldest first.

        Raises:
            NetworkError: If the collection could not be fetched.
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""


class HttpRemoteSource(RemoteSource):
    """Fetches collections with ``GET {base_url}/{kind.remote_path}``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the HTTP source.

        Args:
            base_url: Base URL of the remote API.
            timeout: Request timeout in seconds.
            client: Optional preconfigured client; created lazily otherwise.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_all(self, kind: "EntityKind") -> list:
        path = f"/{kind.remote_path}"

        try:
            client = await self._get_client()
            response = await client.get(path)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP {e.response.status_code} fetching {path}"
            ) from e
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timed out fetching {path}") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to {path} failed: {e}") from e
        except httpx.InvalidURL as e:
            raise NetworkError(f"Invalid remote URL {self.base_url}: {e}") from e
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from {path}: {e}") from e

        items = parse_collection(kind, payload)
        logger.debug(f"Fetched {len(items)} {kind.remote_path} from {self.base_url}")
        return items


class JsonFileRemoteSource(RemoteSource):
    """Serves collections from a local JSON document.

    The document maps collection paths to arrays, for example
    ``{"authors": [...], "topics": [...]}``. It is re-read on every fetch.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    async def fetch_all(self, kind: "EntityKind") -> list:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise NetworkError(f"Cannot load {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise NetworkError(f"Malformed document {self.path}: expected an object")

        return parse_collection(kind, data.get(kind.remote_path, []))
