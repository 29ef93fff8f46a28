"""Object store interface and an in-process implementation."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple


class ObjectStore(ABC):
    """Durable storage for materialized assets, addressed by path within one bucket."""

    @abstractmethod
    async def upload(
        self, path: str, data: bytes, content_type: str, upsert: bool = True
    ) -> None:
        """Write ``data`` at ``path``. With ``upsert`` an existing object is replaced."""
        ...

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Publicly resolvable URL for an object path."""
        ...

    @abstractmethod
    async def remove(self, paths: List[str]) -> None:
        ...


class InMemoryObjectStore(ObjectStore):
    """Keeps objects in a dict. Counts writes so duplicate uploads are observable."""

    def __init__(self, base_url: str = "memory://objects"):
        self._base_url = base_url.rstrip("/")
        self._objects: Dict[str, Tuple[bytes, str]] = {}
        self.upload_count = 0

    async def upload(
        self, path: str, data: bytes, content_type: str, upsert: bool = True
    ) -> None:
        if not upsert and path in self._objects:
            raise FileExistsError(f"Object already exists: {path}")
        self._objects[path] = (bytes(data), content_type)
        self.upload_count += 1

    def public_url(self, path: str) -> str:
        return f"{self._base_url}/{path}"

    async def remove(self, paths: List[str]) -> None:
        for path in paths:
            self._objects.pop(path, None)

    def get(self, path: str) -> Optional[Tuple[bytes, str]]:
        return self._objects.get(path)

    def paths(self) -> List[str]:
        return sorted(self._objects)
