"""Supabase Storage bucket as the object store."""

from typing import List

from supabase import Client

from app.storage.object_store import ObjectStore


class SupabaseObjectStore(ObjectStore):
    """All assets live in a single named bucket."""

    def __init__(self, client: Client, bucket: str = "directors-palette"):
        self._client = client
        self._bucket = bucket

    def _bucket_api(self):
        return self._client.storage.from_(self._bucket)

    async def upload(
        self, path: str, data: bytes, content_type: str, upsert: bool = True
    ) -> None:
        self._bucket_api().upload(
            path,
            data,
            file_options={
                "content-type": content_type,
                "upsert": "true" if upsert else "false",
            },
        )

    def public_url(self, path: str) -> str:
        return self._bucket_api().get_public_url(path)

    async def remove(self, paths: List[str]) -> None:
        if paths:
            self._bucket_api().remove(paths)
