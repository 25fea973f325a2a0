"""Supabase Storage REST client (httpx).

Thin async wrapper over the ``/storage/v1`` endpoints used by the media
repositories. Authenticates with the service role key, so callers are
responsible for scoping paths to the current user.
"""

from __future__ import annotations

import os
from typing import List, Optional
from urllib.parse import quote

import httpx

from api.utils.debug import print__storage_debug
from storage.errors import StorageError

STORAGE_TIMEOUT_SECONDS = 60
STORAGE_NOT_CONFIGURED = "Storage is not configured"


def _object_path(path: str) -> str:
    return quote(path, safe="/")


class SupabaseStorage:
    def __init__(self, url: str, service_key: str, timeout: float = STORAGE_TIMEOUT_SECONDS):
        self.url = url.rstrip("/")
        self.base_url = f"{self.url}/storage/v1"
        self.service_key = service_key
        self.timeout = timeout

    def _headers(self, extra: Optional[dict] = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{endpoint}",
                    headers=self._headers(kwargs.pop("headers", None)),
                    **kwargs,
                )
        except httpx.HTTPError as e:
            print__storage_debug(f"❌ Storage {method} {endpoint} failed: {type(e).__name__}: {e}")
            raise StorageError(f"Storage request failed: {e}", cause=e) from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            print__storage_debug(
                f"❌ Storage {method} {endpoint} -> {response.status_code}: {message}"
            )
            raise StorageError(message or "Storage request failed", status_code=response.status_code)

        return response

    # ==========================================================================
    # OBJECT OPERATIONS
    # ==========================================================================
    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
        cache_control: Optional[str] = None,
    ) -> str:
        headers = {"Content-Type": content_type, "x-upsert": "true" if upsert else "false"}
        if cache_control:
            headers["Cache-Control"] = f"max-age={cache_control}"

        await self._request(
            "POST",
            f"/object/{bucket}/{_object_path(path)}",
            content=data,
            headers=headers,
        )
        print__storage_debug(f"✅ Uploaded {bucket}/{path} ({len(data)} bytes)")
        return path

    async def remove(self, bucket: str, paths: List[str]) -> None:
        if not paths:
            return
        await self._request("DELETE", f"/object/{bucket}", json={"prefixes": list(paths)})
        print__storage_debug(f"🧹 Removed {len(paths)} object(s) from {bucket}")

    async def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        response = await self._request(
            "POST",
            f"/object/sign/{bucket}/{_object_path(path)}",
            json={"expiresIn": expires_in},
        )
        signed_path = response.json().get("signedURL") or response.json().get("signedUrl")
        if not signed_path:
            raise StorageError("Failed to generate access URL")
        return f"{self.base_url}{signed_path}"

    async def download(self, bucket: str, path: str) -> bytes:
        response = await self._request("GET", f"/object/{bucket}/{_object_path(path)}")
        return response.content

    async def list(self, bucket: str, prefix: str, limit: int = 100) -> List[dict]:
        response = await self._request(
            "POST",
            f"/object/list/{bucket}",
            json={"prefix": prefix, "limit": limit, "offset": 0},
        )
        return response.json() or []

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/object/public/{bucket}/{_object_path(path)}"


_storage: Optional[SupabaseStorage] = None


def get_storage() -> SupabaseStorage:
    """Shared client built from SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY.

    Raises:
        StorageError: 503 when Supabase is not configured
    """
    global _storage

    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise StorageError(STORAGE_NOT_CONFIGURED, status_code=503)

    if _storage is None or _storage.url != url.rstrip("/"):
        _storage = SupabaseStorage(url, key)
    return _storage
