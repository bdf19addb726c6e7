"""
============================================================================
DEADMAN RELAY - WEBDAV STORE
============================================================================
MarkerStore implementation speaking WebDAV over an httpx async client.

Public shares authenticate with the share token as the username and an
empty password. Only the handful of verbs the service needs are used:

    PROPFIND (Depth: 1)  → list_entries
    GET                  → read_resource
    PUT                  → write_resource
    LOCK / UNLOCK        → acquire_lock / release_lock

Every request is bounded by the configured httpx timeout; transport
failures surface as StoreError.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from typing import Dict, List, Optional
from urllib.parse import quote, unquote, urlsplit
from xml.etree import ElementTree

import httpx

from config.settings import StoreSettings
from exceptions.store import LockError, ResourceNotFoundError, StoreError
from storage.base import MarkerStore, StoreEntry
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("WebDAV")

DAV_NS = "{DAV:}"

PROPFIND_BODY = (
    b'<?xml version="1.0" encoding="utf-8"?>'
    b'<d:propfind xmlns:d="DAV:"><d:prop>'
    b"<d:resourcetype/><d:getlastmodified/>"
    b"</d:prop></d:propfind>"
)

LOCK_BODY = (
    b'<?xml version="1.0" encoding="utf-8"?>'
    b'<d:lockinfo xmlns:d="DAV:">'
    b"<d:lockscope><d:exclusive/></d:lockscope>"
    b"<d:locktype><d:write/></d:locktype>"
    b"</d:lockinfo>"
)


class WebDAVStore(MarkerStore):
    """
    WebDAV-backed marker store.

    Parameters
    ----------
    base_url : str
        Endpoint of the share, e.g. ``https://host/public.php/webdav``.
    token : str | None
        Share token used as the basic-auth username.
    timeout : float
        Per-request timeout in seconds.
    lock_timeout : int
        Lock lifetime requested from the server in seconds.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        lock_timeout: int = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._lock_timeout = lock_timeout
        self._client = httpx.AsyncClient(
            base_url=self._base_url + "/",
            auth=httpx.BasicAuth(token, "") if token else None,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: StoreSettings, token: Optional[str]) -> "WebDAVStore":
        return cls(
            base_url=settings.base_url,
            token=token,
            timeout=settings.timeout,
            lock_timeout=settings.lock_timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # PRIMITIVES
    # ------------------------------------------------------------------

    async def list_entries(self, path: str) -> List[StoreEntry]:
        response = await self._request(
            "PROPFIND",
            path,
            collection=True,
            headers={"Depth": "1", "Content-Type": "application/xml; charset=utf-8"},
            content=PROPFIND_BODY,
        )
        if response.status_code == 404:
            raise ResourceNotFoundError(path)
        if response.status_code != 207:
            raise StoreError(
                f"PROPFIND failed with status {response.status_code}",
                path=path,
                status_code=response.status_code,
            )

        own_path = unquote(response.request.url.path).rstrip("/")
        return self._parse_multistatus(response.content, own_path, path)

    async def read_resource(self, path: str) -> bytes:
        response = await self._request("GET", path)
        if response.status_code == 404:
            raise ResourceNotFoundError(path)
        if response.status_code != 200:
            raise StoreError(
                f"GET failed with status {response.status_code}",
                path=path,
                status_code=response.status_code,
            )
        return response.content

    async def write_resource(
        self, path: str, data: bytes, lock_token: Optional[str] = None
    ) -> None:
        headers = {"Content-Type": "application/octet-stream"}
        if lock_token:
            headers["If"] = f"(<{lock_token}>)"

        response = await self._request("PUT", path, headers=headers, content=data)
        if response.status_code not in (200, 201, 204):
            raise StoreError(
                f"PUT failed with status {response.status_code}",
                path=path,
                status_code=response.status_code,
            )
        logger.debug(f"Wrote {len(data)} bytes to {path}")

    async def acquire_lock(self, path: str) -> str:
        response = await self._request(
            "LOCK",
            path,
            headers={
                "Depth": "0",
                "Timeout": f"Second-{self._lock_timeout}",
                "Content-Type": "application/xml; charset=utf-8",
            },
            content=LOCK_BODY,
        )
        if response.status_code not in (200, 201):
            raise LockError(
                f"LOCK failed with status {response.status_code}",
                path=path,
                status_code=response.status_code,
            )

        token = self._extract_lock_token(response)
        if not token:
            raise LockError("LOCK response carried no lock token", path=path)
        logger.debug(f"Locked {path}")
        return token

    async def release_lock(self, path: str, token: str) -> None:
        response = await self._request("UNLOCK", path, headers={"Lock-Token": f"<{token}>"})
        if response.status_code not in (200, 204):
            raise LockError(
                f"UNLOCK failed with status {response.status_code}",
                path=path,
                status_code=response.status_code,
            )
        logger.debug(f"Unlocked {path}")

    # ------------------------------------------------------------------
    # INTERNALS
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        collection: bool = False,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[bytes] = None,
    ) -> httpx.Response:
        url = quote(path.strip("/"))
        if collection and url:
            url += "/"
        try:
            return await self._client.request(method, url, headers=headers, content=content)
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {path} failed: {e}", path=path, cause=e) from e

    @staticmethod
    def _parse_multistatus(body: bytes, own_path: str, path: str) -> List[StoreEntry]:
        try:
            root = ElementTree.fromstring(body)
        except ElementTree.ParseError as e:
            raise StoreError("Malformed PROPFIND response", path=path, cause=e) from e

        entries = []
        for response in root.findall(f"{DAV_NS}response"):
            href = response.findtext(f"{DAV_NS}href") or ""
            href_path = unquote(urlsplit(href).path).rstrip("/")
            if href_path == own_path:
                continue

            is_directory = False
            modified_raw = None
            for propstat in response.findall(f"{DAV_NS}propstat"):
                status = propstat.findtext(f"{DAV_NS}status") or ""
                if " 200 " not in f"{status} ":
                    continue
                prop = propstat.find(f"{DAV_NS}prop")
                if prop is None:
                    continue
                resource_type = prop.find(f"{DAV_NS}resourcetype")
                if resource_type is not None and resource_type.find(f"{DAV_NS}collection") is not None:
                    is_directory = True
                modified_raw = prop.findtext(f"{DAV_NS}getlastmodified") or modified_raw

            entries.append(StoreEntry(
                name=href_path.rsplit("/", 1)[-1],
                is_directory=is_directory,
                modified_at=TimeHelper.parse_http_date(modified_raw),
            ))
        return entries

    @staticmethod
    def _extract_lock_token(response: httpx.Response) -> Optional[str]:
        header = response.headers.get("Lock-Token")
        if header:
            return header.strip().strip("<>")
        try:
            root = ElementTree.fromstring(response.content)
        except ElementTree.ParseError:
            return None
        href = root.findtext(f".//{DAV_NS}locktoken/{DAV_NS}href")
        return href.strip() if href else None
