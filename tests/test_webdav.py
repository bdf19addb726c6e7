"""
WebDAV adapter tests.
Runs WebDAVStore against httpx.MockTransport to check request shapes and
multistatus parsing without a real server.
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone

import httpx
import pytest

from exceptions.store import LockError, ResourceNotFoundError, StoreError
from storage.webdav import WebDAVStore


BASE = "https://cloud.example/public.php/webdav"

MULTISTATUS = b"""<?xml version="1.0"?>
<d:multistatus xmlns:d="DAV:">
  <d:response>
    <d:href>/public.php/webdav/alpha/</d:href>
    <d:propstat>
      <d:prop><d:resourcetype><d:collection/></d:resourcetype></d:prop>
      <d:status>HTTP/1.1 200 OK</d:status>
    </d:propstat>
  </d:response>
  <d:response>
    <d:href>/public.php/webdav/alpha/ping</d:href>
    <d:propstat>
      <d:prop>
        <d:resourcetype/>
        <d:getlastmodified>Tue, 08 Oct 2024 00:18:15 GMT</d:getlastmodified>
      </d:prop>
      <d:status>HTTP/1.1 200 OK</d:status>
    </d:propstat>
  </d:response>
  <d:response>
    <d:href>/public.php/webdav/alpha/old%20runs/</d:href>
    <d:propstat>
      <d:prop><d:resourcetype><d:collection/></d:resourcetype></d:prop>
      <d:status>HTTP/1.1 200 OK</d:status>
    </d:propstat>
    <d:propstat>
      <d:prop><d:getlastmodified/></d:prop>
      <d:status>HTTP/1.1 404 Not Found</d:status>
    </d:propstat>
  </d:response>
</d:multistatus>
"""


class Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def make_store(recorder: Recorder, token: str | None = "share-token") -> WebDAVStore:
    return WebDAVStore(BASE, token=token, lock_timeout=30, transport=httpx.MockTransport(recorder))


async def test_list_entries_parses_multistatus():
    recorder = Recorder(httpx.Response(207, content=MULTISTATUS))
    store = make_store(recorder)

    entries = await store.list_entries("alpha")

    request = recorder.requests[0]
    assert request.method == "PROPFIND"
    assert request.url.path == "/public.php/webdav/alpha/"
    assert request.headers["Depth"] == "1"
    assert request.headers["Authorization"] == "Basic " + base64.b64encode(b"share-token:").decode()

    by_name = {entry.name: entry for entry in entries}
    assert set(by_name) == {"ping", "old runs"}
    assert by_name["ping"].is_directory is False
    assert by_name["ping"].modified_at == datetime(2024, 10, 8, 0, 18, 15, tzinfo=timezone.utc)
    assert by_name["old runs"].is_directory is True
    assert by_name["old runs"].modified_at is None
    await store.close()


async def test_list_missing_directory():
    store = make_store(Recorder(httpx.Response(404)))

    with pytest.raises(ResourceNotFoundError):
        await store.list_entries("ghost")


async def test_list_unexpected_status():
    store = make_store(Recorder(httpx.Response(500)))

    with pytest.raises(StoreError) as excinfo:
        await store.list_entries("")
    assert excinfo.value.status_code == 500


async def test_malformed_multistatus():
    store = make_store(Recorder(httpx.Response(207, content=b"<not-xml")))

    with pytest.raises(StoreError):
        await store.list_entries("alpha")


async def test_read_resource():
    recorder = Recorder(httpx.Response(200, content=b"PingDelaySeconds: 60\n"), httpx.Response(404))
    store = make_store(recorder)

    assert await store.read_resource("alpha/config.yaml") == b"PingDelaySeconds: 60\n"
    with pytest.raises(ResourceNotFoundError):
        await store.read_resource("alpha/missing")

    assert recorder.requests[0].url.path == "/public.php/webdav/alpha/config.yaml"


async def test_write_with_lock_token_sends_if_header():
    recorder = Recorder(httpx.Response(204))
    store = make_store(recorder)

    await store.write_resource("alpha/error.log", b"line\n", lock_token="opaquelocktoken:1")

    request = recorder.requests[0]
    assert request.method == "PUT"
    assert request.headers["If"] == "(<opaquelocktoken:1>)"
    assert request.content == b"line\n"


async def test_write_failure():
    store = make_store(Recorder(httpx.Response(423)))

    with pytest.raises(StoreError):
        await store.write_resource("alpha/lastNotification", b"x")


async def test_lock_and_unlock_round_trip():
    recorder = Recorder(
        httpx.Response(200, headers={"Lock-Token": "<opaquelocktoken:abc>"}),
        httpx.Response(204),
    )
    store = make_store(recorder)

    token = await store.acquire_lock("alpha/error.log")
    await store.release_lock("alpha/error.log", token)

    lock, unlock = recorder.requests
    assert token == "opaquelocktoken:abc"
    assert lock.method == "LOCK"
    assert lock.headers["Timeout"] == "Second-30"
    assert unlock.method == "UNLOCK"
    assert unlock.headers["Lock-Token"] == "<opaquelocktoken:abc>"


async def test_lock_token_from_body():
    body = (
        b'<?xml version="1.0"?><d:prop xmlns:d="DAV:"><d:lockdiscovery><d:activelock>'
        b"<d:locktoken><d:href>opaquelocktoken:xyz</d:href></d:locktoken>"
        b"</d:activelock></d:lockdiscovery></d:prop>"
    )
    store = make_store(Recorder(httpx.Response(201, content=body)))

    assert await store.acquire_lock("alpha/error.log") == "opaquelocktoken:xyz"


async def test_lock_conflict():
    store = make_store(Recorder(httpx.Response(423)))

    with pytest.raises(LockError):
        await store.acquire_lock("alpha/error.log")


async def test_append_text_locks_reads_writes_and_unlocks():
    recorder = Recorder(
        httpx.Response(200, headers={"Lock-Token": "<opaquelocktoken:abc>"}),
        httpx.Response(404),
        httpx.Response(201),
        httpx.Response(204),
    )
    store = make_store(recorder)

    await store.append_text("alpha/error.log", "first\n")

    assert [r.method for r in recorder.requests] == ["LOCK", "GET", "PUT", "UNLOCK"]
    assert recorder.requests[2].content == b"first\n"


async def test_unlock_happens_when_write_fails():
    recorder = Recorder(
        httpx.Response(200, headers={"Lock-Token": "<opaquelocktoken:abc>"}),
        httpx.Response(200, content=b"old\n"),
        httpx.Response(507),
        httpx.Response(204),
    )
    store = make_store(recorder)

    with pytest.raises(StoreError):
        await store.append_text("alpha/error.log", "new\n")

    assert recorder.requests[-1].method == "UNLOCK"


async def test_transport_error_becomes_store_error():
    def explode(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = WebDAVStore(BASE, transport=httpx.MockTransport(explode))

    with pytest.raises(StoreError):
        await store.read_resource("alpha/config.yaml")
