"""
Relay gate tests.
Exercises token extraction, channel authorization, the three payload
formats and the mapping of failures onto HTTP statuses.
"""

from __future__ import annotations

import json

import pytest

from monitoring.alerts import StructuredContent, TextContent
from relay.gate import RelayGate, RelayRequest
from relay.tokens import TokenCache
from tests.support import RecordingAlertSink


@pytest.fixture
def gate(store, sink, monotonic):
    store.put("tokens/abc123.yaml", 'channelRegex: "^alerts-.*"\nname: "backup-server"\n')
    return RelayGate(TokenCache(store, clock=monotonic), sink)


def post(path, body=b"", query=None, authorization="Bearer abc123"):
    return RelayRequest(
        method="POST",
        path=path,
        query=query or {},
        authorization=authorization,
        body=body if isinstance(body, bytes) else body.encode("utf-8"),
    )


async def test_healthz_needs_no_token(gate, store):
    response = await gate.handle_notification_request(
        RelayRequest(method="GET", path="/healthz")
    )

    assert (response.status, response.text) == (200, "OK")
    assert store.reads == []


async def test_markdown_is_default_format(gate, sink):
    response = await gate.handle_notification_request(post("/alerts-db", "disk *full*"))

    assert (response.status, response.text) == (200, "OK")
    assert sink.sent[0].source == "backup-server"
    assert sink.sent[0].channel == "alerts-db"
    assert sink.sent[0].content == TextContent("disk *full*")
    assert sink.sent[0].silent is False


@pytest.mark.parametrize("fmt", ["json", "apprise_json", "markdown", "md"])
async def test_channel_outside_pattern_is_forbidden(gate, sink, fmt):
    body = json.dumps({"title": "X", "type": "Y", "message": "Z"})

    response = await gate.handle_notification_request(
        post("/billing", body, query={"format": fmt})
    )

    assert (response.status, response.text) == (403, "Unauthorized")
    assert sink.sent == []


async def test_apprise_json_is_rendered_as_heading(gate, sink):
    body = json.dumps({"title": "X", "type": "Y", "message": "Z"})

    response = await gate.handle_notification_request(
        post("/alerts-x", body, query={"format": "apprise_json"})
    )

    assert response.status == 200
    assert sink.sent[0].content == TextContent("# X (Y)\nZ")


async def test_apprise_json_defaults(gate, sink):
    await gate.handle_notification_request(
        post("/alerts-x", json.dumps({"message": "Z"}), query={"format": "apprise_json"})
    )

    assert sink.sent[0].content == TextContent("# no title (no type)\nZ")


async def test_apprise_json_requires_object(gate, sink):
    response = await gate.handle_notification_request(
        post("/alerts-x", "[1, 2]", query={"format": "apprise_json"})
    )

    assert response.status == 400
    assert sink.sent == []


async def test_json_body_is_structured(gate, sink):
    response = await gate.handle_notification_request(
        post("/alerts-x", '{"cpu": 97, "host": "db1"}', query={"format": "json"})
    )

    assert response.status == 200
    assert sink.sent[0].content == StructuredContent({"cpu": 97, "host": "db1"})


async def test_json_from_query_message_without_body(gate, sink):
    await gate.handle_notification_request(
        post("/alerts-x", query={"format": "json", "message": '{"a": 1}'})
    )
    await gate.handle_notification_request(
        post("/alerts-x", query={"format": "json", "message": "plain words"})
    )

    assert sink.sent[0].content == StructuredContent({"a": 1})
    assert sink.sent[1].content == TextContent("plain words")


async def test_invalid_json_body_is_bad_request(gate, sink):
    response = await gate.handle_notification_request(
        post("/alerts-x", "{not json", query={"format": "json"})
    )

    assert response.status == 400
    assert sink.sent == []


@pytest.mark.parametrize("fmt", ["json", "apprise_json", "markdown"])
async def test_empty_content_is_bad_request(gate, sink, fmt):
    response = await gate.handle_notification_request(post("/alerts-x", query={"format": fmt}))

    assert (response.status, response.text) == (400, "No data found")
    assert sink.sent == []


async def test_markdown_from_query_message(gate, sink):
    await gate.handle_notification_request(
        post("/alerts-x", query={"message": "hello"})
    )

    assert sink.sent[0].content == TextContent("hello")


async def test_body_wins_over_query_message(gate, sink):
    await gate.handle_notification_request(
        post("/alerts-x", "from body", query={"message": "from query"})
    )

    assert sink.sent[0].content == TextContent("from body")


async def test_silent_flag(gate, sink):
    await gate.handle_notification_request(post("/alerts-x", "quiet", query={"silent": "true"}))
    await gate.handle_notification_request(post("/alerts-x", "loud", query={"silent": "yes"}))

    assert [a.silent for a in sink.sent] == [True, False]


async def test_token_from_query_parameter(gate, sink):
    response = await gate.handle_notification_request(
        post("/alerts-x", "hi", query={"token": "abc123"}, authorization=None)
    )

    assert response.status == 200


@pytest.mark.parametrize("header", ["Bearer ", "bearer", "BEARER   "])
async def test_empty_bearer_header_falls_back_to_query_token(gate, store, header):
    response = await gate.handle_notification_request(
        post("/alerts-x", "hi", query={"token": "abc123"}, authorization=header)
    )

    assert response.status == 200
    assert store.reads == ["tokens/abc123.yaml"]


async def test_raw_authorization_header_is_accepted(gate, sink):
    response = await gate.handle_notification_request(
        post("/alerts-x", "hi", authorization="abc123")
    )

    assert response.status == 200


async def test_unknown_token_is_forbidden(gate, sink):
    response = await gate.handle_notification_request(
        post("/alerts-x", "hi", authorization="Bearer wrong")
    )

    assert (response.status, response.text) == (403, "Unauthorized")


async def test_missing_public_token_is_forbidden(gate, store, sink):
    response = await gate.handle_notification_request(
        post("/anything", "hi", authorization=None)
    )

    assert response.status == 403
    assert store.reads == ["tokens/public.yaml"]


async def test_public_token_is_used_without_credentials(gate, store, sink):
    store.put("tokens/public.yaml", "channelRegex: ^open$\nname: anyone\n")

    response = await gate.handle_notification_request(post("/open", "hi", authorization=None))

    assert response.status == 200
    assert sink.sent[0].source == "anyone"


async def test_delivery_failure_is_bad_gateway(store, monotonic):
    store.put("tokens/abc123.yaml", "channelRegex: .*\n")
    gate = RelayGate(TokenCache(store, clock=monotonic), RecordingAlertSink(fail=True))

    response = await gate.handle_notification_request(post("/alerts-x", "hi"))

    assert response.status == 502
