"""
============================================================================
DEADMAN RELAY - RELAY GATE
============================================================================
Authorizes inbound notification submissions and forwards them to the
alert sink.

Request Pipeline
----------------
1.  Token:   Authorization header → ?token= → "public"
2.  Resolve: TokenCache.resolve_token()            (403 on failure)
3.  Channel: request path without the leading '/'   (403 if the token's
             channelRegex does not match)
4.  Content: shaped per ?format=
                 json          body (or ?message=) as structured JSON
                 apprise_json  {title, type, message} → "# title (type)\\nmessage"
                 markdown/md   body (or ?message=) as text   (default)
5.  Empty:   400
6.  Deliver: AlertSink.notify(display_name, channel, content, silent)
             → 200, or 502 when delivery fails

``/healthz`` always answers 200 without touching any of the above.

The gate is framework-free; relay/server.py adapts aiohttp requests to
RelayRequest and RelayResponse back to aiohttp responses.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from config.constants import Defaults, HTTPStatus, RelayFormat, RelayPaths
from exceptions.monitoring import DeliveryError
from exceptions.relay import BadRequest, TokenFailureKind, Unauthorized
from monitoring.alerts import AlertContent, AlertSink, StructuredContent, TextContent
from relay.tokens import TokenCache
from utils.logger import get_logger


logger = get_logger("RelayGate")


@dataclass(frozen=True)
class RelayRequest:
    """Transport-independent view of an inbound request."""
    method: str
    path: str
    query: Mapping[str, str] = field(default_factory=dict)
    authorization: Optional[str] = None
    body: bytes = b""


@dataclass(frozen=True)
class RelayResponse:
    status: int
    text: str

    @classmethod
    def ok(cls) -> "RelayResponse":
        return cls(HTTPStatus.OK, "OK")


class RelayGate:
    """
    Parameters
    ----------
    token_cache : TokenCache
        Shared cache created at startup.
    alert_sink : AlertSink
        Where authorized submissions go.
    public_token : str
        Token assumed when a request carries none.
    """

    def __init__(self, token_cache: TokenCache, alert_sink: AlertSink, public_token: str = "public"):
        self.token_cache = token_cache
        self.alert_sink = alert_sink
        self.public_token = public_token

    async def handle_notification_request(self, request: RelayRequest) -> RelayResponse:
        if request.path == RelayPaths.HEALTHZ:
            return RelayResponse.ok()

        try:
            return await self._handle(request)
        except Unauthorized as e:
            logger.debug(f"Forbidden {request.method} {request.path}: {e.kind.value}")
            return RelayResponse(HTTPStatus.FORBIDDEN, "Unauthorized")
        except BadRequest as e:
            return RelayResponse(HTTPStatus.BAD_REQUEST, e.message)
        except DeliveryError as e:
            logger.error(f"Delivery failed for {request.path}: {e.message}")
            return RelayResponse(HTTPStatus.BAD_GATEWAY, "Failed to send notification")

    async def _handle(self, request: RelayRequest) -> RelayResponse:
        record = await self.token_cache.resolve_token(self.extract_token(request))

        channel = request.path[1:] if request.path.startswith("/") else request.path
        if not record.allows(channel):
            raise Unauthorized(TokenFailureKind.CHANNEL_DENIED)

        silent = request.query.get("silent") == "true"
        content = self.extract_content(RelayFormat.parse(request.query.get("format")), request)

        await self.alert_sink.notify(record.display_name, channel, content, silent)
        logger.info(f"Relayed {request.method} to {channel} from {record.display_name}")
        return RelayResponse.ok()

    # ------------------------------------------------------------------
    # REQUEST PARSING
    # ------------------------------------------------------------------

    def extract_token(self, request: RelayRequest) -> str:
        header = (request.authorization or "").strip()
        scheme, _, rest = header.partition(" ")
        if scheme.lower() == "bearer":
            header = rest.strip()
        if header:
            return header
        return request.query.get("token") or self.public_token

    @classmethod
    def extract_content(cls, fmt: RelayFormat, request: RelayRequest) -> AlertContent:
        """
        Shape the request payload for ``fmt``.

        Raises:
            BadRequest: nothing to send, or unparseable JSON
        """
        has_body = bool(request.body.strip())
        query_message = request.query.get("message")

        if fmt == RelayFormat.MARKDOWN:
            if has_body:
                text = request.body.decode("utf-8", errors="replace")
            else:
                text = query_message or ""
            if not text:
                raise BadRequest(format_name=fmt.value)
            return TextContent(text)

        data = cls._json_payload(fmt, request, has_body, query_message)

        if fmt == RelayFormat.JSON:
            if isinstance(data, str):
                return TextContent(data)
            return StructuredContent(data)

        if not isinstance(data, dict):
            raise BadRequest("apprise_json payload must be an object", format_name=fmt.value)
        title = data.get("title") or Defaults.NO_TITLE
        kind = data.get("type") or Defaults.NO_TYPE
        message = data.get("message")
        return TextContent(f"# {title} ({kind})\n{'' if message is None else message}")

    @staticmethod
    def _json_payload(
        fmt: RelayFormat,
        request: RelayRequest,
        has_body: bool,
        query_message: Optional[str],
    ) -> Any:
        if has_body:
            try:
                data = json.loads(request.body)
            except ValueError as e:
                raise BadRequest("Body is not valid JSON", format_name=fmt.value, cause=e) from e
        elif query_message:
            try:
                data = json.loads(query_message)
            except ValueError:
                # Plain text in ?message= is passed through as-is.
                data = query_message
        else:
            data = None

        if data is None:
            raise BadRequest(format_name=fmt.value)
        return data
