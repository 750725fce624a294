"""
Pure ASGI trace-id middleware.

Keeps the caller's ``trace-id`` header when it is a short token of safe
characters, otherwise generates a new ULID. The id is stored in the request
context (picked up by the logging filter) and echoed on the response.
"""

import logging

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.ids import accept_trace_id, generate_ulid
from ..core.request_context import reset_trace_id, set_trace_id

logger = logging.getLogger(__name__)

TRACE_ID_HEADER = "trace-id"


class TraceIdMiddlewareASGI:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = None
        for name, value in scope.get("headers", []):
            if name.decode("latin-1").lower() == TRACE_ID_HEADER:
                incoming = accept_trace_id(value.decode("latin-1"))
                break
        trace_id = incoming or generate_ulid()

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[TRACE_ID_HEADER] = trace_id
            await send(message)

        token = set_trace_id(trace_id)
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            reset_trace_id(token)
