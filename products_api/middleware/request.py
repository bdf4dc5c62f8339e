# products_api/middleware/request.py
import asyncio
import logging
import time
import uuid
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from .errors import error_response

logger = logging.getLogger(__name__)


class RequestTimeoutMiddleware:
    """Answers 408 when a request runs past ``timeout`` seconds.

    The handler is not cancelled: it keeps running in the background and its
    response is dropped.
    """

    def __init__(self, app: ASGIApp, timeout: float):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False
        abandoned = False

        async def guarded_send(message: Message):
            nonlocal response_started
            if abandoned:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        task = asyncio.ensure_future(self.app(scope, receive, guarded_send))
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self.timeout)
            return
        except asyncio.TimeoutError:
            if response_started:
                await task
                return

        abandoned = True
        task.add_done_callback(_log_abandoned)

        request = Request(scope, receive)
        logger.error(f"Request timeout: {request.method} {request.url.path}")
        response = error_response(request, "Request timeout", 408, "REQUEST_TIMEOUT")
        await response(scope, receive, send)


def _log_abandoned(task: "asyncio.Future"):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Abandoned request failed after timeout: {exc}")


class RequestContextMiddleware:
    """X-Request-ID propagation and one access log line per request"""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        request_id = headers.get(b"x-request-id", b"").decode("latin-1") or uuid.uuid4().hex[:13]
        scope.setdefault("state", {})["request_id"] = request_id
        started = time.perf_counter()
        status_code = 500

        async def send_with_id(message: Message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + [
                    (b"x-request-id", request_id.encode("latin-1"))
                ]
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            elapsed = (time.perf_counter() - started) * 1000
            logger.info(
                f"{scope.get('method')} {scope.get('path')} {status_code} "
                f"{elapsed:.1f}ms request_id={request_id}"
            )
