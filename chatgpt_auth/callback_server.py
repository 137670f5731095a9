"""
Single-use loopback server receiving the OAuth redirect
"""
import asyncio
import errno
import html
import logging
from enum import Enum
from typing import Optional

from aiohttp import web

from .constants import (
    OAUTH_CALLBACK_HOST,
    OAUTH_CALLBACK_PATH,
    OAUTH_CALLBACK_PORT,
    OAUTH_CALLBACK_TIMEOUT,
)
from .errors import AuthCancelledError, AuthTimeoutError, PortInUseError
from .models import CallbackResult

logger = logging.getLogger(__name__)


SUCCESS_PAGE = """<!DOCTYPE html>
<html>
    <head><title>Authentication Successful</title></head>
    <body style="font-family: sans-serif; text-align: center; padding: 50px;">
        <h1>Authentication Successful</h1>
        <p>You have signed in with your ChatGPT account.</p>
        <p>You can now close this tab and return to the application.</p>
    </body>
</html>
"""

FAILURE_PAGE = """<!DOCTYPE html>
<html>
    <head><title>Authentication Failed</title></head>
    <body style="font-family: sans-serif; text-align: center; padding: 50px;">
        <h1>Authentication Failed</h1>
        <p>Error: {error}</p>
        <p>{description}</p>
        <p>You can close this tab and return to the application.</p>
    </body>
</html>
"""

NOT_FOUND_PAGE = "<html><body><h1>404 Not Found</h1><p>OAuth callback endpoint not found.</p></body></html>"

ALREADY_HANDLED_PAGE = "<html><body><h1>410 Gone</h1><p>This sign-in callback was already handled.</p></body></html>"


class ListenerState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    CALLBACK_RECEIVED = "callback_received"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    CLOSED = "closed"


def _consume_exception(future: asyncio.Future) -> None:
    # Keeps asyncio from reporting an unretrieved exception when nobody waits
    if not future.cancelled():
        future.exception()


class CallbackListener:
    """Loopback HTTP server that captures exactly one OAuth redirect

    The listener binds to 127.0.0.1 only, on the port of the registered
    redirect URI. The first GET to the callback path resolves
    ``wait_for_callback``; the server then shuts itself down after
    ``shutdown_delay`` seconds so the browser receives its page. If no
    callback arrives within ``timeout`` seconds the wait fails with
    ``AuthTimeoutError``.
    """

    def __init__(
        self,
        port: int = OAUTH_CALLBACK_PORT,
        timeout: float = OAUTH_CALLBACK_TIMEOUT,
        callback_path: str = OAUTH_CALLBACK_PATH,
        shutdown_delay: float = 1.0,
    ):
        self.port = port
        self.timeout = timeout
        self.callback_path = callback_path
        self.shutdown_delay = shutdown_delay
        self.state = ListenerState.IDLE
        self.bound_port: Optional[int] = None

        self.app = web.Application()
        self.app.router.add_get(callback_path, self._handle_callback, allow_head=False)
        self.app.router.add_route("*", "/{tail:.*}", self._handle_not_found)

        self._runner: Optional[web.AppRunner] = None
        self._future: Optional[asyncio.Future] = None
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._shutdown_handle: Optional[asyncio.TimerHandle] = None
        self._close_task: Optional[asyncio.Task] = None
        self._closing = False
        self._closed = asyncio.Event()

    async def start(self) -> int:
        """
        Start listening for the OAuth redirect.

        Returns:
            The port the server is bound to

        Raises:
            PortInUseError: The requested port is occupied
            AuthCancelledError: cancel() or close() arrived before the bind finished
        """
        if self.state is ListenerState.CANCELLED:
            raise AuthCancelledError()
        if self.state is not ListenerState.IDLE:
            raise RuntimeError(f"Callback listener cannot start from state {self.state.value}")

        loop = asyncio.get_running_loop()
        runner = web.AppRunner(self.app)
        try:
            await runner.setup()
            site = web.TCPSite(runner, host=OAUTH_CALLBACK_HOST, port=self.port)
            await site.start()
        except OSError as e:
            await self._abandon(runner)
            if e.errno in (errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", errno.EADDRINUSE)):
                logger.warning(f"OAuth callback port {self.port} is already in use")
                raise PortInUseError(self.port) from e
            raise
        except asyncio.CancelledError:
            await self._abandon(runner)
            raise

        if self._closing or self.state in (ListenerState.CANCELLED, ListenerState.CLOSED):
            # cancel() or close() arrived while binding
            await self._abandon(runner)
            raise AuthCancelledError()

        self._runner = runner
        self.bound_port = runner.addresses[0][1]
        self._future = loop.create_future()
        self._future.add_done_callback(_consume_exception)
        self._timeout_handle = loop.call_later(self.timeout, self._on_timeout)
        self.state = ListenerState.LISTENING

        logger.info(f"OAuth callback server listening on {OAUTH_CALLBACK_HOST}:{self.bound_port}")
        return self.bound_port

    async def _abandon(self, runner: web.AppRunner) -> None:
        """Tear down a runner that never became the listening server"""
        await runner.cleanup()
        self.state = ListenerState.CLOSED
        self._closed.set()

    async def _handle_callback(self, request: web.Request) -> web.Response:
        """Handle OAuth callback request"""
        if self.state is not ListenerState.LISTENING:
            logger.debug(f"Ignoring callback request in state {self.state.value}")
            return web.Response(text=ALREADY_HANDLED_PAGE, content_type="text/html", status=410)

        result = CallbackResult(
            code=request.query.get("code") or None,
            state=request.query.get("state") or None,
            error=request.query.get("error") or None,
            error_description=request.query.get("error_description") or None,
        )

        self.state = ListenerState.CALLBACK_RECEIVED
        self._cancel_timeout()
        if not self._future.done():
            self._future.set_result(result)
        logger.info("OAuth callback received")

        # Let the response flush before the server goes away
        loop = asyncio.get_running_loop()
        self._shutdown_handle = loop.call_later(self.shutdown_delay, self._begin_close)

        if result.is_error:
            logger.warning(f"OAuth error in callback: {result.error}")
            page = FAILURE_PAGE.format(
                error=html.escape(result.error),
                description=html.escape(result.error_description or ""),
            )
            return web.Response(text=page, content_type="text/html", status=400)

        return web.Response(text=SUCCESS_PAGE, content_type="text/html")

    async def _handle_not_found(self, request: web.Request) -> web.Response:
        return web.Response(text=NOT_FOUND_PAGE, content_type="text/html", status=404)

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        if self.state is not ListenerState.LISTENING:
            return
        logger.warning(f"OAuth callback timeout after {self.timeout:g} seconds")
        self.state = ListenerState.TIMED_OUT
        if not self._future.done():
            self._future.set_exception(AuthTimeoutError(self.timeout))
        self._begin_close()

    async def wait_for_callback(self) -> CallbackResult:
        """
        Wait for the OAuth redirect.

        Returns:
            CallbackResult with the redirect's query parameters

        Raises:
            AuthTimeoutError: No callback arrived in time
            AuthCancelledError: The listener was cancelled or closed first
        """
        if self._future is None:
            raise RuntimeError("Callback listener has not been started")
        return await self._future

    def cancel(self) -> None:
        """Abort the wait and shut the server down (no-op once a callback won)"""
        if self._future is None:
            if self.state is ListenerState.IDLE:
                self.state = ListenerState.CANCELLED
            return
        if not self._future.done():
            self.state = ListenerState.CANCELLED
            self._future.set_exception(AuthCancelledError())
            logger.info("OAuth callback wait cancelled")
        self._begin_close()

    def _begin_close(self) -> None:
        if self._close_task is None and not self._closing and self.state is not ListenerState.CLOSED:
            self._close_task = asyncio.ensure_future(self.close())

    def _cancel_timeout(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    async def close(self) -> None:
        """Stop the server. Safe to call repeatedly or after it already stopped."""
        if self._closing or self.state is ListenerState.CLOSED:
            await self._closed.wait()
            return
        self._closing = True

        self._cancel_timeout()
        if self._shutdown_handle is not None:
            self._shutdown_handle.cancel()
            self._shutdown_handle = None

        if self._future is not None and not self._future.done():
            self._future.set_exception(AuthCancelledError("Callback listener closed before a callback arrived."))

        runner, self._runner = self._runner, None
        try:
            if runner is not None:
                await runner.cleanup()
                logger.debug("OAuth callback server stopped")
        finally:
            self.state = ListenerState.CLOSED
            self._closed.set()

    async def wait_closed(self) -> None:
        """Wait until the server has shut down"""
        await self._closed.wait()
