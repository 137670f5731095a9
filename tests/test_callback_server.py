import asyncio
import socket
import time

import aiohttp
import pytest
from aiohttp import web

from chatgpt_auth import (
    AuthCancelledError,
    AuthTimeoutError,
    CallbackListener,
    ListenerState,
    PortInUseError,
)


def _url(listener: CallbackListener, path: str) -> str:
    return f"http://127.0.0.1:{listener.bound_port}{path}"


async def _get(url: str):
    async with aiohttp.ClientSession() as session:
        async with session.get(url) as response:
            return response.status, await response.text()


@pytest.mark.asyncio
async def test_callback_resolves_result_and_shuts_down() -> None:
    listener = CallbackListener(port=0, timeout=5, shutdown_delay=0.05)
    port = await listener.start()
    assert port > 0
    assert listener.state is ListenerState.LISTENING

    status, body = await _get(_url(listener, "/auth/callback?code=abc&state=xyz"))
    result = await listener.wait_for_callback()

    assert status == 200
    assert "Authentication Successful" in body
    assert result.code == "abc"
    assert result.state == "xyz"
    assert result.error is None

    await asyncio.wait_for(listener.wait_closed(), timeout=2)
    assert listener.state is ListenerState.CLOSED

    with pytest.raises(aiohttp.ClientConnectionError):
        await _get(_url(listener, "/auth/callback?code=again"))


@pytest.mark.asyncio
async def test_other_paths_return_404_without_changing_state() -> None:
    listener = CallbackListener(port=0, timeout=5)
    await listener.start()
    try:
        status, _ = await _get(_url(listener, "/favicon.ico"))
        assert status == 404
        assert listener.state is ListenerState.LISTENING

        status, _ = await _get(_url(listener, "/auth/callback?code=abc&state=s"))
        assert status == 200
        assert (await listener.wait_for_callback()).code == "abc"
    finally:
        await listener.close()


@pytest.mark.asyncio
async def test_only_first_callback_is_accepted() -> None:
    listener = CallbackListener(port=0, timeout=5, shutdown_delay=1.0)
    await listener.start()
    try:
        await _get(_url(listener, "/auth/callback?code=first&state=s"))
        status, _ = await _get(_url(listener, "/auth/callback?code=second&state=s"))

        assert status == 410
        assert (await listener.wait_for_callback()).code == "first"
    finally:
        await listener.close()


@pytest.mark.asyncio
async def test_error_callback_is_reported_and_escaped() -> None:
    listener = CallbackListener(port=0, timeout=5)
    await listener.start()
    try:
        status, body = await _get(
            _url(listener, "/auth/callback?error=access_denied&error_description=%3Cb%3Eno%3C%2Fb%3E")
        )
        result = await listener.wait_for_callback()

        assert status == 400
        assert "&lt;b&gt;no&lt;/b&gt;" in body
        assert result.is_error
        assert result.error_description == "<b>no</b>"
    finally:
        await listener.close()


@pytest.mark.asyncio
async def test_malformed_callback_is_still_captured() -> None:
    listener = CallbackListener(port=0, timeout=5)
    await listener.start()
    try:
        await _get(_url(listener, "/auth/callback"))
        result = await listener.wait_for_callback()
        assert result.is_malformed
    finally:
        await listener.close()


@pytest.mark.asyncio
async def test_timeout_without_callback() -> None:
    listener = CallbackListener(port=0, timeout=0.1)
    await listener.start()

    started = time.monotonic()
    with pytest.raises(AuthTimeoutError):
        await listener.wait_for_callback()
    elapsed = time.monotonic() - started

    assert 0.05 <= elapsed < 0.5
    await asyncio.wait_for(listener.wait_closed(), timeout=2)
    assert listener.state is ListenerState.CLOSED


@pytest.mark.asyncio
async def test_cancel_aborts_wait() -> None:
    listener = CallbackListener(port=0, timeout=5)
    await listener.start()

    waiter = asyncio.ensure_future(listener.wait_for_callback())
    await asyncio.sleep(0)
    listener.cancel()

    with pytest.raises(AuthCancelledError):
        await waiter
    await asyncio.wait_for(listener.wait_closed(), timeout=2)


@pytest.mark.asyncio
async def test_cancel_after_callback_keeps_result() -> None:
    listener = CallbackListener(port=0, timeout=5)
    await listener.start()

    await _get(_url(listener, "/auth/callback?code=abc&state=s"))
    listener.cancel()

    assert (await listener.wait_for_callback()).code == "abc"
    await asyncio.wait_for(listener.wait_closed(), timeout=2)


@pytest.mark.asyncio
async def test_close_is_idempotent() -> None:
    listener = CallbackListener(port=0, timeout=5)
    await listener.start()

    await listener.close()
    await listener.close()
    assert listener.state is ListenerState.CLOSED

    never_started = CallbackListener(port=0)
    await never_started.close()
    assert never_started.state is ListenerState.CLOSED


@pytest.mark.asyncio
async def test_port_in_use_is_reported_with_forwarding_guidance() -> None:
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("127.0.0.1", 0))
    blocker.listen(1)
    port = blocker.getsockname()[1]

    try:
        listener = CallbackListener(port=port, timeout=5)
        with pytest.raises(PortInUseError) as exc_info:
            await listener.start()
    finally:
        blocker.close()

    assert exc_info.value.port == port
    assert f"ssh -L {port}:localhost:{port}" in exc_info.value.message
    assert listener.state is ListenerState.CLOSED


@pytest.mark.asyncio
async def test_binds_loopback_only() -> None:
    listener = CallbackListener(port=0, timeout=5)
    await listener.start()
    try:
        assert listener._runner.addresses[0][0] == "127.0.0.1"
    finally:
        await listener.close()


@pytest.mark.asyncio
async def test_head_request_is_not_taken_as_the_callback() -> None:
    listener = CallbackListener(port=0, timeout=5)
    await listener.start()
    try:
        async with aiohttp.ClientSession() as session:
            async with session.head(_url(listener, "/auth/callback")) as response:
                assert response.status in (404, 405)
        assert listener.state is ListenerState.LISTENING

        await _get(_url(listener, "/auth/callback?code=abc&state=s"))
        assert (await listener.wait_for_callback()).code == "abc"
    finally:
        await listener.close()


@pytest.fixture
def held_bind(monkeypatch):
    """Pause TCPSite.start after binding until ``release`` is set"""
    bound = asyncio.Event()
    release = asyncio.Event()
    ports = []
    original_start = web.TCPSite.start

    async def start(site):
        await original_start(site)
        ports.append(site._runner.addresses[0][1])
        bound.set()
        await release.wait()

    monkeypatch.setattr(web.TCPSite, "start", start)
    return bound, release, ports


@pytest.mark.asyncio
async def test_close_during_bind_releases_the_port(held_bind) -> None:
    bound, release, ports = held_bind
    listener = CallbackListener(port=0, timeout=5)

    starting = asyncio.ensure_future(listener.start())
    await asyncio.wait_for(bound.wait(), timeout=2)
    await listener.close()
    release.set()

    with pytest.raises(AuthCancelledError):
        await starting
    assert listener.state is ListenerState.CLOSED
    with pytest.raises(aiohttp.ClientConnectionError):
        await _get(f"http://127.0.0.1:{ports[0]}/auth/callback?code=abc")


@pytest.mark.asyncio
async def test_cancelling_start_during_bind_releases_the_port(held_bind) -> None:
    bound, _, ports = held_bind
    listener = CallbackListener(port=0, timeout=5)

    starting = asyncio.ensure_future(listener.start())
    await asyncio.wait_for(bound.wait(), timeout=2)
    starting.cancel()

    with pytest.raises(asyncio.CancelledError):
        await starting
    assert listener.state is ListenerState.CLOSED
    with pytest.raises(aiohttp.ClientConnectionError):
        await _get(f"http://127.0.0.1:{ports[0]}/auth/callback?code=abc")
