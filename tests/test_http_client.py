"""
Tests for the shared HTTP client.
"""

import asyncio

from dep_risk_graph.config import set_verify_ssl
from dep_risk_graph.http_client import _get_async_http_client, close_async_http_client


def test_client_is_reused_until_closed():
    async def run():
        first = await _get_async_http_client()
        second = await _get_async_http_client()
        await close_async_http_client()
        return first, second

    first, second = asyncio.run(run())

    assert first is second
    assert first.is_closed


def test_client_recreated_when_ssl_setting_changes():
    async def run():
        first = await _get_async_http_client()
        set_verify_ssl(False)
        second = await _get_async_http_client()
        await close_async_http_client()
        return first, second

    first, second = asyncio.run(run())

    assert first is not second
    assert first.is_closed
