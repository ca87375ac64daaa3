"""
Integration test helper utilities.

Shared fixtures and utilities for integration tests. Endpoints are
served by pytest-httpx, so the real httpx transport stack is exercised.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    import pytest_httpx

BASE_SEPOLIA = 84532


def rpc_result(request: httpx.Request, result: object) -> httpx.Response:
    """Build a JSON-RPC success response echoing the request id."""
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def setup_rpc_node(
    httpx_mock: pytest_httpx.HTTPXMock,
    url: str,
    chain_id: int = BASE_SEPOLIA,
    block_number: int = 1000,
) -> list[str]:
    """Serve a healthy node at url; returns the list of methods it receives."""
    methods: list[str] = []

    def callback(request: httpx.Request) -> httpx.Response:
        method = json.loads(request.content)["method"]
        methods.append(method)
        results = {
            "net_version": str(chain_id),
            "eth_chainId": hex(chain_id),
            "eth_blockNumber": hex(block_number),
        }
        return rpc_result(request, results.get(method))

    httpx_mock.add_callback(
        callback, url=url, method="POST", is_reusable=True, is_optional=True
    )
    return methods


def setup_down_node(httpx_mock: pytest_httpx.HTTPXMock, url: str) -> None:
    """Refuse every connection to url."""
    httpx_mock.add_exception(
        httpx.ConnectError("connection refused"),
        url=url,
        is_reusable=True,
        is_optional=True,
    )


def setup_error_node(
    httpx_mock: pytest_httpx.HTTPXMock, url: str, status_code: int = 503
) -> None:
    """Answer every request to url with an HTTP error."""
    httpx_mock.add_response(
        url=url,
        method="POST",
        status_code=status_code,
        json={"message": "service unavailable"},
        is_reusable=True,
        is_optional=True,
    )
