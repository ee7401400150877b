from __future__ import annotations

import json

import httpx


def headers_for(user) -> dict:
    return {"X-User-Uuid": user.user_uuid}


def rpc_transport(results_by_method=None, status_code=200, envelope=None):
    """MockTransport answering JSON-RPC calls with ``results_by_method[method]``.

    ``envelope`` replaces the whole response body when given. Requests are
    recorded on ``transport.calls``.
    """
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append({"url": str(request.url), "headers": request.headers, "body": body})
        if envelope is not None:
            return httpx.Response(status_code, json=envelope)
        result = (results_by_method or {}).get(body["method"])
        return httpx.Response(status_code, json={"jsonrpc": "2.0", "id": 0, "result": result})

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport
