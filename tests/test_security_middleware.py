from __future__ import annotations

import json

import pytest
from fastapi.responses import JSONResponse
from starlette.requests import Request

from fileserver import main
from fileserver.config import Settings
from fileserver.services.storage import MemoryStorage


def _make_request(method: str, path: str, *, content_length: int | None = None) -> Request:
    headers: list[tuple[bytes, bytes]] = []
    if content_length is not None:
        headers.append((b'content-length', str(content_length).encode()))

    app = main.create_app(Settings(storage_root='/srv/files', max_upload_bytes=1000), MemoryStorage())
    scope = {
        'type': 'http',
        'http_version': '1.1',
        'method': method,
        'scheme': 'http',
        'path': path,
        'raw_path': path.encode(),
        'query_string': b'',
        'headers': headers,
        'client': ('127.0.0.1', 12345),
        'server': ('testserver', 80),
        'app': app,
    }

    async def _receive():
        return {'type': 'http.request', 'body': b'', 'more_body': False}

    return Request(scope, _receive)


@pytest.mark.asyncio
async def test_security_headers_added_on_success_response():
    request = _make_request('GET', '/healthz')

    async def _next(_request: Request):
        return JSONResponse({'success': True})

    response = await main.security_middleware(request, _next)

    assert response.status_code == 200
    assert response.headers['X-Frame-Options'] == 'DENY'
    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert response.headers['Referrer-Policy'] == 'strict-origin-when-cross-origin'


@pytest.mark.asyncio
async def test_oversized_upload_rejected_before_handler_runs():
    request = _make_request('POST', '/api/upload', content_length=1000 + 128 * 1024)
    calls = {'count': 0}

    async def _next(_request: Request):
        calls['count'] += 1
        return JSONResponse({'success': True})

    response = await main.security_middleware(request, _next)

    assert response.status_code == 413
    assert json.loads(response.body) == {'success': False, 'error': 'File exceeds maximum upload size'}
    assert calls['count'] == 0


@pytest.mark.asyncio
async def test_upload_within_limit_reaches_handler():
    request = _make_request('POST', '/api/upload', content_length=500)

    async def _next(_request: Request):
        return JSONResponse({'success': True})

    response = await main.security_middleware(request, _next)

    assert response.status_code == 200
