from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

router = APIRouter(tags=['pages'])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / 'templates'))


@router.get('/', response_class=HTMLResponse)
def index(request: Request):
    return templates.TemplateResponse(request, 'index.html', {'title': request.app.state.settings.app_name})


@router.get('/healthz')
def healthz():
    return {'success': True}
