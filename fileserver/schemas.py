from __future__ import annotations

from pydantic import BaseModel


class MkdirRequest(BaseModel):
    path: str = '/'
    name: str = ''


class ApiResponse(BaseModel):
    success: bool
    message: str
