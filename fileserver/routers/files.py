from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, RedirectResponse

from ..deps import FileServices, get_services
from ..errors import FileServerError
from ..schemas import ApiResponse, MkdirRequest
from ..services.downloads import DirectoryRedirect

router = APIRouter(prefix='/api', tags=['files'])
download_router = APIRouter(tags=['download'])


def _http_error(exc: FileServerError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get('/files')
def list_files(path: str = Query(default='/'), services: FileServices = Depends(get_services)):
    try:
        target = services.resolver.resolve(path)
        entries = services.lister.list(target)
    except FileServerError as exc:
        raise _http_error(exc)
    return {'success': True, 'path': target.logical, 'files': [asdict(entry) for entry in entries]}


@router.post('/upload')
async def upload(
    path: str = Form(default='/'),
    file: UploadFile | None = File(default=None),
    services: FileServices = Depends(get_services),
):
    if file is None:
        raise HTTPException(status_code=400, detail='Failed to get file from form')
    try:
        target_dir = services.resolver.resolve(path)
        target = await services.uploads.receive(target_dir, file.filename, file, declared_size=file.size)
    except FileServerError as exc:
        raise _http_error(exc)
    finally:
        await file.close()
    return ApiResponse(success=True, message=f'File uploaded successfully to {target.logical}')


@router.post('/mkdir')
def mkdir(payload: MkdirRequest, services: FileServices = Depends(get_services)):
    try:
        parent = services.resolver.resolve(payload.path)
        services.directories.create(parent, payload.name)
    except FileServerError as exc:
        raise _http_error(exc)
    return ApiResponse(success=True, message=f"Directory '{payload.name}' created successfully")


@download_router.get('/download')
@download_router.get('/download/{logical_path:path}')
def download(logical_path: str = '', services: FileServices = Depends(get_services)):
    try:
        target = services.resolver.resolve(logical_path)
        result = services.downloads.dispatch(target)
    except FileServerError as exc:
        raise _http_error(exc)

    if isinstance(result, DirectoryRedirect):
        return RedirectResponse(result.location, status_code=302)
    return FileResponse(result.fs_path, media_type=result.media_type, filename=result.filename)
