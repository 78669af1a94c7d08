from __future__ import annotations

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.errors import invalid_body, invalid_patch
from app.patching import is_json_patch_request
from app.routes._deps import read_json_body, service_from_request

router = APIRouter(tags=["resources"])


@router.get("/{resource_path:path}")
async def get_resource(resource_path: str, request: Request):
    service = service_from_request(request)
    params = dict(request.query_params)
    if service.is_collection_path(resource_path):
        page = await run_in_threadpool(service.list_documents, resource_path, params)
        return JSONResponse(
            content=page.items,
            headers={
                "X-Total-Count": str(page.total_count),
                "Content-Range": page.content_range,
            },
        )
    document = await run_in_threadpool(service.read, resource_path, params)
    return JSONResponse(content=document)


@router.post("/{resource_path:path}")
async def create_resource(resource_path: str, request: Request):
    service = service_from_request(request)
    body = await read_json_body(request, on_error=invalid_body)
    document = await run_in_threadpool(service.create, resource_path, body, dict(request.query_params))
    return JSONResponse(content=document)


@router.patch("/{resource_path:path}")
async def patch_resource(resource_path: str, request: Request):
    service = service_from_request(request)
    body = await read_json_body(request, on_error=invalid_patch)
    params = dict(request.query_params)
    if is_json_patch_request(request.headers.get("content-type"), body):
        document = await run_in_threadpool(service.json_patch, resource_path, body, params)
    else:
        document = await run_in_threadpool(service.merge_patch, resource_path, body, params)
    return JSONResponse(content=document)


@router.delete("/{resource_path:path}")
async def delete_resource(resource_path: str, request: Request):
    service = service_from_request(request)
    await run_in_threadpool(service.delete, resource_path, dict(request.query_params))
    return Response(status_code=204)
