from __future__ import annotations

from fastapi import APIRouter, Request, Response

from app.errors import not_found
from app.paths import normalize_path
from app.routes._deps import eviction_worker_from_request, store_from_request
from app.schemas import DomainOut, EvictionOut

router = APIRouter(prefix="/_internal", tags=["internal"])


@router.get("/domains")
def list_domains(request: Request) -> list[dict[str, object]]:
    summaries = store_from_request(request).domains()
    return [DomainOut(domain=item.domain, size=item.size).model_dump() for item in summaries]


@router.delete("/domains/{domain:path}")
def remove_domain(domain: str, request: Request):
    if not store_from_request(request).remove_domain(normalize_path(domain)):
        raise not_found()
    return Response(status_code=204)


@router.post("/evictions")
def run_eviction_sweep(request: Request) -> dict[str, object]:
    evicted = eviction_worker_from_request(request).run_once()
    return EvictionOut(evicted=evicted).model_dump()
