from fastapi import APIRouter
from .schemas import ErrorResponse, SearchRequest, SearchResponse
from ..core.orchestrator import run_search

router = APIRouter()

_ERRORS = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.post("/searches", response_model=SearchResponse, responses=_ERRORS)
async def create_search(req: SearchRequest):
    return await run_search(req.model_dump())


@router.get("/healthz")
async def healthz():
    return {"status": "ok"}
