from fastapi import APIRouter

from labwise.api.v1.endpoints import documents, extraction

api_router = APIRouter()

api_router.include_router(extraction.router, tags=["extraction"])
api_router.include_router(documents.router, prefix="/documents", tags=["documents"])
