import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from labwise.database import get_session
from labwise.exceptions import StorageError
from labwise.models import Document
from labwise.schemas import DocumentCreate, DocumentResponse, LabResultResponse
from labwise.services.storage import DocumentStore, ResultStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(payload: DocumentCreate, session: AsyncSession = Depends(get_session)):
    """Register an uploaded file so the pipeline can attach results and a summary to it."""
    store = DocumentStore(session)
    if payload.id and await store.get(payload.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Document {payload.id} already exists")
    document = Document(file_name=payload.file_name, file_url=payload.file_url)
    if payload.id:
        document.id = payload.id
    try:
        return await store.insert(document)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e


@router.get("/", response_model=List[DocumentResponse])
async def list_documents(session: AsyncSession = Depends(get_session)):
    """All documents, newest upload first."""
    return await DocumentStore(session).select_all()


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, session: AsyncSession = Depends(get_session)):
    document = await DocumentStore(session).get(document_id)
    if not document:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return document


@router.get("/{document_id}/results", response_model=List[LabResultResponse])
async def get_document_results(document_id: str, session: AsyncSession = Depends(get_session)):
    return await ResultStore(session).select_all(file_id=document_id)
