"""
Stores for documents and lab result rows.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from labwise.exceptions import StorageError
from labwise.models import PLACEHOLDER_TEST_NAME, Document, LabResult

logger = logging.getLogger(__name__)

NO_AI_TEXT_EXPLANATION = "No text returned from AI at all."

_ROW_FIELDS = (
    "test_name",
    "value",
    "unit",
    "normal_range",
    "status",
    "severity",
    "explanation",
    "recommendations",
)


class DocumentStore:
    """Documents are owned by the upload flow; the pipeline only writes `summary`."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, document: Document) -> Document:
        self.session.add(document)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError(f"Could not insert document {document.id}: {e}") from e
        await self.session.refresh(document)
        logger.info("Registered document %s (%s)", document.id, document.file_name)
        return document

    async def get(self, document_id: str) -> Optional[Document]:
        result = await self.session.execute(select(Document).where(Document.id == document_id))
        return result.scalar_one_or_none()

    async def select_all(self) -> List[Document]:
        result = await self.session.execute(select(Document).order_by(Document.uploaded_at.desc()))
        return list(result.scalars().all())

    async def update_summary(self, document_id: str, summary: Optional[str]) -> bool:
        """Overwrite the document summary. Returns False when no such document exists."""
        try:
            result = await self.session.execute(
                update(Document).where(Document.id == document_id).values(summary=summary)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError(f"Could not update summary for document {document_id}: {e}") from e
        if result.rowcount == 0:
            logger.warning("Summary not stored: document %s not found", document_id)
            return False
        return True


class ResultStore:
    """Row-at-a-time writes so one bad row never loses the rest of the batch."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, file_id: str, row: Dict[str, Any]) -> LabResult:
        test_name = (row.get("test_name") or "").strip()
        if not test_name:
            raise StorageError("Row rejected: test_name is required")

        lab_result = LabResult(file_id=file_id, **{k: row.get(k) for k in _ROW_FIELDS})
        lab_result.test_name = test_name
        self.session.add(lab_result)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Insert failed for %r on document %s: %s", test_name, file_id, e)
            raise StorageError(f"Insert failed for {test_name!r}: {e}") from e
        return lab_result

    async def insert_placeholder(self, file_id: str, explanation: Optional[str]) -> LabResult:
        lab_result = LabResult(
            file_id=file_id,
            test_name=PLACEHOLDER_TEST_NAME,
            value=None,
            unit="",
            normal_range="",
            status="",
            severity=None,
            explanation=explanation or NO_AI_TEXT_EXPLANATION,
            recommendations=None,
        )
        self.session.add(lab_result)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Placeholder insert failed on document %s: %s", file_id, e)
            raise StorageError(f"Placeholder insert failed: {e}") from e
        return lab_result

    async def delete_for_document(self, file_id: str) -> int:
        try:
            result = await self.session.execute(delete(LabResult).where(LabResult.file_id == file_id))
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError(f"Could not clear previous results for document {file_id}: {e}") from e
        if result.rowcount:
            logger.info("Removed %d previous result row(s) for document %s", result.rowcount, file_id)
        return result.rowcount or 0

    async def select_all(self, file_id: Optional[str] = None) -> List[LabResult]:
        query = select(LabResult).order_by(LabResult.id)
        if file_id is not None:
            query = query.where(LabResult.file_id == file_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())
