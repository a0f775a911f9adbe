"""SQLAlchemy models: documents, lab results."""
import enum
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from labwise.database import Base, generate_id

PLACEHOLDER_TEST_NAME = "No readable lab results found."

JSONList = JSON().with_variant(JSONB, "postgresql")


class Severity(str, enum.Enum):
    CRITICAL = "Critical"
    CAUTION = "Caution"
    NORMAL = "Normal"


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    file_name: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    file_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    lab_results: Mapped[list["LabResult"]] = relationship("LabResult", back_populates="document")


class LabResult(Base):
    __tablename__ = "lab_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    test_name: Mapped[str] = mapped_column(String(512), nullable=False)
    # Text so "8.20" and "<0.5" survive as reported; NULL only on the placeholder row
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit: Mapped[str | None] = mapped_column(String(128), nullable=True)
    normal_range: Mapped[str | None] = mapped_column(String(256), nullable=True)
    status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    severity: Mapped[str | None] = mapped_column(String(16), nullable=True)  # Critical, Caution, Normal
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    recommendations: Mapped[list[str] | None] = mapped_column(JSONList, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    document: Mapped["Document"] = relationship("Document", back_populates="lab_results")

    @property
    def is_placeholder(self) -> bool:
        return self.value is None and self.test_name == PLACEHOLDER_TEST_NAME
