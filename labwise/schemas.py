from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExtractRequest(BaseModel):
    """Required fields are checked by the endpoint so the error can name them."""

    file_url: Optional[str] = None
    file_id: Optional[str] = None
    ocr_text: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [name for name in ("file_url", "file_id") if not (getattr(self, name) or "").strip()]


class ExtractResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    extracted: int
    ai_content: str = Field(default="", alias="aiContent")
    summary: Optional[str] = None
    insert_errors: List[str] = Field(default_factory=list)
    parse_debug: Optional[str] = None
    parse_error: Optional[str] = Field(default=None, alias="parseError")


class ErrorResponse(BaseModel):
    error: str
    ai_content: Optional[str] = Field(default=None, alias="aiContent")
    parse_error: Optional[str] = Field(default=None, alias="parseError")


class DocumentCreate(BaseModel):
    id: Optional[str] = None
    file_name: str = ""
    file_url: str


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    file_name: str
    file_url: str
    uploaded_at: Optional[datetime] = None
    summary: Optional[str] = None


class LabResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_id: str
    test_name: str
    value: Optional[str] = None
    unit: Optional[str] = None
    normal_range: Optional[str] = None
    status: Optional[str] = None
    severity: Optional[str] = None
    explanation: Optional[str] = None
    recommendations: Optional[List[str]] = None
    is_placeholder: bool = False
