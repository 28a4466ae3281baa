"""
Pydantic request/response models.

Rationale:
- Define simple, explicit input/output contracts for the API.
- Field aliases keep the camelCase names the browser sends and expects.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RelayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = None
    file_content: Optional[Any] = Field(None, alias="fileContent")
    file_type: Optional[str] = Field(None, alias="fileType")
    response_detail: Optional[str] = Field(None, alias="responseDetail")


class RelayResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    error: str


class FilePreview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    headers: List[Any] = []
    rows: List[List[Any]] = []
    total_rows: int = Field(0, alias="totalRows")


class IngestResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    file_type: Optional[str] = Field(None, alias="fileType")
    kind: str
    file_content: Optional[Any] = Field(None, alias="fileContent")
    preview: Optional[FilePreview] = None
    message: str


class RenderRequest(BaseModel):
    content: str


class RenderResponse(BaseModel):
    html: str
    charts: List[Dict[str, Any]] = []


class QuickAnswer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    answer: str
    answer_html: str = Field(..., alias="answerHtml")
