from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UploadedDocumentPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(default="", max_length=255)
    # base64 or data: URL
    content: str = Field(default="")


class GenerateTrendRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(default="", max_length=2000)
    supplemental_text: str | None = Field(default=None, alias="supplementalText")
    links: list[str] = Field(default_factory=list, max_length=20)
    documents: list[UploadedDocumentPayload] = Field(default_factory=list)


class ChartRequest(BaseModel):
    payload: dict[str, Any]
