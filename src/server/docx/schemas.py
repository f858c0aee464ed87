"""Pydantic models for DOCX requests and responses."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from docxstream.ir import DocxParagraph


class ParseResponse(BaseModel):
    paragraphs: List[Dict[str, Any]]
    statistics: Dict[str, Any]
    units: int
    headers: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    footers: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    footnotes: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    endnotes: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    comments: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class GenerateRequest(BaseModel):
    paragraphs: List[DocxParagraph]
