"""Pydantic request/response schemas for the API.

Defines the public contracts used by the FastAPI endpoints:
- ChatRequest / ChatResponse: the chat endpoint (camelCase keys on the wire).
- Source: A cited document in a chat response.
- IngestRequest: Admin ingestion actions (ingest_text, ingest_url, search_and_ingest).
- DocumentOut / DocumentsResponse: Knowledge-base listing with chunk counts.
- DeleteDocumentRequest: Body of DELETE /documents.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One prior conversation turn (role is "user" or "assistant")."""
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Request body for the chat endpoint.

    Attributes:
        message: The user's question. Blank messages are rejected by the endpoint.
        conversationHistory: Prior turns, oldest first.
        language: Response language.
    """
    message: str = ""
    conversationHistory: List[ChatMessage] = Field(default_factory=list)
    language: str = Field(default="english", description="english, tamil or hindi; others fall back to english")


class Source(BaseModel):
    name: str
    type: Literal["document", "web"]
    url: str


class ChatResponse(BaseModel):
    """Response body of the chat endpoint.

    Attributes:
        content: Generated answer, or an explanatory/apology message.
        sources: Documents the answer is grounded on (empty when ungrounded).
        sourceLabel: Localized provenance label shown with the answer.
        newKnowledgeIndexed: Whether this request indexed new web content.
    """
    content: str
    sources: List[Source] = Field(default_factory=list)
    sourceLabel: str
    newKnowledgeIndexed: bool = False


class IngestRequest(BaseModel):
    action: str = ""
    url: Optional[str] = None
    query: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None


class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    source_url: str
    source_type: str
    category: str
    domain: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    chunkCount: int = 0


class DocumentsResponse(BaseModel):
    documents: List[DocumentOut]


class DeleteDocumentRequest(BaseModel):
    documentId: Optional[str] = None
