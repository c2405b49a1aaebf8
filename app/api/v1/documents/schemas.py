"""
Documents API Schemas

Pydantic models for document, folder and share requests and responses.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Union
from datetime import datetime
import uuid

from app.domain.documents.models import DocCategory


class DocumentResponse(BaseModel):
    """Schema for document metadata"""
    id: uuid.UUID
    owner_id: uuid.UUID
    uploaded_by: uuid.UUID
    folder_id: Optional[uuid.UUID] = None
    title: str
    category: DocCategory
    notes: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)
    category: Optional[DocCategory] = None


class DocumentMove(BaseModel):
    """Target folder; null moves the document to the root"""
    folder_id: Optional[uuid.UUID] = None


class DownloadUrlResponse(BaseModel):
    url: str


class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    parent_id: Optional[uuid.UUID] = None
    color: Optional[str] = Field(None, max_length=20)


class FolderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    color: Optional[str] = Field(None, max_length=20)
    is_favorite: Optional[bool] = None


class FolderResponse(BaseModel):
    """Real folder, or a synthetic per-sender folder of shared documents"""
    id: Union[uuid.UUID, str]
    name: str
    color: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    is_favorite: bool = False
    synthetic: bool = False
    sender_id: Optional[str] = None

    class Config:
        from_attributes = True


class BrowserResponse(BaseModel):
    folder_id: Optional[str] = None
    reset_to_root: bool = False
    folders: List[FolderResponse]
    documents: List[DocumentResponse]


class ShareCreate(BaseModel):
    email: EmailStr


class ShareRecipient(BaseModel):
    id: uuid.UUID
    full_name: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True


class ShareResponse(BaseModel):
    id: uuid.UUID
    document_id: uuid.UUID
    shared_by: uuid.UUID
    shared_with: uuid.UUID
    created_at: Optional[datetime] = None
    recipient: Optional[ShareRecipient] = None

    class Config:
        from_attributes = True


class SharedWithMeResponse(BaseModel):
    """A document shared with the caller and who shared it"""
    id: uuid.UUID
    created_at: Optional[datetime] = None
    document: DocumentResponse
    sender: Optional[ShareRecipient] = None

    class Config:
        from_attributes = True
