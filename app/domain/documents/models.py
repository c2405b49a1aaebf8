"""
Documents Domain Models

Implements the database models for:
- Medical documents stored in object storage
- Folders organising a user's documents
- Shares granting another profile read access to a document
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Integer, Text, Enum, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.infrastructure.database import Base
import uuid
import enum


class DocCategory(str, enum.Enum):
    """Document category enumeration"""
    RADIOLOGY = "radiology"
    PRESCRIPTION = "prescription"
    HISTORY = "history"
    LAB = "lab"
    INSURANCE = "insurance"
    OTHER = "other"


DEFAULT_FOLDER_COLOR = "#33C7BE"


class Folder(Base):
    """User folder; ``parent_id`` is null at the root"""
    __tablename__ = "folders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("folders.id", ondelete="CASCADE"))
    name = Column(String(200), nullable=False)
    color = Column(String(20), default=DEFAULT_FOLDER_COLOR)
    is_favorite = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class Document(Base):
    """Document metadata; the bytes live in object storage at ``file_path``"""
    __tablename__ = "documents"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))
    uploaded_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    folder_id = Column(UUID(as_uuid=True), ForeignKey("folders.id", ondelete="SET NULL"), index=True)

    title = Column(String(255), nullable=False)
    category = Column(Enum(DocCategory, values_callable=lambda e: [m.value for m in e]),
                      nullable=False, default=DocCategory.OTHER)
    notes = Column(Text)

    # Storage pointer
    file_path = Column(String(500), nullable=False)
    mime_type = Column(String(120))
    file_size = Column(Integer)

    created_at = Column(DateTime, default=func.now(), index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    shares = relationship("DocumentShare", back_populates="document", cascade="all, delete-orphan")


class DocumentShare(Base):
    """Read access to a document granted to another profile"""
    __tablename__ = "document_shares"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    shared_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    shared_with = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=func.now())

    document = relationship("Document", back_populates="shares")
    sender = relationship("Profile", foreign_keys=[shared_by])
    recipient = relationship("Profile", foreign_keys=[shared_with])

    __table_args__ = (
        UniqueConstraint("document_id", "shared_with", name="uq_document_share_recipient"),
    )
