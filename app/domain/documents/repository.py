"""
Documents Repository Layer

Provides data access operations for documents, folders and shares. Every
mutation filters on the acting owner, so a row that belongs to someone else
is simply not affected; deletes report zero affected rows as a rejection.
"""

from typing import Optional, List
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
import uuid

from app.core.logging import log_error
from app.core.result import Ok, Err, ErrorKind, Result
from app.domain.documents.models import DocCategory, Document, Folder, DocumentShare

SEARCH_LIMIT = 30
DELETE_REJECTED = "DB rejected deletion"


class DocumentRepository:
    """Repository for document rows"""

    def __init__(self, db):
        self.db = db

    def create(self, document_data: dict) -> Result:
        """Insert the metadata row for an uploaded file"""
        try:
            document = Document(**document_data)
            self.db.add(document)
            self.db.commit()
            self.db.refresh(document)
            return Ok(document)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("create document", e)
            return Err(ErrorKind.UNEXPECTED, "upload-failed")

    def get_by_id(self, document_id: uuid.UUID) -> Optional[Document]:
        try:
            return self.db.query(Document).filter(Document.id == document_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("get document", e)
            return None

    def list_owned(self, owner_id: uuid.UUID, folder_id: Optional[uuid.UUID] = None) -> List[Document]:
        """Documents I uploaded into one folder (root when ``folder_id`` is None), newest first"""
        try:
            query = self.db.query(Document).filter(
                Document.owner_id == owner_id,
                Document.uploaded_by == owner_id
            )
            if folder_id is None:
                query = query.filter(Document.folder_id.is_(None))
            else:
                query = query.filter(Document.folder_id == folder_id)
            return query.order_by(Document.created_at.desc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list documents", e)
            return []

    def update(self, document_id: uuid.UUID, owner_id: uuid.UUID, update_data: dict) -> Result:
        """Patch an owned document; ``folder_id`` may be set back to None"""
        try:
            rows = self.db.query(Document).filter(
                Document.id == document_id,
                Document.owner_id == owner_id
            ).update(update_data)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("update document", e)
            return Err(ErrorKind.UNEXPECTED, "update-failed")
        if rows == 0:
            return Err(ErrorKind.PERMISSION_DENIED, "update-failed")
        return Ok(self.get_by_id(document_id))

    def delete(self, document_id: uuid.UUID, owner_id: uuid.UUID) -> Result:
        try:
            rows = self.db.query(Document).filter(
                Document.id == document_id,
                Document.owner_id == owner_id
            ).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("delete document", e)
            return Err(ErrorKind.UNEXPECTED, "delete-failed")
        if rows == 0:
            return Err(ErrorKind.PERMISSION_DENIED, DELETE_REJECTED)
        return Ok(rows)

    def search(self, user_id: uuid.UUID, term: str, limit: int = SEARCH_LIMIT) -> List[Document]:
        """Own and shared documents whose title, notes or category match"""
        term = term.strip()
        pattern = f"%{term}%"
        matches = [Document.title.ilike(pattern), Document.notes.ilike(pattern)]
        if term.lower() in {c.value for c in DocCategory}:
            matches.append(Document.category == DocCategory(term.lower()))
        shared_ids = self.db.query(DocumentShare.document_id).filter(
            DocumentShare.shared_with == user_id
        )
        try:
            return self.db.query(Document).filter(
                or_(Document.owner_id == user_id, Document.id.in_(shared_ids)),
                or_(*matches)
            ).order_by(Document.created_at.desc()).limit(limit).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("search documents", e)
            return []


class FolderRepository:
    """Repository for folders"""

    def __init__(self, db):
        self.db = db

    def get(self, folder_id: uuid.UUID) -> Optional[Folder]:
        return self.db.query(Folder).filter(Folder.id == folder_id).first()

    def list(self, owner_id: uuid.UUID, parent_id: Optional[uuid.UUID] = None) -> List[Folder]:
        try:
            query = self.db.query(Folder).filter(Folder.owner_id == owner_id)
            if parent_id is None:
                query = query.filter(Folder.parent_id.is_(None))
            else:
                query = query.filter(Folder.parent_id == parent_id)
            return query.order_by(Folder.name.asc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list folders", e)
            return []

    def create(self, folder_data: dict) -> Result:
        try:
            folder = Folder(**folder_data)
            self.db.add(folder)
            self.db.commit()
            self.db.refresh(folder)
            return Ok(folder)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("create folder", e)
            return Err(ErrorKind.UNEXPECTED, "create-failed")

    def update(self, folder_id: uuid.UUID, owner_id: uuid.UUID, update_data: dict) -> Result:
        try:
            rows = self.db.query(Folder).filter(
                Folder.id == folder_id,
                Folder.owner_id == owner_id
            ).update(update_data)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("update folder", e)
            return Err(ErrorKind.UNEXPECTED, "update-failed")
        if rows == 0:
            return Err(ErrorKind.PERMISSION_DENIED, "update-failed")
        return Ok(self.get(folder_id))

    def delete(self, folder_id: uuid.UUID, owner_id: uuid.UUID) -> Result:
        """Delete a folder; its documents fall back to the root"""
        try:
            self.db.query(Document).filter(
                Document.folder_id == folder_id,
                Document.owner_id == owner_id
            ).update({"folder_id": None})
            rows = self.db.query(Folder).filter(
                Folder.id == folder_id,
                Folder.owner_id == owner_id
            ).delete()
            if rows == 0:
                self.db.rollback()
                return Err(ErrorKind.PERMISSION_DENIED, DELETE_REJECTED)
            self.db.commit()
            return Ok(rows)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("delete folder", e)
            return Err(ErrorKind.UNEXPECTED, "delete-failed")


class DocumentShareRepository:
    """Repository for document shares"""

    def __init__(self, db):
        self.db = db

    def get(self, document_id: uuid.UUID, shared_with: uuid.UUID) -> Optional[DocumentShare]:
        return self.db.query(DocumentShare).filter(
            DocumentShare.document_id == document_id,
            DocumentShare.shared_with == shared_with
        ).first()

    def create(self, document_id: uuid.UUID, shared_by: uuid.UUID, shared_with: uuid.UUID) -> Result:
        try:
            share = DocumentShare(document_id=document_id, shared_by=shared_by, shared_with=shared_with)
            self.db.add(share)
            self.db.commit()
            self.db.refresh(share)
            return Ok(share)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("share document", e)
            return Err(ErrorKind.UNEXPECTED, "create-failed")

    def list_for_document(self, document_id: uuid.UUID) -> List[DocumentShare]:
        try:
            return self.db.query(DocumentShare).options(
                joinedload(DocumentShare.recipient)
            ).filter(DocumentShare.document_id == document_id).order_by(
                DocumentShare.created_at.asc()
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list document shares", e)
            return []

    def list_shared_with(self, user_id: uuid.UUID) -> List[DocumentShare]:
        """Shares addressed to the user with the document and sender embedded"""
        try:
            return self.db.query(DocumentShare).options(
                joinedload(DocumentShare.document),
                joinedload(DocumentShare.sender)
            ).filter(DocumentShare.shared_with == user_id).order_by(
                DocumentShare.created_at.desc()
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("documents shared with me", e)
            return []

    def delete(self, share_id: uuid.UUID, shared_by: uuid.UUID) -> Result:
        """Revoke a share the user granted"""
        try:
            rows = self.db.query(DocumentShare).filter(
                DocumentShare.id == share_id,
                DocumentShare.shared_by == shared_by
            ).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("revoke share", e)
            return Err(ErrorKind.UNEXPECTED, "delete-failed")
        if rows == 0:
            return Err(ErrorKind.PERMISSION_DENIED, DELETE_REJECTED)
        return Ok(rows)
