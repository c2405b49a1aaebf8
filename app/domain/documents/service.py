"""
Documents Service Layer

Business logic for uploading, organising, sharing and browsing medical
documents. Ownership is checked before every mutation and again by the
owner-filtered statements in the repository.
"""

from typing import Optional, List, Dict, Any
import uuid

from loguru import logger

from app.core.errors import get_user_message, raise_for, sanitize_file_name, validate_file
from app.core.exceptions import (
    AuthorizationError, BaseCustomException, NotFoundError, ValidationError
)
from app.infrastructure.storage import StorageBackend, build_document_path
from app.domain.documents.browser import (
    BrowserView, cleanup_legacy_shared_folders, compose_view, is_legacy_shared_folder,
    is_shared_folder_id, to_shared_entries
)
from app.domain.documents.models import DocCategory, Document, DocumentShare, Folder
from app.domain.documents.repository import (
    DocumentRepository, DocumentShareRepository, FolderRepository
)
from app.domain.notifications.models import NotificationType
from app.domain.notifications.service import NotificationService
from app.domain.profiles.repository import ProfileRepository

EDITABLE_DOCUMENT_FIELDS = {"title", "notes", "category"}
EDITABLE_FOLDER_FIELDS = {"name", "color", "is_favorite"}


class DocumentService:
    """Service layer for documents, folders and shares"""

    def __init__(self, db, notifications: Optional[NotificationService] = None):
        self.db = db
        self.document_repo = DocumentRepository(db)
        self.folder_repo = FolderRepository(db)
        self.share_repo = DocumentShareRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.notifications = notifications or NotificationService(db)

    # ==================== Documents ====================

    def list_documents(self, user_id: uuid.UUID, folder_id: Optional[uuid.UUID] = None) -> List[Document]:
        """My documents in one folder; root when no folder is given"""
        return self.document_repo.list_owned(user_id, folder_id)

    def get_document(self, user_id: uuid.UUID, document_id: uuid.UUID) -> Document:
        """Fetch a document the user owns or that was shared with them"""
        document = self.document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError("Documento no encontrado")
        if document.owner_id != user_id and self.share_repo.get(document_id, user_id) is None:
            raise AuthorizationError(get_user_message("permission-denied"))
        return document

    def upload_document(
        self,
        user_id: uuid.UUID,
        filename: str,
        content_type: Optional[str],
        data: bytes,
        storage: StorageBackend,
        title: Optional[str] = None,
        category: DocCategory = DocCategory.OTHER,
        notes: Optional[str] = None,
        folder_id: Optional[uuid.UUID] = None
    ) -> Document:
        """Store the file, then its metadata; the file is removed if the insert fails"""
        error = validate_file(content_type, len(data), kind="document")
        if error:
            raise ValidationError(error, error_code="upload-failed")
        if folder_id is not None:
            self._owned_folder(user_id, folder_id)

        filename = sanitize_file_name(filename)
        document_id = uuid.uuid4()
        path = build_document_path(user_id, document_id, filename)
        storage.upload(path, data, content_type)

        result = self.document_repo.create({
            "id": document_id,
            "owner_id": user_id,
            "patient_id": user_id,
            "uploaded_by": user_id,
            "folder_id": folder_id,
            "title": title or filename.rsplit(".", 1)[0],
            "category": category,
            "notes": notes or None,
            "file_path": path,
            "mime_type": content_type,
            "file_size": len(data),
        })
        if not result.success:
            self._remove_quietly(storage, path)
            raise_for(result, "upload-failed")
        logger.info(f"Document uploaded ({len(data)} bytes)")
        return result.value

    def update_document(self, user_id: uuid.UUID, document_id: uuid.UUID, updates: Dict[str, Any]) -> Document:
        """Edit title, notes or category of an owned document"""
        allowed = {k: v for k, v in updates.items() if k in EDITABLE_DOCUMENT_FIELDS}
        if not allowed:
            raise ValidationError("Nothing to update")
        result = self.document_repo.update(document_id, user_id, allowed)
        raise_for(result, "update-failed")
        return result.value

    def delete_document(self, user_id: uuid.UUID, document_id: uuid.UUID, storage: StorageBackend) -> None:
        """Owner check, storage removal, then the owner-filtered delete"""
        document = self.document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError("Documento no encontrado")
        if document.owner_id != user_id:
            raise AuthorizationError(get_user_message("permission-denied"), error_code="delete-failed")

        self._remove_quietly(storage, document.file_path)
        result = self.document_repo.delete(document_id, user_id)
        raise_for(result, "delete-failed")

    def move_document(self, user_id: uuid.UUID, document_id: uuid.UUID,
                      target_folder_id: Optional[uuid.UUID]) -> Document:
        """Move an owned document into a real folder, or to the root with None"""
        document = self.document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError("No encontramos el documento a mover")
        if document.owner_id != user_id:
            raise AuthorizationError("Solo puedes mover tus documentos")
        if target_folder_id is not None:
            self._owned_folder(user_id, target_folder_id)

        result = self.document_repo.update(document_id, user_id, {"folder_id": target_folder_id})
        raise_for(result, "update-failed")
        return result.value

    def search_documents(self, user_id: uuid.UUID, term: str) -> List[Document]:
        if not term or not term.strip():
            return []
        return self.document_repo.search(user_id, term)

    def download_url(self, user_id: uuid.UUID, document_id: uuid.UUID, storage: StorageBackend) -> str:
        """Signed, expiring URL for previewing a document"""
        document = self.get_document(user_id, document_id)
        return storage.signed_url(document.file_path)

    def _remove_quietly(self, storage: StorageBackend, path: str) -> None:
        try:
            storage.remove([path])
        except BaseCustomException as e:
            logger.warning(f"Could not remove stored file: {e.message}")

    # ==================== Folders ====================

    def _owned_folder(self, user_id: uuid.UUID, folder_id: uuid.UUID) -> Folder:
        folder = self.folder_repo.get(folder_id)
        if folder is None or folder.owner_id != user_id:
            raise NotFoundError("Folder not found")
        return folder

    def list_folders(self, user_id: uuid.UUID, parent_id: Optional[uuid.UUID] = None) -> List[Folder]:
        return self.folder_repo.list(user_id, parent_id)

    def create_folder(self, user_id: uuid.UUID, name: str, parent_id: Optional[uuid.UUID] = None,
                      color: Optional[str] = None) -> Folder:
        name = (name or "").strip()
        if not name:
            raise ValidationError("El nombre de la carpeta es obligatorio")
        if parent_id is not None:
            self._owned_folder(user_id, parent_id)

        data = {"owner_id": user_id, "parent_id": parent_id, "name": name}
        if color:
            data["color"] = color
        result = self.folder_repo.create(data)
        raise_for(result, "create-failed")
        return result.value

    def update_folder(self, user_id: uuid.UUID, folder_id: uuid.UUID, updates: Dict[str, Any]) -> Folder:
        """Rename, recolour or (un)favourite a folder"""
        allowed = {k: v for k, v in updates.items() if k in EDITABLE_FOLDER_FIELDS and v is not None}
        if not allowed:
            raise ValidationError("Nothing to update")
        result = self.folder_repo.update(folder_id, user_id, allowed)
        raise_for(result, "update-failed")
        return result.value

    def delete_folder(self, user_id: uuid.UUID, folder_id: uuid.UUID) -> None:
        result = self.folder_repo.delete(folder_id, user_id)
        raise_for(result, "delete-failed")

    # ==================== Sharing ====================

    def share_document(self, user_id: uuid.UUID, document_id: uuid.UUID, email: str) -> DocumentShare:
        """Share an owned document with the profile registered under ``email``"""
        document = self.document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError("Documento no encontrado")
        if document.owner_id != user_id:
            raise AuthorizationError("Solo puedes compartir tus documentos")

        recipient = self.profile_repo.get_by_email(email or "")
        if recipient is None:
            raise NotFoundError("No encontramos un usuario con ese correo")
        if recipient.id == user_id:
            raise ValidationError("No puedes compartir un documento contigo mismo")

        existing = self.share_repo.get(document_id, recipient.id)
        if existing is not None:
            return existing

        result = self.share_repo.create(document_id, user_id, recipient.id)
        raise_for(result, "create-failed")

        notified = self.notifications.notify(
            user_id=recipient.id,
            type=NotificationType.DOCUMENT_SHARED,
            title="Documento compartido",
            body=document.title,
            entity_table="documents",
            entity_id=document.id,
        )
        if not notified.success:
            logger.warning(f"Share notification was not stored: {notified.error}")
        return result.value

    def revoke_share(self, user_id: uuid.UUID, share_id: uuid.UUID) -> None:
        result = self.share_repo.delete(share_id, user_id)
        raise_for(result, "delete-failed")

    def list_shares(self, user_id: uuid.UUID, document_id: uuid.UUID) -> List[DocumentShare]:
        """Who an owned document is shared with"""
        document = self.document_repo.get_by_id(document_id)
        if document is None or document.owner_id != user_id:
            raise NotFoundError("Documento no encontrado")
        return self.share_repo.list_for_document(document_id)

    def documents_shared_with_me(self, user_id: uuid.UUID) -> List[DocumentShare]:
        return self.share_repo.list_shared_with(user_id)

    # ==================== Browser ====================

    def browse(self, user_id: uuid.UUID, folder_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Everything the folder browser needs for one location.

        ``folder_id`` is a real folder id, a synthetic ``shared-{sender}`` id
        or None for the root. Legacy "Compartido de ..." folders found on the
        way are deleted; if the open folder was one of them the view falls
        back to the root.
        """
        shared = is_shared_folder_id(folder_id)
        try:
            real_folder = None if shared or folder_id is None else uuid.UUID(str(folder_id))
        except ValueError:
            raise ValidationError("Invalid folder id", error_code="invalid-folder")

        entries = to_shared_entries(self.share_repo.list_shared_with(user_id))
        candidates = self.folder_repo.list(user_id, real_folder)
        opened = self.folder_repo.get(real_folder) if real_folder is not None else None
        if opened is not None and opened.owner_id == user_id and is_legacy_shared_folder(opened.name):
            # Children go first, then the open folder itself
            candidates.append(opened)
        folders, current_removed = cleanup_legacy_shared_folders(
            candidates,
            lambda legacy_id: self.folder_repo.delete(legacy_id, user_id),
            folder_id,
        )
        if current_removed:
            folder_id, real_folder = None, None
            folders = self.folder_repo.list(user_id, None)

        documents = [] if shared else self.document_repo.list_owned(user_id, real_folder)
        view: BrowserView = compose_view(folder_id, documents, folders, entries)
        return {
            "folder_id": folder_id,
            "reset_to_root": current_removed,
            "folders": view.folders,
            "documents": view.documents,
        }
