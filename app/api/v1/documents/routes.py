"""
Documents API Routes

API endpoints for the document library: uploads, folders, the folder
browser and sharing between users.
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from typing import Optional, List
import uuid

from app.api.deps import CurrentUser, get_storage_backend, require_onboarding_complete
from app.domain.documents.browser import BrowserView, filter_view
from app.domain.documents.models import DocCategory
from app.domain.documents.service import DocumentService
from app.api.v1.documents.schemas import (
    BrowserResponse, DocumentMove, DocumentResponse, DocumentUpdate, DownloadUrlResponse,
    FolderCreate, FolderResponse, FolderUpdate, ShareCreate, ShareResponse, SharedWithMeResponse
)
from app.infrastructure.database import get_db

router = APIRouter()


# ==================== Browser Endpoints ====================

@router.get("/browse", response_model=BrowserResponse)
def browse(
    folder_id: Optional[str] = Query(None, description="Folder id, shared-{sender} or empty for the root"),
    q: str = Query("", max_length=100),
    category: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """Folders and documents at one location, filtered by search and category"""
    listing = DocumentService(db).browse(current_user.id, folder_id or None)
    view = filter_view(BrowserView(listing["folders"], listing["documents"]), q, category)
    return {
        "folder_id": listing["folder_id"],
        "reset_to_root": listing["reset_to_root"],
        "folders": view.folders,
        "documents": view.documents,
    }


@router.get("/search", response_model=List[DocumentResponse])
def search_documents(
    q: str = Query(..., min_length=1, max_length=100),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """Own and shared documents matching title, notes or category"""
    return DocumentService(db).search_documents(current_user.id, q)


@router.get("/shared-with-me", response_model=List[SharedWithMeResponse])
def shared_with_me(
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).documents_shared_with_me(current_user.id)


# ==================== Folder Endpoints ====================

@router.get("/folders", response_model=List[FolderResponse])
def list_folders(
    parent_id: Optional[uuid.UUID] = None,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).list_folders(current_user.id, parent_id)


@router.post("/folders", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
def create_folder(
    payload: FolderCreate,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).create_folder(
        current_user.id, payload.name, payload.parent_id, payload.color
    )


@router.patch("/folders/{folder_id}", response_model=FolderResponse)
def update_folder(
    folder_id: uuid.UUID,
    payload: FolderUpdate,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).update_folder(
        current_user.id, folder_id, payload.model_dump(exclude_unset=True)
    )


@router.delete("/folders/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_folder(
    folder_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """Delete a folder; its documents move to the root"""
    DocumentService(db).delete_folder(current_user.id, folder_id)


# ==================== Document Endpoints ====================

@router.get("/", response_model=List[DocumentResponse])
def list_documents(
    folder_id: Optional[uuid.UUID] = None,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).list_documents(current_user.id, folder_id)


@router.post("/", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def upload_document(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    category: DocCategory = Form(DocCategory.OTHER),
    notes: Optional[str] = Form(None),
    folder_id: Optional[uuid.UUID] = Form(None),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    storage=Depends(get_storage_backend),
    db=Depends(get_db)
):
    """Upload a PDF, Word file or image (up to 10 MB) with its metadata"""
    return DocumentService(db).upload_document(
        current_user.id,
        file.filename or "document",
        file.content_type,
        file.file.read(),
        storage,
        title=title,
        category=category,
        notes=notes,
        folder_id=folder_id,
    )


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).get_document(current_user.id, document_id)


@router.patch("/{document_id}", response_model=DocumentResponse)
def update_document(
    document_id: uuid.UUID,
    payload: DocumentUpdate,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).update_document(
        current_user.id, document_id, payload.model_dump(exclude_unset=True)
    )


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    storage=Depends(get_storage_backend),
    db=Depends(get_db)
):
    DocumentService(db).delete_document(current_user.id, document_id, storage)


@router.post("/{document_id}/move", response_model=DocumentResponse)
def move_document(
    document_id: uuid.UUID,
    payload: DocumentMove,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).move_document(current_user.id, document_id, payload.folder_id)


@router.get("/{document_id}/download-url", response_model=DownloadUrlResponse)
def download_url(
    document_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    storage=Depends(get_storage_backend),
    db=Depends(get_db)
):
    """Short-lived signed URL for previewing or downloading"""
    return {"url": DocumentService(db).download_url(current_user.id, document_id, storage)}


# ==================== Share Endpoints ====================

@router.get("/{document_id}/shares", response_model=List[ShareResponse])
def list_shares(
    document_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).list_shares(current_user.id, document_id)


@router.post("/{document_id}/shares", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
def share_document(
    document_id: uuid.UUID,
    payload: ShareCreate,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return DocumentService(db).share_document(current_user.id, document_id, payload.email)


@router.delete("/shares/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_share(
    share_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    DocumentService(db).revoke_share(current_user.id, share_id)
