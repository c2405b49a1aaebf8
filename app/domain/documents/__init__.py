# Documents domain module
from app.domain.documents.models import (
    DocCategory,
    Document,
    DocumentShare,
    Folder,
)

__all__ = [
    "DocCategory",
    "Document",
    "DocumentShare",
    "Folder",
]
