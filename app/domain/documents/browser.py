"""
Document browser view

Pure helpers behind the folder browser: the synthetic per-sender folders
built from shared documents, the breadcrumb navigation stack, the search and
category filter, and removal of legacy materialised "Compartido de ..."
folders. Synthetic folders are never stored; they are recomputed from the
share rows on every load and only appear at the root.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from app.domain.documents.models import DEFAULT_FOLDER_COLOR

ROOT_NAME = "Mis Documentos"
SHARED_PREFIX = "shared-"
SHARED_FALLBACK_NAME = "Compartido"
LEGACY_SHARED_PREFIX = "compartido de "


@dataclass(frozen=True)
class SharedEntry:
    """A document someone shared with me, tagged with its sender"""
    document: Any
    sender_id: str
    sender_name: str


@dataclass(frozen=True)
class SyntheticFolder:
    id: str
    name: str
    sender_id: str
    color: str = DEFAULT_FOLDER_COLOR
    synthetic: bool = True


@dataclass
class BrowserView:
    """What the browser shows for the current folder"""
    folders: List[Any] = field(default_factory=list)
    documents: List[Any] = field(default_factory=list)


def shared_folder_id(sender_id: str) -> str:
    return f"{SHARED_PREFIX}{sender_id}"


def is_shared_folder_id(folder_id: Optional[str]) -> bool:
    return bool(folder_id) and str(folder_id).startswith(SHARED_PREFIX)


def sender_of(folder_id: str) -> str:
    return str(folder_id)[len(SHARED_PREFIX):]


def to_shared_entries(shares: Iterable[Any]) -> List[SharedEntry]:
    """Turn share rows (with ``document`` and ``sender`` loaded) into entries"""
    entries = []
    for share in shares:
        if share.document is None:
            continue
        sender = share.sender
        sender_id = str(sender.id) if sender is not None else "shared"
        name = None
        if sender is not None:
            name = sender.full_name or sender.email
        entries.append(SharedEntry(share.document, sender_id, name or SHARED_FALLBACK_NAME))
    return entries


def build_shared_folders(entries: Iterable[SharedEntry]) -> List[SyntheticFolder]:
    """One synthetic folder per distinct sender, in first-seen order"""
    names = {}
    for entry in entries:
        names[entry.sender_id] = entry.sender_name
    return [
        SyntheticFolder(id=shared_folder_id(sender_id), name=name, sender_id=sender_id)
        for sender_id, name in names.items()
    ]


def is_legacy_shared_folder(name: str) -> bool:
    return (name or "").lower().startswith(LEGACY_SHARED_PREFIX)


def cleanup_legacy_shared_folders(
    folders: Sequence[Any],
    delete: Callable[[Any], Any],
    current_folder_id: Optional[Any] = None
) -> Tuple[List[Any], bool]:
    """
    Delete materialised "Compartido de X" folders left over from older data.

    ``delete`` is called with each legacy folder id. Returns the folders that
    remain and whether the folder currently open was among those removed, in
    which case the caller should go back to the root.
    """
    legacy = [f for f in folders if is_legacy_shared_folder(f.name)]
    for folder in legacy:
        delete(folder.id)
    current_removed = current_folder_id is not None and any(
        str(f.id) == str(current_folder_id) for f in legacy
    )
    kept = [f for f in folders if not is_legacy_shared_folder(f.name)]
    return kept, current_removed


def compose_view(
    current_folder_id: Optional[str],
    own_documents: Sequence[Any],
    own_folders: Sequence[Any],
    entries: Sequence[SharedEntry]
) -> BrowserView:
    """Merge real folders with synthetic shared folders for the open location"""
    if is_shared_folder_id(current_folder_id):
        sender_id = sender_of(current_folder_id)
        documents = [e.document for e in entries if e.sender_id == sender_id]
        folders = list(own_folders)
    elif current_folder_id:
        documents = list(own_documents)
        folders = list(own_folders)
    else:
        documents = list(own_documents)
        folders = list(own_folders) + build_shared_folders(entries)

    return BrowserView(folders=_dedup(folders), documents=_dedup(documents))


def _dedup(items: Iterable[Any]) -> List[Any]:
    seen = set()
    unique = []
    for item in items:
        key = str(item.id)
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


def filter_view(view: BrowserView, term: str = "", category: Optional[str] = None) -> BrowserView:
    """Apply the search box and category chip to a view"""
    documents = list(view.documents)
    folders = list(view.folders)

    search = (term or "").strip().lower()
    if search:
        documents = [
            d for d in documents
            if search in (d.title or "").lower() or search in (d.notes or "").lower()
        ]
        folders = [f for f in folders if search in (f.name or "").lower()]

    if category and category != "all":
        documents = [d for d in documents if _category_value(d) == category]
        # Folders have no category; keep only those matched by the search
        if not search:
            folders = []

    return BrowserView(folders=folders, documents=documents)


def _category_value(document: Any) -> str:
    category = document.category
    return getattr(category, "value", category)


@dataclass(frozen=True)
class Crumb:
    id: Optional[str]
    name: str


class NavigationStack:
    """In-memory breadcrumb trail of opened folders"""

    def __init__(self):
        self.current = Crumb(None, ROOT_NAME)
        self.history: List[Crumb] = []

    @property
    def breadcrumbs(self) -> List[Crumb]:
        return self.history + [self.current]

    @property
    def at_root(self) -> bool:
        return self.current.id is None

    def push(self, folder_id: str, name: str) -> Crumb:
        """Open a folder below the current one"""
        self.history.append(self.current)
        self.current = Crumb(folder_id, name)
        return self.current

    def go_to(self, index: int) -> Crumb:
        """Jump to a breadcrumb; ``-1`` is the root"""
        if index < 0:
            return self.root()
        if index >= len(self.history):
            raise IndexError(f"No breadcrumb at position {index}")
        self.current = self.history[index]
        self.history = self.history[:index]
        return self.current

    def root(self) -> Crumb:
        self.current = Crumb(None, ROOT_NAME)
        self.history = []
        return self.current
