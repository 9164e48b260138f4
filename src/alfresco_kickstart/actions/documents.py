"""Document actions - Upload, read and remove repository documents."""

import logging
from dataclasses import dataclass
from typing import Any

from ..errors import DocumentNotFoundError, FolderNotFoundError, RepositoryError
from ..repository import ContentRepository, RepositoryObject, join_path

logger = logging.getLogger(__name__)


@dataclass
class RemoveResult:
    """Result of removing one document."""

    name: str
    path: str
    removed: bool
    missing: bool = False
    error: str | None = None


def require_folder(repository: ContentRepository, folder_path: str) -> RepositoryObject:
    """
    Resolve a folder that must exist.

    Raises:
        FolderNotFoundError: If nothing (or a document) is at the path
    """
    folder = repository.resolve(folder_path)
    if folder is None or not folder.is_folder:
        raise FolderNotFoundError(f"Cannot find folder '{folder_path}'", folder_path)
    return folder


def upload_document(
    repository: ContentRepository,
    folder_path: str,
    name: str,
    content: bytes | str,
    content_type: str,
    properties: dict[str, Any] | None = None,
) -> RepositoryObject:
    """
    Create a document in a folder.

    Args:
        repository: Content repository
        folder_path: Existing folder
        name: Document name
        content: Bytes, or text encoded as UTF-8
        content_type: MIME type of the content
        properties: Extra CMIS properties (type id, aspects, metadata)

    Returns:
        The created document
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    document = repository.create_document(folder_path, name, content_type, content, properties or {})
    logger.info(f"Uploaded '{join_path(folder_path, name)}' ({len(content)} bytes)")
    return document


def read_document(repository: ContentRepository, folder_path: str, name: str) -> bytes:
    """
    Read a document's content.

    Raises:
        DocumentNotFoundError: If the document doesn't exist
    """
    return repository.get_content(join_path(folder_path, name))


def remove_document(repository: ContentRepository, folder_path: str, name: str) -> RemoveResult:
    """
    Remove a document, best effort.

    A missing document is reported, not raised: cleanup is idempotent.

    Returns:
        RemoveResult describing what happened
    """
    path = join_path(folder_path, name)
    try:
        repository.delete_document(path, force=True)
    except DocumentNotFoundError:
        logger.warning(f"Document not found, nothing to remove: {path}")
        return RemoveResult(name=name, path=path, removed=False, missing=True)
    except RepositoryError as e:
        logger.error(f"Failed to remove {path}: {e}")
        return RemoveResult(name=name, path=path, removed=False, error=str(e))

    logger.info(f"Removed document {path}")
    return RemoveResult(name=name, path=path, removed=True)
