"""Content repository interface used by the orchestrator."""

from dataclasses import dataclass, field
from typing import Any, Protocol

FOLDER_BASE_TYPE = "cmis:folder"
DOCUMENT_BASE_TYPE = "cmis:document"


@dataclass
class RepositoryObject:
    """A folder or document in the content repository."""

    id: str
    name: str
    path: str | None = None
    base_type: str = DOCUMENT_BASE_TYPE
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def is_folder(self) -> bool:
        return self.base_type == FOLDER_BASE_TYPE

    def get(self, property_id: str, default: Any = None) -> Any:
        """Property value by id (e.g. "cm:description")."""
        return self.properties.get(property_id, default)


def join_path(folder_path: str, name: str) -> str:
    """Repository path of `name` inside `folder_path`."""
    return f"{folder_path.rstrip('/')}/{name}"


class ContentRepository(Protocol):
    """
    Document store holding deployed artifacts.

    Paths are absolute repository paths ("/Data Dictionary/Models/x.xml").
    Query rows map property ids to values, without select aliases.
    """

    def resolve(self, path: str) -> RepositoryObject | None:
        """Get the folder or document at `path`, None if nothing is there."""
        ...

    def create_document(
        self,
        folder_path: str,
        name: str,
        content_type: str,
        content: bytes,
        properties: dict[str, Any] | None = None,
    ) -> RepositoryObject:
        """Create a document (major version) in an existing folder."""
        ...

    def delete_document(self, path: str, force: bool = True) -> None:
        """Delete a document; raises DocumentNotFoundError if it doesn't exist."""
        ...

    def query(self, statement: str) -> list[dict[str, Any]]:
        """Run a CMIS query and return result rows in server order."""
        ...

    def get_content(self, path: str) -> bytes:
        """Read a document's content stream."""
        ...

    def set_content(self, path: str, content: bytes, content_type: str) -> None:
        """Replace a document's content stream."""
        ...
