"""
CMIS browser binding client for Alfresco.

Implements the ContentRepository interface over the CMIS 1.1 browser binding
(JSON over HTTP). Repository info is fetched once, on first use, and kept
for the life of the object; an expired session surfaces as a failed call.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..errors import DocumentNotFoundError, FolderNotFoundError, RepositoryError
from .base import DOCUMENT_BASE_TYPE, FOLDER_BASE_TYPE, RepositoryObject

logger = logging.getLogger(__name__)

QUERY_PAGE_SIZE = 100


def _strip_alias(key: str) -> str:
    """Drop a select alias: "d.cmis:name" -> "cmis:name"."""
    prefix, sep, rest = key.partition(".")
    if sep and ":" not in prefix:
        return rest
    return key


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _property_form(properties: dict[str, Any]) -> dict[str, str]:
    """Encode properties as browser binding form fields (propertyId[i], propertyValue[i][j])."""
    form = {}
    for i, (property_id, value) in enumerate(properties.items()):
        form[f"propertyId[{i}]"] = property_id
        if isinstance(value, (list, tuple)):
            for j, item in enumerate(value):
                form[f"propertyValue[{i}][{j}]"] = _form_value(item)
        else:
            form[f"propertyValue[{i}]"] = _form_value(value)
    return form


class CmisBrowserRepository:
    """
    Alfresco content repository over the CMIS browser binding.

    One instance is created at startup and passed to the orchestrator.
    """

    def __init__(
        self,
        browser_url: str,
        user: str,
        password: str,
        repository_id: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        query_page_size: int = QUERY_PAGE_SIZE,
    ):
        """
        Initialize the client (no request is made until first use).

        Args:
            browser_url: Browser binding service URL
            user: Alfresco user name
            password: Alfresco password
            repository_id: Repository to use (default: first one advertised)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
            query_page_size: Rows requested per query page
        """
        self.browser_url = browser_url.rstrip("/")
        self.repository_id = repository_id
        self.query_page_size = query_page_size
        self._client = httpx.Client(auth=(user, password), timeout=timeout, transport=transport)
        self._root_folder_url: str | None = None
        self._repository_url: str | None = None

    def connect(self) -> None:
        """Fetch repository info. Called automatically on first use."""
        if self._root_folder_url is not None:
            return

        response = self._send("GET", self.browser_url)
        if response.status_code != 200:
            raise RepositoryError(f"Cannot read repository info from {self.browser_url}: HTTP {response.status_code}")

        infos = response.json()
        if not infos:
            raise RepositoryError(f"No repositories at {self.browser_url}")

        repository_id = self.repository_id or next(iter(infos))
        if repository_id not in infos:
            raise RepositoryError(f"Repository '{repository_id}' not found at {self.browser_url}")

        info = infos[repository_id]
        self.repository_id = repository_id
        self._root_folder_url = info["rootFolderUrl"].rstrip("/")
        self._repository_url = info["repositoryUrl"]
        logger.info(f"Connected to repository '{repository_id}'")

    @property
    def root_folder_url(self) -> str:
        self.connect()
        return self._root_folder_url

    @property
    def repository_url(self) -> str:
        self.connect()
        return self._repository_url

    def resolve(self, path: str) -> RepositoryObject | None:
        response = self._send(
            "GET", self._object_url(path), params={"cmisselector": "object", "succinct": "true"}
        )
        if response.status_code == 404:
            return None
        self._check(response, f"Cannot resolve '{path}'", path)
        return self._to_object(response.json(), path)

    def create_document(
        self,
        folder_path: str,
        name: str,
        content_type: str,
        content: bytes,
        properties: dict[str, Any] | None = None,
    ) -> RepositoryObject:
        all_properties = {"cmis:name": name, "cmis:objectTypeId": DOCUMENT_BASE_TYPE, **(properties or {})}
        form = {
            "cmisaction": "createDocument",
            "versioningState": "major",
            "succinct": "true",
            **_property_form(all_properties),
        }
        response = self._send(
            "POST",
            self._object_url(folder_path),
            data=form,
            files={"content": (name, content, content_type)},
        )
        if response.status_code == 404:
            raise FolderNotFoundError(f"Cannot find folder '{folder_path}'", folder_path)
        self._check(response, f"Cannot create '{name}' in '{folder_path}'", folder_path)
        return self._to_object(response.json(), f"{folder_path.rstrip('/')}/{name}")

    def delete_document(self, path: str, force: bool = True) -> None:
        form = {"cmisaction": "delete", "allVersions": _form_value(force)}
        response = self._send("POST", self._object_url(path), data=form)
        if response.status_code == 404:
            raise DocumentNotFoundError(f"Document not found: {path}", path)
        self._check(response, f"Cannot delete '{path}'", path)

    def query(self, statement: str) -> list[dict[str, Any]]:
        logger.info(f"Executing CMIS query '{statement}'")
        rows = []
        while True:
            params = {
                "cmisselector": "query",
                "q": statement,
                "succinct": "true",
                "searchAllVersions": "false",
                "maxItems": self.query_page_size,
                "skipCount": len(rows),
            }
            response = self._send("GET", self.repository_url, params=params)
            self._check(response, "Query failed")
            data = response.json()
            results = data.get("results", [])
            for result in results:
                values = result.get("succinctProperties", {})
                rows.append({_strip_alias(key): value for key, value in values.items()})
            # An empty page ends the loop even if the server claims more
            if not data.get("hasMoreItems") or not results:
                return rows

    def get_content(self, path: str) -> bytes:
        response = self._send("GET", self._object_url(path), params={"cmisselector": "content"})
        if response.status_code == 404:
            raise DocumentNotFoundError(f"Document not found: {path}", path)
        self._check(response, f"Cannot read '{path}'", path)
        return response.content

    def set_content(self, path: str, content: bytes, content_type: str) -> None:
        name = path.rsplit("/", 1)[-1]
        response = self._send(
            "POST",
            self._object_url(path),
            data={"cmisaction": "setContent", "overwriteFlag": "true"},
            files={"content": (name, content, content_type)},
        )
        if response.status_code == 404:
            raise DocumentNotFoundError(f"Document not found: {path}", path)
        self._check(response, f"Cannot write '{path}'", path)

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def _object_url(self, path: str) -> str:
        return f"{self.root_folder_url}{quote(path)}"

    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise RepositoryError(f"Repository request failed: {e}") from e

    @staticmethod
    def _check(response: httpx.Response, message: str, path: str | None = None) -> None:
        if response.status_code < 400:
            return
        try:
            data = response.json()
        except ValueError:
            data = None
        detail = data["message"] if isinstance(data, dict) and data.get("message") else response.text
        raise RepositoryError(f"{message}: HTTP {response.status_code} {detail}", path)

    @staticmethod
    def _to_object(data: dict, path: str) -> RepositoryObject:
        properties = data.get("succinctProperties", {})
        return RepositoryObject(
            id=properties.get("cmis:objectId", ""),
            name=properties.get("cmis:name", ""),
            path=properties.get("cmis:path", path),
            base_type=properties.get("cmis:baseTypeId", FOLDER_BASE_TYPE if "cmis:path" in properties else ""),
            properties=properties,
        )
