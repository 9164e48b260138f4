"""Tests for the CMIS browser binding client and the HTTP gateway."""

import json

import httpx
import pytest

from alfresco_kickstart.errors import (
    DocumentNotFoundError,
    FolderNotFoundError,
    RemoteCallError,
    RepositoryError,
)
from alfresco_kickstart.repository import CmisBrowserRepository, HttpGateway, HttpResponse, join_path

BROWSER_URL = "http://cmis.test/browser"
ROOT_URL = "http://cmis.test/browser/root"
REPO_URL = "http://cmis.test/browser/repo"

REPOSITORY_INFO = {"-default-": {"repositoryId": "-default-", "rootFolderUrl": ROOT_URL, "repositoryUrl": REPO_URL}}


class CmisServer:
    """Minimal browser binding server for httpx.MockTransport."""

    def __init__(self):
        self.objects: dict[str, dict] = {
            "/Data Dictionary/Models": {
                "cmis:objectId": "folder-1",
                "cmis:name": "Models",
                "cmis:baseTypeId": "cmis:folder",
                "cmis:path": "/Data Dictionary/Models",
            }
        }
        self.contents: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.forms: list[bytes] = []
        self.results: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        params = request.url.params
        if url == BROWSER_URL:
            return httpx.Response(200, json=REPOSITORY_INFO)
        if url.startswith(REPO_URL):
            skip = int(params.get("skipCount", 0))
            max_items = int(params.get("maxItems", len(self.results)))
            page = self.results[skip : skip + max_items]
            more = skip + max_items < len(self.results)
            return httpx.Response(200, json={"results": page, "hasMoreItems": more, "numItems": len(self.results)})

        path = request.url.path[len("/browser/root"):]
        if request.method == "GET":
            if path not in self.objects:
                return httpx.Response(404, json={"message": "not found"})
            if params.get("cmisselector") == "content":
                return httpx.Response(200, content=self.contents.get(path, b""))
            return httpx.Response(200, json={"succinctProperties": self.objects[path]})

        body = request.read()
        self.forms.append(body)
        if b"createDocument" in body:
            if path not in self.objects:
                return httpx.Response(404, json={"message": "folder not found"})
            created = {"cmis:objectId": "doc-1", "cmis:name": "x.xml", "cmis:baseTypeId": "cmis:document"}
            return httpx.Response(201, json={"succinctProperties": created})
        if path not in self.objects:
            return httpx.Response(404, json={"message": "not found"})
        if b"delete" in body:
            del self.objects[path]
            return httpx.Response(200, json={})
        if b"setContent" in body:
            return httpx.Response(201, json={})
        return httpx.Response(400, json={"message": "bad action"})


@pytest.fixture
def server():
    return CmisServer()


@pytest.fixture
def cmis(server):
    client = CmisBrowserRepository(BROWSER_URL, "admin", "admin", transport=httpx.MockTransport(server))
    yield client
    client.close()


class TestCmisBrowserRepository:
    """Tests for CmisBrowserRepository."""

    def test_connect_once(self, cmis, server):
        """Test repository info is read once."""
        cmis.resolve("/Data Dictionary/Models")
        cmis.resolve("/Data Dictionary/Models")

        info_requests = [r for r in server.requests if str(r.url) == BROWSER_URL]
        assert len(info_requests) == 1
        assert cmis.repository_id == "-default-"

    def test_unknown_repository(self, server):
        """Test a configured repository id must exist."""
        client = CmisBrowserRepository(
            BROWSER_URL, "admin", "admin", repository_id="other", transport=httpx.MockTransport(server)
        )
        with pytest.raises(RepositoryError, match="other"):
            client.connect()

    def test_resolve_folder(self, cmis):
        """Test a folder resolves with its properties."""
        folder = cmis.resolve("/Data Dictionary/Models")
        assert folder.is_folder
        assert folder.id == "folder-1"
        assert folder.path == "/Data Dictionary/Models"

    def test_resolve_missing(self, cmis):
        """Test a missing path resolves to None."""
        assert cmis.resolve("/Nowhere") is None

    def test_basic_auth(self, cmis, server):
        """Test requests carry basic auth credentials."""
        cmis.resolve("/Data Dictionary/Models")
        assert server.requests[-1].headers["authorization"].startswith("Basic ")

    def test_create_document(self, cmis, server):
        """Test documents are created with name, type and extra properties."""
        document = cmis.create_document(
            "/Data Dictionary/Models",
            "x-task-model.xml",
            "application/xml",
            b"<model/>",
            {"cmis:objectTypeId": "D:cm:dictionaryModel", "cm:modelActive": True},
        )

        assert document.id == "doc-1"
        body = server.forms[-1]
        assert b"createDocument" in body
        assert b"x-task-model.xml" in body
        assert b"D:cm:dictionaryModel" in body
        assert b"<model/>" in body
        assert b"versioningState" in body

    def test_create_in_missing_folder(self, cmis):
        """Test creating in a missing folder raises FolderNotFoundError."""
        with pytest.raises(FolderNotFoundError):
            cmis.create_document("/Nowhere", "x.xml", "application/xml", b"<x/>")

    def test_delete_document(self, cmis, server):
        """Test a document is deleted."""
        server.objects["/Data Dictionary/Models/x.xml"] = {"cmis:objectId": "doc-1", "cmis:name": "x.xml"}
        cmis.delete_document("/Data Dictionary/Models/x.xml")
        assert "/Data Dictionary/Models/x.xml" not in server.objects

    def test_delete_missing_document(self, cmis):
        """Test deleting a missing document raises DocumentNotFoundError."""
        with pytest.raises(DocumentNotFoundError):
            cmis.delete_document("/Data Dictionary/Models/x.xml")

    def test_get_content(self, cmis, server):
        """Test the content stream is returned."""
        server.objects["/Data Dictionary/Models/x.xml"] = {"cmis:objectId": "doc-1", "cmis:name": "x.xml"}
        server.contents["/Data Dictionary/Models/x.xml"] = b"<x/>"
        assert cmis.get_content("/Data Dictionary/Models/x.xml") == b"<x/>"

    def test_get_missing_content(self, cmis):
        """Test reading a missing document raises DocumentNotFoundError."""
        with pytest.raises(DocumentNotFoundError):
            cmis.get_content("/Data Dictionary/Models/x.xml")

    def test_set_content(self, cmis, server):
        """Test the content stream is replaced."""
        server.objects["/Data Dictionary/Models/x.png"] = {"cmis:objectId": "doc-1", "cmis:name": "x.png"}
        cmis.set_content("/Data Dictionary/Models/x.png", b"png", "image/png")
        assert b"setContent" in server.forms[-1]

    def test_query_strips_aliases(self, cmis, server):
        """Test query rows are keyed by property id."""
        server.results = [
            {"succinctProperties": {"d.cmis:name": "a.bpmn20.xml", "t.cm:description": "A", "cmis:creationDate": 1}}
        ]

        rows = cmis.query("select ...")

        assert rows == [{"cmis:name": "a.bpmn20.xml", "cm:description": "A", "cmis:creationDate": 1}]
        assert server.requests[-1].url.params["cmisselector"] == "query"

    def test_query_pages(self, server):
        """Test query follows hasMoreItems across pages, keeping row order."""
        server.results = [{"succinctProperties": {"cmis:name": f"wf{n}.bpmn20.xml"}} for n in range(5)]
        client = CmisBrowserRepository(
            BROWSER_URL, "admin", "admin", transport=httpx.MockTransport(server), query_page_size=2
        )

        with client:
            rows = client.query("select ...")

        assert [row["cmis:name"] for row in rows] == [f"wf{n}.bpmn20.xml" for n in range(5)]
        queries = [r for r in server.requests if str(r.url).startswith(REPO_URL)]
        assert [r.url.params["skipCount"] for r in queries] == ["0", "2", "4"]
        assert all(r.url.params["maxItems"] == "2" for r in queries)

    def test_error_message(self, server):
        """Test server error messages are included in RepositoryError."""

        def failing(request):
            if str(request.url) == BROWSER_URL:
                return httpx.Response(200, json=REPOSITORY_INFO)
            return httpx.Response(500, json={"message": "repository offline"})

        client = CmisBrowserRepository(BROWSER_URL, "admin", "admin", transport=httpx.MockTransport(failing))
        with pytest.raises(RepositoryError, match="repository offline"):
            client.resolve("/Data Dictionary")

    def test_connection_error(self):
        """Test transport errors become RepositoryError."""

        def unreachable(request):
            raise httpx.ConnectError("connection refused")

        client = CmisBrowserRepository(BROWSER_URL, "admin", "admin", transport=httpx.MockTransport(unreachable))
        with pytest.raises(RepositoryError):
            client.connect()


class TestJoinPath:
    """Tests for join_path function."""

    def test_join(self):
        assert join_path("/Data Dictionary/Models", "x.xml") == "/Data Dictionary/Models/x.xml"

    def test_trailing_slash(self):
        assert join_path("/Data Dictionary/Models/", "x.xml") == "/Data Dictionary/Models/x.xml"


class TestHttpGateway:
    """Tests for HttpGateway."""

    def test_get(self):
        """Test responses are returned with status and body."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text='{"ok": true}'))
        with HttpGateway("admin", "admin", transport=transport) as http:
            response = http.get("http://alfresco.test/x")

        assert response.ok
        assert response.json() == {"ok": True}

    def test_error_status_not_raised(self):
        """Test error statuses are returned, not raised."""
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        with HttpGateway("admin", "admin", transport=transport) as http:
            response = http.delete("http://alfresco.test/x")

        assert not response.ok
        assert response.status_code == 500

    def test_post_content_type(self):
        """Test POST sends the body with its content type."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        with HttpGateway("admin", "admin", transport=httpx.MockTransport(handler)) as http:
            http.post("http://share.test/m", "<module/>", "application/xml")

        assert seen[0].headers["content-type"].startswith("application/xml")
        assert seen[0].content == b"<module/>"

    def test_transport_error(self):
        """Test transport errors become RemoteCallError."""

        def unreachable(request):
            raise httpx.ConnectError("connection refused")

        with HttpGateway("admin", "admin", transport=httpx.MockTransport(unreachable)) as http:
            with pytest.raises(RemoteCallError) as exc_info:
                http.get("http://alfresco.test/x")

        assert exc_info.value.url == "http://alfresco.test/x"

    def test_invalid_json(self):
        """Test a non-JSON body raises RemoteCallError."""
        response = HttpResponse(200, "<html/>", "http://alfresco.test/x")
        with pytest.raises(RemoteCallError):
            response.json()

    def test_json_roundtrip(self):
        """Test JSON bodies parse."""
        assert HttpResponse(200, json.dumps([1, 2])).json() == [1, 2]
