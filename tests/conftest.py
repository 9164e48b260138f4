"""Shared pytest fixtures for alfresco-kickstart tests."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from urllib.parse import parse_qs, urlsplit

import pytest
from typer.testing import CliRunner

from alfresco_kickstart.config import AppConfig, DeployConfig, EndpointsConfig, RepositoryConfig
from alfresco_kickstart.errors import DocumentNotFoundError, FolderNotFoundError, RepositoryError
from alfresco_kickstart.orchestrator import KickstartOrchestrator
from alfresco_kickstart.repository import HttpResponse, RepositoryObject, join_path
from alfresco_kickstart.repository.base import FOLDER_BASE_TYPE
from alfresco_kickstart.workflow import FormDefinition, FormProperty, Task, TaskType, UserTask, WorkflowDefinition

ALFRESCO_URL = "http://alfresco.test/alfresco/service/"
SHARE_URL = "http://share.test/share/"
INSTANCES_URL = "http://alfresco.test/alfresco/service/api/workflow-instances"
DEFINITIONS_FOLDER = "/Data Dictionary/Workflow Definitions"
MODELS_FOLDER = "/Data Dictionary/Models"


@dataclass
class StoredDocument:
    content: bytes
    content_type: str
    properties: dict = field(default_factory=dict)


class FakeRepository:
    """In-memory content repository."""

    def __init__(self, folders=(DEFINITIONS_FOLDER, MODELS_FOLDER)):
        self.folders = {}
        for i, path in enumerate(folders):
            self.folders[path] = RepositoryObject(
                id=f"workspace://SpacesStore/folder-{i}",
                name=path.rsplit("/", 1)[-1],
                path=path,
                base_type=FOLDER_BASE_TYPE,
            )
        self.documents: dict[str, StoredDocument] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}  # document name -> error raised on create/delete
        self.query_rows: list[dict] = []
        self.queries: list[str] = []

    def add_document(self, path: str, content: bytes = b"", content_type: str = "application/xml", **properties):
        self.documents[path] = StoredDocument(content, content_type, properties)

    def resolve(self, path):
        if path in self.folders:
            return self.folders[path]
        if path in self.documents:
            name = path.rsplit("/", 1)[-1]
            properties = {"cmis:name": name, **self.documents[path].properties}
            return RepositoryObject(id=f"doc:{path}", name=name, path=path, properties=properties)
        return None

    def create_document(self, folder_path, name, content_type, content, properties=None):
        self.calls.append(("create", join_path(folder_path, name)))
        if folder_path not in self.folders:
            raise FolderNotFoundError(f"Cannot find folder '{folder_path}'", folder_path)
        if name in self.failures:
            raise self.failures[name]
        path = join_path(folder_path, name)
        if path in self.documents:
            raise RepositoryError(f"Cannot create '{name}': contentAlreadyExists", folder_path)
        self.documents[path] = StoredDocument(content, content_type, dict(properties or {}))
        return RepositoryObject(id=f"doc:{path}", name=name, path=path)

    def delete_document(self, path, force=True):
        self.calls.append(("delete", path))
        name = path.rsplit("/", 1)[-1]
        if name in self.failures:
            raise self.failures[name]
        if path not in self.documents:
            raise DocumentNotFoundError(f"Document not found: {path}", path)
        del self.documents[path]

    def query(self, statement):
        self.queries.append(statement)
        return list(self.query_rows)

    def get_content(self, path):
        if path not in self.documents:
            raise DocumentNotFoundError(f"Document not found: {path}", path)
        return self.documents[path].content

    def set_content(self, path, content, content_type):
        self.calls.append(("set_content", path))
        if path not in self.documents:
            raise DocumentNotFoundError(f"Document not found: {path}", path)
        self.documents[path].content = content
        self.documents[path].content_type = content_type

    def document_names(self, folder_path):
        prefix = folder_path.rstrip("/") + "/"
        return sorted(path[len(prefix):] for path in self.documents if path.startswith(prefix))


class FakeAlfresco:
    """
    In-memory Alfresco and Share web scripts, with the HttpGateway interface.

    Serves the workflow instances API (query and forced delete) and the
    Share module endpoints.
    """

    def __init__(self, instances=None):
        self.instances: list[str] = list(instances or [])
        self.calls: list[tuple[str, str]] = []
        self.posted: list[tuple[str, str, str]] = []
        self.module_upload_status = 200
        self.module_delete_status = 200
        self.query_status = 200
        self.undeletable: set[str] = set()
        # instance id -> number of deletes rejected before one succeeds
        self.flaky: dict[str, int] = {}
        self.closed = False

    def get(self, url):
        self.calls.append(("GET", url))
        if url.startswith(INSTANCES_URL + "?"):
            if self.query_status != 200:
                return HttpResponse(self.query_status, "error", url)
            params = parse_qs(urlsplit(url).query)
            max_items = int(params["maxItems"][0])
            skip = int(params.get("skipCount", ["0"])[0])
            page = self.instances[skip : skip + max_items]
            body = {"data": [{"id": i} for i in page], "paging": {"totalItems": len(self.instances)}}
            return HttpResponse(200, json.dumps(body), url)
        return HttpResponse(self.module_delete_status, "", url)

    def post(self, url, body, content_type):
        self.calls.append(("POST", url))
        self.posted.append((url, body, content_type))
        return HttpResponse(self.module_upload_status, "", url)

    def delete(self, url):
        self.calls.append(("DELETE", url))
        instance_id = urlsplit(url).path.rsplit("/", 1)[-1]
        if instance_id in self.undeletable or instance_id not in self.instances:
            return HttpResponse(500, "error", url)
        if self.flaky.get(instance_id, 0) > 0:
            self.flaky[instance_id] -= 1
            return HttpResponse(500, "error", url)
        self.instances.remove(instance_id)
        return HttpResponse(200, "", url)

    def close(self):
        self.closed = True


class SequentialKeys:
    """Deterministic form key factory."""

    def __init__(self):
        self.count = 0

    def __call__(self):
        self.count += 1
        return f"ks:key-{self.count}"


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def app_config():
    """Configuration pointing at the fake servers."""
    return AppConfig(
        repository=RepositoryConfig(browser_url="http://cmis.test/browser", user="admin", password="admin"),
        endpoints=EndpointsConfig(alfresco_base_url=ALFRESCO_URL, share_base_url=SHARE_URL),
        deploy=DeployConfig(default_assignee="admin", drain_page_size=50, max_drain_rounds=10),
    )


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def alfresco():
    return FakeAlfresco()


@pytest.fixture
def form_keys():
    """Form key factory returning ks:key-1, ks:key-2, ..."""
    return SequentialKeys()


@pytest.fixture
def orchestrator(repository, alfresco, app_config, form_keys):
    """Orchestrator wired to in-memory servers, with deterministic form keys."""
    return KickstartOrchestrator(repository, alfresco, app_config, key_factory=form_keys)


@pytest.fixture
def sample_workflow():
    """Workflow with a form task, a service task and a task without form."""
    return WorkflowDefinition(
        name="Expense Approval",
        description="Approve expenses",
        tasks=[
            UserTask(
                name="Review",
                assignee="kermit",
                form=FormDefinition(
                    properties=[
                        FormProperty(name="Amount", type="number", required=True),
                        FormProperty(name="Comment", type="text"),
                    ]
                ),
            ),
            Task(name="Archive", type=TaskType.SERVICE),
            UserTask(name="Notify"),
        ],
    )


@pytest.fixture
def sample_json():
    """Editor JSON source equivalent to sample_workflow."""
    return json.dumps(
        {
            "name": "Expense Approval",
            "description": "Approve expenses",
            "steps": [
                {
                    "type": "human-step",
                    "name": "Review",
                    "assignee": "kermit",
                    "form": {
                        "formProperties": [
                            {"property": "Amount", "type": "number", "required": True},
                            {"property": "Comment", "type": "text"},
                        ]
                    },
                },
                {"type": "service-step", "name": "Archive"},
                {"type": "human-step", "name": "Notify"},
            ],
        }
    )


@pytest.fixture
def sample_json_file(tmp_path, sample_json):
    path = tmp_path / "expense-approval.json"
    path.write_text(sample_json)
    return path


@pytest.fixture
def deployed(orchestrator, repository, sample_workflow, sample_json):
    """Repository state after a successful deploy of sample_workflow."""
    orchestrator.deploy(sample_workflow, {"workflow_json_source": sample_json})
    repository.calls.clear()
    return repository


@pytest.fixture
def created_at():
    return datetime(2024, 3, 1, 12, 30, tzinfo=UTC)
