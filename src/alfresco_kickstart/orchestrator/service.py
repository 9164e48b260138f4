"""
Kickstart orchestrator - Deploys workflows to Alfresco and removes them.

Deploy order matters. The task model goes first: the process definition
references form keys whose types the engine resolves when the definition is
activated. The process definition goes last: uploading it to the workflow
definitions folder with the engine flags set is what deploys it.

Delete drains running instances first: the engine refuses to undeploy a
definition that still has instances.
"""

import logging
import threading
import weakref
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from xml.dom import minidom
from xml.parsers.expat import ExpatError

from ..actions import (
    count_instances,
    delete_form_config,
    drain_instances,
    read_document,
    remove_document,
    require_folder,
    upload_document,
    upload_form_config,
)
from ..bpmn import marshall_workflow
from ..config import AppConfig
from ..constants import (
    BPMN_SUFFIX,
    DICTIONARY_MODEL_TYPE,
    ENGINE_ID,
    JSON_CONTENT_TYPE,
    PNG_CONTENT_TYPE,
    TITLED_ASPECT,
    WORKFLOW_DEFINITION_TYPE,
    XML_CONTENT_TYPE,
    MetadataKeys,
)
from ..diagram import ProcessDiagram, generate_diagram
from ..errors import (
    DocumentNotFoundError,
    KickstartError,
    MissingMetadataError,
    UnsupportedQueryError,
    WorkflowNotFoundError,
)
from ..forms import (
    FormKeyFactory,
    generate_workflow_form_artifacts,
    new_form_key,
    render_form_config,
    render_task_model,
)
from ..naming import (
    base_name,
    base_name_from_bpmn_file_name,
    bpmn_file_name,
    definition_file_names,
    diagram_file_name,
    form_config_file_name,
    form_config_module_id,
    json_file_name,
    legacy_diagram_file_name,
    task_model_file_name,
)
from ..repository import CmisBrowserRepository, ContentRepository, HttpGateway, join_path
from ..workflow import WorkflowDefinition, WorkflowInfo, parse_workflow_json
from .results import DeleteResult, DeployResult, OrchestratorCallbacks, Step

logger = logging.getLogger(__name__)

LIST_QUERY = (
    "select t.cm:description, d.cmis:name, d.cmis:creationDate"
    " from cmis:document as d join cm:titled as t on d.cmis:objectId = t.cmis:objectId"
    " where in_folder(d, '{folder_id}') and d.cmis:name LIKE '%{suffix}' order by d.cmis:name"
)

DiagramGenerator = Callable[[WorkflowDefinition], ProcessDiagram]
Marshaller = Callable[..., str]


@dataclass
class _StepState:
    ok: bool = True


class KickstartOrchestrator:
    """
    Deploy, inspect and delete Kickstart workflows.

    Every remote call is made and awaited in order. Operations on the same
    workflow id are serialized within a process; different ids don't wait
    on each other.
    """

    def __init__(
        self,
        repository: ContentRepository,
        http: HttpGateway,
        config: AppConfig | None = None,
        marshaller: Marshaller = marshall_workflow,
        diagram_generator: DiagramGenerator = generate_diagram,
        key_factory: FormKeyFactory = new_form_key,
    ):
        """
        Initialize the orchestrator.

        Args:
            repository: Content repository holding the deployed documents
            http: HTTP gateway for Alfresco and Share web scripts
            config: Application configuration (defaults if None)
            marshaller: Builds process XML from (workflow, layout)
            diagram_generator: Builds layout and image from a workflow
            key_factory: Source of form keys
        """
        self.repository = repository
        self.http = http
        self.config = config or AppConfig()
        self.marshaller = marshaller
        self.diagram_generator = diagram_generator
        self.key_factory = key_factory
        # Entries go away once no caller holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # Deploy

    def deploy(
        self,
        workflow: WorkflowDefinition,
        metadata: dict[str, str],
        callbacks: OrchestratorCallbacks | None = None,
    ) -> DeployResult:
        """
        Deploy a workflow.

        Args:
            workflow: Workflow to deploy; its id, assignees and form keys are updated
            metadata: Must contain the workflow JSON source
            callbacks: Optional callbacks for progress reporting

        Returns:
            DeployResult with the workflow id, uploaded paths and warnings

        Raises:
            MissingMetadataError: If the JSON source is missing (nothing uploaded)
            FormValidationError: If a form property type is unsupported (nothing uploaded)
            KickstartError: If a required upload fails (no rollback)
        """
        json_source = metadata.get(MetadataKeys.WORKFLOW_JSON_SOURCE)
        if json_source is None:
            raise MissingMetadataError(MetadataKeys.WORKFLOW_JSON_SOURCE)

        workflow_id = base_name(workflow.name)
        workflow.id = workflow_id

        with self._workflow_lock(workflow_id):
            return self._deploy(workflow, workflow_id, json_source, callbacks or OrchestratorCallbacks())

    def _deploy(
        self, workflow: WorkflowDefinition, workflow_id: str, json_source: str, cb: OrchestratorCallbacks
    ) -> DeployResult:
        folders = self.config.folders
        result = DeployResult(workflow_id=workflow_id)

        # TODO: assign tasks from the editor's assignee once users can be resolved in Alfresco
        for task in workflow.user_tasks():
            task.assignee = self.config.deploy.default_assignee

        with self._step(cb, Step.FORMS, "Generating task model and form config"):
            forms = generate_workflow_form_artifacts(workflow, self.key_factory)
            result.form_keys = dict(forms.form_keys)

        require_folder(self.repository, folders.models)
        require_folder(self.repository, folders.workflow_definitions)

        with self._step(cb, Step.TASK_MODEL, "Uploading task model"):
            task_model = render_task_model(forms.type_definitions)
            _log_xml("task model", task_model)
            self._upload(
                result,
                cb,
                folders.models,
                task_model_file_name(workflow_id),
                task_model,
                XML_CONTENT_TYPE,
                {"cmis:objectTypeId": DICTIONARY_MODEL_TYPE, "cm:modelActive": True},
            )

        with self._step(cb, Step.FORM_CONFIG, "Deploying form config") as state:
            form_config = render_form_config(form_config_module_id(workflow_id), workflow.id, forms.form_configs)
            _log_xml("form config", form_config)

            module = upload_form_config(self.http, self.config.endpoints.module_upload_url, form_config)
            if not module.success:
                state.ok = False
                self._warn(result, cb, f"Form config module not deployed: {module.error}")

            # Kept next to the definition for later reference
            try:
                self._upload(
                    result,
                    cb,
                    folders.workflow_definitions,
                    form_config_file_name(workflow_id),
                    form_config,
                    XML_CONTENT_TYPE,
                )
            except KickstartError as e:
                state.ok = False
                self._warn(result, cb, f"Form config copy not stored: {e}")

        with self._step(cb, Step.DIAGRAM, "Uploading process image"):
            diagram = self.diagram_generator(workflow)
            self._upload(
                result, cb, folders.workflow_definitions, diagram_file_name(workflow_id), diagram.image, PNG_CONTENT_TYPE
            )

        with self._step(cb, Step.JSON_SOURCE, "Uploading json source"):
            self._upload(
                result, cb, folders.workflow_definitions, json_file_name(workflow_id), json_source, JSON_CONTENT_TYPE
            )

        with self._step(cb, Step.PROCESS, "Uploading process definition"):
            process_xml = self.marshaller(workflow, diagram.layout)
            _log_xml("process definition", process_xml)
            path = self._upload(
                result,
                cb,
                folders.workflow_definitions,
                bpmn_file_name(workflow_id),
                process_xml,
                XML_CONTENT_TYPE,
                {
                    "cmis:objectTypeId": WORKFLOW_DEFINITION_TYPE,
                    "cmis:secondaryObjectTypeIds": [TITLED_ASPECT],
                    "bpm:definitionDeployed": True,
                    "bpm:engineId": ENGINE_ID,
                    "cm:description": workflow.name,
                },
            )
            logger.info(f"Process definition uploaded to '{path}'")

        return result

    # Delete

    def delete(self, workflow_id: str, callbacks: OrchestratorCallbacks | None = None) -> DeleteResult:
        """
        Delete a deployed workflow.

        Running instances are removed first. Then every document of the
        workflow is removed, each independently; a document that's already
        gone is not an error.

        Raises:
            DrainError: If instances can't be removed (no document is touched)
        """
        cb = callbacks or OrchestratorCallbacks()
        with self._workflow_lock(workflow_id):
            result = DeleteResult(workflow_id=workflow_id)
            endpoints = self.config.endpoints

            with self._step(cb, Step.DRAIN, "Removing running instances"):
                drain = drain_instances(
                    self.http,
                    endpoints.workflow_instances_url,
                    workflow_id,
                    page_size=self.config.deploy.drain_page_size,
                    max_rounds=self.config.deploy.max_drain_rounds,
                    on_round=cb.on_drain_round,
                )
                result.drain_rounds = drain.rounds
                result.instances_deleted = drain.deleted

            with self._step(cb, Step.REMOVE, "Removing documents") as state:
                for folder_path, name in self._artifact_locations(workflow_id):
                    removal = remove_document(self.repository, folder_path, name)
                    if removal.removed:
                        result.removed.append(removal.path)
                    elif removal.missing:
                        result.missing.append(removal.path)
                    else:
                        state.ok = False
                        self._warn(result, cb, f"Could not remove {removal.path}: {removal.error}")
                    if cb.on_document_removed:
                        cb.on_document_removed(removal)

            with self._step(cb, Step.MODULE, "Removing form config") as state:
                module_id = form_config_module_id(workflow_id)
                module = delete_form_config(self.http, endpoints.module_delete_url(module_id))
                if not module.success:
                    state.ok = False
                    self._warn(result, cb, f"Form config module '{module_id}' not removed: {module.error}")

            return result

    def _artifact_locations(self, workflow_id: str) -> list[tuple[str, str]]:
        folders = self.config.folders
        locations = [(folders.workflow_definitions, name) for name in definition_file_names(workflow_id)]
        locations.append((folders.models, task_model_file_name(workflow_id)))
        return locations

    # Queries

    def list_workflows(self, include_counts: bool = False) -> list[WorkflowInfo]:
        """
        List deployed workflows, ordered by process definition name.

        Raises:
            UnsupportedQueryError: If include_counts is set (one call per workflow)
        """
        if include_counts:
            raise UnsupportedQueryError("Instance counts are not available when listing workflows")

        folder = require_folder(self.repository, self.config.folders.workflow_definitions)
        statement = LIST_QUERY.format(folder_id=folder.id.replace("'", "\\'"), suffix=BPMN_SUFFIX)
        rows = self.repository.query(statement)

        infos = []
        for row in rows:
            workflow_id = base_name_from_bpmn_file_name(row.get("cmis:name", ""))
            infos.append(
                WorkflowInfo(
                    id=workflow_id,
                    name=row.get("cm:description") or workflow_id,
                    create_time=_to_datetime(row.get("cmis:creationDate")),
                )
            )
        return infos

    def get_workflow(self, workflow_id: str, include_counts: bool = False) -> WorkflowInfo:
        """
        Get one deployed workflow.

        Raises:
            WorkflowNotFoundError: If there is no process definition for the id
        """
        folder_path = self.config.folders.workflow_definitions
        require_folder(self.repository, folder_path)

        document = self.repository.resolve(join_path(folder_path, bpmn_file_name(workflow_id)))
        if document is None:
            raise WorkflowNotFoundError(f"Could not find a process definition for '{workflow_id}'", workflow_id)

        info = WorkflowInfo(
            id=base_name_from_bpmn_file_name(document.name),
            name=document.get("cm:description") or workflow_id,
            create_time=_to_datetime(document.get("cmis:creationDate")),
        )
        if include_counts:
            info.runtime_instance_count = count_instances(
                self.http, self.config.endpoints.workflow_instances_url, info.id
            )
        return info

    def get_metadata(self, workflow_id: str, key: str) -> str:
        """
        Read deployment metadata stored with a workflow.

        Raises:
            UnsupportedQueryError: For unknown metadata keys
            WorkflowNotFoundError: If the metadata document doesn't exist
        """
        if key != MetadataKeys.WORKFLOW_JSON_SOURCE:
            raise UnsupportedQueryError(f"Unknown metadata key '{key}'", workflow_id)
        return self._read(workflow_id, json_file_name(workflow_id)).decode("utf-8")

    def find_workflow_by_id(self, workflow_id: str) -> WorkflowDefinition:
        """Rebuild a deployed workflow from its stored JSON source."""
        workflow = parse_workflow_json(self.get_metadata(workflow_id, MetadataKeys.WORKFLOW_JSON_SOURCE))
        workflow.id = workflow_id
        return workflow

    def get_bpmn_xml(self, workflow_id: str) -> str:
        return self._read(workflow_id, bpmn_file_name(workflow_id)).decode("utf-8")

    def get_process_image(self, workflow_id: str) -> bytes:
        """Custom image if one was set, otherwise the generated diagram."""
        try:
            return self._read(workflow_id, legacy_diagram_file_name(workflow_id))
        except WorkflowNotFoundError:
            return self._read(workflow_id, diagram_file_name(workflow_id))

    def set_process_image(self, workflow_id: str, image: bytes) -> str:
        """
        Store a custom process image, replacing a previous one.

        Returns:
            Repository path of the image
        """
        folder_path = self.config.folders.workflow_definitions
        name = legacy_diagram_file_name(workflow_id)
        path = join_path(folder_path, name)

        with self._workflow_lock(workflow_id):
            if self.repository.resolve(path) is not None:
                self.repository.set_content(path, image, PNG_CONTENT_TYPE)
                logger.info(f"Replaced process image {path}")
            else:
                upload_document(self.repository, folder_path, name, image, PNG_CONTENT_TYPE)
        return path

    def _read(self, workflow_id: str, name: str) -> bytes:
        try:
            return read_document(self.repository, self.config.folders.workflow_definitions, name)
        except DocumentNotFoundError as e:
            raise WorkflowNotFoundError(f"No '{name}' found for '{workflow_id}'", workflow_id) from e

    def close(self):
        """Close the HTTP clients."""
        self.http.close()
        if isinstance(self.repository, CmisBrowserRepository):
            self.repository.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    # Helpers

    def _upload(
        self,
        result: DeployResult,
        cb: OrchestratorCallbacks,
        folder_path: str,
        name: str,
        content: bytes | str,
        content_type: str,
        properties: dict | None = None,
    ) -> str:
        upload_document(self.repository, folder_path, name, content, content_type, properties)
        path = join_path(folder_path, name)
        result.artifacts.append(path)
        if cb.on_artifact_uploaded:
            cb.on_artifact_uploaded(path)
        return path

    @staticmethod
    def _warn(result: DeployResult | DeleteResult, cb: OrchestratorCallbacks, message: str) -> None:
        logger.warning(message)
        result.warnings.append(message)
        if cb.on_warning:
            cb.on_warning(message)

    @staticmethod
    @contextmanager
    def _step(cb: OrchestratorCallbacks, step: str, description: str) -> Iterator[_StepState]:
        logger.info(f"{description}...")
        if cb.on_step_start:
            cb.on_step_start(step, description)
        state = _StepState()
        try:
            yield state
        except Exception:
            if cb.on_step_complete:
                cb.on_step_complete(step, False)
            raise
        if cb.on_step_complete:
            cb.on_step_complete(step, state.ok)

    @contextmanager
    def _workflow_lock(self, workflow_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.get(workflow_id)
            if lock is None:
                lock = self._locks[workflow_id] = threading.Lock()
        with lock:
            yield


def build_orchestrator(config: AppConfig) -> KickstartOrchestrator:
    """Create the repository and HTTP clients once and wire the orchestrator."""
    repository = CmisBrowserRepository(
        browser_url=config.repository.browser_url,
        user=config.repository.user,
        password=config.repository.password,
        repository_id=config.repository.repository_id,
        timeout=config.repository.timeout,
    )
    http = HttpGateway(config.repository.user, config.repository.password, timeout=config.repository.timeout)
    return KickstartOrchestrator(repository, http, config)


def _to_datetime(value) -> datetime | None:
    """CMIS dates arrive as datetimes, epoch milliseconds or ISO strings."""
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    return datetime.fromisoformat(str(value))


def _log_xml(label: str, xml: str) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    try:
        pretty = minidom.parseString(xml.encode("utf-8")).toprettyxml(indent="  ")
    except ExpatError:
        pretty = xml
    logger.debug(f"Generated {label}:\n{pretty}")
