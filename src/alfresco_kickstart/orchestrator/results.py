"""Result and callback types for orchestrator operations."""

from collections.abc import Callable
from dataclasses import dataclass, field

from ..actions import RemoveResult


class Step:
    """Names of the orchestrator steps, as reported to callbacks."""

    FORMS = "forms"
    TASK_MODEL = "task_model"
    FORM_CONFIG = "form_config"
    DIAGRAM = "diagram"
    JSON_SOURCE = "json_source"
    PROCESS = "process"
    DRAIN = "drain"
    REMOVE = "remove"
    MODULE = "module"


@dataclass
class DeployResult:
    """
    Result of deploying a workflow.

    Success means every upload was accepted, not that the engine has parsed
    the definition. Warnings list the steps that failed without aborting
    the deploy (form config module and its copy).
    """

    workflow_id: str
    artifacts: list[str] = field(default_factory=list)
    form_keys: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.warnings

    @property
    def partial(self) -> bool:
        return bool(self.warnings)


@dataclass
class DeleteResult:
    """
    Result of deleting a workflow.

    Documents that were already gone are listed in `missing`; they don't
    make the delete fail. Warnings list removals that failed for other
    reasons and stray artifacts that may remain.
    """

    workflow_id: str
    drain_rounds: int = 0
    instances_deleted: int = 0
    removed: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.warnings

    @property
    def partial(self) -> bool:
        return bool(self.warnings)


@dataclass
class OrchestratorCallbacks:
    """
    Callbacks for orchestrator progress reporting.

    Allows CLI to display progress without coupling orchestrator to Rich/UI.
    All callbacks are optional - if None, no callback is made.
    """

    # Step lifecycle
    on_step_start: Callable[[str, str], None] | None = None  # step, description
    on_step_complete: Callable[[str, bool], None] | None = None  # step, success

    # Non-fatal failures
    on_warning: Callable[[str], None] | None = None  # message

    # Uploads
    on_artifact_uploaded: Callable[[str], None] | None = None  # repository path

    # Teardown
    on_drain_round: Callable[[int, int], None] | None = None  # round, instances in round
    on_document_removed: Callable[[RemoveResult], None] | None = None
