"""
Form artifacts - Task content model and Share form config from task forms.

Every user task with a form becomes:
- a type in the task content model, with one property per form field
- an evaluator config in the Share form module, listing which fields are
  shown and how they are labelled

Field order in both outputs is the order of the form properties: it is the
order the fields appear on screen.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from xml.sax.saxutils import escape

from . import rendering
from .constants import FORM_PROPERTY_TYPES, KICKSTART_PREFIX
from .errors import FormValidationError
from .workflow import FormProperty, Task, UserTask, WorkflowDefinition

FormKeyFactory = Callable[[], str]


def new_form_key() -> str:
    """Generate a fresh, globally unique form key."""
    return f"{KICKSTART_PREFIX}{uuid.uuid4()}"


def friendly_name(property_name: str) -> str:
    """
    Repository-safe identifier for a form property.

    Examples:
        "Customer Name" -> "ks:customer_name"
    """
    return f"{KICKSTART_PREFIX}{property_name.lower().replace(' ', '_')}"


def model_type(property_type: str | None) -> str | None:
    """Content model data type for a form property type, None if unmapped."""
    if not isinstance(property_type, str):
        return None
    return FORM_PROPERTY_TYPES.get(property_type)


@dataclass
class FormArtifacts:
    """Generated fragments for one task."""

    form_key: str | None = None
    type_definition: str = ""
    form_config: str = ""

    @property
    def is_empty(self) -> bool:
        return self.form_key is None


@dataclass
class WorkflowFormArtifacts:
    """Fragments for all tasks of a workflow, in task order."""

    type_definitions: list[str] = field(default_factory=list)
    form_configs: list[str] = field(default_factory=list)
    form_keys: dict[str, str] = field(default_factory=dict)

    def add(self, task_name: str, artifacts: FormArtifacts) -> None:
        if artifacts.is_empty:
            return
        self.type_definitions.append(artifacts.type_definition)
        self.form_configs.append(artifacts.form_config)
        self.form_keys[task_name] = artifacts.form_key


def validate_form(task: UserTask) -> None:
    """
    Check every form property can be mapped to a content model type.

    Raises:
        FormValidationError: On the first unmapped property type
    """
    if task.form is None:
        return
    for prop in task.form.properties:
        if model_type(prop.type) is None:
            raise FormValidationError(task.name, prop.name, prop.type)


def generate_form_artifacts(task: Task, key_factory: FormKeyFactory = new_form_key) -> FormArtifacts:
    """
    Generate the task model type and form config for one task.

    Assigns the generated key to the task's form. This has to happen before
    the process XML is marshalled, since the process references form keys.

    Args:
        task: Any task; only user tasks with a form produce output
        key_factory: Source of form keys

    Returns:
        FormArtifacts (empty if the task has no form)

    Raises:
        FormValidationError: If a property type has no content model mapping
    """
    if not isinstance(task, UserTask) or task.form is None:
        return FormArtifacts()

    validate_form(task)

    form_key = key_factory()
    task.form.form_key = form_key

    property_fragments = []
    visibility_fragments = []
    appearance_fragments = []
    for prop in task.form.properties:
        field_id = _attribute(friendly_name(prop.name))
        property_fragments.append(_property_fragment(prop))
        visibility_fragments.append(rendering.render(rendering.FORM_CONFIG_FIELD_VISIBILITY, name=field_id))
        appearance_fragments.append(
            rendering.render(rendering.FORM_CONFIG_FIELD, name=field_id, label=_attribute(prop.name))
        )

    properties = f"<properties>{''.join(property_fragments)}</properties>" if property_fragments else ""

    type_definition = rendering.render(rendering.TASK_MODEL_TYPE, form_key=form_key, properties=properties)
    form_config = rendering.render(
        rendering.FORM_CONFIG_EVALUATOR,
        form_key=form_key,
        visibility="".join(visibility_fragments),
        appearance="".join(appearance_fragments),
    )
    return FormArtifacts(form_key=form_key, type_definition=type_definition, form_config=form_config)


def generate_workflow_form_artifacts(
    workflow: WorkflowDefinition, key_factory: FormKeyFactory = new_form_key
) -> WorkflowFormArtifacts:
    """
    Generate form artifacts for every task of a workflow.

    All forms are validated before any key is assigned, so an invalid form
    leaves the workflow untouched.
    """
    for task in workflow.user_tasks():
        validate_form(task)

    result = WorkflowFormArtifacts()
    for task in workflow.tasks:
        result.add(task.name, generate_form_artifacts(task, key_factory))
    return result


def render_task_model(type_definitions: list[str], model_id: str | None = None) -> str:
    """Wrap type definitions in a complete task content model document."""
    return rendering.render(
        rendering.TASK_MODEL,
        model_id=model_id or str(uuid.uuid4()),
        types="".join(type_definitions),
    )


def render_form_config(module_id: str, workflow_id: str, evaluator_configs: list[str]) -> str:
    """Wrap evaluator configs in a complete Share form module document."""
    return rendering.render(
        rendering.FORM_CONFIG,
        module_id=module_id,
        workflow_id=workflow_id,
        evaluator_configs="".join(evaluator_configs),
    )


def _property_fragment(prop: FormProperty) -> str:
    return rendering.render(
        rendering.TASK_MODEL_PROPERTY,
        name=_attribute(friendly_name(prop.name)),
        type=model_type(prop.type),
        mandatory=prop.required,
    )


def _attribute(value: str) -> str:
    return escape(value, {'"': "&quot;"})
