"""
Parse the editor's JSON source into a WorkflowDefinition.

Expected shape:

    {
      "name": "Expense approval",
      "description": "...",
      "steps": [
        {"type": "human-step", "name": "Review", "assignee": "kermit",
         "form": {"formProperties": [
            {"property": "Amount", "type": "number", "required": true}
         ]}},
        {"type": "service-step", "name": "Archive"}
      ]
    }

"tasks" is accepted in place of "steps", and "properties"/"name" in place
of "formProperties"/"property".
"""

import json

from ..errors import ConfigurationError
from .tasks import FormDefinition, FormProperty, Task, TaskType, UserTask, WorkflowDefinition

USER_STEP_TYPES = {"human-step", "user-task", TaskType.USER}


def parse_workflow_json(text: str) -> WorkflowDefinition:
    """
    Build a workflow from its JSON source.

    Args:
        text: JSON document produced by the editor

    Returns:
        WorkflowDefinition (id not yet assigned)

    Raises:
        ConfigurationError: If the JSON is malformed or has no name
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid workflow JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("Invalid workflow JSON: top level must be an object")

    name = data.get("name")
    if not name:
        raise ConfigurationError("Invalid workflow JSON: missing 'name'")
    if not isinstance(name, str):
        raise ConfigurationError("Invalid workflow JSON: 'name' must be a string")

    steps = data.get("steps", data.get("tasks", []))
    if not isinstance(steps, list):
        raise ConfigurationError("Invalid workflow JSON: 'steps' must be a list")

    workflow = WorkflowDefinition(name=name, description=data.get("description") or "")
    for step in steps:
        workflow.add_task(_parse_step(step))
    return workflow


def _parse_step(step: dict) -> Task:
    if not isinstance(step, dict):
        raise ConfigurationError(f"Invalid workflow JSON: step must be an object, got {step!r}")

    step_type = step.get("type", TaskType.USER)
    name = step.get("name") or ""
    if not isinstance(step_type, str) or not isinstance(name, str):
        raise ConfigurationError(f"Invalid workflow JSON: step type and name must be strings, got {step!r}")

    if step_type not in USER_STEP_TYPES:
        return Task(name=name, type=step_type.removesuffix("-step"))

    form = None
    if (form_data := step.get("form")) is not None:
        if not isinstance(form_data, dict):
            raise ConfigurationError(f"Invalid workflow JSON: form of step '{name}' must be an object")
        raw_properties = form_data.get("formProperties", form_data.get("properties", []))
        if not isinstance(raw_properties, list) or not all(isinstance(p, dict) for p in raw_properties):
            raise ConfigurationError(f"Invalid workflow JSON: form properties of step '{name}' must be objects")
        properties = [_parse_property(p) for p in raw_properties]
        form = FormDefinition(properties=properties)

    return UserTask(name=name, assignee=step.get("assignee"), form=form)


def _parse_property(data: dict) -> FormProperty:
    name = data.get("property", data.get("name", ""))
    if not isinstance(name, str):
        raise ConfigurationError(f"Invalid workflow JSON: property name must be a string, got {name!r}")
    return FormProperty(
        name=name,
        type=data.get("type", "text"),
        required=bool(data.get("required", False)),
    )
