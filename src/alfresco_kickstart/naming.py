"""
Artifact naming - Canonical names for everything deployed for one workflow.

All functions are pure: the same workflow name always maps to the same
documents, so artifacts written by a deploy can be found again by a delete
in another process.
"""

from .constants import (
    BPMN_SUFFIX,
    DIAGRAM_SUFFIX,
    FORM_CONFIG_MODULE_PREFIX,
    FORM_CONFIG_SUFFIX,
    JSON_SUFFIX,
    LEGACY_DIAGRAM_SUFFIX,
    TASK_MODEL_SUFFIX,
)


def base_name(name: str) -> str:
    """
    Derive the workflow id used to name all artifacts.

    Examples:
        "Expense Approval" -> "expense_approval"
        "expense_approval" -> "expense_approval"
    """
    return name.lower().replace(" ", "_")


def bpmn_file_name(base: str) -> str:
    return f"{base}{BPMN_SUFFIX}"


def diagram_file_name(base: str) -> str:
    return f"{base}{DIAGRAM_SUFFIX}"


def legacy_diagram_file_name(base: str) -> str:
    """Name of the custom process image set through set_process_image."""
    return f"{base_name(base)}{LEGACY_DIAGRAM_SUFFIX}"


def json_file_name(base: str) -> str:
    return f"{base}{JSON_SUFFIX}"


def task_model_file_name(base: str) -> str:
    return f"{base}{TASK_MODEL_SUFFIX}"


def form_config_file_name(base: str) -> str:
    return f"{base}{FORM_CONFIG_SUFFIX}"


def form_config_module_id(base: str) -> str:
    return f"{FORM_CONFIG_MODULE_PREFIX}{base}"


def base_name_from_bpmn_file_name(file_name: str) -> str:
    """Recover the workflow id from a process definition document name."""
    if file_name.endswith(BPMN_SUFFIX):
        return file_name[: -len(BPMN_SUFFIX)]
    return file_name


def definition_file_names(base: str) -> list[str]:
    """
    All documents a deployment may leave in the workflow definitions folder.

    The process definition is last: it is removed after its companions.
    """
    return [
        diagram_file_name(base),
        legacy_diagram_file_name(base),
        json_file_name(base),
        form_config_file_name(base),
        bpmn_file_name(base),
    ]
