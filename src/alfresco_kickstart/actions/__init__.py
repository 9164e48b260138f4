"""
Actions layer - Single remote operations used by the orchestrator.

All functions are CLI-agnostic and return typed results.
These can be called directly from Python code without going through CLI.
"""

from .documents import RemoveResult, read_document, remove_document, require_folder, upload_document
from .form_config import ModuleResult, delete_form_config, upload_form_config
from .instances import DrainResult, InstancePage, count_instances, delete_instance, drain_instances, retrieve_instances

__all__ = [
    "require_folder",
    "upload_document",
    "read_document",
    "remove_document",
    "RemoveResult",
    "upload_form_config",
    "delete_form_config",
    "ModuleResult",
    "retrieve_instances",
    "count_instances",
    "delete_instance",
    "drain_instances",
    "InstancePage",
    "DrainResult",
]
