"""
Workflow layer - The in-memory model of a Kickstart workflow.

Workflows are DATA STRUCTURES describing what to deploy.
They do NOT talk to Alfresco - that's the orchestrator's job.
"""

from .parser import parse_workflow_json
from .tasks import FormDefinition, FormProperty, Task, TaskType, UserTask, WorkflowDefinition, WorkflowInfo

__all__ = [
    "FormDefinition",
    "FormProperty",
    "Task",
    "TaskType",
    "UserTask",
    "WorkflowDefinition",
    "WorkflowInfo",
    "parse_workflow_json",
]
