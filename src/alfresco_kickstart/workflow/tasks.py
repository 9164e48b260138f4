"""Workflow definitions and the tasks they contain."""

from dataclasses import dataclass, field
from datetime import datetime


class TaskType:
    """Task kinds known to the editor."""

    USER = "user"
    SERVICE = "service"
    SCRIPT = "script"


@dataclass
class FormProperty:
    """A single field on a user task form."""

    name: str
    type: str = "text"  # "text", "date" or "number"
    required: bool = False


@dataclass
class FormDefinition:
    """
    The form shown to the assignee of a user task.

    The form key is empty until the form artifacts are generated; it then
    binds the task in the process XML to its type in the task model.
    """

    properties: list[FormProperty] = field(default_factory=list)
    form_key: str | None = None


@dataclass
class Task:
    """A step in a workflow."""

    name: str
    type: str = TaskType.SERVICE


@dataclass
class UserTask(Task):
    """A step performed by a person, optionally through a form."""

    type: str = TaskType.USER
    assignee: str | None = None
    form: FormDefinition | None = None


@dataclass
class WorkflowDefinition:
    """
    A workflow as drawn in the editor.

    Only exists in memory while it is being deployed; the deployed copy is
    the set of documents in the repository. The id is derived from the name
    at deploy time.
    """

    name: str
    description: str = ""
    tasks: list[Task] = field(default_factory=list)
    id: str | None = None

    def add_task(self, task: Task) -> None:
        """Add a task to the workflow."""
        self.tasks.append(task)

    def get_task(self, name: str) -> Task | None:
        """Get a task by name."""
        for task in self.tasks:
            if task.name == name:
                return task
        return None

    def user_tasks(self) -> list[UserTask]:
        """All user tasks, in workflow order."""
        return [t for t in self.tasks if isinstance(t, UserTask)]

    def form_keys(self) -> dict[str, str]:
        """Task name -> form key for tasks whose form has been generated."""
        return {t.name: t.form.form_key for t in self.user_tasks() if t.form and t.form.form_key}


@dataclass
class WorkflowInfo:
    """Summary of a deployed workflow, built fresh for every query."""

    id: str
    name: str
    create_time: datetime | None = None
    runtime_instance_count: int | None = None
