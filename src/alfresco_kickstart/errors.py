"""
Kickstart error types.
"""


class KickstartError(Exception):
    """Base exception for kickstart errors."""

    def __init__(self, message: str, workflow_id: str | None = None):
        self.message = message
        self.workflow_id = workflow_id
        super().__init__(message)


class ConfigurationError(KickstartError):
    """Raised when configuration or required input is missing or invalid."""
    pass


class MissingMetadataError(ConfigurationError):
    """Raised when a deployment is missing required metadata."""

    def __init__(self, key: str):
        super().__init__(f"Missing metadata '{key}'")
        self.key = key


class TemplateNotFoundError(ConfigurationError):
    """Raised when a template resource cannot be read."""

    def __init__(self, template_name: str):
        super().__init__(f"Template resource not found: {template_name}")
        self.template_name = template_name


class TemplateError(KickstartError):
    """Raised when template fields don't match the values supplied."""

    def __init__(self, template_name: str, missing: set[str], unexpected: set[str]):
        parts = []
        if missing:
            parts.append(f"missing {', '.join(sorted(missing))}")
        if unexpected:
            parts.append(f"unexpected {', '.join(sorted(unexpected))}")
        super().__init__(f"Cannot render template '{template_name}': {'; '.join(parts)}")
        self.template_name = template_name
        self.missing = missing
        self.unexpected = unexpected


class FormValidationError(KickstartError):
    """Raised when a task form cannot be translated to a content model."""

    def __init__(self, task_name: str, property_name: str, property_type: str | None):
        super().__init__(
            f"Task '{task_name}': form property '{property_name}' has unsupported type '{property_type}'"
        )
        self.task_name = task_name
        self.property_name = property_name
        self.property_type = property_type


class UnsupportedQueryError(KickstartError):
    """Raised when a query mode is not supported."""
    pass


class WorkflowNotFoundError(KickstartError):
    """Raised when no deployed definition exists for a workflow id."""
    pass


class DrainError(KickstartError):
    """Raised when running instances could not be removed before a delete."""

    def __init__(self, message: str, workflow_id: str | None = None, remaining: int = 0):
        super().__init__(message, workflow_id)
        self.remaining = remaining


class RemoteCallError(KickstartError):
    """Raised when an HTTP call to Alfresco or Share fails."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RepositoryError(KickstartError):
    """Raised when a content repository operation fails."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class FolderNotFoundError(RepositoryError):
    """Raised when a required repository folder does not exist."""
    pass


class DocumentNotFoundError(RepositoryError):
    """Raised when a repository document does not exist."""
    pass
