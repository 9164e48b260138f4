"""
Repository layer - Access to Alfresco.

Two independent remote systems:
- the content repository (CMIS), holding the deployed documents
- the Alfresco/Share HTTP API, for workflow instances and form modules
"""

from .base import ContentRepository, RepositoryObject, join_path
from .browser import CmisBrowserRepository
from .http import HttpGateway, HttpResponse

__all__ = [
    "CmisBrowserRepository",
    "ContentRepository",
    "HttpGateway",
    "HttpResponse",
    "RepositoryObject",
    "join_path",
]
