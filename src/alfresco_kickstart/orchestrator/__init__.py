"""
Orchestrator layer - Deploy and delete workflows across Alfresco and Share.

The orchestrator sequences the actions layer: it decides what is uploaded,
in which order, and which failures are fatal.
"""

from .results import DeleteResult, DeployResult, OrchestratorCallbacks, Step
from .service import KickstartOrchestrator, build_orchestrator

__all__ = [
    "KickstartOrchestrator",
    "build_orchestrator",
    "DeployResult",
    "DeleteResult",
    "OrchestratorCallbacks",
    "Step",
]
