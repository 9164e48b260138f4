"""Instance actions - Query and remove running workflow instances."""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from ..constants import ENGINE_ID
from ..errors import DrainError, RemoteCallError
from ..repository import HttpGateway

logger = logging.getLogger(__name__)


@dataclass
class InstancePage:
    """One page of active instances of a workflow."""

    instance_ids: list[str]
    total_items: int

    @property
    def is_empty(self) -> bool:
        return not self.instance_ids


@dataclass
class DrainResult:
    """Result of draining a workflow's running instances."""

    rounds: int = 0
    deleted: int = 0
    # Delete attempts the server rejected; those instances were retried
    retries: int = 0


def retrieve_instances(
    http: HttpGateway, instances_url: str, workflow_id: str, max_items: int, skip_count: int = 0
) -> InstancePage:
    """
    Fetch one page of active instances.

    Args:
        http: HTTP gateway
        instances_url: Workflow instances endpoint
        workflow_id: Deployed workflow id
        max_items: Page size
        skip_count: Offset

    Returns:
        InstancePage with ids and the total count from the paging envelope

    Raises:
        RemoteCallError: On HTTP error status or malformed response
    """
    query = urlencode(
        {
            "state": "active",
            "definitionName": f"{ENGINE_ID}${workflow_id}",
            "maxItems": max_items,
            "skipCount": skip_count,
        }
    )
    url = f"{instances_url}?{query}"
    response = http.get(url)
    if not response.ok:
        raise RemoteCallError(f"Instance query failed: HTTP {response.status_code}", url, response.status_code)

    data = response.json()
    try:
        ids = [str(item["id"]) for item in data.get("data", [])]
        total = int(data.get("paging", {}).get("totalItems", len(ids)))
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise RemoteCallError(f"Unexpected instance query response: {e}", url, response.status_code) from e
    return InstancePage(instance_ids=ids, total_items=total)


def count_instances(http: HttpGateway, instances_url: str, workflow_id: str) -> int:
    """Number of active instances, from a single one-item page."""
    return retrieve_instances(http, instances_url, workflow_id, max_items=1).total_items


def delete_instance(http: HttpGateway, instances_url: str, instance_id: str) -> bool:
    """
    Force-delete one instance.

    Returns:
        True if the server accepted the delete
    """
    url = f"{instances_url}/{instance_id}?forced=true"
    try:
        response = http.delete(url)
    except RemoteCallError as e:
        logger.error(f"Failed to delete instance {instance_id}: {e}")
        return False

    if not response.ok:
        logger.error(f"Failed to delete instance {instance_id}: HTTP {response.status_code}")
        return False
    return True


def drain_instances(
    http: HttpGateway,
    instances_url: str,
    workflow_id: str,
    page_size: int = 50,
    max_rounds: int = 100,
    on_round=None,
) -> DrainResult:
    """
    Delete active instances page by page until none are left.

    Each round fetches the first page and deletes every instance on it.
    The loop stops when a query returns no instances. An instance whose
    delete is rejected stays on the next page and is retried there.

    Args:
        http: HTTP gateway
        instances_url: Workflow instances endpoint
        workflow_id: Deployed workflow id
        page_size: Instances fetched per round
        max_rounds: Give up after this many rounds
        on_round: Optional callback(round_number, instances_in_round)

    Returns:
        DrainResult with round and delete counts

    Raises:
        DrainError: If instances remain after max_rounds, or a query fails
    """
    result = DrainResult()

    while True:
        try:
            page = retrieve_instances(http, instances_url, workflow_id, max_items=page_size)
        except RemoteCallError as e:
            raise DrainError(f"Cannot list instances of '{workflow_id}': {e}", workflow_id) from e

        if page.is_empty:
            return result

        if result.rounds >= max_rounds:
            raise DrainError(
                f"Instances of '{workflow_id}' still running after {max_rounds} rounds",
                workflow_id,
                remaining=page.total_items,
            )

        result.rounds += 1
        logger.info(f"Drain round {result.rounds}: deleting {len(page.instance_ids)} instances of '{workflow_id}'")
        if on_round:
            on_round(result.rounds, len(page.instance_ids))

        for instance_id in page.instance_ids:
            if delete_instance(http, instances_url, instance_id):
                result.deleted += 1
            else:
                result.retries += 1
