"""Seed the store with a contiguous range of offline resources."""
import logging
from typing import List

from resourcecounter.errors import StoreError
from resourcecounter.models.resource import Resource
from resourcecounter.store.adapter import StoreAdapter

logger = logging.getLogger(__name__)


def build_resources(start: int = 100, count: int = 5, account_id: str = "10001") -> List[Resource]:
    """Initial records for resource ids start .. start + count - 1."""
    return [
        Resource(
            resource_id=str(start + i),
            account_id=account_id,
            available=False,
            status="offline",
            num_calls=0,
        )
        for i in range(count)
    ]


def load_resources(
    store: StoreAdapter,
    start: int = 100,
    count: int = 5,
    account_id: str = "10001",
) -> List[Resource]:
    """
    Write the initial records unconditionally, overwriting previous runs.

    Stops at the first failed write and re-raises it.
    """
    resources = build_resources(start, count, account_id)

    for resource in resources:
        try:
            store.put_unconditional(resource)
        except StoreError as e:
            logger.error(f"Got error writing resource {resource.resource_id}: {e}")
            raise
        logger.info(f"Successfully added {resource.resource_id} to table")

    return resources
