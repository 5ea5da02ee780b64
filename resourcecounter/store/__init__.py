"""Store adapters and the factory that picks one from configuration."""
import logging
from typing import Optional

from ..config import ResourceCounterConfig, StorageType
from .adapter import StoreAdapter
from .dynamo_store import DynamoStore
from .memory_store import MemoryStore

logger = logging.getLogger(__name__)

__all__ = ["StoreAdapter", "DynamoStore", "MemoryStore", "get_store"]


def get_store(config: Optional[ResourceCounterConfig] = None) -> StoreAdapter:
    """Build the store adapter selected by ``config.storage_type``."""
    if config is None:
        config = ResourceCounterConfig()

    if config.storage_type == StorageType.MEMORY:
        logger.debug(f"Using in-memory store (latency {config.memory_latency_ms} ms)")
        return MemoryStore(latency=config.memory_latency_ms / 1000.0)

    return DynamoStore(table_name=config.table_name, aws=config.aws)
