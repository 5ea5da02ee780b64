# resourcecounter/store/memory_store.py
import logging
import threading
import time
from typing import Dict

from ..errors import ConflictError, NotFoundError
from ..models.resource import Resource, ResourceKey
from .adapter import StoreAdapter
from .codec import AttributeMap, decode_resource, encode_resource

logger = logging.getLogger(__name__)


class MemoryStore(StoreAdapter):
    """In-process store with the same contract as DynamoStore.

    Items are kept encoded, so reads go through the codec just as they do
    against DynamoDB. ``latency`` simulates a network round trip: half of it
    is spent before the store-side step and half after, both outside the
    lock, which leaves room for the interleavings that lose updates.
    """

    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self._items: Dict[ResourceKey, AttributeMap] = {}
        self._lock = threading.Lock()

    def _wait(self):
        if self.latency > 0:
            time.sleep(self.latency / 2)

    def get(self, key: ResourceKey) -> Resource:
        self._wait()
        with self._lock:
            item = self._items.get(key)
            item = dict(item) if item is not None else None
        self._wait()

        if item is None:
            raise NotFoundError(key)
        return decode_resource(item)

    def put_unconditional(self, resource: Resource) -> None:
        item = encode_resource(resource)
        self._wait()
        with self._lock:
            self._items[resource.key] = item
        self._wait()

    def put_if(self, resource: Resource, expected_num_calls: int) -> None:
        item = encode_resource(resource)
        self._wait()
        with self._lock:
            current = self._items.get(resource.key)
            rejected = current is None or decode_resource(current).num_calls != expected_num_calls
            if not rejected:
                self._items[resource.key] = item
        self._wait()

        if rejected:
            raise ConflictError(resource.key, expected_num_calls)

    def put_raw(self, key: ResourceKey, item: AttributeMap) -> None:
        """Store an already-encoded item as-is, bypassing the codec."""
        with self._lock:
            self._items[key] = dict(item)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
