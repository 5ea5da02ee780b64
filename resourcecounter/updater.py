"""
updater.py - One optimistic read-increment-write attempt

The updater reads a record, builds its successor with num_calls + 1 and
writes it back, either unconditionally (unsafe) or guarded by the counter
value it just read (safe). Store failures become Outcome values; the
caller owns the retry loop.
"""
import logging

from resourcecounter.errors import ConflictError, NotFoundError, TransportError
from resourcecounter.models.resource import Outcome, ResourceKey, UpdateMode
from resourcecounter.store.adapter import StoreAdapter

logger = logging.getLogger(__name__)


class OptimisticUpdater:
    """Stateless increment of a single record's num_calls."""

    def __init__(self, store: StoreAdapter):
        self.store = store

    def increment(self, key: ResourceKey, mode: UpdateMode) -> Outcome:
        """
        Run one attempt against ``key``.

        CodecError is not an outcome: a record that cannot be decoded means
        the table holds something other than resources, and it propagates.
        """
        mode = UpdateMode(mode)
        try:
            current = self.store.get(key)
        except (NotFoundError, TransportError) as e:
            logger.debug(f"Read of {key} failed: {e}")
            return Outcome.READ_FAILED

        successor = current.incremented()

        if mode is UpdateMode.UNSAFE:
            try:
                self.store.put_unconditional(successor)
            except TransportError as e:
                logger.debug(f"Unconditional write of {key} failed: {e}")
                return Outcome.WRITE_FAILED
            return Outcome.COMMITTED

        # The predicate is bound to the value read above, never to the
        # successor's counter.
        observed = current.num_calls
        try:
            self.store.put_if(successor, observed)
        except ConflictError:
            logger.debug(f"Write of {key} rejected, num_calls moved past {observed}")
            return Outcome.WRITE_REJECTED
        except TransportError as e:
            logger.debug(f"Conditional write of {key} failed: {e}")
            return Outcome.WRITE_FAILED
        return Outcome.COMMITTED
