"""
store/adapter.py - Abstract store adapter

This module defines the interface the optimistic updater needs from a
key-value store: a strongly consistent read, an unconditional put and a
put guarded by an equality predicate on the stored counter.
"""

import abc

from ..models.resource import Resource, ResourceKey


class StoreAdapter(abc.ABC):
    """
    Abstract base class defining the interface for store adapters.

    Implementations must be safe to share between worker threads.
    """

    @abc.abstractmethod
    def get(self, key: ResourceKey) -> Resource:
        """
        Read the current record for a key.

        Args:
            key: Compound key of the record

        Returns:
            The stored Resource

        Raises:
            NotFoundError: If no record exists for the key
            TransportError: If the store cannot be reached or reports a failure
            CodecError: If the stored item is not a valid resource
        """

    @abc.abstractmethod
    def put_unconditional(self, resource: Resource) -> None:
        """
        Replace the record for resource.key, whatever is currently stored.

        Raises:
            TransportError: If the store cannot be reached or reports a failure
        """

    @abc.abstractmethod
    def put_if(self, resource: Resource, expected_num_calls: int) -> None:
        """
        Replace the record only if the stored num_calls equals expected_num_calls.

        The check and the write happen as one atomic step at the store.
        expected_num_calls is the value observed before mutation, not
        resource.num_calls.

        Raises:
            ConflictError: If the stored counter differs or the record is absent
            TransportError: If the store cannot be reached or reports a failure
        """

    def close(self) -> None:
        """Release any client resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
