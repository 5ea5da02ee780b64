from dataclasses import dataclass, field, replace
from enum import Enum
from typing import NamedTuple


class ResourceKey(NamedTuple):
    """Compound primary key of a resource record."""
    resource_id: str
    account_id: str

    def __str__(self) -> str:
        return f"({self.resource_id}, {self.account_id})"


class UpdateMode(str, Enum):
    """How the updater writes the incremented record back."""
    UNSAFE = "unsafe"
    SAFE = "safe"


class Outcome(Enum):
    """Result of a single read-increment-write attempt."""
    COMMITTED = "committed"
    READ_FAILED = "read_failed"
    WRITE_REJECTED = "write_rejected"
    WRITE_FAILED = "write_failed"


@dataclass
class Resource:
    resource_id: str
    account_id: str
    available: bool = False
    status: str = "offline"
    num_calls: int = 0

    def __post_init__(self):
        # Validate key components
        for name in ("resource_id", "account_id"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise TypeError(f"{name} must be a string")
            if not value:
                raise ValueError(f"{name} must not be empty")

        if not isinstance(self.available, bool):
            raise TypeError("available must be a boolean")

        if not isinstance(self.status, str):
            raise TypeError("status must be a string")

        # bool is an int subclass; a flag is never a counter
        if isinstance(self.num_calls, bool) or not isinstance(self.num_calls, int):
            raise TypeError("num_calls must be an integer")
        if self.num_calls < 0:
            raise ValueError("num_calls must not be negative")

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.resource_id, self.account_id)

    def incremented(self) -> "Resource":
        """Copy of this record with num_calls advanced by one."""
        return replace(self, num_calls=self.num_calls + 1)


@dataclass
class WorkerStats:
    """Counters owned by one driver worker."""
    worker_id: int
    writes: int = 0
    read_errors: int = 0
    write_errors: int = 0
    # Subset of write_errors caused by rejected conditional writes
    conflicts: int = 0
    elapsed: float = 0.0
    completed: bool = False
    _consecutive_failures: int = field(default=0, repr=False, compare=False)

    @property
    def attempts(self) -> int:
        return self.writes + self.read_errors + self.write_errors

    def record(self, outcome: Outcome) -> None:
        """Apply one attempt's outcome to the counters."""
        if outcome is Outcome.COMMITTED:
            self.writes += 1
            self._consecutive_failures = 0
            return

        self._consecutive_failures += 1
        if outcome is Outcome.READ_FAILED:
            self.read_errors += 1
        elif outcome is Outcome.WRITE_REJECTED:
            self.write_errors += 1
            self.conflicts += 1
        elif outcome is Outcome.WRITE_FAILED:
            self.write_errors += 1

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures
