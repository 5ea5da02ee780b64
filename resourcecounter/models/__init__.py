from resourcecounter.models.resource import Outcome, Resource, ResourceKey, UpdateMode, WorkerStats

__all__ = ["Outcome", "Resource", "ResourceKey", "UpdateMode", "WorkerStats"]
