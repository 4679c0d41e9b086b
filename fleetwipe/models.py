from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from threading import RLock
from typing import List, Optional, Tuple

class RemovalAction(Enum):
    NONE = "None"
    REMOVED = "Removed"

@dataclass(frozen=True)
class WorkItem:
    """One row of the worklist: delete `path` on `host`."""
    host: str
    path: str

@dataclass(frozen=True)
class HostBatch:
    """Every path queued for one host, in the order they appeared in the worklist."""
    host: str
    paths: Tuple[str, ...]

@dataclass(frozen=True)
class ItemResult:
    host: str
    path: str
    timestamp: datetime
    existedBefore: bool
    existsAfter: bool
    action: RemovalAction
    error: Optional[str] = None

    def toDict(self) -> dict:
        return {
            "host" : self.host,
            "path" : self.path,
            "timestamp" : self.timestamp.isoformat(),
            "existedBefore" : self.existedBefore,
            "existsAfter" : self.existsAfter,
            "action" : self.action.value,
            "error" : self.error,
        }

@dataclass
class RunErrors:
    """
    Collects every error seen during a single run.
    Make a new one per run and hand it to the calls that do the work; host tasks write into it
    from worker threads so all edits go through the lock.
    """
    pathErrors: List[Tuple[str, str, str]] = field(default_factory=list)
    hostFailures: List[Tuple[str, str]] = field(default_factory=list)
    _editlock: RLock = field(default_factory=RLock, repr=False, compare=False)

    def recordPathError(self, host:str, path:str, message:str) -> None:
        with self._editlock:
            self.pathErrors.append((host, path, message))
    def recordHostFailure(self, host:Optional[str], failure) -> None:
        with self._editlock:
            self.hostFailures.append((host or "unknown", str(failure) or failure.__class__.__name__))
    def __len__(self) -> int:
        with self._editlock:
            return len(self.pathErrors) + len(self.hostFailures)
