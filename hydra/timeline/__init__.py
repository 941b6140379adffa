"""Per-session conversation timeline and the pure turn reducer."""

from hydra.timeline.events import ChangeType, TimelineChange, TimelineEmitter
from hydra.timeline.reducer import reduce
from hydra.timeline.store import TimelineStore

__all__ = ["ChangeType", "TimelineChange", "TimelineEmitter", "TimelineStore", "reduce"]
