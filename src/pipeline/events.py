"""
Pipeline Events

Structured timing events emitted by the orchestrator: one per table
phase and one per run phase. Sinks are observers only; nothing the
orchestrator decides depends on them.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import List, Optional

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class EventPhase(str, Enum):
    """Phase of a table load or of the whole run"""
    START = "start"
    END = "end"
    ERROR = "error"


class EventScope(str, Enum):
    """What an event describes"""
    TABLE = "table"
    RUN = "run"


class PipelineEvent(BaseModel):
    """Timing event for a table or for the whole run"""
    run_id: str
    scope: EventScope
    phase: EventPhase
    timestamp: datetime
    table: Optional[str] = None
    duration_seconds: Optional[float] = None
    error: Optional[str] = None


class EventSink(ABC):
    """Receives pipeline events"""

    @abstractmethod
    def emit(self, event: PipelineEvent) -> None:
        """Handle one event"""


class StructlogEventSink(EventSink):
    """Writes events to the structured log"""

    def emit(self, event: PipelineEvent) -> None:
        fields = event.model_dump(exclude_none=True, mode="json")
        if event.phase == EventPhase.ERROR:
            logger.error("pipeline_event", **fields)
        else:
            logger.info("pipeline_event", **fields)


class CollectingEventSink(EventSink):
    """Keeps events in memory, in emission order"""

    def __init__(self):
        self.events: List[PipelineEvent] = []

    def emit(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def for_table(self, table: str) -> List[PipelineEvent]:
        return [e for e in self.events if e.table == table]
