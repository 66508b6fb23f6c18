"""
Pipeline Orchestration Module
"""
from .events import CollectingEventSink, EventPhase, EventScope, EventSink, PipelineEvent, StructlogEventSink
from .orchestrator import (
    PipelineState,
    RunContext,
    RunReport,
    SilverPipeline,
    TableLoadResult,
    create_pipeline,
)

__all__ = [
    "CollectingEventSink",
    "EventPhase",
    "EventScope",
    "EventSink",
    "PipelineEvent",
    "StructlogEventSink",
    "PipelineState",
    "RunContext",
    "RunReport",
    "SilverPipeline",
    "TableLoadResult",
    "create_pipeline",
]
