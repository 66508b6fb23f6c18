"""
Silver Load Orchestrator

Runs the six table transformers in their declared order, one table at a
time. For each table the raw snapshot is read, curated, optionally
quality-checked and then swapped into the destination store as a single
truncate-and-write unit.

The first failing table aborts the run. Tables already loaded in the
run stay loaded; nothing is retried.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import structlog
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from src.config import Settings, get_settings
from src.errors import ErrorReport, StorageError
from src.ingestion.snapshot_reader import CsvSnapshotProvider, SnapshotProvider
from src.quality.validators import VALIDATOR_FACTORIES, DataValidator
from src.storage import ParquetSilverStore, SilverStore, SqlSilverStore
from src.transformation.tables import LOAD_ORDER, SilverTable, SourceSystem
from src.transformation.transformers import SilverTransformer

from .events import EventPhase, EventScope, EventSink, PipelineEvent, StructlogEventSink

logger = structlog.get_logger(__name__)


class PipelineState(str, Enum):
    """Orchestrator lifecycle"""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunContext:
    """
    Per-run state passed through the table loads.

    Holds the processing time used by the transformers and the batch
    and per-table timestamps.
    """
    run_id: str
    now: datetime
    batch_started_at: datetime
    batch_completed_at: Optional[datetime] = None
    table_started_at: Dict[SilverTable, datetime] = field(default_factory=dict)
    table_completed_at: Dict[SilverTable, datetime] = field(default_factory=dict)

    def table_duration(self, table: SilverTable) -> Optional[float]:
        if table not in self.table_started_at or table not in self.table_completed_at:
            return None
        return (self.table_completed_at[table] - self.table_started_at[table]).total_seconds()

    @property
    def batch_duration(self) -> Optional[float]:
        if self.batch_completed_at is None:
            return None
        return (self.batch_completed_at - self.batch_started_at).total_seconds()


class TableLoadResult(BaseModel):
    """Result of loading one silver table"""
    table: SilverTable
    source_system: SourceSystem
    input_rows: int
    output_rows: int
    rows_dropped: int
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    quality_status: Optional[str] = None
    quality_failures: List[str] = Field(default_factory=list)


class RunReport(BaseModel):
    """Outcome of one pipeline run"""
    run_id: str
    status: PipelineState
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    tables: List[TableLoadResult] = Field(default_factory=list)
    error: Optional[ErrorReport] = None

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineState.COMPLETED


class SilverPipeline:
    """
    Sequential full-refresh load of the silver layer.

    Example:
        pipeline = SilverPipeline(CsvSnapshotProvider("datasets"), store)
        report = pipeline.run()
        if not report.succeeded:
            print(report.error.message)
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        store: SilverStore,
        sink: Optional[EventSink] = None,
        transformer_factory: Callable[[datetime], SilverTransformer] = SilverTransformer,
        clock: Callable[[], datetime] = datetime.now,
        validators: Optional[Mapping[SilverTable, Callable[[], DataValidator]]] = None,
        tables: Sequence[SilverTable] = LOAD_ORDER,
    ):
        self.provider = provider
        self.store = store
        self.sink = sink or StructlogEventSink()
        self.transformer_factory = transformer_factory
        self.clock = clock
        self.validators = dict(validators) if validators is not None else {}
        self.tables = list(tables)
        self._state = PipelineState.IDLE
        self._current_table: Optional[SilverTable] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def current_table(self) -> Optional[SilverTable]:
        return self._current_table

    def _emit(
        self,
        ctx: RunContext,
        scope: EventScope,
        phase: EventPhase,
        timestamp: datetime,
        table: Optional[SilverTable] = None,
        duration: Optional[float] = None,
        error: Optional[str] = None,
    ) -> None:
        event = PipelineEvent(
            run_id=ctx.run_id,
            scope=scope,
            phase=phase,
            timestamp=timestamp,
            table=table.value if table else None,
            duration_seconds=duration,
            error=error,
        )
        try:
            self.sink.emit(event)
        except Exception:
            # Sink failures never change the outcome of the load
            logger.warning("Event sink failed", pipeline_event=event.model_dump(mode="json"), exc_info=True)

    def _validator_for(self, table: SilverTable) -> Optional[DataValidator]:
        factory = self.validators.get(table)
        return factory() if factory else None

    def _load_table(
        self,
        ctx: RunContext,
        transformer: SilverTransformer,
        table: SilverTable,
    ) -> TableLoadResult:
        started_at = self.clock()
        ctx.table_started_at[table] = started_at
        self._emit(ctx, EventScope.TABLE, EventPhase.START, started_at, table=table)
        logger.info(f"Loading table {table.value}", run_id=ctx.run_id)

        raw = self.provider.read(table)
        curated = transformer.transform(table, raw)

        quality_status = None
        quality_failures: List[str] = []
        validator = self._validator_for(table)
        if validator is not None:
            result = validator.validate(curated)
            quality_status = result.status.value
            quality_failures = [c.name for c in result.checks if not c.passed]

        written = self.store.replace(table, curated)

        completed_at = self.clock()
        ctx.table_completed_at[table] = completed_at
        duration = ctx.table_duration(table)
        self._emit(ctx, EventScope.TABLE, EventPhase.END, completed_at, table=table, duration=duration)

        logger.info(
            f"Loaded table {table.value}",
            input_rows=len(raw),
            output_rows=written,
            duration_seconds=duration,
        )

        return TableLoadResult(
            table=table,
            source_system=table.source_system,
            input_rows=len(raw),
            output_rows=written,
            rows_dropped=len(raw) - written,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=duration,
            quality_status=quality_status,
            quality_failures=quality_failures,
        )

    def run(self) -> RunReport:
        """
        Load every silver table.

        Returns:
            RunReport with status COMPLETED, or FAILED together with the
            error descriptor of the table that aborted the run

        Raises:
            RuntimeError: If a run is already in progress
        """
        if self._state == PipelineState.RUNNING:
            raise RuntimeError("Silver load already running")

        started_at = self.clock()
        ctx = RunContext(run_id=uuid.uuid4().hex, now=started_at, batch_started_at=started_at)
        transformer = self.transformer_factory(ctx.now)
        results: List[TableLoadResult] = []
        error: Optional[ErrorReport] = None

        self._state = PipelineState.RUNNING
        self._emit(ctx, EventScope.RUN, EventPhase.START, started_at)
        logger.info("Loading Silver Layer", run_id=ctx.run_id, tables=[t.value for t in self.tables])

        section: Optional[SourceSystem] = None
        for table in self.tables:
            if table.source_system != section:
                section = table.source_system
                logger.info(f"Loading {section.value.upper()} Tables")

            self._current_table = table
            try:
                results.append(self._load_table(ctx, transformer, table))
            except Exception as e:
                failed_at = self.clock()
                ctx.table_completed_at[table] = failed_at
                error = ErrorReport.from_exception(e, table=table.value)
                self._emit(
                    ctx, EventScope.TABLE, EventPhase.ERROR, failed_at,
                    table=table, duration=ctx.table_duration(table), error=error.message,
                )
                logger.error(
                    "Error occurred during loading silver layer",
                    table=table.value,
                    error=error.message,
                    code=error.code,
                    severity=error.severity.value,
                    exc_info=True,
                )
                break

        self._current_table = None
        ctx.batch_completed_at = self.clock()

        if error is None:
            self._state = PipelineState.COMPLETED
            self._emit(ctx, EventScope.RUN, EventPhase.END, ctx.batch_completed_at, duration=ctx.batch_duration)
            logger.info(
                "Loading Silver Layer is Completed",
                run_id=ctx.run_id,
                total_duration_seconds=ctx.batch_duration,
            )
        else:
            self._state = PipelineState.FAILED
            self._emit(
                ctx, EventScope.RUN, EventPhase.ERROR, ctx.batch_completed_at,
                duration=ctx.batch_duration, error=error.message,
            )

        return RunReport(
            run_id=ctx.run_id,
            status=self._state,
            started_at=ctx.batch_started_at,
            completed_at=ctx.batch_completed_at,
            duration_seconds=ctx.batch_duration,
            tables=results,
            error=error,
        )


def create_store(
    settings: Settings,
    backend: Optional[str] = None,
    curated_path: Optional[str] = None,
) -> SilverStore:
    """Build the destination store; backend and curated_path override settings"""
    backend = backend or settings.pipeline.store_backend
    if backend == "parquet":
        return ParquetSilverStore(curated_path or settings.data_lake.curated_path)

    from src.database.connection import init_database

    try:
        engine = init_database(settings.database.sync_url)
    except SQLAlchemyError as e:
        raise StorageError("silver", "connect", str(e), code=getattr(e, "code", None)) from e

    store = SqlSilverStore(engine, chunk_size=settings.pipeline.chunk_size)
    if settings.pipeline.create_tables:
        store.ensure_schema()
    return store


def create_pipeline(
    settings: Optional[Settings] = None,
    provider: Optional[SnapshotProvider] = None,
    store: Optional[SilverStore] = None,
    sink: Optional[EventSink] = None,
) -> SilverPipeline:
    """Create a pipeline wired from configuration"""
    settings = settings or get_settings()
    validators = VALIDATOR_FACTORIES if settings.data_quality.enable_data_quality_checks else None
    return SilverPipeline(
        provider=provider or CsvSnapshotProvider(settings.data_lake.raw_path),
        store=store or create_store(settings),
        sink=sink,
        validators=validators,
    )
