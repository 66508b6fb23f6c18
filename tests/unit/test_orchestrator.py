"""
Unit Tests - Pipeline Orchestrator
"""
import pytest
import polars as pl
from datetime import datetime, timedelta

from src.errors import ErrorSeverity, StorageError
from src.ingestion.snapshot_reader import InMemorySnapshotProvider
from src.pipeline.events import CollectingEventSink, EventPhase, EventScope, EventSink
from src.pipeline.orchestrator import PipelineState, SilverPipeline, create_pipeline
from src.quality.validators import VALIDATOR_FACTORIES
from src.storage import ParquetSilverStore, SilverStore, SqlSilverStore
from src.transformation.tables import LOAD_ORDER, SilverTable
from src.transformation.transformers import SilverTransformer


class FakeClock:
    """Advances one second per call"""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


class MemoryStore(SilverStore):
    """Keeps curated tables in a dict; optionally fails on one table"""

    def __init__(self, fail_on=None):
        self.tables = {}
        self.fail_on = fail_on
        self.writes = []

    def truncate(self, table):
        self.tables.pop(table, None)

    def bulk_write(self, table, df):
        if table == self.fail_on:
            raise StorageError(table.value, "bulk_write", "disk full", code="53100")
        self.tables[table] = df
        self.writes.append(table)
        return len(df)

    def replace(self, table, df):
        return self.bulk_write(table, df)

    def read(self, table):
        return self.tables[table]


class ExplodingSink(EventSink):
    def emit(self, event):
        raise RuntimeError("sink down")


@pytest.fixture
def provider(raw_snapshots):
    return InMemorySnapshotProvider(raw_snapshots)


@pytest.fixture
def clock(now):
    return FakeClock(now)


class TestSilverPipeline:
    """Tests for SilverPipeline"""

    def test_loads_all_tables_in_order(self, provider, clock):
        store = MemoryStore()
        sink = CollectingEventSink()
        pipeline = SilverPipeline(provider, store, sink=sink, clock=clock)

        report = pipeline.run()

        assert report.succeeded
        assert pipeline.state == PipelineState.COMPLETED
        assert pipeline.current_table is None
        assert store.writes == LOAD_ORDER
        assert [r.table for r in report.tables] == LOAD_ORDER
        assert report.error is None

    def test_event_sequence(self, provider, clock):
        sink = CollectingEventSink()
        SilverPipeline(provider, MemoryStore(), sink=sink, clock=clock).run()

        phases = [(e.scope, e.table, e.phase) for e in sink.events]
        expected = [(EventScope.RUN, None, EventPhase.START)]
        for table in LOAD_ORDER:
            expected.append((EventScope.TABLE, table.value, EventPhase.START))
            expected.append((EventScope.TABLE, table.value, EventPhase.END))
        expected.append((EventScope.RUN, None, EventPhase.END))

        assert phases == expected
        assert len({e.run_id for e in sink.events}) == 1

    def test_durations_come_from_clock(self, provider, clock):
        sink = CollectingEventSink()
        report = SilverPipeline(provider, MemoryStore(), sink=sink, clock=clock).run()

        assert all(r.duration_seconds == 1.0 for r in report.tables)
        # one tick to start the run, two per table, one to finish
        assert report.duration_seconds == float(2 * len(LOAD_ORDER) + 1)
        assert sink.events[-1].duration_seconds == report.duration_seconds

    def test_row_counts(self, provider, clock):
        report = SilverPipeline(provider, MemoryStore(), clock=clock).run()

        customers = report.tables[0]
        assert customers.table == SilverTable.CUSTOMERS
        assert customers.input_rows == 4
        assert customers.output_rows == 2
        assert customers.rows_dropped == 2

    def test_failure_aborts_remaining_tables(self, provider, clock):
        store = MemoryStore(fail_on=SilverTable.SALES)
        sink = CollectingEventSink()
        pipeline = SilverPipeline(provider, store, sink=sink, clock=clock)

        report = pipeline.run()

        assert not report.succeeded
        assert pipeline.state == PipelineState.FAILED
        assert store.writes == [SilverTable.CUSTOMERS, SilverTable.PRODUCTS]
        assert [r.table for r in report.tables] == [SilverTable.CUSTOMERS, SilverTable.PRODUCTS]

        assert report.error.table == "crm_sales_details"
        assert report.error.code == "53100"
        assert report.error.severity == ErrorSeverity.CRITICAL
        assert report.error.error_type == "StorageError"
        assert "disk full" in report.error.message

        assert sink.for_table("erp_cust_az12") == []
        assert [e.phase for e in sink.for_table("crm_sales_details")] == [EventPhase.START, EventPhase.ERROR]
        assert (sink.events[-1].scope, sink.events[-1].phase) == (EventScope.RUN, EventPhase.ERROR)

    def test_missing_snapshot_fails_run(self, raw_snapshots, clock):
        snapshots = {t: df for t, df in raw_snapshots.items() if t != SilverTable.LOCATIONS}
        pipeline = SilverPipeline(InMemorySnapshotProvider(snapshots), MemoryStore(), clock=clock)

        report = pipeline.run()

        assert report.error.code == "source_read_error"
        assert report.error.table == "erp_loc_a101"
        assert len(report.tables) == 4

    def test_unexpected_error_is_reported(self, provider, clock):
        def broken_transformer(now):
            raise_on = SilverTable.PRODUCTS

            class Broken:
                def transform(self, table, df):
                    if table == raise_on:
                        raise ZeroDivisionError("division by zero")
                    return df

            return Broken()

        report = SilverPipeline(provider, MemoryStore(), transformer_factory=broken_transformer, clock=clock).run()

        assert report.error.severity == ErrorSeverity.ERROR
        assert report.error.code == "ZeroDivisionError"
        assert report.error.table == "crm_prd_info"

    def test_sink_errors_do_not_affect_run(self, provider, clock):
        report = SilverPipeline(provider, MemoryStore(), sink=ExplodingSink(), clock=clock).run()

        assert report.succeeded

    def test_rerun_after_failure(self, provider, clock):
        store = MemoryStore(fail_on=SilverTable.CATEGORIES)
        pipeline = SilverPipeline(provider, store, clock=clock)

        first = pipeline.run()
        store.fail_on = None
        second = pipeline.run()

        assert first.status == PipelineState.FAILED
        assert second.status == PipelineState.COMPLETED
        assert first.run_id != second.run_id

    def test_processing_time_comes_from_run_start(self, provider, clock, now):
        seen = []

        def factory(processing_time):
            seen.append(processing_time)
            return SilverTransformer(now=processing_time)

        SilverPipeline(provider, MemoryStore(), transformer_factory=factory, clock=clock).run()

        assert seen == [now]

    def test_quality_results_attached(self, provider, clock):
        pipeline = SilverPipeline(provider, MemoryStore(), clock=clock, validators=VALIDATOR_FACTORIES)

        report = pipeline.run()

        assert all(r.quality_status == "passed" for r in report.tables)

    def test_quality_failures_do_not_abort(self, raw_snapshots, clock):
        raw_snapshots[SilverTable.LOCATIONS] = pl.DataFrame({"cid": [None], "cntry": ["DE"]}, schema={
            "cid": pl.Utf8, "cntry": pl.Utf8,
        })
        pipeline = SilverPipeline(
            InMemorySnapshotProvider(raw_snapshots), MemoryStore(), clock=clock, validators=VALIDATOR_FACTORIES,
        )

        report = pipeline.run()

        locations = next(r for r in report.tables if r.table == SilverTable.LOCATIONS)
        assert report.succeeded
        assert locations.quality_status == "partial"
        assert locations.quality_failures == ["not_null_cid"]

    def test_run_while_running_is_rejected(self, provider, clock):
        pipeline = SilverPipeline(provider, MemoryStore(), clock=clock)

        class ReentrantSink(EventSink):
            def __init__(self):
                self.errors = []

            def emit(self, event):
                if event.scope == EventScope.RUN and event.phase == EventPhase.START:
                    try:
                        pipeline.run()
                    except RuntimeError as e:
                        self.errors.append(str(e))

        sink = ReentrantSink()
        pipeline.sink = sink
        pipeline.run()

        assert sink.errors == ["Silver load already running"]


class TestCreatePipeline:
    """Tests for create_pipeline"""

    def test_parquet_backend(self, tmp_path, provider, clock):
        from src.config.settings import DataLakeSettings, PipelineSettings, Settings

        settings = Settings(
            app_env="testing",
            data_lake=DataLakeSettings(raw_path=str(tmp_path), curated_path=str(tmp_path / "curated")),
            pipeline=PipelineSettings(store_backend="parquet"),
        )

        pipeline = create_pipeline(settings, provider=provider)
        report = pipeline.run()

        assert isinstance(pipeline.store, ParquetSilverStore)
        assert report.succeeded
        assert (tmp_path / "curated" / "crm_cust_info.parquet").exists()

    def test_database_backend(self, tmp_path, provider):
        from src.config.settings import DatabaseSettings, PipelineSettings, Settings
        from src.database.connection import close_database

        close_database()

        settings = Settings(
            app_env="testing",
            database=DatabaseSettings(url=f"sqlite:///{tmp_path / 'silver.db'}"),
            pipeline=PipelineSettings(store_backend="database", chunk_size=2),
        )

        pipeline = create_pipeline(settings, provider=provider)
        report = pipeline.run()

        assert isinstance(pipeline.store, SqlSilverStore)
        assert report.succeeded
        assert len(pipeline.store.read(SilverTable.CUSTOMERS)) == 2
        close_database()
