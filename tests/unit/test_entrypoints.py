"""
Unit Tests - Entry Points
"""
import pytest

from src import main as main_module
from src.config.settings import PipelineSettings, Settings
from src.errors import StorageError
from src.ingestion.snapshot_reader import InMemorySnapshotProvider
from src.pipeline.events import CollectingEventSink
from src.pipeline.orchestrator import SilverPipeline
from src.storage import ParquetSilverStore, SqlSilverStore
from src.transformation.tables import SilverTable


def _flows():
    pytest.importorskip("prefect")
    from workflows import silver_etl
    return silver_etl


@pytest.fixture
def quiet_logging(monkeypatch):
    monkeypatch.setattr(main_module, "configure_logging", lambda: None)


class TestMain:
    """Tests for the silver-load console script"""

    def test_exit_zero_on_success(self, monkeypatch, quiet_logging, raw_snapshots, tmp_path):
        pipeline = SilverPipeline(InMemorySnapshotProvider(raw_snapshots), ParquetSilverStore(tmp_path))
        monkeypatch.setattr(main_module, "create_pipeline", lambda: pipeline)

        assert main_module.main() == 0
        assert (tmp_path / "erp_px_cat_g1v2.parquet").exists()

    def test_exit_one_on_failed_run(self, monkeypatch, quiet_logging, raw_snapshots, tmp_path):
        del raw_snapshots[SilverTable.SALES]
        sink = CollectingEventSink()
        pipeline = SilverPipeline(InMemorySnapshotProvider(raw_snapshots), ParquetSilverStore(tmp_path), sink=sink)
        monkeypatch.setattr(main_module, "create_pipeline", lambda: pipeline)

        assert main_module.main() == 1
        assert not (tmp_path / "crm_sales_details.parquet").exists()
        assert not (tmp_path / "erp_cust_az12.parquet").exists()

    def test_exit_one_when_store_unreachable(self, monkeypatch, quiet_logging):
        def unreachable():
            raise StorageError("silver", "connect", "connection refused")

        monkeypatch.setattr(main_module, "create_pipeline", unreachable)

        assert main_module.main() == 1

    def test_database_closed_when_setup_fails(self, monkeypatch, quiet_logging):
        closed = []

        def schema_rejected():
            raise StorageError("silver", "create_schema", "permission denied for schema silver")

        monkeypatch.setattr(main_module, "create_pipeline", schema_rejected)
        monkeypatch.setattr(main_module, "close_database", lambda: closed.append(True))

        assert main_module.main() == 1
        assert closed == [True]


class TestPrefectFlows:
    """Tests for the Prefect flows, run as plain functions"""

    @pytest.fixture
    def raw_dir(self, tmp_path):
        crm = tmp_path / "raw" / "source_crm"
        erp = tmp_path / "raw" / "source_erp"
        crm.mkdir(parents=True)
        erp.mkdir(parents=True)

        (crm / "cust_info.csv").write_text(
            "cst_id,cst_key,cst_firstname,cst_lastname,cst_marital_status,cst_gndr,cst_create_date\n"
            "11000,AW00011000,Jon,Yang,M,M,2025-10-06\n"
        )
        (crm / "prd_info.csv").write_text(
            "prd_id,prd_key,prd_nm,prd_cost,prd_line,prd_start_dt\n"
            "210,CO-RF-FR-R92B-58,HL Road Frame - Black- 58,,R,2003-07-01\n"
        )
        (crm / "sales_details.csv").write_text(
            "sls_ord_num,sls_prd_key,sls_cust_id,sls_order_dt,sls_ship_dt,sls_due_dt,sls_sales,sls_quantity,sls_price\n"
            "SO43697,BK-R93R-62,21768,20101229,20110105,20110110,3578,1,3578\n"
        )
        (erp / "cust_az12.csv").write_text("CID,BDATE,GEN\nNASAW00011000,1971-10-06,Male\n")
        (erp / "loc_a101.csv").write_text("CID,CNTRY\nAW-00011000,DE\n")
        (erp / "px_cat_g1v2.csv").write_text("ID,CAT,SUBCAT,MAINTENANCE\nCO_PD,Components,Pedals,No\n")
        return tmp_path

    def test_load_silver(self, raw_dir):
        silver_etl = _flows()

        result = silver_etl.load_silver.fn(
            raw_path=str(raw_dir / "raw"),
            store_backend="parquet",
            curated_path=str(raw_dir / "curated"),
        )

        assert result["status"] == "completed"
        assert [t["table"] for t in result["tables"]] == [t.value for t in SilverTable]
        assert (raw_dir / "curated" / "erp_loc_a101.parquet").exists()

    def test_load_silver_raises_on_failure(self, raw_dir):
        silver_etl = _flows()
        (raw_dir / "raw" / "source_erp" / "loc_a101.csv").unlink()

        with pytest.raises(RuntimeError, match="erp_loc_a101"):
            silver_etl.load_silver.fn(
                raw_path=str(raw_dir / "raw"),
                store_backend="parquet",
                curated_path=str(raw_dir / "curated"),
            )

    def test_check_silver_quality(self, raw_dir):
        silver_etl = _flows()
        silver_etl.load_silver.fn(
            raw_path=str(raw_dir / "raw"),
            store_backend="parquet",
            curated_path=str(raw_dir / "curated"),
        )

        results = silver_etl.check_silver_quality.fn(
            store_backend="parquet",
            curated_path=str(raw_dir / "curated"),
        )

        assert set(results) == {t.value for t in SilverTable}
        assert results["crm_cust_info"]["rows"] == 1
        assert all(r["failed_checks"] == [] for r in results.values())

    def test_store_backend_argument_overrides_settings(self, monkeypatch, raw_dir, test_engine):
        silver_etl = _flows()
        monkeypatch.setattr(
            silver_etl, "get_settings", lambda: Settings(pipeline=PipelineSettings(store_backend="parquet"))
        )
        monkeypatch.setattr("src.database.connection.init_database", lambda url: test_engine)

        stores = []

        def capture(settings, provider, store):
            stores.append(store)
            return SilverPipeline(provider, store)

        monkeypatch.setattr(silver_etl, "create_pipeline", capture)

        silver_etl.load_silver.fn(raw_path=str(raw_dir / "raw"), store_backend="database")
        results = silver_etl.check_silver_quality.fn(store_backend="database")

        assert isinstance(stores[0], SqlSilverStore)
        assert results["erp_loc_a101"]["rows"] == 1

    def test_curated_path_argument_used_for_parquet(self, monkeypatch, raw_dir):
        silver_etl = _flows()
        monkeypatch.setattr(
            silver_etl, "get_settings", lambda: Settings(pipeline=PipelineSettings(store_backend="database"))
        )

        silver_etl.load_silver.fn(
            raw_path=str(raw_dir / "raw"),
            store_backend="parquet",
            curated_path=str(raw_dir / "elsewhere"),
        )

        assert (raw_dir / "elsewhere" / "crm_cust_info.parquet").exists()
