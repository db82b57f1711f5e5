import time
import pytest

from evmstate.blockchain.genesis import (
    ExecutionContext,
    GenesisExporter,
    GenesisImporter,
    export_genesis_files,
    import_genesis_files,
)
from evmstate.blockchain.genesis.codec import read_header
from evmstate.protocol.types.common import (
    ExportStatus,
    FileFormat,
    GenesisExportTerminated,
    GenesisIntegrityError,
)
from evmstate.blockchain.observability.metrics import metrics_registry
from evmstate.protocol.types.genesis import EVMParams
from evmstate.protocol.config.params import CONFIGS, MANIFEST_FILE, whole_file_name

from conftest import h32

N = 6


class CancelAfter(ExecutionContext):
    """Cancels itself on the (k+1)-th poll."""

    def __init__(self, k: int):
        super().__init__()
        self.k = k
        self.polls = 0

    def done(self) -> bool:
        self.polls += 1
        if self.polls > self.k:
            self.cancel()
        return super().done()


@pytest.fixture
def populated(source):
    for i in range(N):
        source.add_contract("0x" + f"{i + 1:040x}", bytes([0x60, i]), {h32(1): h32(i + 1)})
    return source


@pytest.mark.parametrize("k", range(N))
def test_cancel_after_k_accounts_leaves_count_unpatched(populated, tmp_path, k):
    out = tmp_path / "out"
    exporter = GenesisExporter(populated.registry, populated.store)

    with pytest.raises(GenesisExportTerminated) as exc:
        exporter.export_to(out, CancelAfter(k))

    assert exc.value.accounts_written == k
    assert "cancelled" in str(exc.value)
    with open(out / "genesis0", "rb") as f:
        assert read_header(f).count == 0
    assert not (out / MANIFEST_FILE).exists()


def test_cancel_with_rollover_leaves_every_part_unpatched(populated, tmp_path):
    out = tmp_path / "out"
    config = CONFIGS["default"].copy(rollover_threshold=200)

    with pytest.raises(GenesisExportTerminated):
        GenesisExporter(populated.registry, populated.store, config).export_to(out, CancelAfter(N - 1))

    parts = sorted(out.glob("genesis[0-9]*"))
    assert len(parts) >= 2
    for path in parts:
        with open(path, "rb") as f:
            assert read_header(f).count == 0


def test_partial_export_is_rejected_on_import(populated, target, tmp_path):
    out = tmp_path / "out"
    with pytest.raises(GenesisExportTerminated):
        GenesisExporter(populated.registry, populated.store).export_to(out, CancelAfter(3))

    with pytest.raises(GenesisIntegrityError, match="did not complete"):
        GenesisImporter(target.registry, target.store).load_chunked(out)


def test_partial_export_without_manifest_fails_on_trailing_records(populated, target, tmp_path):
    out = tmp_path / "out"
    config = CONFIGS["default"].copy(write_manifest=False)
    with pytest.raises(GenesisExportTerminated):
        GenesisExporter(populated.registry, populated.store, config).export_to(out, CancelAfter(3))

    with pytest.raises(GenesisIntegrityError, match="never finalized"):
        GenesisImporter(target.registry, target.store, config).load_chunked(out)


def test_cancel_before_first_account_is_not_an_empty_genesis(populated, target, tmp_path):
    out = tmp_path / "out"
    with pytest.raises(GenesisExportTerminated):
        GenesisExporter(populated.registry, populated.store).export_to(out, CancelAfter(0))

    # The file on disk is a well-formed header with count 0 and nothing after it
    with open(out / "genesis0", "rb") as f:
        assert read_header(f).count == 0

    target.store.set_params(EVMParams(chain_id=4242))
    result = import_genesis_files(target.registry, target.store, out)

    assert result.status == ExportStatus.FAILED
    assert "did not complete" in result.error
    assert target.store.get_params().chain_id == 4242


def test_cancel_before_first_account_single_part_file(populated, target, tmp_path):
    out = tmp_path / "out"
    with pytest.raises(GenesisExportTerminated):
        GenesisExporter(populated.registry, populated.store).export_to(out, CancelAfter(0))

    with pytest.raises(GenesisIntegrityError, match="no manifest vouches"):
        GenesisImporter(target.registry, target.store).load_chunked(out / "genesis0")


def test_whole_export_honours_cancellation(populated, tmp_path):
    out = tmp_path / "out"
    ctx = ExecutionContext.background()
    ctx.cancel()
    config = CONFIGS["default"].copy(file_format=FileFormat.WHOLE)

    result = export_genesis_files(populated.registry, populated.store, out, ctx=ctx, config=config)

    assert result.status == ExportStatus.TERMINATED
    assert "cancelled" in result.error
    assert not (out / whole_file_name("evm")).exists()


def test_whole_export_stops_mid_state(populated, tmp_path):
    config = CONFIGS["default"].copy(file_format=FileFormat.WHOLE)
    exporter = GenesisExporter(populated.registry, populated.store, config)

    with pytest.raises(GenesisExportTerminated) as exc:
        exporter.export_whole(tmp_path / "out", CancelAfter(2))

    assert exc.value.accounts_written == 2
    assert not (tmp_path / "out" / whole_file_name("evm")).exists()


def test_terminated_export_does_not_count_accounts(populated, tmp_path):
    def sample(name, labels=None):
        return metrics_registry.get_sample_value(name, labels or {}) or 0

    accounts_before = sample('evmstate_genesis_accounts_exported_total')
    parts_before = sample('evmstate_genesis_parts_written_total')
    terminated_before = sample(
        'evmstate_genesis_operations_total', {'operation': 'export', 'status': 'terminated'}
    )

    result = export_genesis_files(populated.registry, populated.store, tmp_path / "out", ctx=CancelAfter(3))
    assert result.status == ExportStatus.TERMINATED

    assert sample('evmstate_genesis_accounts_exported_total') == accounts_before
    assert sample('evmstate_genesis_parts_written_total') == parts_before
    assert sample(
        'evmstate_genesis_operations_total', {'operation': 'export', 'status': 'terminated'}
    ) == terminated_before + 1

    result = export_genesis_files(populated.registry, populated.store, tmp_path / "again")
    assert result.ok
    assert sample('evmstate_genesis_accounts_exported_total') == accounts_before + N

def test_expired_deadline_terminates(populated, tmp_path):
    ctx = ExecutionContext.background().with_timeout(0)
    result = export_genesis_files(populated.registry, populated.store, tmp_path / "out", ctx=ctx)

    assert result.status == ExportStatus.TERMINATED
    assert result.accounts_exported == 0
    assert "deadline exceeded" in result.error


def test_service_reports_terminated_not_failed(populated, tmp_path):
    result = export_genesis_files(populated.registry, populated.store, tmp_path / "out", ctx=CancelAfter(2))

    assert result.status == ExportStatus.TERMINATED
    assert not result.ok
    assert result.accounts_exported == 2


def test_cancellation_propagates_to_child():
    parent = ExecutionContext.background()
    child = parent.with_timeout(3600)
    assert not child.done()

    parent.cancel()

    assert child.done()
    assert child.reason() == "cancelled"


def test_child_deadline_does_not_cancel_parent():
    parent = ExecutionContext.background()
    child = parent.with_timeout(0.01)
    time.sleep(0.02)

    assert child.done()
    assert child.reason() == "deadline exceeded"
    assert not parent.done()
