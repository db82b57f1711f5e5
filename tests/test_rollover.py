import pytest

from evmstate.blockchain.genesis import GenesisExporter, GenesisImporter
from evmstate.blockchain.genesis.codec import read_header
from evmstate.blockchain.genesis.importer import read_part
from evmstate.protocol.types.common import GenesisIntegrityError
from evmstate.protocol.crypto.hash import keccak256
from evmstate.protocol.crypto.addresses import normalize_address
from evmstate.protocol.config.params import CONFIGS, MANIFEST_FILE

from conftest import h32

NUM_ACCOUNTS = 12


def addresses():
    return ["0x" + f"{i:040x}" for i in range(1, NUM_ACCOUNTS + 1)]


@pytest.fixture
def populated(source):
    for i, address in enumerate(addresses()):
        code = bytes([0x60, i, 0x60, 0x00, 0x55])
        source.add_contract(address, code, {h32(k): h32(k + i) for k in range(1, 4)})
    return source


@pytest.fixture
def small_parts():
    # Every record is a few hundred bytes; a part holds two or three of them
    return CONFIGS["default"].copy(rollover_threshold=1000)


def test_rollover_produces_self_contained_parts(populated, small_parts, tmp_path):
    out = tmp_path / "out"
    result = GenesisExporter(populated.registry, populated.store, small_parts).export_to(out)

    assert len(result.parts) >= 2
    assert [p.file_name for p in result.parts] == [f"genesis{i}" for i in range(len(result.parts))]
    assert sum(p.count for p in result.parts) == NUM_ACCOUNTS == result.accounts_exported

    seen = []
    for part in result.parts:
        path = out / part.file_name
        with open(path, "rb") as f:
            assert read_header(f).count == part.count
        assert path.stat().st_size == part.size

        params, accounts = read_part(path)
        assert params == populated.store.get_params()
        assert len(accounts) == part.count
        seen.extend(a.address for a in accounts)

    # Every record lives wholly in exactly one part
    assert sorted(seen) == sorted(normalize_address(a) for a in addresses())


def test_only_last_part_may_be_under_threshold(populated, small_parts, tmp_path):
    result = GenesisExporter(populated.registry, populated.store, small_parts).export_to(tmp_path / "out")
    for part in result.parts[:-1]:
        assert part.size > small_parts.rollover_threshold


def test_import_reads_all_parts(populated, target, small_parts, tmp_path):
    out = tmp_path / "out"
    GenesisExporter(populated.registry, populated.store, small_parts).export_to(out)
    for address in addresses():
        live = populated.registry.resolve_account(address)
        target.add_contract(address, b"", code_hash=live.code_hash_bytes())

    result = GenesisImporter(target.registry, target.store).import_from(out)

    assert result.accounts_imported == NUM_ACCOUNTS
    for address in addresses():
        assert target.storage_of(address) == populated.storage_of(address)


def test_import_without_manifest_scans_parts(populated, target, small_parts, tmp_path):
    out = tmp_path / "out"
    config = small_parts.copy(write_manifest=False)
    GenesisExporter(populated.registry, populated.store, config).export_to(out)
    assert not (out / MANIFEST_FILE).exists()

    state = GenesisImporter(target.registry, target.store, config).load_chunked(out)
    assert len(state.accounts) == NUM_ACCOUNTS


def test_tampered_part_fails_manifest_check(populated, target, small_parts, tmp_path):
    out = tmp_path / "out"
    GenesisExporter(populated.registry, populated.store, small_parts).export_to(out)
    data = bytearray((out / "genesis1").read_bytes())
    data[-2] ^= 0xFF
    (out / "genesis1").write_bytes(bytes(data))

    with pytest.raises(GenesisIntegrityError, match="checksum"):
        GenesisImporter(target.registry, target.store).load_chunked(out)


def test_missing_part_listed_in_manifest(populated, target, small_parts, tmp_path):
    out = tmp_path / "out"
    GenesisExporter(populated.registry, populated.store, small_parts).export_to(out)
    (out / "genesis1").unlink()

    with pytest.raises(OSError):
        GenesisImporter(target.registry, target.store).load_chunked(out)


def test_no_empty_trailing_part(source, tmp_path):
    source.add_contract("0x" + "aa" * 20, bytes(2000))
    config = CONFIGS["default"].copy(rollover_threshold=100)

    result = GenesisExporter(source.registry, source.store, config).export_to(tmp_path / "out")

    assert [p.count for p in result.parts] == [1]
    assert not (tmp_path / "out" / "genesis1").exists()
