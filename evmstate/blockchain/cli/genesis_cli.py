import argparse
import os
import signal
import sys
import logging
from pathlib import Path

from ..storage.db import StorageDB
from ..core.registry import AccountRegistry
from ..core.evm_store import EVMStore, FeeMarketStore
from ..genesis import ExecutionContext, export_genesis_files, import_genesis_files
from ..genesis.codec import decode_record, read_header, read_frame, at_eof
from ...protocol.types.common import ExportStatus, FileFormat, MismatchPolicy
from ...protocol.types.genesis import EVMParams
from ...protocol.config.params import CONFIGS

logger = logging.getLogger(__name__)

DEFAULT_DATADIR = "./.evmstate"

EXIT_CODES = {
    ExportStatus.OK: 0,
    ExportStatus.FAILED: 1,
    ExportStatus.TERMINATED: 2,
}


def get_datadir(args) -> str:
    return args.datadir or os.environ.get("EVMSTATE_DATADIR", DEFAULT_DATADIR)


def build_config(args):
    config = CONFIGS[args.network]
    overrides = {}

    threshold = getattr(args, "threshold", None) or os.environ.get("EVMSTATE_ROLLOVER_BYTES")
    if threshold:
        overrides["rollover_threshold"] = int(threshold)
    if getattr(args, "format", None):
        overrides["file_format"] = FileFormat(args.format)
    if getattr(args, "policy", None):
        overrides["mismatch_policy"] = MismatchPolicy(args.policy)
    return config.copy(**overrides)


def open_db(args) -> StorageDB:
    data_dir = get_datadir(args)
    os.makedirs(data_dir, exist_ok=True)
    return StorageDB(os.path.join(data_dir, "state.db"))


def cmd_export(args) -> int:
    config = build_config(args)
    db = open_db(args)
    try:
        ctx = ExecutionContext.background()
        if args.timeout:
            ctx = ctx.with_timeout(args.timeout)

        # Ctrl-C stops the export at the next account instead of mid-write
        previous = signal.signal(signal.SIGINT, lambda signum, frame: ctx.cancel())
        try:
            result = export_genesis_files(
                AccountRegistry(db), EVMStore(db), args.out, ctx=ctx, config=config,
                feemarket_store=None if args.skip_feemarket else FeeMarketStore(db)
            )
        finally:
            signal.signal(signal.SIGINT, previous)
    finally:
        db.close()

    if result.ok:
        print(f"Exported {result.accounts_exported} accounts to {result.export_dir}")
        for part in result.parts:
            print(f"  {part.file_name:<12} {part.count:>8} accounts {part.size:>12} bytes")
    else:
        print(f"Export {result.status.value}: {result.error}")
    return EXIT_CODES[result.status]


def cmd_import(args) -> int:
    config = build_config(args)
    db = open_db(args)
    try:
        result = import_genesis_files(
            AccountRegistry(db), EVMStore(db), args.source, config=config, atomic=args.atomic,
            feemarket_store=FeeMarketStore(db)
        )
    finally:
        db.close()

    if result.ok:
        print(f"Imported {result.accounts_imported} accounts ({result.storage_slots_written} storage slots)")
        if result.skipped:
            print(f"Skipped {len(result.skipped)} accounts:")
            for address in result.skipped:
                print(f"  {address}")
    else:
        print(f"Import {result.status.value}: {result.error}")
    return EXIT_CODES[result.status]


def cmd_inspect(args) -> int:
    """Print header and record counts of chunked part files."""
    path = Path(args.path)
    files = sorted(p for p in path.iterdir() if p.is_file()) if path.is_dir() else [path]

    status = 0
    for part in files:
        if part.name.endswith(".bin") or part.name.endswith(".json"):
            continue
        with open(part, "rb") as f:
            header = read_header(f, str(part))
            params = decode_record(EVMParams, header.params_payload, str(part), 0)
            records = 0
            while not at_eof(f):
                read_frame(f, str(part))
                records += 1

        state = "ok" if records == header.count else "INCOMPLETE"
        if records != header.count:
            status = 1
        print(f"{part.name:<12} header={header.count:<8} records={records:<8} chain_id={params.chain_id} {state}")
    return status


def main(argv=None):
    parser = argparse.ArgumentParser(description="EVM genesis state export/import")
    parser.add_argument("--datadir", default=None, help="Data directory (env EVMSTATE_DATADIR)")
    parser.add_argument("--network", default="default", choices=sorted(CONFIGS), help="Config preset")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Export command
    export_parser = subparsers.add_parser("export", help="Export genesis state")
    export_parser.add_argument("--out", required=True, help="Destination directory")
    export_parser.add_argument("--format", choices=[f.value for f in FileFormat], help="File format")
    export_parser.add_argument("--threshold", type=int, help="Rollover threshold in bytes (env EVMSTATE_ROLLOVER_BYTES)")
    export_parser.add_argument("--timeout", type=float, help="Give up after this many seconds")
    export_parser.add_argument("--skip-feemarket", action="store_true", help="Do not export fee market genesis")

    # Import command
    import_parser = subparsers.add_parser("import", help="Import genesis state")
    import_parser.add_argument("--from", dest="source", required=True, help="Part file or export directory")
    import_parser.add_argument("--format", choices=[f.value for f in FileFormat], help="File format")
    import_parser.add_argument("--policy", choices=[p.value for p in MismatchPolicy], help="Code hash mismatch policy")
    import_parser.add_argument("--atomic", action="store_true", help="Roll back everything if the import fails")

    # Inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Show header and record counts of part files")
    inspect_parser.add_argument("path", help="Part file or export directory")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    if args.command == "export":
        return cmd_export(args)
    elif args.command == "import":
        return cmd_import(args)
    elif args.command == "inspect":
        return cmd_inspect(args)


if __name__ == "__main__":
    sys.exit(main())
