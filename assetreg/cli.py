"""
Asset registry CLI

Record, look up and verify spreadsheet digests from the command line
"""
import sys

import click
from rich.console import Console
from rich.table import Table

from assetreg import __version__
from assetreg.config import get_config
from assetreg.errors import AssetRegError, LedgerTransportError
from assetreg.integrity.digest import DigestEngine, from_hex
from assetreg.ledger.models import VerifyResult
from assetreg.ledger.signing import SigningCredential
from assetreg.services.audit import AuditService, build_recorder, build_source
from assetreg.sources.base import SourceSelector
from assetreg.sources.csv_file import CsvFileSource
from assetreg.utils import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)

_VERIFY_STYLES = {
    VerifyResult.MATCH: "bold green",
    VerifyResult.MISMATCH: "bold red",
    VerifyResult.NO_RECORD: "bold yellow",
}


def _fail(exc: AssetRegError) -> None:
    console.print(f"[bold red]{exc.kind}:[/bold red] {exc}")
    if exc.reason:
        console.print(f"  reason: {exc.reason}")
    if isinstance(exc, LedgerTransportError) and exc.outcome_unknown:
        console.print("[yellow]Outcome unknown - run `assetreg lookup` before retrying.[/yellow]")
    sys.exit(1)


def _service(csv_source: bool) -> AuditService:
    cfg = get_config()
    source = CsvFileSource() if csv_source else build_source(cfg)
    return AuditService(source, build_recorder(cfg))


def _selector(sheet: str | None, range_override: str | None, csv_path: str | None) -> SourceSelector:
    if csv_path:
        return SourceSelector(sheet_name=csv_path)
    if not sheet:
        raise click.UsageError("Provide --sheet NAME or --csv PATH.")
    return SourceSelector(sheet_name=sheet, range_override=range_override)


def _record_table(record) -> Table:
    table = Table(title=f"Ledger record: {record.asset_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("data_hash", record.data_hash.hex())
    table.add_row("recorded_at", str(record.recorded_at))
    table.add_row("recorded_by", record.recorded_by)
    return table


# ═══════════════════════════════════════════════════════════════════
# MAIN CLI GROUP
# ═══════════════════════════════════════════════════════════════════

@click.group()
@click.version_option(version=__version__)
def main():
    """
    Asset Registry - tamper-evident spreadsheet digests on a write-once ledger
    """
    cfg = get_config()
    setup_logging(cfg.log_level, cfg.log_file)


@main.command()
@click.option('--host', default=None, help='Bind address (default from config)')
@click.option('--port', default=None, type=int, help='Port (default from config)')
def serve(host, port):
    """Run the HTTP API"""
    import uvicorn

    cfg = get_config()
    uvicorn.run("assetreg.api.main:app", host=host or cfg.api_host, port=port or cfg.api_port)


@main.command(name="hash")
@click.argument('csv_path', type=click.Path(exists=True, dir_okay=False))
def hash_csv(csv_path):
    """Compute the digest of a CSV export (header row excluded)"""
    try:
        rows = CsvFileSource().read_range(SourceSelector(sheet_name=csv_path))
        digest = DigestEngine().digest_rows(rows)
    except AssetRegError as exc:
        _fail(exc)
    click.echo(digest.hex())


@main.command()
@click.argument('asset_id')
@click.option('--sheet', help='Sheet (tab) name to read')
@click.option('--range', 'range_override', help='Explicit A1 range, e.g. Sheet1!A1:D50')
@click.option('--csv', 'csv_path', type=click.Path(exists=True, dir_okay=False), help='Read a local CSV export instead')
@click.option('--wait/--no-wait', default=False, help='Poll until the transaction is included')
def audit(asset_id, sheet, range_override, csv_path, wait):
    """Digest a snapshot and record it on the ledger"""
    selector = _selector(sheet, range_override, csv_path)
    try:
        service = _service(csv_source=bool(csv_path))
        result = service.audit_asset(asset_id, selector)
        console.print("[bold green]Asset hash submitted.[/bold green] Awaiting confirmation.")
        console.print(f"  asset_id:       {result.asset_id}")
        console.print(f"  digest:         {result.digest_hex}")
        console.print(f"  transaction_id: {result.transaction_id}")
        if wait:
            with console.status("[bold green]Waiting for inclusion..."):
                status = service.recorder.wait_for_inclusion(
                    result.transaction_id, asset_id=result.asset_id
                )
            console.print(f"  status:         {status.state.value}")
    except AssetRegError as exc:
        _fail(exc)


@main.command()
@click.argument('asset_id')
def lookup(asset_id):
    """Show the ledger record for an asset"""
    try:
        record = build_recorder(get_config()).lookup(asset_id)
    except AssetRegError as exc:
        _fail(exc)
    if record is None:
        console.print(f"[yellow]No record for {asset_id}[/yellow]")
        sys.exit(2)
    console.print(_record_table(record))


@main.command()
@click.argument('asset_id')
@click.option('--digest', 'digest_hex', help='Hex digest to check')
@click.option('--sheet', help='Recompute from this sheet (tab)')
@click.option('--range', 'range_override', help='Explicit A1 range')
@click.option('--csv', 'csv_path', type=click.Path(exists=True, dir_okay=False), help='Recompute from a local CSV export')
def verify(asset_id, digest_hex, sheet, range_override, csv_path):
    """Verify current data (or a digest) against the ledger record"""
    try:
        if digest_hex:
            verification = build_recorder(get_config()).verify(asset_id, from_hex(digest_hex))
        else:
            selector = _selector(sheet, range_override, csv_path)
            verification = _service(csv_source=bool(csv_path)).verify_asset(asset_id, selector)
    except AssetRegError as exc:
        _fail(exc)

    style = _VERIFY_STYLES[verification.result]
    console.print(f"[{style}]{verification.result.value}[/{style}]  {asset_id}")
    console.print(f"  computed: {verification.digest.hex()}")
    if verification.record is not None:
        console.print(_record_table(verification.record))
    if verification.result is not VerifyResult.MATCH:
        sys.exit(3)


@main.command()
@click.argument('transaction_id')
@click.option('--wait/--no-wait', default=False, help='Poll until final or timeout')
@click.option('--timeout', type=float, default=None, help='Polling deadline in seconds')
def status(transaction_id, wait, timeout):
    """Show the inclusion status of a transaction"""
    try:
        recorder = build_recorder(get_config())
        if wait:
            with console.status("[bold green]Polling..."):
                tx = recorder.wait_for_inclusion(transaction_id, timeout=timeout)
        else:
            tx = recorder.transaction_status(transaction_id)
    except AssetRegError as exc:
        _fail(exc)
    console.print(f"{tx.transaction_id}: [bold]{tx.state.value}[/bold]")
    if tx.block_height is not None:
        console.print(f"  block_height: {tx.block_height}")
    if tx.reason:
        console.print(f"  reason: {tx.reason}")


@main.command()
def keygen():
    """Generate a new authority signing key and its principal"""
    credential = SigningCredential.generate()
    click.echo(f"ASSETREG_AUTHORITY_PRINCIPAL={credential.principal}")
    click.echo(f"ASSETREG_AUTHORITY_SIGNING_KEY={credential.private_hex()}")
    console.print("[yellow]Store the signing key as a secret; it is not shown again.[/yellow]")


if __name__ == '__main__':
    main()
