from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from PIL import Image

from engines.recognition import recognize_identifier
from inventory import InventorySession, LogicalRole, RecordStore, SchemaSettings
from inventory.cells import format_date
from inventory.models import InventoryError
from io_utils.image_backup import export_images, import_images
from io_utils.spreadsheets import read_workbook, write_workbook
from preprocess import binarize
from preprocess.flows import LOW_CONTRAST_LABEL, SERIAL_LABEL
from src.config import Config, load_config
from src.core.protocols import WORKBOOK_KEY
from src.core.storage import create_storage
from src.logging_config import configure_logging

logger = logging.getLogger(__name__)

app = typer.Typer(help="Reconcile an equipment inventory against its spreadsheet of record")


@dataclass
class Context:
    cfg: Dict[str, Any]
    session: InventorySession


def open_session(config_path: Optional[Path]) -> Context:
    """Build the storage gateway and session from configuration and restore it."""
    cfg = load_config(config_path)
    storage_cfg = cfg.get("storage", {})
    gateway = create_storage(storage_cfg.get("backend", "json"), storage_cfg)
    store = RecordStore(gateway, key=storage_cfg.get("workbook_key", WORKBOOK_KEY))
    session = InventorySession(store, SchemaSettings.from_config(cfg.get("schema", {})))
    restored = session.restore()
    if not restored.ok:
        typer.echo(f"⚠️  Saved workbook could not be read: {restored.error}", err=True)
    elif restored.migrated:
        typer.echo("ℹ️  Saved workbook migrated to the multi-sheet format", err=True)
    return Context(cfg=cfg, session=session)


def _ctx(ctx: typer.Context) -> Context:
    return ctx.obj


def _require_rows(session: InventorySession) -> None:
    if not session.store.is_loaded or session.store.workbook.is_empty:
        typer.echo("❌ No workbook loaded. Run 'import' first.", err=True)
        raise typer.Exit(1)


def _warn_unsaved(result) -> None:
    if result is not None and not result.ok:
        typer.echo(f"⚠️  Changes kept in memory but not saved: {result.error}", err=True)


def _show_row(session: InventorySession, index: int) -> None:
    sheet = session.sheet
    record = sheet.records[index]
    typer.echo(f"Row {index} (sheet '{sheet.name}', spreadsheet line {index + 2})")
    for header in sheet.headers:
        typer.echo(f"  {header}: {format_date(record[header])}")


def _show_lookup(session: InventorySession, result) -> None:
    if result.index is not None:
        typer.echo(f"✅ Match ({result.tier.value})")
        _show_row(session, result.index)
        if result.has_duplicates:
            typer.echo(f"⚠️  Identifier also on rows {result.matches[1:]}")
        return
    if result.matches:
        serial_key = session.column(LogicalRole.SERIAL)
        typer.echo(f"🔎 {len(result.matches)} partial match(es):")
        for index in result.matches:
            typer.echo(f"  [{index}] {session.sheet.records[index][serial_key]}")
        return
    typer.echo("❌ Not found; use 'register' to add it")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        file_okay=True,
        help="Optional config file",
    ),
    log_level: str = typer.Option(Config.LOG_LEVEL, "--log-level", help="Log level"),
) -> None:
    configure_logging(level=log_level, json_format=Config.LOG_JSON, log_file=Config.LOG_FILE)
    ctx.obj = open_session(config)


@app.command("import")
def import_(
    ctx: typer.Context,
    spreadsheet: Path = typer.Argument(..., exists=True, dir_okay=False, help="Workbook to import"),
) -> None:
    """Replace the working copy with the sheets of SPREADSHEET."""
    session = _ctx(ctx).session
    document = read_workbook(spreadsheet)
    result = session.import_document(document)
    _warn_unsaved(result)
    for sheet in session.store.workbook:
        typer.echo(f"📄 {sheet.name}: {len(sheet)} rows, {len(sheet.headers)} columns")
    missing = [r.value for r in (LogicalRole.SERIAL, LogicalRole.LOCATION) if session.column(r) is None]
    if missing:
        typer.echo(f"⚠️  Columns not found for: {', '.join(missing)}", err=True)


@app.command()
def sheets(ctx: typer.Context) -> None:
    """List sheets; the current one is marked with '*'."""
    session = _ctx(ctx).session
    _require_rows(session)
    workbook = session.store.workbook
    for sheet in workbook:
        marker = "*" if sheet.name == workbook.current_sheet else " "
        typer.echo(f"{marker} {sheet.name} ({len(sheet)} rows)")


@app.command("switch-sheet")
def switch_sheet(ctx: typer.Context, name: str = typer.Argument(...)) -> None:
    """Make NAME the current sheet."""
    session = _ctx(ctx).session
    _require_rows(session)
    try:
        result = session.switch_sheet(name)
    except KeyError:
        typer.echo(f"❌ No sheet named {name!r}", err=True)
        raise typer.Exit(1)
    _warn_unsaved(result)
    typer.echo(f"✅ Current sheet: {name}")


@app.command("list")
def list_rows(
    ctx: typer.Context,
    serial: str = typer.Option("", "--serial", "-s", help="Only rows whose serial contains this"),
) -> None:
    """List rows of the current sheet."""
    session = _ctx(ctx).session
    _require_rows(session)
    sheet = session.sheet
    typer.echo("\t".join(["#"] + sheet.headers))
    for index in session.filter(serial):
        record = sheet.records[index]
        typer.echo("\t".join([str(index)] + [format_date(record[h]) for h in sheet.headers]))


@app.command()
def find(ctx: typer.Context, query: str = typer.Argument(...)) -> None:
    """Look up equipment by ID or serial."""
    session = _ctx(ctx).session
    _require_rows(session)
    _show_lookup(session, session.lookup(query))


@app.command()
def scan(ctx: typer.Context, raw: str = typer.Argument(..., help="Decoded QR/barcode text")) -> None:
    """Look up equipment from raw scanned text."""
    session = _ctx(ctx).session
    _require_rows(session)
    outcome = session.scan(raw)
    typer.echo(f"Identifier: {outcome.identifier}")
    _show_lookup(session, outcome.result)


@app.command()
def verify(ctx: typer.Context, raw: str = typer.Argument(..., help="Decoded QR/barcode text")) -> None:
    """Scan an identifier and mark the equipment as verified today."""
    session = _ctx(ctx).session
    _require_rows(session)
    outcome = session.verify(raw)
    if outcome.index is None:
        _show_lookup(session, outcome.result)
        raise typer.Exit(1)
    typer.echo(f"✅ Verified row {outcome.index} ({outcome.identifier})")


@app.command()
def register(
    ctx: typer.Context,
    serial: str = typer.Option(..., "--serial", "-s", help="Serial number"),
    location: str = typer.Option(..., "--location", "-l", help="Location"),
    observation: str = typer.Option("", "--observation", "-o", help="Observation"),
    photo: Optional[Path] = typer.Option(None, "--photo", exists=True, dir_okay=False),
) -> None:
    """Register equipment, or update it when the serial already exists."""
    session = _ctx(ctx).session
    _require_rows(session)
    image = photo.read_bytes() if photo else None
    try:
        outcome = session.register(serial, location, observation, image)
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    if outcome.status == "schema-unresolved":
        typer.echo(
            "❌ No serial column in this sheet. Columns: " + ", ".join(session.sheet.headers),
            err=True,
        )
        raise typer.Exit(1)
    _warn_unsaved(outcome.persisted)
    typer.echo(f"✅ {outcome.serial} {outcome.status} (row {outcome.index})")
    if outcome.image:
        typer.echo(f"📷 Image saved as {outcome.image}")


def _parse_observations(values: List[str]) -> Dict[str, str]:
    parsed = {}
    for item in values:
        if "=" not in item:
            raise typer.BadParameter(f"Expected COLUMN=TEXT, got {item!r}")
        column, text = item.split("=", 1)
        parsed[column.strip()] = text
    return parsed


@app.command()
def update(
    ctx: typer.Context,
    index: int = typer.Argument(..., help="Row index"),
    date: Optional[str] = typer.Option(None, "--date", "-d", help="Calibration date YYYY-MM-DD"),
    location: Optional[str] = typer.Option(None, "--location", "-l"),
    obs: List[str] = typer.Option(None, "--obs", help="COLUMN=TEXT (repeatable)"),
) -> None:
    """Edit calibration date, location and observations of a row."""
    session = _ctx(ctx).session
    _require_rows(session)
    try:
        session.update(index, date, location, _parse_observations(obs or []))
    except (InventoryError, ValueError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    _warn_unsaved(session.store.persist())
    typer.echo(f"✅ Updated row {index} (spreadsheet line {index + 2})")


@app.command("add-observation")
def add_observation(ctx: typer.Context) -> None:
    """Add another observation column to the current sheet."""
    session = _ctx(ctx).session
    _require_rows(session)
    name = session.add_observation_slot()
    _warn_unsaved(session.store.persist())
    typer.echo(f"✅ Column ready: {name}")


@app.command("attach-image")
def attach_image(
    ctx: typer.Context,
    index: int = typer.Argument(..., help="Row index"),
    image: Path = typer.Argument(..., exists=True, dir_okay=False),
) -> None:
    """Store IMAGE in the next free image slot of a row."""
    session = _ctx(ctx).session
    _require_rows(session)
    try:
        outcome = session.attach_image(index, image.read_bytes())
    except InventoryError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    if not outcome.attached:
        typer.echo(f"❌ Image not stored: {outcome.stored.error}", err=True)
        raise typer.Exit(1)
    _warn_unsaved(outcome.persisted)
    typer.echo(f"📷 {outcome.filename} -> {outcome.column}")


@app.command()
def ocr(
    ctx: typer.Context,
    image: Path = typer.Argument(..., exists=True, dir_okay=False),
    binary_out: Optional[Path] = typer.Option(None, "--binary-out", help="Save the binarized image"),
    lookup: bool = typer.Option(True, "--lookup/--no-lookup", help="Look the text up"),
    low_contrast: bool = typer.Option(
        False, "--low-contrast", help="Boost contrast before thresholding (faded plates)"
    ),
) -> None:
    """Read a serial number from a photo."""
    context = _ctx(ctx)
    ocr_cfg = dict(context.cfg.get("ocr", {}))
    engine = ocr_cfg.pop("engine", "tesseract")
    preprocess_cfg = dict(context.cfg.get("preprocess") or SERIAL_LABEL)
    if low_contrast:
        preprocess_cfg.update(LOW_CONTRAST_LABEL)
    with Image.open(image) as img:
        if binary_out:
            binarize(img).save(binary_out)
            typer.echo(f"🖼️  Binarized image: {binary_out}")
        recognition = recognize_identifier(
            img, engine=engine, preprocess_cfg=preprocess_cfg, **ocr_cfg
        )
    if not recognition.available:
        typer.echo(f"⚠️  Recognition unavailable ({recognition.error}); enter the serial manually")
        return
    typer.echo(f"🔤 {recognition.text or '(nothing)'} (confidence {recognition.confidence:.0%})")
    session = context.session
    if lookup and recognition.text and session.store.is_loaded and not session.store.workbook.is_empty:
        _show_lookup(session, session.lookup(recognition.text))


@app.command()
def export(
    ctx: typer.Context,
    output: Optional[Path] = typer.Argument(None, help="Destination .xlsx/.csv"),
) -> None:
    """Export the workbook."""
    context = _ctx(ctx)
    session = context.session
    _require_rows(session)
    output = output or Path(context.cfg.get("export", {}).get("file_name", "Equipos_Actualizados.xlsx"))
    store = session.store
    try:
        write_workbook(output, store.export(), store.export_headers())
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"✅ Exported to {output}")


@app.command("export-images")
def export_images_cmd(ctx: typer.Context, archive: Path = typer.Argument(...)) -> None:
    """Back up stored images to a zip archive."""
    count = export_images(_ctx(ctx).session.store.gateway, archive)
    if count == 0:
        typer.echo("No images to export")
        return
    typer.echo(f"✅ {count} images exported to {archive}")


@app.command("import-images")
def import_images_cmd(
    ctx: typer.Context, archive: Path = typer.Argument(..., exists=True, dir_okay=False)
) -> None:
    """Restore images from a zip archive."""
    count = import_images(_ctx(ctx).session.store.gateway, archive)
    typer.echo(f"✅ {count} images imported")


@app.command()
def clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Discard the working copy of the workbook."""
    if not yes:
        typer.confirm("Discard the saved workbook?", abort=True)
    _warn_unsaved(_ctx(ctx).session.clear())
    typer.echo("🗑️  Workbook cleared")


if __name__ == "__main__":
    app()
