"""Typer CLI entrypoint for labelops."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer

from apps.cli.io import (
    build_output_paths,
    existing_output_files,
    read_json_object,
    read_label,
    write_bytes_atomic,
    write_edit_output_atomic,
    write_json_atomic,
)
from core.config.settings_loader import load_settings
from core.orchestrator.pipeline import analysis_payload, analyze_label, edit_label
from core.render.preview_client import render_preview
from core.utils.errors import PreviewRenderError, ProtectedFieldError

app = typer.Typer(help="Label Ops CLI", rich_markup_mode=None)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PROTECTED_FIELD = 3
EXIT_RENDERER = 5


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("analyze")
def analyze_command(
    label: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    out: Annotated[Path | None, typer.Option(help="Write the analysis JSON here.")] = None,
    settings: Annotated[Path | None, typer.Option()] = None,
    values: Annotated[
        Path | None,
        typer.Option(help="JSON object of role -> extracted value, used when no template matches."),
    ] = None,
    preview_width: Annotated[int | None, typer.Option(min=1)] = None,
    preview_height: Annotated[int | None, typer.Option(min=1)] = None,
) -> None:
    """Extract fields, detect the template and print the role mapping."""

    try:
        engine_settings = load_settings(settings)
        raw = read_label(label)
        values_map = read_json_object(values, "Values") if values is not None else None
        result = analyze_label(raw, engine_settings, values=values_map)
        payload = analysis_payload(
            result,
            engine_settings,
            preview_width=preview_width,
            preview_height=preview_height,
        )
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc

    for warning in payload["warnings"]:
        typer.echo(f"WARNING({warning['kind']}): line {warning['start_line']}: {warning['message']}")

    if out is not None:
        write_json_atomic(out, payload)
        typer.echo(f"INFO: wrote analysis to {out}")
    else:
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))

    typer.echo(
        "INFO: "
        f"text={payload['counts']['text']} "
        f"barcode={payload['counts']['barcode']} "
        f"qrcode={payload['counts']['qrcode']} "
        f"template={payload['template'] or 'none'}"
    )
    raise typer.Exit(code=EXIT_OK)


@app.command("edit")
def edit_command(
    label: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    edits: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    out_dir: Annotated[Path, typer.Option()] = Path("."),
    mapping: Annotated[
        Path | None,
        typer.Option(help="JSON object of role -> field index, used when no template matches."),
    ] = None,
    settings: Annotated[Path | None, typer.Option()] = None,
    strict: Annotated[
        bool, typer.Option("--strict", help="Fail instead of reporting barcode/QR targets.")
    ] = False,
    include_layers: Annotated[
        bool, typer.Option("--include-layers", help="Also rewrite shadow/bold copies.")
    ] = False,
    preserve_prefix: Annotated[
        bool, typer.Option("--preserve-prefix", help="Keep printed 'Caption: ' prefixes.")
    ] = False,
    no_overwrite: Annotated[
        bool, typer.Option("--no-overwrite", help="Fail when outputs already exist.")
    ] = False,
) -> None:
    """Apply role edits to a label and write out.zpl plus out.edit_report.json."""

    paths = build_output_paths(out_dir)
    existing = existing_output_files(paths)
    if existing and no_overwrite:
        typer.echo("ERROR: outputs already exist and --no-overwrite is enabled.")
        raise typer.Exit(code=EXIT_ERROR)
    if existing:
        names = ", ".join(path.name for path in existing)
        typer.echo(f"INFO: overwriting existing outputs: {names}")

    try:
        engine_settings = load_settings(settings)
        raw = read_label(label)
        edits_map = _string_values(read_json_object(edits, "Edits"))
        fallback = _int_values(read_json_object(mapping, "Mapping")) if mapping is not None else None
        output = edit_label(
            raw,
            edits_map,
            engine_settings,
            fallback=fallback,
            strict=strict,
            include_layers=include_layers,
            preserve_prefix=preserve_prefix,
        )
    except ProtectedFieldError as exc:
        typer.echo("ERROR: edit targets a barcode or QR block (strict mode)")
        if exc.report is not None:
            write_json_atomic(paths.edit_report, exc.report.model_dump(mode="json"))
        raise typer.Exit(code=EXIT_PROTECTED_FIELD) from exc
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc

    for entry in output.report.errors:
        typer.echo(f"WARNING(edit): role={entry.role} status={entry.status} reason={entry.reason}")

    try:
        write_edit_output_atomic(paths, output)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: write output failed: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc

    summary = output.report.summary
    typer.echo(
        "INFO: "
        f"replaced={summary.replaced_count} removed={summary.removed_count} "
        f"rejected={summary.rejected_count} unmapped={summary.unmapped_count}"
    )
    typer.echo("INFO: success")
    raise typer.Exit(code=EXIT_OK)


@app.command("preview")
def preview_command(
    label: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    out: Annotated[Path, typer.Option()] = Path("out.png"),
    settings: Annotated[Path | None, typer.Option()] = None,
) -> None:
    """Render a label through the external preview renderer."""

    try:
        engine_settings = load_settings(settings)
        image = render_preview(read_label(label), engine_settings)
    except PreviewRenderError as exc:
        typer.echo(f"ERROR: preview renderer failed: {exc}")
        raise typer.Exit(code=EXIT_RENDERER) from exc
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc

    write_bytes_atomic(out, image)
    typer.echo(f"INFO: wrote preview to {out}")
    raise typer.Exit(code=EXIT_OK)


def _string_values(raw: dict[str, Any]) -> dict[str, str]:
    result: dict[str, str] = {}
    for key, value in raw.items():
        if not isinstance(value, str):
            raise ValueError(f"Edit value for {key} must be a string")
        result[key] = value
    return result


def _int_values(raw: dict[str, Any]) -> dict[str, int]:
    result: dict[str, int] = {}
    for key, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Mapping value for {key} must be a field index")
        result[key] = value
    return result


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
