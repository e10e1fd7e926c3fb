from __future__ import annotations

import sys
from pathlib import Path

import typer
from rich.console import Console

from panmix.binomix import presence_histogram
from panmix.config import HistogramConfig, merge_command_config
from panmix.exceptions import PanMixError, PanMixUsageError
from panmix.logging import configure_logging, get_logger
from panmix.manifest import create_run_manifest, finalize_manifest, write_manifest
from panmix.panmatrix import load_panmatrix
from panmix.paths import create_output_layout
from panmix.utils.io import write_tsv

app = typer.Typer(help="Count gene clusters by the number of genomes they occur in.")
console = Console()


def run_histogram(
    *,
    config_path: Path | None,
    panmatrix: Path | None,
    outdir: Path | None,
    force: bool | None,
    log_file: Path | None,
    verbose: bool | None,
    quiet: bool | None,
) -> int:
    try:
        cfg = merge_command_config(
            config_path=config_path,
            section="histogram",
            model_cls=HistogramConfig,
            cli_overrides={
                "panmatrix": panmatrix,
                "outdir": outdir,
                "force": force,
                "log_file": log_file,
                "verbose": verbose,
                "quiet": quiet,
            },
        )
        configure_logging(verbose=cfg.verbose, quiet=cfg.quiet, log_file=cfg.log_file)
        logger = get_logger("panmix.histogram")

        if cfg.panmatrix is None:
            raise PanMixUsageError("A pan-matrix is required: provide --panmatrix or set it in --config.")

        layout = create_output_layout(cfg.outdir)
        manifest = create_run_manifest(
            command="histogram",
            argv=sys.argv,
            outdir=layout.root,
            dry_run=False,
            threads=1,
            config_path=config_path,
            input_paths=[cfg.panmatrix],
            planned_steps=[
                f"Load pan-matrix {cfg.panmatrix}",
                f"Write presence histogram under {layout.histogram_dir}",
            ],
        )
        write_manifest(layout.root, manifest)

        pan_matrix = load_panmatrix(cfg.panmatrix)
        histogram = presence_histogram(pan_matrix)
        histogram_path = write_tsv(
            layout.histogram_dir / "presence_histogram.tsv",
            ["genomes", "clusters"],
            ([genomes, int(count)] for genomes, count in enumerate(histogram, start=1)),
            force=cfg.force,
        )

        finalize_manifest(manifest, status="completed", output_paths=[histogram_path])
        write_manifest(layout.root, manifest)
        logger.info(
            "%d gene clusters observed across %d genomes.",
            int(histogram.sum()),
            pan_matrix.n_genomes,
        )
        return 0

    except PanMixError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        return exc.exit_code
    except Exception as exc:  # pragma: no cover - defensive catch-all
        get_logger("panmix.histogram").exception("Unhandled histogram error")
        console.print(f"[red]Unexpected error:[/red] {exc}")
        return 1


@app.callback(invoke_without_command=True)
def histogram_callback(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="YAML config file."),
    panmatrix: Path | None = typer.Option(None, "--panmatrix", help="Pan-matrix TSV."),
    outdir: Path | None = typer.Option(None, "--outdir", help="Output root directory."),
    force: bool | None = typer.Option(None, "--force", help="Overwrite an existing histogram."),
    log_file: Path | None = typer.Option(None, "--log-file", help="Write JSON logs to this file."),
    verbose: bool | None = typer.Option(None, "--verbose", help="Enable verbose logging."),
    quiet: bool | None = typer.Option(None, "--quiet", help="Only show errors."),
) -> None:
    if ctx.invoked_subcommand is not None:
        return

    exit_code = run_histogram(
        config_path=config,
        panmatrix=panmatrix,
        outdir=outdir,
        force=force,
        log_file=log_file,
        verbose=verbose,
        quiet=quiet,
    )
    raise typer.Exit(exit_code)
