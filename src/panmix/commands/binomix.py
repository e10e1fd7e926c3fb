from __future__ import annotations

import sys
from pathlib import Path

import typer
from rich import box
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from panmix.binomix import BarrierNelderMead, BinomixResult, estimate_binomix
from panmix.config import BinomixConfig, merge_command_config
from panmix.exceptions import PanMixError, PanMixUsageError
from panmix.logging import configure_logging, get_logger
from panmix.manifest import create_run_manifest, finalize_manifest, write_manifest
from panmix.panmatrix import load_panmatrix
from panmix.paths import create_output_layout
from panmix.utils.io import write_json, write_tsv
from panmix.utils.validation import parse_k_range

app = typer.Typer(help="Estimate pan- and core-genome size with binomial mixture models.")
console = Console()

BIC_HEADER = ["K", "Core.size", "Pan.size", "BIC"]
MIXTURE_HEADER = ["Components", "Detection.prob", "Mixing.proportion"]


def _print_plan(step_plan: list[str]) -> None:
    console.print("[bold]Binomix step plan[/bold]")
    for idx, step in enumerate(step_plan, start=1):
        console.print(f"  {idx}. {step}")


def _print_bic_table(result: BinomixResult) -> None:
    optimal_k = result.optimal_fit().k
    table = Table(title="[bold]Binomial mixture fits[/bold]", box=box.SIMPLE_HEAVY)
    for name in BIC_HEADER:
        table.add_column(name, justify="right")
    for row in result.bic_table:
        style = "bold green" if row.k == optimal_k else None
        table.add_row(str(row.k), str(row.core_size), str(row.pan_size), f"{row.bic:.3f}", style=style)
    console.print(table)


def _write_outputs(result: BinomixResult, outdir: Path, *, force: bool) -> list[Path]:
    bic_path = write_tsv(
        outdir / "bic_table.tsv",
        BIC_HEADER,
        ([row.k, row.core_size, row.pan_size, repr(row.bic)] for row in result.bic_table),
        force=force,
    )
    mixture_path = write_tsv(
        outdir / "mixture_table.tsv",
        MIXTURE_HEADER,
        (
            [row.k, repr(row.detection_prob), repr(row.mixing_proportion)]
            for row in result.mixture_table
        ),
        force=force,
    )
    optimal = result.optimal_fit()
    summary_path = write_json(
        outdir / "summary.json",
        {
            "optimal_k": optimal.k,
            "core_size": optimal.core_size,
            "pan_size": optimal.pan_size,
            "bic": optimal.bic,
            "k_range": [row.k for row in result.bic_table],
            "converged": {str(fit.k): fit.converged for fit in result.fits},
            "warnings": list(result.warnings),
        },
        force=force,
    )
    return [bic_path, mixture_path, summary_path]


def run_binomix(
    *,
    config_path: Path | None,
    panmatrix: Path | None,
    k_range: str | None,
    core_detect_prob: float | None,
    max_iter: int | None,
    reltol: float | None,
    progress: bool | None,
    outdir: Path | None,
    threads: int | None,
    dry_run: bool | None,
    force: bool | None,
    log_file: Path | None,
    verbose: bool | None,
    quiet: bool | None,
) -> int:
    try:
        cfg = merge_command_config(
            config_path=config_path,
            section="binomix",
            model_cls=BinomixConfig,
            cli_overrides={
                "panmatrix": panmatrix,
                "k_range": parse_k_range(k_range) if k_range is not None else None,
                "core_detect_prob": core_detect_prob,
                "max_iter": max_iter,
                "reltol": reltol,
                "progress": progress,
                "outdir": outdir,
                "threads": threads,
                "dry_run": dry_run,
                "force": force,
                "log_file": log_file,
                "verbose": verbose,
                "quiet": quiet,
            },
        )
        configure_logging(verbose=cfg.verbose, quiet=cfg.quiet, log_file=cfg.log_file)
        logger = get_logger("panmix.binomix")

        if cfg.panmatrix is None:
            raise PanMixUsageError("A pan-matrix is required: provide --panmatrix or set it in --config.")

        layout = create_output_layout(cfg.outdir)
        k_label = ", ".join(str(k) for k in cfg.k_range)
        step_plan = [
            f"Load pan-matrix {cfg.panmatrix}",
            "Reduce the pan-matrix to a presence histogram",
            f"Fit binomial mixtures with K = {k_label} (core detection probability {cfg.core_detect_prob})",
            f"Write BIC and mixture tables under {layout.binomix_dir}",
        ]

        manifest = create_run_manifest(
            command="binomix",
            argv=sys.argv,
            outdir=layout.root,
            dry_run=cfg.dry_run,
            threads=cfg.threads,
            config_path=config_path,
            input_paths=[cfg.panmatrix],
            planned_steps=step_plan,
            parameters={
                "k_range": list(cfg.k_range),
                "core_detect_prob": cfg.core_detect_prob,
                "max_iter": cfg.max_iter,
                "reltol": cfg.reltol,
            },
        )
        write_manifest(layout.root, manifest)

        _print_plan(step_plan)
        pan_matrix = load_panmatrix(cfg.panmatrix)
        logger.info(
            "Loaded pan-matrix with %d genomes and %d gene clusters.",
            pan_matrix.n_genomes,
            pan_matrix.n_clusters,
        )

        if cfg.dry_run:
            logger.info("Dry-run requested; stopping before fitting mixture models.")
            finalize_manifest(manifest, status="dry-run", output_paths=[])
            write_manifest(layout.root, manifest)
            return 0

        minimizer = BarrierNelderMead(max_iter=cfg.max_iter, reltol=cfg.reltol, logger=logger)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TimeElapsedColumn(),
            console=console,
            disable=not cfg.progress,
        ) as bar:
            task_id = bar.add_task("Fitting binomial mixtures", total=len(cfg.k_range))

            def _advance(k: int, status: str) -> None:
                if status == "done":
                    bar.advance(task_id)

            result = estimate_binomix(
                pan_matrix,
                cfg.k_range,
                cfg.core_detect_prob,
                verbose=cfg.progress,
                progress=_advance,
                threads=cfg.threads,
                minimizer=minimizer,
            )

        _print_bic_table(result)
        outputs = _write_outputs(result, layout.binomix_dir, force=cfg.force)

        finalize_manifest(manifest, status="completed", output_paths=outputs)
        write_manifest(layout.root, manifest)
        logger.info("Minimum BIC at K = %d.", result.optimal_fit().k)
        return 0

    except PanMixError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        return exc.exit_code
    except Exception as exc:  # pragma: no cover - defensive catch-all
        get_logger("panmix.binomix").exception("Unhandled binomix error")
        console.print(f"[red]Unexpected error:[/red] {exc}")
        return 1


@app.callback(invoke_without_command=True)
def binomix_callback(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="YAML config file."),
    panmatrix: Path | None = typer.Option(
        None,
        "--panmatrix",
        help="Pan-matrix TSV: genome ids in the first column, one column per gene cluster.",
    ),
    k_range: str | None = typer.Option(
        None,
        "--k-range",
        help="Component counts to try, as a range (3:8) or a list (3,4,5). Default: 3:5.",
    ),
    core_detect_prob: float | None = typer.Option(
        None,
        "--core-detect-prob",
        min=0.0,
        max=1.0,
        help="Detection probability of core genes (default: 1.0).",
    ),
    max_iter: int | None = typer.Option(
        None,
        "--max-iter",
        min=1,
        help="Function evaluations per Nelder-Mead search (default: 300).",
    ),
    reltol: float | None = typer.Option(
        None,
        "--reltol",
        help="Relative convergence tolerance of the Nelder-Mead search (default: 1e-6).",
    ),
    progress: bool | None = typer.Option(
        None,
        "--progress/--no-progress",
        help="Report progress for each fitted model.",
    ),
    outdir: Path | None = typer.Option(None, "--outdir", help="Output root directory."),
    threads: int | None = typer.Option(
        None,
        "--threads",
        min=1,
        help=(
            "Models fitted in parallel threads. The Nelder-Mead search holds the GIL, "
            "so extra threads give little speedup."
        ),
    ),
    dry_run: bool | None = typer.Option(None, "--dry-run", help="Plan only, do not fit models."),
    force: bool | None = typer.Option(None, "--force", help="Overwrite existing tables."),
    log_file: Path | None = typer.Option(None, "--log-file", help="Write JSON logs to this file."),
    verbose: bool | None = typer.Option(None, "--verbose", help="Enable verbose logging."),
    quiet: bool | None = typer.Option(None, "--quiet", help="Only show errors."),
) -> None:
    if ctx.invoked_subcommand is not None:
        return

    exit_code = run_binomix(
        config_path=config,
        panmatrix=panmatrix,
        k_range=k_range,
        core_detect_prob=core_detect_prob,
        max_iter=max_iter,
        reltol=reltol,
        progress=progress,
        outdir=outdir,
        threads=threads,
        dry_run=dry_run,
        force=force,
        log_file=log_file,
        verbose=verbose,
        quiet=quiet,
    )
    raise typer.Exit(exit_code)
