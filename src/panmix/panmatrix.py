from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from panmix.exceptions import PanMixUsageError
from panmix.utils.validation import validate_existing_file


@dataclass(frozen=True, slots=True)
class PanMatrix:
    """Copy-number counts, one row per genome and one column per gene cluster."""

    genome_ids: tuple[str, ...]
    cluster_ids: tuple[str, ...]
    counts: np.ndarray

    @property
    def n_genomes(self) -> int:
        return len(self.genome_ids)

    @property
    def n_clusters(self) -> int:
        return len(self.cluster_ids)

    def presence(self) -> np.ndarray:
        return (self.counts > 0).astype(np.int64)


def _parse_count(raw: str, *, genome_id: str, cluster_id: str, path: Path) -> int:
    value = raw.strip()
    if value == "":
        return 0
    try:
        count = int(value)
    except ValueError as exc:
        raise PanMixUsageError(
            f"Non-integer count for genome `{genome_id}`, cluster `{cluster_id}` in {path}: {raw!r}"
        ) from exc
    if count < 0:
        raise PanMixUsageError(
            f"Negative count for genome `{genome_id}`, cluster `{cluster_id}` in {path}: {count}"
        )
    return count


def load_panmatrix(path: Path) -> PanMatrix:
    """Read a pan-matrix TSV: first column genome ids, header row cluster ids."""

    validate_existing_file(path, "Pan-matrix")

    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.reader(handle, delimiter="\t")
        header = next(reader, None)
        if header is None:
            raise PanMixUsageError(f"Pan-matrix has no header row: {path}")
        rows = [row for row in reader if any(cell.strip() for cell in row)]

    cluster_ids = [name.strip() for name in header[1:]]
    if not cluster_ids:
        raise PanMixUsageError(f"Pan-matrix has no gene cluster columns: {path}")
    if len(set(cluster_ids)) != len(cluster_ids):
        raise PanMixUsageError(f"Duplicated gene cluster ids in pan-matrix header: {path}")
    if not rows:
        raise PanMixUsageError(f"Pan-matrix has no genome rows: {path}")

    genome_ids: list[str] = []
    counts = np.zeros((len(rows), len(cluster_ids)), dtype=np.int64)
    for row_idx, row in enumerate(rows):
        if len(row) != len(cluster_ids) + 1:
            raise PanMixUsageError(
                f"Row {row_idx + 2} of {path} has {len(row) - 1} counts, expected {len(cluster_ids)}"
            )
        genome_id = row[0].strip()
        if genome_id == "":
            raise PanMixUsageError(f"Missing genome id at row {row_idx + 2} in {path}")
        if genome_id in genome_ids:
            raise PanMixUsageError(f"Duplicated genome id in pan-matrix: {genome_id}")
        genome_ids.append(genome_id)

        for col_idx, raw in enumerate(row[1:]):
            counts[row_idx, col_idx] = _parse_count(
                raw,
                genome_id=genome_id,
                cluster_id=cluster_ids[col_idx],
                path=path,
            )

    return PanMatrix(
        genome_ids=tuple(genome_ids),
        cluster_ids=tuple(cluster_ids),
        counts=counts,
    )
