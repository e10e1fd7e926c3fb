from __future__ import annotations

from pathlib import Path
from typing import Iterable

from panmix.exceptions import InvalidComponentRange, PanMixUsageError

MIN_COMPONENTS = 2


def validate_existing_file(path: Path, label: str) -> None:
    if not path.exists():
        raise PanMixUsageError(f"{label} does not exist: {path}")
    if not path.is_file():
        raise PanMixUsageError(f"{label} is not a file: {path}")


def parse_k_range(raw: str) -> list[int]:
    """Parse ``"3:8"`` (inclusive range) or ``"3,4,5"`` into a list of integers."""

    text = raw.strip()
    if text == "":
        raise PanMixUsageError("K range is empty.")

    try:
        if ":" in text:
            start_raw, _, stop_raw = text.partition(":")
            start, stop = int(start_raw), int(stop_raw)
            if stop < start:
                raise PanMixUsageError(f"K range end is below its start: {raw!r}")
            return list(range(start, stop + 1))
        return [int(part) for part in text.split(",") if part.strip() != ""]
    except ValueError as exc:
        raise PanMixUsageError(f"Invalid K range: {raw!r}") from exc


def validate_k_range(k_range: Iterable[int]) -> list[int]:
    values = [int(k) for k in k_range]
    if not values:
        raise InvalidComponentRange("K range must contain at least one component count.")

    too_small = sorted({k for k in values if k < MIN_COMPONENTS})
    if too_small:
        raise InvalidComponentRange(
            f"A binomial mixture needs at least {MIN_COMPONENTS} components, got: "
            + ", ".join(str(k) for k in too_small)
        )
    return values


def validate_core_detect_prob(value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise PanMixUsageError(f"core detection probability must be in [0, 1], got {value}")
    return float(value)
