from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, TypeVar

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveInt,
    ValidationError,
    field_validator,
    model_validator,
)

from panmix.exceptions import PanMixUsageError
from panmix.utils.validation import MIN_COMPONENTS, parse_k_range


class CommonConfig(BaseModel):
    """Shared command options across PanMix subcommands."""

    model_config = ConfigDict(extra="forbid")

    outdir: Path = Field(default_factory=Path.cwd)
    threads: PositiveInt = 1
    dry_run: bool = False
    force: bool = False
    log_file: Path | None = None
    verbose: bool = False
    quiet: bool = False

    @model_validator(mode="after")
    def _validate_verbosity(self) -> "CommonConfig":
        if self.verbose and self.quiet:
            raise ValueError("`verbose` and `quiet` cannot both be true.")
        return self


class BinomixConfig(CommonConfig):
    panmatrix: Path | None = None
    k_range: list[int] = Field(default_factory=lambda: [3, 4, 5])
    core_detect_prob: float = Field(default=1.0, ge=0.0, le=1.0)
    max_iter: PositiveInt = 300
    reltol: float = Field(default=1e-6, gt=0.0)
    progress: bool = True

    @field_validator("k_range", mode="before")
    @classmethod
    def _parse_k_range(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return parse_k_range(value)
            except PanMixUsageError as exc:
                raise ValueError(str(exc)) from exc
        return value

    @field_validator("k_range")
    @classmethod
    def _validate_k_range(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError("`k_range` must contain at least one component count.")
        if min(value) < MIN_COMPONENTS:
            raise ValueError(f"`k_range` entries must be >= {MIN_COMPONENTS}.")
        return value


class HistogramConfig(CommonConfig):
    panmatrix: Path | None = None


class PanMixConfig(BaseModel):
    """Top-level YAML config model."""

    model_config = ConfigDict(extra="forbid")

    binomix: BinomixConfig | None = None
    histogram: HistogramConfig | None = None


def load_config(config_path: Path | None) -> PanMixConfig:
    """Load and validate a YAML config file."""

    if config_path is None:
        return PanMixConfig()

    if not config_path.exists():
        raise PanMixUsageError(f"Config file does not exist: {config_path}")

    if not config_path.is_file():
        raise PanMixUsageError(f"Config path is not a file: {config_path}")

    payload_raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if payload_raw is None:
        payload_raw = {}

    if not isinstance(payload_raw, dict):
        raise PanMixUsageError("Config YAML must be a key/value mapping at the top level.")

    try:
        return PanMixConfig.model_validate(payload_raw)
    except ValidationError as exc:
        raise PanMixUsageError(f"Invalid config file: {config_path}\n{exc}") from exc


T = TypeVar("T", bound=CommonConfig)


def merge_command_config(
    *,
    config_path: Path | None,
    section: str,
    model_cls: type[T],
    cli_overrides: Mapping[str, Any],
) -> T:
    """Merge YAML config values with explicit CLI overrides and validate."""

    root = load_config(config_path)
    section_model = getattr(root, section)

    merged: dict[str, Any] = {}
    if section_model is not None:
        merged.update(section_model.model_dump(exclude_none=True))

    for key, value in cli_overrides.items():
        if value is not None:
            merged[key] = value

    try:
        return model_cls.model_validate(merged)
    except ValidationError as exc:
        raise PanMixUsageError(f"Invalid merged config for `{section}`:\n{exc}") from exc
