from __future__ import annotations

from pathlib import Path

import pytest

from panmix.config import BinomixConfig, merge_command_config
from panmix.exceptions import InvalidComponentRange, PanMixUsageError
from panmix.utils.validation import parse_k_range, validate_k_range


def test_binomix_defaults() -> None:
    cfg = BinomixConfig()

    assert cfg.k_range == [3, 4, 5]
    assert cfg.core_detect_prob == 1.0
    assert cfg.max_iter == 300
    assert cfg.progress is True


def test_yaml_values_are_overridden_by_cli(tmp_path: Path) -> None:
    config_path = tmp_path / "panmix.yaml"
    config_path.write_text(
        "binomix:\n  k_range: '3:8'\n  core_detect_prob: 0.98\n  threads: 2\n",
        encoding="utf-8",
    )

    cfg = merge_command_config(
        config_path=config_path,
        section="binomix",
        model_cls=BinomixConfig,
        cli_overrides={"threads": 4, "core_detect_prob": None},
    )

    assert cfg.k_range == [3, 4, 5, 6, 7, 8]
    assert cfg.core_detect_prob == 0.98
    assert cfg.threads == 4


@pytest.mark.parametrize(
    "overrides",
    [
        {"k_range": [1, 2, 3]},
        {"k_range": []},
        {"core_detect_prob": 1.2},
        {"verbose": True, "quiet": True},
    ],
)
def test_invalid_values_are_usage_errors(overrides: dict[str, object]) -> None:
    with pytest.raises(PanMixUsageError):
        merge_command_config(
            config_path=None,
            section="binomix",
            model_cls=BinomixConfig,
            cli_overrides=overrides,
        )


def test_unknown_yaml_keys_are_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "panmix.yaml"
    config_path.write_text("binomix:\n  n_components: 3\n", encoding="utf-8")

    with pytest.raises(PanMixUsageError, match="Invalid config file"):
        merge_command_config(
            config_path=config_path,
            section="binomix",
            model_cls=BinomixConfig,
            cli_overrides={},
        )


def test_parse_k_range_forms() -> None:
    assert parse_k_range("3:6") == [3, 4, 5, 6]
    assert parse_k_range("3, 5,7") == [3, 5, 7]
    with pytest.raises(PanMixUsageError):
        parse_k_range("6:3")
    with pytest.raises(PanMixUsageError):
        parse_k_range("three")


def test_validate_k_range_rejects_single_component() -> None:
    with pytest.raises(InvalidComponentRange, match="at least 2"):
        validate_k_range([1, 3])
