"""Load padel rating system definitions from TOML files."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from domain.config_base import BaseSystemConfig, load_system_config, load_system_configs
from domain.ratings.padel.calculator import RatingParameters
from domain.ratings.protocol import TrialMethod

_DEFAULTS = RatingParameters()


@dataclass(frozen=True)
class RatingSystemConfig(BaseSystemConfig):
    """Configuration for one padel rating system."""

    parameters: RatingParameters

    def as_config_json(self) -> dict[str, Any]:
        payload = asdict(self.parameters)
        payload["trial_method"] = self.parameters.trial_method.value
        return payload


def load_rating_system_configs(config_dir: Path) -> list[RatingSystemConfig]:
    """Load and validate all rating system TOML config files in a directory."""
    return load_system_configs(
        config_dir,
        _parse_rating_system_config,
        duplicate_name_label="padel rating",
    )


def load_rating_system_config(file_path: Path) -> RatingSystemConfig:
    return load_system_config(file_path, _parse_rating_system_config)


def _parse_rating_system_config(raw: dict[str, Any], file_path: Path) -> RatingSystemConfig:
    system_raw = raw.get("system", {})
    rating_raw = raw.get("rating", {})

    name = str(system_raw.get("name", "")).strip()
    if not name:
        raise ValueError(f"{file_path}: [system].name is required")

    description_value = system_raw.get("description")
    description = None if description_value is None else str(description_value)

    known_fields = {field.name for field in fields(RatingParameters)}
    unknown = sorted(set(rating_raw) - known_fields)
    if unknown:
        raise ValueError(f"{file_path}: unknown [rating] keys: {unknown}")

    trial_method_value = str(rating_raw.get("trial_method", _DEFAULTS.trial_method.value))
    try:
        trial_method = TrialMethod(trial_method_value)
    except ValueError as exc:
        raise ValueError(
            f"{file_path}: [rating].trial_method must be one of "
            f"{[method.value for method in TrialMethod]}, got {trial_method_value!r}"
        ) from exc

    def _float(key: str) -> float:
        return float(rating_raw.get(key, getattr(_DEFAULTS, key)))

    parameters = RatingParameters(
        min_rating=_float("min_rating"),
        max_rating=_float("max_rating"),
        daily_max_increase=_float("daily_max_increase"),
        daily_max_decrease=_float("daily_max_decrease"),
        win_vs_higher=_float("win_vs_higher"),
        win_vs_same=_float("win_vs_same"),
        win_vs_lower=_float("win_vs_lower"),
        loss_vs_higher=_float("loss_vs_higher"),
        loss_vs_same=_float("loss_vs_same"),
        loss_vs_lower=_float("loss_vs_lower"),
        trial_base_rating=_float("trial_base_rating"),
        trial_win_bonus=_float("trial_win_bonus"),
        trial_loss_penalty=_float("trial_loss_penalty"),
        trial_max_rating=_float("trial_max_rating"),
        trial_match_count=int(rating_raw.get("trial_match_count", _DEFAULTS.trial_match_count)),
        trial_method=trial_method,
        tie_tolerance=_float("tie_tolerance"),
        ledger_retention_days=int(
            rating_raw.get("ledger_retention_days", _DEFAULTS.ledger_retention_days)
        ),
    )
    _validate_parameters(file_path=file_path, parameters=parameters)

    return RatingSystemConfig(
        name=name,
        description=description,
        file_path=file_path,
        parameters=parameters,
    )


def _validate_parameters(*, file_path: Path, parameters: RatingParameters) -> None:
    if parameters.min_rating >= parameters.max_rating:
        raise ValueError(f"{file_path}: [rating].min_rating must be < max_rating")
    if parameters.daily_max_increase <= 0.0:
        raise ValueError(f"{file_path}: [rating].daily_max_increase must be > 0")
    if parameters.daily_max_decrease >= 0.0:
        raise ValueError(f"{file_path}: [rating].daily_max_decrease must be < 0")
    for key in ("win_vs_higher", "win_vs_same", "win_vs_lower"):
        if getattr(parameters, key) <= 0.0:
            raise ValueError(f"{file_path}: [rating].{key} must be > 0")
    for key in ("loss_vs_higher", "loss_vs_same", "loss_vs_lower"):
        if getattr(parameters, key) >= 0.0:
            raise ValueError(f"{file_path}: [rating].{key} must be < 0")
    if not parameters.min_rating <= parameters.trial_base_rating <= parameters.max_rating:
        raise ValueError(f"{file_path}: [rating].trial_base_rating must be within rating bounds")
    if not parameters.min_rating <= parameters.trial_max_rating <= parameters.max_rating:
        raise ValueError(f"{file_path}: [rating].trial_max_rating must be within rating bounds")
    if parameters.trial_win_bonus < 0.0:
        raise ValueError(f"{file_path}: [rating].trial_win_bonus must be >= 0")
    if parameters.trial_loss_penalty < 0.0:
        raise ValueError(f"{file_path}: [rating].trial_loss_penalty must be >= 0")
    if parameters.trial_match_count < 1:
        raise ValueError(f"{file_path}: [rating].trial_match_count must be >= 1")
    if parameters.tie_tolerance < 0.0:
        raise ValueError(f"{file_path}: [rating].tie_tolerance must be >= 0")
    if parameters.ledger_retention_days < 1:
        raise ValueError(f"{file_path}: [rating].ledger_retention_days must be >= 1")


__all__ = [
    "RatingSystemConfig",
    "load_rating_system_config",
    "load_rating_system_configs",
]
