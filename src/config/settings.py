"""Runtime settings and the deployment manifest.

Settings come from environment variables (clamped, with defaults). The
deployment manifest is a YAML file naming the registry administrator and the
addresses of the registry, template, factory and token:

    registry:
      name: Erasure_Agreements
      admin: "0x..."
      address: "0x..."
    template: "0x..."
    factory: "0x..."
    token: "0x..."
    defaults:              # optional agreement defaults
      ratio: "2"           # decimal, scaled to 18 decimals
      ratio_type: Dec
      countdown_length: 1000
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..core.griefing.cost import ratio_from_decimal
from ..core.griefing.types import RatioType
from ..state.canonical import canonical_address

DEFAULT_COUNTDOWN_LENGTH = 7 * 24 * 60 * 60
MAX_COUNTDOWN_LENGTH = 10 * 365 * 24 * 60 * 60


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


@dataclass(frozen=True)
class Settings:
    log_level: str
    manifest_path: Optional[Path]
    default_countdown_length: int


def load_settings() -> Settings:
    manifest = _env_str("GRIEFING_MANIFEST", "")
    return Settings(
        log_level=_env_str("GRIEFING_LOG_LEVEL", "INFO").upper(),
        manifest_path=Path(manifest) if manifest else None,
        default_countdown_length=_env_int(
            "GRIEFING_DEFAULT_COUNTDOWN",
            DEFAULT_COUNTDOWN_LENGTH,
            lo=0,
            hi=MAX_COUNTDOWN_LENGTH,
        ),
    )


@dataclass(frozen=True)
class AgreementDefaults:
    ratio: int
    ratio_type: RatioType
    countdown_length: int


@dataclass(frozen=True)
class Manifest:
    registry_name: str
    registry_admin: str
    registry_address: str
    template_address: str
    factory_address: str
    token_address: str
    defaults: Optional[AgreementDefaults] = None


def _require_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"{name} must be a mapping")
    return value


def _ratio_type(value: Any) -> RatioType:
    if isinstance(value, str):
        try:
            return RatioType[value]
        except KeyError as exc:
            raise ValueError(f"unknown ratio_type {value!r}") from exc
    if isinstance(value, int) and not isinstance(value, bool):
        return RatioType(value)
    raise TypeError("ratio_type must be a name or an int")


def _defaults_from_mapping(raw: Mapping[str, Any], *, fallback_countdown: int) -> AgreementDefaults:
    countdown = raw.get("countdown_length", fallback_countdown)
    if not isinstance(countdown, int) or isinstance(countdown, bool) or countdown < 0:
        raise ValueError("defaults.countdown_length must be a non-negative int")
    return AgreementDefaults(
        ratio=ratio_from_decimal(raw.get("ratio", "1")),
        ratio_type=_ratio_type(raw.get("ratio_type", "Dec")),
        countdown_length=countdown,
    )


def manifest_from_mapping(raw: Mapping[str, Any], *, settings: Optional[Settings] = None) -> Manifest:
    """Validate a parsed manifest. Raises TypeError/ValueError on bad input."""
    raw = _require_mapping(raw, "manifest")
    registry = _require_mapping(raw.get("registry"), "registry")
    defaults_raw = raw.get("defaults")
    fallback = (settings or load_settings()).default_countdown_length
    return Manifest(
        registry_name=str(registry.get("name", "Erasure_Agreements")),
        registry_admin=canonical_address(registry.get("admin"), name="registry.admin"),
        registry_address=canonical_address(registry.get("address"), name="registry.address"),
        template_address=canonical_address(raw.get("template"), name="template"),
        factory_address=canonical_address(raw.get("factory"), name="factory"),
        token_address=canonical_address(raw.get("token"), name="token"),
        defaults=(
            None
            if defaults_raw is None
            else _defaults_from_mapping(_require_mapping(defaults_raw, "defaults"), fallback_countdown=fallback)
        ),
    )


def load_manifest(path: Path, *, settings: Optional[Settings] = None) -> Manifest:
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    return manifest_from_mapping(obj, settings=settings)
