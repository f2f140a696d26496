"""Configuration: environment settings, deployment manifest, logging."""

from .settings import (
    AgreementDefaults,
    Manifest,
    Settings,
    load_manifest,
    load_settings,
    manifest_from_mapping,
)

__all__ = [
    "AgreementDefaults",
    "Manifest",
    "Settings",
    "load_manifest",
    "load_settings",
    "manifest_from_mapping",
]
