#!/usr/bin/env python3

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.config.logging import configure_logging
from src.config.settings import load_manifest, load_settings
from src.integration.deployment import deploy


def main(argv: list[str] | None = None) -> int:
    settings = load_settings()
    ap = argparse.ArgumentParser(description="Deploy the agreements registry, template and factory in-process.")
    ap.add_argument(
        "--manifest",
        type=Path,
        default=settings.manifest_path,
        help="YAML deployment manifest (default: $GRIEFING_MANIFEST)",
    )
    ap.add_argument("--log-level", default=settings.log_level)
    ap.add_argument("--extra-data", default="", help="hex factory extra data passed to the registry")
    args = ap.parse_args(argv)

    configure_logging(args.log_level)
    if args.manifest is None:
        ap.error("--manifest is required when GRIEFING_MANIFEST is unset")

    extra = args.extra_data[2:] if args.extra_data.startswith("0x") else args.extra_data
    manifest = load_manifest(args.manifest, settings=settings)
    deployment = deploy(manifest, extra_data=bytes.fromhex(extra))

    out = deployment.addresses()
    out["authorized"] = deployment.registry.is_authorized(deployment.factory.address)
    print(json.dumps(out, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
