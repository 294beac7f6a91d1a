# src/food_hub_siting/cli.py
"""
Command line entry.

Usage:
  python -m food_hub_siting run
  python -m food_hub_siting run --state "New Jersey" --k 4 --out outputs/nj
  python -m food_hub_siting validate --places data/places.csv --atlas data/atlas.csv
"""
import argparse
import logging
import sys
from typing import List, Optional

from .config import (
    DUPLICATE_POLICIES, EXPORT_FORMATS, PRECEDENCE_CHOICES, load_settings, validate_settings,
)
from .errors import FoodHubError
from .loader import ATLAS_LONG_SCHEMA, PLACES_SCHEMA, load
from .pipeline import run_pipeline
from .report import export_tables

logger = logging.getLogger("food_hub_siting")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CLUSTER_FAILED = 2


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, help="YAML config file (default: config.yaml at repo root)")
    p.add_argument("--places", dest="places_path", default=None, help="Tract-level PLACES CSV")
    p.add_argument("--atlas", dest="atlas_path", default=None, help="County-level Food Environment Atlas CSV (long)")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="food-hub-siting",
                                     description="Join tract health data to county food data and propose hub sites.")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the full pipeline and export tables")
    _add_common(run)
    run.add_argument("--out", dest="output_dir", default=None, help="Output folder (default: outputs)")
    run.add_argument("--state", default=None, help="State (full name) to site hubs in")
    run.add_argument("--k", type=int, default=None, help="Number of proposed hubs")
    run.add_argument("--seed", type=int, default=None)
    run.add_argument("--access-quantile", type=float, default=None)
    run.add_argument("--need-quantile", type=float, default=None)
    run.add_argument("--need-column", default=None)
    run.add_argument("--precedence", choices=PRECEDENCE_CHOICES, default=None,
                     help="nested: grocery | (convenience & market); flat: (grocery | convenience) & market")
    run.add_argument("--engagement-rate", type=float, default=None)
    run.add_argument("--duplicates", choices=DUPLICATE_POLICIES, default=None)
    run.add_argument("--format", dest="export_format", choices=EXPORT_FORMATS, default=None)

    validate = sub.add_parser("validate", help="Check both inputs load against their schemas")
    _add_common(validate)
    return parser


def _overrides(args: argparse.Namespace) -> dict:
    skip = {"command", "config", "log_level"}
    return {k: v for k, v in vars(args).items() if k not in skip}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        settings = validate_settings(load_settings(args.config, _overrides(args)))
        if args.command == "validate":
            for path, schema in ((settings.places_path, PLACES_SCHEMA), (settings.atlas_path, ATLAS_LONG_SCHEMA)):
                df = load(path, schema)
                print(f"{schema.name}: {len(df)} rows OK ({path})")
            return EXIT_OK

        result = run_pipeline(settings)
    except (FileNotFoundError, FoodHubError) as exc:
        logger.error("%s", exc)
        return EXIT_FATAL

    written = export_tables(result.tables(), settings.output_dir, settings.export_format)
    print(f"\nWrote {len(written)} tables to {settings.output_dir}")
    if not result.centroids.empty:
        print("\nProposed hubs:")
        print(result.centroids.to_string(index=False))
    if result.cluster_error:
        logger.error("No hubs proposed: %s", result.cluster_error)
        return EXIT_CLUSTER_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
