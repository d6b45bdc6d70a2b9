"""Command-line interface for model_profiles.

Usage examples::

    model_profiles profile --model model.joblib --data train.csv --rows 0 5
    model_profiles aggregate --model model.joblib --data train.csv --type accumulated
    model_profiles importance --model model.joblib --data test.csv --target y
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import joblib
import pandas as pd

from model_profiles.config import ProfileConfig
from model_profiles.explainer import ModelExplainer

logger = logging.getLogger("model_profiles.cli")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def _load_config(path: Optional[str]) -> ProfileConfig:
    if not path:
        return ProfileConfig()
    config_path = Path(path)
    if config_path.suffix in (".yaml", ".yml"):
        try:
            import yaml
        except ImportError:
            logger.error("PyYAML is required for YAML config files.")
            sys.exit(1)
        with open(config_path) as f:
            cfg_dict = yaml.safe_load(f) or {}
    else:
        with open(config_path) as f:
            cfg_dict = json.load(f)
    return ProfileConfig.from_dict(cfg_dict)


def _load_explainer(
    args: argparse.Namespace, config: ProfileConfig
) -> Tuple[ModelExplainer, pd.DataFrame]:
    model = joblib.load(args.model)
    data = pd.read_csv(args.data)
    y = None
    target = getattr(args, "target", None)
    if target and target in data.columns:
        y = data[target]
        data = data.drop(columns=[target])
    explainer = ModelExplainer(model, data, y, label=args.label or config.label)
    logger.info("Loaded %s with %d reference rows.", explainer.label, len(data))
    return explainer, data


def _write(result: pd.DataFrame, output: Optional[str]) -> None:
    if output:
        result.to_csv(output, index=False)
        logger.info("Wrote %d rows to %s", len(result), output)
    else:
        result.to_csv(sys.stdout, index=False)


def cmd_profile(args: argparse.Namespace) -> None:
    """Ceteris paribus profiles for selected rows of the data."""
    from model_profiles.profiles import ceteris_paribus

    config = _load_config(args.config)
    explainer, data = _load_explainer(args, config)
    observations = data.iloc[args.rows] if args.rows else data.iloc[[0]]
    table = ceteris_paribus(
        explainer,
        observations,
        variables=args.variables,
        grid_points=args.grid_points or config.grid_points,
    )
    _write(table.profiles, args.output)


def cmd_aggregate(args: argparse.Namespace) -> None:
    """Partial, conditional or accumulated dependency profiles."""
    from model_profiles.profiles.aggregate import aggregated_dependency

    config = _load_config(args.config)
    explainer, _ = _load_explainer(args, config)
    result = aggregated_dependency(
        args.type,
        explainer,
        variables=args.variables,
        n_observations=args.n_observations or config.n_observations,
        grid_points=args.grid_points or config.grid_points,
        variable_type=args.variable_type,
        span=config.span,
        random_state=config.random_state,
    )
    _write(result, args.output)


def cmd_importance(args: argparse.Namespace) -> None:
    """Permutation variable importance."""
    from model_profiles.importance import feature_importance

    config = _load_config(args.config)
    explainer, _ = _load_explainer(args, config)
    if explainer.y is None:
        logger.error("Target column '%s' not found in %s.", args.target, args.data)
        sys.exit(1)
    result = feature_importance(
        explainer,
        loss_function=args.loss or config.loss_function,
        variables=args.variables,
        n_permutations=args.n_permutations or config.n_permutations,
        random_state=config.random_state,
    )
    _write(result, args.output)


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--model", required=True, help="joblib-pickled fitted model.")
    p.add_argument("--data", required=True, help="Reference data CSV.")
    p.add_argument("--config", help="ProfileConfig JSON/YAML.")
    p.add_argument("--variables", nargs="+", help="Variables to explain.")
    p.add_argument("--label", help="Model label.")
    p.add_argument("--output", help="Output CSV path (default: stdout).")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="model_profiles",
        description="What-if profiles and variable importance for fitted models.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command")

    # profile
    p_prof = sub.add_parser("profile", help="Ceteris paribus profiles.")
    _add_common(p_prof)
    p_prof.add_argument("--rows", nargs="+", type=int, help="Row positions to explain.")
    p_prof.add_argument("--grid-points", type=int)
    p_prof.add_argument(
        "--target",
        default="target",
        help="Target column dropped from the data if present (default: target).",
    )

    # aggregate
    p_agg = sub.add_parser("aggregate", help="Aggregated dependency profiles.")
    _add_common(p_agg)
    p_agg.add_argument(
        "--type",
        choices=["partial", "conditional", "accumulated"],
        default="partial",
    )
    p_agg.add_argument("--grid-points", type=int)
    p_agg.add_argument("--n-observations", type=int)
    p_agg.add_argument("--variable-type", choices=["numerical", "categorical"])
    p_agg.add_argument(
        "--target",
        default="target",
        help="Target column dropped from the data if present (default: target).",
    )

    # importance
    p_imp = sub.add_parser("importance", help="Permutation variable importance.")
    _add_common(p_imp)
    p_imp.add_argument("--target", default="target", help="Target column.")
    p_imp.add_argument("--loss", help="Loss function name.")
    p_imp.add_argument("--n-permutations", type=int)

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "profile":
        cmd_profile(args)
    elif args.command == "aggregate":
        cmd_aggregate(args)
    elif args.command == "importance":
        cmd_importance(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
