"""Main CLI interface for the WNBA projection engine."""

import argparse
import json
import logging
import sys

from .config import LEAGUE_ASSISTS_ALLOWED, LEAGUE_PACE, STAT_TYPES, ProjectorConfig
from .data.loader import DataLoader
from .data.model_store import JsonModelStore
from .data.sources import HttpInjurySource
from .errors import ProjectorError
from .features.training_set import build_training_set
from .projection.engine import ProjectionEngine
from .projection.thresholds import derive_defense_tiers, derive_pace_tiers


def load_config(args) -> ProjectorConfig:
    """Config file (if any), then environment overrides, then CLI flags."""
    config = ProjectorConfig.from_json(args.config) if args.config else ProjectorConfig()
    config = ProjectorConfig.from_env(config)
    if getattr(args, "season", None):
        config.season = args.season
    if getattr(args, "model_dir", None):
        config.model_dir = args.model_dir
    return config


def train_models(args):
    """Train and save one model per requested stat type."""
    config = load_config(args)
    print(f"Loading dataset from {args.input}...")
    try:
        ports = DataLoader.load_dataset(args.input)
    except (OSError, ValueError) as e:
        print(f"Error loading data: {e}")
        return 1

    logs = ports.game_logs.all_logs()
    print(f"Loaded {len(logs)} game logs")

    store = JsonModelStore(config.model_dir)
    engine = ProjectionEngine(model_store=store, config=config)
    for stat_type in args.stat:
        print(f"\nTraining {stat_type} model...")
        training_set = build_training_set(
            logs, stat_type, ports=ports, use_composite_target=args.composite_rebounds
        )
        try:
            model = engine.train(stat_type, training_set)
        except ProjectorError as e:
            print(f"  Skipped {stat_type}: {e}")
            continue
        if args.cv_folds:
            try:
                summaries = engine.cross_validate(stat_type, training_set, n_splits=args.cv_folds)
            except ProjectorError as e:
                print(f"  Cross-validation skipped: {e}")
            else:
                for name, summary in summaries.items():
                    averages = ", ".join(f"{k}={v:.3f}" for k, v in summary.average.items())
                    print(f"  CV {name} ({len(summary.folds)} folds): {averages}")
        metrics = model.active_metrics
        print(f"  Selected: {model.model_type} ({model.metadata.get('selection_reason')})")
        print(f"  Validation: {metrics}")
        for warning in model.warnings:
            print(f"  ⚠️ {warning}")
        top = sorted(model.feature_importance.items(), key=lambda kv: -kv[1])[:5]
        if top:
            print("  Top features:")
            for name, weight in top:
                print(f"   - {name}: {weight:.3f}")

    print(f"\nModels saved to {config.model_dir}")
    print("✓ Done!")
    return 0


def project_player(args):
    """Project one player's stat for one game."""
    config = load_config(args)
    try:
        ports = DataLoader.load_dataset(args.input)
    except (OSError, ValueError) as e:
        print(f"Error loading data: {e}")
        return 1

    if args.injury_url:
        ports.injuries = HttpInjurySource(args.injury_url, timeout=config.lookup.timeout_seconds)

    if args.derive_tiers:
        contexts = ports.team_context
        config.pace_tiers = derive_pace_tiers(contexts.league_paces(config.season), LEAGUE_PACE)
        config.defense_tiers = derive_defense_tiers(
            contexts.position_allowed(config.season, "assists"), LEAGUE_ASSISTS_ALLOWED
        )

    store = JsonModelStore(config.model_dir)
    with ProjectionEngine(ports, store, config) as engine:
        result = engine.project(
            player_id=args.player,
            opponent=args.opponent,
            stat_type=args.stat,
            game_date=args.date,
            is_home=args.home,
            days_rest=args.days_rest,
            market_line=args.line,
        )

    if result is None:
        print(f"No games on record for {args.player} before {args.date}")
        return 1

    print(f"\n{'='*60}")
    print(f"{args.stat.upper()} PROJECTION - {args.player} vs {args.opponent}")
    print(f"{'='*60}\n")
    print(f"Projected:      {result.projected_value}")
    print(f"Confidence:     {result.confidence_score:.2f}")
    print(f"Risk:           {result.risk_level.value}")
    if args.line is not None:
        print(f"Line:           {args.line} (edge {result.edge:+.2f})")
    print(f"Recommendation: {result.recommendation.value}")
    print(f"Model:          {result.model_type or 'factors only'}")
    print("\nFactors:")
    for name, value in result.factors.items():
        print(f"   - {name}: {value:.3f}")
    for warning in result.warnings:
        print(f"⚠️ {warning}")

    if args.output:
        with open(args.output, "w") as f:
            json.dump(result.to_dict(), f, indent=2, default=str)
        print(f"\nSaved projection to {args.output}")
    return 0


def create_sample(args):
    """Create sample data file."""
    print(f"Creating sample data at {args.output}...")
    DataLoader.create_sample_dataset(args.output, season=args.season or "2025")
    print("✓ Sample data created!")
    print("\nYou can now train models with:")
    print(f"  wnba-projector train --input {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="WNBA player stat projections with confidence, risk and line recommendations"
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument("--config", default=None, help="Projector config JSON")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    train_parser = subparsers.add_parser("train", help="Train projection models")
    train_parser.add_argument("--input", "-i", required=True, help="Dataset JSON")
    train_parser.add_argument(
        "--stat", nargs="+", choices=STAT_TYPES, default=["points", "rebounds", "assists"],
        help="Stat types to train (default: points rebounds assists)",
    )
    train_parser.add_argument("--season", default=None, help="Current season label")
    train_parser.add_argument("--model-dir", default=None, help="Directory for trained models")
    train_parser.add_argument(
        "--composite-rebounds", action="store_true",
        help="Train rebounds on the smoothed composite target",
    )
    train_parser.add_argument(
        "--cv-folds", type=int, default=0,
        help="Also report expanding-window cross-validation with this many folds",
    )

    project_parser = subparsers.add_parser("project", help="Project a player's stat for a game")
    project_parser.add_argument("--input", "-i", required=True, help="Dataset JSON")
    project_parser.add_argument("--player", required=True, help="Player ID")
    project_parser.add_argument("--opponent", required=True, help="Opponent team")
    project_parser.add_argument("--stat", choices=STAT_TYPES, default="points", help="Stat type")
    project_parser.add_argument("--date", required=True, help="Game date (YYYY-MM-DD)")
    project_parser.add_argument("--home", action="store_true", help="Player's team is at home")
    project_parser.add_argument("--days-rest", type=int, default=None, help="Days of rest before the game")
    project_parser.add_argument("--line", type=float, default=None, help="Market line")
    project_parser.add_argument("--injury-url", default=None, help="Injury feed URL")
    project_parser.add_argument(
        "--derive-tiers", action="store_true",
        help="Derive pace and position-defense tiers from the dataset's teams",
    )
    project_parser.add_argument("--season", default=None, help="Current season label")
    project_parser.add_argument("--model-dir", default=None, help="Directory for trained models")
    project_parser.add_argument("--output", "-o", default=None, help="Write the projection JSON here")

    sample_parser = subparsers.add_parser("sample", help="Create sample dataset")
    sample_parser.add_argument(
        "--output", "-o",
        default="sample_dataset.json",
        help="Output file for sample data (default: sample_dataset.json)"
    )
    sample_parser.add_argument("--season", default=None, help="Season label (default: 2025)")
    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "train":
        return train_models(args)
    elif args.command == "project":
        return project_player(args)
    elif args.command == "sample":
        return create_sample(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
