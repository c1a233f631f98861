from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from curatarr.application.decision_service import ReleaseDecisionService
from curatarr.domain.entities.release import ReleaseCandidate, ScoredRelease
from curatarr.domain.exceptions import ConfigurationError, NotFoundError
from curatarr.infrastructure.config import AppConfig, load_config
from curatarr.infrastructure.config_store import YamlConfigStore
from curatarr.infrastructure.logging.setup import configure_logging, shutdown_logging
from curatarr.infrastructure.scoring import ScoringProfileEvaluator, breakdown, explain

log = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_CONFIG_ERROR = 2

# Flags that override a config key of the same name.
_OVERRIDE_FLAGS: dict[str, str] = {
    "formats_file": "Custom formats YAML file.",
    "profiles_file": "Scoring profiles YAML file.",
    "default_profile_id": "Profile used when a command does not name one.",
    "log_level": "DEBUG, INFO, WARNING or ERROR.",
    "log_format": "json or console.",
}


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="curatarr")

    parser.add_argument("--config", default=None, help="YAML config file.")
    parser.add_argument(
        "--dotenv", default=None, help=".env file read before CURATARR_* lookup."
    )
    for flag, help_text in _OVERRIDE_FLAGS.items():
        parser.add_argument(
            f"--{flag.replace('_', '-')}", dest=flag, default=None, help=help_text
        )

    commands = parser.add_subparsers(dest="command", required=True)

    score = commands.add_parser("score", help="Score a release title under a profile.")
    score.add_argument("title", help="Release title.")
    score.add_argument("--profile", default=None, help="Profile id (default profile if unset).")
    score.add_argument("--size", type=int, default=None, help="Release size in bytes.")
    score.add_argument(
        "--media",
        choices=["movie", "episode"],
        default="movie",
        help="Media type for size bounds.",
    )
    score.add_argument(
        "--episode-count",
        type=int,
        default=None,
        help="Episodes in the season, for season pack size averaging.",
    )

    decide = commands.add_parser("decide", help="Decide between an existing and a candidate score.")
    decide.add_argument("--existing", type=int, default=None, help="Score of the held file.")
    decide.add_argument("--candidate", type=int, required=True, help="Candidate score.")
    decide.add_argument("--profile", default=None, help="Profile id (default profile if unset).")

    commands.add_parser("check-config", help="Validate configuration and scoring files.")

    return parser.parse_args(argv)


def _cmd_score(args: argparse.Namespace, store: YamlConfigStore) -> int:
    profile = store.get_profile(args.profile)
    scored = ScoringProfileEvaluator().evaluate(
        ReleaseCandidate(title=args.title, size=args.size),
        store.get_custom_formats(),
        profile,
        media=args.media,
        episode_count=args.episode_count,
    )
    print(explain(scored, profile))
    totals = breakdown(scored)
    if totals:
        print("By category:")
        for category, total in sorted(totals.items()):
            print(f"  {category}: {total:+d}")
    return EXIT_OK


def _cmd_decide(args: argparse.Namespace, store: YamlConfigStore) -> int:
    profile = store.get_profile(args.profile)
    decision = ReleaseDecisionService().decide(
        args.existing, ScoredRelease.from_score(args.candidate), profile
    )
    line = f"{decision.kind.value}"
    if decision.reason is not None:
        line += f": {decision.reason.value}"
    if decision.detail:
        line += f" ({decision.detail})"
    print(line)
    return EXIT_OK


def _cmd_check_config(config: AppConfig, store: YamlConfigStore) -> int:
    profiles = store.list_profiles()
    print(f"Environment: {config.environment}")
    print(f"Custom formats: {len(store.get_custom_formats())}")
    print(f"Profiles: {', '.join(p.id for p in profiles)}")
    print(f"Default profile: {store.default_profile_id}")
    delay = store.get_delay_profile()
    print(f"Delay profile: {delay.id if delay else 'none'}")
    return EXIT_OK


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Loads config once, configures logging, then runs the chosen command.
    Returns the process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {
        flag: getattr(args, flag)
        for flag in _OVERRIDE_FLAGS
        if getattr(args, flag) is not None
    }

    try:
        config = load_config(
            config_path=config_path,
            dotenv_path=dotenv_path,
            cli_overrides=cli_overrides,
        )
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    # stdout carries command output only.
    configure_logging(config, stream=sys.stderr)
    try:
        return _run(args, config)
    finally:
        shutdown_logging()


def _run(args: argparse.Namespace, config: AppConfig) -> int:
    try:
        store = YamlConfigStore.from_config(config.scoring)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        if args.command == "score":
            return _cmd_score(args, store)
        if args.command == "decide":
            return _cmd_decide(args, store)
        return _cmd_check_config(config, store)
    except NotFoundError as e:
        print(str(e), file=sys.stderr)
        return EXIT_NOT_FOUND


if __name__ == "__main__":
    raise SystemExit(start())
