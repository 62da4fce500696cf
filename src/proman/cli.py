"""Command-line entry point.

    proman                         interactive wizard (same as `proman tui`)
    proman list                    list available languages
    proman show rust               show one profile's requirements and steps
    proman run rust --name demo    run a profile without the terminal UI
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from proman import __version__
from proman.core.app import App, StoppingState
from proman.core.catalog import find_profile, load_catalog
from proman.core.config import ConfigResolver, RunnerSettings
from proman.core.errors import ConfigError, RunnerError
from proman.core.logging import apply_logging_policy, get_logger, install_file_sink, set_colors
from proman.core.profile import Profile, ProjectType
from proman.headless import run_headless

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proman",
        description="Create new projects from per-language step profiles",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # Verbosity
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--quiet", action="store_true", help="Warnings and errors only")
    verbosity.add_argument("--verbose", action="store_true", help="Verbose output")
    verbosity.add_argument("--debug", action="store_true", help="Debug output (everything)")

    # Config
    parser.add_argument("--config", type=Path, help="User config file path")
    parser.add_argument("--profiles-dir", type=Path, help="Directory with user profiles")
    parser.add_argument(
        "--on-failure",
        choices=["continue", "abort"],
        help="What to do when a command step fails",
    )

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("tui", help="Interactive wizard (default)")
    sub.add_parser("list", help="List available languages")

    show = sub.add_parser("show", help="Show one profile")
    show.add_argument("language")

    run = sub.add_parser("run", help="Run a profile without the terminal UI")
    run.add_argument("language")
    run.add_argument("--name", help="Answer for the project name prompt")
    run.add_argument(
        "--type",
        dest="project_type",
        choices=[t.value for t in ProjectType],
        help="Answer for the project type prompt",
    )
    return parser


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    level = None
    if args.quiet:
        level = "quiet"
    elif args.verbose:
        level = "verbose"
    elif args.debug:
        level = "debug"
    if level is not None:
        overrides["logging"] = {"level": level}

    if args.profiles_dir:
        overrides["profiles_dir"] = str(args.profiles_dir)
    if args.on_failure:
        overrides["runner"] = {"on_command_failure": args.on_failure}
    return overrides


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    resolver = ConfigResolver(cli_args=_cli_overrides(args), user_config_path=args.config)

    remove_sink = None
    try:
        policy = resolver.resolve_logging_policy()
        apply_logging_policy(policy)
        set_colors(policy.color)
        if policy.file:
            remove_sink = install_file_sink(policy.file)

        return _dispatch(args, resolver)
    except (ConfigError, RunnerError) as e:
        log.error(str(e))
        return 1
    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
    finally:
        if remove_sink is not None:
            remove_sink()


def _dispatch(args: argparse.Namespace, resolver: ConfigResolver) -> int:
    runner_settings = resolver.resolve_runner_settings()
    catalog = load_catalog(resolver.resolve_profiles_dir())
    command = args.command or "tui"

    if command == "list":
        return _cmd_list(catalog)
    if command == "show":
        return _cmd_show(catalog, args.language)
    if command == "run":
        return _cmd_run(catalog, args, runner_settings)
    return _cmd_tui(catalog, resolver, runner_settings)


def _cmd_list(catalog: list[Profile]) -> int:
    for profile in catalog:
        missing = profile.missing_requirements()
        suffix = f"  (missing: {', '.join(missing)})" if missing else ""
        print(f"{profile.label}{suffix}")
    return 0


def _lookup(catalog: list[Profile], language: str) -> Profile:
    profile = find_profile(catalog, language)
    if profile is None:
        known = ", ".join(p.language for p in catalog)
        raise ConfigError(f"Unknown language: {language}", f"Choose one of: {known}")
    return profile


def _cmd_show(catalog: list[Profile], language: str) -> int:
    profile = _lookup(catalog, language)
    missing = set(profile.missing_requirements())

    print(f"Language: {profile.language}")
    if profile.requirements:
        reqs = [f"{r} (missing)" if r in missing else r for r in profile.requirements]
        print(f"Requires: {', '.join(reqs)}")
    types = ", ".join(t.label for t in profile.sorted_project_types()) or "none"
    print(f"Project types: {types}")
    print("Steps:")
    for idx, step in enumerate(profile.steps, 1):
        print(f"  {idx}. {step.name}: {step.action.describe(profile.project_types)}")
    return 0


def _cmd_run(
    catalog: list[Profile], args: argparse.Namespace, runner_settings: RunnerSettings
) -> int:
    profile = _lookup(catalog, args.language)
    project_type = ProjectType.parse(args.project_type) if args.project_type else None

    result = run_headless(
        profile,
        project_name=args.name,
        project_type=project_type,
        runner_factory=lambda p: p.create_runner(settings=runner_settings),
    )
    if result.aborted:
        log.error(f"{profile.language}: run aborted after a failing command")
        return 1
    if result.unanswered:
        log.error(f"{profile.language}: unanswered prompts: {', '.join(result.unanswered)}")
        return 1
    log.info(f"{profile.language}: finished {len(result.steps)} step(s)")
    return 0


def _cmd_tui(
    catalog: list[Profile], resolver: ConfigResolver, runner_settings: RunnerSettings
) -> int:
    # Imported here so list/show/run work where curses is unavailable.
    from proman.tui import run_session

    ui_settings = resolver.resolve_ui_settings()
    app = App(catalog, runner_factory=lambda p: p.create_runner(settings=runner_settings))
    run_session(app, ui_settings)

    state = app.state
    if isinstance(state, StoppingState) and state.profile is not None:
        if state.runner is not None:
            state.runner.join(timeout=5.0)
        run = state.run_state
        name = run.project_name if run else None
        project_type = run.project_type if run else None
        details = ", ".join(
            part
            for part in (
                f"name: {name}" if name else "",
                f"type: {project_type.label}" if project_type else "",
            )
            if part
        )
        log.info(f"{state.profile.language}: finished" + (f" ({details})" if details else ""))
        if state.runner is not None and state.runner.aborted:
            return 1
    elif app.should_quit:
        log.verbose(f"Wizard closed on the {app.screen.value} screen")
    return 0
