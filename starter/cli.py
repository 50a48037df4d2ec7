"""CLI entrypoint for one-shot generation and daemon mode."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Sequence

from . import __build_date__, __version__
from .config import StarterSettings, load_config
from .errors import ConfigError, StarterError
from .logging import configure_logging, get_logger
from .models import GENERATOR_SERVICE, AnalysisResult, PipelineConfig
from .orchestrator import Orchestrator
from .service import Daemon

DEFAULT_BRANCH = "master"

logger = get_logger("cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="starter",
        description="Generate a Dockerfile, service.yml and docker-compose.yml for a project.",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("-p", dest="path", default="", help="project path (defaults to the current directory)")
    parser.add_argument("-e", dest="environment", default="production", help="set project environment")
    parser.add_argument("-y", dest="no_prompt", action="store_true", help="do not prompt user")
    parser.add_argument("-overwrite", dest="overwrite", action="store_true", help="overwrite existing files")
    parser.add_argument("-templates", dest="templates", default="", help="location of the templates directory")
    parser.add_argument("-branch", dest="branch", default=None, help="template branch in github (default: master)")
    parser.add_argument(
        "-g",
        dest="generator",
        default="dockerfile",
        help=(
            "comma separated files to generate: dockerfile (always), service, docker-compose; "
            "e.g. -g dockerfile,service,docker-compose"
        ),
    )
    parser.add_argument("-daemon", dest="daemon", action="store_true", help="runs starter in daemon mode")
    parser.add_argument("-c", dest="config", default="", help="configuration path for the daemon mode")
    parser.add_argument("-verbose", dest="verbose", action="store_true", help="increase log verbosity")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entrypoint for starter."""
    args_list: List[str] = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()

    if args_list and args_list[0] in ("help", "-h"):
        print(f"Starter ({__version__}) Help")
        parser.print_help()
        return
    if args_list and args_list[0] in ("version", "-v"):
        print(f"Starter version: {__version__} ({__build_date__})")
        return

    args = parser.parse_args(args_list)
    configure_logging(verbose=bool(args.verbose))

    if args.daemon:
        parser.exit(_run_daemon(args))

    config = PipelineConfig.from_generator_spec(
        args.generator,
        project_path=args.path,
        template_source_path=args.templates,
        environment=args.environment,
        overwrite=bool(args.overwrite),
        prompt=not args.no_prompt,
        branch=args.branch or DEFAULT_BRANCH,
    )

    try:
        result = Orchestrator().run(config)
    except StarterError as exc:
        parser.exit(1, f"error: {exc}\n")

    _print_summary(result, config, args.path)


def _run_daemon(args: argparse.Namespace) -> int:
    if args.config:
        config_path = Path(args.config).expanduser()
        if not config_path.exists():
            logger.error("Configuration file not found: %s", config_path)
            return 1
        logger.info("Using %s for configuration", config_path)
        try:
            settings = load_config(config_path)
        except ConfigError as exc:
            logger.error("Failed to load configuration file due to %s", exc)
            return 1
    else:
        settings = StarterSettings()

    if settings.log_file is not None:
        configure_logging(verbose=bool(args.verbose), log_file=settings.log_file)
    if args.templates:
        settings.templates.path = args.templates
    if args.branch:
        settings.templates.branch = args.branch

    return Daemon(settings).run()


def _print_summary(result: AnalysisResult, config: PipelineConfig, path: str) -> None:
    if result.warnings:
        print("Warnings:")
        for warning in result.warnings:
            print(f" * {warning}")

    detected = " ".join(part for part in (result.framework, result.framework_version) if part)
    print(f"Detected {result.language} ({detected})" if detected else f"Detected {result.language}")
    print("Now you can add the newly created Dockerfile to your git")
    print("To do that you will need to run the following commands:\n")
    print(f"cd {path or '.'}")
    print("git add Dockerfile")
    print("git commit -m 'Adding Dockerfile'")
    if config.wants(GENERATOR_SERVICE):
        print("\nTo create a new Docker Stack with Cloud 66 use the following command:\n")
        print(
            f"cx stacks create --name='CHANGEME' --environment='{config.environment}' "
            "--service_yaml=service.yml\n"
        )
    print("Done")


if __name__ == "__main__":
    main(sys.argv[1:])
