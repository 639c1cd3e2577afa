"""CLI for the tag reaper."""

import argparse
import sys
from pathlib import Path

from .config import Config, RegistryConfig
from .exceptions import ReaperError
from .models.retention import ExecutionReport, SortStrategy
from .services.reaper import BuckDharma, Reaper


def _comma_list(inp: str) -> list[str]:
    return [x.strip() for x in inp.split(",") if x.strip()]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage and reap image tags in a private registry."
    )
    parser.add_argument(
        "-c",
        "--config-file",
        "--file",
        type=Path,
        help="reaper config file",
        default=Path("/etc/reaper/config.yaml"),
    )
    parser.add_argument(
        "-r",
        "--registry",
        help="name of configured registry to use (default: the first)",
        default=None,
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
        default=False,
    )
    parser.add_argument(
        "-x",
        "--dry-run",
        action="store_true",
        help="Dry run only: do not delete any tags",
        default=False,
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("reap", help="apply every configured image policy")

    image = commands.add_parser("image", help="manage Docker images")
    image_cmds = image.add_subparsers(dest="image_command", required=True)
    image_cmds.add_parser("ls", help="list all images in repository")

    tags = image_cmds.add_parser("tags", help="display all image tags")
    tags.add_argument("-n", "--name", required=True, help="image name")
    _add_sort_args(tags)

    info = image_cmds.add_parser("info", help="show image details")
    info.add_argument("-n", "--name", required=True, help="image name")
    info.add_argument("-t", "--tag", required=True, help="image tag")

    delete = image_cmds.add_parser("delete", help="delete image tags")
    delete.add_argument("-n", "--name", required=True, help="image name")
    which = delete.add_mutually_exclusive_group(required=True)
    which.add_argument("-t", "--tag", help="delete exactly this tag")
    which.add_argument(
        "-k",
        "--keep",
        help=(
            "comma-separated keep specs: 'group' keeps all of a group,"
            " 'group:N' keeps its newest N"
        ),
    )
    _add_sort_args(delete)
    return parser


def _add_sort_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-s",
        "--sort",
        type=SortStrategy.from_str,
        help="tag ordering: 'semver' (default) or 'nosemver'",
        default=None,
    )
    parser.add_argument(
        "-e",
        "--exclude",
        type=_comma_list,
        help="never delete these tags (comma-separated list)",
        default=[],
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return _build_parser().parse_args(argv)


def _load_config(args: argparse.Namespace) -> Config:
    cfg = Config.from_file(args.config_file)

    # Override settings in config, if dry_run or debug are specified here
    for reg in cfg.registries:
        if args.dry_run:
            reg.dry_run = True
        if args.debug:
            reg.debug = True
    return cfg


def _print_reports(reports: list[ExecutionReport]) -> int:
    failed = False
    warned = 0
    for report in reports:
        for tag in report.deleted:
            print(f"{report.image}:{tag} deleted")
        for tag, reason in report.skipped.items():
            print(f"{report.image}:{tag} skipped: {reason}")
        for err in report.errors:
            print(f"{report.image}: {err}", file=sys.stderr)
        for warning in report.warnings:
            print(f"{report.image}: warning: {warning}", file=sys.stderr)
        warned += len(report.warnings)
        failed = failed or not report.ok
    if warned:
        print(f"{warned} warning(s) emitted", file=sys.stderr)
    return 1 if failed else 0


def _run_image_command(args: argparse.Namespace, reg: RegistryConfig) -> int:
    reaper = Reaper(reg)
    try:
        return _image_command(args, reaper)
    finally:
        reaper.close()


def _image_command(args: argparse.Namespace, reaper: Reaper) -> int:
    match args.image_command:
        case "ls":
            images = reaper.list_images()
            for image in images:
                print(image)
            print(f"Total images: {len(images)}")
        case "tags":
            tags = reaper.list_tags(args.name, args.sort, args.exclude)
            for tag in tags:
                print(tag)
            print(f"There are {len(tags)} images for {args.name}")
        case "info":
            manifest = reaper.image_info(args.name, args.tag)
            print(f"Image: {args.name}:{args.tag}")
            print(f"Size: {manifest.config_size}")
            print(f"Total size: {manifest.total_size}")
            print("Layers:")
            for layer in manifest.layers:
                print(f"\t{layer.digest}\t{layer.size}")
        case "delete":
            if args.tag:
                return _print_reports([reaper.delete_tag(args.name, args.tag)])
            reaper.plan(args.name, args.keep, args.exclude, args.sort)
            reaper.report()
            return _print_reports(reaper.reap())
    return 0


def cowbell(argv: list[str] | None = None) -> int:
    """Don't fear the Reaper."""
    args = _parse_args(argv)
    try:
        cfg = _load_config(args)
        if args.command == "reap":
            boc = BuckDharma(cfg)
            try:
                boc.plan()
                boc.report()
                return _print_reports(boc.reap())
            finally:
                boc.close()
        return _run_image_command(args, cfg.get_registry(args.registry))
    except (ReaperError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
