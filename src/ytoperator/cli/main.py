#!/usr/bin/env python3
"""
YTOPERATOR CLI
--------------
Command-line front end: inspect a cluster (status), drive it (reconcile)
or print what the operator would apply (render).

Author: YTOperator Team
Date: 2026-10-17
"""

import sys
import argparse
import logging
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from ytoperator.cli.formatter import StatusFormatter
from ytoperator.config.settings import OperatorSettings
from ytoperator.core import consts
from ytoperator.core.errors import OperatorError
from ytoperator.orchestrator.reconciler import PassReport, Reconciler
from ytoperator.platform.client import KubernetesPlatformClient, PlatformClient
from ytoperator.render.manifests import load_cluster_manifest, render_manifest

VERSION = "0.1.0"

console = Console()


def setup_logging(level: str = "INFO"):
    """Configures the root logger once, with rich terminal output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


class YtOperatorCLI:
    """
    CLI wrapper that translates user commands into reconciler actions.
    """

    def __init__(self, platform_factory=None):
        self.parser = argparse.ArgumentParser(
            prog="ytoperator",
            description="ytoperator - lifecycle and rolling updates for YTsaurus clusters",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.platform_factory = platform_factory or self._default_platform
        self.formatter = StatusFormatter(console)
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("-v", "--version", action="version", version=f"ytoperator v{VERSION}")
        self.parser.add_argument("--config", help="Operator settings file (YAML)")
        self.parser.add_argument("--log-level", help="Override the configured log level")
        self.parser.add_argument("-n", "--namespace", help="Namespace of the cluster resource")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        status_parser = subparsers.add_parser("status", help="🔍 Dry-run every component and report")
        status_parser.add_argument("manifest", help="Path to the cluster resource manifest")
        status_parser.add_argument("--no-conditions", action="store_true", help="Hide condition tables")

        reconcile_parser = subparsers.add_parser("reconcile", help="❤️ Drive the cluster towards its spec")
        reconcile_parser.add_argument("manifest", help="Path to the cluster resource manifest")
        reconcile_parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
        reconcile_parser.add_argument("--passes", type=int, help="Stop after this many passes")
        reconcile_parser.add_argument("--interval", type=float, help="Seconds between passes")
        reconcile_parser.add_argument("--create", action="store_true",
                                      help="Apply the cluster resource first if it does not exist")

        render_parser = subparsers.add_parser("render", help="📄 Print the objects the operator would apply")
        render_parser.add_argument("manifest", help="Path to the cluster resource manifest")
        render_parser.add_argument("--plain", action="store_true", help="No syntax highlighting")

        for sub in (status_parser, reconcile_parser, render_parser):
            sub.add_argument("--strict", action="store_true", help="Fail on unknown spec fields (typos)")

    def print_header(self, subtitle: str):
        console.print(Panel.fit(
            f"[bold cyan]ytoperator v{VERSION}[/bold cyan]",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def _settings(self, args: argparse.Namespace) -> OperatorSettings:
        settings = OperatorSettings.load(args.config)
        if args.namespace:
            settings.namespace = args.namespace
        if args.log_level:
            settings.log_level = args.log_level
        return settings

    @staticmethod
    def _default_platform(settings: OperatorSettings) -> PlatformClient:
        return KubernetesPlatformClient(settings.namespace, timeout=settings.request_timeout)

    @staticmethod
    def _cluster_name(manifest: Dict[str, Any], settings: OperatorSettings, args: argparse.Namespace) -> str:
        """The manifest's namespace wins over settings, the -n flag over both."""
        meta = manifest["metadata"]
        if meta.get("namespace") and not args.namespace:
            settings.namespace = meta["namespace"]
        return meta["name"]

    def _ensure_resource(self, platform: PlatformClient, manifest: Dict[str, Any]):
        name = manifest["metadata"]["name"]
        if platform.fetch(consts.CLUSTER_KIND, name) is None:
            console.print(f"[bold yellow]Creating cluster resource {name}[/bold yellow]")
            body = dict(manifest)
            body.setdefault("apiVersion", consts.CLUSTER_API_VERSION)
            body.pop("status", None)
            platform.apply(body)

    def _status(self, args: argparse.Namespace, settings: OperatorSettings) -> int:
        manifest = load_cluster_manifest(args.manifest, strict=args.strict)
        name = self._cluster_name(manifest, settings, args)
        reconciler = Reconciler(self.platform_factory(settings), settings)
        report = reconciler.observe(name)
        self.formatter.print_report(report, show_conditions=not args.no_conditions)
        return 0 if report.ok else 1

    def _reconcile(self, args: argparse.Namespace, settings: OperatorSettings) -> int:
        manifest = load_cluster_manifest(args.manifest, strict=args.strict)
        name = self._cluster_name(manifest, settings, args)
        platform = self.platform_factory(settings)
        if args.create:
            self._ensure_resource(platform, manifest)

        reconciler = Reconciler(platform, settings)
        last: Optional[PassReport] = None

        def on_pass(report: PassReport):
            nonlocal last
            last = report
            self.formatter.print_report(report, show_conditions=False)

        max_passes = 1 if args.once else args.passes
        reconciler.run(name, interval=args.interval, max_passes=max_passes, on_pass=on_pass)
        return 0 if last is not None and last.ok else 1

    def _render(self, args: argparse.Namespace, settings: OperatorSettings) -> int:
        manifest = load_cluster_manifest(args.manifest, strict=args.strict)
        self._cluster_name(manifest, settings, args)
        self.formatter.print_manifest(render_manifest(manifest, settings), highlight=not args.plain)
        return 0

    def run(self, argv=None) -> int:
        """Primary routing entry point."""
        argv = sys.argv[1:] if argv is None else argv
        if not argv:
            self.print_header("YTsaurus Operator")
            self.parser.print_help()
            return 0

        args = self.parser.parse_args(argv)
        settings = self._settings(args)
        setup_logging(settings.log_level)

        handlers = {
            "status": ("Cluster Status", self._status),
            "reconcile": ("Reconcile", self._reconcile),
            "render": ("Render", self._render),
        }
        if args.command not in handlers:
            self.parser.print_help()
            return 2

        title, handler = handlers[args.command]
        if args.command != "render":
            self.print_header(title)
        try:
            return handler(args, settings)
        except OperatorError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return 1


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(YtOperatorCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
