"""CLI for inspecting Versui site deploys."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from versui.config import Settings
from versui.exceptions import VersuiError
from versui.filesystem.manifest_manager import ManifestStore
from versui.filesystem.scanner import read_ignore_patterns, scan_site
from versui.services.delta_service import compute_delta, metadata_drift
from versui.services.identifier_service import decode_base36, site_address
from versui.services.path_service import validate_resource_key
from versui.walrus.publisher import WalrusClient

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Configure CLI logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(level=level, format=fmt, stream=sys.stderr, force=True)
    logging.getLogger("httpx").setLevel(logging.INFO if verbose else logging.WARNING)


def status(site_dir: Path, settings: Settings) -> None:
    """Print what a deploy of ``site_dir`` would change."""
    project_dir = site_dir.parent
    previous = ManifestStore(project_dir / settings.manifest_file).load()
    current = scan_site(site_dir, read_ignore_patterns(project_dir / settings.ignore_file))
    for path in current:
        validate_resource_key(path, settings.max_path_length)

    delta = compute_delta(current, previous)
    print("Deploy Status:")
    if previous is None:
        print("  Site:       (not deployed yet)")
    else:
        print(f"  Site:       {site_address(previous.site_id, settings.site_domain)}")
        print(f"  Manifest:   v{previous.version}, deployed {previous.deployed_at.isoformat()}")
    print(f"  Added:      {len(delta.added)}")
    print(f"  Modified:   {len(delta.modified)}")
    print(f"  Removed:    {len(delta.removed)}")
    print(f"  Unchanged:  {len(delta.unchanged)}")

    for path in delta.added:
        print(f"    + {path}")
    for path in delta.modified:
        print(f"    ~ {path}")
    for path in delta.removed:
        print(f"    - {path}")
    for path in metadata_drift(current, previous):
        print(f"    ? {path} (metadata changed, content identical)")


def fetch(blob_id: str, settings: Settings, output: Path | None = None) -> None:
    """Download a blob through the configured aggregators."""
    with WalrusClient(
        settings.publisher_url,
        settings.aggregator_urls,
        timeout=settings.http_timeout_seconds,
    ) as client:
        content = client.read(blob_id)
    if output is None:
        sys.stdout.buffer.write(content)
        sys.stdout.flush()
    else:
        output.write_bytes(content)
        print(f"Wrote {len(content)} bytes to {output}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="versui-deploy",
        description="Inspect Versui site deploys and public addresses",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")
    status_parser = subparsers.add_parser("status", help="Show what a deploy would change")
    status_parser.add_argument(
        "dir", nargs="?", default=".", help="Site directory (default: current)"
    )
    address_parser = subparsers.add_parser("address", help="Print a site's public address")
    address_parser.add_argument("site_id", help="Site object ID (0x...)")
    resolve_parser = subparsers.add_parser("resolve", help="Decode a subdomain to a site ID")
    resolve_parser.add_argument("subdomain", help="Base-36 subdomain")
    fetch_parser = subparsers.add_parser("fetch", help="Download a blob from an aggregator")
    fetch_parser.add_argument("blob_id", help="Walrus blob ID")
    fetch_parser.add_argument("--output", "-o", help="Write to this file instead of stdout")

    args = parser.parse_args(argv)
    settings = Settings()
    _configure_logging(args.verbose or settings.debug)

    try:
        if args.command == "status":
            site_dir = Path(args.dir).resolve()
            if not site_dir.is_dir():
                print(f"Error: {site_dir} is not a directory")
                sys.exit(1)
            status(site_dir, settings)
        elif args.command == "address":
            print(site_address(args.site_id, settings.site_domain))
        elif args.command == "resolve":
            print(decode_base36(args.subdomain.split(".", 1)[0]))
        elif args.command == "fetch":
            fetch(args.blob_id, settings, Path(args.output) if args.output else None)
        else:
            parser.print_help()
    except VersuiError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
