"""CLI client for the LeafWiki file history API."""

from __future__ import annotations

import argparse
import sys
from typing import Any
from urllib.parse import urlparse

import httpx

_LOCALHOST_HOSTS = {"localhost", "127.0.0.1", "::1"}


def validate_server_url(server_url: str, allow_insecure_http: bool = False) -> str:
    """Validate server URL and enforce HTTPS for non-localhost hosts by default."""
    normalized = server_url.strip().rstrip("/")
    parsed = urlparse(normalized)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Server URL must include scheme and host (e.g. https://example.com)")

    hostname = parsed.hostname
    if parsed.scheme == "http" and not allow_insecure_http and hostname not in _LOCALHOST_HOSTS:
        raise ValueError(
            "HTTPS is required for non-localhost servers. "
            "Use --allow-insecure-http only on trusted networks."
        )

    return normalized


class HistoryClient:
    """Thin client for the history endpoints."""

    def __init__(self, server_url: str, timeout: float = 30.0) -> None:
        self.server_url = server_url.rstrip("/")
        self.client = httpx.Client(base_url=self.server_url, timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> HistoryClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def history(self, path: str) -> dict[str, Any]:
        """Fetch the history of a page path."""
        resp = self.client.get("/api/history", params={"path": path})
        resp.raise_for_status()
        result: dict[str, Any] = resp.json()
        return result

    def request_scan(self) -> str:
        """Ask the server to schedule a history pass."""
        resp = self.client.post("/api/history/scan")
        resp.raise_for_status()
        status: str = resp.json()["status"]
        return status

    def capture(self) -> dict[str, int]:
        """Run a history pass on the server and return the counts."""
        resp = self.client.post("/api/history/capture")
        resp.raise_for_status()
        counts: dict[str, int] = resp.json()
        return counts


def format_history(payload: dict[str, Any]) -> list[str]:
    """Render a history response as printable lines, newest first."""
    entries = payload.get("history", [])
    if not entries:
        return ["No history recorded."]
    current = payload.get("currentHash", "")
    lines: list[str] = []
    for entry in entries:
        marker = "*" if current and entry["hash"] == current else " "
        line = f"{marker} {entry['recordedAt']}  {entry['status']:<8}  {entry['path']}"
        previous = entry.get("previousPath")
        if previous:
            line += f" (from {previous})"
        lines.append(line)
    return lines


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="leafwiki-history",
        description="Inspect and trigger LeafWiki file history",
    )
    parser.add_argument("--server", "-s", default="http://localhost:8000", help="Server URL")
    parser.add_argument(
        "--allow-insecure-http",
        action="store_true",
        help="Allow plain HTTP for non-localhost servers",
    )

    subparsers = parser.add_subparsers(dest="command")
    history_parser = subparsers.add_parser("history", help="Show the history of a page")
    history_parser.add_argument("path", help="Page path, e.g. docs/intro or docs/intro.md")
    subparsers.add_parser("scan", help="Schedule a history scan")
    subparsers.add_parser("capture", help="Run a history scan now")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return

    try:
        server_url = validate_server_url(args.server, args.allow_insecure_http)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    with HistoryClient(server_url) as client:
        try:
            if args.command == "history":
                for line in format_history(client.history(args.path)):
                    print(line)
            elif args.command == "scan":
                print(f"Scan {client.request_scan()}")
            elif args.command == "capture":
                counts = client.capture()
                print("Recorded:")
                for status, count in counts.items():
                    print(f"  {status:<9}{count}")
        except httpx.HTTPStatusError as exc:
            print(f"Error: server returned {exc.response.status_code}: {exc.response.text}")
            sys.exit(1)
        except httpx.HTTPError as exc:
            print(f"Error: {exc}")
            sys.exit(1)


if __name__ == "__main__":
    main()
