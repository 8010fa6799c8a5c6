"""CLI entrypoint for cursor-autohelper."""

from __future__ import annotations

import argparse
import json
from dataclasses import replace
from typing import Any

from autohelper.common import playwright_available, safe_page_title, safe_page_url
from autohelper.config import HelperConfig
from autohelper.constants import HELPER_NAME, HELPER_VERSION
from autohelper.control import ControlPump
from autohelper.diagnostics import DiagnosticSink
from autohelper.page_host import PlaywrightHost
from autohelper.session import AutoHelper, install
from autohelper.storage import create_session_paths, latest_log_path, status_payload, tail_lines


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        run_command(args)
        return
    if args.command == "status":
        config = _load_config()
        print(json.dumps(status_payload(config.runs_dir), indent=2, ensure_ascii=False))
        return
    if args.command == "logs":
        logs_command(args.tail)
        return

    parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autohelper",
        description=f"{HELPER_NAME} v{HELPER_VERSION}: auto-resume and auto-retry for chat panes.",
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Attach to a page and run the watchers until Ctrl-C")
    target = run_parser.add_mutually_exclusive_group()
    target.add_argument(
        "--cdp-url",
        default="http://127.0.0.1:9222",
        help="Remote debugging endpoint of a running Chromium/Electron app.",
    )
    target.add_argument("--url", default="", help="Launch a headed Chromium and open this URL instead.")
    run_parser.add_argument(
        "--page-match",
        default="",
        help="Pick the first page whose URL or title contains this text.",
    )
    run_parser.add_argument("--debug", action="store_true", help="Verbose diagnostics with page alerts.")
    run_parser.add_argument("--silent", action="store_true", help="Suppress the startup toast.")
    run_parser.add_argument("--no-idle", action="store_true", help="Disable the idle tab-cycle watcher.")
    run_parser.add_argument("--idle-timeout-s", type=int, default=0, help="Idle seconds before tab cycling.")

    subparsers.add_parser("status", help="Show latest helper session status")

    logs_parser = subparsers.add_parser("logs", help="Tail the latest helper session log")
    logs_parser.add_argument("--tail", type=int, default=200)
    return parser


def _load_config() -> HelperConfig:
    try:
        return HelperConfig.from_env()
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc


def _config_from_args(args: argparse.Namespace) -> HelperConfig:
    config = _load_config()
    updates: dict[str, Any] = {}
    if args.debug:
        updates["debug"] = True
    if args.no_idle:
        updates["idle_enabled"] = False
    if args.idle_timeout_s:
        timeout_ms = int(args.idle_timeout_s) * 1000
        updates["idle_timeout_ms"] = timeout_ms
        updates["idle_pre_warning_ms"] = min(config.idle_pre_warning_ms, max(0, timeout_ms // 2))
    if not updates:
        return config
    config = replace(config, **updates)
    try:
        config.validate()
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc
    return config


def run_command(args: argparse.Namespace) -> None:
    if not playwright_available():
        raise SystemExit("Playwright is not installed. Run: pip install playwright && playwright install chromium")
    from playwright.sync_api import sync_playwright

    config = _config_from_args(args)
    paths = create_session_paths(config.runs_dir)
    sink = DiagnosticSink(paths.helper_log, echo=print, verbose=config.debug)
    sink.info(f"session_id={paths.session_id}")

    with sync_playwright() as p:
        if args.url:
            browser = p.chromium.launch(headless=False)
            page = browser.new_page()
            page.goto(args.url)
            sink.info(f"launched url={args.url}")
        else:
            try:
                browser = p.chromium.connect_over_cdp(args.cdp_url)
            except Exception as exc:
                raise SystemExit(f"Could not attach over CDP at {args.cdp_url}: {exc}") from exc
            page = _pick_page(browser, args.page_match)
            if page is None:
                raise SystemExit(f"No page matches --page-match={args.page_match!r}")
            sink.info(f"attached url={safe_page_url(page)} title={safe_page_title(page)}")

        host = PlaywrightHost(page)
        helper = install(host, config=config, sink=sink, paths=paths, silent=args.silent)
        if helper.session is None or not helper.session.active:
            raise SystemExit("Conversation pane not found; helper not started.")
        try:
            host.expose_controls()
        except Exception as exc:
            sink.error(f"control surface unavailable: {exc}")
        pump = ControlPump(host, helper)
        try:
            helper.loop.run_forever(pump.wait)
        finally:
            shutdown(helper)


def shutdown(helper: AutoHelper) -> None:
    """Stop the helper and remove its toast; no loop runs afterwards to expire it."""
    try:
        helper.stop(silent=True)
        helper.notifier.dismiss()
    except Exception as exc:
        helper.sink.error(f"stop failed: {exc}")


def _pick_page(browser: Any, page_match: str) -> Any | None:
    needle = str(page_match or "").strip().lower()
    for context in browser.contexts:
        for page in context.pages:
            if not needle:
                return page
            haystack = f"{safe_page_url(page)} {safe_page_title(page)}".lower()
            if needle in haystack:
                return page
    return None


def logs_command(tail: int) -> None:
    config = _load_config()
    log_path = latest_log_path(config.runs_dir)
    if log_path is None:
        raise SystemExit("No helper session found.")
    lines = tail_lines(log_path, max(1, tail))
    print("\n".join(lines))


if __name__ == "__main__":
    main()
