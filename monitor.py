#!/usr/bin/env python3
"""EasyPanel Monitor: flicker-free terminal dashboard for EasyPanel servers.

Usage:
    python monitor.py                              # run the dashboard
    python monitor.py -c myconfig.yaml             # use custom config
    python monitor.py add panel.example.com TOKEN  # register with an API token
    python monitor.py login panel.example.com admin@example.com
    python monitor.py list
    python monitor.py remove SERVER_ID
    python monitor.py settings --home 5 --service off --color dark
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from pathlib import Path

from collectors import EasyPanelCollector
from dashboard.aggregator import Aggregator
from dashboard.config import DEFAULT_CONFIG_PATH, MonitorConfig, configure_logging, load_config
from dashboard.registry import ServerRegistry, normalize_address
from dashboard.settings import AppSettings, InvalidSettingError, SettingsStore
from dashboard.store import KeyValueStore
from dashboard.views import DashboardView


def cmd_list(registry: ServerRegistry, args: argparse.Namespace) -> int:
    records = registry.list()
    if not records:
        print("No servers registered. Add one with: monitor.py add HOST TOKEN")
        return 0
    for r in records:
        print(f"{r.id}  {r.address}" + (f"  ({r.username})" if r.username else ""))
    return 0


def cmd_add(registry: ServerRegistry, args: argparse.Namespace) -> int:
    try:
        record = registry.add(args.hostname, args.token)
    except ValueError as e:
        print(f"Cannot add server: {e}")
        return 1
    print(f"Added {record.address} as {record.id}")
    return 0


def cmd_login(registry: ServerRegistry, args: argparse.Namespace, config: MonitorConfig) -> int:
    try:
        address = normalize_address(args.hostname)
    except ValueError as e:
        print(f"Cannot add server: {e}")
        return 1
    password = args.password or getpass.getpass("Password: ")
    collector = EasyPanelCollector(timeout=config.request_timeout)
    result = asyncio.run(collector.login(address, args.email, password))
    if not result.ok:
        print(f"Authentication failed: {result.reason}")
        return 1
    record = registry.add(address, result.value, username=args.email)
    print(f"Added {record.address} as {record.id}")
    return 0


def cmd_remove(registry: ServerRegistry, args: argparse.Namespace) -> int:
    if not registry.remove(args.server_id):
        print(f"No server with id {args.server_id}")
        return 1
    print(f"Removed {args.server_id}")
    return 0


def cmd_settings(settings: SettingsStore, args: argparse.Namespace) -> int:
    current = settings.load().to_dict()
    changes = {
        "homePageRefreshInterval": args.home,
        "serviceRefreshInterval": args.service,
        "colorMode": args.color,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if changes:
        try:
            updated = AppSettings(**{**current, **changes})
        except InvalidSettingError as e:
            print(f"Invalid setting: {e}")
            return 1
        settings.save(updated)
        current = updated.to_dict()
    for key, value in current.items():
        print(f"{key}: {value}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="EasyPanel Monitor Dashboard")
    parser.add_argument(
        "-c", "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to monitor.yaml config file",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("list", help="List registered servers")

    add = sub.add_parser("add", help="Register a server with an API token")
    add.add_argument("hostname")
    add.add_argument("token")

    login = sub.add_parser("login", help="Register a server by logging in")
    login.add_argument("hostname")
    login.add_argument("email")
    login.add_argument("--password", help="Prompted for when omitted")

    remove = sub.add_parser("remove", help="Forget a registered server")
    remove.add_argument("server_id")

    st = sub.add_parser("settings", help="Show or change refresh settings")
    st.add_argument("--home", help="Overview refresh: 1, 5, 10, 15, 30, 60 or off")
    st.add_argument("--service", help="Container refresh: 1, 5, 10, 15, 30, 60 or off")
    st.add_argument("--color", help="Color mode: system, light or dark")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(Path(args.config))
    except ValueError as e:
        print(f"Invalid config: {e}")
        return 1
    configure_logging(config.log_level, filename=None if args.command else "monitor.log")

    store = KeyValueStore(config.store_file)
    registry = ServerRegistry(store)
    settings = SettingsStore(store)

    if args.command == "list":
        return cmd_list(registry, args)
    if args.command == "add":
        return cmd_add(registry, args)
    if args.command == "login":
        return cmd_login(registry, args, config)
    if args.command == "remove":
        return cmd_remove(registry, args)
    if args.command == "settings":
        return cmd_settings(settings, args)

    if not registry.list():
        print("No servers registered. Add one with: monitor.py add HOST TOKEN")
        return 1

    # imported late so the management commands work without Textual installed
    from ui.app import DashboardApp

    collector = EasyPanelCollector(timeout=config.request_timeout)
    view = DashboardView(registry, Aggregator(registry.list, collector), settings)
    DashboardApp(view, watch_interval=config.store_watch_interval).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
