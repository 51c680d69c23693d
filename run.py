# -*- coding: utf-8 -*-

"""
Main entry point for launching the SourceLens desktop application.

Usage: python run.py page.html [--source-root DIR | --base-url URL]
"""

import argparse
import asyncio
import dataclasses
import logging
import sys
import tkinter as tk
from pathlib import Path

from sourcelens.config import ConfigManager, EngineSettings
from sourcelens.core.page import HostPage
from sourcelens.core.settings_store import SettingsStore
from sourcelens.engine import SourceLensEngine
from sourcelens.logging_config import setup_logging
from sourcelens.ui.app import SourceLensApp


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Correlate annotated page elements with their source files.")
    parser.add_argument("page", type=Path, help="annotated HTML page to inspect")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--source-root", help="read source files from this directory")
    source.add_argument("--base-url", help="fetch source files from this dev server")
    parser.add_argument(
        "--debug",
        action="append",
        default=[],
        metavar="LOGGER",
        help="force DEBUG output for a logger (repeatable, e.g. sourcelens.core.search)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """
    Configure logging, build the engine and launch the main window.
    """
    args = parse_args(argv)
    setup_logging(args.debug)

    settings = EngineSettings.from_mapping(ConfigManager().get_engine_config())
    if args.source_root:
        settings = dataclasses.replace(settings, fetch_backend="local", fetch_source_root=args.source_root)
    elif args.base_url:
        settings = dataclasses.replace(settings, fetch_backend="http", fetch_base_url=args.base_url)

    try:
        page = HostPage.from_file(str(args.page))
    except (OSError, ValueError) as exc:
        logging.error("Could not open page %s: %s", args.page, exc)
        return 1

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    engine = SourceLensEngine(page, settings=settings, store=SettingsStore(), loop=loop)

    root = tk.Tk()
    root.geometry("1200x760")
    SourceLensApp(root, engine, loop, args.page)
    try:
        root.mainloop()
    finally:
        loop.close()
    return 0


if __name__ == '__main__':
    exit_code = main()
    logging.info("===== Application terminated =====")
    sys.exit(exit_code)
