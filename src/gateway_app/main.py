# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Gemini Gateway - Main entry point.

This module handles:
- CLI argument parsing
- .env loading
- Logging configuration
- Application startup

The actual FastAPI application is created via app_factory.create_app().
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

import colorlog
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from gemini_bridge.error_handler import mask_credential
from gemini_bridge.utils.paths import get_default_root, get_logs_dir

_console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gemini OpenAI-compatible Gateway")
    parser.add_argument(
        "--host", type=str, default="0.0.0.0", help="Host to bind the server to."
    )
    parser.add_argument("--port", type=int, default=8000, help="Port to run the server on.")
    parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        help="Path to a .env file to load (defaults to .env in the working directory).",
    )
    return parser


def load_environment(root_dir: Path, env_file: Optional[str] = None) -> List[Path]:
    """Load the main .env and any extra *.env files found next to it."""
    loaded: List[Path] = []

    main_env = Path(env_file).expanduser() if env_file else root_dir / ".env"
    if main_env.is_file():
        load_dotenv(main_env)
        loaded.append(main_env)

    for extra_env in sorted(root_dir.glob("*.env")):
        if extra_env.name != ".env" and extra_env != main_env:
            load_dotenv(extra_env, override=False)
            loaded.append(extra_env)

    return loaded


class BridgeDebugFilter(logging.Filter):
    def filter(self, record):
        return record.levelno == logging.DEBUG and record.name.startswith("gemini_bridge")


def configure_logging(log_dir: Path) -> None:
    console_handler = colorlog.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )

    file_format = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    info_file_handler = logging.FileHandler(log_dir / "proxy.log", encoding="utf-8")
    info_file_handler.setLevel(logging.INFO)
    info_file_handler.setFormatter(file_format)

    debug_file_handler = logging.FileHandler(log_dir / "proxy_debug.log", encoding="utf-8")
    debug_file_handler.setLevel(logging.DEBUG)
    debug_file_handler.setFormatter(file_format)
    debug_file_handler.addFilter(BridgeDebugFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(info_file_handler)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(debug_file_handler)

    # Silence noisy loggers
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)


def _print_banner(host: str, port: int, proxy_api_key: Optional[str], elapsed: float) -> None:
    if proxy_api_key:
        key_display = f"✓ {mask_credential(proxy_api_key)}"
    else:
        key_display = "✗ Not Set (INSECURE - anyone can access!)"

    _console.print(
        Panel.fit(
            f"[bold cyan]Gemini Gateway[/bold cyan]\n"
            f"Listening on {host}:{port}\n"
            f"API Key: {key_display}\n"
            f"Ready in {elapsed:.2f}s",
            border_style="cyan",
        )
    )


def main(argv: Optional[List[str]] = None) -> None:
    start_time = time.time()
    args = build_parser().parse_args(argv)

    root_dir = get_default_root()
    env_files = load_environment(root_dir, args.env_file)
    if env_files:
        print(f"📁 Loaded {len(env_files)} .env file(s): {', '.join(f.name for f in env_files)}")

    with _console.status("[dim]Loading server components...", spinner="dots"):
        import uvicorn

        from gateway_app.app_factory import create_app
        from gateway_app.settings import GatewaySettings

    configure_logging(get_logs_dir(root_dir))
    settings = GatewaySettings.from_env(data_dir=root_dir)
    app = create_app(settings=settings)

    _print_banner(args.host, args.port, settings.proxy_api_key, time.time() - start_time)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
