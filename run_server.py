"""Start the prefix lookup server in the foreground or as a daemon."""

import argparse
import asyncio
import os
import subprocess
import sys
from pathlib import Path
from typing import Optional

from src.server.daemon import WORKDIR, resolve_bind_ip
from src.server.server import Server
from src.server.ssl_utils import generate_certificate_and_key

ROOT = Path(__file__).parent
CONFIG_PATH = ROOT / "config.txt"


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the prefix lookup server.",
    )
    parser.add_argument(
        "--ip",
        choices=["local", "public"],
        default="public",
        help="Listen on all interfaces or on the local address only",
    )
    parser.add_argument(
        "--mode",
        default="normal",
        choices=["normal", "daemon"],
        help="Run mode: 'normal' or 'daemon' (default: normal)",
    )
    parser.add_argument(
        "--config_path",
        default=str(CONFIG_PATH),
        help="Path to the server config file.",
    )
    return parser.parse_args(argv)


def spawn_daemon(args: argparse.Namespace) -> None:
    env = os.environ.copy()
    env["PYTHONPATH"] = str(ROOT)
    subprocess.run(
        [
            sys.executable,
            "-m",
            "src.server.daemon",
            "--ip",
            args.ip,
            "--config_path",
            str(Path(args.config_path).resolve()),
        ],
        check=False,
        env=env,
        cwd=str(ROOT),
    )


async def main() -> None:
    args = parse_args()

    generate_certificate_and_key(WORKDIR)

    if args.mode == "daemon":
        spawn_daemon(args)
        return

    server_instance = Server(resolve_bind_ip(args.ip), Path(args.config_path))
    await server_instance.start(
        generation_path=WORKDIR,
        certfile_path=Path("cert.pem"),
        key_file_path=Path("key.pem"),
        log_details=True,
    )


if __name__ == "__main__":
    asyncio.run(main())
