"""Run the prefix lookup server detached from the terminal."""

import argparse
import asyncio
import atexit
import signal
import socket
import sys
from pathlib import Path
from typing import Any, Optional

import daemon
from daemon.pidfile import PIDLockFile

from .logger import stop_logging_listener
from .server import Server

PID_FILE = "/tmp/prefix_server_daemon.pid"
STDOUT_LOG = "/tmp/prefix_server_stdout.log"
STDERR_LOG = "/tmp/prefix_server_stderr.log"
# Certificates are generated here and the daemon runs from it
WORKDIR = Path("/tmp/")
UMASK = 0o027
CONFIG_PATH = Path(__file__).parent.parent.parent / "config.txt"


def get_local_ip() -> str:
    """Return the address of the interface used for outbound traffic."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.connect(("8.8.8.8", 80))
        return s.getsockname()[0]


def resolve_bind_ip(ip_mode: str) -> str:
    return "0.0.0.0" if ip_mode == "public" else get_local_ip()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the prefix lookup server as a daemon.",
    )
    parser.add_argument(
        "--ip",
        choices=["local", "public"],
        default="public",
        help="Listen on all interfaces or on the local address only",
    )
    parser.add_argument(
        "--config_path",
        default=str(CONFIG_PATH),
        help="Path to the server config file.",
    )
    return parser.parse_args(argv)


async def main(args: argparse.Namespace) -> None:
    # The daemon changes its working directory, relative paths would break
    server_instance = Server(
        resolve_bind_ip(args.ip),
        Path(args.config_path).resolve(),
    )
    await server_instance.start(
        generation_path=WORKDIR,
        certfile_path=Path("cert.pem"),
        key_file_path=Path("key.pem"),
        log_details=True,
    )


def cleanup() -> None:
    try:
        stop_logging_listener()
    except Exception as e:
        print(f"Error during cleanup: {e}", file=sys.stderr)


def handle_sigterm(signum: int, frame: Any) -> None:
    """Stop the logging listener and exit on SIGTERM or SIGINT."""
    cleanup()
    sys.exit(0)


if __name__ == "__main__":
    arguments = parse_args()
    atexit.register(cleanup)

    with (
        open(STDOUT_LOG, "a") as stdout,
        open(STDERR_LOG, "a") as stderr,
        daemon.DaemonContext(
            working_directory=str(WORKDIR),
            umask=UMASK,
            pidfile=PIDLockFile(PID_FILE),
            stdout=stdout,
            stderr=stderr,
            detach_process=True,
            signal_map={
                signal.SIGTERM: handle_sigterm,
                signal.SIGINT: handle_sigterm,
            },
        ),
    ):
        asyncio.run(main(arguments))
