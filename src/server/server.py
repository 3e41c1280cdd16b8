import asyncio
import concurrent.futures
import logging
import os
import socket
import ssl
import sys
import time
import weakref
from datetime import datetime
from pathlib import Path
from typing import Optional

from src.custom_data_structures.Trie.Trie import PrefixTrie

from .config import load_config_file
from .logger import (
    log,
    setup_logging_queue,
    start_logging_listener,
    stop_logging_listener,
)
from .query_handler import handle_query, load_vocabulary
from .ssl_utils import generate_certificate_and_key

MAX_CHUNK_SIZE = 1024  # Maximum request size in bytes, terminator excluded
TOO_LARGE_RESPONSE = "ERROR: Message exceeds maximum allowed size."
BAD_ENCODING_RESPONSE = "ERROR: Request is not valid UTF-8."


class MessageTooLargeError(Exception):
    """A request line did not fit in the stream buffer."""


class Server:
    """Asyncio TCP server answering prefix queries from a vocabulary trie."""

    def __init__(self, ip: str, config_file_path: Path):
        self.ip = ip
        self.configuration_settings = load_config_file(config_file_path)
        self.executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self.is_running = True
        self.ssl_context: Optional[ssl.SSLContext] = None
        self.server_instance: Optional[asyncio.Server] = None
        self.log_details: bool = False
        self._active_connections: weakref.WeakSet[asyncio.StreamWriter] = (
            weakref.WeakSet()
        )
        # Built once before serving and only read afterwards
        self.trie: PrefixTrie = load_vocabulary(
            self.configuration_settings.vocabulary_path,
        )

    async def _setup_ssl_context(
        self,
        cert_path: Path,
        key_path: Path,
        gen_path: Path,
    ) -> None:
        """Setup the SSL context for the server.

        Args:
            cert_path (Path): The path to the certificate file.
            key_path (Path): The path to the key file.
            gen_path (Path): The path to the generation directory.

        """
        if not self.configuration_settings.use_ssl:
            self.ssl_context = None
            print("[SERVER] SSL is disabled by configuration.")
            return

        try:
            generate_certificate_and_key(
                gen_path,
                str(cert_path.name),
                str(key_path.name),
            )
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
            context.load_cert_chain(
                certfile=str(gen_path / cert_path),
                keyfile=str(gen_path / key_path),
            )
            self.ssl_context = context
            print(
                f"[SERVER] SSL context loaded from {cert_path} and "
                f"{key_path}",
            )
        except Exception as e:
            print(
                "[SERVER ERROR] Failed to load SSL cert/key: "
                f"{e}. Running without SSL.",
                file=sys.stderr,
            )
            self.ssl_context = None

    def _answer(self, trie: PrefixTrie, query_string: str) -> str:
        return handle_query(
            trie,
            query_string,
            max_completions=self.configuration_settings.max_completions,
            backtrack=self.configuration_settings.backtrack,
        )

    def _reload_and_answer(self, query_string: str) -> str:
        """Answer a query from a trie freshly built from the vocabulary file.

        Runs on a worker thread; the new trie is private to this call.
        """
        trie = load_vocabulary(self.configuration_settings.vocabulary_path)
        return self._answer(trie, query_string)

    @staticmethod
    async def _read_request(reader: asyncio.StreamReader) -> Optional[bytes]:
        """Read one request line.

        Returns:
            Optional[bytes]: The raw line, or None once the client has
            closed the connection. A last line without a terminator is
            still returned.

        Raises:
            MessageTooLargeError: If the line overflows the stream buffer.
            The whole line has been consumed by then.

        """
        try:
            return await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            return e.partial or None
        except asyncio.LimitOverrunError:
            pass

        # Drop the overlong line up to and including its terminator
        while True:
            try:
                await reader.readuntil(b"\n")
                break
            except asyncio.LimitOverrunError as e:
                await reader.readexactly(e.consumed)
        raise MessageTooLargeError

    @staticmethod
    async def _reply(writer: asyncio.StreamWriter, response: str) -> None:
        writer.write((response + "\n").encode("utf-8"))
        await writer.drain()

    async def _query(self, query_string: str, client_ip: str) -> str:
        try:
            if self.configuration_settings.reread_on_query:
                loop = asyncio.get_running_loop()
                return await loop.run_in_executor(
                    self.executor,
                    self._reload_and_answer,
                    query_string,
                )
            return self._answer(self.trie, query_string)
        except Exception as e:
            logging.exception(
                "Query '%s' from %s failed",
                query_string,
                client_ip,
            )
            return f"ERROR: Query failed: {e}"

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Answer request lines from one client until it disconnects.

        Every request is one line and gets exactly one response line.
        Oversized or undecodable requests get an `ERROR:` response and
        the connection stays open.

        Args:
            reader (asyncio.StreamReader): The reader for the client
            connection.
            writer (asyncio.StreamWriter): The writer for the client
            connection.

        """
        peername = writer.get_extra_info("peername")
        client_address_str = (
            f"{peername[0]}:{peername[1]}" if peername else "UNKNOWN"
        )
        client_ip = peername[0] if peername else "N/A"

        self._active_connections.add(writer)

        try:
            while self.is_running:
                try:
                    data = await self._read_request(reader)
                except MessageTooLargeError:
                    await self._reply(writer, TOO_LARGE_RESPONSE)
                    continue

                if data is None:
                    print(
                        f"[SERVER] Client {client_address_str} disconnected.",
                    )
                    break

                payload = data.rstrip(b"\r\n").replace(b"\x00", b"")
                if len(payload) > MAX_CHUNK_SIZE:
                    await self._reply(writer, TOO_LARGE_RESPONSE)
                    continue

                try:
                    query_string = payload.decode("utf-8")
                except UnicodeDecodeError:
                    await self._reply(writer, BAD_ENCODING_RESPONSE)
                    continue

                start_time = time.perf_counter()
                response = await self._query(query_string, client_ip)
                await self._reply(writer, response)
                elapsed_ms = (time.perf_counter() - start_time) * 1000

                if self.log_details:
                    time_stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
                    log(time_stamp, client_ip, query_string, elapsed_ms)

        except ConnectionResetError:
            print(
                f"[SERVER] Client {client_address_str} forcefully "
                "disconnected.",
            )
        except asyncio.IncompleteReadError:
            print(
                f"[SERVER] Client {client_address_str} connection closed "
                "unexpectedly.",
            )
        except Exception as e:
            print(
                f"[SERVER ERROR] Error handling client "
                f"{client_address_str}: {e}",
                file=sys.stderr,
            )
        finally:
            self._active_connections.discard(writer)
            try:
                writer.close()
                await writer.wait_closed()
            except Exception as e:
                print(
                    f"[SERVER] Error closing connection to "
                    f"{client_address_str}: {e}",
                )

    async def start(
        self,
        generation_path: Path,
        certfile_path: Path,
        key_file_path: Path,
        log_details: bool,
    ) -> None:
        """Start the TCP server and serve until cancelled.

        Args:
            generation_path (Path): The path to the generation directory.
            certfile_path (Path): The path to the certificate file.
            key_file_path (Path): The path to the key file.
            log_details (bool): Whether to log every handled query.

        """
        self.log_details = log_details

        try:
            setup_logging_queue()
            start_logging_listener()

            self.executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=os.cpu_count() or 1,
                thread_name_prefix="vocabulary-reload",
            )

            if self.configuration_settings.use_ssl:
                await self._setup_ssl_context(
                    certfile_path,
                    key_file_path,
                    generation_path,
                )

            raw_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            raw_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            raw_socket.bind((self.ip, self.configuration_settings.port))

            self.server_instance = await asyncio.start_server(
                self._handle_client,
                ssl=self.ssl_context,
                sock=raw_socket,
            )

            addrs = ", ".join(
                str(sock.getsockname())
                for sock in self.server_instance.sockets
            )
            print(
                f"[SERVER] Serving {len(self.trie)} strings on {addrs} "
                f"with {'SSL' if self.ssl_context else 'no SSL'}.",
            )

            await self.server_instance.serve_forever()

        except asyncio.CancelledError:
            print("[SERVER] Asyncio server task cancelled.")
        except KeyboardInterrupt:
            print("\n[SERVER] Shutting down due to KeyboardInterrupt...")
        except Exception as e:
            print(
                "[SERVER ERROR] An unhandled error occurred in main server "
                f"loop: {e}",
                file=sys.stderr,
            )
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Gracefully stop the server and clean up resources.

        Closes all active connections, shuts down the executor, stops the
        logging listener and closes the asyncio server.
        """
        print("[SERVER] Initiating graceful shutdown...")

        self.is_running = False

        for writer in list(self._active_connections):
            try:
                writer.close()
                await writer.wait_closed()
            except Exception as e:
                print(
                    f"[SERVER] Error closing connection during shutdown: {e}",
                )
        self._active_connections.clear()

        if self.executor:
            self.executor.shutdown(wait=True, cancel_futures=True)
            self.executor = None

        try:
            stop_logging_listener()
        except Exception as e:
            print(f"[SERVER] Error stopping logging listener: {e}")

        if self.server_instance:
            try:
                self.server_instance.close()
                await self.server_instance.wait_closed()
            except Exception as e:
                print(f"[SERVER] Error closing asyncio server: {e}")
            finally:
                self.server_instance = None

        self.ssl_context = None

        print("[SERVER] Server shutdown complete.")
