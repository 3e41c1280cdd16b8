"""Handles server initialization and communication."""

import asyncio
import time
from typing import Optional


class Client:
    """Asynchronous Client for connecting to the prefix lookup server."""

    def __init__(self, ip: str, port: int):
        """Initialize a new asynchronous client instance.

        Args:
            ip (str): The IP address of the server to connect to.
            port (int): The port number of the server to connect to.

        """
        self.ip = ip
        self.port = port
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

    async def _open_connection(
        self,
    ) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        return await asyncio.open_connection(self.ip, self.port)

    async def connect(self) -> None:
        """Establish the asynchronous connection to the server.

        This method must be called and awaited before sending any queries.

        Raises:
            ConnectionRefusedError: If the server actively
            refuses the connection.
            Exception: For other connection-related errors.

        """
        try:
            self.reader, self.writer = await self._open_connection()
            peername = self.writer.get_extra_info("peername")
            print(f"Connected to server at {peername[0]}:{peername[1]}")

        except ConnectionRefusedError:
            print(
                f"Connection refused by the server at {self.ip}:{self.port}.",
            )
            raise

        except Exception as e:
            print(f"Error connecting to server at {self.ip}:{self.port}: {e}")
            raise

    async def send_query(self, query_string: str) -> Optional[str]:
        """Send one request line and wait for the answer line.

        Args:
            query_string (str): The request, e.g. "LONGEST /api/users/7".

        Returns:
            str: The response line without its terminator.
            None: If the client is not connected or the server closed
            the connection without answering.

        """
        if self.writer is None or self.reader is None:
            print("Client not connected. Call .connect() first.")
            return None

        try:
            start = time.perf_counter()

            self.writer.write((query_string + "\n").encode("utf-8"))
            await self.writer.drain()

            data = await self.reader.readline()
            if not data:
                print(
                    "Server closed the connection unexpectedly or sent "
                    "no data.",
                )
                return None

            response = data.decode("utf-8").rstrip("\r\n")

            end = time.perf_counter()
            elapsed_time = (end - start) * 1000

            print(f"Time: {elapsed_time:.2f} ms")
            print("Response from server:", response)

            return response

        except (ConnectionResetError, BrokenPipeError):
            print("Server closed the connection unexpectedly or sent no data.")
            raise
        except OSError as e:
            print(f"OS Error during send: {e}")
            raise
        except Exception as e:
            print(f"An unexpected error occurred during send: {e}")
            raise

    async def close(self) -> None:
        """Close the asynchronous connection to the server."""
        print("Closing connection...")
        if self.writer and not self.writer.is_closing():
            try:
                self.writer.close()
                await self.writer.wait_closed()
                print("Connection closed.")
            except (ConnectionResetError, BrokenPipeError, OSError) as e:
                print(f"Error during close cleanup: {e}")
                raise
            finally:
                self.reader = None
                self.writer = None
        elif self.writer and self.writer.is_closing():
            try:
                await self.writer.wait_closed()
                print("Connection already closing, waited for it.")
            except (ConnectionResetError, BrokenPipeError, OSError) as e:
                print(f"Error during close cleanup (already closing): {e}")
                raise
        else:
            print("No active connection to close.")
        self.reader = None
        self.writer = None
