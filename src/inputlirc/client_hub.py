"""Connected LIRC clients and line broadcasting."""

import logging
import socket
from contextlib import suppress


class ClientHub:
    """Owns the client connections accepted on the listening socket.

    Writes are all-or-nothing: a client that cannot take a whole line right
    away (closed, reset, or simply full) is dropped, so one stuck reader never
    holds up the others.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger('inputlirc.clients')
        self.clients: dict[int, socket.socket] = {}

    def __len__(self) -> int:
        return len(self.clients)

    def add(self, conn: socket.socket) -> int:
        conn.setblocking(False)
        handle = conn.fileno()
        self.clients[handle] = conn
        return handle

    def accept(self, listener: socket.socket) -> int | None:
        """Accept one pending connection. Returns its handle, or None on a transient failure."""
        try:
            conn, _addr = listener.accept()
        except (InterruptedError, ConnectionAbortedError, BlockingIOError) as e:
            self.logger.debug(f'accept() failed, ignoring: {e}')
            return None
        handle = self.add(conn)
        self.logger.info(f'Client {handle} connected ({len(self.clients)} total)')
        return handle

    def broadcast(self, line: str) -> None:
        data = line.encode('ascii', errors='replace')
        failed = []
        for handle, conn in self.clients.items():
            try:
                sent = conn.send(data)
            except OSError as e:
                self.logger.info(f'Client {handle} dropped: {e}')
                failed.append(handle)
                continue
            if sent != len(data):
                self.logger.info(f'Client {handle} dropped: short write ({sent}/{len(data)} bytes)')
                failed.append(handle)

        for handle in failed:
            self._close(handle)

    def _close(self, handle: int) -> None:
        conn = self.clients.pop(handle, None)
        if conn is not None:
            with suppress(OSError):
                conn.close()

    def close_all(self) -> None:
        for handle in list(self.clients):
            self._close(handle)
