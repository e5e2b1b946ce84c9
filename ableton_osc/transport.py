"""
UDP transport for AbletonOSC.

AbletonOSC listens on a fixed UDP port (11000) and sends every reply to a
fixed port on the caller's side (11001). A UDPTransport owns one binding of
that reply port for its lifetime and moves opaque datagrams; it knows
nothing about OSC.

Only one socket can hold the reply port at a time. Inside this process,
transports for the same port are serialized by a per-port lock (open()
waits up to ``bind_wait`` seconds). Another process holding the port shows
up as an immediate BindError.
"""

import logging
import socket
import threading
import time
from typing import Dict, Optional, Tuple

from .config import OSCSettings
from .errors import AddressError, BindError, OscTimeoutError, ReceiveError, SendError

logger = logging.getLogger(__name__)

RECEIVE_BUFFER_SIZE = 1024

_port_locks: Dict[int, threading.Lock] = {}
_port_locks_guard = threading.Lock()


def _lock_for_port(port: int) -> threading.Lock:
    with _port_locks_guard:
        lock = _port_locks.get(port)
        if lock is None:
            lock = threading.Lock()
            _port_locks[port] = lock
        return lock


class UDPTransport:
    """One bound UDP endpoint talking to one fixed remote endpoint.

    Usage:
        with UDPTransport.from_settings(settings) as transport:
            transport.send(datagram)
            reply = transport.receive()
    """

    def __init__(self,
                 remote_host: str = "127.0.0.1",
                 remote_port: int = 11000,
                 local_host: str = "0.0.0.0",
                 local_port: int = 11001,
                 timeout: float = 0.5,
                 bind_wait: float = 5.0,
                 verify_sender: bool = False,
                 buffer_size: int = RECEIVE_BUFFER_SIZE):
        """
        Args:
            remote_host: Host AbletonOSC listens on
            remote_port: Port AbletonOSC listens on
            local_host: Interface to bind for replies
            local_port: Port to bind for replies (0 = ephemeral, never locked)
            timeout: Default seconds receive() waits for a datagram
            bind_wait: Seconds open() waits for another in-process
                transport to release local_port
            verify_sender: Ignore datagrams not sent by the remote endpoint
            buffer_size: Largest datagram receive() returns
        """
        self.remote_host = remote_host
        self.remote_port = remote_port
        self.local_host = local_host
        self.local_port = local_port
        self.timeout = timeout
        self.bind_wait = bind_wait
        self.verify_sender = verify_sender
        self.buffer_size = buffer_size

        self._sock: Optional[socket.socket] = None
        self._remote_addr: Optional[Tuple[str, int]] = None
        self._port_lock: Optional[threading.Lock] = None

    @classmethod
    def from_settings(cls, settings: OSCSettings) -> "UDPTransport":
        return cls(
            remote_host=settings.remote_host,
            remote_port=settings.remote_port,
            local_host=settings.local_host,
            local_port=settings.local_port,
            timeout=settings.timeout,
            bind_wait=settings.bind_wait,
            verify_sender=settings.verify_sender,
        )

    def __repr__(self):
        return (f"UDPTransport(local={self.local_host}:{self.local_port}, "
                f"remote={self.remote_host}:{self.remote_port}, open={self.is_open})")

    # ==================== LIFECYCLE ====================

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    @property
    def local_address(self) -> Optional[Tuple[str, int]]:
        """Actual bound (host, port), useful when local_port is 0."""
        if self._sock is None:
            return None
        return self._sock.getsockname()[:2]

    def _resolve_remote(self) -> Tuple[str, int]:
        if not isinstance(self.remote_port, int) or not 0 < self.remote_port <= 65535:
            raise AddressError(f"Invalid remote port {self.remote_port!r}")
        try:
            infos = socket.getaddrinfo(self.remote_host, self.remote_port,
                                       socket.AF_INET, socket.SOCK_DGRAM)
        except (socket.gaierror, ValueError) as exc:
            raise AddressError(f"Cannot resolve remote endpoint "
                               f"{self.remote_host}:{self.remote_port}: {exc}")
        return infos[0][4][:2]

    def _acquire_port(self) -> None:
        if not self.local_port:
            return
        lock = _lock_for_port(self.local_port)
        if self.bind_wait > 0:
            acquired = lock.acquire(timeout=self.bind_wait)
        else:
            acquired = lock.acquire(blocking=False)
        if not acquired:
            raise BindError(self.local_host, self.local_port,
                            f"still held by another transport in this process after {self.bind_wait}s")
        self._port_lock = lock

    def _release_port(self) -> None:
        if self._port_lock is not None:
            self._port_lock.release()
            self._port_lock = None

    def open(self) -> "UDPTransport":
        """Bind the local port and resolve the remote endpoint.

        Raises:
            AddressError: remote endpoint is malformed
            BindError: local port is in use (here or in another process)
        """
        if self._sock is not None:
            return self

        remote_addr = self._resolve_remote()
        self._acquire_port()

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            # Exclusive binding prevents a second process from sharing the port
            if hasattr(socket, "SO_EXCLUSIVEADDRUSE"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_EXCLUSIVEADDRUSE, 1)
            sock.bind((self.local_host, self.local_port))
            sock.settimeout(self.timeout)
        except OSError as exc:
            sock.close()
            self._release_port()
            raise BindError(self.local_host, self.local_port, exc.strerror or str(exc))

        self._sock = sock
        self._remote_addr = remote_addr
        logger.debug("Bound %s:%s for replies from %s:%s",
                     self.local_host, self.local_port, remote_addr[0], remote_addr[1])
        return self

    def close(self) -> None:
        """Close the socket and release the port. Safe to call twice."""
        sock, self._sock = self._sock, None
        try:
            if sock is not None:
                sock.close()
                logger.debug("Released %s:%s", self.local_host, self.local_port)
        finally:
            self._release_port()

    def __enter__(self) -> "UDPTransport":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ==================== I/O ====================

    def send(self, data: bytes) -> None:
        """Send the whole buffer as one datagram to the remote endpoint."""
        if self._sock is None:
            raise SendError("Transport is not open")
        try:
            sent = self._sock.sendto(data, self._remote_addr)
        except OSError as exc:
            raise SendError(f"Failed to send {len(data)} bytes to "
                            f"{self._remote_addr[0]}:{self._remote_addr[1]}: {exc}")
        if sent != len(data):
            raise SendError(f"Partial send: {sent} of {len(data)} bytes")

    def receive(self, timeout: Optional[float] = None) -> bytes:
        """Block until one datagram arrives or the timeout elapses.

        Args:
            timeout: Seconds to wait (default: the transport's timeout)

        Raises:
            OscTimeoutError: nothing arrived in time
            ReceiveError: the OS reported a socket failure
        """
        if self._sock is None:
            raise ReceiveError("Transport is not open")

        wait = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + wait
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise OscTimeoutError(wait)
            try:
                self._sock.settimeout(remaining)
                data, sender = self._sock.recvfrom(self.buffer_size)
            except socket.timeout:
                raise OscTimeoutError(wait)
            except OSError as exc:
                raise ReceiveError(f"Failed to receive on {self.local_host}:{self.local_port}: {exc}")

            if self.verify_sender and tuple(sender[:2]) != self._remote_addr:
                logger.debug("Ignoring datagram from unexpected sender %s:%s", sender[0], sender[1])
                continue
            return data
