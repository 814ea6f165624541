"""UDP socket packet source."""

from __future__ import annotations

import logging
import select
import socket
from typing import Optional

from .source import Source, UdpPacket

logger = logging.getLogger(__name__)

DEFAULT_UDP_PORT = 2368
UDP_BUFFER_SIZE = 26214400
_INITIAL_RECV_BUFFER = 400000000
_RECV_TIMEOUT_S = 0.02


class SocketSource(Source):
    """Reads lidar packets from a UDP port, optionally joining a multicast group."""

    def __init__(self, port: int = DEFAULT_UDP_PORT, multicast_ip: str = "") -> None:
        super().__init__()
        self.udp_port = port
        self.multicast_ip = multicast_ip
        self.client_ip = ""
        self._sock: Optional[socket.socket] = None
        self._is_select = False

    def open(self) -> bool:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        except OSError as exc:
            logger.error("cannot create udp socket: %s", exc)
            return False
        self._sock = sock
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as exc:
            logger.error("setsockopt SO_REUSEADDR failed: %s", exc)
            return False
        self._set_rcvbuf(_INITIAL_RECV_BUFFER)
        logger.info("OS current udp socket recv buff size is: %d", self.receive_buffer_size)
        try:
            sock.settimeout(_RECV_TIMEOUT_S)
        except OSError as exc:
            logger.error("setting receive timeout failed: %s", exc)
            return False
        try:
            sock.bind(("", self.udp_port))
        except OSError as exc:
            logger.error("SocketSource.open: bind failed: %s", exc)
            sock.close()
            self._sock = None
            return False
        logger.info("SocketSource opened, sock:%d", sock.fileno())
        sock.setblocking(False)
        self._set_rcvbuf(UDP_BUFFER_SIZE)
        if self.multicast_ip:
            try:
                mreq = socket.inet_aton(self.multicast_ip) + socket.inet_aton("0.0.0.0")
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
                logger.info("Receive data from multicast ip address %s", self.multicast_ip)
            except OSError as exc:
                logger.error(
                    "Multicast IP error, set correct multicast ip address or keep it empty: %s",
                    exc,
                )
        return True

    def _set_rcvbuf(self, size: int) -> None:
        if self._sock is None:
            return
        try:
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, size)
        except OSError as exc:
            logger.warning("setting receive buffer to %d failed: %s", size, exc)

    @property
    def receive_buffer_size(self) -> int:
        """Current SO_RCVBUF of the socket, or -1 when it is not open."""
        if self._sock is None:
            return -1
        try:
            return self._sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF)
        except OSError:
            return -1

    def close(self) -> None:
        logger.debug("SocketSource closed")
        self.client_ip = ""
        self.udp_port = 0
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def is_opened(self) -> bool:
        opened = self.udp_port != 0 and self._sock is not None
        if not opened:
            logger.debug("SocketSource not open, port %d", self.udp_port)
        return opened

    def send(self, data: bytes, flags: int = 0) -> int:
        """Send to the client address; -1 when closed or the address is invalid."""
        if not self.is_opened():
            return -1
        try:
            socket.inet_pton(socket.AF_INET, self.client_ip)
        except OSError:
            logger.error("SocketSource.send: invalid IP %r", self.client_ip)
            return -1
        try:
            return self._sock.sendto(bytes(data), flags, (self.client_ip, self.udp_port))
        except OSError as exc:
            logger.error("SocketSource.send failed: %s", exc)
            return -1

    def receive(
        self, size: int, flags: int = 0, timeout: int = 1000
    ) -> Optional[UdpPacket]:
        """Read a packet of at most ``size`` bytes.

        ``timeout`` is in microseconds. Returns a packet flagged ``is_timeout``
        when the wait ran out, and None when nothing could be read.
        """
        if not self.is_opened() and not self.open():
            return None
        sock = self._sock
        if not self._is_select:
            try:
                data, _ = sock.recvfrom(size, flags)
            except OSError:
                self._is_select = True
                return None
            return UdpPacket(buffer=data)
        try:
            readable, _, _ = select.select([sock], [], [], timeout / 1_000_000)
        except (OSError, ValueError) as exc:
            logger.error("select error: %s", exc)
            return None
        if not readable:
            return UdpPacket(is_timeout=True)
        self._is_select = False
        try:
            data, _ = sock.recvfrom(size, flags)
        except OSError:
            return None
        return UdpPacket(buffer=data)

    def set_socket_buffer_size(self, size: int) -> None:
        self._set_rcvbuf(size)