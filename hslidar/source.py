"""Common interface of packet sources."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class UdpPacket:
    """A received packet payload."""

    buffer: bytes = b""
    is_timeout: bool = False

    @property
    def packet_len(self) -> int:
        return len(self.buffer)


class Source(ABC):
    """A place packets are read from, such as a socket or a capture file."""

    def __init__(self) -> None:
        self.is_pcap_end = False

    @abstractmethod
    def open(self) -> bool:
        """Open the source; return whether it succeeded."""

    def close(self) -> None:
        """Release the source."""
        logger.debug("Source closed")

    @abstractmethod
    def is_opened(self) -> bool:
        """Whether the source is open."""

    @abstractmethod
    def send(self, data: bytes, flags: int = 0) -> int:
        """Send data; return the number of bytes sent."""

    @abstractmethod
    def receive(self, size: int, flags: int = 0, timeout: int = 1000):
        """Read the next packet of at most ``size`` bytes."""

    @abstractmethod
    def set_socket_buffer_size(self, size: int) -> None:
        """Set the receive buffer size where the source has one."""

    def __enter__(self) -> "Source":
        if not self.open():
            raise OSError(f"failed to open {type(self).__name__}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()