"""Packet source that plays back a pcap capture file."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from .source import Source, UdpPacket

logger = logging.getLogger(__name__)

PCAP_MAGIC_NUMBER = 0xA1B2C3D4
MAX_RECORD_LEN = 1500
DEFAULT_PORT = 2368

_FILE_HEADER = struct.Struct("<IHHiIII")
_RECORD_HEADER = struct.Struct("<IIII")
_IPV4 = struct.Struct(">BBHHHBBH4s4s")
_IPV6 = struct.Struct(">IHBB16s16s")
_UDP = struct.Struct(">HHHH")
_TCP = struct.Struct(">HHIIBBHHH")

ETHERNET_SIZE = 14
IPV4_HEADER_SIZE = _IPV4.size
IPV6_HEADER_SIZE = _IPV6.size
UDP_HEADER_SIZE = _UDP.size
TCP_HEADER_SIZE = _TCP.size
VLAN_TAG_SIZE = 4

_ETHER_IPV4 = 0x0800
_ETHER_IPV6 = 0x86DD
_ETHER_VLAN = 0x8100
_PROTO_TCP = 6
_PROTO_UDP = 17

_BROADCAST_MAC = b"\xff" * 6
_SOURCE_MAC = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01])
_SOURCE_IP = bytes([192, 168, 1, 201])
_SOURCE_PORT = 10000

Callback = Callable[[bytes], int]


def _check_u16(name: str, value: int) -> None:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"{name} must be in 0..65535, got {value}")


def pcap_file_header() -> bytes:
    """The 24-byte global header written at the start of a capture file."""
    return _FILE_HEADER.pack(PCAP_MAGIC_NUMBER, 2, 4, 0, 0, 0xFFFF, 1)


def _ethernet(ether_type: int) -> bytes:
    return _BROADCAST_MAC + _SOURCE_MAC + ether_type.to_bytes(2, "big")


def _ipv4(protocol: int, upper_len: int) -> bytes:
    return _ethernet(_ETHER_IPV4) + _IPV4.pack(
        0x45,
        0,
        (upper_len + IPV4_HEADER_SIZE) & 0xFFFF,
        0x7AF1,
        0x4000,
        0x40,
        protocol,
        0xF880,
        _SOURCE_IP,
        b"\xff" * 4,
    )


def _ipv6(protocol: int, upper_len: int) -> bytes:
    return _ethernet(_ETHER_IPV6) + _IPV6.pack(
        0x60000000, upper_len & 0xFFFF, protocol, 0x40, bytes(16), bytes(16)
    )


def _udp(payload_len: int, port: int) -> bytes:
    return _UDP.pack(_SOURCE_PORT, port, (payload_len + UDP_HEADER_SIZE) & 0xFFFF, 0)


def _tcp(port: int) -> bytes:
    return _TCP.pack(_SOURCE_PORT, port, 0, 0, 0x04, 0, 0, 0, 0)


def udp_header(payload_len: int, port: int = DEFAULT_PORT) -> bytes:
    """Fake Ethernet/IPv4/UDP header (42 bytes) for a payload of the given length."""
    _check_u16("payload_len", payload_len)
    _check_u16("port", port)
    return _ipv4(_PROTO_UDP, payload_len + UDP_HEADER_SIZE) + _udp(payload_len, port)


def tcp_header(payload_len: int, port: int = DEFAULT_PORT) -> bytes:
    """Fake Ethernet/IPv4/TCP header (54 bytes) for a payload of the given length."""
    _check_u16("payload_len", payload_len)
    _check_u16("port", port)
    return _ipv4(_PROTO_TCP, payload_len + TCP_HEADER_SIZE) + _tcp(port)


def udp_v6_header(payload_len: int, port: int = DEFAULT_PORT) -> bytes:
    """Fake Ethernet/IPv6/UDP header (62 bytes) for a payload of the given length."""
    _check_u16("payload_len", payload_len)
    _check_u16("port", port)
    return _ipv6(_PROTO_UDP, payload_len + UDP_HEADER_SIZE) + _udp(payload_len, port)


def tcp_v6_header(payload_len: int, port: int = DEFAULT_PORT) -> bytes:
    """Fake Ethernet/IPv6/TCP header (74 bytes) for a payload of the given length."""
    _check_u16("payload_len", payload_len)
    _check_u16("port", port)
    return _ipv6(_PROTO_TCP, payload_len + TCP_HEADER_SIZE) + _tcp(port)


class EntryKind(Enum):
    """What a capture record turned out to hold."""

    UDP = "udp"
    TCP = "tcp"
    IGNORED = "ignored"
    OVERSIZED = "oversized"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PcapEntry:
    """One record read from a capture file."""

    kind: EntryKind
    payload: bytes = b""
    port: Optional[int] = None


class PcapSource(Source):
    """Reads packets one record at a time from a pcap file held in memory."""

    def __init__(self, path: Union[str, Path], packet_interval: int = 0) -> None:
        super().__init__()
        self.pcap_path = str(path)
        self.packet_interval = packet_interval
        self.callback: Optional[Callback] = None
        self.tcp_callback: Optional[Callback] = None
        self._data: Optional[bytes] = None
        self._fpos = 0
        self._udp_destination_port = 0

    @property
    def fpos(self) -> int:
        """Current read offset in the file."""
        return self._fpos

    @fpos.setter
    def fpos(self, value: int) -> None:
        self._fpos = value

    def open(self) -> bool:
        self.close()
        try:
            data = Path(self.pcap_path).read_bytes()
        except OSError:
            logger.error('Fail to open .pcap file: "%s"', self.pcap_path)
            return False
        if len(data) < _FILE_HEADER.size or _FILE_HEADER.unpack_from(data)[0] != PCAP_MAGIC_NUMBER:
            logger.error('Not a valid .pcap file: "%s"', self.pcap_path)
            return False
        self._data = data
        self._fpos = _FILE_HEADER.size
        return True

    def close(self) -> None:
        self._data = None
        self._fpos = 0

    def is_opened(self) -> bool:
        return self._data is not None

    def next(self) -> Optional[PcapEntry]:
        """Read the next record.

        Returns None at the end of the file (setting ``is_pcap_end``) or when
        the remaining bytes do not hold a whole record.
        """
        data = self._data if self._data is not None else b""
        if self._fpos == len(data):
            self.is_pcap_end = True
            return None
        if self._fpos + _RECORD_HEADER.size > len(data):
            return None
        _, _, incl_len, _ = _RECORD_HEADER.unpack_from(data, self._fpos)
        self._fpos += _RECORD_HEADER.size
        if self._fpos + incl_len > len(data):
            return None
        frame = data[self._fpos : self._fpos + incl_len]
        self._fpos += incl_len
        if incl_len > MAX_RECORD_LEN:
            return PcapEntry(EntryKind.OVERSIZED)
        return self._parse_frame(frame)

    def _parse_frame(self, frame: bytes) -> PcapEntry:
        if len(frame) < ETHERNET_SIZE:
            return PcapEntry(EntryKind.IGNORED)
        ether_type = int.from_bytes(frame[12:14], "big")
        if ether_type == _ETHER_IPV4:
            return self._parse_ipv4(frame, ETHERNET_SIZE)
        if ether_type == _ETHER_IPV6:
            return self._parse_ipv6(frame, ETHERNET_SIZE)
        if ether_type == _ETHER_VLAN:
            inner_offset = ETHERNET_SIZE + VLAN_TAG_SIZE
            if len(frame) < inner_offset:
                return PcapEntry(EntryKind.IGNORED)
            inner_type = int.from_bytes(frame[16:18], "big")
            if inner_type == _ETHER_IPV4:
                return self._parse_ipv4(frame, inner_offset)
            if inner_type == _ETHER_IPV6:
                return self._parse_ipv6(frame, inner_offset)
            return PcapEntry(EntryKind.IGNORED)
        logger.warning("can not parse Ethernet data, type = %x", ether_type)
        return PcapEntry(EntryKind.UNKNOWN)

    def _parse_ipv4(self, frame: bytes, offset: int) -> PcapEntry:
        if len(frame) < offset + IPV4_HEADER_SIZE:
            return PcapEntry(EntryKind.IGNORED)
        return self._parse_transport(frame, frame[offset + 9], offset + IPV4_HEADER_SIZE)

    def _parse_ipv6(self, frame: bytes, offset: int) -> PcapEntry:
        if len(frame) < offset + IPV6_HEADER_SIZE:
            return PcapEntry(EntryKind.IGNORED)
        return self._parse_transport(frame, frame[offset + 6], offset + IPV6_HEADER_SIZE)

    def _parse_transport(self, frame: bytes, protocol: int, offset: int) -> PcapEntry:
        if protocol == _PROTO_UDP and len(frame) >= offset + UDP_HEADER_SIZE:
            _, dst_port, _, _ = _UDP.unpack_from(frame, offset)
            self._udp_destination_port = dst_port
            return PcapEntry(EntryKind.UDP, frame[offset + UDP_HEADER_SIZE :], dst_port)
        if protocol == _PROTO_TCP and len(frame) >= offset + TCP_HEADER_SIZE:
            if self.tcp_callback is None:
                return PcapEntry(EntryKind.IGNORED)
            dst_port = _TCP.unpack_from(frame, offset)[1]
            return PcapEntry(EntryKind.TCP, frame[offset + TCP_HEADER_SIZE :], dst_port)
        return PcapEntry(EntryKind.IGNORED)

    def destination_port(self) -> int:
        """Destination port of the last UDP packet read."""
        return self._udp_destination_port

    def send(self, data: bytes, flags: int = 0) -> int:
        """Nothing is sent; the length is reported as if it were."""
        return len(data)

    def receive(
        self, size: int = MAX_RECORD_LEN, flags: int = 0, timeout: int = 20000
    ) -> Optional[UdpPacket]:
        """Read one record as a packet.

        UDP records give their payload; other records give an empty packet.
        Returns None when no record could be read.
        """
        entry = self.next()
        if entry is None:
            return None
        if entry.kind is EntryKind.UDP:
            return UdpPacket(buffer=entry.payload)
        return UdpPacket()

    def set_socket_buffer_size(self, size: int) -> None:
        """A file has no socket buffer; nothing to do."""