"""Writes lidar packets to pcap capture files."""

from __future__ import annotations

import logging
import queue
import struct
import threading
import time
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Union

from .pcap_source import DEFAULT_PORT, pcap_file_header, tcp_header, udp_header
from .source import UdpPacket

logger = logging.getLogger(__name__)

MAX_PACKET_SIZE = 1500
UDP_HEADER_LEN = len(udp_header(0))
TCP_HEADER_LEN = len(tcp_header(0))
DEFAULT_TCP_CHUNK = MAX_PACKET_SIZE - TCP_HEADER_LEN
CACHE_CAPACITY = 32 * 1024

_RECORD = struct.Struct("<IIII")
_US_PER_DAY = 86400 * 1_000_000

PacketLike = Union[UdpPacket, bytes, bytearray, memoryview]


def _time_of_day() -> tuple:
    """Seconds and microseconds elapsed since the start of the current UTC day."""
    micros = (time.time_ns() // 1000) % _US_PER_DAY
    return divmod(micros, 1_000_000)


def _payload(packet: PacketLike) -> bytes:
    if isinstance(packet, UdpPacket):
        return bytes(packet.buffer)
    return bytes(packet)


def _check_fits(payload_len: int, header_len: int) -> None:
    if payload_len + header_len > MAX_PACKET_SIZE:
        raise ValueError(
            f"payload of {payload_len} bytes does not fit a {MAX_PACKET_SIZE}-byte frame"
        )


def _write_record(out: BinaryIO, frame: bytes, sec: int = 0, usec: int = 0) -> None:
    out.write(_RECORD.pack(sec, usec, len(frame), len(frame)))
    out.write(frame)


class PcapSaver:
    """Records packets into a pcap file, either streamed in the background or saved at once."""

    def __init__(self, pcap_path: Union[str, Path] = "") -> None:
        self.pcap_path = str(pcap_path)
        self.tcp_dumped = False
        self._file: Optional[BinaryIO] = None
        self._cache: "queue.Queue[tuple]" = queue.Queue(maxsize=CACHE_CAPACITY)
        self._dumping = False
        self._write_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Open ``pcap_path`` for writing and start recording dumped packets.

        Raises OSError when the file cannot be opened.
        """
        self.close()
        try:
            self._file = open(self.pcap_path, "wb")
        except OSError:
            logger.error('Fail to open .pcap file: "%s"', self.pcap_path)
            raise
        self._file.write(pcap_file_header())
        self._dumping = True
        self._thread = threading.Thread(target=self._run, name="pcap-saver", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while self._dumping or not self._cache.empty():
            while True:
                try:
                    port, data = self._cache.get_nowait()
                except queue.Empty:
                    break
                sec, usec = _time_of_day()
                with self._write_lock:
                    if self._file is not None:
                        _write_record(self._file, udp_header(len(data), port) + data, sec, usec)
            time.sleep(0.001)

    def dump(self, data: bytes, port: int = DEFAULT_PORT) -> None:
        """Queue a UDP payload to be recorded; blocks while the queue is full."""
        payload = bytes(data)
        _check_fits(len(payload), UDP_HEADER_LEN)
        udp_header(len(payload), port)
        self._cache.put((port, payload))

    def tcp_dump(
        self,
        data: bytes,
        max_packet_len: int = DEFAULT_TCP_CHUNK,
        port: int = DEFAULT_PORT,
    ) -> None:
        """Record data as TCP segments of at most ``max_packet_len`` bytes each.

        Queued UDP packets are held back until all segments are written.
        """
        if max_packet_len <= 0:
            raise ValueError("max_packet_len must be positive")
        _check_fits(max_packet_len, TCP_HEADER_LEN)
        payload = bytes(data)
        with self._write_lock:
            if self._file is None:
                raise RuntimeError("saver is not started")
            for offset in range(0, len(payload), max_packet_len):
                chunk = payload[offset : offset + max_packet_len]
                sec, usec = _time_of_day()
                _write_record(self._file, tcp_header(len(chunk), port) + chunk, sec, usec)

    def save_frame(
        self,
        record_path: Union[str, Path],
        packets: Iterable[PacketLike],
        port: int = DEFAULT_PORT,
    ) -> None:
        """Append packets to ``record_path``, writing a file header if it is new."""
        path = Path(record_path)
        is_new = not path.exists()
        try:
            out = open(path, "ab")
        except OSError:
            logger.error('Fail to open .pcap file: "%s"', path)
            raise
        with out:
            if is_new:
                out.write(pcap_file_header())
            for packet in packets:
                data = _payload(packet)
                _check_fits(len(data), UDP_HEADER_LEN)
                _write_record(out, udp_header(len(data), port) + data)

    def save_frames(
        self,
        record_path: Union[str, Path],
        frames: Iterable[Iterable[PacketLike]],
        port: int = DEFAULT_PORT,
    ) -> None:
        """Append several frames in order; stops at the first that fails."""
        for frame in frames:
            self.save_frame(record_path, frame, port)

    def close(self) -> None:
        """Stop recording, writing out anything still queued, and close the file."""
        self._dumping = False
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        with self._write_lock:
            if self._file is not None:
                self._file.close()
                self._file = None
        self.tcp_dumped = False

    def __enter__(self) -> "PcapSaver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()