"""Configuration for the driver, its input source and the packet decoder."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

NULL_TOPIC = "your topic name"


class SourceType(IntEnum):
    """Where packet data comes from."""

    DATA_FROM_LIDAR = 1
    DATA_FROM_PCAP = 2
    DATA_FROM_ROS_PACKET = 3


class PtcMode(IntEnum):
    """Transport used for the PTC control channel."""

    TCP = 0
    TCP_SSL = 1


class UseTimestampType(IntEnum):
    """Which clock stamps a decoded frame."""

    POINT_CLOUD_TIMESTAMP = 0
    SDK_RECV_TIMESTAMP = 1


def _check_port(name: str, value: int) -> None:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"{name} must be in 0..65535, got {value}")


@dataclass
class TransformParam:
    """Rigid transform applied to points; metres and radians."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0


@dataclass
class DecoderParam:
    """Decoder settings."""

    transform_param: TransformParam = field(default_factory=TransformParam)
    thread_num: int = 1
    enable_udp_thread: bool = True
    enable_parser_thread: bool = True
    pcap_play_synchronization: bool = True
    # A new frame starts when the azimuth passes this value; range [0, 360),
    # negative to disable.
    frame_start_azimuth: float = 1.0
    # Packet loss detection; parsing is disabled while it is on.
    enable_packet_loss_tool: bool = False
    use_timestamp_type: UseTimestampType = UseTimestampType.POINT_CLOUD_TIMESTAMP
    fov_start: int = -1
    fov_end: int = -1

    def __post_init__(self) -> None:
        self.use_timestamp_type = UseTimestampType(self.use_timestamp_type)


@dataclass
class InputParam:
    """Where and how packets are read."""

    ptc_mode: PtcMode = PtcMode.TCP
    source_type: SourceType = SourceType.DATA_FROM_PCAP
    device_ip_address: str = "Your lidar ip"
    multicast_ip_address: str = ""
    host_ip_address: str = "Your host ip"
    udp_port: int = 2368
    ptc_port: int = 9347
    read_pcap: bool = True
    pcap_path: str = "Your pcap file path"
    correction_file_path: str = "Your correction file path"
    firetimes_path: str = "Your firetime file path"
    cert_file: Optional[str] = None
    private_key_file: Optional[str] = None
    ca_file: Optional[str] = None
    standby_mode: int = -1
    speed: int = -1
    send_packet_ros: bool = False
    send_point_cloud_ros: bool = False
    frame_id: str = ""
    ros_send_packet_topic: str = NULL_TOPIC
    ros_send_point_topic: str = NULL_TOPIC
    ros_send_packet_loss_topic: str = NULL_TOPIC
    ros_send_ptp_topic: str = NULL_TOPIC
    ros_send_correction_topic: str = NULL_TOPIC
    ros_send_firetime_topic: str = NULL_TOPIC
    ros_recv_correction_topic: str = NULL_TOPIC
    ros_recv_packet_topic: str = NULL_TOPIC

    def __post_init__(self) -> None:
        self.ptc_mode = PtcMode(self.ptc_mode)
        self.source_type = SourceType(self.source_type)
        _check_port("udp_port", self.udp_port)
        _check_port("ptc_port", self.ptc_port)


@dataclass
class DriverParam:
    """Top-level driver settings."""

    input_param: InputParam = field(default_factory=InputParam)
    decoder_param: DecoderParam = field(default_factory=DecoderParam)
    frame_id: str = "hesai"
    lidar_type: str = "AT128"
    log_level: frozenset = frozenset({"debug", "info"})
    log_target: frozenset = frozenset({"console", "file"})
    log_path: str = "./log.log"