"""Lidar UDP packet structures, fault messages, socket and pcap sources, pcap recording and driver parameters."""

__version__ = "0.1.0"