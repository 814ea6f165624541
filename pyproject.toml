[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hslidar"
version = "0.1.0"
description = "Packet structures, pcap reading and writing, UDP sources and driver parameters for lidar UDP streams"
requires-python = ">=3.10"
dependencies = []
keywords = ["lidar", "udp", "pcap", "packet", "protocol", "sensor"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hslidar"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
