[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flowscope"
version = "0.1.0"
description = "Connection records, flow gap tracking, byte-stream chunking and cycle timers for network traffic analysis"
requires-python = ">=3.10"
keywords = ["network", "traffic", "connections", "tcp", "monitoring", "flows"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["flowscope"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
