[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "subclient"
version = "0.1.0"
description = "Client toolkit for Substrate-style chains: metadata hashing, constant lookup, block access and runtime updates"
requires-python = ">=3.10"
dependencies = []
keywords = ["substrate", "metadata", "blockchain", "rpc", "scale", "xxhash", "twox"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["subclient"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
