[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mifarekit"
version = "0.1.0"
description = "MIFARE DESFire cryptography, key derivation, TLV encoding and Ultralight/NTAG21x tag operations"
requires-python = ">=3.10"
dependencies = [
    "pycryptodome",
]
keywords = ["mifare", "desfire", "ultralight", "ntag", "nfc", "cmac", "tlv", "an10922"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mifarekit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
