[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cacheproxy"
version = "0.1.0"
description = "A small caching HTTP forward proxy with an HTTP request parser"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "proxy", "cache", "lru", "parser"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Internet :: WWW/HTTP",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cacheproxy = "cacheproxy.server:main"

[tool.hatch.build.targets.wheel]
packages = ["cacheproxy"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
