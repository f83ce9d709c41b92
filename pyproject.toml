[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "routehttp"
version = "1.0.0"
description = "A small routing HTTP/1.1 server built on a threaded TCP layer"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "server", "routing", "tcp", "thread-pool"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
routehttp-demo = "routehttp.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["routehttp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
