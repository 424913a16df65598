[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "j5structure"
version = "0.1.0"
description = "Build the package, service and topic structure of an API from a protobuf-style source image"
requires-python = ">=3.10"
dependencies = []
keywords = ["protobuf", "api", "grpc", "http", "code generation"]
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
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["j5structure"]

[tool.pytest.ini_options]
addopts = "-ra"
