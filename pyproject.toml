[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "polonius"
version = "0.1.0"
description = "A Datalog-based borrow checking engine: computes loan errors, subset errors and move errors from input facts"
requires-python = ">=3.10"
dependencies = []
keywords = ["borrow-checker", "datalog", "static-analysis", "liveness", "compiler"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["polonius"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
