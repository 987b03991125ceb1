[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stockhub"
version = "0.1.0"
description = "Inventory management HTTP service for hubs, SKUs and stock levels, backed by a SQL database and a Redis cache"
requires-python = ">=3.10"
keywords = ["inventory", "warehouse", "sku", "hub", "flask", "redis", "sqlalchemy"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: Flask",
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
dependencies = [
    "sqlalchemy>=2.0",
    "flask>=2.3",
    "redis>=4.5",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
stockhub = "stockhub.app:main"

[tool.hatch.build.targets.wheel]
packages = ["stockhub"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
