[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shopsystem"
version = "0.1.0"
description = "A small shop catalogue: a JSON API for products and product types backed by SQLite, and an HTML front end that talks to it."
requires-python = ">=3.10"
keywords = ["shop", "catalogue", "products", "flask", "sqlite", "inventory"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Topic :: Office/Business",
]
dependencies = [
    "flask",
    "requests",
    "pillow",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
shopsystem-api = "shopsystem.server:main"
shopsystem-web = "shopsystem.web:main"

[tool.hatch.build.targets.wheel]
packages = ["shopsystem"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
