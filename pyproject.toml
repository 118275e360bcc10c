[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webloghunter"
version = "0.1.0"
description = "Hunt for HTTP attacks in Apache access logs and replay logged requests against a target host"
requires-python = ">=3.10"
keywords = ["apache", "access-log", "security", "attack-detection", "log-analysis", "replay"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Information Technology",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Log Analysis",
    "Topic :: Security",
]
dependencies = [
    "pyyaml>=6.0",
    "requests>=2.28",
    "tqdm>=4.64",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
webloghunter = "webloghunter.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["webloghunter"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
