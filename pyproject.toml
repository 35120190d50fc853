[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gifgrep"
version = "0.2.3"
description = "Decode GIFs into PNG frames, extract stills and contact sheets, and render GIF results with inline terminal thumbnails."
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = ["gif", "png", "terminal", "kitty", "iterm2", "contact-sheet", "thumbnails"]
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
    "Topic :: Multimedia :: Graphics",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gifgrep"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
