[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "spheretrace"
version = "0.1.0"
description = "Pure-Python image encoders for PNG, BMP, TGA, Radiance HDR and baseline JPEG"
requires-python = ">=3.10"
dependencies = []
keywords = ["png", "bmp", "tga", "hdr", "jpeg", "deflate", "image writer", "rendering"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["spheretrace"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
