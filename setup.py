#!/usr/bin/env python
"""Setup script for the forge_request package."""

from setuptools import setup, find_packages

setup(
    name="forge_request",
    version="0.1.0",
    description="Content negotiated server request wrapper for the Forge Framework",
    author="Forge Framework",
    author_email="forge@example.com",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "multidict>=6.0",
        "orjson>=3.9",
        "pyyaml>=6.0",
        "typing-extensions>=4.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-cov",
        ],
    },
    python_requires=">=3.8",
)
