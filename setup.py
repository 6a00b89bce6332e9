"""
layerfs (Layered Virtual Filesystem) - Setup Configuration

A virtual filesystem with in-memory, host, static-asset, root-translated
and union-overlay backends, in blocking and asyncio forms.

License: Apache-2.0
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Core dependencies
core_deps = [
    # Settings validation
    "pydantic>=2.11.9",
]

# Test dependencies
test_deps = [
    "pytest>=8.4.1",
    "pytest-asyncio>=1.0.0",
    "pytest-mock>=3.14.1",
    "pytest-cov>=6.2.1",
]

# Development dependencies
dev_deps = [
    # Code quality
    "black>=25.0.0",
    "flake8>=7.1.0",
    "mypy>=1.13.0",
]

setup(
    name="layerfs",
    version="0.1.0",

    # Package description
    description="A layered virtual filesystem with memory, host, altroot and overlay backends",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package discovery
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    # Python version requirement
    python_requires=">=3.9",

    # Dependencies
    install_requires=core_deps,

    # Optional dependencies (extras)
    extras_require={
        # Testing only
        "test": test_deps,

        # Development: testing + code quality
        "dev": test_deps + dev_deps,
    },

    # PyPI classifiers
    classifiers=[
        # Development status
        "Development Status :: 4 - Beta",

        # Audience
        "Intended Audience :: Developers",

        # License
        "License :: OSI Approved :: Apache Software License",

        # OS
        "Operating System :: OS Independent",

        # Python versions
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",

        # Topics
        "Topic :: System :: Filesystems",
        "Topic :: Software Development :: Libraries :: Python Modules",

        # Framework
        "Framework :: AsyncIO",
    ],

    # Keywords for PyPI search
    keywords=[
        "vfs", "virtual-filesystem", "overlay", "union", "filesystem",
        "in-memory", "asyncio",
    ],

    # License
    license="Apache-2.0",

    # Package data
    include_package_data=True,
    zip_safe=False,
)
