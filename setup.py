"""
Setup configuration for the Mailway configuration store.

Live-reloading conf.d configuration shared by Mailway services.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = requirements_file.read_text().strip().split("\n") if requirements_file.exists() else [
    "pydantic>=2.0",
    "watchdog>=4.0",
    "PyYAML>=6.0",
]

# Read long description from README if it exists
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="mailway-config",
    version="1.0.0",
    description="Live-reloading conf.d configuration store for Mailway services",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Mailway Team",
    author_email="",
    packages=find_packages(include=["mailway_config", "mailway_config.*"]),
    install_requires=requirements,
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "mailway-config=mailway_config.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
)
