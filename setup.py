"""
UTXO Indexer - Setup Configuration
====================================
Package installation configuration.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_file.exists():
    with open(requirements_file) as f:
        requirements = [
            line.strip()
            for line in f
            if line.strip() and not line.startswith('#') and not line.startswith('-r')
        ]

setup(
    name="utxo-indexer",
    version="1.0.0",
    author="UTXO Indexer Team",
    description="UTXO ledger indexer: block validation, balances and rollback",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "docs", "scripts"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Database",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Typing :: Typed",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.25.0",
            "black>=23.11.0",
            "mypy>=1.7.0",
            "ruff>=0.1.6",
        ],
    },
    entry_points={
        "console_scripts": [
            "utxo-indexer=utxo_indexer.cli.main:app",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        "utxo",
        "ledger",
        "indexer",
        "blockchain",
        "sqlite",
    ],
)
