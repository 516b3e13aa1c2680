"""Minimal setup.py for retirement_risk package."""

import os
from pathlib import Path

from setuptools import find_packages, setup

# Read the version from _version.py
__version__ = ""
exec(open(os.path.join("retirement_risk", "_version.py")).read())

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="retirement_risk",
    version=__version__,
    description="Monte Carlo household retirement success and portfolio confidence bands",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["retirement_risk", "retirement_risk.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Financial and Insurance Industry",
        "Topic :: Office/Business :: Financial :: Investment",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.11",
    install_requires=[
        "numpy>=2.3.2",
        "pandas>=2.3.2",
        "pydantic>=2.11.7",
        "pyyaml>=6.0.2",
        "psutil>=5.9.0",
        "tqdm>=4.66.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.4.1",
            "pytest-cov>=6.2.1",
            "pytest-xdist>=3.8.0",
            "pylint>=3.3.8",
            "black>=25.1.0",
            "mypy>=1.17.1",
            "isort>=6.0.1",
            "types-PyYAML>=6.0.0",
            "types-psutil>=5.9.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "retirement-risk=retirement_risk.cli:main",
        ],
    },
    package_data={"retirement_risk": ["data/parameters/*.yaml"]},
    include_package_data=True,
    zip_safe=False,
)
