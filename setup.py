"""
Setup script for mathezoo-core.

MatheZoo core is the adaptive engine behind the MatheZoo math-practice
platform for primary school children. It covers:

1. Diagnosis - cognitive snapshot and ZPD level from recent attempts
2. Progression - 100-level streak-based state machine with knowledge gaps
3. Practice - structured task packages and strategy detection

The 'mathezoo' command exposes the engine for inspection and simulation.
"""

from setuptools import find_packages, setup

setup(
    name="mathezoo-core",
    version="1.0.0",
    description="Adaptive diagnosis and level progression engine for early arithmetic practice",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="MatheZoo",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mathezoo=mathezoo.cli.mathezoo_cli:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="education arithmetic adaptive-learning diagnosis zpd",
)
