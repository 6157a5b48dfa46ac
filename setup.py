"""
Setup script for selfstudy-player.

Selfstudy Player is the engine behind the self-study compliance courses
(food hygiene, allergen awareness, and friends). It serves three roles:

1. Course Engine - Sequences modules, runs sampled quizzes, gates completion
2. Progress Keeper - Snapshots learner progress to durable storage
3. Results Courier - Delivers the completion record to the training matrix

The 'selfstudy' command runs a course in the terminal.
"""

from setuptools import find_packages, setup

setup(
    name="selfstudy-player",
    version="1.0.0",
    description="Self-study course player engine with quizzes, gating and results delivery",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Selfstudy",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
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
            "selfstudy=selfstudy.cli.main:run",
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
    keywords="learning self-study course quiz compliance training",
)
