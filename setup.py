"""
Setup script for quizlog.

quizlog is an offline quiz trainer. Exams are drawn from plain-text
question banks, and every outcome and wrong answer is appended to flat
§-delimited files that are rescanned to build statistics, score trends
and the error book.

The 'quizlog' command is the entry point; 'quizlog serve' runs the
persistence API used by the http storage backend.
"""

from setuptools import find_packages, setup

setup(
    name="quizlog",
    version="0.1.0",
    description="Offline quiz trainer with flat-file score and error history",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="quizlog contributors",
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
        # HTTP
        "httpx>=0.25.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
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
            "quizlog=quizlog.cli.main:main",
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
    keywords="quiz exam flat-file cli education",
)
