"""Package setup for fraud-decision-engine."""

from setuptools import find_packages, setup

with open("README.md", encoding="utf-8") as f:
    long_description = f.read()

with open("requirements.txt", encoding="utf-8") as f:
    requirements = [
        line.strip() for line in f if line.strip() and not line.startswith("#")
    ]

setup(
    name="fraud-decision-engine",
    version="1.0.0",
    description="Decision engine for insurance fraud classification, risk scoring and investigation planning",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["fraud_engine", "fraud_engine.*"]),
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "fraud-engine=fraud_engine.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Financial and Insurance Industry",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Financial",
        "Topic :: Security",
    ],
    keywords="fraud insurance risk-scoring investigation decision-engine",
)
