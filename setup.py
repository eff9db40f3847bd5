# setup.py

from setuptools import setup, find_packages
from pathlib import Path

readme = Path(__file__).parent / "README.md"
long_description = readme.read_text() if readme.exists() else ""

setup(
    name="agentledger",
    version="0.1.0",
    description="Agent transaction ledger with cached performance metrics, anomaly detection and signed webhooks",
    long_description=long_description,
    long_description_content_type="text/markdown",

    packages=find_packages(exclude=["tests", "tests.*"]),

    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "asyncpg>=0.29.0",
        "redis>=5.0.1",
        "pydantic>=2.0.0",
        "httpx>=0.27.0",
    ],

    extras_require={
        "test": ["pytest>=7.0", "pytest-asyncio>=0.23", "aiosqlite>=0.19"],
        "dev": ["pytest>=7.0", "pytest-asyncio>=0.23", "aiosqlite>=0.19", "black", "mypy"]
    },

    python_requires=">=3.9",

    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ]
)
