#================================================================================
# Setup.py - Traditional Python Package Setup
# ================================================================================
# Install with: pip install -e .
# Dev/test tools: pip install -e ".[dev]"
#

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="matchpod-backend",
    version="1.0.0",
    author="MatchPod Team",
    author_email="team@matchpod.in",
    description="MatchPod API backend with graceful shutdown",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/matchpod/matchpod-backend",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
    ],
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        "pydantic>=2.4.0",
        "pydantic-settings>=2.0.0",
        "redis[asyncio]>=5.0.1",
        "pymongo>=4.13.0",
        "httpx>=0.25.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=4.1.0",
            "black>=23.11.0",
            "isort>=5.12.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "matchpod-api=matchpod.main:main",
        ],
    },
)
