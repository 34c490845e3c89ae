"""
Setup configuration for the restspec package.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="restspec",
    version="0.1.0",
    author="restspec Contributors",
    author_email="contributors@restspec.example.com",
    description="Build OpenAPI 3.0 documents from route declarations and validate requests with the same pydantic schemas",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/restspec",
    packages=find_packages(include=["restspec", "restspec.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Internet :: WWW/HTTP",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-cov",
            "ruff",
            "mypy",
            "openapi-spec-validator>=0.7.0",
        ],
    },
    project_urls={
        "Bug Reports": "https://github.com/yourusername/restspec/issues",
        "Source": "https://github.com/yourusername/restspec",
    },
)
