"""
Setup script for the Cube API
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="cube-api",
    version="1.0.0",
    author="Cube Team",
    description="Multi-tenant business management REST API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["cube_api", "cube_api.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Framework :: Flask",
        "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "flask>=2.2.0",
        "werkzeug>=2.2.0",
        "SQLAlchemy>=2.0",
        "PyMySQL>=1.0",
        "PyJWT>=2.8",
        "python-dotenv>=1.0",
        "opentelemetry-api",
        "opentelemetry-sdk",
        "opentelemetry-instrumentation-flask",
        "opentelemetry-exporter-otlp",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-cov>=2.0",
            "black>=21.0",
            "flake8>=3.9",
            "behave",
        ],
    },
    entry_points={
        "console_scripts": [
            "cube-api=cube_api.entrypoint:main",
        ],
    },
)
