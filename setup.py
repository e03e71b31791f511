"""
Rehab Platform Python SDK - Package Setup

Setup configuration for PyPI distribution.
"""

from setuptools import setup, find_packages
import os

# Read the README for long description
readme_path = os.path.join(os.path.dirname(__file__), "README.md")
long_description = ""
if os.path.exists(readme_path):
    with open(readme_path, "r", encoding="utf-8") as f:
        long_description = f.read()

version = {}
with open(os.path.join(os.path.dirname(__file__), "rehab_client", "_version.py"), encoding="utf-8") as f:
    exec(f.read(), version)

setup(
    name="rehab-client",
    version=version["__version__"],
    author="Rehab Platform Team",
    author_email="dev@rehabplatform.io",
    description="Python SDK for the Rehab Platform API - clients, programs and therapy sessions",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/rehabplatform/rehab-client-python",
    project_urls={
        "Documentation": "https://docs.rehabplatform.io/sdk/python",
        "Bug Tracker": "https://github.com/rehabplatform/rehab-client-python/issues",
        "Source Code": "https://github.com/rehabplatform/rehab-client-python",
    },
    packages=find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
    python_requires=">=3.8",
    install_requires=[
        "httpx>=0.24.0",
        "click>=8.0.0",
    ],
    extras_require={
        "fastapi": [
            "fastapi>=0.95.0,<0.133.0",
        ],
        "flask": [
            "flask>=2.0.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "hypothesis>=6.0.0",
            "respx>=0.20.0",
            "fastapi>=0.95.0,<0.133.0",
            "flask>=2.0.0",
            "mypy>=1.0.0",
            "black>=23.0.0",
            "isort>=5.0.0",
            "flake8>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rehab=rehab_client.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Healthcare Industry",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Typing :: Typed",
    ],
    keywords="rehabilitation, physiotherapy, healthcare, sdk, api, client",
    package_data={
        "rehab_client": ["py.typed"],
    },
    include_package_data=True,
    zip_safe=False,
)
