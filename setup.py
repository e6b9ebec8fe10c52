from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="gotnodes",
    version="1.0.0",
    description="Validator and chain metrics proxy for Ethereum and Avalanche dashboards",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="GotNodes Team",
    author_email="team@gotnodes.xyz",
    url="https://github.com/gotnodes/gotnodes",
    packages=find_packages(exclude=["examples"]),
    install_requires=[
        "requests>=2.25.0",
        "click>=8.0.0",
        "urllib3>=1.26.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.22.0",
        "pydantic>=2.0.0",
        "python-dotenv>=1.0.0",
        "beautifulsoup4>=4.9.0"
    ],
    extras_require={
        "dev": [
            "pytest>=6.0.0",
            "pytest-cov>=2.0.0",
            "httpx>=0.24.0",
            "black>=21.0.0",
            "flake8>=3.8.0",
            "mypy>=0.800"
        ]
    },
    entry_points={
        'console_scripts': [
            'gotnodes=gotnodes.cli:cli',
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Framework :: FastAPI",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Topic :: System :: Monitoring",
    ],
)
