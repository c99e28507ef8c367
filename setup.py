from setuptools import setup, find_packages

setup(
    name="sift",
    version="0.1.0",
    description="Sift - Article Triage Confidence Engine",
    author="Keith Teare",
    author_email="keith@teare.com",
    url="https://thatwastheweek.com",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy>=1.21.0",
        "beautifulsoup4>=4.10.0",
        "tqdm>=4.62.0",
        "backoff>=1.11.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "sift=sift.cli:main",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
)
