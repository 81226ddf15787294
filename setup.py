# setup.py
from setuptools import setup, find_packages

setup(
    name="stacklang",
    version="0.1.0",
    description="A homoiconic stack language: lexer, parser, compiler and stepping VM",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "click>=8.0",
    ],
    extras_require={
        "test": ["pytest>=7.0", "hypothesis>=6.0"],
    },
    entry_points={
        "console_scripts": [
            "stack=stacklang.cli:main",
        ],
    },
    zip_safe=False,
)
