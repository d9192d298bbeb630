#!/usr/bin/python3
# Setup file for gitpeek
# Copyright (C) 2026 The gitpeek Authors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

with open("README.rst", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="gitpeek",
    version="0.1.0",
    description="Read-only access to git repositories, in pure Python",
    long_description=long_description,
    long_description_content_type="text/x-rst",
    author="The gitpeek Authors",
    license="Apache-2.0 OR GPL-2.0-or-later",
    keywords=["vcs", "git"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Programming Language :: Python :: Implementation :: CPython",
        "Programming Language :: Python :: Implementation :: PyPy",
        "Operating System :: POSIX",
        "Operating System :: Microsoft :: Windows",
        "Topic :: Software Development :: Version Control",
    ],
    python_requires=">=3.10",
    packages=["gitpeek"],
    package_data={"": ["py.typed"]},
    install_requires=[],
    extras_require={
        "dev": ["ruff==0.14.3", "mypy==1.18.2"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "gitpeek=gitpeek.cli:_main",
        ],
    },
)
