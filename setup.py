# -*- coding: utf-8 -*-
import os

from setuptools import find_packages, setup

VERSION = "0.1.0"

setup(
    name="django_shortcodes",
    packages=find_packages(exclude=["tests", "tests.*"]),
    version=VERSION,
    description="Bracket-style [shortcodes] for HTML content in Django, with pluggable handlers.",
    long_description=open(
        os.path.join(os.path.dirname(__file__), "README.md"), encoding="utf8"
    ).read(),
    long_description_content_type="text/markdown",
    python_requires=">=3.8",
    install_requires=["Django>=3.2"],
    extras_require={
        "test": ["pytest"],
    },
    license="MIT",
    keywords=["django", "shortcodes", "cms", "html", "content"],
    classifiers=[
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Framework :: Django",
        "Framework :: Django :: 3.2",
        "Framework :: Django :: 4.2",
        "Framework :: Django :: 5.0",
    ],
)
