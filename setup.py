# SPDX-License-Identifier: LGPL-3.0-or-later
from setuptools import setup, find_packages

setup(
    name="vmdesk",
    version="0.1.0",
    packages=find_packages(include=["vmdesk", "vmdesk.*"]),
    python_requires=">=3.9",
    install_requires=[l.strip() for l in open("requirements.txt", encoding="utf-8") if l.strip() and not l.startswith("#")],
    extras_require={"test": ["pytest>=7.0"]},
    entry_points={"console_scripts": ["vmdesk=vmdesk.__main__:main"]},
)
