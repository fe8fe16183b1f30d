#!/usr/bin/env python3
"""
Setup script for the EDD multiplexing WebSocket client
"""

from setuptools import setup, find_packages

setup(
    name="eddclient",
    version="0.1.0",
    description="Client that multiplexes named channels over one WebSocket connection",
    packages=find_packages(include=["eddwire", "eddwire.*", "eddclient", "eddclient.*"]),
    install_requires=[
        "websockets>=15.0",
        "click>=8.1.7",
        "typer>=0.12.3",
        "rich>=13.9.2",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.4.2",
            "pytest-asyncio>=1.2.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'edd-client=eddclient.edd_cli:main',
        ],
    },
)
