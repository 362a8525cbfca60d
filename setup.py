#!/usr/bin/env python3
"""Setup script for Azure Migrate VM Inventory"""
from setuptools import setup, find_packages

setup(
    name="azure-migrate-inventory",
    version="1.0.0",
    description="Azure VM inventory exporter producing Azure Migrate import CSV files",
    author="Azure Cost Optimization Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "azure-core>=1.26.0",
        "azure-identity>=1.12.0",
        "azure-mgmt-resource>=21.0.0,<26",
        "azure-mgmt-compute>=29.0.0",
        "azure-mgmt-network>=22.0.0",
        "azure-mgmt-monitor>=6.0.0",
        "azure-mgmt-subscription>=3.1.1",
        "azure-monitor-query>=1.2.0",
        "pyyaml>=6.0",
        "rich>=12.0.0",
        "typer>=0.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "azure-migrate-inventory=azure_migrate_inventory.cli.main:main",
        ],
    },
    python_requires=">=3.8",
)
