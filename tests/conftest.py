"""Shared pytest fixtures"""

import logging

import pytest

from fakes import make_context


@pytest.fixture
def context():
    return make_context()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """configure_logging attaches handlers to the package logger; drop them after each test"""
    yield
    logger = logging.getLogger("azure_migrate_inventory")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
