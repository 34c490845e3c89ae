"""
Fixtures for the restspec test suite.
"""

import pytest

from restspec import RestApplication
from tests.models import API_INFO


@pytest.fixture
def app():
    """An application with document metadata, so startup() is allowed."""
    return RestApplication({"info": API_INFO})


@pytest.fixture
def bare_app():
    """An application that neither serves nor writes its document."""
    return RestApplication({"doc_route": None})
