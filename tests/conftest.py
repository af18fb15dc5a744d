import pytest

from helpers import CollectingLogger

@pytest.fixture
def logger():
    return CollectingLogger()
