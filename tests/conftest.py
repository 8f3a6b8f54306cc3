import pytest

from wfibe.core import setup
from wfibe.group import GroupContext


@pytest.fixture(scope="session")
def ctx():
    return GroupContext("SS512")


@pytest.fixture(scope="session")
def small():
    """n=6, m=5 system; cheap enough for most tests."""
    return setup(6, 5)


@pytest.fixture(scope="module")
def full():
    """n=m=64 system, the deployment default."""
    return setup(64, 64)
