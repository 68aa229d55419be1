import pytest

from sessions import ENGINES


@pytest.fixture(params=sorted(ENGINES))
def make_session(request):
    """Session class for each engine; tests open one session per puzzle."""
    return ENGINES[request.param]


@pytest.fixture
def session(make_session):
    with make_session() as s:
        yield s
