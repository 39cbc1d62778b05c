import pytest

from graph_portal_core.extractor import RelationshipExtractor
from graph_portal_core.layout import LayoutEngine


# Keep developer .env settings out of the tests
@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    monkeypatch.delenv("GRAPH_EXPORT_FONT", raising=False)
    monkeypatch.delenv("GRAPH_DEDUPLICATE_EDGES", raising=False)


@pytest.fixture
def extractor():
    return RelationshipExtractor()


@pytest.fixture
def engine():
    return LayoutEngine()

