"""
Shared fixtures for the line balancing tests.
"""
import pytest
from fastapi.testclient import TestClient

from linebalancer.balancing.models import MovementEdge, Operation, Style
from linebalancer.feature_flags import FeatureFlags


ENV_VARS = ("LINEBAL_BATCH_MODEL", "LINEBAL_ENABLE_CACHE", "LINEBAL_CACHE_SIZE")


@pytest.fixture(autouse=True)
def reset_feature_flags(monkeypatch):
    """Every test starts from default flags, whatever the environment says."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    FeatureFlags.reset()
    yield
    FeatureFlags.reset()


@pytest.fixture
def jogger_style():
    """Jogger pants: six operations, SAM total 6.962, three 2.0 bottlenecks."""
    return Style(
        name="Jogger Pants",
        operations=(
            Operation(1, "Print logo", "Ink Transfer", 0.429),
            Operation(2, "Press label", "Heat Press Transfer", 0.45),
            Operation(3, "Cut elastic", "Guillotina Neumatica", 0.083),
            Operation(40, "Join side seams", "Seaming Stitch 514", 2.0),
            Operation(43, "Topstitch waistband", "S.N.L.S. 301", 2.0),
            Operation(60, "Trim and inspect", "Manual", 2.0),
        ),
    )


@pytest.fixture
def tshirt_style():
    """Basic T-shirt: seven operations, SAM total 5.8."""
    return Style(
        name="T-Shirt",
        operations=(
            Operation(1, "Cut panels", "Cutting", 0.2),
            Operation(2, "Join shoulders", "Overlock 504", 0.6),
            Operation(3, "Hem sleeves", "Coverstitch 406", 1.2),
            Operation(4, "Attach sleeves", "Overlock 504", 1.5),
            Operation(5, "Close sides", "Overlock 504", 1.0),
            Operation(6, "Attach neck tape", "Flatlock 605", 0.8),
            Operation(7, "Fold and pack", "Manual", 0.5),
        ),
    )


@pytest.fixture
def jogger_with_edges(jogger_style):
    """Jogger with custom movement edges (total 1.2 min)."""
    edges = (
        MovementEdge(1, 2, 0.2),
        MovementEdge(2, 3, 0.1),
        MovementEdge(3, 40, 0.4),
        MovementEdge(40, 43, 0.3),
        MovementEdge(43, 60, 0.2),
        MovementEdge(60, MovementEdge.END_OF_LINE, 0.0),
    )
    return Style(name=jogger_style.name, operations=jogger_style.operations, movement_edges=edges)


@pytest.fixture
def jogger_rows():
    """Jogger operations as REST/CSV rows."""
    return [
        {"step": 1, "operation": "Print logo", "type": "Ink Transfer", "sam": 0.429},
        {"step": 2, "operation": "Press label", "type": "Heat Press Transfer", "sam": 0.45},
        {"step": 3, "operation": "Cut elastic", "type": "Guillotina Neumatica", "sam": 0.083},
        {"step": 40, "operation": "Join side seams", "type": "Seaming Stitch 514", "sam": 2.0},
        {"step": 43, "operation": "Topstitch waistband", "type": "S.N.L.S. 301", "sam": 2.0},
        {"step": 60, "operation": "Trim and inspect", "type": "Manual", "sam": 2.0},
    ]


@pytest.fixture(scope="function")
def test_client():
    """FastAPI test client."""
    from linebalancer.api import app
    return TestClient(app)
