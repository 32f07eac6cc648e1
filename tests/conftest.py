"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

# Never touch the on-disk store from tests
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
from unittest.mock import MagicMock

from config.storage import MemoryStore
from integrations.print_queue import PrintQueueClient
from services.inventory_store import InventoryStore
from services.staging_service import StagingService


CATALOG_CSV = (
    "sku,Name,Price,Cost\n"
    "A1,Widget,$10.00,$4.00\n"
    "B2,Gadget,$25.00,$20.00\n"
    "A10,Widget Pro,$12.00,\n"
)


# ===================
# STORAGE
# ===================

@pytest.fixture
def memory_store() -> MemoryStore:
    """Fresh in-memory key-value store."""
    return MemoryStore()


@pytest.fixture
def inventory_store(memory_store) -> InventoryStore:
    """Typed store over the in-memory backend."""
    return InventoryStore(memory_store)


# ===================
# SERVICE
# ===================

@pytest.fixture
def print_queue() -> MagicMock:
    """Print queue double; inspect notify_staged.call_args_list."""
    client = MagicMock(spec=PrintQueueClient)
    client.notify_staged.return_value = True
    return client


@pytest.fixture
def service(inventory_store, print_queue) -> StagingService:
    """StagingService with empty storage."""
    return StagingService(store=inventory_store, print_queue=print_queue)


@pytest.fixture
def catalog_csv() -> str:
    return CATALOG_CSV


@pytest.fixture
def loaded_service(service, catalog_csv) -> StagingService:
    """StagingService with the sample catalog uploaded."""
    service.import_catalog(catalog_csv)
    return service


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(service):
    """
    FastAPI test client backed by the in-memory service.

    Usage:
        def test_endpoint(test_client, service):
            response = test_client.get("/api/staged")
    """
    from fastapi.testclient import TestClient
    import services.staging_service as module
    from main import app

    module._staging_service = service
    yield TestClient(app)
    module._staging_service = None
