"""
Shared fixtures for the LabSync AI test suite.
"""

from unittest.mock import AsyncMock

import pytest

from labsync.services.storage_service import InMemoryRepository, StorageService
from labsync.utils.cache import clear_cache


@pytest.fixture(autouse=True)
def _clear_cache():
    """Provider calls are cached process-wide; start every test cold."""
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def memory_storage():
    """Storage service backed by a fresh in-memory repository."""
    return StorageService(repository=InMemoryRepository())


@pytest.fixture
def fake_llm():
    """LLM client double whose reply is set per test via ``reply``."""
    llm = AsyncMock()

    def reply(content: str):
        llm.generate_text.return_value = {
            "content": content,
            "model": "test-model",
            "provider": "groq",
            "usage": {},
            "fallback_used": False,
        }

    llm.reply = reply
    reply("")
    return llm


@pytest.fixture
def lipid_results():
    return [
        {"name": "Total Cholesterol", "value": 240, "unit": "mg/dL", "status": "high"},
        {"name": "HDL Cholesterol", "value": 45, "unit": "mg/dL", "status": "normal"},
        {"name": "LDL Cholesterol", "value": 160, "unit": "mg/dL", "status": "high"},
        {"name": "Triglycerides", "value": 140, "unit": "mg/dL", "status": "normal"},
    ]
