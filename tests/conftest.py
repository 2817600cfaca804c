"""
Shared pytest fixtures.
"""
import pytest

from debdoctor import system_info


@pytest.fixture(autouse=True)
def clear_lru_caches():
    """Prevent lru_cache state from leaking between tests."""
    yield
    system_info.get_system_info.cache_clear()
