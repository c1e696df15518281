import pytest

from optcg_meta.sql import create_all, create_engine
from optcg_meta.stats.formats import clear_format_cache


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite store with every table created."""
    eng = create_engine(f"sqlite:///{tmp_path / 'optcg.db'}")
    create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture(autouse=True)
def _fresh_format_cache():
    clear_format_cache()
    yield
    clear_format_cache()
