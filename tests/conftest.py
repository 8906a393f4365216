# tests/conftest.py
import pytest
import shutil
from pathlib import Path

from flashparse.config import load_settings
from flashparse.models import RiskLevel, ValidationVerdict
from flashparse.templates.catalog import TemplateCatalog


@pytest.fixture(autouse=True)
def isolate_fs(tmp_path: Path, monkeypatch):
    """Prevent tests from accidentally touching real project files."""
    monkeypatch.chdir(tmp_path)
    yield
    # cleanup
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def static_config():
    """Settings with adversarial execution switched off (no child interpreters)."""
    return load_settings({"dynamic_regex_check": False})


@pytest.fixture
def catalog(static_config):
    """Built-in templates certified with the static checks only."""
    return TemplateCatalog.build(config=static_config)


@pytest.fixture
def certified():
    """A passing verdict, for running templates outside a catalog."""
    return ValidationVerdict(passed=True, risk_level=RiskLevel.LOW)
