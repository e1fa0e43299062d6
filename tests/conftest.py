import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'rulegate' and tests/ importable for 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from rulegate.core.config import RulesetConfig, parse_config
from rulegate.core.engine import RuleEngine
from rulegate.core.expressions import CelExpressionEngine
from rulegate.core.logging_setup import reset_logging_for_tests
from rulegate.data import clear_caches, get_data_path

from helpers.configs import base_document
from helpers.engines import RecordingExpressionEngine
from helpers.io_utils import write_yaml


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch):
    """Environment variables and logging handlers must not leak between tests."""
    monkeypatch.delenv("RULEGATE_ENV", raising=False)
    monkeypatch.delenv("RULEGATE_LOG_LEVEL", raising=False)
    reset_logging_for_tests()
    yield
    reset_logging_for_tests()
    clear_caches()


@pytest.fixture
def example_config_path() -> Path:
    """The example configuration bundled with the package."""
    return get_data_path("examples", "rules.yml")


@pytest.fixture
def document() -> Dict[str, Any]:
    """A fresh, minimal but complete configuration document."""
    return base_document()


@pytest.fixture
def recording_engine() -> RecordingExpressionEngine:
    return RecordingExpressionEngine(CelExpressionEngine())


@pytest.fixture
def build_engine(recording_engine: RecordingExpressionEngine) -> Callable[..., RuleEngine]:
    """Build a RuleEngine from a document using the recording CEL engine."""

    def _build(doc: Dict[str, Any], environment: str = "") -> RuleEngine:
        config: RulesetConfig = parse_config(doc)
        return RuleEngine(config, recording_engine, environment=environment)

    return _build


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Write a configuration document to a YAML file under tmp_path."""

    def _write(doc: Dict[str, Any], name: str = "rules.yml") -> Path:
        path = tmp_path / name
        write_yaml(path, doc, sort_keys=False)
        return path

    return _write
