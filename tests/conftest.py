import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import evmcore`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

_CONFIG_ENV_VARS = (
    'EVMCORE_STACK_LIMIT',
    'EVMCORE_MEMORY_LIMIT',
    'EVMCORE_STEP_LIMIT',
    'EVMCORE_TRACE_STEPS',
    'EVMCORE_LOG_LEVEL',
    'EVMCORE_LOG_FORMAT',
)


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless EVMCORE_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    run_slow = _env_flag('EVMCORE_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set EVMCORE_RUN_SLOW=1 to enable'))


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Every test starts from default configuration."""
    from evmcore.config import get_config_manager

    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    manager = get_config_manager()
    manager.reset()
    yield manager
    manager.reset()


@pytest.fixture
def asm():
    """Assemble a list of instruction tuples."""
    from evmcore.assembler import Assembler

    return Assembler.assemble


@pytest.fixture
def run(asm):
    """Assemble and execute a program, returning the ExecutionResult."""
    from evmcore.engine import execute

    def _run(instructions, **kwargs):
        return execute(asm(instructions), **kwargs)

    return _run
