"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (storage tree on disk)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# Bank lines: text§A§B§C§D§answer
PHONICS_BANK = "\n".join(
    [
        "选出画线部分发音不同的一项§b-ea-d§m-ea-t§s-ea-t§h-ea-d§D",
        "选出画线部分发音不同的一项§c-a-ke§m-a-ke§h-a-ve§t-a-ke§C",
        "选出画线部分发音不同的一项§b-oo-k§l-oo-k§f-oo-d§c-oo-k§C",
        "Which word is well-known?§apple§well-known§pear§plum§b",
    ]
)

ALGEBRA_BANK = "\n".join(
    [
        "1 + 1 = ?§1§2§3§4§B",
        "2 * 3 = ?§5§6§7§8§B",
    ]
)

# Outcome lines: date§time§subject§topic§correct§wrong§score
OUTCOME_LINES = {
    "Math/2024-01-01_10-00-00.txt": "2024-01-01§10:00:00§Math§Algebra§8§2§80\n",
    "Math/2024-01-02_11-00-00.txt": "2024-01-02§11:00:00§Math§Algebra§9§1§90\n",
}

# Error lines: question§A.opt§B.opt§C.opt§D.opt§answer§你的答案:user
ERROR_LINES = {
    "Math/2024-01-01_10-00-00.txt": (
        "3 + 4 = ?§A.6§B.7§C.8§D.9§B§你的答案:A\n"
        "5 - 2 = ?§A.1§B.2§C.3§D.4§C§你的答案:未作答\n"
    ),
}


def write_tree(root: Path, files: dict[str, str]) -> None:
    """Write ``{relative_path: content}`` under ``root``."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def write_files():
    """Provide write_tree to tests that add files to a storage root."""
    return write_tree


@pytest.fixture
def storage_root(tmp_path):
    """A storage root with two banks, two outcome files and one error file."""
    write_tree(
        tmp_path / "data",
        {
            "英语/语音.txt": PHONICS_BANK,
            "Math/Algebra.txt": ALGEBRA_BANK,
        },
    )
    write_tree(tmp_path / "log", OUTCOME_LINES)
    write_tree(tmp_path / "error", ERROR_LINES)
    return tmp_path


@pytest.fixture
def local_backend(storage_root):
    from quizlog.records import LocalFileBackend

    return LocalFileBackend(storage_root)


@pytest.fixture
def store(local_backend):
    """An unscanned OutcomeStore over the sample tree."""
    from quizlog.records import OutcomeStore

    return OutcomeStore(local_backend)


@pytest.fixture
def sample_question():
    """Provide a sample bank question."""
    from quizlog.bank import Question

    return Question(
        text="选出画线部分发音不同的一项",
        options={"A": "b<u>ea</u>d", "B": "m<u>ea</u>t", "C": "s<u>ea</u>t", "D": "h<u>ea</u>d"},
        correct_answer="D",
    )
