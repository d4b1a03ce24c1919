"""Shared test fixtures and utilities."""

from pathlib import Path

import pytest

from simple_vc.ops import init_project


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Initialize a project in tmp_path and chdir into it.

    Returns:
        (ctx, store, project) tuple
    """
    monkeypatch.chdir(tmp_path)
    return init_project(tmp_path)


@pytest.fixture
def ctx(project):
    return project[0]


@pytest.fixture
def store(project):
    return project[1]


@pytest.fixture
def write_file(tmp_path):
    """Factory fixture to write files relative to tmp_path."""
    def _write(path: str, content: str = "test content"):
        file_path = tmp_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
        return file_path
    return _write


@pytest.fixture
def test_files(write_file):
    """Create common test files in tmp_path."""
    def make_files():
        return {
            "file1.txt": write_file("file1.txt", "content1"),
            "file2.txt": write_file("file2.txt", "content2"),
            "src/main.py": write_file("src/main.py", "print('hello')\n"),
            "data/data.csv": write_file("data/data.csv", "a,b,c\n1,2,3\n"),
        }
    return make_files
