"""Test configuration file discovery."""

from pathlib import Path

import pytest

from keyman.utils.config import config_file_candidates, find_git_root, find_toml_config_file
from keyman.utils.xdg import get_keyman_config_dir


class TestFindGitRoot:
    def test_finds_enclosing_repository(self, tmp_path: Path) -> None:
        repo = tmp_path / "repo"
        nested = repo / "src" / "pkg"
        nested.mkdir(parents=True)
        (repo / ".git").mkdir()

        assert find_git_root(nested) == repo.resolve()


class TestFindTomlConfigFile:
    def test_nothing_found(self) -> None:
        assert find_toml_config_file() is None

    def test_local_file_wins(self, tmp_path: Path, isolated_environment: Path) -> None:
        (tmp_path / ".keyman.toml").write_text("", encoding="utf-8")
        user_dir = isolated_environment / "keyman"
        user_dir.mkdir()
        (user_dir / "config.toml").write_text("", encoding="utf-8")

        assert find_toml_config_file() == tmp_path / ".keyman.toml"

    def test_repository_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        repo = tmp_path / "repo"
        workdir = repo / "sub"
        workdir.mkdir(parents=True)
        (repo / ".git").mkdir()
        (repo / "keyman.toml").write_text("", encoding="utf-8")
        monkeypatch.chdir(workdir)

        assert find_toml_config_file() == repo.resolve() / "keyman.toml"

    def test_user_file(self, isolated_environment: Path) -> None:
        user_dir = isolated_environment / "keyman"
        user_dir.mkdir()
        (user_dir / "config.toml").write_text("", encoding="utf-8")

        assert find_toml_config_file() == user_dir / "config.toml"
        assert get_keyman_config_dir() == user_dir

    def test_candidate_order(self, tmp_path: Path, isolated_environment: Path) -> None:
        candidates = config_file_candidates()

        assert candidates[0] == tmp_path / ".keyman.toml"
        assert candidates[-1] == isolated_environment / "keyman" / "config.toml"
