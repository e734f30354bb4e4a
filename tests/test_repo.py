"""Tests for repository identifiers."""

from __future__ import annotations

import pytest

from cred_explorer.exceptions import RepoIdValidationError
from cred_explorer.repo import Repo, repo_id_to_string, string_to_repo_id


class TestRepoIds:
    """Tests for parsing and formatting OWNER/NAME."""

    def test_parse(self):
        assert string_to_repo_id("sourcecred/example-github") == Repo(
            owner="sourcecred", name="example-github"
        )

    def test_format(self):
        repo = Repo(owner="torvalds", name="linux")
        assert repo_id_to_string(repo) == "torvalds/linux"
        assert str(repo) == "torvalds/linux"

    def test_name_may_contain_dots_and_underscores(self):
        assert string_to_repo_id("owner/my_repo.js").name == "my_repo.js"

    @pytest.mark.parametrize(
        "string", ["", "noslash", "a/b/c", "/name", "owner/", "own er/name", "owner/na$me"]
    )
    def test_rejects_malformed(self, string):
        with pytest.raises(RepoIdValidationError):
            string_to_repo_id(string)

    @pytest.mark.parametrize("name", [".", ".."])
    def test_rejects_relative_path_names(self, name):
        with pytest.raises(RepoIdValidationError, match="name"):
            string_to_repo_id(f"owner/{name}")

    def test_direct_construction_is_validated(self):
        with pytest.raises(RepoIdValidationError, match="owner"):
            Repo(owner="bad_owner", name="repo")
