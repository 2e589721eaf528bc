"""RepoRegistry 单元测试"""

from __future__ import annotations

import pytest

from rem.core.exceptions import ValidationError
from rem.core.models import EnvVarAuth, Host, RepoConfig
from rem.services.repo.registry import RepoRegistry, repo_from_uri


class TestRepoRegistry:
    """代码仓注册表测试"""

    @pytest.fixture()
    def reg(self, tmp_path):
        return RepoRegistry(str(tmp_path / "remconf.yml"))

    def test_register_and_lookup_github(self, reg):
        repo = RepoConfig(
            alias="ci", host=Host.GITHUB, owner="acme", name="ci-scripts",
            auth=EnvVarAuth(var="GH_TOKEN"),
        )
        entry = reg.register(repo)
        assert entry == {"host": "github", "owner": "acme", "name": "ci-scripts", "password_env": "GH_TOKEN"}
        assert reg.lookup("ci") == repo

    def test_register_git(self, reg):
        repo = RepoConfig(alias="lib", host=Host.GIT, url="git@example.com:team/lib.git")
        reg.register(repo)
        assert reg.lookup("lib") == repo

    def test_lookup_missing(self, reg):
        assert reg.lookup("nope") is None

    def test_list_all_keeps_alias(self, reg):
        reg.register(RepoConfig(alias="a", host=Host.GITHUB, owner="o", name="other"))
        reg.register(RepoConfig(alias="b", host=Host.GIT, url="https://x.com/b.git"))
        repos = reg.list_all()
        assert [r.alias for r in repos] == ["a", "b"]
        assert repos[0].name == "other"

    def test_remove(self, reg):
        reg.register(RepoConfig(alias="x", host=Host.GIT, url="https://x.com/x.git"))
        assert reg.remove("x") is True
        assert reg.remove("x") is False
        assert reg.lookup("x") is None

    def test_overwrite_same_alias(self, reg):
        reg.register(RepoConfig(alias="x", host=Host.GIT, url="https://x.com/1.git"))
        reg.register(RepoConfig(alias="x", host=Host.GIT, url="https://x.com/2.git"))
        assert reg.lookup("x").url == "https://x.com/2.git"

    def test_secret_never_stored(self, reg, tmp_path, monkeypatch):
        monkeypatch.setenv("GH_TOKEN", "s3cret")
        reg.register(RepoConfig(
            alias="ci", host=Host.GITHUB, owner="o", name="n",
            auth=EnvVarAuth(var="GH_TOKEN", username="bot"),
        ))
        text = (tmp_path / "remconf.yml").read_text(encoding="utf-8")
        assert "s3cret" not in text
        assert "GH_TOKEN" in text

    def test_invalid_alias(self, reg):
        with pytest.raises(ValidationError, match="别名"):
            reg.register(RepoConfig(alias="a b", host=Host.GIT, url="https://x.com/x.git"))

    def test_git_without_url(self, reg):
        with pytest.raises(ValidationError, match="url"):
            reg.register(RepoConfig(alias="x", host=Host.GIT))

    def test_github_without_owner(self, reg):
        with pytest.raises(ValidationError, match="owner/name"):
            reg.register(RepoConfig(alias="x", host=Host.GITHUB, name="n"))

    def test_invalid_env_var(self, reg):
        with pytest.raises(ValidationError, match="环境变量名"):
            reg.register(RepoConfig(
                alias="x", host=Host.GIT, url="https://x.com/x.git", auth=EnvVarAuth(var="1BAD"),
            ))


class TestRepoFromUri:
    def test_github(self):
        repo = repo_from_uri("ci", "https://github.com/acme/ci-scripts.git")
        assert repo.host == Host.GITHUB
        assert (repo.owner, repo.name) == ("acme", "ci-scripts")
        assert repo.api_url == ""
        assert repo.identity == "github:acme/ci-scripts"

    def test_github_rejects_deep_path(self):
        with pytest.raises(ValidationError, match="owner/name"):
            repo_from_uri("ci", "https://github.com/acme/ci/tree/main")

    def test_gitlab_subgroup(self):
        repo = repo_from_uri("ops", "https://gitlab.com/acme/platform/ops-scripts")
        assert repo.host == Host.GITLAB
        assert repo.project == "acme/platform/ops-scripts"

    def test_scp_url_is_git(self):
        repo = repo_from_uri("lib", "git@github.com:acme/lib.git")
        assert repo.host == Host.GIT
        assert repo.url == "git@github.com:acme/lib.git"
        assert repo.identity == "git@github.com:acme/lib.git"

    def test_unknown_https_host_is_git(self):
        assert repo_from_uri("lib", "https://git.example.com/team/lib.git").host == Host.GIT

    def test_self_hosted_github_api_url(self):
        repo = repo_from_uri("ci", "https://ghe.example.com/acme/ci", provider="github")
        assert repo.api_url == "https://ghe.example.com/api/v3"
        assert repo.identity == "github:acme/ci@https://ghe.example.com/api/v3"

    def test_self_hosted_gitlab_api_url(self):
        repo = repo_from_uri("ci", "https://gl.example.com/acme/ci", provider="gitlab")
        assert repo.api_url == "https://gl.example.com"

    def test_explicit_api_url_kept(self):
        repo = repo_from_uri("ci", "https://ghe.example.com/a/b", provider="github", api_url="https://api.ghe.example.com")
        assert repo.api_url == "https://api.ghe.example.com"

    def test_auth(self):
        repo = repo_from_uri("ci", "https://github.com/a/b", username="bot", password_env="GH_PASS")
        assert repo.auth == EnvVarAuth(var="GH_PASS", username="bot")

    def test_username_requires_password_env(self):
        with pytest.raises(ValidationError, match="password_env"):
            repo_from_uri("ci", "https://github.com/a/b", username="bot")

    def test_unknown_provider(self):
        with pytest.raises(ValidationError, match="不支持"):
            repo_from_uri("ci", "https://github.com/a/b", provider="svn")

    def test_api_provider_needs_http(self):
        with pytest.raises(ValidationError, match="http"):
            repo_from_uri("ci", "git@github.com:a/b.git", provider="github")
