from pathlib import Path

import pytest

from proxyhost.config import _deep_merge, load_config, resolve_logging, resolve_provider
from proxyhost.observability.logging import LogConfig
from proxyhost.providers.gcp.config import GCP

pytestmark = [pytest.mark.unit]


class TestDeepMerge:
    def test_shallow_override(self):
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self):
        base = {"providers": {"gcp": {"zone": "us-central1-a", "project": "p"}}}
        override = {"providers": {"gcp": {"zone": "europe-west1-b"}}}
        result = _deep_merge(base, override)
        assert result == {"providers": {"gcp": {"zone": "europe-west1-b", "project": "p"}}}

    def test_empty_base(self):
        assert _deep_merge({}, {"a": 1}) == {"a": 1}


class TestLoadConfig:
    def test_project_only(self, tmp_path: Path):
        (tmp_path / "proxyhost.toml").write_text('[providers.dev]\ntype = "gcp"\nproject = "p"\n')
        result = load_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")
        assert result["providers"]["dev"]["project"] == "p"

    def test_merge_project_overrides_global(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text('[providers.gcp]\ntype = "gcp"\nzone = "us-east1-b"\nproject = "p"\n')
        project_dir = tmp_path / "project"
        project_dir.mkdir()
        (project_dir / "proxyhost.toml").write_text('[providers.gcp]\nzone = "asia-east1-a"\n')
        result = load_config(project_dir=project_dir, global_path=global_toml)
        assert result["providers"]["gcp"] == {"type": "gcp", "zone": "asia-east1-a", "project": "p"}

    def test_no_files_returns_empty_sections(self, tmp_path: Path):
        result = load_config(project_dir=tmp_path / "nope", global_path=tmp_path / "nope.toml")
        assert result == {"providers": {}}


class TestResolveProvider:
    def test_gcp(self, tmp_path: Path):
        (tmp_path / "proxyhost.toml").write_text(
            '[providers.main]\n'
            'type = "gcp"\n'
            'project = "my-project"\n'
            'zone = "europe-west1-b"\n'
            'poll_interval = 2.5\n'
        )
        config = resolve_provider("main", project_dir=tmp_path, global_path=tmp_path / "x.toml")
        assert config == GCP(project="my-project", zone="europe-west1-b", poll_interval=2.5)
        assert config.type == "gcp"

    def test_missing_provider(self, tmp_path: Path):
        (tmp_path / "proxyhost.toml").write_text('[providers.a]\ntype = "gcp"\n')
        with pytest.raises(KeyError, match="Available: a"):
            resolve_provider("b", project_dir=tmp_path, global_path=tmp_path / "x.toml")

    def test_missing_type(self, tmp_path: Path):
        (tmp_path / "proxyhost.toml").write_text('[providers.a]\nproject = "p"\n')
        with pytest.raises(ValueError, match="missing 'type'"):
            resolve_provider("a", project_dir=tmp_path, global_path=tmp_path / "x.toml")

    def test_unknown_type(self, tmp_path: Path):
        (tmp_path / "proxyhost.toml").write_text('[providers.a]\ntype = "azure"\n')
        with pytest.raises(ValueError, match="Unknown provider type 'azure'"):
            resolve_provider("a", project_dir=tmp_path, global_path=tmp_path / "x.toml")

    def test_negative_poll_interval(self, tmp_path: Path):
        (tmp_path / "proxyhost.toml").write_text('[providers.a]\ntype = "gcp"\npoll_interval = -1\n')
        with pytest.raises(ValueError, match="poll_interval"):
            resolve_provider("a", project_dir=tmp_path, global_path=tmp_path / "x.toml")


class TestResolveLogging:
    def test_defaults(self, tmp_path: Path):
        assert resolve_logging(project_dir=tmp_path, global_path=tmp_path / "x.toml") == LogConfig()

    def test_from_table(self, tmp_path: Path):
        (tmp_path / "proxyhost.toml").write_text('[logging]\nlevel = "DEBUG"\nconsole = true\n')
        config = resolve_logging(project_dir=tmp_path, global_path=tmp_path / "x.toml")
        assert config.level == "DEBUG"
        assert config.console
