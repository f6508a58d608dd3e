"""
Tests for configuration loading, overrides and validation.
"""

import json

import pytest

from compat_probe.cli_config import (
    ProbeConfig,
    apply_config_data,
    create_sample_config,
    get_config,
    load_config,
    load_config_file,
    reset_config,
    validate_config_values,
)
from compat_probe.error_handling import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch):
    for key in (
        "COMPAT_PROBE_MAVEN",
        "COMPAT_PROBE_REPOSITORY_URL",
        "COMPAT_PROBE_LOCAL_REPOSITORY",
        "COMPAT_PROBE_CONNECT_TIMEOUT",
        "COMPAT_PROBE_READ_TIMEOUT",
        "COMPAT_PROBE_ON_MISSING",
        "COMPAT_PROBE_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestDefaults:
    def test_defaults_match_plain_maven_run(self):
        config = ProbeConfig()

        assert config.build.maven_executable == "mvn"
        assert config.build.goals == ["clean", "compile", "--fail-at-end"]
        assert config.resolver.repository_url == "https://repo1.maven.org/maven2"
        assert config.resolver.local_repository == "local-repo"
        assert config.mutation.on_missing == "ignore"
        assert config.mutation.replace_existing_plugins is False
        assert validate_config_values(config) == []

    def test_goals_are_not_shared_between_instances(self):
        first = ProbeConfig()
        first.build.goals.append("-o")
        assert ProbeConfig().build.goals == ["clean", "compile", "--fail-at-end"]

    def test_sample_config_is_json_of_defaults(self):
        assert json.loads(create_sample_config()) == ProbeConfig().to_dict()


class TestLoading:
    def test_json_file(self, temp_dir, clean_env):
        path = temp_dir / "probe.json"
        path.write_text(
            json.dumps({"build": {"maven_executable": "/opt/mvn"}, "mutation": {"on_missing": "fail"}}),
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.build.maven_executable == "/opt/mvn"
        assert config.mutation.on_missing == "fail"
        assert get_config() is config

    def test_toml_file(self, temp_dir, clean_env):
        path = temp_dir / "probe.toml"
        path.write_text(
            '[resolver]\nrepository_url = "https://mirror.example.org/maven2"\nread_timeout = 5.0\n',
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.resolver.repository_url == "https://mirror.example.org/maven2"
        assert config.resolver.read_timeout == 5.0

    def test_unreadable_file_returns_none(self, temp_dir):
        path = temp_dir / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        assert load_config_file(path) is None
        assert load_config_file(temp_dir / "absent.json") is None

    def test_explicit_unloadable_file_is_an_error(self, temp_dir, clean_env):
        broken = temp_dir / "broken.json"
        broken.write_text("{not json", encoding="utf-8")
        unsupported = temp_dir / "probe.yaml"
        unsupported.write_text("build: {}\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Could not load config"):
            load_config(broken)
        with pytest.raises(ConfigurationError):
            load_config(unsupported)

    def test_discovered_unloadable_file_is_skipped(self, temp_dir, clean_env):
        (temp_dir / ".compat-probe.json").write_text("{not json", encoding="utf-8")
        clean_env.chdir(temp_dir)

        assert load_config().build.maven_executable == "mvn"

    def test_unknown_keys_are_ignored(self):
        config = ProbeConfig()
        apply_config_data(config, {"build": {"bogus": 1}, "other": {"x": 1}})

        assert not hasattr(config.build, "bogus")

    def test_invalid_values_fall_back_to_defaults(self, temp_dir, clean_env):
        path = temp_dir / "probe.json"
        path.write_text(
            json.dumps(
                {
                    "resolver": {"repository_url": "ftp://example.org", "connect_timeout": -1},
                    "build": {"maven_executable": "/opt/mvn"},
                }
            ),
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.resolver.repository_url == "https://repo1.maven.org/maven2"
        assert config.resolver.connect_timeout == 10.0
        assert config.build.maven_executable == "/opt/mvn"

    def test_global_config_is_cached_until_reset(self, clean_env):
        first = get_config()
        assert get_config() is first

        reset_config()
        assert get_config() is not first


class TestEnvironmentOverrides:
    def test_environment_wins_over_file(self, temp_dir, clean_env):
        path = temp_dir / "probe.json"
        path.write_text(json.dumps({"build": {"maven_executable": "/from/file"}}), encoding="utf-8")
        clean_env.setenv("COMPAT_PROBE_MAVEN", "/from/env")
        clean_env.setenv("COMPAT_PROBE_ON_MISSING", "FAIL")
        clean_env.setenv("COMPAT_PROBE_LOCAL_REPOSITORY", str(temp_dir / "cache"))
        clean_env.setenv("COMPAT_PROBE_CONNECT_TIMEOUT", "2.5")
        clean_env.setenv("COMPAT_PROBE_LOG_LEVEL", "debug")

        config = load_config(path)

        assert config.build.maven_executable == "/from/env"
        assert config.mutation.on_missing == "fail"
        assert config.resolver.local_repository == str(temp_dir / "cache")
        assert config.resolver.connect_timeout == 2.5
        assert config.logging.log_level == "DEBUG"

    def test_invalid_number_is_ignored(self, temp_dir, clean_env):
        clean_env.setenv("COMPAT_PROBE_READ_TIMEOUT", "soon")
        path = temp_dir / "empty.json"
        path.write_text("{}", encoding="utf-8")

        assert load_config(path).resolver.read_timeout == 60.0


class TestValidation:
    def test_reports_each_problem(self):
        config = ProbeConfig()
        config.build.goals = []
        config.mutation.on_missing = "maybe"
        config.logging.log_level = "LOUD"

        errors = validate_config_values(config)

        assert len(errors) == 3
        assert any(error.startswith("build.goals") for error in errors)
        assert any(error.startswith("mutation.on_missing") for error in errors)
        assert any(error.startswith("logging.log_level") for error in errors)
