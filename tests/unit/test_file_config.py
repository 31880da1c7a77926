"""
Project File Configuration Unit Tests
Tests for core/config/runtime.py

Tests:
- YAML loading (camelCase keys, empty files, invalid documents)
- Environment overrides
- Validation of pipeline name and steps
- Conversion into Configuration options
- Config file discovery
"""
import pytest

from core.config import LIFECYCLE_STEPS, FileConfig, env_options, find_config_file, load_file_config, new_config
from core.context import MappingEnvironment
from core.schemas.errors import InvalidConfigException
from pipelines import Step


SAMPLE_YAML = """
pipeline:
  name: docker-go
  environment: staging
  coverage: 85
  goVersion: "1.22"
  steps: [setup, build, tag, push]
registry:
  baseUrl: registry.gitlab.com/syntegrity
  image: docker-go
  user: deployer
git:
  protocol: https
  repo: https://gitlab.com/syntegrity/docker-go.git
  ref: release
logging:
  level: DEBUG
"""


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / ".syntegrity-dagger.yml"
    path.write_text(SAMPLE_YAML)
    return path


class TestFromYaml:
    def test_loads_sections(self, sample_file):
        cfg = FileConfig.from_yaml(sample_file)

        assert cfg.source == sample_file
        assert cfg.pipeline.name == "docker-go"
        assert cfg.pipeline.coverage == 85.0
        assert cfg.pipeline.go_version == "1.22"
        assert cfg.pipeline.steps == ["setup", "build", "tag", "push"]
        assert cfg.registry.base_url == "registry.gitlab.com/syntegrity"
        assert cfg.git.ref == "release"
        assert cfg.logging.level == "DEBUG"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        cfg = FileConfig.from_yaml(path)
        assert cfg.pipeline.name == ""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FileConfig.from_yaml(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("pipeline: [unclosed")
        with pytest.raises(InvalidConfigException):
            FileConfig.from_yaml(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(InvalidConfigException):
            FileConfig.from_yaml(path)

    def test_non_numeric_coverage(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("pipeline:\n  name: go-kit\n  coverage: high\n  steps: [setup]\n")
        with pytest.raises(InvalidConfigException) as exc_info:
            FileConfig.from_yaml(path)
        assert exc_info.value.details["field"] == "pipeline.coverage"

    @pytest.mark.parametrize("section", ["pipeline", "registry", "git", "logging"])
    def test_non_mapping_section(self, section):
        with pytest.raises(InvalidConfigException) as exc_info:
            FileConfig.from_dict({section: ["not", "a", "mapping"]})
        assert exc_info.value.details["field"] == section

    def test_steps_must_be_a_list(self):
        with pytest.raises(InvalidConfigException):
            FileConfig.from_dict({"pipeline": {"name": "go-kit", "steps": "setup"}})

    def test_to_dict_uses_file_keys(self, sample_file):
        data = FileConfig.from_yaml(sample_file).to_dict()
        assert data["pipeline"]["goVersion"] == "1.22"
        assert data["registry"]["baseUrl"] == "registry.gitlab.com/syntegrity"


class TestValidate:
    def test_valid(self, sample_file):
        FileConfig.from_yaml(sample_file).validate()

    def test_requires_name(self):
        cfg = FileConfig.from_dict({"pipeline": {"steps": ["setup"]}})
        with pytest.raises(InvalidConfigException, match="name"):
            cfg.validate()

    def test_requires_steps(self):
        cfg = FileConfig.from_dict({"pipeline": {"name": "go-kit"}})
        with pytest.raises(InvalidConfigException, match="step"):
            cfg.validate()

    def test_rejects_unknown_step(self):
        cfg = FileConfig.from_dict({"pipeline": {"name": "go-kit", "steps": ["setup", "deploy"]}})
        with pytest.raises(InvalidConfigException, match="deploy"):
            cfg.validate()

    def test_lifecycle_steps_match_step_enum(self):
        assert list(LIFECYCLE_STEPS) == [step.value for step in Step.ordered()]


class TestEnvOverrides:
    def test_overrides_file_values(self, sample_file):
        env = MappingEnvironment({"SYNTEGRITY_ENV": "prod", "SYNTEGRITY_COVERAGE": "95"})
        cfg = FileConfig.from_yaml(sample_file).with_env_overrides(env)

        assert cfg.pipeline.environment == "prod"
        assert cfg.pipeline.coverage == 95.0
        assert cfg.pipeline.name == "docker-go"

    def test_original_untouched(self, sample_file):
        original = FileConfig.from_yaml(sample_file)
        original.with_env_overrides(MappingEnvironment({"SYNTEGRITY_ENV": "prod"}))
        assert original.pipeline.environment == "staging"

    def test_invalid_coverage(self):
        with pytest.raises(InvalidConfigException):
            FileConfig.from_env(MappingEnvironment({"SYNTEGRITY_COVERAGE": "lots"}))

    def test_from_env(self):
        cfg = FileConfig.from_env(MappingEnvironment({"SYNTEGRITY_PIPELINE": "go-kit", "SYNTEGRITY_LOG_LEVEL": "WARNING"}))
        assert cfg.pipeline.name == "go-kit"
        assert cfg.logging.level == "WARNING"


class TestToOptions:
    def test_file_options(self, sample_file):
        cfg = new_config(*FileConfig.from_yaml(sample_file).to_options())

        assert cfg.env == "staging"
        assert cfg.coverage == 85.0
        assert cfg.go_version == "1.22"
        assert cfg.registry_url == "registry.gitlab.com/syntegrity"
        assert cfg.registry_user == "deployer"
        assert cfg.image_name == "docker-go"
        assert cfg.git_protocol == "https"
        assert cfg.git_repo == "https://gitlab.com/syntegrity/docker-go.git"
        assert cfg.git_ref == "release"

    def test_empty_file_changes_nothing(self):
        assert new_config(*FileConfig().to_options()) == new_config()

    def test_env_options(self):
        env = MappingEnvironment({
            "CI_REGISTRY": "registry.gitlab.com",
            "CI_REGISTRY_PASSWORD": "pw",
            "CI_REGISTRY_USER": "gitlab-ci-token",
            "CI_COMMIT_SHA": "abc123",
            "CI_COMMIT_BRANCH": "develop",
        })
        cfg = new_config(*env_options(env))

        assert cfg.registry_url == "registry.gitlab.com"
        assert cfg.registry_token == "pw"
        assert cfg.registry_user == "gitlab-ci-token"
        assert cfg.commit_sha == "abc123"
        assert cfg.branch_name == "develop"

    def test_env_registry_keeps_file_url_when_unset(self, sample_file):
        options = FileConfig.from_yaml(sample_file).to_options() + env_options(MappingEnvironment({}))
        assert new_config(*options).registry_url == "registry.gitlab.com/syntegrity"


class TestDiscovery:
    def test_finds_in_start_directory(self, sample_file):
        assert find_config_file(sample_file.parent) == sample_file

    def test_finds_in_parent(self, sample_file):
        nested = sample_file.parent / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == sample_file

    def test_finds_in_github_directory(self, tmp_path):
        github = tmp_path / ".github"
        github.mkdir()
        path = github / "syntegrity-dagger.yaml"
        path.write_text("pipeline: {name: go-kit, steps: [setup]}")
        assert find_config_file(tmp_path) == path

    def test_stops_after_max_parents(self, sample_file):
        nested = sample_file.parent / "a" / "b" / "c" / "d"
        nested.mkdir(parents=True)
        assert find_config_file(nested, max_parents=3) is None

    def test_load_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = load_file_config(env=MappingEnvironment({}))
        assert cfg.source is None

    def test_load_validates_found_file(self, tmp_path):
        path = tmp_path / ".syntegrity-dagger.yml"
        path.write_text("pipeline:\n  name: go-kit\n")
        with pytest.raises(InvalidConfigException):
            load_file_config(path, env=MappingEnvironment({}))
