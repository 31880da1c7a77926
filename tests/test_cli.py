"""
Tests for the syntegrity CLI (syntegrity_cli/).
"""

import json

import pytest

from core.config import FileConfig
from core.context import MappingEnvironment
from core.schemas.errors import CoverageBelowException, NotFoundException, StepFailedException
from orchestrator import STATUS_FAILED, STATUS_OK, RunResult, StepRecord
from syntegrity_cli.commands import run as run_command
from syntegrity_cli.config import CLIConfig, get_default_config_template, load_config
from syntegrity_cli.main import EXIT_RUNTIME_ERROR, EXIT_STEP_FAILED, EXIT_SUCCESS, create_parser, main


@pytest.fixture(autouse=True)
def _in_tmp_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def parse(*argv):
    return create_parser().parse_args(list(argv))


class TestParser:
    def test_run_defaults(self):
        args = parse("run")
        assert args.command == "run"
        assert args.pipeline is None
        assert args.coverage is None
        assert args.skip_push is False

    def test_run_flags(self):
        args = parse(
            "run", "--pipeline", "docker-go", "--coverage", "85", "--branch", "main",
            "--skip-push", "--git-auth", "https", "--steps", "setup,build", "--json",
        )
        assert args.pipeline == "docker-go"
        assert args.coverage == 85.0
        assert args.git_auth == "https"
        assert args.steps == "setup,build"
        assert args.json is True

    def test_step_requires_known_step(self):
        with pytest.raises(SystemExit):
            parse("step", "deploy")

    def test_git_auth_choices(self):
        with pytest.raises(SystemExit):
            parse("run", "--git-auth", "ftp")


class TestBuildConfiguration:
    def test_defaults(self):
        cfg = run_command.build_configuration(parse("run"), CLIConfig(), MappingEnvironment({}))
        assert cfg.coverage == 90.0
        assert cfg.branch_name == "develop"
        assert cfg.git_protocol == "ssh"
        assert cfg.env == "dev"

    def test_job_token_selects_https(self):
        env = MappingEnvironment({"CI_JOB_TOKEN": "t"})
        cfg = run_command.build_configuration(parse("run"), CLIConfig(), env)
        assert cfg.git_protocol == "https"

    def test_precedence(self):
        file_config = FileConfig.from_dict({"pipeline": {"environment": "staging", "coverage": 70}})
        env = MappingEnvironment({"CI_COMMIT_BRANCH": "feature/x"})

        cfg = run_command.build_configuration(parse("run"), CLIConfig(file_config=file_config), env)
        assert cfg.env == "staging"
        assert cfg.coverage == 70.0
        assert cfg.branch_name == "feature/x"

        args = parse("run", "--coverage", "99", "--env", "prod", "--branch", "main")
        cfg = run_command.build_configuration(args, CLIConfig(file_config=file_config), env)
        assert cfg.env == "prod"
        assert cfg.coverage == 99.0
        assert cfg.branch_name == "main"

    def test_git_ref_only_keeps_repo(self):
        file_config = FileConfig.from_dict({"git": {"repo": "https://gitlab.com/x/y.git"}})
        args = parse("run", "--git-ref", "v1.0")
        cfg = run_command.build_configuration(args, CLIConfig(file_config=file_config), MappingEnvironment({}))
        assert cfg.git_repo == "https://gitlab.com/x/y.git"
        assert cfg.git_ref == "v1.0"

    def test_pipeline_name_resolution(self):
        file_config = FileConfig.from_dict({"pipeline": {"name": "docker-go"}})
        assert run_command.resolve_pipeline_name(parse("run"), CLIConfig()) == "go-kit"
        assert run_command.resolve_pipeline_name(parse("run"), CLIConfig(file_config=file_config)) == "docker-go"
        assert run_command.resolve_pipeline_name(parse("run", "-p", "syntegrity-infra"), CLIConfig(file_config=file_config)) == "syntegrity-infra"

    def test_steps_resolution(self):
        assert run_command.resolve_steps(parse("run"), CLIConfig()) is None
        assert run_command.resolve_steps(parse("run", "--steps", "setup, test"), CLIConfig()) == ["setup", "test"]


class TestInfoCommands:
    def test_pipelines_json(self, capsys):
        assert main(["pipelines", "--json"]) == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)

        names = [entry["name"] for entry in data]
        assert names == ["docker-go", "go-kit", "syntegrity-infra"]
        go_kit = data[1]
        assert go_kit["ssh_url"] == "git@gitlab.com:syntegrity/go-kit.git"

    def test_pipelines_text(self, capsys):
        assert main(["pipelines"]) == EXIT_SUCCESS
        assert "syntegrity-infra" in capsys.readouterr().out

    def test_steps_json(self, capsys):
        assert main(["steps", "--json"]) == EXIT_SUCCESS
        assert json.loads(capsys.readouterr().out) == ["setup", "build", "test", "package", "tag", "push"]

    def test_no_command(self):
        assert main([]) == EXIT_RUNTIME_ERROR


class TestConfigCommand:
    def test_init_writes_template(self, tmp_path):
        assert main(["config", "--init"]) == EXIT_SUCCESS
        path = tmp_path / ".syntegrity-dagger.yml"
        assert path.read_text() == get_default_config_template()

        cfg = FileConfig.from_yaml(path)
        cfg.validate()
        assert cfg.pipeline.name == "go-kit"

    def test_init_refuses_to_overwrite(self, tmp_path):
        (tmp_path / ".syntegrity-dagger.yml").write_text("pipeline: {name: go-kit, steps: [setup]}")
        assert main(["config", "--init"]) == EXIT_RUNTIME_ERROR

    def test_show_redacts_secrets(self, capsys, monkeypatch):
        monkeypatch.setenv("GITLAB_PAT", "glpat-do-not-print")
        assert main(["config", "--show"]) == EXIT_SUCCESS

        out = capsys.readouterr().out
        data = json.loads(out)
        assert data["configuration"]["token"] == "***"
        assert "glpat-do-not-print" not in out

    def test_invalid_config_file(self, tmp_path, capsys):
        (tmp_path / ".syntegrity-dagger.yml").write_text("pipeline:\n  name: go-kit\n  steps: [deploy]\n")
        assert main(["pipelines"]) == EXIT_RUNTIME_ERROR
        assert "deploy" in capsys.readouterr().err

    def test_load_config_env(self, monkeypatch):
        monkeypatch.setenv("SYNTEGRITY_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("SYNTEGRITY_PIPELINE_TIMEOUT", "120")
        config = load_config()
        assert config.log_level == "WARNING"
        assert config.pipeline_timeout == 120


class TestRunCommand:
    def _patch_execute(self, monkeypatch, outcome):
        calls = []

        async def fake_execute(name, config, steps, *, tolerate_unimplemented=False, timeout=0):
            calls.append({"name": name, "config": config, "steps": steps, "tolerate": tolerate_unimplemented})
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome

        monkeypatch.setattr(run_command, "execute", fake_execute)
        return calls

    def test_success(self, monkeypatch, capsys):
        result = RunResult(pipeline="go-kit")
        result.add(StepRecord("setup", STATUS_OK, 0.1))
        calls = self._patch_execute(monkeypatch, result)

        assert main(["run", "--only-test", "--json"]) == EXIT_SUCCESS

        assert calls[0]["name"] == "go-kit"
        assert calls[0]["config"].only_test is True
        assert json.loads(capsys.readouterr().out)["ok"] is True

    def test_step_failure_exit_code(self, monkeypatch, capsys):
        result = RunResult(pipeline="go-kit")
        cause = CoverageBelowException(actual=10.0, minimum=90.0)
        result.add(StepRecord("test", STATUS_FAILED, 0.1, cause.to_error_model()))
        self._patch_execute(monkeypatch, StepFailedException("test", cause, result))

        assert main(["run", "--json"]) == EXIT_STEP_FAILED

        data = json.loads(capsys.readouterr().out)
        assert data["ok"] is False
        assert data["failed_step"] == "test"
        assert data["error_kind"] == "COVERAGE_BELOW"

    def test_unknown_pipeline(self, monkeypatch, capsys):
        self._patch_execute(monkeypatch, NotFoundException("ghost"))
        assert main(["run", "--pipeline", "ghost"]) == EXIT_RUNTIME_ERROR
        assert "ghost" in capsys.readouterr().err

    def test_step_command_prepends_setup(self, monkeypatch):
        calls = self._patch_execute(monkeypatch, RunResult(pipeline="go-kit"))
        assert main(["step", "tag"]) == EXIT_SUCCESS
        assert calls[0]["steps"] == ["setup", "tag"]

    def test_step_setup_alone(self, monkeypatch):
        calls = self._patch_execute(monkeypatch, RunResult(pipeline="go-kit"))
        main(["step", "setup"])
        assert calls[0]["steps"] == ["setup"]

    def test_tolerate_flag(self, monkeypatch):
        calls = self._patch_execute(monkeypatch, RunResult(pipeline="go-kit"))
        main(["run", "--tolerate-unimplemented", "--steps", "setup,package"])
        assert calls[0]["tolerate"] is True
        assert calls[0]["steps"] == ["setup", "package"]
