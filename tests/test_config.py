"""
Tests for config loading, first-run setup, and the CLI wrapper.
Uses a temp config file for each test.
"""

import logging

import pytest
import yaml

from gptline import cli
from gptline.config import (
    Config,
    ConfigError,
    default_config_path,
    load_config,
    load_or_init_config,
    save_config,
)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "gptline" / "config.yaml"


def write_yaml(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data))


def answers(*values):
    it = iter(values)
    return lambda prompt="": next(it)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def test_load_full_config(config_path):
    write_yaml(config_path, {
        "api_endpoint": "http://localhost:11434/v1",
        "api_key": "sk-abc",
        "model": "llama3.2",
        "username": "Ada",
    })
    cfg = load_config(config_path)
    assert cfg.api_endpoint == "http://localhost:11434/v1"
    assert cfg.api_key == "sk-abc"
    assert cfg.model == "llama3.2"
    assert cfg.username == "Ada"
    assert cfg.system_prompt == "You are a helpful assistant."
    assert cfg.timeout == 120


def test_missing_username_defaults(config_path):
    """Older files without a username fall back to 'User'."""
    write_yaml(config_path, {"api_endpoint": "http://x/v1", "model": "m", "username": ""})
    assert load_config(config_path).username == "User"


def test_env_var_resolution(config_path, monkeypatch):
    """${ENV_VAR} references are substituted."""
    monkeypatch.setenv("TEST_GPTLINE_KEY", "sk-from-env")
    write_yaml(config_path, {"api_key": "${TEST_GPTLINE_KEY}", "model": "m"})
    assert load_config(config_path).api_key == "sk-from-env"


def test_unset_env_var_becomes_empty(config_path, monkeypatch):
    monkeypatch.delenv("TEST_GPTLINE_UNSET", raising=False)
    write_yaml(config_path, {"api_key": "${TEST_GPTLINE_UNSET}"})
    assert load_config(config_path).api_key == ""


def test_unknown_keys_ignored(config_path):
    write_yaml(config_path, {"model": "m", "colour_scheme": "dark"})
    assert load_config(config_path).model == "m"


def test_empty_file_uses_defaults(config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text("")
    assert load_config(config_path) == Config()


@pytest.mark.parametrize("text", ["api_endpoint: [unclosed", "- just\n- a list\n", "timeout: soon\n"])
def test_bad_file_raises(config_path, text):
    config_path.parent.mkdir(parents=True)
    config_path.write_text(text)
    with pytest.raises(ConfigError):
        load_config(config_path)


def test_missing_file_raises(config_path):
    with pytest.raises(ConfigError):
        load_config(config_path)


def test_default_path_env_override(monkeypatch, tmp_path):
    monkeypatch.setenv("GPTLINE_CONFIG", str(tmp_path / "elsewhere.yaml"))
    assert default_config_path() == tmp_path / "elsewhere.yaml"


def test_default_path_home(monkeypatch):
    monkeypatch.delenv("GPTLINE_CONFIG", raising=False)
    assert default_config_path().parts[-3:] == (".config", "gptline", "config.yaml")


# ---------------------------------------------------------------------------
# First run
# ---------------------------------------------------------------------------

def test_first_run_prompts_and_saves(config_path):
    cfg = load_or_init_config(
        config_path,
        input_fn=answers("http://box:8000/v1", "sk-1", "qwen3", "Ada"),
    )
    assert cfg.api_endpoint == "http://box:8000/v1"
    assert cfg.api_key == "sk-1"
    assert config_path.exists()
    assert load_config(config_path) == cfg


def test_first_run_defaults(config_path):
    """Pressing Enter at every prompt takes the defaults."""
    cfg = load_or_init_config(config_path, input_fn=answers("", "", "", ""))
    assert cfg == Config()
    saved = yaml.safe_load(config_path.read_text())
    assert saved["api_endpoint"] == "http://127.0.0.1:8080/v1"
    assert saved["model"] == "gpt-oss-20b"
    assert saved["username"] == "User"
    assert "logging" not in saved


def test_first_run_eof_takes_defaults(config_path):
    def eof(prompt=""):
        raise EOFError
    assert load_or_init_config(config_path, input_fn=eof) == Config()


def test_existing_file_skips_prompt(config_path):
    save_config(Config(model="kept"), config_path)

    def no_prompt(prompt=""):
        pytest.fail("should not prompt when config exists")

    assert load_or_init_config(config_path, input_fn=no_prompt).model == "kept"


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def test_cli_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--version"])
    assert exc_info.value.code == 0
    assert cli.__version__ in capsys.readouterr().out


def test_cli_banner(capsys):
    assert cli.main(["banner"]) == 0
    assert "____" in capsys.readouterr().out


def test_cli_info_masks_key(config_path, capsys):
    save_config(Config(api_key="sk-supersecretkey", model="m"), config_path)
    assert cli.main(["--config", str(config_path), "info"]) == 0
    out = capsys.readouterr().out
    assert "sk-supersecretkey" not in out
    assert "sk-s…tkey" in out


def test_cli_bad_config_exit_code(config_path, capsys):
    config_path.parent.mkdir(parents=True)
    config_path.write_text("- not a mapping\n")
    assert cli.main(["--config", str(config_path), "info"]) == 1
    assert "Error loading configuration" in capsys.readouterr().err


def test_cli_chat_overrides(config_path, monkeypatch):
    """--endpoint and --model override the file for this run only."""
    save_config(Config(model="from-file"), config_path)
    seen = {}

    class StubLoop:
        def __init__(self, cfg, backend):
            seen["cfg"] = cfg
            seen["url"] = backend.url

        def run(self):
            pass

    monkeypatch.setattr("gptline.chat.ChatLoop", StubLoop)
    rc = cli.main(["--config", str(config_path), "chat", "-m", "override", "-e", "http://other/v1/"])

    assert rc == 0
    assert seen["cfg"].model == "override"
    assert seen["url"] == "http://other/v1"
    assert load_config(config_path).model == "from-file"


def test_setup_logging_levels(tmp_path):
    log_file = tmp_path / "logs" / "gptline.log"
    cli.setup_logging(Config(logging={"level": "info", "file": str(log_file)}))
    assert logging.getLogger().level == logging.INFO
    assert log_file.parent.exists()

    cli.setup_logging(Config(), verbose=True)
    assert logging.getLogger().level == logging.DEBUG

    cli.setup_logging(Config())
    assert logging.getLogger().level == logging.WARNING


@pytest.mark.parametrize("data", [
    {"model": ""},
    {"model": "   "},
    {"model": 42},
    {"api_endpoint": ""},
    {"model": "${TEST_GPTLINE_EMPTY_MODEL}"},
])
def test_blank_model_or_endpoint_rejected(config_path, monkeypatch, data):
    """An unusable model or endpoint fails at load time, not on the first turn."""
    monkeypatch.setenv("TEST_GPTLINE_EMPTY_MODEL", "")
    write_yaml(config_path, data)
    with pytest.raises(ConfigError):
        load_config(config_path)


def test_cli_blank_model_exit_code(config_path, capsys):
    write_yaml(config_path, {"model": ""})
    assert cli.main(["--config", str(config_path), "chat"]) == 1
    assert "'model' must be a non-empty string" in capsys.readouterr().err
