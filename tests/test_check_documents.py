import glob
import io
import os

import pytest

from check_documents import (
    CheckSettings,
    TeeWriter,
    apply_config,
    load_config,
    main,
    mirrored_output,
    resolve_settings,
    settings_from_env,
)
from org_guard import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ORG_DENY_LIST", "ORG_DOCUMENTS", "ORG_LOG_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "forbidden_orgs.txt").write_text("ACME Corp\n\nGlobex\nacme corp\n", encoding="utf-8")
    (tmp_path / "ams.txt").write_text(
        "ACME Corp Services\n\nUnrelated Org\nPartner LLC\n", encoding="utf-8")
    (tmp_path / "arb.txt").write_text("Globex\n\n\nInitech\n", encoding="utf-8")
    return tmp_path


def test_settings_from_env():
    environ = {
        "ORG_DENY_LIST": "orgs.txt",
        "ORG_DOCUMENTS": os.pathsep.join(["a.txt", "b.txt"]),
        "ORG_LOG_DIR": "logs",
    }

    settings = settings_from_env(environ)

    assert settings.deny_list == "orgs.txt"
    assert settings.documents == ("a.txt", "b.txt")
    assert settings.log_dir == "logs"


def test_config_overrides_env_and_args_override_config(tmp_path):
    config = tmp_path / "check.yaml"
    config.write_text(
        "deny_list: from_config.txt\n"
        "documents:\n  - one.txt\n  - two.txt\n"
        "output:\n  csv: false\n  plot: true\n  log_dir: logs\n",
        encoding="utf-8",
    )
    environ = {"ORG_DENY_LIST": "from_env.txt", "ORG_DOCUMENTS": "env.txt"}

    settings = resolve_settings(["-c", str(config)], environ)

    assert settings.deny_list == "from_config.txt"
    assert settings.documents == ("one.txt", "two.txt")
    assert settings.write_csv is False
    assert settings.plot is True
    assert settings.log_dir == "logs"
    assert settings.source == str(config)

    settings = resolve_settings(["-c", str(config), "-d", "cli.txt", "--no-log", "x.txt"], environ)

    assert settings.deny_list == "cli.txt"
    assert settings.documents == ("x.txt",)
    assert settings.write_log is False


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(str(tmp_path / "missing.yaml"))

    broken = tmp_path / "broken.yaml"
    broken.write_text("documents: [a.txt\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="not valid YAML"):
        load_config(str(broken))

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_config(str(scalar))


def test_empty_config_file_keeps_defaults(tmp_path):
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")

    assert apply_config(CheckSettings(), load_config(str(empty))) == CheckSettings()


def test_documents_must_be_a_list():
    with pytest.raises(ConfigurationError):
        apply_config(CheckSettings(), {"documents": "a.txt"})


def test_tee_writer_duplicates_output():
    console, log = io.StringIO(), io.StringIO()
    tee = TeeWriter(console, log)

    tee.write("hello\n")
    tee.flush()

    assert console.getvalue() == log.getvalue() == "hello\n"


def test_mirrored_output_writes_log_file(tmp_path, capsys):
    log_path = str(tmp_path / "logs" / "run.txt")

    with mirrored_output(log_path):
        print("mirrored line")
    print("after")

    with open(log_path, encoding="utf-8") as f:
        assert f.read() == "mirrored line\n"
    out = capsys.readouterr().out
    assert "mirrored line" in out
    assert "after" in out


def test_main_end_to_end(workspace, capsys):
    exit_code = main(["ams.txt", "missing.txt", "arb.txt", "--output-dir", "out"])
    out = capsys.readouterr().out

    assert exit_code == 0
    assert "Loaded 2 organizations" in out
    assert "Warning: file 'missing.txt' not found." in out
    assert "Total unique blocks with violations: 2" in out
    assert "Block #1:" in out
    assert "Block #3:" in out
    assert "Check complete." in out

    logs = glob.glob(str(workspace / "forbidden_orgs_log_*.txt"))
    assert len(logs) == 1
    with open(logs[0], encoding="utf-8") as f:
        log = f.read()
    assert "FINAL STATISTICS" in log
    assert "Check complete." in log

    assert len(glob.glob(str(workspace / "out" / "org_check_runs_*.csv"))) == 1
    assert len(glob.glob(str(workspace / "out" / "org_check_report_*.md"))) == 1


def test_main_without_log(workspace):
    assert main(["ams.txt", "--no-log", "--output-dir", "out"]) == 0

    assert glob.glob(str(workspace / "forbidden_orgs_log_*.txt")) == []


def test_main_missing_deny_list_fails(workspace, capsys):
    exit_code = main(["-d", "nope.txt", "ams.txt", "--no-log"])

    assert exit_code == 1
    assert "✗ Deny-list file 'nope.txt' not found." in capsys.readouterr().out


def test_main_bad_config_fails(workspace, capsys):
    assert main(["-c", "absent.yaml"]) == 1
    assert "✗ Config file 'absent.yaml' not found." in capsys.readouterr().out
