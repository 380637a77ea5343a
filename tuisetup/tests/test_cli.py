import json

import pytest

from tuisetup import cli
from tuisetup.backup import list_backups, create_backup


def test_missing_config_exits_1(tmp_path, capsys):
    missing = tmp_path / "default-config.json"
    code = cli.run(["patch", "--config-path", str(missing), "--editor", "json"])
    err = capsys.readouterr().err
    assert code == 1
    assert "Daemon config not found" in err
    assert "Is OpenSnitch daemon installed?" in err
    assert list(tmp_path.iterdir()) == []


def test_patch_prints_next_steps(daemon_config, capsys):
    code = cli.run(["patch", "--config-path", str(daemon_config), "--editor", "json"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Current Server.Address: tcp://1.2.3.4:50051" in out
    assert "Updating Server.Address to: unix:///tmp/osui.sock" in out
    assert "Configuration updated!" in out
    assert "sudo systemctl restart opensnitchd" in out
    assert json.loads(daemon_config.read_text(encoding="utf-8"))["Server"]["Address"] == "unix:///tmp/osui.sock"


def test_patch_json_output_and_custom_target(daemon_config, capsys):
    code = cli.run([
        "patch", "--config-path", str(daemon_config), "--editor", "text",
        "--target-address", "unix:///run/osui.sock", "--json",
    ])
    result = json.loads(capsys.readouterr().out)
    assert code == 0
    assert result["editor"] == "text"
    assert result["previous_address"] == "tcp://1.2.3.4:50051"
    assert result["target_address"] == "unix:///run/osui.sock"
    assert list_backups(daemon_config)[0].name == result["backup_path"].rsplit("/", 1)[-1]


def test_no_command_defaults_to_patch(daemon_config, capsys, monkeypatch):
    monkeypatch.setenv("TUISETUP_CONFIG_PATH", str(daemon_config))
    monkeypatch.setenv("TUISETUP_EDITOR", "json")
    assert cli.run([]) == 0
    assert "Configuration updated!" in capsys.readouterr().out


def test_write_failure_exit_code(tmp_path, capsys):
    p = tmp_path / "cfg.json"
    p.write_text('{"LogLevel": 1}', encoding="utf-8")
    assert cli.run(["patch", "--config-path", str(p), "--editor", "text"]) == 3
    assert "ERROR:" in capsys.readouterr().err
    assert p.read_text(encoding="utf-8") == '{"LogLevel": 1}'


def test_bad_settings_file_exit_code(tmp_path, capsys):
    f = tmp_path / "s.yaml"
    f.write_text("nonsense: 1\n", encoding="utf-8")
    assert cli.run(["--settings", str(f), "patch"]) == 5


def test_backups_and_restore(daemon_config, capsys, clock):
    original = daemon_config.read_text(encoding="utf-8")
    backup = create_backup(daemon_config, clock=clock)
    daemon_config.write_text('{"Server": {"Address": "unix:///tmp/osui.sock"}}', encoding="utf-8")

    assert cli.run(["backups", "--config-path", str(daemon_config)]) == 0
    assert capsys.readouterr().out.strip() == str(backup)

    assert cli.run(["restore", "--config-path", str(daemon_config)]) == 0
    assert "Restored" in capsys.readouterr().out
    assert daemon_config.read_text(encoding="utf-8") == original


def test_restore_without_backups_exit_code(daemon_config, capsys):
    assert cli.run(["restore", "--config-path", str(daemon_config)]) == 4


def test_log_file_receives_run_log(daemon_config, tmp_path, capsys):
    log = tmp_path / "logs" / "tuisetup.log"
    assert cli.run(["--log-file", str(log), "patch", "--config-path", str(daemon_config), "--editor", "json"]) == 0
    assert "Backed up" in log.read_text(encoding="utf-8")


def test_patch_options_work_without_subcommand(daemon_config, capsys):
    code = cli.run(["--config-path", str(daemon_config), "--editor", "json", "--json"])
    result = json.loads(capsys.readouterr().out)
    assert code == 0
    assert result["config_path"] == str(daemon_config)


def test_options_before_subcommand_are_kept(daemon_config, capsys):
    assert cli.run(["--config-path", str(daemon_config), "--editor", "json", "patch"]) == 0
    assert "Configuration updated!" in capsys.readouterr().out


def test_usage_error_has_its_own_exit_code(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.run(["patch", "--editor", "sed"])
    assert exc.value.code == cli.USAGE_EXIT_CODE
    assert exc.value.code not in (0, 1, 2, 3, 4, 5)


def test_blank_target_in_settings_file_stops_before_backup(daemon_config, tmp_path, capsys):
    f = tmp_path / "s.yaml"
    f.write_text("target_address:\n", encoding="utf-8")
    before = daemon_config.read_bytes()
    assert cli.run(["--settings", str(f), "patch", "--config-path", str(daemon_config)]) == 5
    assert daemon_config.read_bytes() == before
    assert list_backups(daemon_config) == []
