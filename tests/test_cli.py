import json

import pytest
from click.testing import CliRunner

from config_layers import FernetTransform
from config_layers.cli import main


@pytest.fixture
def base_file(tmp_path, base_tree):
    path = tmp_path / "Configuration.json"
    path.write_text(json.dumps(base_tree))
    return path


def test_show_prints_effective_view(base_file):
    runner = CliRunner()
    result = runner.invoke(main, ["show", str(base_file), "--env", "PROD"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["endpoint"] == "prod.example"
    assert payload["theme"] == "light"
    assert "dev_only" not in payload


def test_show_single_key_and_missing_key(base_file):
    runner = CliRunner()
    result = runner.invoke(main, ["show", str(base_file), "--key", "theme"])
    assert result.exit_code == 0
    assert json.loads(result.output) == "light"

    result = runner.invoke(main, ["show", str(base_file), "--key", "nope"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_show_includes_persisted_overrides(base_file, tmp_path):
    overrides = tmp_path / "Configuration.overrides.json"
    overrides.write_text(json.dumps({"global": {"theme": "dark"}}))
    result = CliRunner().invoke(main, ["show", str(base_file), "--key", "theme"])
    assert json.loads(result.output) == "dark"


def test_encrypt_then_decrypt(base_file, tmp_path):
    runner = CliRunner()
    encrypted = tmp_path / "Configuration.enc.json"
    result = runner.invoke(
        main, ["encrypt", str(base_file), str(encrypted), "--password", "pw"]
    )
    assert result.exit_code == 0, result.output
    assert FernetTransform.is_encrypted(encrypted.read_bytes())

    result = runner.invoke(main, ["show", str(encrypted), "--password", "pw", "--key", "theme"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == "light"

    decrypted = tmp_path / "plain.json"
    result = runner.invoke(
        main,
        ["decrypt", str(encrypted), str(decrypted)],
        env={"CONFIG_LAYERS_PASSWORD": "pw"},
    )
    assert result.exit_code == 0, result.output
    assert decrypted.read_bytes() == base_file.read_bytes()


def test_decrypt_wrong_password_fails(base_file, tmp_path):
    runner = CliRunner()
    encrypted = tmp_path / "enc.json"
    runner.invoke(main, ["encrypt", str(base_file), str(encrypted), "--password", "pw"])
    result = runner.invoke(
        main, ["decrypt", str(encrypted), str(tmp_path / "out.json"), "--password", "bad"]
    )
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_encrypt_requires_password(base_file, tmp_path):
    result = CliRunner().invoke(main, ["encrypt", str(base_file), str(tmp_path / "x.json")])
    assert result.exit_code == 1
    assert "password is required" in result.output


def test_encrypt_rejects_malformed_source(tmp_path):
    source = tmp_path / "broken.json"
    source.write_text("{not json")
    result = CliRunner().invoke(
        main, ["encrypt", str(source), str(tmp_path / "out.json"), "--password", "pw"]
    )
    assert result.exit_code == 1
    assert not (tmp_path / "out.json").exists()
