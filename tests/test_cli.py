import json

import pytest
from click.testing import CliRunner

from triciclo.cli import cli


@pytest.fixture
def invoke(tmp_path):
    runner = CliRunner()
    base = ["--data", str(tmp_path / "state.json"), "--log", str(tmp_path / "debug.log")]

    def _invoke(*args, **kwargs):
        return runner.invoke(cli, [*base, *args], **kwargs)

    return _invoke


def test_summary_on_empty_store(invoke):
    result = invoke("summary")
    assert result.exit_code == 0
    assert "All time:  $0.00" in result.output
    assert "No sales recorded yet." in result.output


def test_export_then_import(invoke, tmp_path):
    out = tmp_path / "backups"
    exported = invoke("export", str(out))
    assert exported.exit_code == 0, exported.output

    backup = next(out.iterdir())
    doc = json.loads(backup.read_text())
    doc["products"] = "broken"
    backup.write_text(json.dumps(doc))

    imported = invoke("import", str(backup))
    assert imported.exit_code == 0, imported.output
    assert "WARN" in imported.output


def test_report_without_data_fails(invoke, tmp_path):
    result = invoke("report", "sales", "--out", str(tmp_path))
    assert result.exit_code != 0
    assert "no data" in result.output


def test_wipe_needs_the_word(invoke):
    assert invoke("wipe", "--confirm", "nope").exit_code != 0
    assert invoke("wipe", input="Ornitorinco\n").exit_code == 0
