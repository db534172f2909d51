import logging
import os

import matplotlib
matplotlib.use("Agg")

import pytest

from mpg_lca.audit import CalculationAudit
from mpg_lca.fixtures import SAMPLE_PROJECT_ID
from mpg_lca.logging_conf import ColoredFormatter
from mpg_lca.main import main


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_sample_run(tmp_path, capsys):
    code = main(["--no-color", "--params", str(tmp_path / "none.xlsx")])
    assert code == 0
    assert "COMPLIANT" in capsys.readouterr().out


def test_export_and_plot(tmp_path):
    reports = tmp_path / "reports"
    code = main([
        "--no-color", "--params", str(tmp_path / "none.xlsx"),
        "--export", "--plot", "--reports-dir", str(reports),
    ])
    assert code == 0
    assert (reports / "mpg_report.csv").exists()
    assert (reports / "mpg_report.xlsx").exists()
    assert os.listdir(reports / "single_run")


def test_workbook_source(tmp_path):
    workbook = str(tmp_path / "sample.xlsx")
    assert main(["--no-color", "--write-sample", workbook]) == 0
    assert os.path.exists(workbook)
    code = main(["--no-color", "--params", str(tmp_path / "none.xlsx"), "--source", workbook, "--all"])
    assert code == 0


def test_failed_project_exit_code(tmp_path):
    code = main([
        "--no-color", "--params", str(tmp_path / "none.xlsx"),
        "--project-id", SAMPLE_PROJECT_ID, "--project-id", "nope",
    ])
    assert code == 1


def test_missing_workbook_exit_code(tmp_path):
    assert main(["--no-color", "--source", str(tmp_path / "missing.xlsx")]) == 2


def test_colored_formatter_prefixes_warnings():
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful", None, None)
    assert ColoredFormatter(use_color=False).format(record) == "WARNING: careful"
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
    assert ColoredFormatter(use_color=False).format(record) == "hello"


def test_audit_trail(tmp_path):
    disabled = CalculationAudit()
    disabled.log_calculation("ctx", "a * b", {"a": 1, "b": 2}, 2.0)
    assert disabled.entries == []

    log_file = tmp_path / "audit.log"
    audit = CalculationAudit(enabled=True, log_file=str(log_file), session="test")
    audit.log_calculation("Layer L1: A1-A3", "Units * GWP", {"Units": 360.0, "GWP": 0.3}, 108.0, "kgCO2e")
    assert len(audit.entries) == 1
    assert "108.0000 kgCO2e" in audit.entries[0].render()
    assert "Session: test" in log_file.read_text(encoding="utf-8")
