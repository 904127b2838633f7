import pytest

import cli


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)


def test_reports_written_to_stdout(tmp_path, capsys):
    """Test the report for a processed file is written to stdout."""
    input_file = tmp_path / "transactions.csv"
    input_file.write_text(
        "type,client,tx,amount\n"
        "deposit,1,1,1.0\n"
        "deposit,2,2,2.0\n"
        "deposit,1,3,2.0\n"
        "withdrawal,1,4,1.5\n"
        "withdrawal,2,5,3.0\n"
        "dispute,2,2\n"
        "chargeback,2,2\n"
    )

    exit_code = cli.main([str(input_file)])

    assert exit_code == 0
    assert capsys.readouterr().out == (
        "client,available,held,total,locked\n"
        "1,1.5000,0.0000,1.5000,false\n"
        "2,0.0000,0.0000,0.0000,true\n"
    )


def test_oversized_amount_does_not_abort_report(tmp_path, capsys):
    """Test an amount beyond the supported digits is skipped and other clients are reported."""
    input_file = tmp_path / "transactions.csv"
    input_file.write_text(
        "type,client,tx,amount\n"
        "deposit,1,1,1.0\n"
        "deposit,2,2,100000000000000000000000000\n"
    )

    exit_code = cli.main([str(input_file)])

    assert exit_code == 0
    assert capsys.readouterr().out == (
        "client,available,held,total,locked\n"
        "1,1.0000,0.0000,1.0000,false\n"
    )


def test_undecodable_input_still_reports(tmp_path, capsys):
    """Test invalid UTF-8 input ends processing with exit code 1 and a report."""
    input_file = tmp_path / "transactions.csv"
    input_file.write_bytes(
        b"type,client,tx,amount\n"
        b"deposit,1,1,1.0\n"
        b"deposit,1,2,\xff\xfe\n"
    )

    exit_code = cli.main([str(input_file)])

    assert exit_code == 1
    assert capsys.readouterr().out.startswith("client,available,held,total,locked\n")


def test_missing_input_file(tmp_path, capsys):
    """Test a missing input file exits with code 1 and no report."""
    exit_code = cli.main([str(tmp_path / "missing.csv")])

    assert exit_code == 1
    assert capsys.readouterr().out == ""
