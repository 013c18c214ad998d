import logging

from transcribe_helper import service
from transcribe_helper.lib.models import Status, Track


def test_parse_args():
    args = service.parse_args(["--config", "/tmp/c.json", "--log-level", "debug"])
    assert args.config == "/tmp/c.json"
    assert args.log_level == "debug"


def test_cli_reports_missing_config(tmp_path, caplog):
    assert service.cli(["--config", str(tmp_path / "missing.json")]) == 1
    assert "not found" in caplog.text


def test_status_line(caplog):
    class Session:
        class config:
            name = "Desk"
            config_id = 0

    caplog.set_level(logging.INFO, logger="transcribe-helper")
    service._log_status(Session, Status(state="playing", time=65, length=3600,
                                        current_track=Track(id="1", name="Take 3")))
    assert "Desk: playing 1:05 / 1:00:00 - Take 3" in caplog.text
