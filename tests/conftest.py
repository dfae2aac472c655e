import pytest

from sms2mail.utils.config import GlobalConfig
from sms2mail.utils.mailer import MailDispatchError
from sms2mail.webhook import create_app


class RecordingSender:
    """Stands in for MsmtpSender; records every send instead of running msmtp."""

    def __init__(self, fail_with=None):
        self.sent = []
        self.fail_with = fail_with

    def send(self, sender, body, target):
        self.sent.append({"sender": sender, "body": body, "target": target})
        if self.fail_with is not None:
            raise self.fail_with


@pytest.fixture
def config_dir(tmp_path):
    profiles = tmp_path / "sms2mail.d"
    profiles.mkdir()
    (profiles / "home.toml").write_text(
        'email_from = "a@x.com"\nemail_to = "b@x.com"\nmsmtp_profile = "gmail"\n',
        encoding="utf-8",
    )
    (profiles / "work.toml").write_text(
        'email_from = "sms@work.com"\nemail_to = "me@work.com"\n',
        encoding="utf-8",
    )
    (profiles / "broken.toml").write_text("email_from = [unterminated\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def global_config(config_dir):
    return GlobalConfig(
        server_port=":8080",
        email_from="relay@x.com",
        email_to="owner@x.com",
        config_dir=config_dir,
    )


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def failing_sender():
    return RecordingSender(
        fail_with=MailDispatchError("msmtp exited with status 78", output="msmtp: account default not found", returncode=78)
    )


@pytest.fixture
def client(global_config, sender):
    app = create_app(global_config, sender)
    return app.test_client()
