"""
Mail dispatch through an msmtp-compatible executable.

The composed message is piped on stdin and the executable reads the
recipients from the headers (`-t`). Combined stdout/stderr is captured
so a failing submission can be diagnosed from the logs.
"""

import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Protocol

from sms2mail.utils.config import ConfigError
from sms2mail.utils.logger import get_logger

logger = get_logger("mailer")


class MailDispatchError(RuntimeError):
    """The mail could not be handed off to the submission program."""

    def __init__(self, message: str, output: str = "", returncode: Optional[int] = None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode


@dataclass(frozen=True)
class MailTarget:
    email_from: str
    email_to: str
    # msmtp account; None means let msmtp pick its default
    account: Optional[str] = None


class MailSender(Protocol):
    def send(self, sender: str, body: str, target: MailTarget) -> None: ...


def header_value(value: str) -> str:
    """Fold any line breaks into spaces so a value cannot start a new header."""
    return " ".join(value.splitlines())


def compose_message(sender: str, body: str, email_from: str, email_to: str) -> str:
    lines = [
        f"To: {header_value(email_to)}",
        f"From: {header_value(email_from)}",
        f"Subject: SMS from {header_value(sender)}",
        "MIME-Version: 1.0",
        'Content-Type: text/plain; charset="UTF-8"',
        "",
        f"You received a new SMS from: {header_value(sender)}",
        "",
        "---",
        body,
        "---",
    ]
    return "\n".join(lines)


def find_executable(name: str = "msmtp") -> str:
    """
    Resolve the mail executable on PATH.
    Raises ConfigError if it is not there.
    """
    path = shutil.which(name)
    if path is None:
        logger.error("mailer.executable_not_found", extra={"executable": name})
        raise ConfigError(f"'{name}' command not found in PATH. Please install it or check your environment.")
    logger.info("mailer.executable_found", extra={"path": path})
    return path


class MsmtpSender:
    """MailSender that runs msmtp once per message and waits for it."""

    def __init__(self, executable: str = "msmtp"):
        self.executable = executable

    def command(self, account: Optional[str]) -> List[str]:
        if account:
            return [self.executable, "-a", account, "-t"]
        return [self.executable, "-t"]

    def send(self, sender: str, body: str, target: MailTarget) -> None:
        missing = [
            name
            for name, value in [("email_from", target.email_from), ("email_to", target.email_to)]
            if not value
        ]
        if missing:
            raise MailDispatchError(f"Missing email configuration: {', '.join(missing)}")

        message = compose_message(sender, body, target.email_from, target.email_to)
        cmd = self.command(target.account)

        try:
            proc = subprocess.run(
                cmd,
                input=message.encode("utf-8"),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            raise MailDispatchError(f"Failed to run {cmd[0]}: {e}") from e

        output = proc.stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise MailDispatchError(
                f"{cmd[0]} exited with status {proc.returncode}",
                output=output,
                returncode=proc.returncode,
            )

        logger.debug("mailer.sent", extra={"command": cmd, "email_to": target.email_to})
