"""Command-line entry point: write config templates or run the relay."""

from typing import Optional

import click

from sms2mail import __version__
from sms2mail.utils.config import (
    CONFIG_TEMPLATE,
    PROFILE_TEMPLATE,
    ConfigError,
    find_config,
    load_global_config,
)
from sms2mail.utils.logger import get_logger
from sms2mail.utils.mailer import MsmtpSender, find_executable
from sms2mail.utils.signature import build_validator
from sms2mail.webhook import create_app

logger = get_logger("cli")

TEMPLATES = {
    "config": ("Configuration", CONFIG_TEMPLATE),
    "profileConfig": ("Profile configuration", PROFILE_TEMPLATE),
}


def write_template(kind: str, output: Optional[str]) -> None:
    label, template = TEMPLATES[kind]
    if output is None:
        click.echo(template, nl=False)
        return

    try:
        with open(output, "w", encoding="utf-8") as f:
            f.write(template)
    except OSError as e:
        raise click.ClickException(f"Error writing {label.lower()} file: {e}")
    click.echo(f"{label} template written to {output}")


def run_server(app, host: str, port: int) -> None:
    app.run(host=host, port=port, threaded=True)


def serve(explicit_path: Optional[str]) -> None:
    """
    Resolve config, check for the mail executable, then start listening.
    Any ConfigError here is fatal and happens before the port is bound.
    """
    try:
        path = find_config(explicit_path)
        config = load_global_config(path)
        executable = find_executable(config.msmtp_path)
        host, port = config.listen_address()
    except ConfigError as e:
        logger.error("startup.failed", extra={"error": str(e)})
        raise click.ClickException(str(e))

    app = create_app(
        config,
        sender=MsmtpSender(executable),
        validator=build_validator(config.twilio_auth_token),
    )

    logger.info("server.listening", extra={"host": host, "port": port, "config_path": str(path)})
    run_server(app, host, port)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("target", required=False, metavar="[config|profileConfig|CONFIG_PATH]")
@click.argument("output", required=False, type=click.Path(dir_okay=False), metavar="[PATH]")
@click.version_option(__version__, prog_name="sms2mail")
def main(target: Optional[str], output: Optional[str]):
    """Relay inbound SMS webhooks to email via msmtp.

    \b
    sms2mail config [PATH]         write a global config template
    sms2mail profileConfig [PATH]  write a profile config template
    sms2mail [CONFIG_PATH]         start the server
    """
    if target in TEMPLATES:
        write_template(target, output)
        return

    if output is not None:
        raise click.UsageError(f"Unexpected argument '{output}'")

    serve(target)


if __name__ == "__main__":
    main()
