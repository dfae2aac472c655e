from typing import Optional, Tuple

from flask import Flask, Response, request

from sms2mail.health import bp as health_bp
from sms2mail.utils.config import GlobalConfig, ProfileError, load_profile_config
from sms2mail.utils.logger import get_logger
from sms2mail.utils.mailer import MailDispatchError, MailSender, MailTarget
from sms2mail.utils.signature import SIGNATURE_HEADER, is_valid_request

logger = get_logger("webhook")

# Empty TwiML: acknowledge without replying to the sender
TWIML_EMPTY = "<Response></Response>"

FORM_MIMETYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _plain(message: str, status: int) -> Response:
    return Response(message + "\n", status=status, content_type="text/plain; charset=utf-8")


def _read_form() -> Optional[Tuple[str, str]]:
    """
    Extract (From, Body) from a form-encoded request.
    Returns None when the request carries no form body at all.
    """
    if request.mimetype not in FORM_MIMETYPES:
        logger.warning("webhook.not_a_form", extra={"content_type": request.content_type})
        return None

    form = request.form
    # Judged on the parsed form: chunked bodies carry no Content-Length
    if not form and not request.files:
        logger.warning("webhook.empty_body")
        return None

    return form.get("From", ""), form.get("Body", "")


def _dispatch(sender: MailSender, sms_from: str, sms_body: str, target: MailTarget, profile: str) -> Response:
    logger.info(
        "webhook.received",
        extra={"sender": sms_from, "profile": profile, "account": target.account},
    )

    try:
        sender.send(sms_from, sms_body, target)
    except MailDispatchError as e:
        logger.error(
            "webhook.dispatch_error",
            extra={
                "error": str(e),
                "output": e.output,
                "returncode": e.returncode,
                "profile": profile,
            },
        )
        # Still 200: an error status makes the provider retry the webhook.
        return Response(status=200)

    logger.info("webhook.dispatched", extra={"profile": profile})
    return Response(TWIML_EMPTY, status=200, content_type="text/xml")


def create_app(config: GlobalConfig, sender: MailSender, validator=None) -> Flask:
    """
    Build the Flask application.

    `config` is read-only for the lifetime of the app. `sender` performs
    the actual mail hand-off. When `validator` is given, every SMS request
    must carry a valid provider signature.
    """
    app = Flask(__name__)
    app.config["SMS2MAIL"] = config
    app.register_blueprint(health_bp)

    @app.before_request
    def check_signature():
        if validator is None or request.blueprint == health_bp.name:
            return None
        signature = request.headers.get(SIGNATURE_HEADER, "")
        if not is_valid_request(validator, request.url, request.form, signature):
            logger.warning("webhook.bad_signature", extra={"path": request.path})
            return _plain("Invalid signature", 403)
        return None

    @app.post("/sms")
    def sms_single():
        form = _read_form()
        if form is None:
            return _plain("Failed to parse form", 400)

        target = MailTarget(email_from=config.email_from, email_to=config.email_to)
        return _dispatch(sender, form[0], form[1], target, profile="")

    @app.post("/sms/")
    def sms_missing_profile():
        return _plain("Profile name required", 404)

    @app.post("/sms/<path:profile>")
    def sms_profile(profile: str):
        try:
            profile_config = load_profile_config(config.config_dir, profile)
        except ProfileError as e:
            logger.error("webhook.profile_error", extra={"profile": profile, "error": str(e)})
            return _plain(f"Profile '{profile}' not found or invalid", 404)

        form = _read_form()
        if form is None:
            return _plain("Failed to parse form", 400)

        target = MailTarget(
            email_from=profile_config.email_from,
            email_to=profile_config.email_to,
            account=profile_config.msmtp_profile,
        )
        return _dispatch(sender, form[0], form[1], target, profile=profile)

    return app
