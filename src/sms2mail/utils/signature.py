from twilio.request_validator import RequestValidator

from sms2mail.utils.logger import get_logger

logger = get_logger("signature")

SIGNATURE_HEADER = "X-Twilio-Signature"


def build_validator(auth_token: str):
    """
    Build a Twilio request validator, or None when no auth token is
    configured (signature checking disabled).
    """
    if not auth_token:
        logger.info("signature.disabled")
        return None

    logger.info("signature.enabled")
    return RequestValidator(auth_token)


def is_valid_request(validator: RequestValidator, url: str, params, signature: str) -> bool:
    if not signature:
        return False
    return validator.validate(url, params, signature)
