"""
sms2mail utilities
==================

- logger.py     → structured JSON logging
- config.py     → global/profile TOML config resolution and templates
- mailer.py     → message composition and msmtp hand-off
- signature.py  → optional Twilio request signature validation
"""

from sms2mail.utils.config import ConfigError, GlobalConfig, ProfileConfig, ProfileError
from sms2mail.utils.mailer import MailDispatchError, MailSender, MailTarget, MsmtpSender

__all__ = [
    "ConfigError",
    "GlobalConfig",
    "MailDispatchError",
    "MailSender",
    "MailTarget",
    "MsmtpSender",
    "ProfileConfig",
    "ProfileError",
]
