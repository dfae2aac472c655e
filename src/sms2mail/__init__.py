"""
sms2mail
========

Webhook-to-email relay. Receives inbound SMS webhooks (Twilio-style,
form-encoded) over HTTP and forwards each message as an email through a
local msmtp-compatible submission program.

Modules under this package:
- webhook.py  → Flask app with the SMS routes (/sms, /sms/<profile>)
- health.py   → Health and version checks (/health, /version)
- cli.py      → `sms2mail` command: template writing and server startup
- utils/      → Shared helpers (logging, config files, mail dispatch, signatures)

Environment variables:
  • LOG_LEVEL                  - Log verbosity (default: INFO)
"""

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = ["__version__"]
