from flask import Blueprint, jsonify, request

from sms2mail import __version__
from sms2mail.utils.logger import log

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    log("health.check", path=request.path, method=request.method)
    return jsonify({"status": "ok"})


@bp.get("/version")
def version():
    return jsonify({"version": __version__})
