import io

from twilio.request_validator import RequestValidator
from werkzeug.datastructures import MultiDict

from sms2mail.webhook import create_app

# Target under test: sms2mail.webhook.create_app
# The mail sender is replaced by RecordingSender (see conftest.py).

SMS_FORM = {"From": "+15551234567", "Body": "hello", "MessageSid": "SM123"}


def test_profile_sms_dispatched(client, sender):
    resp = client.post("/sms/home", data=SMS_FORM)

    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "text/xml"
    assert resp.get_data(as_text=True) == "<Response></Response>"

    assert len(sender.sent) == 1
    sent = sender.sent[0]
    assert sent["sender"] == "+15551234567"
    assert sent["body"] == "hello"
    assert sent["target"].email_from == "a@x.com"
    assert sent["target"].email_to == "b@x.com"
    assert sent["target"].account == "gmail"


def test_profile_without_msmtp_profile_uses_default_account(client, sender):
    resp = client.post("/sms/work", data=SMS_FORM)

    assert resp.status_code == 200
    assert sender.sent[0]["target"].account == "default"


def test_profile_config_read_on_every_request(client, sender, config_dir):
    client.post("/sms/work", data=SMS_FORM)
    (config_dir / "sms2mail.d" / "work.toml").write_text(
        'email_from = "sms@work.com"\nemail_to = "new@work.com"\n', encoding="utf-8"
    )
    client.post("/sms/work", data=SMS_FORM)

    assert [s["target"].email_to for s in sender.sent] == ["me@work.com", "new@work.com"]


def test_single_tenant_uses_global_config(client, sender):
    resp = client.post("/sms", data=SMS_FORM)

    assert resp.status_code == 200
    assert resp.get_data(as_text=True) == "<Response></Response>"
    target = sender.sent[0]["target"]
    assert target.email_from == "relay@x.com"
    assert target.email_to == "owner@x.com"
    assert target.account is None


def test_missing_fields_default_to_empty(client, sender):
    resp = client.post("/sms/home", data={"MessageSid": "SM123"})

    assert resp.status_code == 200
    assert sender.sent[0]["sender"] == ""
    assert sender.sent[0]["body"] == ""


def test_unknown_profile_is_404(client, sender):
    resp = client.post("/sms/nobody", data=SMS_FORM)

    assert resp.status_code == 404
    assert "not found or invalid" in resp.get_data(as_text=True)
    assert sender.sent == []


def test_malformed_profile_is_404(client, sender):
    resp = client.post("/sms/broken", data=SMS_FORM)

    assert resp.status_code == 404
    assert sender.sent == []


def test_profile_path_traversal_is_404(client, sender, config_dir):
    (config_dir / "secret.toml").write_text('email_from = "x"\nemail_to = "y"\n', encoding="utf-8")

    for path in ("/sms/../secret", "/sms/sub/home", "/sms/.hidden", "/sms/..%2Fsecret"):
        resp = client.post(path, data=SMS_FORM)
        assert resp.status_code == 404, path

    assert sender.sent == []


def test_missing_profile_segment_is_404(client, sender):
    resp = client.post("/sms/", data=SMS_FORM)

    assert resp.status_code == 404
    assert sender.sent == []


def test_non_form_body_is_400(client, sender):
    resp = client.post("/sms/home", json={"From": "+15551234567", "Body": "hello"})

    assert resp.status_code == 400
    assert sender.sent == []


def test_missing_body_is_400(client, sender):
    assert client.post("/sms/home").status_code == 400
    assert client.post("/sms", data=b"", content_type="application/x-www-form-urlencoded").status_code == 400
    assert sender.sent == []


def test_dispatch_failure_still_200_with_empty_body(global_config, failing_sender):
    client = create_app(global_config, failing_sender).test_client()

    resp = client.post("/sms/home", data=SMS_FORM)

    assert resp.status_code == 200
    assert resp.get_data() == b""
    assert len(failing_sender.sent) == 1


def test_get_not_allowed(client):
    assert client.get("/sms/home").status_code == 405


def test_signature_required_when_validator_configured(global_config, sender):
    validator = RequestValidator("secret-token")
    client = create_app(global_config, sender, validator=validator).test_client()

    resp = client.post("/sms/home", data=SMS_FORM)
    assert resp.status_code == 403

    resp = client.post("/sms/home", data=SMS_FORM, headers={"X-Twilio-Signature": "bogus"})
    assert resp.status_code == 403

    assert sender.sent == []


def test_valid_signature_accepted(global_config, sender):
    validator = RequestValidator("secret-token")
    client = create_app(global_config, sender, validator=validator).test_client()
    signature = validator.compute_signature("http://localhost/sms/home", SMS_FORM)

    resp = client.post("/sms/home", data=SMS_FORM, headers={"X-Twilio-Signature": signature})

    assert resp.status_code == 200
    assert len(sender.sent) == 1


def test_health_skips_signature_check(global_config, sender):
    client = create_app(global_config, sender, validator=RequestValidator("secret-token")).test_client()

    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_version(client):
    from sms2mail import __version__

    resp = client.get("/version")

    assert resp.status_code == 200
    assert resp.get_json() == {"version": __version__}


def test_chunked_form_without_content_length(client, sender):
    resp = client.post(
        "/sms/home",
        input_stream=io.BytesIO(b"From=%2B1&Body=hi"),
        content_type="application/x-www-form-urlencoded",
        headers={"Transfer-Encoding": "chunked"},
        environ_overrides={"wsgi.input_terminated": True},
    )

    assert resp.status_code == 200
    assert resp.get_data(as_text=True) == "<Response></Response>"
    assert sender.sent[0]["sender"] == "+1"
    assert sender.sent[0]["body"] == "hi"


def test_signature_covers_repeated_fields(global_config, sender):
    validator = RequestValidator("secret-token")
    client = create_app(global_config, sender, validator=validator).test_client()
    form = MultiDict(
        [
            ("From", "+15551234567"),
            ("Body", "hello"),
            ("MediaUrl", "https://api.twilio.com/media/1"),
            ("MediaUrl", "https://api.twilio.com/media/2"),
        ]
    )
    signature = validator.compute_signature("http://localhost/sms/home", form)

    resp = client.post("/sms/home", data=form, headers={"X-Twilio-Signature": signature})

    assert resp.status_code == 200
    assert len(sender.sent) == 1
