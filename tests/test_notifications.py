import requests

from nexar.services.notifications import EmailService


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def _service(session, api_key="re_test"):
    return EmailService(
        api_key=api_key,
        api_url="https://mail.test/emails",
        sender="Nexar <hello@nexar.test>",
        base_url="http://frontend.test/",
        timeout=3,
        session=session,
    )


def test_verification_email_posts_to_api():
    session = FakeSession()
    assert _service(session).send_verification_email("ada@example.com", "Ada <3", "tok123") is True

    call = session.calls[0]
    assert call["url"] == "https://mail.test/emails"
    assert call["headers"]["Authorization"] == "Bearer re_test"
    assert call["timeout"] == 3
    assert call["json"]["to"] == ["ada@example.com"]
    assert "http://frontend.test/verify?token=tok123" in call["json"]["html"]
    assert "Ada &lt;3" in call["json"]["html"]


def test_reset_email_link():
    session = FakeSession()
    _service(session).send_password_reset_email("ada@example.com", "Ada", "reset1")
    assert "http://frontend.test/reset-password?token=reset1" in session.calls[0]["json"]["html"]


def test_failures_are_reported_not_raised():
    assert _service(FakeSession(error=requests.ConnectionError("down"))).send_verification_email(
        "ada@example.com", "Ada", "tok"
    ) is False
    assert _service(FakeSession(response=FakeResponse(500))).send_verification_email(
        "ada@example.com", "Ada", "tok"
    ) is False


def test_missing_api_key_skips_delivery():
    session = FakeSession()
    assert _service(session, api_key="").send_verification_email("ada@example.com", "Ada", "tok") is False
    assert session.calls == []
