import asyncio
import smtplib
from types import SimpleNamespace

import pytest
from twilio.base.exceptions import TwilioRestException

from hrnotify.models.enums import Channel
from hrnotify.reminders.dispatcher import ChannelDispatcher, recipient_address
from hrnotify.services.base import INVALID_ADDRESS, NOT_CONFIGURED, UNSUPPORTED_CHANNEL, InvalidAddressError, RetryPolicy
from hrnotify.services.email_service import EmailService
from hrnotify.services.phone import to_e164
from hrnotify.services.sms_service import SmsService
from hrnotify.services.whatsapp_service import WhatsAppService

from .conftest import FakeSleep, make_employee


class FakeMessages:
    def __init__(self, errors=()):
        self.errors = list(errors)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.errors:
            raise self.errors.pop(0)
        return SimpleNamespace(sid=f"SM{len(self.calls)}")


def twilio_client(errors=()):
    return SimpleNamespace(messages=FakeMessages(errors))


def server_error():
    return TwilioRestException(status=500, uri="/Messages.json", msg="Internal error", code=20500)


def sms_service(client, max_retries=2, sleep=None, **kwargs):
    return SmsService(
        account_sid=None,
        auth_token=None,
        from_number="+14155550100",
        retry_policy=RetryPolicy(max_retries=max_retries, base_delay=1.0),
        sleep=sleep or FakeSleep(),
        client=client,
        **kwargs,
    )


@pytest.mark.parametrize(
    "raw, region, expected",
    [
        ("+91 98765-43210", None, "+919876543210"),
        ("(650) 253-0000", "US", "+16502530000"),
        ("09876543210", "IN", "+919876543210"),
        ("98765 43210", "in", "+919876543210"),
        ("0044 20 7031 3000", "IN", "+442070313000"),
        ("whatsapp:+919876543210", None, "+919876543210"),
    ],
)
def test_to_e164(raw, region, expected):
    assert to_e164(raw, region) == expected


@pytest.mark.parametrize(
    "raw, region",
    [
        (None, None),
        ("", "IN"),
        ("   ", "IN"),
        ("98765 43210", None),
        ("not a number", "IN"),
        ("+91 12345", None),
    ],
)
def test_to_e164_rejects(raw, region):
    with pytest.raises(InvalidAddressError):
        to_e164(raw, region)


def test_sms_retries_transient_errors_then_succeeds():
    client = twilio_client([server_error(), server_error()])
    sleep = FakeSleep()
    service = sms_service(client, sleep=sleep)

    result = asyncio.run(service.send("+919876543210", None, "Happy birthday"))

    assert result.success
    assert result.attempts == 3
    assert result.message_id == "SM3"
    assert sleep.delays == [1.0, 2.0]
    assert client.messages.calls[0] == {"body": "Happy birthday", "from_": "+14155550100", "to": "+919876543210"}


def test_sms_gives_up_after_max_retries():
    client = twilio_client([server_error(), server_error(), server_error()])
    result = asyncio.run(sms_service(client).send("+919876543210", None, "hi"))

    assert not result.success
    assert result.attempts == 3
    assert result.error_code == "20500"


def test_sms_retries_unexpected_client_errors():
    client = twilio_client([ConnectionError("connection reset")])
    sleep = FakeSleep()

    result = asyncio.run(sms_service(client, sleep=sleep).send("+919876543210", None, "hi"))

    assert result.success
    assert result.attempts == 2
    assert sleep.delays == [1.0]


def test_sms_invalid_number_code_is_not_retried():
    error = TwilioRestException(status=400, uri="/Messages.json", msg="The 'To' number is not valid", code=21211)
    client = twilio_client([error])
    sleep = FakeSleep()

    result = asyncio.run(sms_service(client, sleep=sleep).send("+919876543210", None, "hi"))

    assert not result.success
    assert result.attempts == 1
    assert result.error_code == "21211"
    assert sleep.delays == []


def test_sms_not_configured_makes_no_attempt():
    service = SmsService(account_sid=None, auth_token=None, from_number=None)
    result = asyncio.run(service.send("+919876543210", None, "hi"))

    assert result.error_code == NOT_CONFIGURED
    assert result.attempts == 0


def test_sms_invalid_address_makes_no_attempt():
    client = twilio_client()
    result = asyncio.run(sms_service(client).send("12", None, "hi"))

    assert result.error_code == INVALID_ADDRESS
    assert result.attempts == 0
    assert client.messages.calls == []


def test_sms_reads_national_numbers_in_default_region():
    client = twilio_client()
    result = asyncio.run(sms_service(client, default_region="IN").send("98765 43210", None, "hi"))

    assert result.success
    assert result.recipient == "+919876543210"


def test_whatsapp_adds_channel_prefix():
    client = twilio_client()
    service = WhatsAppService(
        account_sid=None, auth_token=None, from_number="+14155550111",
        sleep=FakeSleep(), client=client,
    )

    result = asyncio.run(service.send("+919876543210", None, "Happy Diwali"))

    assert result.success
    assert client.messages.calls[0]["to"] == "whatsapp:+919876543210"
    assert client.messages.calls[0]["from_"] == "whatsapp:+14155550111"


def test_whatsapp_recipient_falls_back_to_mobile():
    employee = make_employee(1, mobile_number="+919876543210")
    assert recipient_address(employee, Channel.WHATSAPP) == "+919876543210"
    employee = make_employee(2, chat_handle="+447700900123")
    assert recipient_address(employee, Channel.WHATSAPP) == "+447700900123"


class FakeSMTP:
    instances = []

    def __init__(self, host, port, fail_login=False):
        self.host = host
        self.port = port
        self.fail_login = fail_login
        self.started_tls = False
        self.logged_in = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, username, password):
        if self.fail_login:
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")
        self.logged_in = username

    def send_message(self, msg):
        self.sent.append(msg)


def email_service(factory, **kwargs):
    params = dict(
        smtp_server="smtp.example.com",
        smtp_port=587,
        smtp_username="hr@example.com",
        smtp_password="secret",
        from_email="hr@example.com",
        sleep=FakeSleep(),
        smtp_factory=factory,
    )
    params.update(kwargs)
    return EmailService(**params)


def test_email_sends_html_and_plain_parts():
    FakeSMTP.instances = []
    service = email_service(FakeSMTP)

    result = asyncio.run(service.send("asha@example.com", "Happy birthday", "<p>Dear Asha</p>"))

    assert result.success
    smtp = FakeSMTP.instances[0]
    assert smtp.started_tls
    assert smtp.logged_in == "hr@example.com"
    msg = smtp.sent[0]
    assert msg["To"] == "asha@example.com"
    assert msg["Subject"] == "Happy birthday"
    assert result.message_id == msg["Message-ID"]
    assert [part.get_content_type() for part in msg.get_payload()] == ["text/plain", "text/html"]
    assert msg.get_payload()[0].get_payload() == "Dear Asha"


def test_email_auth_failure_is_not_retried():
    FakeSMTP.instances = []
    service = email_service(
        lambda host, port: FakeSMTP(host, port, fail_login=True),
        retry_policy=RetryPolicy(max_retries=2),
    )

    result = asyncio.run(service.send("asha@example.com", "Hi", "body"))

    assert not result.success
    assert result.error_code == "SMTP_AUTH"
    assert result.attempts == 1


def test_email_rejects_malformed_address():
    result = asyncio.run(email_service(FakeSMTP).send("not-an-address", "Hi", "body"))
    assert result.error_code == INVALID_ADDRESS


def test_email_not_configured():
    result = asyncio.run(EmailService(smtp_server=None).send("asha@example.com", "Hi", "body"))
    assert result.error_code == NOT_CONFIGURED


def test_dispatcher_unknown_channel():
    dispatcher = ChannelDispatcher([])
    result = asyncio.run(dispatcher.send(Channel.SMS, "+919876543210", None, "hi"))

    assert not result.success
    assert result.error_code == UNSUPPORTED_CHANNEL
    assert not dispatcher.is_configured(Channel.SMS)
