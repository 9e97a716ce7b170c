"""Tests for the SMS senders."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from app.exceptions import SmsDeliveryError
from app.services.sms import LoggingSmsSender, SnsSmsSender, create_sms_sender


@pytest.fixture
def sns_client():
    client = MagicMock()
    client.publish.return_value = {"MessageId": "msg-1"}
    return client


async def test_sns_publishes_transactional_sms(sns_client):
    sender = SnsSmsSender(region="us-east-1", client=sns_client)

    await sender.send("+15551234567", "Your verification code is: 123456")

    sns_client.publish.assert_called_once()
    kwargs = sns_client.publish.call_args.kwargs
    assert kwargs["PhoneNumber"] == "+15551234567"
    assert kwargs["Message"] == "Your verification code is: 123456"
    assert kwargs["MessageAttributes"]["AWS.SNS.SMS.SMSType"]["StringValue"] == "Transactional"


async def test_sns_client_error_becomes_delivery_error(sns_client):
    sns_client.publish.side_effect = ClientError(
        {"Error": {"Code": "InvalidParameter", "Message": "Invalid phone number"}},
        "Publish",
    )
    sender = SnsSmsSender(region="us-east-1", client=sns_client)

    with pytest.raises(SmsDeliveryError):
        await sender.send("+15551234567", "hello")


async def test_sns_connection_error_becomes_delivery_error(sns_client):
    sns_client.publish.side_effect = EndpointConnectionError(endpoint_url="https://sns.us-east-1.amazonaws.com")
    sender = SnsSmsSender(region="us-east-1", client=sns_client)

    with pytest.raises(SmsDeliveryError):
        await sender.send("+15551234567", "hello")


async def test_logging_sender_does_not_raise():
    await LoggingSmsSender().send("+15551234567", "Your verification code is: 123456")


def test_factory_honours_provider_setting():
    settings = SimpleNamespace(SMS_PROVIDER="log")
    assert isinstance(create_sms_sender(settings), LoggingSmsSender)
