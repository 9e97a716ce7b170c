"""SMS delivery capability."""
import asyncio
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
import structlog

from app.exceptions import SmsDeliveryError

logger = structlog.get_logger()


class SmsSender(Protocol):
    """Anything that can deliver a text message to an E.164 number."""

    async def send(self, phone_number: str, message: str) -> None:
        ...


class SnsSmsSender:
    """
    Deliver SMS through AWS SNS.

    boto3 is synchronous, so each publish runs in a worker thread.
    """

    def __init__(
        self,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        client=None,
    ):
        self.client = client or boto3.client(
            "sns",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    async def send(self, phone_number: str, message: str) -> None:
        """Publish a transactional SMS.

        Raises:
            SmsDeliveryError: If SNS rejects the message or cannot be reached
        """
        try:
            response = await asyncio.to_thread(
                self.client.publish,
                PhoneNumber=phone_number,
                Message=message,
                MessageAttributes={
                    "AWS.SNS.SMS.SMSType": {"DataType": "String", "StringValue": "Transactional"},
                },
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("SNS publish failed", error=str(e))
            raise SmsDeliveryError("Failed to send SMS message") from e

        logger.info("SMS published", message_id=response.get("MessageId"))


class LoggingSmsSender:
    """Development sender: records that a message went out, never its content."""

    async def send(self, phone_number: str, message: str) -> None:
        logger.info("SMS send skipped (log provider)", phone_suffix=phone_number[-4:])


def create_sms_sender(settings) -> SmsSender:
    """Factory picking the sender configured by SMS_PROVIDER."""
    if settings.SMS_PROVIDER == "log":
        logger.info("Using logging SMS sender (set SMS_PROVIDER=sns to deliver messages)")
        return LoggingSmsSender()
    return SnsSmsSender(
        region=settings.AWS_REGION,
        access_key_id=settings.AWS_ACCESS_KEY_ID,
        secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
    )
