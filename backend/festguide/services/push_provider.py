"""Push provider abstraction and adapters.

Providers raise tagged exceptions so the delivery engine can tell a dead
device token (retire it) from a transient failure (leave it alone) without
ever reading error text.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from aioapns import APNs, NotificationRequest, PushType

logger = logging.getLogger(__name__)

# Concurrent provider requests per send_batch call
BATCH_CONCURRENCY = 10

# APNs reason codes meaning the token itself is bad
APNS_INVALID_TOKEN_REASONS = frozenset({"BadDeviceToken", "DeviceTokenNotForTopic", "MissingDeviceToken"})
APNS_UNREGISTERED_STATUS = "410"

# Top-level payload keys owned by the envelope, never taken from message data
APNS_RESERVED_KEYS = frozenset({"aps", "type"})


@dataclass
class PushMessage:
    """Platform-neutral notification content."""
    title: str
    body: str
    notification_type: Optional[str] = None
    data: Dict[str, str] = field(default_factory=dict)


class PushDeliveryError(Exception):
    """Base class for provider-reported delivery failures."""

    permanent = False


class PermanentDeliveryError(PushDeliveryError):
    """The token will never accept delivery again."""

    permanent = True


class InvalidTokenError(PermanentDeliveryError):
    """Provider rejected the token as malformed or not issued for this app."""


class UnregisteredDeviceError(PermanentDeliveryError):
    """Provider reports the app was uninstalled or the token expired."""


class TransientDeliveryError(PushDeliveryError):
    """Delivery failed but may succeed later (network, throttling, outage)."""


@dataclass
class PushResult:
    """Outcome for one target of a batch send."""
    token: str
    platform: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PushProvider(ABC):
    """Transport for push notifications (APNs, FCM, web push...)."""

    @abstractmethod
    async def send(self, token: str, platform: str, message: PushMessage) -> None:
        """Send one notification.

        Raises:
            InvalidTokenError: token rejected as invalid
            UnregisteredDeviceError: device no longer registered
            TransientDeliveryError: or any other exception, for retryable failures
        """

    async def send_batch(
        self,
        targets: Sequence[Tuple[str, str]],
        message: PushMessage,
    ) -> List[PushResult]:
        """Send the same notification to many (token, platform) pairs.

        Failures are captured per target instead of raised, with the same
        exception classes `send` would raise.
        """
        semaphore = asyncio.Semaphore(BATCH_CONCURRENCY)

        async def send_with_semaphore(token: str, platform: str) -> PushResult:
            async with semaphore:
                try:
                    await self.send(token, platform, message)
                except Exception as e:
                    return PushResult(token=token, platform=platform, error=e)
                return PushResult(token=token, platform=platform)

        return list(await asyncio.gather(
            *[send_with_semaphore(token, platform) for token, platform in targets]
        ))

    async def close(self) -> None:
        """Release transport resources."""


class LoggingPushProvider(PushProvider):
    """Provider that only logs. Used when no real transport is configured."""

    async def send(self, token: str, platform: str, message: PushMessage) -> None:
        logger.info(
            f"[log-only] Push to {platform} device {token[:16]}...: "
            f"title='{message.title}', body='{message.body}'"
        )


@dataclass
class PushConfig:
    """APNs configuration."""
    enabled: bool = False
    key_path: str = ""  # Path to .p8 key file
    key_id: str = ""
    team_id: str = ""
    bundle_id: str = ""
    use_sandbox: bool = True  # Use sandbox for development

    @property
    def is_complete(self) -> bool:
        return all([self.key_path, self.key_id, self.team_id, self.bundle_id])


class APNsPushProvider(PushProvider):
    """Sends iOS notifications via APNs and maps rejections to tagged errors."""

    def __init__(self, config: PushConfig):
        self._config = config
        self._client: Optional[APNs] = None

    def _get_client(self) -> APNs:
        if self._client is None:
            self._client = APNs(
                key=self._config.key_path,
                key_id=self._config.key_id,
                team_id=self._config.team_id,
                topic=self._config.bundle_id,
                use_sandbox=self._config.use_sandbox,
            )
            logger.info(f"APNs client configured (sandbox={self._config.use_sandbox})")
        return self._client

    @staticmethod
    def build_payload(message: PushMessage) -> dict:
        """Build the APNs JSON payload for a message."""
        aps = {"alert": {"title": message.title, "body": message.body}, "sound": "default"}
        payload = {"aps": aps}
        if message.notification_type:
            payload["type"] = message.notification_type
        for key, value in (message.data or {}).items():
            if key in APNS_RESERVED_KEYS:
                logger.warning(f"Dropping reserved key '{key}' from push data")
                continue
            payload[key] = value
        return payload

    @staticmethod
    def classify_failure(status: Optional[str], reason: Optional[str]) -> PushDeliveryError:
        """Turn an APNs status/reason code pair into a delivery error."""
        if str(status) == APNS_UNREGISTERED_STATUS or reason == "Unregistered":
            return UnregisteredDeviceError(reason or "Unregistered")
        if reason in APNS_INVALID_TOKEN_REASONS:
            return InvalidTokenError(reason)
        return TransientDeliveryError(f"APNs rejected notification: status={status} reason={reason}")

    async def send(self, token: str, platform: str, message: PushMessage) -> None:
        request = NotificationRequest(
            device_token=token,
            message=self.build_payload(message),
            push_type=PushType.ALERT,
        )

        try:
            response = await self._get_client().send_notification(request)
        except (OSError, asyncio.TimeoutError) as e:
            raise TransientDeliveryError(f"APNs connection failed: {e}") from e

        if response.is_successful:
            logger.info(f"Push notification sent to {token[:16]}...")
            return

        raise self.classify_failure(response.status, response.description)


class PlatformPushProvider(PushProvider):
    """Routes each send to the provider registered for the device platform."""

    def __init__(self, routes: Dict[str, PushProvider], default: PushProvider):
        self._routes = dict(routes)
        self._default = default

    def provider_for(self, platform: str) -> PushProvider:
        return self._routes.get(platform, self._default)

    async def send(self, token: str, platform: str, message: PushMessage) -> None:
        await self.provider_for(platform).send(token, platform, message)

    async def close(self) -> None:
        for provider in {*self._routes.values(), self._default}:
            await provider.close()


def build_push_provider(config: PushConfig) -> PushProvider:
    """Pick the transport stack for the given APNs configuration."""
    fallback = LoggingPushProvider()

    if not config.enabled:
        logger.info("APNs disabled - push notifications will be logged only")
        return fallback

    if not config.is_complete:
        logger.warning("APNs enabled but not fully configured - push notifications will be logged only")
        return fallback

    return PlatformPushProvider({"ios": APNsPushProvider(config)}, default=fallback)
