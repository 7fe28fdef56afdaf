"""
Delivery Pipeline

Sends one artifact to the chat endpoint at most once per TTL window:

    PENDING -> SKIPPED                        (digest found in sent cache)
    PENDING -> SENDING -> SENT                (2xx)
    SENDING -> SENDING (retry) -> SENT        (transport error / 5xx, bounded)
    SENDING -> FAILED                         (4xx, or attempts exhausted)

Failures are returned, never raised.
"""

import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import requests

from notion_relay.constants import (
    DEFAULT_IDEMPOTENCY_PREFIX,
    DEFAULT_MESSAGE_TEXT,
    DELIVERY_BACKOFF_BASE,
    DELIVERY_MAX_ATTEMPTS,
)
from notion_relay.core.fingerprint import digest, idempotency_key
from notion_relay.core.retry import backoff_delay
from notion_relay.delivery.cache import SentRecordCache
from notion_relay.delivery.chat_client import ChatClient
from notion_relay.logger import logger


@dataclass(frozen=True)
class DeliveryArtifact:
    """A generated report: file name plus raw bytes."""
    name: str
    content: bytes

    @property
    def digest(self) -> str:
        return digest(self.content, self.name)

    @classmethod
    def from_file(cls, path: str) -> "DeliveryArtifact":
        with open(path, "rb") as f:
            return cls(name=os.path.basename(path), content=f.read())


class DeliveryState(str, Enum):
    PENDING = "pending"
    SENDING = "sending"
    SKIPPED = "skipped"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class DeliveryResult:
    name: str
    digest: str
    state: DeliveryState = DeliveryState.PENDING
    attempts: int = 0
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        """A dedup skip counts as success for the caller."""
        return self.state in (DeliveryState.SENT, DeliveryState.SKIPPED)


class DeliveryPipeline:
    """Dedup, send and retry for single artifacts."""

    def __init__(
        self,
        chat_client: ChatClient,
        cache: SentRecordCache,
        message_text: str = DEFAULT_MESSAGE_TEXT,
        idempotency_prefix: str = DEFAULT_IDEMPOTENCY_PREFIX,
        max_attempts: int = DELIVERY_MAX_ATTEMPTS,
        backoff_base: float = DELIVERY_BACKOFF_BASE,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the pipeline.

        Args:
            chat_client: Transport to the chat endpoint
            cache: Sent-record cache used for dedup
            message_text: Text posted with each file
            idempotency_prefix: Prefix of the Idempotency-Key header
            max_attempts: Total send attempts, first one included
            backoff_base: Wait before attempt n is backoff_base * 2^(n-2)
            sleep: Sleep function (injectable for tests)
        """
        self.chat_client = chat_client
        self.cache = cache
        self.message_text = message_text
        self.idempotency_prefix = idempotency_prefix
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self._sleep = sleep

    @classmethod
    def from_config(cls, config, chat_client: ChatClient = None,
                    cache: SentRecordCache = None) -> "DeliveryPipeline":
        return cls(
            chat_client or ChatClient.from_config(config),
            cache or SentRecordCache.from_config(config),
            message_text=config.chat_message_text,
            idempotency_prefix=config.idempotency_prefix,
        )

    def deliver(self, artifact: DeliveryArtifact, text: str = None) -> DeliveryResult:
        """Deliver one artifact.

        Args:
            artifact: File to send
            text: Message text (default: the configured message text)
        """
        file_digest = artifact.digest
        result = DeliveryResult(name=artifact.name, digest=file_digest)

        if self.cache.lookup(file_digest):
            result.state = DeliveryState.SKIPPED
            return result

        key = idempotency_key(file_digest, self.idempotency_prefix)
        text = text or self.message_text
        result.state = DeliveryState.SENDING
        logger.info(f"Sending {artifact.name}", icon="📤")

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                wait = backoff_delay(self.backoff_base, attempt - 2)
                logger.info(f"Retry {attempt}/{self.max_attempts} in {wait:.0f}s...", icon="🔁")
                self._sleep(wait)

            result.attempts = attempt
            try:
                response = self.chat_client.send(text, artifact.name, artifact.content, key)
            except requests.exceptions.RequestException as e:
                result.error = str(e)
                logger.warning(f"Network error sending {artifact.name}: {e}")
                continue

            result.status_code = response.status_code
            logger.debug(f"Response status: {response.status_code}")

            if 200 <= response.status_code < 300:
                result.state = DeliveryState.SENT
                result.error = None
                self.cache.mark_sent(file_digest, artifact.name)
                self.cache.persist()
                logger.success(f"Sent {artifact.name}")
                return result

            result.error = f"HTTP {response.status_code}: {response.text[:500]}"
            if 500 <= response.status_code < 600:
                logger.warning(f"{artifact.name}: {result.error}")
                continue

            # any other status is a client-side rejection and will not improve on retry
            break

        result.state = DeliveryState.FAILED
        logger.error(f"Failed to send {artifact.name} after {result.attempts} attempt(s): {result.error}")
        return result
