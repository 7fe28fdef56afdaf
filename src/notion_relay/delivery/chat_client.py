"""
Chat Endpoint Client

Posts a message with one file attachment to the chat integration endpoint:

    POST {base_url}/api/integrations/send/{channel_id}

The multipart body carries a `text` field and a `files` field. The file
part names the original file twice: `filename` holds the raw (UTF-8) name
for servers that ignore RFC 5987, `filename*` holds the percent-encoded
form so non-ASCII names survive.
"""

from typing import Tuple
from urllib.parse import quote

import requests
from urllib3.fields import RequestField
from urllib3.filepost import encode_multipart_formdata

from notion_relay.constants import CHAT_SEND_PATH, DELIVERY_TIMEOUT
from notion_relay.logger import logger

_FILENAME_ESCAPES = {ord('"'): "%22", ord("\r"): "%0D", ord("\n"): "%0A"}


def content_disposition(field_name: str, filename: str) -> str:
    """Content-Disposition header with a filename / filename* pair."""
    plain = filename.translate(_FILENAME_ESCAPES)
    encoded = quote(filename, safe="")
    return f'form-data; name="{field_name}"; filename="{plain}"; filename*=utf-8\'\'{encoded}'


def build_multipart(text: str, filename: str, content: bytes,
                    content_type: str = "text/html", boundary: str = None) -> Tuple[bytes, str]:
    """Encode the text + file body.

    Returns:
        (body, Content-Type header value including the boundary)
    """
    text_field = RequestField(name="text", data=text)
    text_field.make_multipart()

    file_field = RequestField(
        name="files",
        data=content,
        headers={
            "Content-Disposition": content_disposition("files", filename),
            "Content-Type": content_type,
        },
    )
    return encode_multipart_formdata([text_field, file_field], boundary=boundary)


class ChatClient:
    """Thin client for the chat integration send endpoint."""

    def __init__(self, base_url: str, api_key: str, channel_id: str,
                 session: requests.Session = None, timeout: float = DELIVERY_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.channel_id = channel_id
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "ChatClient":
        """Build a client from a RelayConfig, validating the delivery settings."""
        config.require_delivery()
        return cls(config.chat_base_url, config.chat_api_key, config.chat_channel_id)

    @property
    def send_url(self) -> str:
        return f"{self.base_url}/{CHAT_SEND_PATH.format(channel_id=self.channel_id)}"

    def send(self, text: str, filename: str, content: bytes, idempotency_key: str) -> requests.Response:
        """Post one message with one attachment.

        Returns:
            The response, whatever its status

        Raises:
            requests.exceptions.RequestException: On transport failure
        """
        body, content_type = build_multipart(text, filename or "file.html", content)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Idempotency-Key": idempotency_key,
            "Content-Type": content_type,
        }
        logger.debug(f"POST {self.send_url} ({filename}, multipart {len(body)} bytes)")
        return self.session.post(self.send_url, data=body, headers=headers, timeout=self.timeout)
