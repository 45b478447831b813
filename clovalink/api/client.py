"""
HTTP client for the ClovaLink messaging API.

Every call goes through one requests.Session carrying the bearer token. A
non-2xx response, a transport failure or a payload that does not match the
expected schema raises ApiError; callers decide whether that is fatal (user
actions) or skipped (background polling).
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Type

import requests
import urllib3
from pydantic import BaseModel, ValidationError
from urllib3.exceptions import InsecureRequestWarning

from clovalink.core.config import Settings
from clovalink.core.errors import ApiError
from clovalink.schemas.channel import Channel, ChannelCreateRequest, ChannelListResponse
from clovalink.schemas.message import (
    ConversationListResponse,
    DeleteMessageRequest,
    MarkReadRequest,
    Message,
    MessageListResponse,
    MessageSendRequest,
    PublicKeyRecord,
)

logger = logging.getLogger(__name__)


class ClovaLinkClient:

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        verify_tls: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.verify = verify_tls
        self.session.headers.setdefault('Accept', 'application/json')
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'
        if not verify_tls:
            # Self-signed certificates in development deployments
            urllib3.disable_warnings(InsecureRequestWarning)

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> 'ClovaLinkClient':
        return cls(
            settings.api_base_url,
            token=settings.api_token,
            timeout=settings.request_timeout,
            verify_tls=settings.verify_tls,
            session=session,
        )

    def close(self) -> None:
        self.session.close()

    # --- encryption key directory ---

    def publish_public_key(self, public_key: str) -> None:
        """Store the current user's public key in the server directory."""
        self._request('POST', '/api/encryption/keys', json={'publicKey': public_key})

    def fetch_public_key(self, user_id: str) -> Optional[str]:
        """Return the user's published public key, or None if they never published one."""
        record = self.fetch_key_record(user_id)
        return record.public_key if record is not None and record.public_key else None

    def fetch_key_record(self, user_id: str) -> Optional[PublicKeyRecord]:
        try:
            return self._request('GET', '/api/encryption/keys', params={'userId': user_id}, model=PublicKeyRecord)
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise

    # --- messages ---

    def fetch_direct_messages(self, recipient_id: str) -> List[Message]:
        params = {'recipientId': recipient_id}
        return self._request('GET', '/api/messages', params=params, model=MessageListResponse).messages

    def fetch_channel_messages(self, channel_id: str) -> List[Message]:
        params = {'channelId': channel_id}
        return self._request('GET', '/api/messages', params=params, model=MessageListResponse).messages

    def fetch_conversations(self) -> List[Message]:
        """Latest messages the current user sent or received, newest first."""
        return self._request('GET', '/api/messages', model=ConversationListResponse).conversations

    def send_message(self, request: MessageSendRequest) -> Message:
        return self._request('POST', '/api/messages', json=_dump(request), model=Message, field='message')

    def mark_read(self, message_ids: List[str]) -> None:
        if not message_ids:
            return
        self._request('POST', '/api/messages/mark-read', json=_dump(MarkReadRequest(message_ids=message_ids)))

    def delete_message(self, message_id: str, delete_for_everyone: bool = False) -> bool:
        """Delete for me or for everyone; returns whether it was deleted for everyone."""
        body = DeleteMessageRequest(message_id=message_id, delete_for_everyone=delete_for_everyone)
        data = self._request('POST', '/api/messages/delete', json=_dump(body))
        return bool(data.get('deletedForEveryone', delete_for_everyone))

    # --- channels ---

    def list_channels(self) -> List[Channel]:
        return self._request('GET', '/api/messages/channels', model=ChannelListResponse).channels

    def create_channel(self, request: ChannelCreateRequest) -> Channel:
        return self._request('POST', '/api/messages/channels', json=_dump(request), model=Channel, field='channel')

    def _request(
        self,
        method: str,
        path: str,
        model: Optional[Type[BaseModel]] = None,
        field: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        url = f'{self.base_url}{path}'
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ApiError(None, f'{method} {path} failed: {type(e).__name__}') from e

        if not resp.ok:
            raise ApiError(resp.status_code, _error_detail(resp))

        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError(resp.status_code, f'{method} {path} returned invalid JSON') from e

        if not isinstance(data, dict):
            raise ApiError(resp.status_code, f'{method} {path} returned unexpected payload')
        if model is None:
            return data

        try:
            return model.model_validate(data[field] if field else data)
        except (ValidationError, KeyError, TypeError) as e:
            logger.warning('%s %s returned a payload that does not match %s', method, path, model.__name__)
            raise ApiError(resp.status_code, f'{method} {path} returned unexpected payload') from e


def _dump(model) -> dict:
    return model.model_dump(by_alias=True, mode='json')


def _error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.reason or 'Unknown error'
    if isinstance(body, dict):
        return str(body.get('error') or body.get('detail') or 'Unknown error')
    return 'Unknown error'
