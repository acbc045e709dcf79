"""HTTP client for the social platform's relationship and block endpoints.

Every request is signed with OAuth 1.0a on behalf of the acting account. The
engine only ever sees ``Credentials`` as an opaque pair handed through to
this module.
"""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qsl, quote

import httpx
from pydantic import ValidationError

from app.core.exceptions import PlatformAPIError
from app.schemas.platform import BlockResult, Credentials, Relationship

logger = logging.getLogger(__name__)


def _encode(value: str) -> str:
    return quote(str(value), safe="~")


def credentials_for(account) -> Credentials:
    return Credentials(access_token=account.access_token, access_token_secret=account.access_token_secret)


def _user_fields(item: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": item.get("id_str") or str(item["id"]), "display_name": item.get("screen_name") or ""}


def _parse_relationships(body: Any) -> List[Relationship]:
    if not isinstance(body, list):
        raise TypeError(f"expected a list of relationships, got {type(body).__name__}")
    return [
        Relationship.model_validate({**_user_fields(item), "connections": item.get("connections", [])})
        for item in body
    ]


def _parse_block_result(body: Any) -> BlockResult:
    return BlockResult.model_validate(_user_fields(body))


class OAuth1Auth(httpx.Auth):
    """HMAC-SHA1 request signing for one consumer/token pair."""

    requires_request_body = True

    def __init__(self, consumer_key: str, consumer_secret: str, credentials: Credentials):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.credentials = credentials

    def _oauth_params(self) -> Dict[str, str]:
        return {
            "oauth_consumer_key": self.consumer_key,
            "oauth_nonce": secrets.token_hex(16),
            "oauth_signature_method": "HMAC-SHA1",
            "oauth_timestamp": str(int(time.time())),
            "oauth_token": self.credentials.access_token,
            "oauth_version": "1.0",
        }

    def sign(self, request: httpx.Request, oauth_params: Dict[str, str]) -> str:
        params = list(request.url.params.multi_items())
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/x-www-form-urlencoded"):
            params.extend(parse_qsl(request.content.decode(), keep_blank_values=True))
        params.extend(oauth_params.items())

        normalized = "&".join(
            f"{k}={v}" for k, v in sorted((_encode(k), _encode(v)) for k, v in params)
        )
        base_url = f"{request.url.scheme}://{request.url.netloc.decode()}{request.url.path}"
        base_string = "&".join([request.method.upper(), _encode(base_url), _encode(normalized)])
        key = f"{_encode(self.consumer_secret)}&{_encode(self.credentials.access_token_secret)}"
        digest = hmac.new(key.encode(), base_string.encode(), hashlib.sha1).digest()
        return base64.b64encode(digest).decode()

    def auth_flow(self, request: httpx.Request):
        oauth_params = self._oauth_params()
        oauth_params["oauth_signature"] = self.sign(request, oauth_params)
        request.headers["Authorization"] = "OAuth " + ", ".join(
            f'{_encode(k)}="{_encode(v)}"' for k, v in sorted(oauth_params.items())
        )
        yield request


class PlatformClient:
    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        credentials: Credentials,
        parse: Callable[[Any], Any],
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        auth = OAuth1Auth(self.consumer_key, self.consumer_secret, credentials)
        try:
            resp = await self.client.request(method, path, params=params, data=data, auth=auth)
        except httpx.RequestError as exc:
            raise PlatformAPIError(None, str(exc)) from exc

        body: Any
        try:
            body = resp.json()
        except ValueError:
            body = resp.text

        if not resp.is_success:
            raise PlatformAPIError(resp.status_code, body)

        # A 2xx reply that is not the documented shape (maintenance pages, truncated JSON)
        # is reported like any other failed call.
        try:
            return parse(body)
        except (ValidationError, KeyError, TypeError, AttributeError) as exc:
            logger.debug("Unexpected %s %s reply body: %r", method, path, body)
            raise PlatformAPIError(resp.status_code, body) from exc

    async def lookup_relationships(self, credentials: Credentials, sink_uids: List[str]) -> List[Relationship]:
        """Relationship of the credentialed account to each of up to 100 uids.

        Suspended or deactivated targets are silently absent from the result.
        """
        return await self._request(
            "GET",
            "/friendships/lookup.json",
            credentials,
            _parse_relationships,
            params={"user_id": ",".join(sink_uids)},
        )

    async def create_block(self, credentials: Credentials, sink_uid: str) -> BlockResult:
        return await self._request(
            "POST",
            "/blocks/create.json",
            credentials,
            _parse_block_result,
            data={"user_id": sink_uid, "skip_status": 1},
        )
