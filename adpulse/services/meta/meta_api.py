"""
Meta Graph API Client
Cursor-paginated reads of ad accounts, campaigns and insights, plus the
OAuth token exchange.
"""
import json
import logging
from typing import Optional, Dict, List, Any, Iterable
from urllib.parse import urlencode

import httpx

from adpulse.core.config import settings
from adpulse.core.exceptions import InvalidInputError, MetaAPIError, TransportError

logger = logging.getLogger(__name__)

AD_ACCOUNT_FIELDS = ["id", "name"]
CAMPAIGN_FIELDS = ["id", "name", "status", "created_time"]
INSIGHT_FIELDS = ["impressions", "clicks", "spend", "ctr", "cpc", "actions"]

# date_preset covering the platform's whole retained history
LIFETIME_PRESET = "maximum"


class MetaAPI:
    """
    Meta Graph API client.

    Every read follows `paging.next` to exhaustion. Error payloads become
    MetaAPIError with the platform's message, bodies without one become
    TransportError.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        page_limit: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.base_url = (base_url or settings.facebook_api_url).rstrip("/")
        self.page_limit = page_limit or settings.META_PAGE_LIMIT
        self.timeout = timeout or settings.META_HTTP_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "MetaAPI":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # ========================================
    # Transport
    # ========================================

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET one page and return its JSON body, raising typed errors"""
        try:
            response = await self.client.get(url, params=params)
        except httpx.HTTPError as e:
            raise TransportError(None, f"Meta API request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            raise MetaAPIError(
                error.get("message") or "Unknown Meta API error",
                code=error.get("code"),
                error_type=error.get("type"),
                status_code=response.status_code,
            )

        if not response.is_success:
            raise TransportError(response.status_code)

        if not isinstance(payload, dict):
            raise TransportError(response.status_code, "Meta API returned a non-JSON body")

        return payload

    async def fetch_all(
        self,
        path: str,
        fields: Iterable[str],
        access_token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch every record of a collection edge.

        Args:
            path: Graph path, e.g. "me/adaccounts"
            fields: Field names to request
            access_token: Token to use (falls back to the client's token)
            params: Extra query parameters for the first page

        Returns:
            All records across all pages, in page order
        """
        token = access_token or self.access_token
        if not token:
            raise InvalidInputError("access_token is required")

        url: Optional[str] = self._url(path)
        query: Optional[Dict[str, Any]] = {
            "fields": ",".join(fields),
            "limit": self.page_limit,
            "access_token": token,
        }
        if params:
            query.update(params)

        all_records: List[Dict[str, Any]] = []
        seen_urls = set()
        page_count = 0

        while url:
            data = await self._get_json(url, query)
            records = data.get("data") or []
            all_records.extend(records)
            page_count += 1
            logger.debug(f"{path}: page {page_count} returned {len(records)} records (total {len(all_records)})")

            seen_urls.add(url)
            url = (data.get("paging") or {}).get("next")
            query = None  # Next URL contains all params

            if url in seen_urls:
                logger.warning(f"{path}: paging.next repeats a fetched page, stopping")
                break

        return all_records

    # ========================================
    # Ads API
    # ========================================

    async def fetch_ad_accounts(self, access_token: Optional[str] = None) -> List[Dict[str, Any]]:
        """Fetch ad accounts of the token owner"""
        return await self.fetch_all("me/adaccounts", AD_ACCOUNT_FIELDS, access_token)

    async def fetch_campaigns(
        self,
        ad_account_id: str,
        access_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch campaigns for an ad account"""
        # Ensure act_ prefix
        if not ad_account_id.startswith("act_"):
            ad_account_id = f"act_{ad_account_id}"

        return await self.fetch_all(f"{ad_account_id}/campaigns", CAMPAIGN_FIELDS, access_token)

    async def fetch_campaign_insights(
        self,
        campaign_id: str,
        access_token: Optional[str] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
        date_preset: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch daily insights (time_increment=1) for one campaign.

        `date_preset` wins over an explicit since/until pair.
        """
        params: Dict[str, Any] = {"time_increment": 1}
        if date_preset:
            params["date_preset"] = date_preset
        elif since and until:
            params["time_range"] = json.dumps({"since": since, "until": until})

        return await self.fetch_all(f"{campaign_id}/insights", INSIGHT_FIELDS, access_token, params)

    # ========================================
    # OAuth
    # ========================================

    @staticmethod
    def _require_app_credentials():
        if not settings.FACEBOOK_APP_ID or not settings.FACEBOOK_APP_SECRET:
            raise InvalidInputError("FACEBOOK_APP_ID and FACEBOOK_APP_SECRET must be configured")

    @staticmethod
    def build_login_url(redirect_uri: Optional[str] = None, state: Optional[str] = None) -> str:
        """URL of the Meta login dialog"""
        if not settings.FACEBOOK_APP_ID:
            raise InvalidInputError("FACEBOOK_APP_ID must be configured")

        params = {
            "client_id": settings.FACEBOOK_APP_ID,
            "redirect_uri": redirect_uri or settings.FACEBOOK_OAUTH_REDIRECT_URI,
            "scope": ",".join(settings.FACEBOOK_OAUTH_SCOPES),
        }
        if state:
            params["state"] = state
        return f"{settings.FACEBOOK_DIALOG_BASE_URL}/{settings.FACEBOOK_API_VERSION}/dialog/oauth?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: Optional[str] = None) -> Dict[str, Any]:
        """Exchange an authorization code for a short-lived user token"""
        self._require_app_credentials()
        return await self._get_json(
            self._url("oauth/access_token"),
            {
                "client_id": settings.FACEBOOK_APP_ID,
                "client_secret": settings.FACEBOOK_APP_SECRET,
                "redirect_uri": redirect_uri or settings.FACEBOOK_OAUTH_REDIRECT_URI,
                "code": code,
            },
        )

    async def exchange_long_lived_token(self, short_lived_token: str) -> Dict[str, Any]:
        """Exchange a short-lived token for a long-lived one (`expires_in` seconds)"""
        self._require_app_credentials()
        return await self._get_json(
            self._url("oauth/access_token"),
            {
                "grant_type": "fb_exchange_token",
                "client_id": settings.FACEBOOK_APP_ID,
                "client_secret": settings.FACEBOOK_APP_SECRET,
                "fb_exchange_token": short_lived_token,
            },
        )
