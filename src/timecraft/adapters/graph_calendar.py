"""Microsoft Graph calendar adapter."""

import logging
import re
import time
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import requests

from timecraft.core.calendar import CalendarEvent
from timecraft.errors import AuthenticationError, CalendarError

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
_FRACTION = re.compile(r"\.(\d+)")


def _parse_graph_datetime(value: str, tz: ZoneInfo) -> datetime:
    """Parse Graph's "2025-01-15T10:00:00.0000000" into an aware datetime."""
    value = value.replace("Z", "+00:00")
    # Graph sends 7 fractional digits; fromisoformat wants at most 6
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


class GraphCalendarAdapter:
    """
    Fetches a user's events via the Microsoft Graph API.

    Implements CalendarRepository protocol. Uses the client-credentials flow
    (application permission Calendars.Read) and caches the token until
    shortly before it expires.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        user_email: str,
        timezone: str = "Europe/Berlin",
        session: requests.Session | None = None,
        timeout: int = 20,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.user_email = user_email
        self.timezone = timezone
        self.timeout = timeout
        self._tz = ZoneInfo(timezone)
        self._session = session or requests.Session()
        self._access_token = ""
        self._expires_at = 0.0

    def _ensure_valid_token(self) -> str:
        """Fetch a new app token if none is cached or it expires within 5 minutes."""
        if self._access_token and time.time() < self._expires_at - 300:
            return self._access_token

        if not (self.tenant_id and self.client_id and self.client_secret):
            raise AuthenticationError("Missing Microsoft credentials in timecraft.conf")

        try:
            resp = self._session.post(
                TOKEN_URL.format(tenant_id=self.tenant_id),
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": GRAPH_SCOPE,
                    "grant_type": "client_credentials",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CalendarError(f"Token request failed: {e}")

        if resp.status_code != 200:
            raise AuthenticationError(f"Microsoft token request failed: {resp.text[:200]}")

        try:
            data = resp.json()
            token = data["access_token"]
            expires_in = float(data.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise AuthenticationError(f"Malformed token response: {e!r}")
        self._access_token = token
        self._expires_at = time.time() + expires_in
        return self._access_token

    def _get(self, url: str, params: dict | None = None) -> dict:
        token = self._ensure_valid_token()
        try:
            resp = self._session.get(
                url,
                params=params,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Prefer": f'outlook.timezone="{self.timezone}"',
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CalendarError(f"Graph request failed: {e}")

        if resp.status_code == 401:
            self._access_token = ""
            raise AuthenticationError("Graph rejected the access token")
        if resp.status_code == 403:
            raise AuthenticationError(f"No permission to read the calendar of {self.user_email}")
        if resp.status_code == 404:
            raise CalendarError(f"Calendar not found for user: {self.user_email}")
        if not resp.ok:
            raise CalendarError(f"Graph error {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as e:
            raise CalendarError(f"Graph returned an invalid response: {e}")
        if not isinstance(data, dict) or not isinstance(data.get("value", []), list):
            raise CalendarError("Graph returned an unexpected calendarView payload")
        return data

    def fetch_events(self, target_date: date) -> list[CalendarEvent]:
        """Fetch events for a specific date."""
        return self.fetch_range(target_date, 1)

    def fetch_range(self, start_date: date, days: int) -> list[CalendarEvent]:
        """Fetch events for `days` days starting at `start_date`, following pagination."""
        if not self.user_email:
            raise CalendarError("MS_USER_EMAIL not configured")

        start = datetime.combine(start_date, datetime.min.time(), tzinfo=self._tz)
        end = start + timedelta(days=days)
        url = f"{GRAPH_BASE_URL}/users/{self.user_email}/calendarView"
        params = {
            "startDateTime": start.isoformat(),
            "endDateTime": end.isoformat(),
            "$select": "subject,start,end,isAllDay,location,isCancelled",
            "$orderby": "start/dateTime",
            "$top": "100",
        }

        events = []
        while url:
            data = self._get(url, params)
            for item in data.get("value", []):
                event = self._parse_event(item)
                if event:
                    events.append(event)
            # nextLink already carries the query string
            url = data.get("@odata.nextLink")
            params = None

        return sorted(events, key=lambda e: e.start)

    def _parse_event(self, item: dict) -> CalendarEvent | None:
        if not isinstance(item, dict) or item.get("isCancelled"):
            return None
        try:
            start_raw = (item.get("start") or {}).get("dateTime")
            end_raw = (item.get("end") or {}).get("dateTime")
            if not start_raw or not end_raw:
                return None
            start = _parse_graph_datetime(start_raw, self._tz)
            end = _parse_graph_datetime(end_raw, self._tz)
            return CalendarEvent(
                title=item.get("subject") or "Untitled",
                start=start,
                end=end,
                all_day=bool(item.get("isAllDay")),
                location=(item.get("location") or {}).get("displayName", ""),
            )
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping unparseable Graph event {item.get('subject')!r}: {e}")
            return None
