"""
Events feed client for the Storefront Service.

Events are kept in a spreadsheet maintained by store staff. When the sheet
cannot be read, or holds no active rows, a small built-in list is served.
"""

from typing import List, Optional

import httpx

from shared.logging import get_logger

from ..domain.models import Event


SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"

FALLBACK_EVENTS = [
    Event(
        event_name="Bonfire & Books",
        date="2025-02-15",
        description="Join us for an evening of reading and discussion around the campfire",
        image_url="/images/events/bonfire-books.jpg",
        location="Outdoor Patio",
        link="https://eventbrite.com/bonfire-books",
        active=True,
    ),
    Event(
        event_name="Dollar Launch Club",
        date="2025-02-20",
        description="Coffee, community, and conversations about local organizing",
        image_url="/images/events/coffee-meeting.jpg",
        location="Main Reading Room",
        link="https://eventbrite.com/dollar-launch",
        active=True,
    ),
    Event(
        event_name="Book Discussion Circle",
        date="2025-02-25",
        description="Weekly book club featuring radical literature and community voices",
        image_url="/images/events/book-discussion.jpg",
        location="Community Space",
        link="https://eventbrite.com/book-discussion",
        active=True,
    ),
]


class EventsClient:
    """Reads active events from the sheets values API."""

    def __init__(
        self,
        spreadsheet_id: Optional[str],
        api_key: Optional[str],
        sheet_range: str = "Events!A2:G50",
        base_url: str = SHEETS_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.api_key = api_key
        self.sheet_range = sheet_range
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = get_logger("storefront.events_client")
        self._transport = transport

    async def get_events(self) -> List[Event]:
        """Return active events, or the fallback list."""
        if not self.spreadsheet_id or not self.api_key:
            self.logger.warning("Events feed not configured, using fallback data")
            return list(FALLBACK_EVENTS)

        url = f"{self.base_url}/{self.spreadsheet_id}/values/{self.sheet_range}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params={"key": self.api_key})
            response.raise_for_status()
            rows = response.json().get("values") or []
        except (httpx.HTTPError, ValueError) as e:
            self.logger.error("Error fetching events feed, using fallback", error=str(e))
            return list(FALLBACK_EVENTS)

        if not rows:
            self.logger.warning("No events found in feed, using fallback")
            return list(FALLBACK_EVENTS)

        events = [event for event in (Event.from_row(row) for row in rows) if event.active]
        return events or list(FALLBACK_EVENTS)
