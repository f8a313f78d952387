"""
Share-message parsing: free text -> LinkDescriptor
"""

import logging
from collections.abc import Callable
from datetime import date

from zoomvault.models import LinkDescriptor

DEFAULT_TITLE = "Untitled Recording"
DOMAIN_MARKER = "zoom.us"
DATE_MARKER = "Date:"
DURATION_MARKER = "Duration:"
PASSCODE_MARKERS = ("Passcode:", "Password:")


def _today() -> str:
    # e.g. "June 1, 2025", the same shape Zoom puts after "Date:"
    today = date.today()
    return f"{today:%B} {today.day}, {today.year}"


class LinkParser:
    """Extract title, date, url and passcode from a pasted Zoom share message.

    Any message with a line containing the share domain and a
    "Passcode:"/"Password:" line is accepted. URLs and passcodes are not
    validated.
    """

    def __init__(
        self,
        domain_marker: str = DOMAIN_MARKER,
        today: Callable[[], str] = _today,
    ) -> None:
        self.domain_marker = domain_marker
        self.today = today
        self.logger = logging.getLogger(__name__)

    def parse(self, text: str) -> LinkDescriptor | None:
        """
        Parse a message into a descriptor

        Args:
            text: Raw message text

        Returns:
            LinkDescriptor, or None when the url or passcode is missing
        """
        title = ""
        date_text = ""
        url = ""
        passcode = ""

        for line in (raw.strip() for raw in text.split("\n")):
            if (
                not title
                and line
                and DATE_MARKER not in line
                and DURATION_MARKER not in line
                and "http" not in line
            ):
                title = line

            if DATE_MARKER in line:
                date_text = line.replace(DATE_MARKER, "", 1).strip()

            if self.domain_marker in line:
                url = line

            if any(marker in line for marker in PASSCODE_MARKERS):
                passcode = line.split(":", 1)[1].strip()

        if not (url and passcode):
            return None

        descriptor = LinkDescriptor(
            title=title or DEFAULT_TITLE,
            date=date_text or self.today(),
            url=url,
            passcode=passcode,
        )
        self.logger.debug(f"Parsed share link: title={descriptor.title!r} url={descriptor.url!r}")
        return descriptor


def parse_share_message(text: str) -> LinkDescriptor | None:
    """Parse with the default Zoom domain marker"""
    return LinkParser().parse(text)
