"""
Email content model and header/body helpers.

The mailbox client is an external collaborator; it hands over one of these
per message. Nothing in this module fetches mail.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from bs4 import BeautifulSoup


def parse_sender_email(from_header: str) -> tuple:
    """
    Parse email address and display name from From header.

    Args:
        from_header: Raw From header string

    Returns:
        Tuple of (email, display_name)
    """
    if not from_header:
        return "", ""

    # Pattern: "Display Name" <email@example.com> or just email@example.com
    match = re.match(r'^(?:"?([^"<]*)"?\s*<)?([^<>\s]+@[^<>\s]+)>?$', from_header.strip())

    if match:
        display_name = match.group(1).strip() if match.group(1) else ""
        email = match.group(2).strip()
        return email, display_name

    # Fallback - treat entire string as email
    return from_header.strip(), ""


def extract_sender_domain(email: str) -> str:
    """
    Extract domain from email address.

    Args:
        email: Email address string

    Returns:
        Lowercased domain string, empty when there is none
    """
    if "@" in email:
        return email.rsplit("@", 1)[1].strip().lower()
    return ""


def html_to_text(html: str) -> str:
    """
    Convert HTML to plain text, keeping one line per block.

    Args:
        html: HTML content

    Returns:
        Plain text content
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "lxml")

    # Remove script and style elements
    for element in soup(["script", "style", "head", "meta", "noscript"]):
        element.decompose()

    text = soup.get_text(separator="\n")
    lines = (re.sub(r"[ \t\xa0]+", " ", line).strip() for line in text.splitlines())

    return "\n".join(line for line in lines if line)


def parse_email_date(value: Any) -> Optional[datetime]:
    """Accept a datetime, an ISO 8601 string or an RFC 2822 Date header."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Millisecond epoch timestamps from JSON payloads
        try:
            return datetime.fromtimestamp(value / 1000 if value > 1e11 else value)
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None


@dataclass
class EmailContent:
    """One message as exposed by the mailbox client."""

    id: str
    subject: str = ""
    sender: str = ""
    date: Optional[datetime] = None
    html_body: str = ""
    text_body: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmailContent":
        """Build from the collaborator payload (subject, from, date, htmlBody, textBody)."""
        return cls(
            id=str(data.get("id") or data.get("message_id") or ""),
            subject=data.get("subject") or "",
            sender=data.get("from") or data.get("sender") or "",
            date=parse_email_date(data.get("date")),
            html_body=data.get("htmlBody") or data.get("html_body") or "",
            text_body=data.get("textBody") or data.get("text_body") or "",
        )

    @property
    def body(self) -> str:
        """Plain text body, converting HTML when no text part exists."""
        if self.text_body and self.text_body.strip():
            return self.text_body
        return html_to_text(self.html_body)

    @property
    def sender_address(self) -> str:
        return parse_sender_email(self.sender)[0].lower()

    @property
    def sender_domain(self) -> str:
        return extract_sender_domain(self.sender_address)

    @property
    def received_date(self) -> Optional[str]:
        """Received date as YYYY-MM-DD."""
        if self.date is None:
            return None
        return self.date.date().isoformat()

    def full_text(self, limit: Optional[int] = None) -> str:
        """Subject and body joined, optionally truncated."""
        text = f"{self.subject}\n\n{self.body}".strip()
        if limit is not None:
            return text[:limit]
        return text
