"""Forwarded-email content extraction: headers plus a plain-text body."""

import email
import hashlib
from email.header import decode_header
from email.message import Message
from email.utils import parseaddr
from typing import Any, Dict, List, Optional, Union

from bs4 import BeautifulSoup


def _to_text(payload: bytes, charset: Optional[str] = None) -> str:
    try:
        return payload.decode(charset or "utf-8", errors="ignore")
    except LookupError:
        # unknown charset label
        return payload.decode("utf-8", errors="ignore")


def header_text(value: str) -> str:
    """Decode RFC 2047 encoded words in a header value."""
    if not value:
        return ""
    return "".join(
        _to_text(chunk, charset) if isinstance(chunk, bytes) else chunk
        for chunk, charset in decode_header(value)
    )


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(separator=" ", strip=True)


def parse_message(raw: Union[bytes, str]) -> Message:
    if isinstance(raw, bytes):
        return email.message_from_bytes(raw)
    return email.message_from_string(raw)


def _text_parts(msg: Message) -> Dict[str, List[str]]:
    parts: Dict[str, List[str]] = {"text/plain": [], "text/html": []}
    for part in msg.walk():
        content_type = part.get_content_type()
        if content_type not in parts:
            continue
        payload = part.get_payload(decode=True)
        if payload:
            parts[content_type].append(_to_text(payload, part.get_content_charset()))
    return parts


def extract_content(msg: Message) -> Dict[str, Any]:
    """Headers and body of a forwarded confirmation, ready for extraction.

    The HTML alternative wins over plain text when both are present, since
    booking details usually live in its tables.
    """
    from_header = header_text(msg.get("from", ""))
    parts = _text_parts(msg)
    if parts["text/html"]:
        body = html_to_text("".join(parts["text/html"]))
    else:
        body = "".join(parts["text/plain"])

    return {
        "subject": header_text(msg.get("subject", "")),
        "from": from_header,
        "sender": parseaddr(from_header)[1].lower(),
        "body": body,
        "date": msg.get("date", ""),
        "message_id": (msg.get("Message-ID") or "").strip(),
    }


def email_fingerprint(content: Dict[str, Any]) -> str:
    """Message-ID when the email has one, else a digest of subject, date and sender."""
    if content.get("message_id"):
        return content["message_id"]
    key = "|".join(str(content.get(k, "")) for k in ("subject", "date", "from"))
    return hashlib.sha1(key.encode("utf-8")).hexdigest()
