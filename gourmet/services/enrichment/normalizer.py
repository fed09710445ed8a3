"""Shape-tolerant extraction of contacts from Manus task output.

The agent's output has no fixed contract. It arrives as one of:

* a conversational transcript (list of role-tagged messages whose content
  blocks carry text and/or attached files),
* a JSON object with contacts at ``contacts``, ``data.contacts`` or
  ``result.contacts``,
* a bare JSON array of contacts,
* free text with a JSON object embedded somewhere inside it,
* a reference to a downloadable JSON file holding any of the above.

Each source is decoded into an optional :class:`ExtractedPayload`; candidates
are folded left to right where the last non-empty contact list wins and the
last seen metadata wins. An attached JSON file is always folded last so that
it overrides any inline draft the agent echoed before writing its final file.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Final

logger = logging.getLogger(__name__)

NOT_AVAILABLE: Final[str] = "N/A"

PRIORITY_KEYWORDS: Final[tuple[str, ...]] = (
    "assistant",
    "office-manager",
    "procurement",
    "facility",
    "services généraux",
)
SECONDARY_KEYWORDS: Final[tuple[str, ...]] = ("admin", "operations")
PRIORITY_TARGET_THRESHOLD: Final[int] = 4

_CONTACT_MARKERS: Final[tuple[str, ...]] = (
    "full_name",
    "linkedin_url",
    "job_title",
    "email",
    "email_principal",
)
_NESTED_CONTAINERS: Final[tuple[str, ...]] = ("data", "result")
_TEXT_BLOCK_TYPES: Final[frozenset[str]] = frozenset({"output_text", "text"})
_MESSAGE_ROLES: Final[frozenset[str]] = frozenset({"user", "assistant", "system"})
_EMBEDDED_OBJECT = re.compile(r"\{[\s\S]*\}")

FileFetcher = Callable[[str], Any]


@dataclass(frozen=True)
class ExtractedPayload:
    """Contacts and metadata decoded from a single candidate source."""

    contacts: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
    company_info: dict[str, Any] | None = None
    search_method: str | None = None


@dataclass(frozen=True)
class NormalizedOutput:
    contacts: list[dict[str, Any]] = field(default_factory=list)
    company_info: dict[str, Any] | None = None
    search_method: str | None = None
    error: str | None = None
    output_file_url: str | None = None
    contact_source: str = "none"


def looks_like_contact(value: Any) -> bool:
    """Reject noise entries that carry none of the identifying contact fields."""
    if not isinstance(value, Mapping):
        return False
    return any(isinstance(value.get(marker), str) for marker in _CONTACT_MARKERS)


def extract_payload(obj: Any) -> ExtractedPayload | None:
    """Pull contacts and metadata out of an already decoded JSON value."""
    if isinstance(obj, list):
        return ExtractedPayload(contacts=[entry for entry in obj if looks_like_contact(entry)])
    if not isinstance(obj, Mapping):
        return None

    contacts: list[dict[str, Any]] = []
    candidates = [obj.get("contacts")]
    candidates.extend(
        container.get("contacts")
        for container in (obj.get(key) for key in _NESTED_CONTAINERS)
        if isinstance(container, Mapping)
    )
    for candidate in candidates:
        if isinstance(candidate, list):
            contacts = [entry for entry in candidate if looks_like_contact(entry)]
            break

    error = obj.get("error")
    company_info = obj.get("company_info")
    search_method = obj.get("search_method")
    return ExtractedPayload(
        contacts=contacts,
        error=error if isinstance(error, str) else None,
        company_info=dict(company_info) if isinstance(company_info, Mapping) else None,
        search_method=search_method if isinstance(search_method, str) else None,
    )


def parse_json_text(text: str) -> Any | None:
    """Decode text as JSON, falling back to its first-``{`` to last-``}`` span."""
    candidate = text.strip()
    if not candidate:
        return None
    try:
        return json.loads(candidate)
    except ValueError:
        pass
    match = _EMBEDDED_OBJECT.search(candidate)
    if not match:
        return None
    try:
        return json.loads(match.group(0))
    except ValueError:
        return None


def is_message_transcript(output: Any) -> bool:
    """True when ``output`` is a list of role-tagged messages, not a contact array."""
    if not isinstance(output, list) or not output:
        return False
    return any(
        isinstance(entry, Mapping)
        and entry.get("role") in _MESSAGE_ROLES
        and isinstance(entry.get("content"), (str, list))
        for entry in output
    )


def _content_blocks(message: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    content = message.get("content")
    if isinstance(content, str):
        return [{"type": "output_text", "text": content}]
    if isinstance(content, list):
        return [block for block in content if isinstance(block, Mapping)]
    return []


def _json_file_url(block: Mapping[str, Any]) -> str | None:
    file_url = block.get("fileUrl") or block.get("file_url")
    if not isinstance(file_url, str) or not file_url:
        return None
    file_name = str(block.get("fileName") or block.get("file_name") or "").lower()
    mime_type = str(block.get("mimeType") or block.get("mime_type") or "").lower()
    url_path = file_url.split("?", 1)[0].lower()
    if "json" in mime_type or file_name.endswith(".json") or url_path.endswith(".json"):
        return file_url
    return None


def scan_transcript(messages: Iterable[Any]) -> tuple[list[ExtractedPayload], str | None]:
    """Collect assistant text payloads and the last attached JSON file URL.

    User messages echo the prompt, which itself contains an example contact
    schema, so only assistant-authored text is ever decoded.
    """
    payloads: list[ExtractedPayload] = []
    file_url: str | None = None
    for message in messages:
        if not isinstance(message, Mapping):
            continue
        role = message.get("role")
        for block in _content_blocks(message):
            if role != "user":
                file_url = _json_file_url(block) or file_url
            if role != "assistant" or block.get("type") not in _TEXT_BLOCK_TYPES:
                continue
            text = block.get("text")
            if not isinstance(text, str):
                continue
            payload = extract_payload(parse_json_text(text))
            if payload is not None:
                payloads.append(payload)
    return payloads, file_url


def _decode_inline(output: Any) -> list[ExtractedPayload]:
    if isinstance(output, str):
        output = parse_json_text(output)
    payload = extract_payload(output)
    return [payload] if payload is not None else []


def _fold(current: NormalizedOutput, payload: ExtractedPayload, *, source: str) -> NormalizedOutput:
    has_contacts = bool(payload.contacts)
    return NormalizedOutput(
        contacts=list(payload.contacts) if has_contacts else current.contacts,
        company_info=payload.company_info or current.company_info,
        search_method=payload.search_method or current.search_method,
        error=payload.error or current.error,
        output_file_url=current.output_file_url,
        contact_source=source if has_contacts else current.contact_source,
    )


def normalize(raw_output: Any, *, fetch_file: FileFetcher | None = None) -> NormalizedOutput:
    """Extract contacts, company info, search method and agent error from task output."""
    file_url: str | None = None
    if is_message_transcript(raw_output):
        inline, file_url = scan_transcript(raw_output)
    else:
        inline = _decode_inline(raw_output)

    result = NormalizedOutput(output_file_url=file_url)
    for payload in inline:
        result = _fold(result, payload, source="inline")

    if file_url and fetch_file is not None:
        try:
            file_payload = extract_payload(fetch_file(file_url))
        except Exception as exc:
            logger.warning(
                "enrichment.normalize.file_unavailable",
                extra={"file_url": file_url[:100], "error": str(exc)},
            )
            file_payload = None
        if file_payload is not None:
            result = _fold(result, file_payload, source="file")

    logger.info(
        "enrichment.normalize.done",
        extra={
            "contacts": len(result.contacts),
            "contact_source": result.contact_source,
            "has_file": bool(file_url),
            "agent_error": result.error,
        },
    )
    return result


def clean_value(value: Any) -> str | None:
    """Trim provider strings; blank and ``N/A`` values are treated as absent."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed or trimmed.upper() == NOT_AVAILABLE:
        return None
    return trimmed


def split_full_name(full_name: str | None) -> tuple[str | None, str | None]:
    if not full_name:
        return None, None
    parts = full_name.split()
    if len(parts) <= 1:
        return (parts[0] if parts else None), None
    return parts[0], " ".join(parts[1:])


def priority_score_for_title(job_title: str | None) -> int:
    title = (job_title or "").lower()
    if any(keyword in title for keyword in PRIORITY_KEYWORDS):
        return 5
    if any(keyword in title for keyword in SECONDARY_KEYWORDS):
        return 4
    return 3


def normalize_contact(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Map one accepted raw contact onto the stored contact columns."""
    full_name = clean_value(raw.get("full_name")) or clean_value(raw.get("name"))
    derived_first, derived_last = split_full_name(full_name)
    first_name = clean_value(raw.get("first_name")) or derived_first
    last_name = clean_value(raw.get("last_name")) or derived_last
    job_title = (
        clean_value(raw.get("job_title"))
        or clean_value(raw.get("title"))
        or clean_value(raw.get("role"))
    )

    explicit_score = raw.get("priority_score")
    if isinstance(explicit_score, (int, float)) and not isinstance(explicit_score, bool):
        priority_score = int(explicit_score)
    else:
        priority_score = priority_score_for_title(job_title)

    explicit_target = raw.get("is_priority_target")
    if isinstance(explicit_target, bool):
        is_priority_target = explicit_target
    else:
        is_priority_target = priority_score >= PRIORITY_TARGET_THRESHOLD

    return {
        "full_name": full_name or " ".join(filter(None, (first_name, last_name))) or "Contact",
        "first_name": first_name,
        "last_name": last_name,
        "job_title": job_title,
        "department": clean_value(raw.get("department")),
        "location": clean_value(raw.get("location")),
        "email_principal": clean_value(raw.get("email_principal")) or clean_value(raw.get("email")),
        "email_alternatif": clean_value(raw.get("email_alternatif")),
        "phone": clean_value(raw.get("phone")),
        "linkedin_url": clean_value(raw.get("linkedin_url")) or clean_value(raw.get("linkedin")),
        "priority_score": priority_score,
        "is_priority_target": is_priority_target,
    }


COMPANY_FIELD_MAP: Final[dict[str, str]] = {
    "domain": "domain",
    "website": "website",
    "industry": "industry",
    "employee_count": "employee_count",
    "headquarters": "headquarters_location",
}


def company_fields(company_info: Mapping[str, Any] | None) -> dict[str, str]:
    """Resolved enrichment columns for every present, non-``N/A`` company value."""
    if not company_info:
        return {}
    resolved: dict[str, str] = {}
    for source_key, column in COMPANY_FIELD_MAP.items():
        value = clean_value(company_info.get(source_key))
        if value:
            resolved[column] = value
    return resolved
