"""
Log-safe formatting helpers.

Owner identifiers and storage URLs end up in nearly every log line of the
pipeline; these helpers keep them useful for debugging without writing
full account ids or signed URLs to the logs.
"""


def sanitize_owner_id(owner_id: str | None) -> str:
    """
    Mask an owner id for logs.

    Rules:
    - None / empty / <6 chars → fully masked
    - Otherwise → first 3 + last 2 chars, middle masked
    """
    if not owner_id:
        return "***"

    owner_id = owner_id.strip()
    if len(owner_id) < 6:
        return "***"

    return f"{owner_id[:3]}***{owner_id[-2:]}"


def sanitize_url(url: str | None) -> str:
    """
    Drop the query string from a URL.

    Presigned download URLs carry credentials in the query.
    """
    if not url:
        return "N/A"

    return url.split("?", 1)[0]
