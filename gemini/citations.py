"""Grounding citations and URL context helpers.

Works on google-genai response objects (``Candidate`` and friends) as well as
any object exposing the same snake_case attributes.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from gemini.constants import MAX_URLS_PER_REQUEST

URL_PATTERN = re.compile(
    r"https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"(?:[-a-zA-Z0-9()@:%_+.~#?&/=]*)",
    re.IGNORECASE,
)

URL_RETRIEVAL_SUCCESS = "URL_RETRIEVAL_STATUS_SUCCESS"
URL_RETRIEVAL_ERROR = "URL_RETRIEVAL_STATUS_ERROR"
URL_RETRIEVAL_UNSAFE = "URL_RETRIEVAL_STATUS_UNSAFE"


# ==============================================================================
# PARSING HELPERS
# ==============================================================================
def extract_domain(url: str) -> str:
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return "unknown"
    if not hostname:
        return "unknown"
    return hostname.replace("www.", "", 1)


def parse_grounding_metadata(candidate: Any) -> Dict[str, list]:
    """Extract sources, text supports and search queries from a candidate.

    Returns:
        dict with ``sources`` (id, title, url, domain), ``supports`` (text,
        startIndex, endIndex, sourceIndices) and ``searchQueries``
    """
    metadata = getattr(candidate, "grounding_metadata", None)
    if not metadata:
        return {"sources": [], "supports": [], "searchQueries": []}

    sources = []
    web_chunks = [
        chunk
        for chunk in (getattr(metadata, "grounding_chunks", None) or [])
        if getattr(getattr(chunk, "web", None), "uri", None)
    ]
    for index, chunk in enumerate(web_chunks):
        sources.append(
            {
                "id": f"src-{index}",
                "title": chunk.web.title or "Untitled",
                "url": chunk.web.uri,
                "domain": extract_domain(chunk.web.uri),
            }
        )

    supports = []
    for support in getattr(metadata, "grounding_supports", None) or []:
        segment = getattr(support, "segment", None)
        supports.append(
            {
                "text": getattr(segment, "text", None) or "",
                "startIndex": getattr(segment, "start_index", None) or 0,
                "endIndex": getattr(segment, "end_index", None) or 0,
                "sourceIndices": list(
                    getattr(support, "grounding_chunk_indices", None) or []
                ),
            }
        )

    search_queries = list(getattr(metadata, "web_search_queries", None) or [])

    return {"sources": sources, "supports": supports, "searchQueries": search_queries}


def deduplicate_sources(sources: List[dict]) -> List[dict]:
    """Keep the first source seen for each URL, preserving order."""
    seen = set()
    unique = []
    for source in sources:
        if source["url"] in seen:
            continue
        seen.add(source["url"])
        unique.append(source)
    return unique


# ==============================================================================
# URL CONTEXT
# ==============================================================================
def extract_urls_from_query(query: str) -> List[str]:
    """Unique URLs mentioned in the query, in order of appearance."""
    return list(dict.fromkeys(URL_PATTERN.findall(query)))


def validate_url_count(urls: List[str]) -> dict:
    count = len(urls)
    if count > MAX_URLS_PER_REQUEST:
        return {
            "valid": False,
            "count": count,
            "warning": (
                f"URL limit exceeded: {count} URLs provided, maximum is "
                f"{MAX_URLS_PER_REQUEST}. Only the first {MAX_URLS_PER_REQUEST} "
                f"URLs will be processed."
            ),
        }
    return {"valid": True, "count": count}


def parse_url_context_metadata(candidate: Any) -> Optional[List[dict]]:
    """URL retrieval results of a candidate as plain dicts, or None."""
    metadata = getattr(candidate, "url_context_metadata", None)
    url_metadata = getattr(metadata, "url_metadata", None) if metadata else None
    if not url_metadata:
        return None

    results = []
    for entry in url_metadata:
        status = getattr(entry, "url_retrieval_status", None)
        # SDK enums carry the wire name in .value
        status = getattr(status, "value", status)
        results.append(
            {
                "retrievedUrl": getattr(entry, "retrieved_url", None),
                "urlRetrievalStatus": status,
            }
        )
    return results


def get_url_retrieval_summary(url_metadata: Optional[List[dict]]) -> dict:
    if not url_metadata:
        return {"total": 0, "successful": 0, "failed": 0, "unsafe": 0, "urls": []}

    urls = [
        {
            "url": entry["retrievedUrl"],
            "success": entry["urlRetrievalStatus"] == URL_RETRIEVAL_SUCCESS,
            "status": entry["urlRetrievalStatus"],
        }
        for entry in url_metadata
    ]

    return {
        "total": len(urls),
        "successful": sum(1 for url in urls if url["success"]),
        "failed": sum(1 for url in urls if url["status"] == URL_RETRIEVAL_ERROR),
        "unsafe": sum(1 for url in urls if url["status"] == URL_RETRIEVAL_UNSAFE),
        "urls": urls,
    }
