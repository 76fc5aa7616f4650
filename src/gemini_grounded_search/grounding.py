"""
gemini_grounded_search.grounding
Google Search grounding: the tool definition sent with each request and the
conversion of the response's grounding metadata into cited sources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Sequence

from google.genai import types

__all__ = [
    'GroundingAttributionSegment', 'GroundingAttribution',
    'new_google_search_tool', 'extract_grounding_attributions', 'add_citations',
]


@dataclass
class GroundingAttributionSegment:
    start_index: int = 0
    end_index: int = 0
    part_index: int = 0
    text: str = ""
    confidence_score: float = 0.0


@dataclass
class GroundingAttribution:
    title: str = ""
    domain: str = ""
    url: str = ""  # overwritten in place once its redirect is resolved
    segments: List[GroundingAttributionSegment] = field(default_factory=list)


def new_google_search_tool() -> types.Tool:
    return types.Tool(google_search=types.GoogleSearch())


def extract_grounding_attributions(metadata: Any) -> List[GroundingAttribution]:
    """Build one attribution per grounding chunk, in chunk order.

    Each grounding support's segment is attached to every chunk it references.
    Chunk indices outside the chunk list are ignored.
    """
    chunks = getattr(metadata, 'grounding_chunks', None) or []
    if metadata is None or not chunks:
        return []

    attributions: List[GroundingAttribution] = []
    for chunk in chunks:
        if chunk is None:
            attributions.append(GroundingAttribution())
            continue
        web = getattr(chunk, 'web', None)
        retrieved = getattr(chunk, 'retrieved_context', None)
        if web is not None:
            attributions.append(GroundingAttribution(
                title=web.title or "", domain=getattr(web, 'domain', None) or "", url=web.uri or "",
            ))
        elif retrieved is not None:
            attributions.append(GroundingAttribution(title=retrieved.title or "", url=retrieved.uri or ""))
        else:
            attributions.append(GroundingAttribution())

    for support in getattr(metadata, 'grounding_supports', None) or []:
        segment = getattr(support, 'segment', None) if support is not None else None
        if segment is None:
            continue
        scores = getattr(support, 'confidence_scores', None) or []
        seg = GroundingAttributionSegment(
            start_index=segment.start_index or 0,
            end_index=segment.end_index or 0,
            part_index=segment.part_index or 0,
            text=segment.text or "",
            confidence_score=float(scores[0]) if scores else 0.0,
        )
        for i in getattr(support, 'grounding_chunk_indices', None) or []:
            if 0 <= i < len(attributions):
                attributions[i].segments.append(seg)
    return attributions

# -----------------------------------------------------------------------------
# CITATION RENDERING
# -----------------------------------------------------------------------------

def add_citations(text: str, attributions: Sequence[GroundingAttribution]) -> str:
    """Insert ``[n](url)`` links after every cited segment of ``text``.

    Segment end indices are UTF-8 byte offsets into the generated text;
    markers are inserted from the end backwards so earlier offsets stay valid.
    """
    cited: dict = {}
    for n, attr in enumerate(attributions, start=1):
        if not attr.url:
            continue
        for seg in attr.segments:
            links = cited.setdefault(seg.end_index, [])
            link = f"[{n}]({attr.url})"
            if link not in links:
                links.append(link)
    data = text.encode('utf-8')
    for end_index in sorted(cited, reverse=True):
        if end_index > len(data):
            continue
        data = data[:end_index] + ", ".join(cited[end_index]).encode('utf-8') + data[end_index:]
    return data.decode('utf-8')
