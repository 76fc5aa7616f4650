"""
gemini_grounded_search.redirects
Concurrent one-hop resolution of the redirect URLs Gemini returns for its
cited sources.

``resolve_all_redirects`` fans a batch of attributions out to a fixed pool of
worker threads, bounds the whole batch by a deadline derived from the caller's
context, and writes each discovered destination back into the attribution at
the job's index. Failures are logged and leave the URL as it was.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import List, MutableSequence, NamedTuple, Optional, Tuple
from urllib.parse import urljoin

import requests
from tqdm import tqdm

from .config import ResolverConfig
from .context import CancelFunc, Context
from .grounding import GroundingAttribution

__all__ = [
    'ResolvedRedirect', 'ResolveJob', 'ResolveResult',
    'resolve_redirect', 'allocate_batch_deadline', 'resolve_all_redirects',
]

logger = logging.getLogger(__name__)

PROBE_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) GroundedSearchRedirectResolver/1.0",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


@dataclass
class ResolvedRedirect:
    input_url: str
    final_url: Optional[str]
    status_code: Optional[int] = None
    method_used: Optional[str] = None
    redirect_chain: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResolveJob(NamedTuple):
    index: int
    url: str


class ResolveResult(NamedTuple):
    index: int
    url: str  # empty on failure
    ok: bool
    error: Optional[str] = None

# -----------------------------------------------------------------------------
# SINGLE PROBE
# -----------------------------------------------------------------------------

def resolve_redirect(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: float = 3.0,
    ctx: Optional[Context] = None,
) -> ResolvedRedirect:
    """Probe ``url`` once with HEAD and report where its first redirect points.

    Redirects are never followed: a 3xx with a Location header resolves to that
    location, anything else resolves to ``url`` itself. Transport failures are
    reported in ``error`` rather than raised. A supplied session is only used
    for its connection pool; redirect policy and timeout are passed per call.
    """
    if ctx is not None:
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        # urllib3 rejects a zero timeout
        if ctx.done() or timeout <= 0:
            return ResolvedRedirect(input_url=url, final_url=None, error="context done before probe")

    owns_session = session is None
    sess = session or requests.Session()
    try:
        resp = sess.head(url, allow_redirects=False, timeout=timeout, headers=PROBE_HEADERS)
    except requests.RequestException as e:
        return ResolvedRedirect(input_url=url, final_url=None, method_used='HEAD', error=str(e))
    finally:
        if owns_session:
            sess.close()

    status_code = resp.status_code
    final_url = url
    if 300 <= status_code < 400:
        location = resp.headers.get('Location')
        if location:
            final_url = urljoin(url, location)
        else:
            logger.debug("Redirect without location (status %d) for %s", status_code, url)
    chain = [url] if final_url == url else [url, final_url]
    return ResolvedRedirect(
        input_url=url,
        final_url=final_url,
        status_code=status_code,
        method_used='HEAD',
        redirect_chain=chain,
    )

# -----------------------------------------------------------------------------
# BATCH DEADLINE
# -----------------------------------------------------------------------------

def allocate_batch_deadline(
    parent: Context, config: Optional[ResolverConfig] = None
) -> Tuple[Context, CancelFunc]:
    """Derive the deadline for one resolution batch from ``parent``.

    A parent with more than ``batch_deadline_cap`` left is capped to that
    budget; a parent with less keeps its own deadline; a parent without one
    gets ``default_batch_budget``.
    """
    config = config or ResolverConfig()
    remaining = parent.remaining()
    if remaining is None:
        return parent.with_timeout(config.default_batch_budget)
    if remaining > config.batch_deadline_cap:
        return parent.with_timeout(config.batch_deadline_cap)
    return parent.with_cancel()

# -----------------------------------------------------------------------------
# WORKER POOL + ORCHESTRATION
# -----------------------------------------------------------------------------

def _probe_worker(
    ctx: Context,
    jobs: "queue.Queue[Optional[ResolveJob]]",
    results: "queue.Queue[ResolveResult]",
    session: Optional[requests.Session],
    probe_timeout: float,
) -> None:
    while True:
        job = jobs.get()
        if job is None:
            return
        try:
            resolved = resolve_redirect(job.url, session=session, timeout=probe_timeout, ctx=ctx)
        except Exception as e:  # every job must yield a result
            resolved = ResolvedRedirect(input_url=job.url, final_url=None, error=repr(e))
        if resolved.ok and resolved.final_url:
            results.put(ResolveResult(job.index, resolved.final_url, True))
        else:
            results.put(ResolveResult(job.index, '', False, resolved.error))


_POLL_INTERVAL = 0.05


def _next_result(ctx: Context, results: "queue.Queue[ResolveResult]") -> Optional[ResolveResult]:
    """Wait for the next result; None once ``ctx`` expires or is cancelled."""
    while not ctx.done():
        remaining = ctx.remaining()
        wait = _POLL_INTERVAL if remaining is None else min(_POLL_INTERVAL, remaining)
        try:
            return results.get(timeout=wait)
        except queue.Empty:
            continue
    return None


def resolve_all_redirects(
    ctx: Context,
    attributions: MutableSequence[GroundingAttribution],
    session: Optional[requests.Session] = None,
    config: Optional[ResolverConfig] = None,
    show_progress: bool = False,
) -> None:
    """Resolve every attribution URL in place, within a bounded batch deadline.

    Never raises for per-URL problems: failed or abandoned attributions keep
    their original URL and a warning is logged.
    """
    if not attributions:
        return
    config = config or ResolverConfig()

    batch_ctx, cancel = allocate_batch_deadline(ctx, config)
    owned_session = None
    if session is None:
        # one pool for the whole batch
        session = owned_session = requests.Session()
    try:
        jobs_list = [ResolveJob(i, a.url) for i, a in enumerate(attributions) if a.url]
        if not jobs_list:
            return

        jobs: "queue.Queue[Optional[ResolveJob]]" = queue.Queue()
        results: "queue.Queue[ResolveResult]" = queue.Queue()
        for job in jobs_list:
            jobs.put(job)
        n_workers = min(config.max_workers, len(jobs_list))
        for _ in range(n_workers):
            jobs.put(None)  # no more work

        for n in range(n_workers):
            threading.Thread(
                target=_probe_worker,
                args=(batch_ctx, jobs, results, session, config.probe_timeout),
                name=f"redirect-probe-{n}",
                daemon=True,
            ).start()

        with tqdm(total=len(jobs_list), desc="Resolving citation redirects", disable=not show_progress) as bar:
            for received in range(len(jobs_list)):
                result = _next_result(batch_ctx, results)
                if result is None:
                    logger.warning(
                        "Redirect resolution stopped at batch deadline: %d of %d URLs left unresolved",
                        len(jobs_list) - received, len(jobs_list),
                    )
                    return
                bar.update(1)
                if result.ok and result.url:
                    attributions[result.index].url = result.url
                else:
                    logger.warning("Failed to resolve redirect for attribution %d: %s", result.index, result.error)
    finally:
        cancel()
        if owned_session is not None:
            owned_session.close()
