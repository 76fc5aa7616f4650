import threading
import time
from types import SimpleNamespace

from requests.structures import CaseInsensitiveDict


def make_response(status_code, location=None):
    headers = CaseInsensitiveDict()
    if location is not None:
        headers['Location'] = location
    return SimpleNamespace(status_code=status_code, headers=headers)


class FakeSession:
    """Stands in for requests.Session; routes map url -> response or exception."""

    def __init__(self, routes, delays=None):
        self.routes = routes
        self.delays = delays or {}
        self.calls = []
        self._lock = threading.Lock()

    def head(self, url, allow_redirects=True, timeout=None, headers=None):
        with self._lock:
            self.calls.append({'url': url, 'allow_redirects': allow_redirects, 'timeout': timeout})
        delay = self.delays.get(url, 0)
        if delay:
            time.sleep(delay)
        route = self.routes[url]
        if isinstance(route, Exception):
            raise route
        return route

    def close(self):
        pass

    @property
    def urls(self):
        return [c['url'] for c in self.calls]
