import asyncio

import httpx

HTML = {"content-type": "text/html; charset=utf-8"}


def page(*hrefs, extra=""):
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><body>{anchors}{extra}</body></html>"


def run(coro):
    return asyncio.run(coro)


class FakeWeb:
    """httpx handler serving canned responses and recording every request.

    Routes map a URL to ``(status, headers, body)``, an exception instance to
    raise, or a callable taking the request. Unknown hosts fail like DNS.
    """

    def __init__(self, routes=None):
        self.routes = {url.rstrip("/"): value for url, value in (routes or {}).items()}
        self.requests = []

    def add(self, url, value):
        self.routes[url.rstrip("/")] = value

    def __call__(self, request):
        self.requests.append(request)
        route = self.routes.get(str(request.url).rstrip("/"))
        if route is None:
            raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        status, headers, body = route
        return httpx.Response(status, headers=headers, content=body.encode() if isinstance(body, str) else body)

    def urls(self, method=None):
        return [str(r.url) for r in self.requests if method is None or r.method == method]
