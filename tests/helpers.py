"""Test doubles for the Grafana HTTP API."""

import json
from urllib.parse import urlsplit


class FakeResponse:
    def __init__(self, status_code, body=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text


class FakeSession:
    """Answers requests from a per-route queue and records every call.

    Each route holds a list of responses (or exceptions to raise) that are
    consumed in order; the last one keeps answering once the others are used.
    Unknown routes answer 404.
    """

    def __init__(self):
        self.headers = {}
        self.verify = True
        self.closed = False
        self.calls = []
        self._routes = {}

    def add(self, method, path, status=200, body=None, text=None, exc=None):
        answer = exc if exc is not None else FakeResponse(status, body, text)
        self._routes.setdefault((method, path), []).append(answer)
        return self

    def request(self, method, url, params=None, data=None):
        path = urlsplit(url).path
        payload = json.loads(data.decode("utf-8")) if data else None
        self.calls.append((method, path, payload, params))

        queue = self._routes.get((method, path))
        if not queue:
            return FakeResponse(404, {"message": "Not found"})
        answer = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def close(self):
        self.closed = True

    def calls_to(self, method, path):
        return [c for c in self.calls if c[0] == method and c[1] == path]


def write_json(path, doc):
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path
