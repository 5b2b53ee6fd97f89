"""Client for the remote quoting data provider.

Paths are relative to ``QUOTEGRID_PROVIDER_URL`` (``quote``, ``quotes``,
``customers``, ...).  Like the add-in this replaces, failures never raise to
the caller: they are logged and an empty dict comes back.
"""

import logging
import os
import random
import time
from typing import Any, Dict, Optional

import requests

from quotegrid.grid.entities import QuoteSummary
from quotegrid.grid.errors import ProviderError

BASE_URL = os.getenv("QUOTEGRID_PROVIDER_URL", "http://localhost:8080/api/quoting-excel/")
TIMEOUT = int(os.getenv("QUOTEGRID_PROVIDER_TIMEOUT", "10"))
MAX_TRIES = 3


class ProviderClient:
    def __init__(self, base_url: str = BASE_URL, timeout: int = TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def get(self, path: str, options: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``path`` with ``options`` as query parameters."""
        try:
            return self._request("GET", path, params=options)
        except (requests.RequestException, ProviderError) as e:
            logging.warning("Provider GET %s failed: %s", path, e)
            return {}

    def post(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """POST ``payload`` as a JSON body."""
        try:
            return self._request("POST", path, json=payload or {})
        except (requests.RequestException, ProviderError) as e:
            logging.warning("Provider POST %s failed: %s", path, e)
            return {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = self.base_url + path.lstrip("/")
        tries = 0
        while True:
            try:
                r = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.ConnectionError:
                tries += 1
                if tries >= MAX_TRIES:
                    raise
                time.sleep(min(2 ** tries, 10) + random.random())
                continue
            if r.status_code == 429 or r.status_code >= 500:
                tries += 1
                if tries >= MAX_TRIES:
                    r.raise_for_status()
                time.sleep(min(2 ** tries, 10) + random.random())
                continue
            r.raise_for_status()
            content_type = r.headers.get("content-type") or ""
            if "application/json" not in content_type:
                raise ProviderError(f"{method} {path} answered {content_type or 'no content type'}, not JSON")
            return r.json()

    # Add-in calls

    def customers(self) -> Any:
        return self.get("customers")

    def projects(self, customer_id: Optional[int] = None) -> Any:
        return self.get("projects", {"customerId": customer_id} if customer_id else None)

    def quotes(self, customer_id: Optional[int] = None, project_id: Optional[int] = None) -> Any:
        options = {}
        if project_id:
            options["projectId"] = project_id
        if customer_id:
            options["customerId"] = customer_id
        return self.get("quotes", options or None)

    def quote(self, quote_id: int) -> Dict[str, Any]:
        return self.get("quote", {"id": quote_id})

    def save_quote(self, summary: QuoteSummary) -> Any:
        return self.post("quote", {"data": summary.to_dict()})

    def new_revision(self, quote_id: int) -> Any:
        return self.post("quote-revision", {"data": {"quoteId": quote_id}})
