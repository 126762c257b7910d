"""Jira search client and record fan-out."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

import requests
from bs4 import BeautifulSoup

from .reconcile import ExternalRecord
from .tasks import is_valid_key

logger = logging.getLogger(__name__)

SEARCH_PATHS = {
    "2": "rest/api/2/search",
    "3": "rest/api/3/search/jql",
}
DEFAULT_PAGE_SIZE = 100
DEFAULT_TIMEOUT = 30.0


class TrackerError(RuntimeError):
    """Raised when the tracker answers with something we cannot read."""


@dataclass(frozen=True)
class JiraAccount:
    alias: str
    base_url: str
    email: str | None = None
    token: str | None = None
    api_version: str = "3"


class JiraClient:
    def __init__(
        self,
        account: JiraAccount,
        session: requests.Session | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.account = account
        self.session = session or requests.Session()
        self.timeout = timeout
        self.page_size = page_size
        self.session.headers["Accept"] = "application/json"
        if account.token:
            if account.email:
                self.session.auth = (account.email, account.token)
            else:
                self.session.headers["Authorization"] = f"Bearer {account.token}"

    @property
    def search_url(self) -> str:
        path = SEARCH_PATHS.get(self.account.api_version)
        if path is None:
            raise TrackerError(f"unsupported Jira API version {self.account.api_version!r}")
        return f"{self.account.base_url.rstrip('/')}/{path}"

    def _get_page(self, params: dict[str, Any]) -> dict[str, Any]:
        response = self.session.get(self.search_url, params=params, timeout=self.timeout)
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise TrackerError(f"invalid JSON from {self.search_url}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("issues"), list):
            raise TrackerError(f"no issue list in response from {self.search_url}")
        return payload

    def search(self, jql: str) -> list[dict[str, Any]]:
        if self.account.api_version == "2":
            return self._search_offset(jql)
        return self._search_token(jql)

    def _search_offset(self, jql: str) -> list[dict[str, Any]]:
        # Server / Data Center: startAt paging against /rest/api/2/search.
        issues: list[dict[str, Any]] = []
        start_at = 0
        while True:
            payload = self._get_page(
                {
                    "jql": jql,
                    "startAt": start_at,
                    "maxResults": self.page_size,
                    "fields": "summary,status",
                }
            )
            batch = payload["issues"]
            issues.extend(batch)
            start_at += len(batch)
            total = payload.get("total")
            if not batch or not isinstance(total, int) or start_at >= total:
                break
        return issues

    def _search_token(self, jql: str) -> list[dict[str, Any]]:
        # Cloud: nextPageToken paging against /rest/api/3/search/jql.
        issues: list[dict[str, Any]] = []
        token: str | None = None
        while True:
            params: dict[str, Any] = {
                "jql": jql,
                "maxResults": self.page_size,
                "fields": "summary,status",
            }
            if token:
                params["nextPageToken"] = token
            payload = self._get_page(params)
            batch = payload["issues"]
            issues.extend(batch)
            token = payload.get("nextPageToken")
            if not batch or not token or payload.get("isLast"):
                break
        return issues


ClientFactory = Callable[[JiraAccount], JiraClient]


def clean_summary(value: Any) -> str:
    if not value:
        return ""
    text = str(value)
    if "<" in text or "&" in text:
        text = BeautifulSoup(text, "lxml").get_text(" ", strip=True)
    return " ".join(text.split())


def parse_issue(raw: Any) -> ExternalRecord | None:
    if not isinstance(raw, Mapping):
        logger.warning("Skipping non-object issue payload: %r", raw)
        return None
    key = raw.get("key")
    fields = raw.get("fields")
    if not isinstance(key, str) or not is_valid_key(key.strip()):
        logger.warning("Skipping issue with invalid key: %r", key)
        return None
    status = None
    if isinstance(fields, Mapping) and isinstance(fields.get("status"), Mapping):
        status = fields["status"].get("name")
    if not isinstance(status, str) or not status.strip():
        logger.warning("Skipping %s: missing status", key)
        return None
    summary = fields.get("summary") if isinstance(fields, Mapping) else None
    return ExternalRecord(key=key.strip(), status=status.strip(), summary=clean_summary(summary))


def fetch_records(
    query: str,
    alias: str,
    accounts: Mapping[str, JiraAccount],
    client_factory: ClientFactory = JiraClient,
) -> list[ExternalRecord]:
    """Query one account. Failures are logged and yield an empty list."""

    account = accounts.get(alias)
    if account is None:
        logger.error("No tracker account configured for alias %r", alias)
        return []
    try:
        raw_issues = client_factory(account).search(query)
    except (requests.RequestException, TrackerError) as exc:
        logger.error("Tracker query failed for %s: %s", alias, exc)
        return []
    records: list[ExternalRecord] = []
    for raw in raw_issues:
        record = parse_issue(raw)
        if record is not None:
            records.append(record)
    logger.info("Fetched %d record(s) for %s", len(records), alias)
    return records


def fetch_all(
    query: str,
    aliases: Iterable[str],
    accounts: Mapping[str, JiraAccount],
    *,
    client_factory: ClientFactory = JiraClient,
    max_workers: int = 4,
) -> list[ExternalRecord]:
    alias_list = list(dict.fromkeys(aliases))
    if not alias_list:
        return []
    records: list[ExternalRecord] = []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(alias_list)))) as pool:
        futures = {
            alias: pool.submit(fetch_records, query, alias, accounts, client_factory)
            for alias in alias_list
        }
        for alias, future in futures.items():
            try:
                records.extend(future.result())
            except Exception:  # pragma: no cover - fetch_records logs its own failures
                logger.exception("Unexpected failure fetching %s", alias)
    return records
