#!/usr/bin/env python3
"""
Upstream Client
HTTP access to third-party metrics providers with per-provider auth injection
"""

import json
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .cache import TTLCache
from .exceptions import UpstreamError
from .utils import html_to_text, redact_url

logger = logging.getLogger(__name__)

MAX_ERROR_BODY = 2000


@dataclass(frozen=True)
class ProviderProfile:
    """Where a provider lives and how its credential is attached"""
    name: str
    base_url: str
    auth: Optional[str] = None  # "bearer", "header" or "path"
    auth_header: Optional[str] = None


PROVIDERS: Dict[str, ProviderProfile] = {
    "beaconchain": ProviderProfile("beaconchain", "https://beaconcha.in", auth="bearer"),
    "glacier": ProviderProfile("glacier", "https://glacier-api.avax.network", auth="header",
                               auth_header="x-glacier-api-key"),
    "avax_data_api": ProviderProfile("avax_data_api", "https://data-api.avax.network"),
    "llama_pro": ProviderProfile("llama_pro", "https://pro-api.llama.fi", auth="path"),
    "llama": ProviderProfile("llama", "https://api.llama.fi"),
    "validatorqueue": ProviderProfile("validatorqueue", "https://www.validatorqueue.com"),
}


@dataclass
class Candidate:
    """One host/path to try in an ordered fallback list"""
    provider: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)


class UpstreamClient:
    """Thin requests wrapper: one attempt per call, failures carry status and body"""

    USER_AGENT = "GotNodes/1.0 (validators dashboard)"

    def __init__(self, timeout: int = 10, session: Optional[requests.Session] = None,
                 cache: Optional[TTLCache] = None):
        self.timeout = timeout
        self.session = session or self._build_session()
        self.cache = cache
        self.logger = logger

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        # Each call is attempted exactly once
        adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update({
            "User-Agent": self.USER_AGENT,
            "Accept": "application/json,text/plain;q=0.9,*/*;q=0.1",
        })
        return session

    @staticmethod
    def profile(provider: str) -> ProviderProfile:
        try:
            return PROVIDERS[provider]
        except KeyError:
            raise ValueError(f"Unknown provider: {provider}")

    def url_for(self, provider: str, path: str, key: Optional[str] = None) -> str:
        """Build an absolute URL; path-keyed providers get the key as first segment"""
        profile = self.profile(provider)
        if not path.startswith("/"):
            path = "/" + path
        if profile.auth == "path" and key:
            return f"{profile.base_url}/{quote(key, safe='')}{path}"
        return f"{profile.base_url}{path}"

    def headers_for(self, provider: str, key: Optional[str] = None) -> Dict[str, str]:
        profile = self.profile(provider)
        headers = {}
        if not key:
            return headers
        if profile.auth == "bearer":
            headers["Authorization"] = f"Bearer {key}"
        elif profile.auth == "header" and profile.auth_header:
            headers[profile.auth_header] = key
        return headers

    def request(self, provider: str, method: str, url: str, headers: Optional[Dict[str, str]] = None,
                params: Optional[Dict[str, Any]] = None, json_body: Any = None) -> requests.Response:
        """Issue one request; raises UpstreamError on transport failure or non-2xx"""
        start_time = time.time()
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_body,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            self.logger.warning(f"{provider} {method} {redact_url(url)} unreachable: {e}")
            raise UpstreamError(provider, f"request failed: {e}", url=redact_url(url)) from e

        elapsed = time.time() - start_time
        self.logger.debug(f"{provider} {method} {redact_url(url)} -> {response.status_code} in {elapsed:.3f}s")

        if not 200 <= response.status_code < 300:
            body = response.text[:MAX_ERROR_BODY]
            self.logger.warning(f"{provider} {method} {redact_url(url)} returned {response.status_code}")
            message = f"{response.status_code} {response.reason or ''} {body[:200]}".strip()
            raise UpstreamError(provider, message, status=response.status_code, body=body,
                                url=redact_url(url))
        return response

    def _decode_json(self, provider: str, response: requests.Response, url: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            body = response.text[:MAX_ERROR_BODY]
            raise UpstreamError(provider, f"malformed JSON: {e}", status=response.status_code,
                                body=body, url=redact_url(url)) from e

    def get_json(self, provider: str, url: str, headers: Optional[Dict[str, str]] = None,
                 params: Optional[Dict[str, Any]] = None, cache_ttl: Optional[float] = None) -> Any:
        cache_key = url
        if params:
            cache_key = f"{url}?{json.dumps(params, sort_keys=True)}"
        if cache_ttl and self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        response = self.request(provider, "GET", url, headers=headers, params=params)
        payload = self._decode_json(provider, response, url)

        if cache_ttl and self.cache is not None:
            self.cache.put(cache_key, payload, ttl=cache_ttl)
        return payload

    def post_json(self, provider: str, url: str, payload: Any,
                  headers: Optional[Dict[str, str]] = None) -> Any:
        merged = {"Content-Type": "application/json"}
        merged.update(headers or {})
        response = self.request(provider, "POST", url, headers=merged, json_body=payload)
        return self._decode_json(provider, response, url)

    def get_text(self, provider: str, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        """Fetch an HTML page and reduce it to whitespace-collapsed plain text"""
        merged = {"Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.1"}
        merged.update(headers or {})
        response = self.request(provider, "GET", url, headers=merged)
        return html_to_text(response.text)

    def first_available(self, candidates: List[Candidate],
                        validate: Optional[Callable[[Any], bool]] = None,
                        cache_ttl: Optional[float] = None) -> Tuple[Any, Candidate]:
        """
        Try candidates in order and return the first parseable payload

        Args:
            candidates: Ordered hosts/paths to try
            validate: Optional shape check; a False result counts as a failure
            cache_ttl: Edge cache TTL for successful payloads

        Returns:
            (payload, candidate that produced it)

        Raises:
            UpstreamError: the last failure when every candidate fails
        """
        last_error: Optional[UpstreamError] = None
        for candidate in candidates:
            try:
                payload = self.get_json(candidate.provider, candidate.url, headers=candidate.headers,
                                        cache_ttl=cache_ttl)
                if validate is not None and not validate(payload):
                    raise UpstreamError(candidate.provider, "unexpected payload shape",
                                        url=redact_url(candidate.url))
                return payload, candidate
            except UpstreamError as e:
                self.logger.info(f"Candidate {candidate.provider} {redact_url(candidate.url)} failed: {e}")
                last_error = e

        if last_error is None:
            raise UpstreamError("upstream", "no candidate endpoints configured")
        raise last_error
