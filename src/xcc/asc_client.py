"""App Store Connect REST API client for Xcode Cloud resources."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import jwt
import requests

from .config import Credentials
from .errors import API_KEYS_URL, ApiError, AuthenticationError, ConfigurationError
from .models import (
    BuildRun,
    BundleId,
    GitReference,
    Product,
    PullRequest,
    ReferenceKind,
    Repository,
    Workflow,
)

logger = logging.getLogger(__name__)


class AppStoreConnectClient:
    """Small, typed client for the App Store Connect CI and SCM APIs."""

    BASE_URL = "https://api.appstoreconnect.apple.com"
    _AUDIENCE = "appstoreconnect-v1"
    _PAGE_SIZE = 200
    _TOKEN_LIFETIME_SECONDS = 15 * 60
    _TOKEN_REFRESH_MARGIN_SECONDS = 60

    def __init__(self, credentials: Credentials, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated App Store Connect API client.

        Args:
            credentials: API key used to sign bearer tokens.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._credentials = credentials
        self._timeout_seconds = timeout_seconds
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path or pass through an absolute URL."""
        if path.startswith(("https://", "http://")):
            return path
        return f"{self.BASE_URL}/{path.lstrip('/')}"

    def _bearer_token(self) -> str:
        """Return a signed ES256 token, reusing the cached one until shortly before expiry.

        Raises:
            ConfigurationError: If the private key cannot be used for ES256 signing.
        """
        now = time.time()
        if self._token is not None and now < self._token_expires_at - self._TOKEN_REFRESH_MARGIN_SECONDS:
            return self._token

        issued_at = int(now)
        expires_at = issued_at + self._TOKEN_LIFETIME_SECONDS
        claims = {
            "iss": self._credentials.issuer_id,
            "iat": issued_at,
            "exp": expires_at,
            "aud": self._AUDIENCE,
        }
        try:
            token = jwt.encode(
                claims,
                self._credentials.private_key,
                algorithm="ES256",
                headers={"kid": self._credentials.key_id},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise ConfigurationError(
                "The private key could not be used to sign App Store Connect tokens. "
                "Make sure it is the EC key from the downloaded AuthKey_<key id>.p8 file."
            ) from exc

        logger.debug("Signed new API token", extra={"key_id": self._credentials.key_id, "exp": expires_at})
        self._token = token
        self._token_expires_at = float(expires_at)
        return token

    def _error_detail(self, response: requests.Response) -> str:
        """Summarize the ``errors`` array of an API error response."""
        try:
            payload = response.json()
        except ValueError:
            return response.text

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if not errors:
            return response.text

        details = []
        for error in errors:
            title = error.get("title") or error.get("code") or "Error"
            detail = error.get("detail")
            details.append(f"{title}: {detail}" if detail else str(title))
        return "; ".join(details)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Execute an authenticated request and return its decoded JSON object.

        Failed requests are not retried.

        Raises:
            AuthenticationError: If the API rejects the credentials (401/403).
            ApiError: On transport failure, HTTP >= 400, or a non-object JSON body.
        """
        url = self._build_url(path)
        headers = {"Authorization": f"Bearer {self._bearer_token()}"}

        logger.debug("API request", extra={"method": method, "url": url, "params": params})
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=body,
                headers=headers,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ApiError(f"App Store Connect request failed: {method} {url} ({exc})") from exc

        status_code = response.status_code
        if status_code in (401, 403):
            raise AuthenticationError(
                f"App Store Connect rejected the API key: {method} {url} returned {status_code} - "
                f"{self._error_detail(response)}. Check the issuer id, key id and private key at {API_KEYS_URL}"
            )

        if status_code >= 400:
            raise ApiError(
                "App Store Connect API request failed: "
                f"{method} {url} returned {status_code} - {self._error_detail(response)}"
            )

        if status_code == 204 or not response.content:
            return {}

        try:
            payload = response.json()
        except ValueError as exc:
            raise ApiError(f"App Store Connect API returned invalid JSON: {method} {url}") from exc

        if not isinstance(payload, dict):
            raise ApiError(f"App Store Connect API returned unexpected payload shape: {method} {url}")

        return payload

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request("GET", path, params=params)

    def _post_json(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", path, body=body)

    def get_resource(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Fetch a single resource document and return its ``data`` object.

        Raises:
            ApiError: If the response has no ``data`` object.
        """
        payload = self._get_json(path, params=params)
        data = payload.get("data")
        if not isinstance(data, dict):
            raise ApiError(f"App Store Connect API returned no resource: GET {self._build_url(path)}")
        return data

    def get_all(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Fetch every page of a collection and return all ``data`` items in server order.

        The first request carries ``params`` and the maximum page size; later
        requests follow ``links.next`` verbatim, since that URL already
        encodes the cursor and the original query. Any failing page aborts
        the whole aggregation.
        """
        items: List[Dict[str, Any]] = []
        query: Optional[Dict[str, Any]] = {"limit": self._PAGE_SIZE, **(params or {})}
        next_path: Optional[str] = path
        visited = set()
        pages = 0

        while next_path and next_path not in visited:
            visited.add(next_path)
            payload = self._get_json(next_path, params=query)
            pages += 1

            page_items = payload.get("data") or []
            items.extend(page_items)

            next_path = (payload.get("links") or {}).get("next")
            query = None

        logger.debug("Fetched collection", extra={"path": path, "pages": pages, "items": len(items)})
        return items

    def list_bundle_ids(self) -> List[BundleId]:
        """List bundle identifiers registered for the team."""
        bundle_ids: List[BundleId] = []

        for item in self.get_all("v1/bundleIds"):
            attributes = item.get("attributes") or {}
            identifier = attributes.get("identifier")
            if not item.get("id") or not identifier:
                continue
            bundle_ids.append(BundleId(id=str(item["id"]), identifier=str(identifier)))

        return bundle_ids

    def list_products(self) -> List[Product]:
        """List Xcode Cloud products with the id of their related bundle id.

        The related id is not always the public identifier; see
        :func:`xcc.selection.reconcile_bundle_ids`.
        """
        products: List[Product] = []

        for item in self.get_all("v1/ciProducts"):
            attributes = item.get("attributes") or {}
            relationship = ((item.get("relationships") or {}).get("bundleId") or {}).get("data") or {}
            name = attributes.get("name")
            if not item.get("id") or not name:
                raise ApiError(f"App Store Connect product payload is missing required fields: payload={item}")

            bundle_id = relationship.get("id")
            products.append(
                Product(id=str(item["id"]), name=str(name), bundle_id=str(bundle_id) if bundle_id else None)
            )

        return products

    def list_workflows(self, product_id: str) -> List[Workflow]:
        """List the workflows of a product."""
        workflows: List[Workflow] = []

        for item in self.get_all(f"v1/ciProducts/{product_id}/workflows"):
            attributes = item.get("attributes") or {}
            name = attributes.get("name")
            if not item.get("id") or not name:
                raise ApiError(f"App Store Connect workflow payload is missing required fields: payload={item}")

            workflows.append(
                Workflow(
                    id=str(item["id"]),
                    name=str(name),
                    is_enabled=attributes.get("isEnabled") is not False,
                )
            )

        return workflows

    def get_repository(self, workflow_id: str) -> Repository:
        """Fetch the repository a workflow builds from."""
        item = self.get_resource(f"v1/ciWorkflows/{workflow_id}/repository")
        if not item.get("id"):
            raise ApiError(f"App Store Connect repository payload is missing an id: payload={item}")

        attributes = item.get("attributes") or {}
        return Repository(
            id=str(item["id"]),
            owner_name=str(attributes.get("ownerName") or ""),
            repository_name=str(attributes.get("repositoryName") or ""),
        )

    def list_git_references(self, repository_id: str) -> List[GitReference]:
        """List branches and tags of a repository, skipping deleted references."""
        references: List[GitReference] = []

        for item in self.get_all(f"v1/scmRepositories/{repository_id}/gitReferences"):
            attributes = item.get("attributes") or {}
            name = attributes.get("name")
            if not item.get("id") or not name:
                continue
            if attributes.get("isDeleted"):
                continue

            try:
                kind: Optional[ReferenceKind] = ReferenceKind(attributes.get("kind"))
            except ValueError:
                kind = None

            references.append(GitReference(id=str(item["id"]), name=str(name), kind=kind))

        return references

    def list_pull_requests(self, repository_id: str) -> List[PullRequest]:
        """List open pull requests of a repository."""
        pull_requests: List[PullRequest] = []

        for item in self.get_all(f"v1/scmRepositories/{repository_id}/pullRequests"):
            attributes = item.get("attributes") or {}
            number = attributes.get("number")
            if not item.get("id") or number is None:
                continue
            if attributes.get("isClosed"):
                continue

            pull_requests.append(
                PullRequest(
                    id=str(item["id"]),
                    number=int(number),
                    title=str(attributes.get("title") or ""),
                )
            )

        return pull_requests

    def create_build_run(
        self,
        workflow_id: str,
        git_reference_id: Optional[str] = None,
        pull_request_id: Optional[str] = None,
    ) -> Optional[BuildRun]:
        """Start a build of ``workflow_id`` from exactly one source.

        Returns:
            The created build run when the response describes one, else ``None``.

        Raises:
            ValueError: If neither or both of the source ids are given.
        """
        if (git_reference_id is None) == (pull_request_id is None):
            raise ValueError("Exactly one of git_reference_id and pull_request_id must be provided.")

        relationships: Dict[str, Any] = {
            "workflow": {"data": {"type": "ciWorkflows", "id": workflow_id}},
        }
        if git_reference_id is not None:
            relationships["sourceBranchOrTag"] = {"data": {"type": "scmGitReferences", "id": git_reference_id}}
        else:
            relationships["pullRequest"] = {"data": {"type": "scmPullRequests", "id": pull_request_id}}

        payload = self._post_json(
            "v1/ciBuildRuns",
            body={"data": {"type": "ciBuildRuns", "relationships": relationships}},
        )

        data = payload.get("data") or {}
        if not data.get("id"):
            return None

        number = (data.get("attributes") or {}).get("number")
        build_run = BuildRun(id=str(data["id"]), number=int(number) if number is not None else None)
        logger.info("Created build run", extra={"build_run_id": build_run.id, "number": build_run.number})
        return build_run
