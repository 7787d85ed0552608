"""Azure DevOps API client for retrieving pull requests under review."""

import logging
import re
import uuid
from datetime import datetime
from typing import Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .models import AccountConfig, RawReview, Reviewer, Vote

API_VERSION = '7.0'
REQUEST_TIMEOUT = 30

_FRACTION_RE = re.compile(r'\.(\d+)')


class BackendError(Exception):
    """Raised when the server answers with something we cannot interpret."""


class AzureDevOpsClient:
    """A connection to one Azure DevOps organization.

    The client owns a requests session and must be closed after use. It can be
    used as a context manager.
    """

    def __init__(self, account: AccountConfig, session: requests.Session = None):
        """Initialize the client.

        Args:
            account: The account to connect with
            session: Optional pre-configured session (mainly for tests)
        """
        self.account = account
        self.base_url = account.organization_url.rstrip('/')
        self.session = session or self._create_session()
        self.session.auth = ('', account.personal_access_token)
        self.session.headers.update({'Accept': 'application/json'})

    @staticmethod
    def _create_session() -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(
            max_retries=Retry(
                total=3,
                backoff_factor=0.3,
                status_forcelist=[500, 502, 503, 504]
            )
        )
        session.mount('https://', adapter)
        session.mount('http://', adapter)
        return session

    def __enter__(self) -> 'AzureDevOpsClient':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self):
        """Close the underlying session."""
        self.session.close()
        logging.debug(f"Closed connection to {self.base_url}")

    def _get_json(self, url: str, params: Dict = None) -> Dict:
        """Make a GET request and decode the JSON body.

        Args:
            url: The API endpoint URL
            params: Query parameters

        Returns:
            The decoded JSON object

        Raises:
            requests.HTTPError: If the server returns an error status
            BackendError: If the body is not a JSON object
        """
        params = dict(params or {})
        params['api-version'] = API_VERSION

        logging.debug(f"GET {url}")
        response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as e:
            # Azure DevOps answers with an HTML sign-in page when the token is rejected
            raise BackendError(f"Unexpected non-JSON response from {url}") from e

        if not isinstance(data, dict):
            raise BackendError(f"Unexpected response shape from {url}")
        return data

    def resolve_current_user(self) -> str:
        """Get the identity the connection is authorized as.

        Returns:
            The user id of the authenticated user
        """
        data = self._get_json(f"{self.base_url}/_apis/connectionData")
        user_id = (data.get('authenticatedUser') or {}).get('id')
        if not user_id:
            raise BackendError(f"No authenticated user for {self.base_url}")

        try:
            user_id = str(uuid.UUID(str(user_id)))
        except ValueError as e:
            raise BackendError(f"Invalid authenticated user id '{user_id}' from {self.base_url}") from e

        logging.info(f"Authenticated to {self.base_url} as {user_id}")
        return user_id

    def search_url(self) -> str:
        """Pull request search endpoint, scoped to the repository if one is configured."""
        project = requests.utils.quote(self.account.project, safe='')
        if self.account.repo_name:
            repo = requests.utils.quote(self.account.repo_name, safe='')
            return f"{self.base_url}/{project}/_apis/git/repositories/{repo}/pullrequests"
        return f"{self.base_url}/{project}/_apis/git/pullrequests"

    def search_active_reviews(self, user_id: str) -> List[RawReview]:
        """Fetch the active pull requests where the user is a reviewer.

        Filtering happens on the server; records that cannot be parsed are
        skipped.

        Args:
            user_id: The reviewer identity to search for

        Returns:
            List of reviews in the order returned by the server
        """
        data = self._get_json(self.search_url(), {
            'searchCriteria.reviewerId': user_id,
            'searchCriteria.status': 'active',
        })

        records = data.get('value')
        if not isinstance(records, list):
            raise BackendError(f"Pull request search returned no 'value' list for {self.account.name}")

        reviews = []
        for record in records:
            review = parse_review(record)
            if review is not None:
                reviews.append(review)

        logging.info(f"Fetched {len(reviews)} active pull requests for {self.account.name}")
        return reviews


def open_connection(account: AccountConfig) -> AzureDevOpsClient:
    """Factory method for creating a connection to an account."""
    return AzureDevOpsClient(account)


def parse_review(record: Dict) -> Optional[RawReview]:
    """Convert a pull request record from the API into a RawReview.

    Args:
        record: One element of the pull request search result

    Returns:
        The parsed review, or None if the record is malformed
    """
    if not isinstance(record, dict):
        logging.warning(f"Skipping malformed pull request record: {record!r}")
        return None

    try:
        pr_id = int(record['pullRequestId'])
        repository = record.get('repository') or {}
        return RawReview(
            id=pr_id,
            title=record.get('title', ''),
            is_draft=bool(record.get('isDraft', False)),
            reviewers=tuple(_parse_reviewer(r) for r in record.get('reviewers', [])),
            author=(record.get('createdBy') or {}).get('displayName', ''),
            repository=repository.get('name', ''),
            created=_parse_date(record.get('creationDate')),
            url=_web_url(repository, pr_id),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logging.warning(f"Skipping malformed pull request record {record.get('pullRequestId', '?')}: {e}")
        return None


def _parse_reviewer(data: Dict) -> Reviewer:
    return Reviewer(
        id=str(uuid.UUID(str(data['id']))),
        display_name=data.get('displayName', ''),
        vote=Vote(int(data.get('vote', 0))),
        is_required=bool(data.get('isRequired', False)),
    )


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    if not isinstance(value, str):
        raise TypeError(f"creationDate must be a string, got {type(value).__name__}")
    try:
        # Server timestamps carry up to 7 fractional digits and a trailing Z
        value = _FRACTION_RE.sub(lambda m: '.' + (m.group(1) + '000000')[:6], value, count=1)
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        logging.debug(f"Could not parse date '{value}'")
        return None


def _web_url(repository: Dict, pr_id: int) -> str:
    web_url = repository.get('webUrl')
    if not web_url:
        return ''
    return f"{web_url}/pullrequest/{pr_id}"
