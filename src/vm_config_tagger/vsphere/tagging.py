"""
vSphere Automation REST client for the tagging API.

Covers the calls the tagger needs on the `/rest/com/vmware/cis` endpoints:
session login/logout, category and tag lookup, tag association. Every call
goes through one `requests.Session` carrying the `vmware-api-session-id`
header once logged in.
"""
import logging
from typing import Any, Dict, List, Optional

import requests
import urllib3

from vm_config_tagger.errors import TaggingAPIError
from vm_config_tagger.schemas import ObjectReference, Tag

logger = logging.getLogger(__name__)

SESSION_HEADER = "vmware-api-session-id"
CIS_PATH = "/rest/com/vmware/cis"


class TaggingClient:
    """Thin wrapper around the vSphere REST tagging endpoints."""

    def __init__(self, server: str, verify: bool = True, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        """Initialize the client

        Args:
            server: vCenter host name or address
            verify: Verify the server TLS certificate
            timeout: Per-request timeout in seconds
            session: Optional pre-built requests session (tests)
        """
        self.base_url = f"https://{server}{CIS_PATH}"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.verify = verify
        self.session_id: Optional[str] = None

        if not verify:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @property
    def is_logged_in(self) -> bool:
        return self.session_id is not None

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """Issue a request and return the `value` member of the JSON reply."""
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise TaggingAPIError(f"{method} {path} failed: {e}", status_code=status) from e
        except requests.RequestException as e:
            raise TaggingAPIError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        try:
            payload = response.json()
        except ValueError as e:
            raise TaggingAPIError(f"{method} {path} returned invalid JSON: {e}") from e
        return payload.get("value") if isinstance(payload, dict) else payload

    # --- session ---

    def login(self, user: str, password: str) -> None:
        """Create a REST session using basic authentication."""
        token = self._request("POST", "/session", auth=(user, password))
        if not token:
            raise TaggingAPIError("POST /session returned no session id")
        self.session_id = token
        self.session.headers[SESSION_HEADER] = token
        logger.debug("Logged in to vSphere REST API")

    def logout(self) -> None:
        """Delete the REST session, if any."""
        if not self.is_logged_in:
            return
        try:
            self._request("DELETE", "/session")
        finally:
            self.session_id = None
            self.session.headers.pop(SESSION_HEADER, None)
            self.session.close()

    # --- categories ---

    def list_categories(self) -> List[str]:
        return self._request("GET", "/tagging/category") or []

    def get_category(self, category_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/tagging/category/id:{category_id}") or {}

    def find_category_id(self, name_or_id: str) -> Optional[str]:
        """Return the id of the category whose id or name is `name_or_id`."""
        for category_id in self.list_categories():
            if category_id == name_or_id:
                return category_id
            category = self.get_category(category_id)
            if category.get("name") == name_or_id:
                return category_id
        return None

    # --- tags ---

    def list_tags_for_category(self, category_id: str) -> List[str]:
        return self._request(
            "POST",
            f"/tagging/tag/id:{category_id}",
            params={"~action": "list-tags-for-category"},
        ) or []

    def get_tag(self, tag_id: str) -> Tag:
        value = self._request("GET", f"/tagging/tag/id:{tag_id}") or {}
        return Tag(
            id=value.get("id", tag_id),
            name=value.get("name", ""),
            category_id=value.get("category_id", ""),
            description=value.get("description", ""),
        )

    def get_tags_for_category(self, name_or_id: str) -> List[Tag]:
        """Return every tag in the category addressed by name or id.

        Raises:
            TaggingAPIError: the category does not exist or a call failed
        """
        category_id = self.find_category_id(name_or_id)
        if category_id is None:
            raise TaggingAPIError(f"category {name_or_id!r} not found", status_code=404)
        return [self.get_tag(tag_id) for tag_id in self.list_tags_for_category(category_id)]

    # --- associations ---

    @staticmethod
    def _object_id(obj_ref: ObjectReference) -> Dict[str, Any]:
        return {"object_id": {"id": obj_ref.value, "type": obj_ref.type}}

    def attach_tag(self, tag_id: str, obj_ref: ObjectReference) -> None:
        self._request(
            "POST",
            f"/tagging/tag-association/id:{tag_id}",
            params={"~action": "attach"},
            json=self._object_id(obj_ref),
        )

    def list_attached_tags(self, obj_ref: ObjectReference) -> List[str]:
        return self._request(
            "POST",
            "/tagging/tag-association",
            params={"~action": "list-attached-tags"},
            json=self._object_id(obj_ref),
        ) or []
