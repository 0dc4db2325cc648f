"""API key management for the signed-in customer."""

import logging
from typing import List, Optional, Tuple

from config.schemas import ApiKey
from portal.api_client import ApiClient
from portal.envelopes import extract_api_keys, extract_created_key
from portal.errors import PortalError

logger = logging.getLogger(__name__)


API_KEYS_PATH = "/api/v1/customer/api-keys"


class ApiKeyService:
    def __init__(self, api: ApiClient):
        self.api = api

    def list_keys(self) -> List[ApiKey]:
        return extract_api_keys(self.api.get(API_KEYS_PATH))

    def create_key(self, name: Optional[str] = None) -> Tuple[Optional[ApiKey], str]:
        """
        Create a key. The plain token is only returned here, once; callers
        must show it immediately.
        """
        body = {"name": name.strip()} if name and name.strip() else {}
        key, token = extract_created_key(self.api.post(API_KEYS_PATH, body))
        if not token:
            raise PortalError("API key was created but no token was returned")
        logger.info(f"[ApiKeys] Created key {key.id if key else '(unknown id)'}")
        return key, token

    def revoke_key(self, key_id: str) -> None:
        self.api.delete(f"{API_KEYS_PATH}/{key_id}")
        logger.info(f"[ApiKeys] Revoked key {key_id}")
