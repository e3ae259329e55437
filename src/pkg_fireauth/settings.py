from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .domain.constants import IDENTITY_TOOLKIT_URL, PUBLIC_KEY_URL, SECURE_TOKEN_URL
from .domain.value_objects import ApiKey, ProjectId


@dataclass(slots=True)
class FireAuthSettings:
    """
    Identity project connection settings.

    Host code decides how to construct this (env, config file, etc.).
    `project_id` is only needed for ID token verification.
    """
    api_key: str
    project_id: Optional[str] = None
    identity_toolkit_url: str = IDENTITY_TOOLKIT_URL
    secure_token_url: str = SECURE_TOKEN_URL
    public_key_url: str = PUBLIC_KEY_URL
    timeout_seconds: float = 10.0

    @property
    def api_key_value(self) -> ApiKey:
        return ApiKey(self.api_key.strip())

    @property
    def project_id_value(self) -> Optional[ProjectId]:
        if not self.project_id:
            return None
        return ProjectId(self.project_id.strip())
