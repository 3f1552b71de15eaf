from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

SubjectId = int | str


class TokenProvider(Protocol):
    """Port for issuing and verifying credentials.

    Access tokens are self-contained signed assertions of a subject id.
    Refresh tokens are opaque random strings; their correlation with a
    subject lives only in the session store.
    """

    @property
    def ttl(self) -> timedelta: ...

    def issue_access_token(self, subject_id: SubjectId) -> str: ...

    def issue_refresh_token(self) -> str: ...

    def verify_access_token(self, token: str) -> SubjectId: ...

    def expires_at(self, token: str) -> datetime: ...
