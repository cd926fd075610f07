"""Project and tenant-user management endpoints."""

from __future__ import annotations

from typing import Any

import httpx

from hanbase_cli.shared.exceptions import ExecutionError, TransportError, ValidationError
from hanbase_cli.shared.logging import Logger
from hanbase_cli.shared.session import Session, extract_error

from .builder import sanitize_identifier
from .types import Project, TenantUser

MAX_SLUG_LENGTH = 63  # Postgres identifier limit


class ProjectService:
    """Lists, creates and deletes projects (one remote schema each)."""

    def __init__(self, session: Session, *, logger: Logger | None = None) -> None:
        self.session = session
        self.logger = logger or session.logger
        self.last_error: str | None = None

    async def list_projects(self) -> list[Project]:
        """Return all projects; failures degrade to an empty list with ``last_error`` set."""
        try:
            response = await self.session.request("GET", "/projects")
        except TransportError as exc:
            return self._listing_failed(str(exc))
        if not response.is_success:
            return self._listing_failed(extract_error(response, f"HTTP {response.status_code}"))
        payload = _json_or_none(response)
        self.last_error = None
        if not isinstance(payload, list):
            return []
        return [Project.from_payload(item) for item in payload if isinstance(item, dict) and item.get("slug")]

    async def create_project(self, name: str, slug: str) -> str:
        """Create a project and return the service's confirmation message."""
        clean_name = (name or "").strip()
        clean_slug = sanitize_identifier(slug)
        if not clean_name or not clean_slug:
            raise ValidationError("Name and slug are required.")
        if len(clean_slug) > MAX_SLUG_LENGTH:
            raise ValidationError(f"Slug must be at most {MAX_SLUG_LENGTH} characters.")

        response = await self.session.request("POST", "/projects", json={"name": clean_name, "slug": clean_slug})
        payload = _json_or_none(response)
        if not response.is_success:
            raise ExecutionError(extract_error(response, "Could not create project."))
        message = payload.get("message") if isinstance(payload, dict) else None
        return str(message or f"Project '{clean_slug}' created.")

    async def delete_project(self, slug: str) -> None:
        clean_slug = sanitize_identifier(slug)
        if not clean_slug:
            raise ValidationError("Project slug is required.")
        response = await self.session.request("DELETE", f"/projects/{clean_slug}")
        if not response.is_success:
            raise ExecutionError(extract_error(response, f"Could not delete project '{clean_slug}'."))

    def _listing_failed(self, reason: str) -> list[Project]:
        self.last_error = reason
        self.logger.warning(f"Failed to fetch projects: {reason}")
        return []


class TenantUserService:
    """End users stored in a project's own ``users`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    async def list_users(self, project: str) -> list[TenantUser]:
        response = await self.session.request("GET", f"/{project}/auth/users")
        if not response.is_success:
            raise ExecutionError(extract_error(response, "Could not load users."))
        payload = _json_or_none(response)
        if not isinstance(payload, list):
            return []
        return [TenantUser.from_payload(item) for item in payload if isinstance(item, dict)]

    async def add_user(self, project: str, email: str, password: str) -> None:
        if not email or not password:
            raise ValidationError("Email and password are required.")
        # Sign-up is the tenant's public endpoint; no admin token is sent.
        response = await self.session.request(
            "POST",
            f"/{project}/auth/signup",
            json={"email": email, "password": password},
            authorized=False,
        )
        if not response.is_success:
            raise ExecutionError(extract_error(response, "Failed to create user."))

    async def delete_user(self, project: str, user_id: str) -> None:
        if not user_id:
            raise ValidationError("User id is required.")
        response = await self.session.request("DELETE", f"/{project}/auth/users/{user_id}")
        if not response.is_success:
            raise ExecutionError(extract_error(response, f"Could not delete user '{user_id}'."))


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
