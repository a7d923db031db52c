"""
Ticket Service Gateway
======================

httpx client for the ticket service: snapshots in, mutations out.
"""

from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from helpdesk.config import Settings, settings as default_settings
from helpdesk.core import TicketServiceException
from helpdesk.shared.domain import MutationOutcome, TicketMutation, TicketSnapshot
from helpdesk.shared.dto import TicketSnapshotDTO
from helpdesk.shared.ports import ITicketGateway


def build_client(app_settings: Optional[Settings] = None) -> httpx.AsyncClient:
    """Shared AsyncClient for all ticket-service calls."""
    cfg = app_settings or default_settings
    headers = {"Accept": "application/json"}
    if cfg.ticket_service_token:
        headers["Authorization"] = f"Bearer {cfg.ticket_service_token}"
    return httpx.AsyncClient(
        base_url=cfg.ticket_service_url.rstrip("/"),
        headers=headers,
        timeout=cfg.ticket_service_timeout_seconds,
    )


class HttpTicketGateway(ITicketGateway):
    """
    Ticket gateway over HTTP.

    Transport errors and non-2xx responses surface as
    ``TicketServiceException``; a 404 on a snapshot means the ticket is gone.
    """

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def get_snapshot(self, ticket_id: int) -> Optional[TicketSnapshot]:
        response = await self._request("GET", f"/tickets/{ticket_id}/snapshot")
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"snapshot of ticket {ticket_id}")
        try:
            return TicketSnapshotDTO.model_validate(response.json()).to_domain()
        except (ValueError, ValidationError) as e:
            raise TicketServiceException(f"Malformed snapshot for ticket {ticket_id}: {e}")

    async def list_open_ticket_ids(self) -> List[int]:
        response = await self._request("GET", "/tickets/open")
        self._raise_for_status(response, "open ticket listing")
        try:
            return [int(ticket_id) for ticket_id in response.json()["ticketIds"]]
        except (ValueError, KeyError, TypeError) as e:
            raise TicketServiceException(f"Malformed open ticket listing: {e}")

    async def apply_mutation(self, mutation: TicketMutation) -> MutationOutcome:
        response = await self._request(
            "PATCH",
            f"/tickets/{mutation.ticket_id}/automation",
            json={"field": mutation.field, "value": mutation.value, "actorId": mutation.actor_id},
        )
        self._raise_for_status(response, f"{mutation.field} change on ticket {mutation.ticket_id}")
        body = _json_or_empty(response)
        return MutationOutcome(old_value=body.get("oldValue"), new_value=body.get("newValue"))

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TicketServiceException(f"{method} {url} failed: {type(e).__name__}: {e}")

    @staticmethod
    def _raise_for_status(response: httpx.Response, what: str) -> None:
        if response.is_success:
            return
        detail = _json_or_empty(response).get("message") or response.text[:200]
        raise TicketServiceException(
            f"Ticket service rejected {what}: {detail}",
            status_code=response.status_code,
        )


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
