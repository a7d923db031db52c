import json

import httpx
import pytest

from helpdesk.core import TicketServiceException
from helpdesk.dispatch.infrastructure import HttpTicketGateway
from helpdesk.shared.domain import TicketMutation

SNAPSHOT = {
    "ticketId": 12,
    "subject": "Printer on fire",
    "priority": "URGENT",
    "departmentId": 2,
    "status": "OPEN",
    "requesterEmail": "bob@example.com",
    "createdAt": "2024-01-15T10:00:00Z",
    "assignedToId": None,
    "unrelated": "ignored",
}


def gateway_for(handler):
    client = httpx.AsyncClient(base_url="http://tickets/api", transport=httpx.MockTransport(handler))
    return HttpTicketGateway(client), client


async def test_get_snapshot():
    gateway, client = gateway_for(lambda request: httpx.Response(200, json=SNAPSHOT))
    async with client:
        snapshot = await gateway.get_snapshot(12)

    assert snapshot.ticket_id == 12
    assert snapshot.department_id == 2
    assert snapshot.created_at.tzinfo is not None
    assert snapshot.is_open


async def test_missing_ticket_is_none():
    gateway, client = gateway_for(lambda request: httpx.Response(404))
    async with client:
        assert await gateway.get_snapshot(12) is None


async def test_malformed_snapshot_raises():
    gateway, client = gateway_for(lambda request: httpx.Response(200, json={"ticketId": "x"}))
    async with client:
        with pytest.raises(TicketServiceException):
            await gateway.get_snapshot(12)


async def test_list_open_ticket_ids():
    def handler(request):
        assert request.url.path == "/api/tickets/open"
        return httpx.Response(200, json={"ticketIds": [3, 1, 2]})

    gateway, client = gateway_for(handler)
    async with client:
        assert await gateway.list_open_ticket_ids() == [3, 1, 2]


async def test_apply_mutation_sends_field_and_value():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"oldValue": "HIGH", "newValue": "URGENT"})

    gateway, client = gateway_for(handler)
    async with client:
        outcome = await gateway.apply_mutation(TicketMutation(12, "priority", "URGENT"))

    assert seen == {
        "method": "PATCH",
        "path": "/api/tickets/12/automation",
        "body": {"field": "priority", "value": "URGENT", "actorId": None},
    }
    assert (outcome.old_value, outcome.new_value) == ("HIGH", "URGENT")


async def test_rejected_mutation_raises_with_status():
    gateway, client = gateway_for(
        lambda request: httpx.Response(422, json={"message": "user 9999 does not exist"})
    )
    async with client:
        with pytest.raises(TicketServiceException) as exc:
            await gateway.apply_mutation(TicketMutation(12, "assignedToId", 9999))

    assert exc.value.status_code == 422
    assert "does not exist" in exc.value.message


async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    gateway, client = gateway_for(handler)
    async with client:
        with pytest.raises(TicketServiceException):
            await gateway.list_open_ticket_ids()
