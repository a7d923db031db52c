import httpx
import pytest

from helpdesk.automation.application import AutomationRuleService
from helpdesk.config import Settings
from helpdesk.dispatch.application import TriggerDispatcher
from helpdesk.dispatch.infrastructure import PeriodicJobs
from helpdesk.main import create_app
from helpdesk.sla.application import SLAReportingService
from helpdesk.sla.infrastructure import SLAConfigManager

from tests.fakes import T0, make_snapshot

RULE = {
    "name": "Route VPN tickets",
    "trigger": "TICKET_CREATED",
    "conditions": [{"field": "subject", "operator": "contains", "value": "vpn"}],
    "actions": [{"type": "add_tag", "params": {"tag": "network"}}],
}


@pytest.fixture
def app(rule_repo, audit_log, policy_repo, tracking_repo, gateway, settings_provider,
        engine, tracking_service, serializer, monitor, tmp_path):
    app = create_app()
    dispatcher = TriggerDispatcher(rule_repo, engine, tracking_service, gateway, serializer)
    jobs = PeriodicJobs()
    jobs.register("hourly_check", dispatcher.hourly_check, 3600)
    jobs.register("sla_sweep", monitor.sweep, 60)
    config_manager = SLAConfigManager(Settings(sla_warning_percent=70))
    config_manager.load(tmp_path / "sla_config.yaml")

    app.state.rule_service = AutomationRuleService(rule_repo, audit_log)
    app.state.sla_reporting_service = SLAReportingService(
        policy_repo, tracking_repo, gateway, settings_provider
    )
    app.state.sla_config_manager = config_manager
    app.state.dispatcher = dispatcher
    app.state.jobs = jobs
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestAutomationRoutes:

    async def test_create_and_fetch(self, client, audit_log):
        response = await client.post("/automation/rules", json=RULE, headers={"X-Actor-Id": "7"})

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == 1
        assert body["created_by"] == 7
        assert audit_log.entries[-1].actor_id == 7

        fetched = await client.get("/automation/rules/1")
        assert fetched.json()["conditions"] == RULE["conditions"]

    async def test_invalid_combination_is_422(self, client):
        rule = dict(RULE, conditions=[{"field": "departmentId", "operator": "contains", "value": "3"}])

        response = await client.post("/automation/rules", json=rule)

        assert response.status_code == 422

    async def test_missing_rule_is_404(self, client):
        response = await client.get("/automation/rules/99")

        assert response.status_code == 404
        assert "correlation_id" in response.json()

    async def test_update_toggle_delete(self, client):
        await client.post("/automation/rules", json=RULE)

        updated = await client.put("/automation/rules/1", json={"priority": 4})
        toggled = await client.patch("/automation/rules/1/active", json={"is_active": False})
        listed = await client.get("/automation/rules", params={"active_only": True})
        deleted = await client.delete("/automation/rules/1")

        assert updated.json()["priority"] == 4
        assert toggled.json()["is_active"] is False
        assert listed.json()["total"] == 0
        assert deleted.status_code == 204
        assert (await client.get("/automation/rules/1")).status_code == 404

    async def test_preview(self, client, gateway):
        await client.post("/automation/rules", json=RULE)

        response = await client.post("/automation/rules/preview", json={
            "trigger": "TICKET_CREATED",
            "ticket": {
                "ticketId": 5,
                "subject": "VPN down",
                "priority": "HIGH",
                "status": "NEW",
                "createdAt": "2024-01-15T10:00:00Z",
            },
        })

        assert response.status_code == 200
        assert [m["rule_id"] for m in response.json()["matched"]] == [1]
        assert gateway.mutations == []


class TestInternalRoutes:

    async def test_event_runs_automation(self, client, gateway):
        gateway.add(make_snapshot())
        await client.post("/automation/rules", json=RULE)

        response = await client.post("/internal/events", json={"trigger": "TICKET_CREATED", "ticketId": 1})

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "processed"
        assert body["matched_rule_ids"] == [1]
        assert gateway.tags[1] == ["network"]

    async def test_event_for_missing_ticket_is_still_200(self, client):
        response = await client.post("/internal/events", json={"trigger": "TICKET_UPDATED", "ticketId": 8})

        assert response.status_code == 200
        assert response.json()["status"] == "skipped"

    async def test_manual_sla_sweep(self, client, gateway, tracking_service):
        await tracking_service.on_ticket_created(gateway.add(make_snapshot(created_at=T0)))

        response = await client.post("/internal/jobs/sla-sweep")

        body = response.json()
        assert body["skipped"] is False
        # T0 is long past, both deadlines breach at once
        assert body["result"]["breaches"] == 2

    async def test_manual_hourly_check(self, client, gateway):
        gateway.add(make_snapshot())

        response = await client.post("/internal/jobs/hourly-check")

        assert response.json()["result"]["tickets"] == 1


class TestSLARoutes:

    async def test_policies_and_tracking(self, client, gateway, tracking_service):
        await tracking_service.on_ticket_created(gateway.add(make_snapshot()))

        policies = await client.get("/sla/policies", params={"priority": "HIGH"})
        tracking = await client.get("/sla/tracking")
        ticket = await client.get("/sla/tracking/1")

        assert policies.json()["total"] == 1
        assert tracking.json()["total"] == 1
        body = ticket.json()
        assert body["first_response"]["state"] == "BREACHED"
        assert body["tracking"]["policy_id"] == 1
        assert body["snapshot_available"] is True

    async def test_untracked_ticket_is_404(self, client):
        assert (await client.get("/sla/tracking/77")).status_code == 404

    async def test_stats(self, client):
        response = await client.get("/sla/stats")
        assert response.json()["total_tracked"] == 0

    async def test_settings(self, client):
        body = (await client.get("/sla/settings")).json()

        assert body["warning_percent"] == 70
        assert body["config_loaded"] is True


async def test_health_reports_degraded_without_database(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "abc"})

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["checks"]["sla_config"] == "loaded"
    assert response.headers["X-Correlation-ID"] == "abc"
