import pytest

from helpdesk.automation.application import ActionExecutor, RuleEngine
from helpdesk.shared.concurrency import TicketSerializer
from helpdesk.sla.application import SLAMonitor, SLATrackingService

from tests.fakes import (
    FakeNotificationQueue, FakeTicketGateway, InMemoryAuditLog,
    InMemoryPolicyRepository, InMemoryRuleRepository, InMemoryTrackingRepository,
    StaticSettingsProvider, make_policy,
)


@pytest.fixture
def gateway():
    return FakeTicketGateway()


@pytest.fixture
def notifications():
    return FakeNotificationQueue()


@pytest.fixture
def audit_log():
    return InMemoryAuditLog()


@pytest.fixture
def rule_repo():
    return InMemoryRuleRepository()


@pytest.fixture
def policy_repo():
    return InMemoryPolicyRepository([
        make_policy(1, department_id=3, priority="HIGH", first_response=60, resolution=100),
        make_policy(2, department_id=3, priority="URGENT", first_response=30, resolution=50),
        make_policy(3, department_id=3, priority="LOW", first_response=600, resolution=1000),
    ])


@pytest.fixture
def tracking_repo():
    return InMemoryTrackingRepository()


@pytest.fixture
def settings_provider():
    return StaticSettingsProvider(80)


@pytest.fixture
def serializer():
    return TicketSerializer(max_concurrency=4)


@pytest.fixture
def executor(gateway, notifications, audit_log):
    return ActionExecutor(gateway, notifications, audit_log)


@pytest.fixture
def engine(executor):
    return RuleEngine(executor)


@pytest.fixture
def tracking_service(policy_repo, tracking_repo, audit_log):
    return SLATrackingService(policy_repo, tracking_repo, audit_log)


@pytest.fixture
def monitor(tracking_repo, gateway, notifications, settings_provider, audit_log, serializer):
    return SLAMonitor(tracking_repo, gateway, notifications, settings_provider, audit_log, serializer)
