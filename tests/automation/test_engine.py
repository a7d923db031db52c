from helpdesk.automation.domain import Action

from tests.fakes import MISSING_USER_ID, T0, make_rule, make_snapshot


class TestActionExecutor:

    async def test_mutation_is_applied_and_audited(self, executor, gateway, audit_log):
        snapshot = gateway.add(make_snapshot())

        result = await executor.apply(Action("set_priority", {"priority": "URGENT"}), snapshot, rule_id=4)

        assert result.ok
        assert (result.old_value, result.new_value) == ("HIGH", "URGENT")
        assert gateway.tickets[1].priority == "URGENT"
        entry = audit_log.entries[-1]
        assert entry.action == "AUTOMATION_ACTION"
        assert entry.entity_id == 1
        assert entry.new_value["field"] == "priority"
        assert entry.new_value["rule_id"] == 4

    async def test_gateway_failure_becomes_failed_result(self, executor, gateway, audit_log):
        snapshot = gateway.add(make_snapshot())

        result = await executor.apply(Action("assign_user", {"userId": MISSING_USER_ID}), snapshot, rule_id=1)

        assert not result.ok
        assert "does not exist" in result.error
        assert audit_log.entries[-1].new_value["ok"] is False

    async def test_malformed_action_is_skipped(self, executor, gateway):
        snapshot = gateway.add(make_snapshot())

        result = await executor.apply(Action("set_priority", {"priority": "CRITICAL"}), snapshot, rule_id=1)

        assert result.skipped
        assert not result.ok
        assert gateway.mutations == []

    async def test_notification_to_requester(self, executor, gateway, notifications):
        snapshot = gateway.add(make_snapshot())

        result = await executor.apply(
            Action("send_notification", {"template": "ack", "recipient": "requester"}), snapshot, rule_id=2
        )

        assert result.ok
        request = notifications.requests[0]
        assert request.kind == "AUTOMATION"
        assert request.recipient == "alice@example.com"
        assert request.template == "ack"

    async def test_notification_to_missing_assignee_fails(self, executor, gateway, notifications):
        snapshot = gateway.add(make_snapshot(assigned_to_id=None))

        result = await executor.apply(
            Action("send_notification", {"template": "ack", "recipient": "assignee"}), snapshot, rule_id=2
        )

        assert not result.ok
        assert notifications.requests == []

    async def test_full_queue_reports_failure(self, executor, gateway, notifications):
        notifications.accept = False
        snapshot = gateway.add(make_snapshot(assigned_to_id=12))

        result = await executor.apply(
            Action("send_notification", {"template": "ack", "recipient": "assignee"}), snapshot, rule_id=2
        )

        assert not result.ok
        assert result.error == "notification dropped"


class TestRuleEngine:

    async def test_actions_run_in_rule_order(self, engine, gateway):
        snapshot = gateway.add(make_snapshot())
        rules = [
            make_rule(2, priority=1, actions=[Action("set_priority", {"priority": "LOW"})]),
            make_rule(1, priority=1, actions=[Action("set_priority", {"priority": "URGENT"})]),
        ]

        run = await engine.run("TICKET_CREATED", snapshot, rules, T0)

        assert run.matched_rule_ids == [1, 2]
        # last applied wins
        assert gateway.tickets[1].priority == "LOW"
        assert run.mutated

    async def test_failed_action_does_not_stop_the_rest(self, engine, gateway):
        snapshot = gateway.add(make_snapshot())
        rules = [make_rule(1, actions=[
            Action("assign_user", {"userId": MISSING_USER_ID}),
            Action("add_tag", {"tag": "vpn"}),
        ])]

        run = await engine.run("TICKET_CREATED", snapshot, rules, T0)

        assert [r.ok for r in run.results] == [False, True]
        assert len(run.failures) == 1
        assert gateway.tags[1] == ["vpn"]

    async def test_no_match_no_effects(self, engine, gateway, audit_log):
        snapshot = gateway.add(make_snapshot())
        rules = [make_rule(1, conditions=[("priority", "equals", "LOW")])]

        run = await engine.run("TICKET_CREATED", snapshot, rules, T0)

        assert run.matched == []
        assert not run.mutated
        assert gateway.mutations == []
        assert audit_log.entries == []

    async def test_notification_only_run_is_not_a_mutation(self, engine, gateway):
        snapshot = gateway.add(make_snapshot())
        rules = [make_rule(1, actions=[Action("send_notification", {"template": "t", "recipient": "requester"})])]

        run = await engine.run("TICKET_CREATED", snapshot, rules, T0)

        assert run.results[0].ok
        assert not run.mutated

    async def test_later_actions_see_earlier_mutations(self, engine, gateway, notifications):
        snapshot = gateway.add(make_snapshot(assigned_to_id=None))
        rules = [
            make_rule(1, priority=0, actions=[Action("assign_user", {"userId": 7})]),
            make_rule(2, priority=5, actions=[
                Action("send_notification", {"template": "assigned", "recipient": "assignee"}),
            ]),
        ]

        run = await engine.run("TICKET_CREATED", snapshot, rules, T0)

        assert all(r.ok for r in run.results)
        assert notifications.requests[0].recipient == "user:7"
