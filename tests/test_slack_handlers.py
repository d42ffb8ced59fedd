from contextlib import contextmanager
from unittest.mock import Mock

import pytest
from slack_sdk.errors import SlackApiError

from pto_service.models.leave_request import LeaveRequest, LeaveStatus
from pto_service.models.user import User
from pto_service.services.leave_lifecycle import LeaveLifecycleService
from pto_service.services.policy_store import SHORT_TERM
from pto_service.slack import handlers
from pto_service.slack.views import END_BLOCK_ID, GENERIC_FAILURE_TEXT, HELP_TEXT, TYPE_BLOCK_ID, UNKNOWN_TEXT


@pytest.fixture(autouse=True)
def slack_db(db_session, monkeypatch):
    @contextmanager
    def scope():
        yield db_session

    monkeypatch.setattr(handlers, "session_scope", scope)
    return db_session


@pytest.fixture
def client():
    client = Mock()
    client.conversations_open.return_value = {"channel": {"id": "D123"}}
    return client


def _command(user_id, text, user_name="someone"):
    return {"user_id": user_id, "user_name": user_name, "text": text, "trigger_id": "trigger-1"}


def _form_values(leave_type="Vacation", start="2025-03-10", end="2025-03-14", category=SHORT_TERM):
    return {
        "pto_type_block": {"pto_type": {"selected_option": {"value": f"{category}||{leave_type}"}}},
        "start_date_block": {"start_date": {"selected_date": start}},
        "end_date_block": {"end_date": {"selected_date": end}},
        "reason_block": {"reason": {"value": "Trip"}},
    }


def _submit_view(client, user, **form):
    ack = Mock()
    handlers.handle_request_submission(
        ack=ack,
        body={"user": {"id": user.slack_id, "name": user.name}},
        view={"state": {"values": _form_values(**form)}},
        client=client,
    )
    return ack


def _button_body(user, request_id, response_url="https://hooks.slack.test/1"):
    body = {"user": {"id": user.slack_id}, "actions": [{"value": str(request_id)}], "trigger_id": "trigger-2"}
    if response_url:
        body["response_url"] = response_url
    return body


def _dm_texts(client):
    return [call.kwargs["text"] for call in client.chat_postMessage.call_args_list]


# ----------------------------------------------------------------------
# /pto
# ----------------------------------------------------------------------
def test_help_command_provisions_new_user(slack_db, client):
    ack, respond = Mock(), Mock()
    handlers.handle_pto_command(ack=ack, command=_command("UFRESH", "", "fresh"), client=client, respond=respond)

    ack.assert_called_once_with()
    respond.assert_called_once_with(HELP_TEXT)
    assert slack_db.query(User).filter(User.slack_id == "UFRESH").one().name == "fresh"


def test_unknown_command(client, employee):
    respond = Mock()
    handlers.handle_pto_command(ack=Mock(), command=_command(employee.slack_id, "holiday"), client=client, respond=respond)
    respond.assert_called_once_with(UNKNOWN_TEXT)


def test_balance_command(client, employee):
    respond = Mock()
    handlers.handle_pto_command(ack=Mock(), command=_command(employee.slack_id, "balance"), client=client, respond=respond)

    text = respond.call_args.args[0]
    assert "• *Vacation*: 15/15 (used: 0)" in text
    assert "• *Jury Duty*: ∞ (used: 0)" in text
    assert "Study" not in text.replace("_Study: not enabled_", "")


def test_request_command_opens_modal_with_eligible_types(client, employee):
    handlers.handle_pto_command(ack=Mock(), command=_command(employee.slack_id, "request"), client=client, respond=Mock())

    view = client.views_open.call_args.kwargs["view"]
    assert client.views_open.call_args.kwargs["trigger_id"] == "trigger-1"
    options = [o["value"] for o in view["blocks"][0]["element"]["options"]]
    assert f"{SHORT_TERM}||Vacation" in options
    assert f"{SHORT_TERM}||Study" not in options


def test_command_failure_is_reported_generically(client, employee):
    client.views_open.side_effect = RuntimeError("boom")
    respond = Mock()
    handlers.handle_pto_command(ack=Mock(), command=_command(employee.slack_id, "request"), client=client, respond=respond)
    respond.assert_called_once_with(GENERIC_FAILURE_TEXT)


# ----------------------------------------------------------------------
# Request modal
# ----------------------------------------------------------------------
def test_submission_clears_modal_and_notifies(slack_db, client, employee, manager):
    ack = _submit_view(client, employee)

    ack.assert_called_once_with(response_action="clear")
    request = slack_db.query(LeaveRequest).one()
    assert request.status == LeaveStatus.PENDING.value
    assert request.approver_id == manager.id

    opened_for = [call.kwargs["users"] for call in client.conversations_open.call_args_list]
    assert opened_for[:2] == [manager.slack_id, employee.slack_id]
    approval = client.chat_postMessage.call_args_list[0].kwargs
    action_ids = [e["action_id"] for e in approval["blocks"][1]["elements"]]
    assert action_ids == ["pto_approve_btn", "pto_deny_btn"]
    assert client.views_publish.call_args.kwargs["user_id"] == employee.slack_id


def test_submission_balance_error(slack_db, client, employee, set_allowance):
    set_allowance("Vacation", 2)
    ack = _submit_view(client, employee)

    ack.assert_called_once_with(
        response_action="errors",
        errors={END_BLOCK_ID: "You have 2 days of Vacation left. You asked for 5."},
    )
    assert slack_db.query(LeaveRequest).count() == 0
    client.chat_postMessage.assert_not_called()


def test_submission_overlap_error(client, employee):
    _submit_view(client, employee)
    ack = _submit_view(client, employee, start="2025-03-12", end="2025-03-20")

    errors = ack.call_args.kwargs["errors"]
    assert "overlap" in errors[END_BLOCK_ID]


def test_submission_without_type(client, employee):
    ack = Mock()
    values = _form_values()
    values["pto_type_block"]["pto_type"]["selected_option"] = None
    handlers.handle_request_submission(
        ack=ack, body={"user": {"id": employee.slack_id}}, view={"state": {"values": values}}, client=client
    )
    assert TYPE_BLOCK_ID in ack.call_args.kwargs["errors"]


def test_submission_survives_dm_failures(slack_db, client, employee):
    client.chat_postMessage.side_effect = SlackApiError("failed", {"error": "channel_not_found"})
    ack = _submit_view(client, employee)

    ack.assert_called_once_with(response_action="clear")
    assert slack_db.query(LeaveRequest).count() == 1


# ----------------------------------------------------------------------
# Buttons
# ----------------------------------------------------------------------
@pytest.fixture
def pending(slack_db, employee):
    return LeaveLifecycleService(slack_db).submit(
        employee, SHORT_TERM, "Vacation", "2025-03-10", "2025-03-14"
    ).value.request


def test_approve_button(slack_db, client, pending, manager, employee):
    respond = Mock()
    handlers.handle_approve(ack=Mock(), body=_button_body(manager, pending.id), client=client, respond=respond)

    slack_db.refresh(pending)
    assert pending.status == LeaveStatus.APPROVED.value
    assert respond.call_args.kwargs["replace_original"] is True
    assert "approved" in respond.call_args.kwargs["text"]
    assert any("was approved" in text for text in _dm_texts(client))
    published = {call.kwargs["user_id"] for call in client.views_publish.call_args_list}
    assert published == {manager.slack_id, employee.slack_id}


def test_deny_button_by_stranger(slack_db, client, pending, make_user):
    stranger = make_user("USTRANGER")
    respond = Mock()
    handlers.handle_deny(ack=Mock(), body=_button_body(stranger, pending.id), client=client, respond=respond)

    slack_db.refresh(pending)
    assert pending.status == LeaveStatus.PENDING.value
    assert respond.call_args.kwargs["text"].startswith("⚠️ Not authorized")
    assert respond.call_args.kwargs["replace_original"] is False


def test_decision_from_review_modal_updates_it(slack_db, client, pending, admin_user):
    body = _button_body(admin_user, pending.id, response_url=None)
    body["view"] = {"id": "V1", "type": "modal"}
    handlers.handle_deny(ack=Mock(), body=body, client=client, respond=Mock())

    slack_db.refresh(pending)
    assert pending.status == LeaveStatus.DENIED.value
    assert client.views_update.call_args.kwargs["view_id"] == "V1"


def test_cancel_button(slack_db, client, pending, employee, manager):
    handlers.handle_cancel(ack=Mock(), body=_button_body(employee, pending.id, response_url=None), client=client)

    slack_db.refresh(pending)
    assert pending.status == LeaveStatus.CANCELLED.value
    texts = _dm_texts(client)
    assert any("was cancelled" in text for text in texts)
    assert any("cancelled their" in text for text in texts)


def test_cancel_button_for_someone_else(slack_db, client, pending, manager):
    handlers.handle_cancel(ack=Mock(), body=_button_body(manager, pending.id, response_url=None), client=client)

    slack_db.refresh(pending)
    assert pending.status == LeaveStatus.PENDING.value
    assert _dm_texts(client) == ["⚠️ You can only cancel your own requests"]


# ----------------------------------------------------------------------
# App Home
# ----------------------------------------------------------------------
def _home_action_ids(client):
    view = client.views_publish.call_args.kwargs["view"]
    ids = []
    for block in view["blocks"]:
        ids.extend(e.get("action_id") for e in block.get("elements", []))
        if "accessory" in block:
            ids.append(block["accessory"].get("action_id"))
    return ids


def test_home_for_employee(client, pending, employee):
    handlers.handle_home_opened(event={"tab": "home", "user": employee.slack_id}, client=client)

    ids = _home_action_ids(client)
    assert "home_create_ooo" in ids
    assert "pto_cancel_btn" in ids
    assert "admin_manage_users" not in ids


def test_home_for_admin_lists_pending_and_tools(client, pending, admin_user):
    handlers.handle_home_opened(event={"tab": "home", "user": admin_user.slack_id}, client=client)

    ids = _home_action_ids(client)
    assert "home_review_request" in ids
    assert {"admin_manage_users", "admin_download_reports"} <= set(ids)


def test_home_ignores_messages_tab(client, employee):
    handlers.handle_home_opened(event={"tab": "messages", "user": employee.slack_id}, client=client)
    client.views_publish.assert_not_called()


def test_review_opens_modal_for_approver(client, pending, manager):
    handlers.handle_home_review(ack=Mock(), body=_button_body(manager, pending.id, response_url=None), client=client)
    view = client.views_open.call_args.kwargs["view"]
    assert view["title"]["text"] == "Review PTO"


def test_review_refused_for_stranger(client, pending, make_user):
    stranger = make_user("USTRANGER")
    handlers.handle_home_review(ack=Mock(), body=_button_body(stranger, pending.id, response_url=None), client=client)
    client.views_open.assert_not_called()


# ----------------------------------------------------------------------
# Admin tools
# ----------------------------------------------------------------------
def test_admin_report_upload(client, pending, admin_user, employee):
    handlers.handle_admin_reports(ack=Mock(), body=_button_body(admin_user, 0, response_url=None), client=client)

    upload = client.files_upload_v2.call_args.kwargs
    assert upload["channel"] == "D123"
    lines = upload["content"].strip().splitlines()
    assert lines[0].startswith("id,user,category,type")
    assert employee.slack_id in lines[1]


def test_admin_tools_refused_for_non_admin(client, employee):
    handlers.handle_admin_users(ack=Mock(), body=_button_body(employee, 0, response_url=None), client=client)
    client.views_open.assert_not_called()
    assert _dm_texts(client) == ["⚠️ Not authorized (admin only)"]


def test_admin_users_modal(client, employee, admin_user):
    handlers.handle_admin_users(ack=Mock(), body=_button_body(admin_user, 0, response_url=None), client=client)
    view = client.views_open.call_args.kwargs["view"]
    assert employee.slack_id in view["blocks"][0]["text"]["text"]
