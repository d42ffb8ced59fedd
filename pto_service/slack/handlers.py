"""
Slack listeners for the PTO tool.

Every listener acknowledges first, opens its own database session, resolves
(or auto-provisions) the acting user and then calls into the lifecycle
service. Policy failures come back as `Result`s and are rendered as modal
errors or DMs; anything unexpected is logged and answered with a generic
failure message.
"""
import csv
import io
import logging
from typing import Callable, Dict, Iterable, List, Optional

from slack_bolt import App
from slack_sdk.errors import SlackApiError
from sqlalchemy.orm import Session

from pto_service.core.config import settings
from pto_service.database import session_scope
from pto_service.models.leave_request import LeaveRequest, LeaveStatus
from pto_service.models.user import User
from pto_service.services.eligibility import is_eligible
from pto_service.services.leave_lifecycle import Decision, LeaveLifecycleService, Submission
from pto_service.services.user_store import UserStore
from pto_service.slack.commands import PtoCommand, parse_command
from pto_service.slack.views import (
    ADMIN_REPORTS_ACTION_ID,
    ADMIN_USERS_ACTION_ID,
    APPROVE_ACTION_ID,
    CANCEL_ACTION_ID,
    DENY_ACTION_ID,
    END_BLOCK_ID,
    GENERIC_FAILURE_TEXT,
    HELP_TEXT,
    HOME_CREATE_ACTION_ID,
    HOME_REVIEW_ACTION_ID,
    REQUEST_MODAL_CALLBACK_ID,
    TYPE_BLOCK_ID,
    UNKNOWN_TEXT,
    balance_text,
    build_approval_message,
    build_home_view,
    build_request_modal,
    build_review_modal,
    build_users_modal,
    parse_request_form,
    submission_errors,
)

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "id", "user", "category", "type", "start_date", "end_date", "days_count",
    "status", "reason", "approver", "decided_by", "decided_at", "created_at",
]

DECISION_VERB = {
    Decision.APPROVE: ("✅", "approved"),
    Decision.DENY: ("❌", "denied"),
}


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------
def _actor(db: Session, slack_user: Dict) -> User:
    return UserStore(db).get_or_provision(
        slack_user["id"],
        slack_user.get("real_name") or slack_user.get("name") or slack_user.get("username"),
    )


def _span(request: LeaveRequest) -> str:
    return f"{request.start_date.isoformat()} → {request.end_date.isoformat()}"


def send_dm(client, slack_id: str, text: str, blocks: Optional[List[Dict]] = None) -> Optional[str]:
    """DM a user. Returns the DM channel id, or None when Slack refused."""
    try:
        channel = client.conversations_open(users=slack_id)["channel"]["id"]
        client.chat_postMessage(channel=channel, text=text, blocks=blocks)
        return channel
    except SlackApiError as e:
        logger.warning(f"Could not DM {slack_id}: {e.response.get('error')}")
        return None


def publish_home(client, db: Session, user: User) -> None:
    lifecycle = LeaveLifecycleService(db)
    pending = lifecycle.pending_approvals(user)
    view = build_home_view(
        user,
        lifecycle.balance_summary(user),
        lifecycle.recent_requests(user, settings.home_recent_limit),
        pending,
        lifecycle.users.get_many(r.user_id for r in pending),
        settings.home_recent_limit,
    )
    try:
        client.views_publish(user_id=user.slack_id, view=view)
    except SlackApiError as e:
        logger.warning(f"Could not publish App Home for {user.slack_id}: {e.response.get('error')}")


def _action_request_id(body: Dict) -> int:
    return int(body["actions"][0]["value"])


def _request_modal(user: User, lifecycle: LeaveLifecycleService) -> Dict:
    return build_request_modal(p for p in lifecycle.list_policies() if is_eligible(user, p))


def build_report_csv(requests: Iterable[LeaveRequest], users: Dict[int, User]) -> str:
    def slack_id(user_id):
        user = users.get(user_id)
        return user.slack_id if user else ""

    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow(REPORT_COLUMNS)
    for r in requests:
        writer.writerow([
            r.id, slack_id(r.user_id), r.category, r.type,
            r.start_date.isoformat(), r.end_date.isoformat(), r.days_count,
            r.status, r.reason or "", slack_id(r.approver_id), slack_id(r.decided_by),
            r.decided_at.isoformat() if r.decided_at else "",
            r.created_at.isoformat() if r.created_at else "",
        ])
    return out.getvalue()


# ----------------------------------------------------------------------
# /pto
# ----------------------------------------------------------------------
def _command_help(db, user, command, client, respond):
    respond(HELP_TEXT)


def _command_balance(db, user, command, client, respond):
    respond(balance_text(user, LeaveLifecycleService(db).balance_summary(user)))


def _command_request(db, user, command, client, respond):
    client.views_open(trigger_id=command["trigger_id"], view=_request_modal(user, LeaveLifecycleService(db)))


def _command_unknown(db, user, command, client, respond):
    respond(UNKNOWN_TEXT)


COMMAND_HANDLERS: Dict[PtoCommand, Callable] = {
    PtoCommand.HELP: _command_help,
    PtoCommand.BALANCE: _command_balance,
    PtoCommand.REQUEST: _command_request,
    PtoCommand.UNKNOWN: _command_unknown,
}


def handle_pto_command(ack, command, client, respond):
    ack()
    try:
        with session_scope() as db:
            user = UserStore(db).get_or_provision(command["user_id"], command.get("user_name"))
            handler = COMMAND_HANDLERS[parse_command(command.get("text"))]
            handler(db, user, command, client, respond)
    except Exception:
        logger.exception("/pto command failed")
        respond(GENERIC_FAILURE_TEXT)


# ----------------------------------------------------------------------
# Request modal
# ----------------------------------------------------------------------
def _announce_submission(client, db: Session, requester: User, submission: Submission) -> None:
    request = submission.request
    approver = UserStore(db).get_by_id(request.approver_id) if request.approver_id else None

    if approver:
        message = build_approval_message(request, requester)
        send_dm(client, approver.slack_id, message["text"], message["blocks"])
        pending_with = approver.mention
    else:
        logger.warning(f"PTO request {request.id} has no approver; an admin must decide it")
        pending_with = "an admin (no manager assigned)"

    send_dm(
        client,
        requester.slack_id,
        f"📨 Your *{request.type}* request ({_span(request)}, {submission.computed_days} business days) "
        f"is pending with {pending_with}.",
    )
    publish_home(client, db, requester)


def handle_request_submission(ack, body, view, client):
    acked = False
    try:
        try:
            form = parse_request_form(view["state"]["values"])
        except ValueError as e:
            acked = True
            ack(response_action="errors", errors={TYPE_BLOCK_ID: str(e)})
            return

        with session_scope() as db:
            user = _actor(db, body["user"])
            result = LeaveLifecycleService(db).submit(
                user, form.category, form.type, form.start_date, form.end_date, form.reason
            )
            if not result.ok:
                acked = True
                ack(response_action="errors", errors=submission_errors(result.error, form.type))
                return

            acked = True
            ack(response_action="clear")
            _announce_submission(client, db, user, result.value)
    except Exception:
        logger.exception("PTO request submission failed")
        if not acked:
            ack(response_action="errors", errors={END_BLOCK_ID: GENERIC_FAILURE_TEXT})


# ----------------------------------------------------------------------
# Approve / deny
# ----------------------------------------------------------------------
def _reply(body: Dict, client, respond, text: str) -> None:
    """Answer in the originating message when there is one, otherwise by DM."""
    if body.get("response_url"):
        respond(text=text, replace_original=False)
    else:
        send_dm(client, body["user"]["id"], text)


def _decide(ack, body, client, respond, decision: Decision) -> None:
    ack()
    try:
        with session_scope() as db:
            decider = _actor(db, body["user"])
            lifecycle = LeaveLifecycleService(db)
            result = lifecycle.decide(_action_request_id(body), decider, decision)
            if not result.ok:
                _reply(body, client, respond, f"⚠️ {result.error.message}")
                return

            request = result.value
            requester = lifecycle.users.get_by_id(request.user_id)
            emoji, verb = DECISION_VERB[decision]
            who = requester.mention if requester else "the requester"
            summary = f"{emoji} {decider.mention} {verb} {who}'s *{request.type}* ({_span(request)})."

            if body.get("response_url"):
                respond(text=summary, replace_original=True)
            if body.get("view", {}).get("type") == "modal":
                client.views_update(view_id=body["view"]["id"], view=build_review_modal(request, requester))

            if requester:
                send_dm(
                    client,
                    requester.slack_id,
                    f"{emoji} Your *{request.type}* request ({_span(request)}) was {verb} by {decider.mention}.",
                )
                publish_home(client, db, requester)
            publish_home(client, db, decider)
    except Exception:
        logger.exception(f"PTO {decision.value} failed")
        _reply(body, client, respond, GENERIC_FAILURE_TEXT)


def handle_approve(ack, body, client, respond):
    _decide(ack, body, client, respond, Decision.APPROVE)


def handle_deny(ack, body, client, respond):
    _decide(ack, body, client, respond, Decision.DENY)


# ----------------------------------------------------------------------
# Cancel
# ----------------------------------------------------------------------
def handle_cancel(ack, body, client):
    ack()
    try:
        with session_scope() as db:
            user = _actor(db, body["user"])
            lifecycle = LeaveLifecycleService(db)
            result = lifecycle.cancel(_action_request_id(body), user)
            if not result.ok:
                send_dm(client, user.slack_id, f"⚠️ {result.error.message}")
                return

            request = result.value
            send_dm(client, user.slack_id, f"🟡 Your *{request.type}* request ({_span(request)}) was cancelled.")
            approver = lifecycle.users.get_by_id(request.approver_id) if request.approver_id else None
            if approver and approver.id != user.id:
                send_dm(
                    client,
                    approver.slack_id,
                    f"🟡 {user.mention} cancelled their *{request.type}* request ({_span(request)}).",
                )
                publish_home(client, db, approver)
            publish_home(client, db, user)
    except Exception:
        logger.exception("PTO cancel failed")
        send_dm(client, body["user"]["id"], GENERIC_FAILURE_TEXT)


# ----------------------------------------------------------------------
# App Home
# ----------------------------------------------------------------------
def handle_home_opened(event, client):
    if event.get("tab") != "home":
        return
    try:
        with session_scope() as db:
            user = UserStore(db).get_or_provision(event["user"])
            publish_home(client, db, user)
    except Exception:
        logger.exception("App Home refresh failed")


def handle_home_create(ack, body, client):
    ack()
    try:
        with session_scope() as db:
            user = _actor(db, body["user"])
            client.views_open(trigger_id=body["trigger_id"], view=_request_modal(user, LeaveLifecycleService(db)))
    except Exception:
        logger.exception("Opening the PTO request modal failed")
        send_dm(client, body["user"]["id"], GENERIC_FAILURE_TEXT)


def handle_home_review(ack, body, client):
    ack()
    try:
        with session_scope() as db:
            user = _actor(db, body["user"])
            lifecycle = LeaveLifecycleService(db)
            request = lifecycle.get_request(_action_request_id(body))
            if not request:
                send_dm(client, user.slack_id, "⚠️ Request not found")
                return
            if not user.is_admin and request.approver_id != user.id:
                send_dm(client, user.slack_id, "⚠️ Not authorized to review this request")
                return
            requester = lifecycle.users.get_by_id(request.user_id)
            client.views_open(trigger_id=body["trigger_id"], view=build_review_modal(request, requester))
    except Exception:
        logger.exception("Opening the review modal failed")
        send_dm(client, body["user"]["id"], GENERIC_FAILURE_TEXT)


# ----------------------------------------------------------------------
# Admin tools
# ----------------------------------------------------------------------
def handle_admin_users(ack, body, client):
    ack()
    try:
        with session_scope() as db:
            user = _actor(db, body["user"])
            if not user.is_admin:
                send_dm(client, user.slack_id, "⚠️ Not authorized (admin only)")
                return
            client.views_open(trigger_id=body["trigger_id"], view=build_users_modal(UserStore(db).list_all()))
    except Exception:
        logger.exception("Opening the users modal failed")
        send_dm(client, body["user"]["id"], GENERIC_FAILURE_TEXT)


def handle_admin_reports(ack, body, client):
    ack()
    try:
        with session_scope() as db:
            user = _actor(db, body["user"])
            lifecycle = LeaveLifecycleService(db)
            result = lifecycle.report(user)
            if not result.ok:
                send_dm(client, user.slack_id, f"⚠️ {result.error.message}")
                return

            requests = result.value
            people = lifecycle.users.get_many(
                [r.user_id for r in requests]
                + [r.approver_id for r in requests]
                + [r.decided_by for r in requests]
            )
            channel = client.conversations_open(users=user.slack_id)["channel"]["id"]
            client.files_upload_v2(
                channel=channel,
                content=build_report_csv(requests, people),
                filename="pto_report.csv",
                title="PTO report",
                initial_comment=f"📊 PTO report: {len(requests)} request(s), "
                                f"{sum(1 for r in requests if r.status == LeaveStatus.PENDING.value)} pending.",
            )
    except Exception:
        logger.exception("PTO report export failed")
        send_dm(client, body["user"]["id"], GENERIC_FAILURE_TEXT)


def register_handlers(app: App) -> App:
    app.command(settings.slack.command)(handle_pto_command)
    app.view(REQUEST_MODAL_CALLBACK_ID)(handle_request_submission)
    app.action(APPROVE_ACTION_ID)(handle_approve)
    app.action(DENY_ACTION_ID)(handle_deny)
    app.action(CANCEL_ACTION_ID)(handle_cancel)
    app.action(HOME_CREATE_ACTION_ID)(handle_home_create)
    app.action(HOME_REVIEW_ACTION_ID)(handle_home_review)
    app.action(ADMIN_USERS_ACTION_ID)(handle_admin_users)
    app.action(ADMIN_REPORTS_ACTION_ID)(handle_admin_reports)
    app.event("app_home_opened")(handle_home_opened)
    return app
