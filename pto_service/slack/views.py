"""
Block Kit payloads for the PTO tool: the request modal, approval messages,
the review modal, the App Home tab and the admin user list.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from pto_service.core.results import ErrorKind, LeaveError
from pto_service.models.leave_policy import LeaveTypePolicy
from pto_service.models.leave_request import ACTIVE_STATUSES, LeaveRequest, LeaveStatus
from pto_service.models.user import User
from pto_service.services.balance import BalanceLine

REQUEST_MODAL_CALLBACK_ID = "pto_request_submit"
TYPE_BLOCK_ID = "pto_type_block"
TYPE_ACTION_ID = "pto_type"
START_BLOCK_ID = "start_date_block"
START_ACTION_ID = "start_date"
END_BLOCK_ID = "end_date_block"
END_ACTION_ID = "end_date"
REASON_BLOCK_ID = "reason_block"
REASON_ACTION_ID = "reason"

APPROVE_ACTION_ID = "pto_approve_btn"
DENY_ACTION_ID = "pto_deny_btn"
CANCEL_ACTION_ID = "pto_cancel_btn"
HOME_CREATE_ACTION_ID = "home_create_ooo"
HOME_REVIEW_ACTION_ID = "home_review_request"
ADMIN_USERS_ACTION_ID = "admin_manage_users"
ADMIN_REPORTS_ACTION_ID = "admin_download_reports"

TYPE_VALUE_SEPARATOR = "||"
USERS_SECTION_CHARS = 2900
USERS_MAX_SECTIONS = 50

HELP_TEXT = (
    "Commands:\n"
    "• `/pto balance` → see your balance\n"
    "• `/pto request` → request time off\n"
)
UNKNOWN_TEXT = "Sorry, I didn't get that. Try `/pto help`."
GENERIC_FAILURE_TEXT = "Something went wrong. Please try again."

STATUS_EMOJI = {
    LeaveStatus.APPROVED.value: "✅",
    LeaveStatus.DENIED.value: "❌",
    LeaveStatus.CANCELLED.value: "🟡",
}


def status_emoji(status: str) -> str:
    return STATUS_EMOJI.get(status, "⏳")


def _text(text: str) -> Dict:
    return {"type": "plain_text", "text": text}


def _section(markdown: str, accessory: Optional[Dict] = None) -> Dict:
    block = {"type": "section", "text": {"type": "mrkdwn", "text": markdown}}
    if accessory:
        block["accessory"] = accessory
    return block


def _span(request: LeaveRequest) -> str:
    return f"{request.start_date.isoformat()} → {request.end_date.isoformat()}"


def _who(user: Optional[User]) -> str:
    return user.mention if user else "Unknown"


# ----------------------------------------------------------------------
# Balance
# ----------------------------------------------------------------------
def format_balance_line(line: BalanceLine, show_used: bool = True) -> str:
    if line.unlimited:
        return f"• *{line.type}*: ∞ (used: {line.used_days})"
    text = f"• *{line.type}*: {line.remaining_days}/{line.allowance_days}"
    return f"{text} (used: {line.used_days})" if show_used else text


def balance_text(user: User, lines: Iterable[BalanceLine]) -> str:
    out = [f"*PTO balance: {user.name}*"]
    out.append("_Study: enabled_" if user.is_student else "_Study: not enabled_")
    out.append("")
    out.extend(format_balance_line(line) for line in lines)
    return "\n".join(out)


# ----------------------------------------------------------------------
# Request modal
# ----------------------------------------------------------------------
def type_option_value(policy: LeaveTypePolicy) -> str:
    return f"{policy.category}{TYPE_VALUE_SEPARATOR}{policy.name}"


def build_request_modal(policies: Iterable[LeaveTypePolicy]) -> Dict:
    options = [
        {"text": _text(f"{p.name} ({p.category})"), "value": type_option_value(p)}
        for p in policies
    ]
    return {
        "type": "modal",
        "callback_id": REQUEST_MODAL_CALLBACK_ID,
        "title": _text("Request PTO"),
        "submit": _text("Send"),
        "close": _text("Cancel"),
        "blocks": [
            {
                "type": "input",
                "block_id": TYPE_BLOCK_ID,
                "label": _text("OOO Type"),
                "element": {
                    "type": "static_select",
                    "action_id": TYPE_ACTION_ID,
                    "placeholder": _text("Select type"),
                    "options": options,
                },
            },
            {
                "type": "input",
                "block_id": START_BLOCK_ID,
                "label": _text("Start date"),
                "element": {"type": "datepicker", "action_id": START_ACTION_ID},
            },
            {
                "type": "input",
                "block_id": END_BLOCK_ID,
                "label": _text("End date"),
                "element": {"type": "datepicker", "action_id": END_ACTION_ID},
            },
            {
                "type": "input",
                "block_id": REASON_BLOCK_ID,
                "optional": True,
                "label": _text("Reason (optional)"),
                "element": {"type": "plain_text_input", "action_id": REASON_ACTION_ID, "multiline": True},
            },
        ],
    }


@dataclass
class RequestForm:
    category: str
    type: str
    start_date: Optional[str]
    end_date: Optional[str]
    reason: Optional[str]


def parse_request_form(values: Dict) -> RequestForm:
    """Read the submitted modal state. Raises ValueError when no type was picked."""
    selected = (values.get(TYPE_BLOCK_ID, {}).get(TYPE_ACTION_ID, {}) or {}).get("selected_option") or {}
    raw = selected.get("value") or ""
    if TYPE_VALUE_SEPARATOR not in raw:
        raise ValueError("Please select a leave type")
    category, leave_type = raw.split(TYPE_VALUE_SEPARATOR, 1)
    return RequestForm(
        category=category,
        type=leave_type,
        start_date=values.get(START_BLOCK_ID, {}).get(START_ACTION_ID, {}).get("selected_date"),
        end_date=values.get(END_BLOCK_ID, {}).get(END_ACTION_ID, {}).get("selected_date"),
        reason=(values.get(REASON_BLOCK_ID, {}).get(REASON_ACTION_ID, {}) or {}).get("value"),
    )


def submission_errors(error: LeaveError, leave_type: str) -> Dict[str, str]:
    """Modal field errors for a rejected submission."""
    if error.kind == ErrorKind.BALANCE_EXCEEDED:
        d = error.details
        message = f"You have {d.get('remaining_days')} days of {leave_type} left. You asked for {d.get('requested_days')}."
    elif error.kind == ErrorKind.OVERLAP_CONFLICT:
        message = "These dates overlap with another request (pending/approved)."
    elif error.kind == ErrorKind.INVALID_TYPE:
        return {TYPE_BLOCK_ID: error.message}
    else:
        message = error.message or "The request could not be registered."
    return {END_BLOCK_ID: message}


# ----------------------------------------------------------------------
# Approvals
# ----------------------------------------------------------------------
def decision_buttons(request_id: int) -> Dict:
    return {
        "type": "actions",
        "elements": [
            {
                "type": "button",
                "text": _text("Approve ✅"),
                "style": "primary",
                "action_id": APPROVE_ACTION_ID,
                "value": str(request_id),
            },
            {
                "type": "button",
                "text": _text("Deny ❌"),
                "style": "danger",
                "action_id": DENY_ACTION_ID,
                "value": str(request_id),
            },
        ],
    }


def request_details(request: LeaveRequest, requester: Optional[User], include_status: bool = False) -> str:
    text = (
        f"• Requester: {_who(requester)}\n"
        f"• Type: *{request.type}*\n"
        f"• Dates: *{_span(request)}*\n"
        f"• Business days: *{request.days_count}*\n"
    )
    if include_status:
        text += f"• Status: `{request.status}`\n"
    if request.reason:
        text += f"• Reason: {request.reason}\n"
    return text


def build_approval_message(request: LeaveRequest, requester: User) -> Dict:
    return {
        "text": "PTO approval request",
        "blocks": [
            _section("*PTO approval*\n" + request_details(request, requester)),
            decision_buttons(request.id),
        ],
    }


def build_review_modal(request: LeaveRequest, requester: Optional[User]) -> Dict:
    blocks = [_section(request_details(request, requester, include_status=True))]
    if request.status == LeaveStatus.PENDING.value:
        blocks.append(decision_buttons(request.id))
    return {
        "type": "modal",
        "title": _text("Review PTO"),
        "close": _text("Close"),
        "blocks": blocks,
    }


# ----------------------------------------------------------------------
# App Home
# ----------------------------------------------------------------------
def cancel_button(request: LeaveRequest) -> Dict:
    return {
        "type": "button",
        "text": _text("Cancel 🟡"),
        "style": "danger",
        "action_id": CANCEL_ACTION_ID,
        "value": str(request.id),
        "confirm": {
            "title": _text("Cancel PTO request"),
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"Are you sure you want to cancel this *{request.type}* request?\n"
                    f"*Dates:* {_span(request)}\n*Days:* {request.days_count}"
                ),
            },
            "confirm": _text("Yes, cancel"),
            "deny": _text("No, keep it"),
        },
    }


def build_home_view(
    user: User,
    balance_lines: List[BalanceLine],
    recent: List[LeaveRequest],
    pending: List[LeaveRequest],
    requesters: Dict[int, User],
    recent_limit: int = 5
) -> Dict:
    blocks: List[Dict] = [
        {"type": "header", "text": _text("🏖️ PTO Tool")},
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": _text("➕ Create OOO"),
                    "style": "primary",
                    "action_id": HOME_CREATE_ACTION_ID,
                }
            ],
        },
        {"type": "divider"},
    ]

    balance = "\n".join(format_balance_line(line, show_used=False) for line in balance_lines)
    blocks.append(_section(f"*👤 {user.name}*\n\n*Balance*\n{balance}"))
    blocks.append({"type": "divider"})

    blocks.append({"type": "header", "text": _text(f"📅 Your requests (last {recent_limit})")})
    if not recent:
        blocks.append(_section("_You have no requests yet._"))
    for request in recent:
        accessory = cancel_button(request) if request.status in ACTIVE_STATUSES else None
        blocks.append(_section(
            f"{status_emoji(request.status)} *{request.type}* ({_span(request)}) · *{request.days_count}* days\n"
            f"Status: `{request.status}`",
            accessory,
        ))
    blocks.append({"type": "divider"})

    if pending or user.is_admin:
        blocks.append({"type": "header", "text": _text("✅ Pending approvals")})
        if not pending:
            blocks.append(_section("_No pending approvals._"))
        for request in pending:
            blocks.append(_section(
                f"⏳ *{request.type}* ({_span(request)}) · *{request.days_count}* days\n"
                f"Requester: {_who(requesters.get(request.user_id))}",
                {
                    "type": "button",
                    "text": _text("Review"),
                    "action_id": HOME_REVIEW_ACTION_ID,
                    "value": str(request.id),
                },
            ))
        blocks.append({"type": "divider"})

    if user.is_admin:
        blocks.append({"type": "header", "text": _text("🛠️ Admin tools")})
        blocks.append({
            "type": "actions",
            "elements": [
                {"type": "button", "text": _text("👥 Manage users"), "action_id": ADMIN_USERS_ACTION_ID},
                {"type": "button", "text": _text("📊 Download reports"), "action_id": ADMIN_REPORTS_ACTION_ID},
            ],
        })

    return {"type": "home", "blocks": blocks}


def build_users_modal(users: List[User]) -> Dict:
    by_id = {u.id: u for u in users}
    lines = []
    for u in users:
        manager = by_id.get(u.manager_id)
        flags = [flag for flag, on in (("admin", u.is_admin), ("student", u.is_student)) if on]
        line = f"• {u.mention} ({u.name}), manager: {manager.name if manager else '_none_'}"
        if flags:
            line += f" [{', '.join(flags)}]"
        lines.append(line)
    # Section text is capped by Slack at 3000 chars
    chunks, current = [], ""
    for line in lines or ["_No users yet._"]:
        line = line[:USERS_SECTION_CHARS - 1]
        if current and len(current) + len(line) + 1 > USERS_SECTION_CHARS:
            chunks.append(current)
            current = ""
        current += line + "\n"
    chunks.append(current)

    # A modal holds at most 100 blocks
    if len(chunks) > USERS_MAX_SECTIONS:
        shown = sum(chunk.count("\n") for chunk in chunks[:USERS_MAX_SECTIONS - 1])
        chunks = chunks[:USERS_MAX_SECTIONS - 1]
        chunks.append(f"_List truncated: showing {shown} of {len(lines)} users._")
    return {
        "type": "modal",
        "title": _text("Users"),
        "close": _text("Close"),
        "blocks": [_section(chunk) for chunk in chunks],
    }
