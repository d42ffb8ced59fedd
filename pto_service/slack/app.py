"""
Slack wiring: the Bolt app, the events endpoint mounted into FastAPI, and a
Notifier that delivers notifications as DMs.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Request
from slack_bolt import App
from slack_bolt.adapter.fastapi import SlackRequestHandler
from slack_sdk import WebClient

from pto_service.core.config import SlackSettings, settings
from pto_service.models.user import User
from pto_service.services.notification_service import Notifier
from pto_service.slack.handlers import register_handlers, send_dm

logger = logging.getLogger(__name__)


def create_bolt_app(slack: Optional[SlackSettings] = None) -> App:
    slack = slack or settings.slack
    app = App(
        token=slack.bot_token,
        signing_secret=slack.signing_secret,
        # No auth.test call at construction
        token_verification_enabled=False,
    )
    return register_handlers(app)


def create_slack_router(bolt_app: App) -> APIRouter:
    router = APIRouter(prefix="/slack", tags=["slack"])
    handler = SlackRequestHandler(bolt_app)

    @router.post("/events")
    async def slack_events(req: Request):
        return await handler.handle(req)

    return router


class SlackNotifier(Notifier):
    """Delivers notifications as a DM from the bot."""

    def __init__(self, client: WebClient):
        self.client = client

    def deliver(self, user: User, title: str, message: str) -> None:
        send_dm(self.client, user.slack_id, f"*{title}*\n{message}")
