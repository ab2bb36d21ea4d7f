"""Template repository and rendering."""

import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import select

from infrastructure.logging import get_module_logger
from infrastructure.notifications import RenderedMessage
from infrastructure.persistence import Database
from infrastructure.queue import as_utc, utcnow
from modules.notifications.db import store_session
from modules.notifications.domain.errors import NotFoundError
from modules.notifications.domain.models import Template
from modules.notifications.tables import TemplateRecord

logger = get_module_logger()

COMPONENT = "template_repository"

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

DEFAULT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "id": "welcome_email",
        "name": "Welcome Email",
        "channel": "email",
        "subject": "Welcome to {{app_name}}!",
        "body": (
            "Hello {{name}},\n\n"
            "Welcome to our platform! Click here to get started: {{link}}\n\n"
            "Best regards,\n"
            "The Team"
        ),
        "variables": ["name", "app_name", "link"],
    },
    {
        "id": "order_shipped",
        "name": "Order Shipped",
        "channel": "sms",
        "subject": None,
        "body": "Hi {{name}}, your order #{{order_id}} has shipped! Track it here: {{tracking_link}}",
        "variables": ["name", "order_id", "tracking_link"],
    },
    {
        "id": "password_reset",
        "name": "Password Reset",
        "channel": "email",
        "subject": "Reset Your Password",
        "body": (
            "Hi {{name}},\n\n"
            "Click here to reset your password: {{reset_link}}\n\n"
            "This link expires in 1 hour.\n\n"
            "If you did not request this, please ignore this email."
        ),
        "variables": ["name", "reset_link"],
    },
]


def render_text(text: Optional[str], data: Mapping[str, Any]) -> Optional[str]:
    """Substitute `{{name}}` placeholders with values from data.

    Placeholders without a value (missing key or None) are left as they are.
    """
    if text is None:
        return None

    def replace(match: "re.Match") -> str:
        value = data.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(replace, text)


def render_template(template: Template, data: Mapping[str, Any]) -> RenderedMessage:
    return RenderedMessage(
        subject=render_text(template.subject, data),
        body=render_text(template.body, data),
    )


def _to_template(record: TemplateRecord) -> Template:
    return Template(
        id=record.id,
        name=record.name,
        channel=record.channel,
        subject=record.subject,
        body=record.body,
        variables=list(record.variables or []),
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


class TemplateRepository:
    """Read access to message templates, plus seeding of the defaults."""

    def __init__(self, database: Database, clock: Callable[[], datetime] = utcnow):
        self.database = database
        self._clock = clock

    def get(self, template_id: str) -> Template:
        """Return a template.

        Raises:
            NotFoundError: If no template has this id
        """
        with store_session(self.database, COMPONENT, "get") as session:
            record = session.get(TemplateRecord, template_id)
            if record is None:
                raise NotFoundError(f"Template '{template_id}' not found")
            return _to_template(record)

    def find_by_channel(self, channel: str) -> List[Template]:
        with store_session(self.database, COMPONENT, "find_by_channel") as session:
            records = (
                session.execute(
                    select(TemplateRecord)
                    .where(TemplateRecord.channel == channel)
                    .order_by(TemplateRecord.name)
                )
                .scalars()
                .all()
            )
            return [_to_template(record) for record in records]

    def find_all(self) -> List[Template]:
        with store_session(self.database, COMPONENT, "find_all") as session:
            records = (
                session.execute(
                    select(TemplateRecord).order_by(
                        TemplateRecord.channel, TemplateRecord.name
                    )
                )
                .scalars()
                .all()
            )
            return [_to_template(record) for record in records]

    @staticmethod
    def validate_variables(template: Template, data: Mapping[str, Any]) -> List[str]:
        """Return the required variables missing from data (empty when valid)."""
        return [name for name in template.variables if name not in data]

    def seed_defaults(self, templates: Optional[List[Dict[str, Any]]] = None) -> int:
        """Insert the default templates that do not exist yet.

        Returns:
            Number of templates inserted.
        """
        templates = DEFAULT_TEMPLATES if templates is None else templates
        now = self._clock()
        inserted = 0
        with store_session(self.database, COMPONENT, "seed_defaults") as session:
            for template in templates:
                if session.get(TemplateRecord, template["id"]) is not None:
                    continue
                session.add(
                    TemplateRecord(
                        id=template["id"],
                        name=template["name"],
                        channel=template["channel"],
                        subject=template.get("subject"),
                        body=template["body"],
                        variables=list(template.get("variables", [])),
                        created_at=now,
                        updated_at=now,
                    )
                )
                inserted += 1

        logger.info("templates_seeded", inserted=inserted, total=len(templates))
        return inserted
