"""Message templates with `{{key}}` placeholders."""

import threading
from dataclasses import dataclass
from typing import Any, Mapping

from loguru import logger

from src.rule_engine.domain.exceptions import TemplateChannelMismatchError, TemplateNotFoundError
from src.rule_engine.domain.models import NotificationType, RenderedTemplate, stringify_value
from src.rule_engine.domain.protocols import TemplateRenderer


@dataclass(frozen=True)
class MessageTemplate:
    """A named template bound to one channel."""

    name: str
    channel: NotificationType
    content: str
    subject: str | None = None
    is_active: bool = True


def substitute(text: str, variables: Mapping[str, Any]) -> str:
    """Replace every `{{key}}` with the string form of variables[key]. Unknown placeholders stay."""
    for key, value in variables.items():
        if value is None:
            continue
        text = text.replace("{{" + key + "}}", stringify_value(value))
    return text


class InMemoryTemplateRegistry(TemplateRenderer):
    """Template lookup backed by a dict."""

    def __init__(self, templates: list[MessageTemplate] | None = None):
        self._templates: dict[str, MessageTemplate] = {}
        self._lock = threading.Lock()
        for template in templates or []:
            self.add(template)

    def add(self, template: MessageTemplate) -> None:
        with self._lock:
            self._templates[template.name] = template

    def register(
        self,
        name: str,
        channel: NotificationType,
        content: str,
        subject: str | None = None,
        is_active: bool = True,
    ) -> MessageTemplate:
        """Create (or replace) a template."""
        template = MessageTemplate(name=name, channel=channel, content=content, subject=subject, is_active=is_active)
        self.add(template)
        logger.debug(f"Registered {channel.value} template {name}")
        return template

    def get(self, name: str) -> MessageTemplate:
        with self._lock:
            template = self._templates.get(name)
        if template is None or not template.is_active:
            raise TemplateNotFoundError(name)
        return template

    def render(
        self, template_name: str, channel: NotificationType, variables: Mapping[str, Any]
    ) -> RenderedTemplate:
        template = self.get(template_name)
        if template.channel != channel:
            raise TemplateChannelMismatchError(template_name, channel.value, template.channel.value)

        return RenderedTemplate(
            content=substitute(template.content, variables),
            subject=substitute(template.subject, variables) if template.subject else None,
        )
