"""Template rendering for email notifications using Jinja2.

Each email kind has three templates in ``email_templates``:
``<kind>_subject.j2``, ``<kind>_body.html.j2`` and ``<kind>_body.txt.j2``.
"""

import logging
from typing import Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from .models import NotificationTemplateError

logger = logging.getLogger(__name__)

EMAIL_KINDS = ("instant_alert", "alert_digest", "alert_test")


class TemplateRenderer:
    """Renders subject, HTML body and plain text body for an email kind.

    Only the HTML templates are auto-escaped. Templates are cached by the
    Jinja2 environment after first load.
    """

    def __init__(self, template_dir: str = "email_templates"):
        """Initialize template renderer with Jinja2 environment.

        Args:
            template_dir: Directory name within the jobalerts.notifications package
        """
        self.env = Environment(
            loader=PackageLoader("jobalerts.notifications", template_dir),
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default=False),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        logger.debug(f"Initialized TemplateRenderer with templates from {template_dir}")

    def render(self, kind: str, context: Dict) -> Dict[str, str]:
        """Render all templates of one email kind.

        Args:
            kind: One of EMAIL_KINDS
            context: Template variables

        Returns:
            Dictionary with ``subject`` (single line), ``html_body`` and ``text_body``

        Raises:
            NotificationTemplateError: If the kind is unknown or rendering fails
        """
        if kind not in EMAIL_KINDS:
            raise NotificationTemplateError(f"Unknown email kind: '{kind}'")

        try:
            subject = self.env.get_template(f"{kind}_subject.j2").render(context)
            html_body = self.env.get_template(f"{kind}_body.html.j2").render(context)
            text_body = self.env.get_template(f"{kind}_body.txt.j2").render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed for {kind}: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        return {
            "subject": " ".join(subject.split()),
            "html_body": html_body,
            "text_body": text_body,
        }
