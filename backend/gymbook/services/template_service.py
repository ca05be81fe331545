# backend/gymbook/services/template_service.py
"""
Template rendering service.

Centralized Jinja2 rendering for email bodies, with the club's common
context variables merged into every render.
"""

from datetime import date, datetime
from decimal import Decimal
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jinja2 import Environment, FileSystemLoader, TemplateNotFound
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import BRAND_NAME
from .base import BaseService
from .template_registry import TemplateRegistry

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


class TemplateService(BaseService):
    """
    Jinja2 rendering for emails.

    Does not touch the database; the session is optional and only kept for
    BaseService compatibility.
    """

    def __init__(self, db: Optional[Session] = None):
        super().__init__(db)  # type: ignore[arg-type]

        self.env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._register_custom_filters()

    def _register_custom_filters(self) -> None:
        def currency(value: Union[Decimal, float, str]) -> str:
            """Format an amount as pounds sterling."""
            return f"£{Decimal(str(value)):,.2f}"

        self.env.filters["currency"] = currency

        def format_date(value: Union[date, str], format_str: Optional[str] = None) -> str:
            if isinstance(value, str):
                return value  # Already formatted
            if format_str:
                return value.strftime(format_str)
            return f"{value:%A} {value.day} {value:%B %Y}"

        self.env.filters["format_date"] = format_date

    def get_common_context(self) -> Dict[str, Any]:
        return {
            "brand_name": BRAND_NAME,
            "current_year": datetime.now().year,
            "frontend_url": settings.frontend_url,
            "support_email": settings.from_email,
        }

    @BaseService.measure_operation("render_template")
    def render_template(
        self,
        template_name: Union[TemplateRegistry, str],
        context: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> str:
        """
        Render a template with the given context.

        Args:
            template_name: Registry entry or path relative to the templates directory
            context: Dictionary of template variables
            **kwargs: Additional template variables

        Returns:
            Rendered template as string

        Raises:
            TemplateNotFound: If template doesn't exist
        """
        name = template_name.value if isinstance(template_name, TemplateRegistry) else template_name
        try:
            template = self.env.get_template(name)
        except TemplateNotFound:
            self.logger.error(f"Template not found: {name}")
            raise

        full_context = self.get_common_context()
        if context:
            full_context.update(context)
        full_context.update(kwargs)
        return template.render(full_context)
