"""
Jinja2-based prompt template loading and rendering.

This module provides utilities for loading and rendering oracle prompt
templates from the cost_estimator/prompts/ directory. Templates support
Jinja2 features including:
- Variable substitution
- Template inheritance ({% extends %})
- Conditional logic ({% if %})
- Loops ({% for %})

Usage:
    from cost_estimator.utils.prompt_loader import render_prompt

    prompt = render_prompt(
        "tuition/official_search.j2",
        university="MIT",
        program="Computer Science",
        level="graduate",
    )
"""

import json
from pathlib import Path
from typing import Any, Optional

import structlog
from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
    UndefinedError,
)

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).parent.parent / "prompts"


class PromptLoader:
    """
    Manages loading and rendering of Jinja2 prompt templates.

    Templates are loaded from the prompts/ directory inside the package.
    Supports template inheritance, custom filters, and error handling.
    """

    def __init__(
        self,
        template_dir: Optional[Path] = None,
        strict_undefined: bool = False,
    ) -> None:
        """
        Initialize PromptLoader with Jinja2 environment.

        Args:
            template_dir: Base directory for templates (defaults to cost_estimator/prompts/)
            strict_undefined: If True, raise error for undefined variables (default: False)
        """
        self.template_dir = template_dir or DEFAULT_TEMPLATE_DIR
        self.strict_undefined = strict_undefined

        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,  # Prompts are text, not HTML
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined if strict_undefined else Undefined,
        )

        self.env.filters["tojson_pretty"] = self._tojson_pretty_filter

        logger.debug(
            "PromptLoader initialized",
            template_dir=str(self.template_dir),
            strict_undefined=strict_undefined,
        )

    def render(
        self,
        template_name: str,
        correlation_id: Optional[str] = None,
        **variables: Any,
    ) -> str:
        """
        Render a template with provided variables.

        Args:
            template_name: Path to template relative to prompts/ (e.g., "tuition/extract.j2")
            correlation_id: Optional correlation ID for logging
            **variables: Template variables as keyword arguments

        Returns:
            Rendered prompt string

        Raises:
            TemplateNotFound: If template file doesn't exist
            TemplateSyntaxError: If template has syntax errors
            UndefinedError: If strict_undefined=True and variable is missing
        """
        log = logger.bind(
            template_name=template_name,
            correlation_id=correlation_id,
        )

        try:
            template = self.env.get_template(template_name)
            rendered = template.render(**variables)
            log.debug(
                "Template rendered",
                rendered_length=len(rendered),
                variables_provided=list(variables.keys()),
            )
            return rendered

        except TemplateNotFound as e:
            log.error(
                "Template not found",
                template_dir=str(self.template_dir),
                error=str(e),
            )
            raise

        except TemplateSyntaxError as e:
            log.error("Template syntax error", error=str(e), lineno=e.lineno)
            raise

        except UndefinedError as e:
            log.error(
                "Undefined variable in template",
                error=str(e),
                variables_provided=list(variables.keys()),
            )
            raise

    @staticmethod
    def _tojson_pretty_filter(value: Any) -> str:
        """Render a value as indented JSON (used for example schemas)."""
        return json.dumps(value, indent=2, ensure_ascii=False)


# Global instance for convenience
_default_loader: Optional[PromptLoader] = None


def get_default_loader() -> PromptLoader:
    """
    Get or create the default PromptLoader instance.

    Returns:
        Global PromptLoader instance
    """
    global _default_loader
    if _default_loader is None:
        _default_loader = PromptLoader()
    return _default_loader


def render_prompt(
    template_name: str,
    correlation_id: Optional[str] = None,
    **variables: Any,
) -> str:
    """
    Convenience function to render a prompt template.

    Uses the default PromptLoader instance. For most use cases, this is the
    recommended entry point.

    Args:
        template_name: Path to template relative to prompts/ (e.g., "fees/application_extract.j2")
        correlation_id: Optional correlation ID for logging
        **variables: Template variables as keyword arguments

    Returns:
        Rendered prompt string
    """
    loader = get_default_loader()
    return loader.render(template_name, correlation_id=correlation_id, **variables)
