"""Prompt generation for section content requests.

This module renders the prompt a content generator receives for a section,
seeded with the document brief and the content of completed prerequisite
sections.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from srdworkshop.context.loader import TemplateLoader
from srdworkshop.document.models import Document, SectionKind


class PromptGenerator:
    """Renders section generation prompts from Jinja2 templates.

    Each section kind has a template named ``<kind value>.j2``.

    Attributes:
        loader: TemplateLoader instance for accessing templates
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        self.loader = TemplateLoader(template_dir=template_dir)

    @staticmethod
    def template_name(kind: SectionKind) -> str:
        return f"{kind.value}.j2"

    def section_prompt(
        self,
        kind: SectionKind,
        document: Document,
        context: Mapping[str, str] | None = None,
    ) -> str:
        """Render the generation prompt for a section.

        Args:
            kind: Section to generate.
            document: Current document, for project name and brief.
            context: Completed prerequisite content keyed by section title.

        Returns:
            Rendered prompt text.

        Raises:
            jinja2.TemplateNotFound: If the section has no template
        """
        template = self.loader.load_template(self.template_name(kind))
        return template.render(
            section_title=kind.title,
            project_name=document.project_name,
            brief=document.brief,
            context=dict(context or {}),
        ).strip()
