"""Template loader for Jinja2-based prompt rendering.

This module provides a TemplateLoader that serves the built-in section
prompt templates and, optionally, overrides from a directory on disk.
A template found in the override directory wins over the built-in one with
the same name.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, select_autoescape

if TYPE_CHECKING:
    from jinja2 import Template


_HEADER = """You are a senior product manager writing one section of a software requirements document.
{% if project_name %}Project: {{ project_name }}
{% endif %}User requirement: {{ brief or "(not provided yet)" }}
"""

BUILTIN_PROMPTS: dict[str, str] = {
    "_header.j2": _HEADER,
    "core_features.j2": """{% include "_header.j2" %}
Write the "Core Features" section. Group the features by area (accounts,
content, social, intelligence, ...) as a markdown list under "## Core Features".
""",
    "technical_architecture.j2": """{% include "_header.j2" %}
Write the "Technical Architecture" section covering frontend, backend,
data storage, AI/ML services and infrastructure, under "## Technical Architecture".
{% for title, content in context.items() %}

The architecture must support the following completed "{{ title }}" section:
{{ content }}
{% endfor %}
""",
    "user_experience.j2": """{% include "_header.j2" %}
Write the "User Experience" section: design principles, key user flows and
performance requirements, under "## User Experience".
""",
    "testing_strategy.j2": """{% include "_header.j2" %}
Write the "Testing Strategy" section: automated, performance and security
testing, under "## Testing Strategy".
{% for title, content in context.items() %}

Relevant "{{ title }}" section:
{{ content }}
{% endfor %}
""",
}


class TemplateLoader:
    """Loads and caches Jinja2 prompt templates.

    Attributes:
        template_dir: Optional directory whose templates override built-ins
        env: Jinja2 Environment with configured loaders and caching
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        """Initialize the template loader.

        Args:
            template_dir: Directory of ``*.j2`` overrides. Built-in
                templates are used for anything it does not provide.
        """
        self.template_dir = template_dir

        loaders = []
        if template_dir is not None:
            loaders.append(FileSystemLoader(str(template_dir)))
        loaders.append(DictLoader(BUILTIN_PROMPTS))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(),
            trim_blocks=True,
            lstrip_blocks=True,
            cache_size=50,
            auto_reload=False,
        )

    def load_template(self, template_name: str) -> Template:
        """Load a template by name.

        Raises:
            jinja2.TemplateNotFound: If no loader provides the template
        """
        return self.env.get_template(template_name)

    def list_templates(self) -> list[str]:
        return sorted(self.env.list_templates())

    def template_exists(self, template_name: str) -> bool:
        return template_name in self.env.list_templates()
