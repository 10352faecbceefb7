"""Built-in section templates.

A small catalog of starter bodies (PRD outline, architecture views, data
model tables) that can be dropped into a section as a manual edit.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from srdworkshop.errors import TemplateNotFoundError


class TemplateCategory(str, Enum):
    """Template categories."""

    PRD = "prd"
    ARCHITECTURE = "architecture"
    DATAMODEL = "datamodel"
    DESIGN = "design"


class SectionTemplate(BaseModel):
    """A reusable section body.

    Attributes:
        id: Stable template identifier.
        title: Display title.
        description: One-line summary.
        category: Template category.
        tags: Free-form search tags.
        content: Markdown body inserted into the section.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    category: TemplateCategory
    tags: tuple[str, ...] = Field(default_factory=tuple)
    content: str


_PRD = """# Product Requirements Document (PRD)

## Problem Statement
- Current pain points:
- Target users:
- Market opportunity:

## Target Audience
- Primary user groups:
- Usage scenarios:
- Core needs:

## User Journey
1. Discovery
2. Experience
3. Conversion
4. Retention

## MVP Features
- [ ] Core feature 1
- [ ] Core feature 2
- [ ] Core feature 3

## KPIs
- Customer acquisition cost (CAC)
- Customer lifetime value (LTV)
- Monthly active users (MAU)
"""

_ARCHITECTURE = """# System Architecture

## C4 Model

### Context
```mermaid
graph TB
    User[User] --> System[System]
    System --> ExtAPI[External API]
    System --> DB[(Database)]
```

### Containers
- Web application
- API service
- Data storage

### Components
- Business logic layer
- Data access layer
- Presentation layer

## Request Sequence
```mermaid
sequenceDiagram
    participant U as User
    participant F as Frontend
    participant B as Backend
    participant D as Database
    U->>F: Request
    F->>B: API call
    B->>D: Query
    D-->>B: Rows
    B-->>F: Response
    F-->>U: Render
```
"""

_DATAMODEL = """# Data Model

## Entities

### User
| Field | Type | Description | Constraint |
|-------|------|-------------|------------|
| id | UUID | User id | PK |
| username | STRING | User name | UNIQUE |
| email | STRING | Email | UNIQUE |
| created_at | TIMESTAMP | Created at | NOT NULL |

## JSON Schema
```json
{
  "$schema": "http://json-schema.org/draft-07/schema#",
  "type": "object",
  "properties": {
    "id": {"type": "string", "format": "uuid"},
    "username": {"type": "string", "minLength": 3},
    "email": {"type": "string", "format": "email"}
  },
  "required": ["id", "username", "email"]
}
```
"""

_SAAS_PRD = """# SaaS Product Requirements

## Product Overview
- Positioning
- Target market
- Competitive analysis

## User Research
- Personas
- Scenarios
- Pain points

## Functional Specification
### Core
- [ ] User management
- [ ] Analytics
- [ ] Team collaboration

### Advanced
- [ ] API integrations
- [ ] Custom reports
- [ ] Permission management
"""

_MICROSERVICES = """# Microservice Architecture

## Overview
- Business background
- Architecture goals
- Design principles

## Service Boundaries
### User service
- Registration and login
- Profile management
- Access control

### Order service
- Order creation
- Payment processing
- Status tracking

## Technology Choices
- Spring Cloud
- Docker
- Kubernetes
"""

BUILTIN_TEMPLATES: tuple[SectionTemplate, ...] = (
    SectionTemplate(
        id="prd",
        title="PRD Template",
        description="Problem, audience, user journey, MVP and KPIs",
        category=TemplateCategory.PRD,
        tags=("PRD", "MVP"),
        content=_PRD,
    ),
    SectionTemplate(
        id="architecture",
        title="Architecture Diagram Template",
        description="C4 model, ER and sequence diagrams",
        category=TemplateCategory.ARCHITECTURE,
        tags=("C4", "mermaid"),
        content=_ARCHITECTURE,
    ),
    SectionTemplate(
        id="datamodel",
        title="Data Model Template",
        description="Entity tables and JSON Schema",
        category=TemplateCategory.DATAMODEL,
        tags=("ER", "JSON Schema"),
        content=_DATAMODEL,
    ),
    SectionTemplate(
        id="saas-prd",
        title="SaaS Product PRD",
        description="Complete requirements template for B2B SaaS products",
        category=TemplateCategory.PRD,
        tags=("SaaS", "B2B", "Enterprise"),
        content=_SAAS_PRD,
    ),
    SectionTemplate(
        id="microservices",
        title="Microservice Architecture",
        description="Enterprise microservice architecture design template",
        category=TemplateCategory.ARCHITECTURE,
        tags=("Microservices", "Architecture", "Cloud native"),
        content=_MICROSERVICES,
    ),
)


class TemplateCatalog:
    """Lookup and search over section templates."""

    def __init__(self, templates: tuple[SectionTemplate, ...] = BUILTIN_TEMPLATES) -> None:
        self._templates = {template.id: template for template in templates}

    def get(self, template_id: str) -> SectionTemplate:
        """Return a template by id.

        Raises:
            TemplateNotFoundError: If the id is not in the catalog.
        """
        try:
            return self._templates[template_id]
        except KeyError:
            raise TemplateNotFoundError(template_id) from None

    def list(self) -> list[SectionTemplate]:
        return list(self._templates.values())

    def search(
        self,
        term: str = "",
        category: TemplateCategory | str | None = None,
    ) -> list[SectionTemplate]:
        """Filter templates by search term and category.

        The term matches case-insensitively against title, description and
        tags. An empty term matches everything.
        """
        needle = term.strip().lower()
        wanted = TemplateCategory(category) if category is not None else None

        results = []
        for template in self._templates.values():
            if wanted is not None and template.category != wanted:
                continue
            haystack = [template.title, template.description, *template.tags]
            if needle and not any(needle in text.lower() for text in haystack):
                continue
            results.append(template)
        return results
