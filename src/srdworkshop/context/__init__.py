"""Prompt rendering for section generation."""

from srdworkshop.context.generator import PromptGenerator
from srdworkshop.context.loader import BUILTIN_PROMPTS, TemplateLoader

__all__ = ["BUILTIN_PROMPTS", "PromptGenerator", "TemplateLoader"]
