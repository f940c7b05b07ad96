"""Remediation prompt construction."""

from .builder import CategoryGroup, EmbeddedPrompt, PromptBuilder

__all__ = ["CategoryGroup", "EmbeddedPrompt", "PromptBuilder"]
