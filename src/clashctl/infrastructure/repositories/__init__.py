"""Repositories — SQL for rules and items, bound to a caller's connection."""

from clashctl.infrastructure.repositories.rules import RuleRepository

__all__ = ["RuleRepository"]
