"""Vibe input interpretation."""

from input.intent_parser import DEFAULT_TABLES, Intent, IntentParser, KeywordTables, parse_intent

__all__ = ["DEFAULT_TABLES", "Intent", "IntentParser", "KeywordTables", "parse_intent"]
