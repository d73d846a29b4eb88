"""Instruction interpretation: language model resolver and local parser."""

from deskhand.intent.fallback import parse_locally
from deskhand.intent.resolver import IntentResolver, extract_json_object, parse_command_reply

__all__ = ["IntentResolver", "extract_json_object", "parse_command_reply", "parse_locally"]
