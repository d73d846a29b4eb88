"""Capability handlers claimed by the dispatcher."""

from deskhand.handlers.base import CommandHandler
from deskhand.handlers.files import FileHandler
from deskhand.handlers.launch import CloseHandler, LaunchHandler
from deskhand.handlers.project import ProjectHandler
from deskhand.handlers.search import SearchHandler, WebSearcher
from deskhand.handlers.service import ServiceControlHandler
from deskhand.handlers.smart import SmartHandler
from deskhand.handlers.ui import UIHandler

__all__ = [
    "CloseHandler",
    "CommandHandler",
    "FileHandler",
    "LaunchHandler",
    "ProjectHandler",
    "SearchHandler",
    "ServiceControlHandler",
    "SmartHandler",
    "UIHandler",
    "WebSearcher",
]
