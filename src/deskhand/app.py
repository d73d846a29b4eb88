"""Assemble a ready-to-use dispatcher."""

from __future__ import annotations

import logging

from deskhand.dispatch.composite import CompositeHandler
from deskhand.dispatch.dispatcher import CommandDispatcher
from deskhand.handlers.automation import DesktopAutomation
from deskhand.handlers.files import FileHandler
from deskhand.handlers.launch import CloseHandler, LaunchHandler
from deskhand.handlers.project import ProjectHandler
from deskhand.handlers.search import SearchHandler
from deskhand.handlers.service import ServiceControlHandler
from deskhand.handlers.smart import SmartHandler
from deskhand.handlers.system_info import SystemInfoHandler
from deskhand.handlers.ui import UIHandler
from deskhand.intent.resolver import IntentResolver
from deskhand.providers.base import LLMProvider
from deskhand.providers.factory import get_provider_or_none
from deskhand.session import SessionContext

logger = logging.getLogger(__name__)


def build_dispatcher(
    *,
    provider_type: str | None = None,
    offline: bool = False,
    session: SessionContext | None = None,
    llm: LLMProvider | None = None,
) -> CommandDispatcher:
    """Create a dispatcher with every handler registered.

    Registration order decides which handler claims a command first:
    launch, close, project, ui, composite, system info, service, files,
    search, then the smart handler as the fallback.

    The composite handler sits ahead of service, files and search and
    claims any command whose target contains a sequence delimiter, so
    ``dispatch(Command("search", target="salt and pepper"))`` runs "salt"
    and "pepper" as two steps. Call the search handler directly when the
    target must stay whole.

    Args:
        provider_type: Backend to use; None reads settings.
        offline: Skip the backend entirely and parse locally.
        session: Session to share; a new one is created when omitted.
        llm: Pre-built backend, mainly for tests.
    """
    if llm is None and not offline:
        llm = get_provider_or_none(provider_type)
    if offline:
        llm = None
    logger.info("Building dispatcher (backend=%s)", llm.provider_type if llm else "offline")

    session = session or SessionContext()
    dispatcher = CommandDispatcher(IntentResolver(llm), session=session)
    automation = DesktopAutomation()

    launch = LaunchHandler(session)
    dispatcher.register(launch)
    dispatcher.register(CloseHandler(session))
    dispatcher.register(ProjectHandler())
    dispatcher.register(UIHandler(automation=automation, launcher=launch.execute))
    dispatcher.register(CompositeHandler(keyboard=automation.keyboard))
    dispatcher.register(SystemInfoHandler(session))
    dispatcher.register(ServiceControlHandler())
    dispatcher.register(FileHandler())
    dispatcher.register(SearchHandler(llm))
    dispatcher.register(SmartHandler(llm, dispatcher), fallback=True)
    return dispatcher
