"""Deskhand - natural language commands for the desktop.

An instruction such as "open notepad and write hello world" is resolved
into structured commands (by a language model when one is reachable, by a
local phrase parser otherwise) and run by capability handlers: launching
and closing applications, UI automation, files, services, web search and
scripts.

Usage:
    deskhand                    Interactive prompt
    deskhand "start calculator" One instruction

Environment Variables:
    DESKHAND_PROVIDER       ollama | gemini | none (default: ollama)
    DESKHAND_OLLAMA_URL     Ollama API URL (default: http://127.0.0.1:11434)
    DESKHAND_OLLAMA_MODEL   Ollama model to use
    DESKHAND_GEMINI_API_KEY Gemini API key (or store it in the keyring)
    DESKHAND_LOG_LEVEL      Logging level (default: INFO)
"""

__version__ = "0.1.0"
