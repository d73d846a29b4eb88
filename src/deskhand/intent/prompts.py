"""Fixed instruction templates sent to the language model."""

from __future__ import annotations

NEED_SEARCH = "NEED_SEARCH"

COMMAND_INSTRUCTIONS = """\
You translate a desktop user's instruction into ONE JSON object.

Reply with JSON only, using this schema:
{"commandType": "<type>", "target": "<primary subject>", "action": "<optional>", "parameters": {}}

Supported command types:
- launch: start an application, URL or file. target = application name.
  parameters: runAsAdmin (bool, optional)
- close: close a running application. target = application name.
- ui: interact with an application window. target = application name ("active" for the focused window).
  action = click | doubleclick | rightclick | type | select | drag | scroll | gettext | wait | screenshot | hotkey
  parameters: element (name or automation id), text, item, direction (up|down), amount,
  toElement, timeout (seconds), keys (e.g. "ctrl+s"), path (screenshot file)
- readfile: read a text file. target = file path. parameters: encoding, maxChars
- writefile: write a text file. target = file path. parameters: content, append (bool), encoding
- servicecontrol: control an OS service. target = service name.
  parameters: action = start | stop | restart | status
- search: answer a question or look something up. target = the query.
- project: run a script or project. target = file or project name.
  parameters: arguments, runAsAdmin (bool)
- systeminfo: report facts about this computer. target = os | cpu | memory | disk | user | running | general
- custom: anything that does not fit above. target = the original instruction.

Examples:
"open notepad" -> {"commandType": "launch", "target": "notepad", "parameters": {}}
"click Save in notepad" -> {"commandType": "ui", "target": "notepad", "action": "click", "parameters": {"element": "Save"}}
"restart the print spooler" -> {"commandType": "servicecontrol", "target": "spooler", "parameters": {"action": "restart"}}
"what is the capital of Peru" -> {"commandType": "search", "target": "capital of Peru", "parameters": {}}
"how much memory do I have" -> {"commandType": "systeminfo", "target": "memory", "parameters": {}}
"""

SMART_ANALYSIS_INSTRUCTIONS = """\
A desktop assistant could not classify the user's request. Work out what the
user wants done on their computer and reply with ONE JSON object:
{
  "analysis": "<one sentence: what the user wants>",
  "appRequired": "<application name, or 'system' if none>",
  "actionType": "launch | search | ui_interact | file_operation | system_control | system_info",
  "specificAction": "<click | type | read | write | start | stop | ... >",
  "parameters": {}
}
Use parameters such as element, text, path, content, service, query, topic
and give the topic (os, cpu, memory, disk, user, running) for system_info.
Reply with JSON only.
"""

DIRECT_ANSWER_INSTRUCTIONS = f"""\
Answer the user's question directly and concisely if you are confident the
answer is stable general knowledge. If the question needs current, local or
otherwise uncertain information, reply with exactly {NEED_SEARCH} and nothing else.
"""

ANSWER_FROM_SNIPPETS = """\
Answer the user's question using ONLY the search results provided below.
If the results do not contain the answer, say that the results do not answer it.
Keep the answer under five sentences and do not invent sources.
"""
