"""Level-1 URI templates with both expansion and matching.

Only simple ``{name}`` expressions are supported; a variable matches any run
of characters other than ``/``. Variable names may contain dots
(``{email.id}``).
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional

_EXPRESSION = re.compile(r"\{([A-Za-z0-9_.]+)\}")


class UriTemplate:
    """A compiled template such as ``mcp-imap://{inbox}@{host}/email/{email.id}``."""

    def __init__(self, template: str):
        self.template = template
        self.variables: List[str] = []
        pattern: List[str] = []
        position = 0
        for match in _EXPRESSION.finditer(template):
            pattern.append(re.escape(template[position:match.start()]))
            name = match.group(1)
            self.variables.append(name)
            pattern.append(f"(?P<v{len(self.variables) - 1}>[^/]*)")
            position = match.end()
        pattern.append(re.escape(template[position:]))
        self._regex = re.compile("^" + "".join(pattern) + "$")

    def __repr__(self) -> str:
        return f"UriTemplate({self.template!r})"

    def match(self, uri: str) -> Optional[Dict[str, str]]:
        """Return the variable values for ``uri``, or ``None`` if it does not fit."""

        found = self._regex.match(uri)
        if found is None:
            return None
        return {name: found.group(f"v{index}") for index, name in enumerate(self.variables)}

    def expand(self, **values: str) -> str:
        """Substitute ``values`` (dots in names become underscores in kwargs)."""

        def substitute(match: "re.Match[str]") -> str:
            key = match.group(1).replace(".", "_")
            return str(values[key])

        return _EXPRESSION.sub(substitute, self.template)
