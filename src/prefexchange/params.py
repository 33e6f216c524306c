"""Summary: Startup parameters handed to the client runtime.

Importance: Turns deployment settings and stored preferences into name/value parameters.
Alternatives: Let the client fetch each setting with a separate request.
"""

from __future__ import annotations

import html
import json
from pathlib import Path

from prefexchange.models import PreferenceSet, StartupParameter


def preference_parameters(prefs: PreferenceSet) -> list[StartupParameter]:
    """Summary: Flatten a preference set into counted, indexed parameters.

    Importance: The client rebuilds each group from `<type>.prefsCount` and `<type>.<i>`.
    Alternatives: Pass the whole blob as a single parameter.
    """

    params: list[StartupParameter] = []
    for group in prefs.groups:
        params.append(StartupParameter(f"{group.type_name}.prefsCount", str(len(group.lines))))
        for index, line in enumerate(group.lines):
            params.append(StartupParameter(f"{group.type_name}.{index}", line.to_text()))
    return params


def load_startup_parameters(path: Path) -> list[StartupParameter]:
    """Summary: Load the deployment's base parameters from JSON.

    Importance: Keeps server, plugin, and resource settings out of code.
    Alternatives: Hardcode parameters in the page template.

    The file holds either a list of `[name, value]` pairs or an object.
    """

    if not path.exists():
        return []
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        pairs = list(data.items())
    else:
        pairs = [tuple(item) for item in data]
    return [StartupParameter(str(name), str(value)) for name, value in pairs]


def render_param_tags(params: list[StartupParameter]) -> str:
    """Summary: Render parameters as PARAM tags for embedding in a page.

    Importance: Produces the markup the hosting page inserts verbatim.
    Alternatives: Use a template engine for the whole page.
    """

    return "".join(
        f'<PARAM NAME="{html.escape(param.name)}" VALUE="{html.escape(param.value)}">\n'
        for param in params
    )
