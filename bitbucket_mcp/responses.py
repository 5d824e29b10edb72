"""Wrap gateway results into MCP tool-call content."""

import json
from typing import Any

from mcp.types import TextContent


def adapt(body: Any) -> list[TextContent]:
    """Return exactly one text entry: strings verbatim, JSON pretty-printed in received key order."""
    if isinstance(body, str):
        text = body
    else:
        text = json.dumps(body, indent=2, ensure_ascii=False)
    return [TextContent(type="text", text=text)]
